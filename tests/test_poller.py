from utmbot.links import prompts
from utmbot.links.router import EventRouter
from utmbot.links.session_store import InMemorySessionStore
from utmbot.links.state_machine import LinkBuilder
from utmbot.services.poller import UpdatePoller


class FakeClient:
    def __init__(self, batches):
        self.batches = list(batches)
        self.offsets = []
        self.answered = []
        self.sent = []

    def get_updates(self, offset=0, timeout=60):
        self.offsets.append(offset)
        return self.batches.pop(0) if self.batches else []

    def answer_callback(self, callback_id, text=""):
        self.answered.append(callback_id)

    def send(self, out):
        self.sent.append(out)


def _msg(update_id, text, user=1):
    return {"update_id": update_id,
            "message": {"from": {"id": user}, "chat": {"id": user}, "text": text}}


def test_poll_advances_offset_and_dispatches(builder, store):
    client = FakeClient([
        [_msg(10, "/build"), _msg(11, "https://example.org/")],
        [{"update_id": 12, "callback_query": {"id": "q1", "from": {"id": 1}, "data": "meta",
                                               "message": {"chat": {"id": 1}}}}],
    ])
    poller = UpdatePoller(client, EventRouter(builder, client), store, timeout=0)

    assert poller.poll_once() == 2
    assert poller.offset == 12
    assert poller.poll_once() == 1
    assert client.offsets == [0, 12]
    assert client.answered == ["q1"]
    assert client.sent[0].text == prompts.ASK_SOURCE_URL
    assert store.get(1).utm_source == "meta"


def test_unhandled_updates_are_skipped(builder, store):
    client = FakeClient([[{"update_id": 5, "edited_message": {"text": "x"}}]])
    poller = UpdatePoller(client, EventRouter(builder, client), store, timeout=0)
    poller.poll_once()
    assert poller.offset == 6
    assert client.sent == []


def test_poll_purges_expired_sessions():
    now = [1000.0]
    store = InMemorySessionStore(ttl=60, clock=lambda: now[0])
    builder = LinkBuilder(store, ["meta"], ["cpc"])
    client = FakeClient([])
    poller = UpdatePoller(client, EventRouter(builder, client), store, timeout=0)
    builder.start(1, 1)
    builder.start(2, 2)

    now[0] += 30
    assert poller.poll_once() == 0
    assert len(store) == 2

    now[0] += 31
    assert poller.poll_once() == 0
    assert len(store) == 0
