from conftest import FakeMessenger, make_order

from utmbot.links import prompts
from utmbot.links.router import COMMANDS, EventRouter
from utmbot.models.events import InboundMessage, InboundSelection, OutboundDocument
from utmbot.services.telegram_service import parse_update

USER, CHAT = 5, 50


def cmd(name, args=""):
    text = f"/{name} {args}".strip()
    return InboundMessage(user_id=USER, chat_id=CHAT, text=text, is_command=True,
                          command_name=name, command_args=args)


def text(value):
    return InboundMessage(user_id=USER, chat_id=CHAT, text=value)


def select(payload):
    return InboundSelection(user_id=USER, chat_id=CHAT, selection_id="cb1", payload=payload)


def test_start_sends_welcome(builder, messenger):
    router = EventRouter(builder, messenger)
    router.handle(cmd("start"))
    assert messenger.sent[0].parse_mode == "HTML"
    assert "UTM Builder" in messenger.sent[0].text
    assert builder.store.get(USER) is None


def test_full_build_through_router(builder, messenger):
    router = EventRouter(builder, messenger)
    for event in [cmd("build"), text("https://example.org/bagis/"), select("google"), select("cpc"),
                  text("Kış Kampanyası"), text("Video 1"), select(prompts.SKIP_TERM_PAYLOAD)]:
        router.handle(event)
    final = messenger.sent[-1].text
    assert "utm_campaign=kis_kampanyasi" in final
    assert "utm_content=video_1" in final
    assert builder.store.get(USER) is None


def test_free_text_without_session_is_ignored(builder, messenger):
    router = EventRouter(builder, messenger)
    assert router.handle(text("merhaba")) == []
    assert messenger.sent == []


def test_selection_without_session_asks_to_restart(builder, messenger):
    router = EventRouter(builder, messenger)
    router.handle(select("meta"))
    assert messenger.sent[0].text == prompts.SESSION_NOT_FOUND


def test_commands_work_mid_session(builder, messenger):
    router = EventRouter(builder, messenger)
    router.handle(cmd("build"))
    router.handle(cmd("myid"))
    assert str(CHAT) in messenger.sent[-1].text
    router.handle(cmd("cancel"))
    assert messenger.sent[-1].text == prompts.CANCELLED
    assert builder.store.get(USER) is None


def test_unknown_command(builder, messenger):
    router = EventRouter(builder, messenger)
    router.handle(cmd("nope"))
    assert messenger.sent[0].text == prompts.UNKNOWN_COMMAND


def test_send_failure_is_contained(builder):
    failing = FakeMessenger(fail_for={CHAT})
    router = EventRouter(builder, failing)
    replies = router.handle(cmd("build"))
    assert len(replies) == 1
    assert failing.sent == []
    assert builder.store.get(USER) is not None


def test_report_and_export_commands_are_registered():
    for name in ("toplam", "kaynaklar", "kampanyalar", "ortamlar", "son", "gunluk",
                 "ortalama", "export", "analiz", "kalem", "google", "meta"):
        assert name in COMMANDS


def test_report_command_reaches_database(builder, messenger, db):
    make_order(db, "R-1", 150.0, source="meta")
    router = EventRouter(builder, messenger)
    router.handle(cmd("toplam"))
    assert "150.00" in messenger.sent[0].text


def test_export_sends_document(builder, messenger, db):
    make_order(db, "X-1", 99.5, source="google")
    router = EventRouter(builder, messenger)
    router.handle(cmd("export"))
    doc = messenger.sent[0]
    assert isinstance(doc, OutboundDocument)
    assert doc.filename.startswith("bagislar_tum_")
    assert doc.content[:2] == b"PK"


def test_parsed_update_flows_into_router(builder, messenger):
    router = EventRouter(builder, messenger)
    update = {
        "update_id": 1,
        "message": {
            "message_id": 1,
            "from": {"id": USER},
            "chat": {"id": CHAT},
            "text": "/build@utm_bot",
            "entities": [{"type": "bot_command", "offset": 0, "length": 14}],
        },
    }
    router.handle(parse_update(update))
    assert messenger.sent[0].text == prompts.ASK_SOURCE_URL
