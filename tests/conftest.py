import os
import tempfile

# must happen before utmbot.core.db builds its engine
_DB_DIR = tempfile.mkdtemp(prefix="utmbot-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["TELEGRAM_BOT_TOKEN"] = ""

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402

from utmbot.core.db import SessionLocal, create_all  # noqa: E402
from utmbot.links.session_store import InMemorySessionStore  # noqa: E402
from utmbot.links.state_machine import LinkBuilder  # noqa: E402
from utmbot.models.orm import Order  # noqa: E402

create_all()

SOURCES = ["meta", "google", "tiktok", "linkedin", "sms", "email", "x"]
MEDIUMS = ["paid_social", "cpc", "display", "paid_search", "sms", "email", "organic_social"]


class FakeMessenger:
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def send(self, out):
        from utmbot.services.telegram_service import MessengerError

        if out.chat_id in self.fail_for:
            raise MessengerError(f"chat {out.chat_id} blocked the bot")
        self.sent.append(out)


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def store():
    return InMemorySessionStore(shards=4)


@pytest.fixture
def builder(store):
    return LinkBuilder(store, SOURCES, MEDIUMS)


@pytest.fixture
def db():
    s = SessionLocal()
    s.query(Order).delete()
    s.commit()
    try:
        yield s
    finally:
        s.rollback()
        s.query(Order).delete()
        s.commit()
        s.close()


def make_order(db, order_id, amount, *, source=None, medium=None, campaign=None,
               channel=None, items=None, when=None, currency="TRY"):
    o = Order(
        order_id=order_id,
        amount=amount,
        currency=currency,
        items=items or [],
        utm_source=source,
        utm_medium=medium,
        utm_campaign=campaign,
        traffic_channel=channel,
        event_time=when or datetime(2025, 1, 10, 12, 0, 0),
    )
    db.add(o)
    db.commit()
    return o
