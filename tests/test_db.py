from datetime import datetime

import pytest

from utmbot.core.db import build_engine, session_scope
from utmbot.models.orm import Order

WHEN = datetime(2025, 1, 10, 12, 0)


def test_build_engine_for_sqlite_file(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'x.db'}")
    with engine.connect() as conn:
        assert conn.exec_driver_sql("select 1").scalar() == 1
    engine.dispose()


def test_session_scope_commits(db):
    with session_scope() as s:
        s.add(Order(order_id="S-1", amount=10.0, currency="TRY", items=[], event_time=WHEN))
    assert db.query(Order).filter_by(order_id="S-1").count() == 1


def test_session_scope_rolls_back_on_error(db):
    with pytest.raises(RuntimeError):
        with session_scope() as s:
            s.add(Order(order_id="S-2", amount=10.0, currency="TRY", items=[], event_time=WHEN))
            s.flush()
            raise RuntimeError("boom")
    assert db.query(Order).filter_by(order_id="S-2").count() == 0
