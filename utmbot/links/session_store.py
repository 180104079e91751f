from __future__ import annotations

import abc
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

logger = logging.getLogger("utmbot.links.session_store")


class Step(str, Enum):
    AWAITING_SOURCE_URL = "awaiting_source_url"
    AWAITING_SOURCE = "awaiting_source"
    AWAITING_MEDIUM = "awaiting_medium"
    AWAITING_CAMPAIGN = "awaiting_campaign"
    AWAITING_CONTENT = "awaiting_content"
    AWAITING_TERM = "awaiting_term"

    @property
    def number(self) -> int:
        """1-based position in the conversation (used in prompts and ordering)."""
        return STEP_ORDER.index(self) + 1


STEP_ORDER: List[Step] = list(Step)


@dataclass
class Session:
    user_id: int
    chat_id: int
    step: Step = Step.AWAITING_SOURCE_URL
    source_url: str = ""
    utm_source: str = ""
    utm_medium: str = ""
    campaign: str = ""
    content: str = ""
    term: str = ""
    created_at: float = field(default_factory=time.monotonic)
    updated_at: float = field(default_factory=time.monotonic)

    def advance(self, to: Step) -> None:
        if to.number <= self.step.number:
            raise ValueError(f"step can only move forward: {self.step.value} -> {to.value}")
        self.step = to


class SessionStore(abc.ABC):
    """Per-user session container. Implementations must be thread-safe."""

    @abc.abstractmethod
    def create(self, user_id: int, chat_id: int) -> Session:
        """Install a fresh session, discarding any previous one."""

    @abc.abstractmethod
    def get(self, user_id: int) -> Optional[Session]:
        ...

    @abc.abstractmethod
    def delete(self, user_id: int) -> None:
        """No-op when absent."""

    @abc.abstractmethod
    def locked(self, user_id: int):
        """Context manager making a get-then-mutate sequence on one key atomic."""

    def purge_expired(self) -> int:
        return 0

    def __len__(self) -> int:
        return 0


class _Shard:
    __slots__ = ("lock", "sessions")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.sessions: Dict[int, Session] = {}


class InMemorySessionStore(SessionStore):
    """
    Sharded in-memory store: each shard owns a dict and a re-entrant lock, so
    keys in different shards never contend. ``ttl`` (seconds) is optional;
    ``None`` or ``0`` keeps abandoned sessions until cancel/complete/replace.
    """

    def __init__(self, shards: int = 16, ttl: Optional[float] = None, clock=time.monotonic) -> None:
        if shards < 1:
            raise ValueError("shards must be >= 1")
        self._shards = [_Shard() for _ in range(shards)]
        self._ttl = ttl or None
        self._clock = clock

    def _shard(self, user_id: int) -> _Shard:
        return self._shards[hash(user_id) % len(self._shards)]

    def _expired(self, session: Session) -> bool:
        return self._ttl is not None and self._clock() - session.updated_at > self._ttl

    @contextmanager
    def locked(self, user_id: int) -> Iterator[None]:
        """Hold the key's shard lock; any live session is marked active on exit."""
        shard = self._shard(user_id)
        with shard.lock:
            yield
            session = shard.sessions.get(user_id)
            if session is not None:
                session.updated_at = self._clock()

    def create(self, user_id: int, chat_id: int) -> Session:
        shard = self._shard(user_id)
        now = self._clock()
        session = Session(user_id=user_id, chat_id=chat_id, created_at=now, updated_at=now)
        with shard.lock:
            replaced = user_id in shard.sessions
            shard.sessions[user_id] = session
        logger.info("session created user=%s replaced=%s", user_id, replaced)
        return session

    def get(self, user_id: int) -> Optional[Session]:
        shard = self._shard(user_id)
        with shard.lock:
            session = shard.sessions.get(user_id)
            if session is not None and self._expired(session):
                del shard.sessions[user_id]
                logger.info("session expired user=%s step=%s", user_id, session.step.value)
                return None
            return session

    def delete(self, user_id: int) -> None:
        shard = self._shard(user_id)
        with shard.lock:
            removed = shard.sessions.pop(user_id, None)
        if removed is not None:
            logger.debug("session deleted user=%s", user_id)

    def purge_expired(self) -> int:
        if self._ttl is None:
            return 0
        purged = 0
        for shard in self._shards:
            with shard.lock:
                stale = [uid for uid, s in shard.sessions.items() if self._expired(s)]
                for uid in stale:
                    del shard.sessions[uid]
                purged += len(stale)
        if purged:
            logger.info("purged %d expired sessions", purged)
        return purged

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.sessions)
        return total
