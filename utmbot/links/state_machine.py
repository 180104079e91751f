from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from utmbot.links import prompts
from utmbot.links.assembler import MalformedURLError, TagFields, assemble, is_valid_source_url
from utmbot.links.sanitizer import fold_case, sanitize
from utmbot.links.session_store import Session, SessionStore, Step
from utmbot.models.events import Option, Outbound, OutboundMessage, option_rows

logger = logging.getLogger("utmbot.links.state_machine")

DEFAULT_SKIP_KEYWORDS = ("atla", "skip")


class EventKind(str, Enum):
    TEXT = "text"
    SELECTION = "selection"


Handler = Callable[["LinkBuilder", Session, str], List[Outbound]]


class LinkBuilder:
    """
    Guided conversation that collects source URL, source, medium, campaign,
    content and an optional term, then emits the assembled link.

    Only the store contract is used, so the store can be swapped without
    touching the transitions. Each ``handle`` call returns the messages to
    send; sending is left to the caller and happens outside the session lock.
    """

    def __init__(
        self,
        store: SessionStore,
        source_options: Sequence[str],
        medium_options: Sequence[str],
        *,
        prefix: str = "utm_",
        source_row_width: int = 3,
        medium_row_width: int = 2,
        skip_keywords: Sequence[str] = DEFAULT_SKIP_KEYWORDS,
    ) -> None:
        self.store = store
        self.source_options = list(source_options)
        self.medium_options = list(medium_options)
        self.prefix = prefix
        self.source_row_width = source_row_width
        self.medium_row_width = medium_row_width
        self.skip_keywords = {fold_case(k) for k in skip_keywords}

    # ---------- global commands ----------
    def start(self, user_id: int, chat_id: int) -> List[Outbound]:
        self.store.create(user_id, chat_id)
        return [self._prompt(Step.AWAITING_SOURCE_URL, chat_id)]

    def cancel(self, user_id: int, chat_id: int) -> List[Outbound]:
        self.store.delete(user_id)
        logger.info("session cancelled user=%s", user_id)
        return [OutboundMessage(chat_id=chat_id, text=prompts.CANCELLED)]

    def has_session(self, user_id: int) -> bool:
        return self.store.get(user_id) is not None

    # ---------- input ----------
    def handle(self, user_id: int, chat_id: int, kind: EventKind, value: str) -> List[Outbound]:
        with self.store.locked(user_id):
            session = self.store.get(user_id)
            if session is None:
                logger.warning("no session user=%s kind=%s", user_id, kind.value)
                if kind is EventKind.SELECTION:
                    return [OutboundMessage(chat_id=chat_id, text=prompts.SESSION_NOT_FOUND)]
                return []

            handler = TRANSITIONS.get((session.step, kind))
            logger.info("input user=%s step=%s kind=%s accepted=%s",
                        user_id, session.step.value, kind.value, handler is not None)
            if handler is None:
                return [self._reject(session)]
            return handler(self, session, value)

    # ---------- transitions ----------
    def _on_source_url(self, session: Session, text: str) -> List[Outbound]:
        if not is_valid_source_url(text):
            return [OutboundMessage(chat_id=session.chat_id, text=prompts.INVALID_URL)]
        session.source_url = text.strip()
        session.advance(Step.AWAITING_SOURCE)
        return [self._prompt(session.step, session.chat_id)]

    def _on_source(self, session: Session, payload: str) -> List[Outbound]:
        if payload not in self.source_options:
            logger.warning("unknown source option user=%s payload=%r", session.user_id, payload)
            return [self._reject(session)]
        session.utm_source = payload
        session.advance(Step.AWAITING_MEDIUM)
        return [self._prompt(session.step, session.chat_id)]

    def _on_medium(self, session: Session, payload: str) -> List[Outbound]:
        if payload not in self.medium_options:
            logger.warning("unknown medium option user=%s payload=%r", session.user_id, payload)
            return [self._reject(session)]
        session.utm_medium = payload
        session.advance(Step.AWAITING_CAMPAIGN)
        return [self._prompt(session.step, session.chat_id)]

    def _on_campaign(self, session: Session, text: str) -> List[Outbound]:
        session.campaign = sanitize(text)
        session.advance(Step.AWAITING_CONTENT)
        return [self._prompt(session.step, session.chat_id)]

    def _on_content(self, session: Session, text: str) -> List[Outbound]:
        session.content = sanitize(text)
        session.advance(Step.AWAITING_TERM)
        return [self._prompt(session.step, session.chat_id)]

    def _on_term_text(self, session: Session, text: str) -> List[Outbound]:
        if text.strip() and fold_case(text.strip()) not in self.skip_keywords:
            session.term = sanitize(text)
        return self._finish(session)

    def _on_term_selection(self, session: Session, payload: str) -> List[Outbound]:
        if payload != prompts.SKIP_TERM_PAYLOAD:
            return [self._reject(session)]
        return self._finish(session)

    def _finish(self, session: Session) -> List[Outbound]:
        fields = TagFields(
            source=session.utm_source,
            medium=session.utm_medium,
            campaign=session.campaign,
            content=session.content,
            term=session.term,
        )
        # the session ends here either way; a broken URL cannot be fixed by retyping a later step
        self.store.delete(session.user_id)
        try:
            link = assemble(session.source_url, fields, prefix=self.prefix)
        except MalformedURLError:
            logger.exception("link assembly failed user=%s url=%r", session.user_id, session.source_url)
            return [OutboundMessage(chat_id=session.chat_id, text=prompts.ASSEMBLY_FAILED)]

        logger.info("link built user=%s link=%s", session.user_id, link)
        return [OutboundMessage(
            chat_id=session.chat_id,
            text=prompts.final_link(session, link, self.prefix),
            parse_mode="HTML",
            plain_text=prompts.final_link_plain(link),
        )]

    # ---------- prompts ----------
    def _options_for(self, step: Step) -> List[List[Option]]:
        if step is Step.AWAITING_SOURCE:
            return option_rows(self.source_options, self.source_row_width)
        if step is Step.AWAITING_MEDIUM:
            return option_rows(self.medium_options, self.medium_row_width)
        if step is Step.AWAITING_TERM:
            return [[Option(label=prompts.SKIP_TERM_LABEL, payload=prompts.SKIP_TERM_PAYLOAD)]]
        return []

    def _prompt(self, step: Step, chat_id: int) -> OutboundMessage:
        return OutboundMessage(
            chat_id=chat_id,
            text=STEP_PROMPTS[step],
            parse_mode="Markdown",
            options=self._options_for(step),
        )

    def _reject(self, session: Session) -> OutboundMessage:
        """Corrective hint for input the current step does not accept; state is left as is."""
        if session.step in SELECTION_STEPS:
            text = prompts.CHOOSE_FROM_OPTIONS
        else:
            text = prompts.TYPE_ANSWER
        return OutboundMessage(chat_id=session.chat_id, text=text, options=self._options_for(session.step))


STEP_PROMPTS: Dict[Step, str] = {
    Step.AWAITING_SOURCE_URL: prompts.ASK_SOURCE_URL,
    Step.AWAITING_SOURCE: prompts.ASK_SOURCE,
    Step.AWAITING_MEDIUM: prompts.ASK_MEDIUM,
    Step.AWAITING_CAMPAIGN: prompts.ASK_CAMPAIGN,
    Step.AWAITING_CONTENT: prompts.ASK_CONTENT,
    Step.AWAITING_TERM: prompts.ASK_TERM,
}

SELECTION_STEPS = (Step.AWAITING_SOURCE, Step.AWAITING_MEDIUM)

# (state, event kind) -> handler. Pairs not listed are rejected without mutation.
TRANSITIONS: Dict[Tuple[Step, EventKind], Handler] = {
    (Step.AWAITING_SOURCE_URL, EventKind.TEXT): LinkBuilder._on_source_url,
    (Step.AWAITING_SOURCE, EventKind.SELECTION): LinkBuilder._on_source,
    (Step.AWAITING_MEDIUM, EventKind.SELECTION): LinkBuilder._on_medium,
    (Step.AWAITING_CAMPAIGN, EventKind.TEXT): LinkBuilder._on_campaign,
    (Step.AWAITING_CONTENT, EventKind.TEXT): LinkBuilder._on_content,
    (Step.AWAITING_TERM, EventKind.TEXT): LinkBuilder._on_term_text,
    (Step.AWAITING_TERM, EventKind.SELECTION): LinkBuilder._on_term_selection,
}


def build_default(store: SessionStore, prefix: Optional[str] = None) -> LinkBuilder:
    """LinkBuilder wired to the configured option sets."""
    from utmbot.core import config

    return LinkBuilder(
        store,
        config.SOURCE_OPTIONS,
        config.MEDIUM_OPTIONS,
        prefix=config.UTM_PARAM_PREFIX if prefix is None else prefix,
        source_row_width=config.SOURCE_ROW_WIDTH,
        medium_row_width=config.MEDIUM_ROW_WIDTH,
    )
