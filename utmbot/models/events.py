# utmbot/models/events.py
from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class InboundMessage(BaseModel):
    user_id: int
    chat_id: int
    text: str = ""
    is_command: bool = False
    command_name: Optional[str] = None
    command_args: str = ""


class InboundSelection(BaseModel):
    user_id: int
    chat_id: int
    selection_id: str  # callback id, acknowledged by the transport
    payload: str       # exactly the option string that was offered


InboundEvent = Union[InboundMessage, InboundSelection]


class Option(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    payload: str


class OutboundMessage(BaseModel):
    chat_id: int
    text: str
    parse_mode: Optional[str] = None  # "HTML" | "Markdown" | None
    plain_text: Optional[str] = None  # sent instead of text if the markup is rejected
    options: List[List[Option]] = Field(default_factory=list)


class OutboundDocument(BaseModel):
    chat_id: int
    filename: str
    content: bytes
    caption: str = ""


Outbound = Union[OutboundMessage, OutboundDocument]


def option_rows(values: List[str], width: int) -> List[List[Option]]:
    """Group option identifiers into rows of ``width`` buttons (label == payload)."""
    width = max(1, width)
    buttons = [Option(label=v, payload=v) for v in values]
    return [buttons[i:i + width] for i in range(0, len(buttons), width)]
