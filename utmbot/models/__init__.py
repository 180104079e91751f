# Make `from utmbot.models import Order, InboundMessage, ...` work
from .orm import Order  # re-export
from .events import (  # re-export
    InboundEvent,
    InboundMessage,
    InboundSelection,
    Option,
    Outbound,
    OutboundDocument,
    OutboundMessage,
)
