from .event import Event
from .ticket import Ticket
from .tier import TicketTier

__all__ = [
    "Event",
    "Ticket",
    "TicketTier",
]
