"""ORM models exposed by the sync engine."""
from .account import LinkedAccount
from .connection import CalendarConnection
from .event import Event
from .event_mapping import EventMapping

__all__ = ["LinkedAccount", "CalendarConnection", "Event", "EventMapping"]
