from uuid import UUID

import structlog
from django.db import transaction

from ticketing.exceptions import EventHasTicketsError, ForbiddenError, NotFoundError
from ticketing.models import Event

logger = structlog.get_logger(__name__)


def get_event(event_id: UUID | str) -> Event:
    event = Event.objects.filter(pk=event_id).first()
    if event is None:
        raise NotFoundError("Event not found.")
    return event


@transaction.atomic
def delete_event(event_id: UUID | str, requester_id: str) -> None:
    """Delete an event and its tiers. Events that issued tickets are kept; deactivate them instead."""
    event = Event.objects.select_for_update().filter(pk=event_id).first()
    if event is None:
        raise NotFoundError("Event not found.")
    if not event.is_organized_by(requester_id):
        raise ForbiddenError()
    if event.tickets.exists():
        raise EventHasTicketsError()
    event.delete()
    logger.info("event_deleted", event_id=str(event_id), requested_by=requester_id)
