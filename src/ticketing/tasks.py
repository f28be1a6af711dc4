"""Celery tasks for ticketing."""

from celery import shared_task

from ticketing.service import ticket_service


@shared_task(name="ticketing.expire_ended_event_tickets")
def expire_ended_event_tickets() -> int:
    """Expire unused tickets of events that are over.

    Safe to run periodically: tickets already in a terminal status are skipped.
    """
    return ticket_service.expire_tickets_for_ended_events()
