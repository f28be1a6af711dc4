"""Tests for model validation and queryset helpers."""

import typing as t
from datetime import timedelta

import pytest
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone

from ticketing.models import Event, Ticket, TicketTier

pytestmark = pytest.mark.django_db


class TestEvent:
    def test_end_must_follow_start(self, organizer_id: str) -> None:
        now = timezone.now()

        with pytest.raises(DjangoValidationError) as exc_info:
            Event.objects.create(name="Backwards", start=now, end=now, organizer_id=organizer_id)

        assert "end" in exc_info.value.message_dict

    def test_has_ended_boundary(self, event: Event) -> None:
        assert event.has_ended(event.end) is False
        assert event.has_ended(event.end + timedelta(microseconds=1)) is True
        assert event.has_ended() is False

    def test_ended_queryset(self, event: Event, ongoing_event: Event) -> None:
        later = ongoing_event.end + timedelta(minutes=5)

        assert list(Event.objects.ended(later)) == [ongoing_event]
        assert not Event.objects.ended(ongoing_event.end).exists()

    def test_organized_by(self, event: Event, organizer_id: str) -> None:
        assert list(Event.objects.organized_by(organizer_id).active()) == [event]
        assert not Event.objects.organized_by("someone-else").exists()


class TestTicketTier:
    def test_sale_start_must_precede_end(self, event: Event) -> None:
        now = timezone.now()

        with pytest.raises(DjangoValidationError):
            TicketTier.objects.create(
                event=event, name="Instant", total_quantity=5, sales_start_at=now, sales_end_at=now
            )

    def test_sale_window_bounds_are_inclusive(self, event: Event) -> None:
        now = timezone.now()
        tier = TicketTier.objects.create(
            event=event,
            name="Window",
            total_quantity=5,
            sales_start_at=now + timedelta(hours=1),
            sales_end_at=now + timedelta(hours=2),
        )

        assert tier.is_on_sale(now) is False
        assert tier.is_on_sale(now + timedelta(hours=1)) is True
        assert tier.is_on_sale(now + timedelta(hours=2)) is True
        assert tier.is_on_sale(now + timedelta(hours=2, seconds=1)) is False
        assert list(TicketTier.objects.on_sale(now + timedelta(hours=2))) == [tier]

    def test_open_window_without_bounds(self, tier: TicketTier) -> None:
        assert tier.is_available() is True
        assert list(TicketTier.objects.available()) == [tier]

    def test_inactive_tier_is_not_on_sale(self, tier: TicketTier) -> None:
        tier.is_active = False
        tier.save()

        assert tier.is_on_sale() is False
        assert not TicketTier.objects.on_sale().exists()


class TestTicket:
    def test_tier_must_belong_to_the_event(
        self, tier: TicketTier, ongoing_event: Event, issue_ticket: t.Callable[..., Ticket]
    ) -> None:
        ticket = issue_ticket(ongoing_event)
        ticket.tier = tier

        with pytest.raises(DjangoValidationError) as exc_info:
            ticket.save()

        assert "tier" in exc_info.value.message_dict

    def test_admitted_statuses(self, event: Event, issue_ticket: t.Callable[..., Ticket]) -> None:
        active = issue_ticket(event)
        used = issue_ticket(event)
        cancelled = issue_ticket(event)
        Ticket.objects.filter(pk=used.pk).update(status=Ticket.TicketStatus.USED)
        Ticket.objects.filter(pk=cancelled.pk).update(status=Ticket.TicketStatus.CANCELLED)

        assert set(Ticket.objects.admitted()) == {active, used}

    def test_credential_image_is_not_kept_in_history(self, event: Event, issue_ticket: t.Callable[..., Ticket]) -> None:
        ticket = issue_ticket(event)

        latest = ticket.history.order_by("-history_id").first()
        assert latest is not None
        assert latest.credential_payload == ticket.credential_payload
        assert not hasattr(latest, "credential_image")
