import secrets
import string
import typing as t
from datetime import timedelta
from decimal import Decimal

import faker
import pytest
from django.utils import timezone

from ticketing.models import Event, Ticket, TicketTier
from ticketing.service.credential_service import CredentialCodec
from ticketing.service.purchase_service import PurchaseService

ORGANIZER_ID = "organizer-1"


class PurchaserFactory:
    """Factory for purchaser identities, as handed over by the authentication layer."""

    fake = faker.Faker()

    def create_purchaser(self, **kwargs: t.Any) -> dict[str, str]:
        purchaser_id = kwargs.pop("purchaser_id", "user-" + "".join(secrets.choice(string.digits) for _ in range(8)))
        return {
            "purchaser_id": purchaser_id,
            "purchaser_name": kwargs.pop("purchaser_name", f"{self.fake.first_name()} {self.fake.last_name()}"),
            "purchaser_email": kwargs.pop("purchaser_email", f"{purchaser_id}@example.com"),
        }

    def __call__(self, **kwargs: t.Any) -> dict[str, str]:
        return self.create_purchaser(**kwargs)


@pytest.fixture
def purchaser_factory() -> PurchaserFactory:
    return PurchaserFactory()


@pytest.fixture
def purchaser(purchaser_factory: PurchaserFactory) -> dict[str, str]:
    """Keyword arguments identifying a purchaser."""
    return purchaser_factory()


@pytest.fixture
def organizer_id() -> str:
    return ORGANIZER_ID


@pytest.fixture
def event() -> Event:
    now = timezone.now()
    return Event.objects.create(
        name="Test Event",
        start=now + timedelta(days=7),
        end=now + timedelta(days=7, hours=4),
        organizer_id=ORGANIZER_ID,
        ticket_price=Decimal("20.00"),
        currency="EUR",
    )


@pytest.fixture
def ongoing_event() -> Event:
    """An event whose doors are open right now."""
    now = timezone.now()
    return Event.objects.create(
        name="Ongoing Event",
        start=now - timedelta(hours=1),
        end=now + timedelta(hours=3),
        organizer_id=ORGANIZER_ID,
        ticket_price=Decimal("15.00"),
    )


@pytest.fixture
def tier(event: Event) -> TicketTier:
    return TicketTier.objects.create(
        event=event,
        name="General Admission",
        price=Decimal("50.00"),
        currency="EUR",
        total_quantity=100,
    )


@pytest.fixture
def codec() -> CredentialCodec:
    return CredentialCodec()


@pytest.fixture
def issue_ticket(codec: CredentialCodec, purchaser: dict[str, str]) -> t.Callable[..., Ticket]:
    """Purchase a single ticket through the real purchase flow."""

    def _issue(event: Event, tier: TicketTier | None = None, **kwargs: t.Any) -> Ticket:
        identity = {**purchaser, **kwargs}
        result = PurchaseService(event.id, tier_id=tier.id if tier else None, codec=codec).purchase(**identity)
        return result.tickets[0]

    return _issue
