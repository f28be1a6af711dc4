"""Inventory ledger for ticket tiers.

`TicketTier.quantity_sold` is the one contended counter of the system. It is
written only here, always inside a transaction holding the tier row lock, and
always through a guarded `F()` update so the database itself refuses to sell
past `total_quantity` even if the lock were bypassed.
"""

from uuid import UUID

import structlog
from django.db import transaction
from django.db.models import F
from django.db.models.functions import Greatest
from django.utils import timezone

from ticketing.exceptions import InsufficientInventoryError, NotFoundError, TierUnavailableError
from ticketing.models import TicketTier

logger = structlog.get_logger(__name__)


def _validate_quantity(quantity: int) -> None:
    if quantity < 1:
        raise ValueError("Quantity must be at least 1.")


@transaction.atomic
def reserve(tier_id: UUID, quantity: int) -> TicketTier:
    """Atomically take `quantity` units out of a tier.

    Either the whole quantity is reserved or nothing is.

    Args:
        tier_id: The tier to reserve from.
        quantity: Number of units, at least 1.

    Returns:
        The tier, refreshed after the reservation.

    Raises:
        NotFoundError: If the tier does not exist.
        TierUnavailableError: If the tier is inactive or outside its sale window.
        InsufficientInventoryError: If fewer than `quantity` units are left.
    """
    _validate_quantity(quantity)
    tier = TicketTier.objects.select_for_update().filter(pk=tier_id).first()
    if tier is None:
        raise NotFoundError("Ticket tier not found.")

    if not tier.is_on_sale(timezone.now()):
        raise TierUnavailableError()

    if tier.available_quantity < quantity:
        logger.info(
            "inventory_reservation_rejected",
            tier_id=str(tier_id),
            requested=quantity,
            available=tier.available_quantity,
        )
        raise InsufficientInventoryError(available=tier.available_quantity)

    # Compare-and-swap: only succeeds while the sale still fits.
    updated = TicketTier.objects.filter(
        pk=tier_id,
        quantity_sold__lte=F("total_quantity") - quantity,
    ).update(quantity_sold=F("quantity_sold") + quantity, updated_at=timezone.now())
    if updated == 0:
        tier.refresh_from_db(fields=["quantity_sold", "total_quantity"])
        raise InsufficientInventoryError(available=tier.available_quantity)

    tier.refresh_from_db()
    logger.info(
        "inventory_reserved",
        tier_id=str(tier_id),
        quantity=quantity,
        quantity_sold=tier.quantity_sold,
        total_quantity=tier.total_quantity,
    )
    return tier


@transaction.atomic
def release(tier_id: UUID, quantity: int) -> TicketTier | None:
    """Give `quantity` units back to a tier, never going below zero.

    The ledger does not track reservations: callers must release only what they reserved.

    Returns:
        The refreshed tier, or None if it no longer exists.
    """
    _validate_quantity(quantity)
    tier = TicketTier.objects.select_for_update().filter(pk=tier_id).first()
    if tier is None:
        logger.warning("inventory_release_missing_tier", tier_id=str(tier_id), quantity=quantity)
        return None

    TicketTier.objects.filter(pk=tier_id).update(
        quantity_sold=Greatest(F("quantity_sold") - quantity, 0), updated_at=timezone.now()
    )
    tier.refresh_from_db()
    logger.info("inventory_released", tier_id=str(tier_id), quantity=quantity, quantity_sold=tier.quantity_sold)
    return tier
