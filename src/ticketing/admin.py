"""Admin classes for Event, TicketTier and Ticket."""

import typing as t

from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html
from simple_history.admin import SimpleHistoryAdmin
from unfold.admin import ModelAdmin, TabularInline

from ticketing import models


class EventLinkMixin:
    """Mixin to add a link to an event."""

    def event_link(self, obj: t.Any) -> str | None:
        if not getattr(obj, "event", None):
            return None
        url = reverse("admin:ticketing_event_change", args=[obj.event.id])
        return format_html('<a href="{}">{}</a>', url, obj.event.name)

    event_link.short_description = "Event"  # type: ignore[attr-defined]


class TicketTierInline(TabularInline):  # type: ignore[misc]
    model = models.TicketTier
    extra = 0
    fields = ["name", "price", "currency", "total_quantity", "quantity_sold", "is_active", "display_order"]
    readonly_fields = ["quantity_sold"]


@admin.register(models.Event)
class EventAdmin(ModelAdmin):  # type: ignore[misc]
    list_display = ["name", "start", "end", "organizer_id", "is_active", "max_capacity"]
    list_filter = ["is_active"]
    search_fields = ["name", "organizer_id"]
    date_hierarchy = "start"
    inlines = [TicketTierInline]


@admin.register(models.TicketTier)
class TicketTierAdmin(ModelAdmin, EventLinkMixin):  # type: ignore[misc]
    list_display = ["name", "event_link", "price", "currency", "sold_display", "is_active", "sales_end_at"]
    list_filter = ["is_active", "currency"]
    search_fields = ["name", "event__name"]
    autocomplete_fields = ["event"]
    readonly_fields = ["quantity_sold"]

    @admin.display(description="Sold")
    def sold_display(self, obj: models.TicketTier) -> str:
        return f"{obj.quantity_sold} / {obj.total_quantity}"


@admin.register(models.Ticket)
class TicketAdmin(SimpleHistoryAdmin, ModelAdmin, EventLinkMixin):  # type: ignore[misc]
    list_display = ["ticket_number", "event_link", "tier_name", "purchaser_name", "status", "used_at"]
    list_filter = ["status", "event__name"]
    search_fields = ["ticket_number", "purchaser_name", "purchaser_email", "purchaser_id", "event__name"]
    readonly_fields = [
        "id",
        "ticket_number",
        "status",
        "credential_preview",
        "credential_hash",
        "used_at",
        "scanned_by",
        "cancelled_at",
        "cancelled_by",
    ]
    exclude = ["credential_payload", "credential_image"]
    date_hierarchy = "purchase_date"
    history_list_display = ["status"]

    @admin.display(description="Tier")
    def tier_name(self, obj: models.Ticket) -> str:
        return obj.tier.name if obj.tier else "-"

    @admin.display(description="Credential")
    def credential_preview(self, obj: models.Ticket) -> str:
        if not obj.credential_image:
            return "-"
        return format_html('<img src="{}" width="160" height="160" />', obj.credential_image)
