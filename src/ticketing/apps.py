from django.apps import AppConfig


class TicketingConfig(AppConfig):
    """Configuration for the ticketing app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "ticketing"
