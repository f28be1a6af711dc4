"""Django Unfold admin configuration."""

from django.urls import reverse_lazy
from django.utils.translation import gettext_lazy as _

from .base import VERSION

UNFOLD = {
    "SITE_TITLE": f"Turnstile v{VERSION} Admin",
    "SITE_HEADER": f"Turnstile v{VERSION} Administration",
    "SITE_URL": "/",
    "SHOW_HISTORY": True,
    "SHOW_VIEW_ON_SITE": False,
    "SIDEBAR": {
        "show_search": True,
        "show_all_applications": False,
        "navigation": [
            {
                "title": _("Ticketing"),
                "separator": True,
                "collapsible": False,
                "items": [
                    {
                        "title": _("Events"),
                        "icon": "event",
                        "link": reverse_lazy("admin:ticketing_event_changelist"),
                    },
                    {
                        "title": _("Ticket Tiers"),
                        "icon": "sell",
                        "link": reverse_lazy("admin:ticketing_tickettier_changelist"),
                    },
                    {
                        "title": _("Tickets"),
                        "icon": "confirmation_number",
                        "link": reverse_lazy("admin:ticketing_ticket_changelist"),
                    },
                ],
            },
        ],
    },
}
