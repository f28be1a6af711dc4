"""Messages shown to door staff when scanning tickets."""

from enum import StrEnum

from django.utils.translation import gettext_noop


class ScanMessages(StrEnum):
    """Scan outcome messages.

    Note: Strings are marked with _noop() for translation extraction.
    The actual translation happens in gates.py and service.py when using _(ScanMessages.XXX).
    """

    INVALID_QR_CODE = gettext_noop("Invalid QR code")
    TICKET_NOT_FOUND = gettext_noop("Ticket not found")
    WRONG_EVENT = gettext_noop("Ticket is not valid for this event")
    ALREADY_USED = gettext_noop("Ticket has already been used (first scanned at {used_at})")
    CANCELLED = gettext_noop("Ticket has been cancelled")
    EXPIRED = gettext_noop("Ticket has expired")
    EVENT_ENDED = gettext_noop("Event has ended")
    VALIDATED = gettext_noop("Ticket successfully validated")
