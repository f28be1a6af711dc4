from decouple import config

DEFAULT_CURRENCY = config("DEFAULT_CURRENCY", default="EUR")

# Secret for credential integrity tags. Provisioned out-of-band; when unset, a key is derived from SECRET_KEY.
TICKET_CREDENTIAL_SECRET = config("TICKET_CREDENTIAL_SECRET", default="")
# Credentials older than this are rejected at the door. Holders can have theirs re-issued.
TICKET_CREDENTIAL_MAX_AGE_HOURS = config("TICKET_CREDENTIAL_MAX_AGE_HOURS", default=24, cast=int)

TICKET_QR_BOX_SIZE = config("TICKET_QR_BOX_SIZE", default=10, cast=int)
TICKET_QR_BORDER = config("TICKET_QR_BORDER", default=4, cast=int)

TICKET_EXPIRY_SWEEP_MINUTES = config("TICKET_EXPIRY_SWEEP_MINUTES", default=15, cast=int)
