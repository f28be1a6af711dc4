"""
This conftest.py provides fixtures shared by all apps.
"""

import typing as t

import pytest


@pytest.fixture(autouse=True)
def enable_celery_eager_mode(settings: t.Any) -> None:
    """Enable Celery eager mode for tests so tasks execute synchronously.

    This ensures that Celery tasks run immediately in the same process,
    allowing tests to verify their side effects without a broker.
    """
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


@pytest.fixture(autouse=True)
def credential_secret(settings: t.Any) -> str:
    """Sign credentials with a known secret instead of one derived from SECRET_KEY."""
    settings.TICKET_CREDENTIAL_SECRET = "test-credential-secret"
    return t.cast(str, settings.TICKET_CREDENTIAL_SECRET)
