from .base import *  # noqa: F403
from .celery import *  # noqa: F403
from .observability import *  # noqa: F403
from .ticketing import *  # noqa: F403
from .unfold import *  # noqa: F403
