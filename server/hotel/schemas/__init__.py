"""Pydantic schemas for request/response validation."""

from .auth import *  # noqa: F403
from .catalog import *  # noqa: F403
from .common import *  # noqa: F403
from .feedback import *  # noqa: F403
from .health import *  # noqa: F403
from .reservation import *  # noqa: F403
from .restaurant import *  # noqa: F403
