"""Pydantic schemas for request/response validation."""

from .booking import *  # noqa: F403
from .common import *  # noqa: F403
from .customer import *  # noqa: F403
from .dashboard import *  # noqa: F403
from .tour import *  # noqa: F403
