"""FastAPI dependencies for injection."""
from core.auth import (
    get_current_session,
    get_optional_session,
    get_publisher_session,
)
from core.config import get_settings
from db.session import get_async_session

__all__ = [
    "get_async_session",
    "get_current_session",
    "get_optional_session",
    "get_publisher_session",
    "get_settings",
]
