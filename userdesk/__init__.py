"""Form-driven client for a users REST API."""

from __future__ import annotations

from typing import Any

from .api_client import APIConnectionError, APIError, UserDeskError, UsersAPIClient
from .cache import QueryCache
from .config import ClientConfig, ServerConfig, Settings, load_settings
from .forms import Editing, FormController, FormValidationError, Idle, build_user_form
from .models import UserRecord
from .sync import UserSync


def create_server_app(*args: Any, **kwargs: Any):
    """Factory function that returns the development users API."""

    from .server import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "APIConnectionError",
    "APIError",
    "ClientConfig",
    "Editing",
    "FormController",
    "FormValidationError",
    "Idle",
    "QueryCache",
    "ServerConfig",
    "Settings",
    "UserDeskError",
    "UserRecord",
    "UserSync",
    "UsersAPIClient",
    "build_user_form",
    "create_server_app",
    "load_settings",
]
