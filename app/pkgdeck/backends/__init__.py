"""Package manager backends.

This module exports the Backend interface, the source registry and the
provider probe.
"""

from pkgdeck.backends.base import (
    SEARCH_LIMIT,
    Backend,
    BackendCommandError,
    CommandFailedError,
    CommandSpawnError,
    UnsupportedOperationError,
)
from pkgdeck.backends.pkexec import AuthorizationError, extract_suggestion
from pkgdeck.backends.providers import detect_available_providers, detect_providers, probe_provider
from pkgdeck.backends.registry import BACKENDS, available_backends, create_backend

__all__ = [
    "BACKENDS",
    "SEARCH_LIMIT",
    "AuthorizationError",
    "Backend",
    "BackendCommandError",
    "CommandFailedError",
    "CommandSpawnError",
    "UnsupportedOperationError",
    "available_backends",
    "create_backend",
    "detect_available_providers",
    "detect_providers",
    "extract_suggestion",
    "probe_provider",
]
