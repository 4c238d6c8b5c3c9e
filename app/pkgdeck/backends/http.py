"""JSON lookups against package registries.

Used by backends whose update checks or searches need the registry
(PyPI, crates.io, pub.dev) rather than the local tool.
"""

import logging
from typing import Any

import requests

from pkgdeck import __version__

logger = logging.getLogger(__name__)

USER_AGENT = f"pkgdeck/{__version__}"

# Registry requests give up after this many seconds
REQUEST_TIMEOUT = 15.0


def fetch_json(url: str, headers: dict[str, str] | None = None) -> Any | None:
    """GET a URL and decode its JSON body.

    Args:
        url: URL to fetch.
        headers: Extra request headers.

    Returns:
        Decoded JSON, or None on network errors, non-200 responses or bad JSON.
    """
    request_headers = {"User-Agent": USER_AGENT, **(headers or {})}
    try:
        response = requests.get(url, headers=request_headers, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        logger.debug("Request to %s failed: %s", url, e)
        return None

    if response.status_code != 200:
        logger.debug("Request to %s returned HTTP %d", url, response.status_code)
        return None

    try:
        return response.json()
    except ValueError as e:
        logger.debug("Response from %s is not JSON: %s", url, e)
        return None
