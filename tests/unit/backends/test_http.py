"""Unit tests for registry JSON lookups."""

from unittest.mock import MagicMock, patch

import requests
from pkgdeck.backends.http import REQUEST_TIMEOUT, USER_AGENT, fetch_json


def _response(status: int, payload: object = None) -> MagicMock:
    response = MagicMock(status_code=status)
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


class TestFetchJson:
    """Tests for fetch_json function."""

    def test_success(self) -> None:
        """A 200 response is decoded."""
        with patch("pkgdeck.backends.http.requests.get", return_value=_response(200, {"ok": True})) as mock_get:
            assert fetch_json("https://example.org/x", headers={"Accept": "application/json"}) == {"ok": True}

        mock_get.assert_called_once_with(
            "https://example.org/x",
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=REQUEST_TIMEOUT,
        )

    def test_non_200_returns_none(self) -> None:
        """Any other status is treated as missing."""
        with patch("pkgdeck.backends.http.requests.get", return_value=_response(404)):
            assert fetch_json("https://example.org/x") is None

    def test_network_error_returns_none(self) -> None:
        """Connection errors are not raised."""
        with patch("pkgdeck.backends.http.requests.get", side_effect=requests.ConnectionError("down")):
            assert fetch_json("https://example.org/x") is None

    def test_bad_json_returns_none(self) -> None:
        """A body that is not JSON yields None."""
        with patch("pkgdeck.backends.http.requests.get", return_value=_response(200, ValueError("bad"))):
            assert fetch_json("https://example.org/x") is None
