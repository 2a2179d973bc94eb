"""
HTTP client for the Varadhi backend.

Failures never raise to the caller: `fetch_data` returns None and shows the
error on the message banner, mirroring how the pages treat a failed fetch.
"""

import logging
import os
from typing import Any, Dict, Optional, Tuple

import requests
from dotenv import load_dotenv

from varadhi.client.messages import MessageBanner

load_dotenv()

BACKEND_URL = os.getenv("VARADHI_BACKEND_URL", "http://localhost:3000")
REQUEST_TIMEOUT = 10  # seconds


class HttpStatusError(Exception):
    """Non-2xx response from the backend."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"HTTP error! status: {status}, message: {message}")
        self.status = status
        self.server_message = message


def error_message(response: requests.Response) -> str:
    """Pull the server-provided message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return "Unknown error"
    if not isinstance(body, dict):
        return "Unknown error"
    return body.get("message") or body.get("error") or "Unknown error"


class ApiClient:
    def __init__(
        self,
        banner: MessageBanner,
        base_url: str = BACKEND_URL,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.banner = banner
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def fetch_data(self, endpoint: str, quiet: bool = False) -> Any:
        """
        GET `endpoint` and decode the JSON body.

        Args:
            endpoint (str): Path starting with "/", already URL-encoded.
            quiet (bool): Log failures without showing them on the banner.

        Returns:
            The decoded JSON, or None on any failure.
        """
        try:
            response = self.session.get(f"{self.base_url}{endpoint}", timeout=REQUEST_TIMEOUT)
            if not response.ok:
                raise HttpStatusError(response.status_code, error_message(response))
            data = response.json()
        except (requests.RequestException, HttpStatusError, ValueError) as e:
            logging.error(f"[Client] Error fetching data from {endpoint}: {e}")
            if not quiet:
                self.banner.show(str(e), "error")
            return None
        logging.info(f"[Client] Data fetched for {endpoint}")
        return data

    def post_json(self, endpoint: str, payload: Dict[str, Any]) -> Tuple[bool, Dict[str, Any]]:
        """
        POST a JSON payload.

        Returns:
            tuple: (ok, body). `body` is {} when the response was not JSON or
            the request never completed.
        """
        try:
            response = self.session.post(f"{self.base_url}{endpoint}", json=payload, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            logging.error(f"[Client] Error posting to {endpoint}: {e}")
            return False, {}
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        return response.ok, body
