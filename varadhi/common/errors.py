"""
API error taxonomy shared by every blueprint.

Each error carries the HTTP status it maps to. Blueprints register
`register_error_handlers` so that raising one of these from a route (or the
service it calls) produces a JSON body and the right status code.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from flask import Blueprint, Response, jsonify


class ApiError(Exception):
    """Base class for errors surfaced to HTTP clients."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self, message_key: str = "error") -> Dict[str, Any]:
        body: Dict[str, Any] = {message_key: self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ApiError):
    """Client omitted required input or sent a malformed payload."""

    status_code = 400


class UnauthorizedError(ApiError):
    """Credentials did not match an account."""

    status_code = 401


class ConflictError(ApiError):
    """Account identity already taken."""

    status_code = 409


class StoreError(ApiError):
    """Connectivity or query failure in the data store."""

    status_code = 500


def register_error_handlers(bp: Blueprint, message_key: str = "error") -> None:
    """
    Attach an `ApiError` handler to a blueprint.

    Args:
        bp (Blueprint): The blueprint whose routes raise `ApiError`.
        message_key (str): JSON key holding the human-readable message.
            The catalog routes use "error", the account routes "message".
    """

    @bp.errorhandler(ApiError)
    def handle_api_error(err: ApiError) -> Tuple[Response, int]:
        if err.status_code >= 500:
            logging.error(f"[{bp.name}] {err.message}: {err.details}")
        return jsonify(err.to_body(message_key)), err.status_code
