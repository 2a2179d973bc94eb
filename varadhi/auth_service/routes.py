"""
Authentication service route handlers.

Provides routes for:
- User registration
- User login

Login is stateless: a successful login returns the username and id and
nothing else (no token, no cookie).
"""

import logging
from typing import Tuple

from flask import Blueprint, Response, current_app, jsonify, request

from varadhi.auth_service.accounts import AccountService
from varadhi.auth_service.schemas import LoginRequest, RegisterRequest, parse_payload
from varadhi.common.errors import register_error_handlers

auth_bp = Blueprint("auth", __name__)
register_error_handlers(auth_bp, message_key="message")


def get_accounts() -> AccountService:
    return AccountService(current_app.extensions["varadhi.gateway"])


# --- REQUEST LOGGING ---
@auth_bp.before_request
def before_request() -> None:
    # Headers and bodies are not logged: bodies carry passwords.
    logging.info(f"[Auth] Incoming {request.method} {request.path}")


@auth_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Auth] Response {response.status}")
    return response


# --- REGISTER ---
@auth_bp.route("/register", methods=["POST"])
def register() -> Tuple[Response, int]:
    """
    Register a new user.

    Expects a JSON body with:
    - username (str)
    - email (str)
    - password (str)
    - mobileNumber (str, optional)

    Returns:
        201: JSON message.
        400: Missing or malformed fields.
        409: Username or email already exists.
        500: Hashing or database error.
    """
    req = parse_payload(
        RegisterRequest,
        request.get_json(silent=True),
        "Username, email, and password are required.",
    )
    result = get_accounts().register(req)
    return jsonify(result.model_dump()), 201


# --- LOGIN ---
@auth_bp.route("/login", methods=["POST"])
def login() -> Tuple[Response, int]:
    """
    Check credentials.

    Expects a JSON body with:
    - username (str)
    - password (str)

    Returns:
        200: JSON with message, username and userId.
        400: Missing credentials.
        401: Invalid username or password.
        500: Database error.
    """
    req = parse_payload(
        LoginRequest,
        request.get_json(silent=True),
        "Username and password are required.",
    )
    result = get_accounts().login(req)
    return jsonify(result.model_dump(by_alias=True)), 200
