"""
Service catalog route handlers.

Provides routes for:
- Distinct service categories
- All listings
- Listings by category
- Multi-field search

The ServiceCatalog is built from the QueryGateway stored on the app, see
`varadhi.gateway.server.create_app`.
"""

import logging
from typing import Tuple

from flask import Blueprint, Response, current_app, jsonify, request

from varadhi.catalog_service.catalog import ServiceCatalog
from varadhi.common.errors import register_error_handlers

catalog_bp = Blueprint("catalog", __name__)
register_error_handlers(catalog_bp, message_key="error")


def get_catalog() -> ServiceCatalog:
    return ServiceCatalog(current_app.extensions["varadhi.gateway"])


# --- REQUEST LOGGING ---
@catalog_bp.before_request
def before_request() -> None:
    logging.info(f"[Catalog] Incoming {request.method} {request.full_path}")


@catalog_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Catalog] Response {response.status}")
    return response


@catalog_bp.route("/distinct", methods=["GET"])
def list_distinct() -> Tuple[Response, int]:
    """
    Distinct service categories in ascending order.

    Returns:
        200: JSON array of category strings.
        500: Database error.
    """
    return jsonify(get_catalog().list_distinct_categories()), 200


@catalog_bp.route("", methods=["GET"])
def list_services() -> Tuple[Response, int]:
    """
    Every listing, unfiltered.

    Returns:
        200: JSON array of listings.
        500: Database error.
    """
    return jsonify(get_catalog().list_all()), 200


@catalog_bp.route("/category/<path:category_name>", methods=["GET"])
def list_by_category(category_name: str) -> Tuple[Response, int]:
    """
    Listings whose SERVICE equals the category exactly.

    Returns:
        200: JSON array of listings, empty for an unknown category.
        500: Database error.
    """
    return jsonify(get_catalog().list_by_category(category_name)), 200


@catalog_bp.route("/search", methods=["GET"])
def search() -> Tuple[Response, int]:
    """
    Case-insensitive substring search over every listing field.

    Query params:
    - query (str): Search text. Required.

    Returns:
        200: JSON array of matching listings (possibly empty).
        400: Missing query parameter.
        500: Database error.
    """
    return jsonify(get_catalog().search(request.args.get("query"))), 200
