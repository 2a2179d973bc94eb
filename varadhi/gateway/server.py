"""
API gateway: combines the catalog and auth blueprints.
This is the entrypoint for development and deployment.
"""

import logging
import os
import signal
import sys
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv

from varadhi.auth_service.routes import auth_bp
from varadhi.catalog_service.routes import catalog_bp
from varadhi.database.db_connection import POOL_TIMEOUT, close_pool, create_pool
from varadhi.database.gateway import QueryGateway

load_dotenv()

# Basic console logging during API requests
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")


def create_app(gateway: Optional[QueryGateway] = None) -> Flask:
    """
    Application factory for creating the Flask app.

    Args:
        gateway (QueryGateway, optional): Store access shared by every route.
            The server entrypoint passes one built on the connection pool;
            tests pass a mock.

    Returns:
        Flask: The configured Flask application.
    """
    app = Flask(__name__)
    # Open CORS: the static frontend may be served from anywhere.
    CORS(app)

    app.extensions["varadhi.gateway"] = gateway

    # --- REGISTER BLUEPRINTS ---
    app.register_blueprint(catalog_bp, url_prefix="/api/services")
    app.register_blueprint(auth_bp, url_prefix="/api")
    logging.info("All blueprints registered successfully.")

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def ping():
        """
        Root URL for simple 'online' check.
        """
        return "Varadhi Services Backend API is running!", 200, {"Content-Type": "text/plain; charset=utf-8"}

    @app.route("/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok"}), 200

    return app


def handle_sigterm(signum, frame) -> None:
    """Close the pool and exit on SIGTERM."""
    logging.info("Received SIGTERM signal: closing connection pool...")
    try:
        close_pool()
    except Exception as e:
        logging.error(f"Failed to close connection pool gracefully: {e}")
        sys.exit(1)
    sys.exit(0)


def main() -> None:
    try:
        connection_pool = create_pool()
    except Exception as e:
        logging.error("FATAL ERROR: Could not create connection pool!")
        logging.error(f"   Details: {e}")
        logging.error("   Check if PostgreSQL is running and DATABASE_URL is correct.")
        sys.exit(1)

    signal.signal(signal.SIGTERM, handle_sigterm)

    app = create_app(QueryGateway(connection_pool))
    port = int(os.getenv("GATEWAY_PORT", 3000))
    logging.info(f"Backend server listening at http://localhost:{port} (pool timeout {POOL_TIMEOUT}s)")
    app.run(host="0.0.0.0", port=port, threaded=True)


if __name__ == "__main__":
    main()
