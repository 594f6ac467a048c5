"""
API gateway: combines the auth, users, events, products and dashboard
blueprints behind a single Flask app.
This is the local entrypoint for development.
"""

import atexit
import logging
from typing import Any, Dict, Optional

from flask import Flask, jsonify
from flask_cors import CORS

from clubhouse.auth_service.routes import auth_bp
from clubhouse.auth_service.utils import authenticate_request
from clubhouse.config import load_config
from clubhouse.dashboard_service.routes import dashboard_bp
from clubhouse.database.db_connection import EXTENSION_KEY, Database
from clubhouse.errors import register_error_handlers
from clubhouse.events_service.routes import events_bp
from clubhouse.products_service.routes import products_bp
from clubhouse.users_service.routes import users_bp

# Basic console logging during API requests
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")


def create_app(config: Optional[Dict[str, Any]] = None, database: Optional[Database] = None) -> Flask:
    """
    Application factory for creating the Flask app.

    Args:
        config (dict, optional): Settings to use instead of load_config().
        database (Database, optional): An already constructed handle. When
            omitted, one is built from DATABASE_URL, opened now and closed
            at interpreter exit.

    Returns:
        Flask: The configured Flask application.

    Raises:
        RuntimeError: If mandatory configuration is missing.
    """
    app = Flask(__name__)
    app.config.update(config if config is not None else load_config())

    CORS(app, resources={
        r"/api/*": {
            "origins": app.config.get("CORS_ORIGINS", []),
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
        }
    })

    if database is None:
        database = Database(
            app.config["DATABASE_URL"],
            minconn=app.config.get("DB_POOL_MIN", 1),
            maxconn=app.config.get("DB_POOL_MAX", 10),
        )
        database.open()
        atexit.register(database.close)
    app.extensions[EXTENSION_KEY] = database

    if not app.config.get("ADMIN_ONLY_MUTATIONS", False):
        logging.warning(
            "ADMIN_ONLY_MUTATIONS is off: any authenticated user may create, "
            "update or delete users, events and products."
        )

    # --- ACCESS GUARD ---
    app.before_request(authenticate_request)
    register_error_handlers(app)

    # --- REGISTER BLUEPRINTS ---
    app.register_blueprint(auth_bp, url_prefix="/api")
    app.register_blueprint(users_bp, url_prefix="/api/users")
    app.register_blueprint(events_bp, url_prefix="/api/events")
    app.register_blueprint(products_bp, url_prefix="/api/products")
    app.register_blueprint(dashboard_bp, url_prefix="/api")
    logging.info("All blueprints registered successfully.")

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def ping():
        """
        Root URL for simple 'online' check.
        """
        return jsonify({"status": "gateway_ok"}), 200

    @app.route("/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok"}), 200

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=app.config["PORT"], debug=False)
