"""Flask application factory for the rdfscout backend API."""

from __future__ import annotations

import logging

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from rdfscout.backend.config import Config
from rdfscout.backend.log_config import configure_logging
from rdfscout.exceptions import InvalidInputError, QueryTimeoutError, UpstreamQueryError
from rdfscout.query import SparqlExecutor

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    """Register consistent JSON error handlers."""

    @app.errorhandler(400)
    def bad_request(exc):
        return jsonify({"error": str(exc.description)}), 400

    @app.errorhandler(404)
    def not_found(exc):
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(HTTPException)
    def http_error(exc):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(InvalidInputError)
    def invalid_input(exc):
        return jsonify({"error": "Invalid input", "details": str(exc)}), 400

    @app.errorhandler(QueryTimeoutError)
    def gateway_timeout(exc):
        logger.error("Timeout: %s", exc)
        return jsonify({"error": "SPARQL endpoint timeout", "details": str(exc)}), 504

    @app.errorhandler(UpstreamQueryError)
    def bad_gateway(exc):
        logger.error("Upstream failure: %s", exc)
        return jsonify({
            "error": "Upstream SPARQL endpoint error",
            "details": str(exc),
        }), 502

    @app.errorhandler(Exception)
    def unhandled(exc):
        logger.exception("Unhandled exception")
        return jsonify({"error": "Internal server error"}), 500


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application.

    Parameters
    ----------
    config_class:
        Configuration class (default :class:`Config`).

    Returns
    -------
    Flask
        Configured Flask application.
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app.config["LOG_LEVEL"], app.config["LOG_FILE"])

    # ── CORS ──────────────────────────────────────────────────────────
    CORS(app, resources={
        r"/api/*": {
            "origins": config_class.CORS_ORIGINS,
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "X-Sparql-Endpoint"],
        },
    })

    # ── Query executor ────────────────────────────────────────────────
    app.config.setdefault(
        "EXECUTOR",
        SparqlExecutor(
            timeout=float(app.config["SPARQL_TIMEOUT"]),
            max_retries=int(app.config["SPARQL_MAX_RETRIES"]),
        ),
    )

    # ── Blueprints ────────────────────────────────────────────────────
    from rdfscout.backend.routes.data import data_bp
    from rdfscout.backend.routes.sparql import sparql_bp

    app.register_blueprint(data_bp, url_prefix="/api/data")
    app.register_blueprint(sparql_bp, url_prefix="/api/sparql")

    # ── Error handlers ────────────────────────────────────────────────
    register_error_handlers(app)

    # ── Health check ──────────────────────────────────────────────────
    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok"})

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
