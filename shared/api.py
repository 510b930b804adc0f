"""
Tunebridge API server.
Proxies a fixed set of Spotify Web API calls behind a cookie session.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from flask import Flask, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from shared.auth_flow import AuthFlowController
from shared.auth_routes import auth_bp
from shared.config import AppConfig
from shared.constants import SESSION_COOKIE_NAME, SESSION_MAX_AGE_SEC
from shared.errors import ApiError, NotFound
from shared.logging_setup import configure_logging
from shared.proxy_routes import api_bp

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[AppConfig] = None,
    auth: Any = None,
    client_factory: Optional[Callable[[str], Any]] = None,
    clock: Callable[[], float] = time.time,
) -> Flask:
    """
    Build the Flask app.

    `auth` and `client_factory` default to the real Spotify implementations;
    tests hand in fakes.
    """
    config = config or AppConfig.from_env()

    if auth is None or client_factory is None:
        from upstream import SpotifyAuth, SpotifyClient
        auth = auth or SpotifyAuth(config)
        client_factory = client_factory or (
            lambda token: SpotifyClient(token, timeout=config.upstream_timeout)
        )

    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=config.session_secret,
        SESSION_COOKIE_NAME=SESSION_COOKIE_NAME,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        SESSION_COOKIE_SECURE=config.is_production,
        PERMANENT_SESSION_LIFETIME=timedelta(seconds=SESSION_MAX_AGE_SEC),
    )
    app.extensions["tunebridge.config"] = config
    app.extensions["tunebridge.auth_flow"] = AuthFlowController(
        auth, client_factory, frontend_url=config.frontend_url, clock=clock
    )

    CORS(
        app,
        origins=config.cors_origins,
        supports_credentials=True,
        methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    _register_request_log(app)
    _register_error_handlers(app)

    @app.route("/health")
    def health_check():
        return jsonify({"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()})

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)
    return app


def _register_request_log(app: Flask) -> None:
    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        started = g.get("request_started")
        duration_ms = int((time.perf_counter() - started) * 1000) if started else 0
        logger.info(f"{request.method} {request.path} - {response.status_code} - {duration_ms}ms")
        return response


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def _handle_api_error(e: ApiError):
        if e.status_code >= 500:
            logger.error(f"{request.method} {request.path}: {e.message}", exc_info=e.__cause__ or e)
        else:
            logger.warning(f"{request.method} {request.path}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def _handle_not_found(e):
        return jsonify(NotFound().to_dict()), 404

    @app.errorhandler(405)
    def _handle_method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(Exception)
    def _handle_unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description}), e.code
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return jsonify({"error": "Internal server error"}), 500


# --- Server Management ---

def start_api(config: Optional[AppConfig] = None, debug: bool = False) -> None:
    config = config or AppConfig.from_env()
    configure_logging(config.log_level)

    creds = config.check_credentials()
    if not creds["ok"]:
        logger.warning(creds["message"])
    for warning in creds["warnings"]:
        logger.warning(warning)

    app = create_app(config)
    logger.info(f"Server running on port {config.port}")
    logger.info(f"Health check: http://localhost:{config.port}/health")
    logger.info(f"Auth endpoint: http://localhost:{config.port}/auth/login")
    logger.info(f"API base: http://localhost:{config.port}/api")
    app.run(host="0.0.0.0", port=config.port, debug=debug)


def main() -> None:
    start_api()


if __name__ == '__main__':
    main()
