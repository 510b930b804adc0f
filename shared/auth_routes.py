"""OAuth routes: login redirect, callback, refresh, logout, status."""

import logging

from flask import Blueprint, current_app, jsonify, redirect, request, session

from shared.errors import AuthRequired, UpstreamAuthError

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _flow():
    return current_app.extensions["tunebridge.auth_flow"]


@auth_bp.route("/login", methods=["GET"])
def login():
    return redirect(_flow().login_url())


@auth_bp.route("/callback", methods=["GET"])
def callback():
    target = _flow().complete_login(session, request.args.get("code"), request.args.get("error"))
    if target == _flow().frontend_url:
        session.permanent = True
    return redirect(target)


@auth_bp.route("/refresh", methods=["GET"])
def refresh():
    try:
        return jsonify(_flow().refresh(session))
    except UpstreamAuthError as e:
        logger.error(f"Token refresh error: {e}")
        raise AuthRequired("Failed to refresh token") from e


@auth_bp.route("/logout", methods=["GET"])
def logout():
    _flow().logout(session)
    return jsonify({"message": "Logged out successfully"})


@auth_bp.route("/status", methods=["GET"])
def status():
    return jsonify(_flow().status(session))
