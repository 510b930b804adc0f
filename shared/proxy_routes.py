"""
Proxy routes under /api.

Each route maps 1:1 onto an upstream client call. The only logic here is
parameter validation and the session gate; errors bubble up to the
handlers registered in shared.api.
"""

from functools import wraps

from flask import Blueprint, current_app, g, jsonify, request, session

from shared.constants import MAX_RECOMMENDATION_LIMIT
from shared.validation import (
    parse_limit,
    parse_search_query,
    parse_seed_tracks,
    validate_id,
)

api_bp = Blueprint("api", __name__, url_prefix="/api")


def requires_session(view):
    """Reject the call with 401 unless the session holds a live token."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        flow = current_app.extensions["tunebridge.auth_flow"]
        data = flow.authorize(session)
        g.spotify = flow.client_for(data)
        return view(*args, **kwargs)
    return wrapper


@api_bp.route("/me", methods=["GET"])
@requires_session
def me():
    return jsonify(g.spotify.current_user())


@api_bp.route("/search", methods=["GET"])
@requires_session
def search():
    params = parse_search_query(request.args)
    return jsonify(g.spotify.search(
        params["query"], params["types"], limit=params["limit"], offset=params["offset"]
    ))


@api_bp.route("/tracks/<track_id>", methods=["GET"])
@requires_session
def get_track(track_id):
    return jsonify(g.spotify.get_track(validate_id(track_id, "Track")))


@api_bp.route("/albums/<album_id>", methods=["GET"])
@requires_session
def get_album(album_id):
    return jsonify(g.spotify.get_album(validate_id(album_id, "Album")))


@api_bp.route("/artists/<artist_id>", methods=["GET"])
@requires_session
def get_artist(artist_id):
    return jsonify(g.spotify.get_artist(validate_id(artist_id, "Artist")))


@api_bp.route("/recently-played", methods=["GET"])
@requires_session
def recently_played():
    return jsonify(g.spotify.recently_played(limit=parse_limit(request.args)))


@api_bp.route("/top-tracks", methods=["GET"])
@requires_session
def top_tracks():
    return jsonify(g.spotify.top_tracks(limit=parse_limit(request.args)))


@api_bp.route("/recommendations", methods=["GET"])
@requires_session
def recommendations():
    seeds = parse_seed_tracks(request.args.get("seed_tracks"))
    limit = parse_limit(request.args, maximum=MAX_RECOMMENDATION_LIMIT)
    return jsonify(g.spotify.recommendations(seeds, limit=limit))


@api_bp.route("/tracks/<track_id>/save", methods=["GET"])
@api_bp.route("/tracks/<track_id>/saved", methods=["GET"])
@requires_session
def check_saved_track(track_id):
    saved = g.spotify.check_saved_track(validate_id(track_id, "Track"))
    return jsonify({"saved": bool(saved and saved[0])})


@api_bp.route("/tracks/<track_id>/save", methods=["PUT"])
@requires_session
def save_track(track_id):
    g.spotify.save_track(validate_id(track_id, "Track"))
    return jsonify({"message": "Track saved successfully"})


@api_bp.route("/tracks/<track_id>/save", methods=["DELETE"])
@requires_session
def remove_track(track_id):
    g.spotify.remove_track(validate_id(track_id, "Track"))
    return jsonify({"message": "Track removed successfully"})
