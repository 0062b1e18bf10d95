"""Flask app that serves a staged web bundle to LAN clients.

Routes:
  GET /            -> entry file (index.html)
  GET /<path>      -> staged file, else entry file (SPA fallback), else 404
  OPTIONS /<path>  -> CORS preflight
  other methods    -> handled like GET

Paths with a ``..`` segment are refused with 403 before touching the disk.
"""
from flask import Flask, Response, request
from pathlib import Path
from werkzeug.security import safe_join
import logging
import os

logger = logging.getLogger(__name__)

MIME_TYPES = {
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".wasm": "application/wasm",
}

# Methods answered like GET; anything else goes through the 405 handler below.
ROUTED_METHODS = ["GET", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "*",
}


def mime_type_for(path):
    return MIME_TYPES.get(os.path.splitext(str(path))[1].lower(), "application/octet-stream")


def is_traversal(path):
    """True when any segment of the request path is a parent-directory reference."""
    return ".." in path.replace("\\", "/").split("/")


def _respond(body, status=200, content_type="text/plain"):
    return Response(body, status=status, headers=CORS_HEADERS, content_type=content_type)


def create_app(web_root, entry_file="index.html"):
    """Build the router for one staged directory."""
    app = Flask(__name__, static_folder=None)
    app.config["WEB_ROOT"] = str(Path(web_root))
    app.config["ENTRY_FILE"] = entry_file

    @app.route("/", defaults={"path": ""}, methods=ROUTED_METHODS)
    @app.route("/<path:path>", methods=ROUTED_METHODS)
    def serve_asset(path):
        try:
            return _route(app, request.method, path)
        except Exception:
            logger.exception("Error handling request: /%s", path)
            return _respond("Internal server error", status=500)

    @app.errorhandler(405)
    def other_method(error):
        return serve_asset(request.path.lstrip("/"))

    return app


def _route(app, method, path):
    root = app.config["WEB_ROOT"]
    entry = app.config["ENTRY_FILE"]
    if not path:
        path = entry

    if is_traversal(path):
        return Response(status=403)
    target = safe_join(root, path)
    if target is None:
        return Response(status=403)

    if method == "OPTIONS":
        return _respond(b"", status=204)

    if os.path.isfile(target):
        with open(target, "rb") as f:
            return _respond(f.read(), content_type=mime_type_for(target))

    # client-side routes resolve to the entry file
    index = os.path.join(root, entry)
    if os.path.isfile(index):
        with open(index, "rb") as f:
            return _respond(f.read(), content_type="text/html")

    return _respond(f"File not found: /{path}", status=404)
