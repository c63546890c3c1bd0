"""Health, readiness and metrics endpoints for the operator."""

from __future__ import annotations

import json
import threading
from typing import Any

from prometheus_client import make_wsgi_app
from werkzeug.serving import BaseWSGIServer, make_server
from werkzeug.wrappers import Request, Response

from .logging import CONTROLLER_NAME

_ready = threading.Event()


def mark_ready() -> None:
    """Report the operator as ready to reconcile."""
    _ready.set()


def mark_not_ready() -> None:
    """Report the operator as not (or no longer) ready."""
    _ready.clear()


def is_ready() -> bool:
    return _ready.is_set()


def _json_response(body: dict[str, Any], status: int) -> Response:
    return Response(json.dumps(body, separators=(",", ":")), mimetype="application/json", status=status)


def create_combined_wsgi_app() -> Any:
    """Create a WSGI app serving /healthz, /readyz and, for every other path, Prometheus metrics.

    Returns:
        Combined WSGI application
    """
    metrics_app = make_wsgi_app()

    def combined_app(environ: dict[str, Any], start_response: Any) -> Any:
        path = Request(environ).path

        if path == "/healthz":
            response = _json_response({"status": "ok", "controller": CONTROLLER_NAME}, 200)
            return response(environ, start_response)
        if path == "/readyz":
            if is_ready():
                response = _json_response({"status": "ready"}, 200)
            else:
                response = _json_response({"status": "starting"}, 503)
            return response(environ, start_response)
        return metrics_app(environ, start_response)

    return combined_app


def start_health_server(port: int, host: str = "") -> BaseWSGIServer:
    """Serve the combined app from a daemon thread.

    Args:
        port: Port to listen on
        host: Interface to bind (all interfaces by default)

    Returns:
        The running server, so callers can shut it down
    """
    server = make_server(host, port, create_combined_wsgi_app(), threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server
