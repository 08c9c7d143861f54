"""Web adapters: HTTP API, live connections and presence."""

from coach_realtime.adapters.web.app import create_app

__all__ = ["create_app"]
