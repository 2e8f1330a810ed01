"""HTTP server for the render job API."""

from autoreel.server.app import create_app
from autoreel.server.lifecycle import ServerLifecycle

__all__ = ["ServerLifecycle", "create_app"]
