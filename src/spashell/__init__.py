"""spashell - static server and bundle driver for a single-page application."""

from spashell.server import create_app, run_server

__all__ = ["create_app", "run_server"]
