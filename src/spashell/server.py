"""aiohttp server for spashell.

Serves the build output directory and falls back to the shell document for
every path that is not a static file, so routing is left to the client.
"""

import logging

from aiohttp import web

from spashell.app_keys import output_dir_key, shell_path_key, watcher_key
from spashell.assets import content_type_for, resolve_static_file
from spashell.build import Bundler
from spashell.config import Config
from spashell.watch import RebuildWatcher

logger = logging.getLogger(__name__)


async def serve_path(request: web.Request) -> web.FileResponse:
    """Serve a static file, or the shell document when none matches.

    Static files take precedence; any other path, including ``/`` and
    client-side routes, receives the shell document.
    """
    path = request.match_info.get("path", "")
    static_file = resolve_static_file(request.app[output_dir_key], path)
    if static_file is not None:
        return web.FileResponse(
            static_file,
            headers={"Content-Type": content_type_for(static_file)},
        )

    logger.info(f"Serving {request.rel_url}")
    return web.FileResponse(
        request.app[shell_path_key],
        headers={"Content-Type": "text/html"},
    )


def create_app(config: Config) -> web.Application:
    """Create aiohttp application.

    Args:
        config: Application configuration

    Returns:
        Configured aiohttp application
    """
    app = web.Application()

    output_dir = config.build.output_dir.resolve()
    app[output_dir_key] = output_dir
    app[shell_path_key] = config.build.shell_path.resolve()

    if config.watch.enabled:
        app[watcher_key] = RebuildWatcher(Bundler(config.build))
        app.on_startup.append(_start_watcher)
        app.on_cleanup.append(_stop_watcher)

    # Single catch-all route: static lookup first, shell fallback second
    app.router.add_get("/{path:.*}", serve_path)

    return app


async def _start_watcher(app: web.Application) -> None:
    """Start the rebuild watcher on application startup."""
    await app[watcher_key].start()


async def _stop_watcher(app: web.Application) -> None:
    """Stop the rebuild watcher on application cleanup."""
    await app[watcher_key].stop()


def run_server(config: Config) -> None:
    """Run the server until interrupted.

    Args:
        config: Application configuration

    Raises:
        OSError: If the configured host and port cannot be bound
    """
    app = create_app(config)

    shell_path = app[shell_path_key]
    if not shell_path.is_file():
        logger.warning(
            f"Shell document {shell_path} not found, run 'spashell build' first",
        )

    port = config.server.port
    web.run_app(
        app,
        host=config.server.host,
        port=port,
        print=lambda _: logger.info(f"Listening on port {port}"),
    )
