"""Application keys for type-safe app configuration access."""

from pathlib import Path

from aiohttp import web

from spashell.watch import RebuildWatcher

output_dir_key = web.AppKey("output_dir", Path)
shell_path_key = web.AppKey("shell_path", Path)
watcher_key = web.AppKey("watcher", RebuildWatcher)
