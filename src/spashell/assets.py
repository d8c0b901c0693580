"""Static asset lookup for the output directory.

Resolves request paths to files under the output directory, infers their
content types and locates the shell template packaged with spashell.
"""

import mimetypes
from importlib.resources import files
from pathlib import Path

SHELL_TEMPLATE = "app.html"

# Explicit mappings take precedence over the platform mimetypes database,
# which maps .js to text/javascript on some systems.
CONTENT_TYPES = {
    ".html": "text/html",
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".css": "text/css",
    ".json": "application/json",
    ".map": "application/json",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
}

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def get_shell_template() -> str:
    """Return the packaged HTML shell template.

    Returns:
        Template text with ``$title``, ``$container_id`` and ``$bundle``
        placeholders.

    Raises:
        FileNotFoundError: If the template is not packaged.
    """
    template = files("spashell").joinpath("templates", SHELL_TEMPLATE)
    if not template.is_file():
        msg = f"Shell template not found in package: templates/{SHELL_TEMPLATE}"
        raise FileNotFoundError(msg)
    return template.read_text(encoding="utf-8")


def resolve_static_file(output_dir: Path, request_path: str) -> Path | None:
    """Map a request path to a regular file under the output directory.

    Args:
        output_dir: Directory holding the build output
        request_path: Decoded URL path, with or without a leading slash

    Returns:
        Absolute path of the file, or None when the path does not name a
        regular file inside ``output_dir``
    """
    relative = request_path.lstrip("/")
    if not relative:
        return None

    root = output_dir.resolve()
    try:
        candidate = (root / relative).resolve()
    except (OSError, ValueError):
        return None

    if not candidate.is_relative_to(root):
        return None
    if not candidate.is_file():
        return None
    return candidate


def content_type_for(path: Path) -> str:
    """Infer the Content-Type for a static file."""
    suffix = path.suffix.lower()
    if suffix in CONTENT_TYPES:
        return CONTENT_TYPES[suffix]

    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or DEFAULT_CONTENT_TYPE
