"""Shared test fixtures."""

from pathlib import Path

import pytest
from spashell.config import BuildConfig, Config, ServerConfig, WatchConfig

SHELL_HTML = (
    '<!DOCTYPE html><html><body><div id="container"></div>'
    '<script src="/app.bundle.js"></script></body></html>'
)
BUNDLE_JS = "(function(){console.log('bundle');})();\n"


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create a frontend project layout with an entry module."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "index.js").write_text("import App from './components/app';\n")
    return tmp_path


@pytest.fixture
def test_config(project_dir: Path) -> Config:
    """Create a test configuration rooted at project_dir."""
    return Config(
        server=ServerConfig(host="127.0.0.1"),
        build=BuildConfig(
            entry=project_dir / "src" / "index.js",
            output_dir=project_dir / "dist",
            public_dir=project_dir / "public",
            working_dir=project_dir,
        ),
        watch=WatchConfig(enabled=False),
    )


@pytest.fixture
def output_dir(test_config: Config) -> Path:
    """Populate the output directory with a shell, a bundle and an asset."""
    dist = test_config.build.output_dir
    (dist / "images").mkdir(parents=True)
    (dist / "app.html").write_text(SHELL_HTML)
    (dist / "app.bundle.js").write_text(BUNDLE_JS)
    (dist / "images" / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x01")
    return dist
