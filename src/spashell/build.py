"""Bundle build driver.

Renders the declarative build configuration into a webpack configuration,
runs the external bundler into a staging directory and swaps the result
into the output directory once the whole artifact set is in place::

    dist/
    ├── app.html          # Shell document
    ├── app.bundle.js     # Bundled entry module
    └── ...               # Files copied from the public directory
"""

import html
import json
import logging
import shutil
import subprocess
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from string import Template

from spashell.assets import get_shell_template
from spashell.config import BuildConfig, TransformRule

logger = logging.getLogger(__name__)

CONTAINER_ID = "container"


class BuildError(Exception):
    """Raised when the bundler fails to produce the artifact set."""

    def __init__(self, message: str, diagnostic: str = "") -> None:
        super().__init__(message)
        self.diagnostic = diagnostic


@dataclass
class BuildResult:
    """Outcome of a successful build."""

    output_dir: Path
    files: list[Path] = field(default_factory=list)


def _js_regex(pattern: str) -> str:
    """Render a Python regex pattern as a JavaScript regex literal."""
    return "/" + pattern.replace("/", "\\/") + "/"


def _render_rule(rule: TransformRule) -> str:
    exclude = ", ".join(_js_regex(pattern) for pattern in rule.exclude)
    options = json.dumps({"presets": list(rule.presets)})
    return (
        "            {\n"
        f"                test: {_js_regex(rule.test)},\n"
        f"                exclude: [{exclude}],\n"
        f"                use: [{{ loader: {json.dumps(rule.loader)}, "
        f"options: {options} }}],\n"
        "            }"
    )


def render_webpack_config(config: BuildConfig, output_dir: Path) -> str:
    """Render a webpack configuration module for a build.

    Args:
        config: Build configuration
        output_dir: Directory the bundle is written to

    Returns:
        JavaScript source of the configuration module
    """
    working_dir = config.working_dir.resolve()
    rules = ",\n".join(_render_rule(rule) for rule in config.rules)
    return (
        "module.exports = {\n"
        f"    context: {json.dumps(str(working_dir))},\n"
        f"    entry: {json.dumps(str(config.entry.resolve()))},\n"
        "    output: {\n"
        f"        path: {json.dumps(str(output_dir.resolve()))},\n"
        f"        filename: {json.dumps(config.filename)},\n"
        "    },\n"
        "    resolveLoader: {\n"
        f"        modules: [{json.dumps(str(working_dir / 'node_modules'))}, "
        '"node_modules"],\n'
        "    },\n"
        "    module: {\n"
        "        rules: [\n"
        f"{rules}\n"
        "        ],\n"
        "    },\n"
        "};\n"
    )


def render_shell(config: BuildConfig) -> str:
    """Render the HTML shell document that loads the bundle."""
    template = Template(get_shell_template())
    return template.substitute(
        title=html.escape(config.title),
        container_id=CONTAINER_ID,
        bundle=html.escape(config.filename),
    )


class Bundler:
    """Produces the output artifact set from the entry module.

    The previous output directory is replaced only after the bundler,
    public assets and shell document have all been written successfully.
    """

    def __init__(self, config: BuildConfig) -> None:
        self._config = config

    @property
    def config(self) -> BuildConfig:
        """Build configuration."""
        return self._config

    def is_transformed(self, path: Path) -> bool:
        """Check whether any transform rule applies to a source file."""
        return any(rule.matches(path) for rule in self._config.rules)

    def build(self) -> BuildResult:
        """Run a full build.

        Returns:
            BuildResult describing the written output directory

        Raises:
            BuildError: If the bundler fails, produces no bundle, or the
                output cannot be written
        """
        output_dir = self._config.output_dir.resolve()
        try:
            return self._build(output_dir)
        except OSError as e:
            raise BuildError(f"Cannot write build output: {e}", str(e)) from e

    def _build(self, output_dir: Path) -> BuildResult:
        output_dir.parent.mkdir(parents=True, exist_ok=True)

        staging = Path(
            tempfile.mkdtemp(prefix=f".{output_dir.name}-", dir=output_dir.parent),
        )
        try:
            self._copy_public(staging)
            self._run_bundler(staging)

            bundle = staging / self._config.filename
            if not bundle.is_file():
                raise BuildError(
                    f"Bundler did not produce {self._config.filename}",
                )

            (staging / self._config.shell).write_text(
                render_shell(self._config),
                encoding="utf-8",
            )
            files = sorted(
                path.relative_to(staging) for path in staging.rglob("*") if path.is_file()
            )
            staging.chmod(0o755)
            self._swap(staging, output_dir)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        logger.info(f"Built {len(files)} files into {output_dir}")
        return BuildResult(output_dir=output_dir, files=files)

    def _copy_public(self, staging: Path) -> None:
        """Copy static assets from the public directory unmodified."""
        public_dir = self._config.public_dir
        if not public_dir.is_dir():
            logger.debug(f"No public directory at {public_dir}")
            return
        shutil.copytree(public_dir, staging, dirs_exist_ok=True)

    def _run_bundler(self, staging: Path) -> None:
        """Run the external bundler with a rendered configuration."""
        with tempfile.TemporaryDirectory(prefix="spashell-") as tmpdir:
            config_file = Path(tmpdir) / "webpack.config.js"
            config_file.write_text(
                render_webpack_config(self._config, staging),
                encoding="utf-8",
            )

            command = [*self._config.command, "--config", str(config_file)]
            logger.info(f"Running bundler: {' '.join(command)}")
            try:
                result = subprocess.run(
                    command,
                    cwd=self._config.working_dir,
                    capture_output=True,
                    text=True,
                    check=False,
                )
            except FileNotFoundError as e:
                raise BuildError(
                    f"Bundler command not found: {self._config.command[0]}",
                ) from e

        if result.stdout:
            logger.debug(result.stdout)
        if result.returncode != 0:
            diagnostic = (result.stderr or result.stdout or "").strip()
            raise BuildError(
                f"Bundler exited with status {result.returncode}",
                diagnostic,
            )

    def _swap(self, staging: Path, output_dir: Path) -> None:
        """Move the staging directory into place, replacing any old output."""
        if not output_dir.exists():
            staging.rename(output_dir)
            return

        backup = output_dir.with_name(f".{output_dir.name}-old-{uuid.uuid4().hex}")
        output_dir.rename(backup)
        try:
            staging.rename(output_dir)
        except OSError:
            backup.rename(output_dir)
            raise
        shutil.rmtree(backup, ignore_errors=True)
