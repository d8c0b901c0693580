"""Configuration management for spashell.

Supports TOML configuration format with auto-discovery and a ``PORT``
environment override for the listening port.
"""

from __future__ import annotations

import os
import re
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

CONFIG_FILENAME = "spashell.toml"
PORT_ENV_VAR = "PORT"
DEFAULT_PORT = 8080
MAX_PORT = 65535


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT


@dataclass(frozen=True)
class TransformRule:
    """Source transformation rule handed to the bundler.

    Files whose path matches ``test`` and none of ``exclude`` are passed
    through ``loader`` configured with ``presets``.
    """

    test: str = r"\.js$"
    exclude: tuple[str, ...] = ("node_modules",)
    loader: str = "babel-loader"
    presets: tuple[str, ...] = ("react", "env")

    def matches(self, path: Path) -> bool:
        """Check whether a source file is handled by this rule."""
        candidate = path.as_posix()
        if re.search(self.test, candidate) is None:
            return False
        return not any(re.search(pattern, candidate) for pattern in self.exclude)


def _default_rules() -> list[TransformRule]:
    return [TransformRule()]


@dataclass
class BuildConfig:
    """Bundle build configuration."""

    entry: Path = field(default_factory=lambda: Path("src/index.js"))
    output_dir: Path = field(default_factory=lambda: Path("dist"))
    filename: str = "app.bundle.js"
    shell: str = "app.html"
    title: str = "App"
    public_dir: Path = field(default_factory=lambda: Path("public"))
    working_dir: Path = field(default_factory=lambda: Path("."))
    command: list[str] = field(default_factory=lambda: ["npx", "webpack"])
    rules: list[TransformRule] = field(default_factory=_default_rules)

    @property
    def shell_path(self) -> Path:
        """Path of the shell document inside the output directory."""
        return self.output_dir / self.shell


@dataclass
class WatchConfig:
    """Rebuild-on-change configuration."""

    enabled: bool = False


@dataclass
class Config:
    """Application configuration."""

    server: ServerConfig
    build: BuildConfig
    watch: WatchConfig
    config_path: Path | None = None

    @classmethod
    def load(
        cls,
        config_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> Config:
        """Load configuration from file and environment.

        If config_path is provided, loads from that file.
        Otherwise, searches for spashell.toml in current directory and parents.
        The ``PORT`` environment variable overrides ``server.port``.

        Args:
            config_path: Optional explicit path to config file
            environ: Environment mapping (default: ``os.environ``)

        Returns:
            Config instance with defaults for missing sections

        Raises:
            FileNotFoundError: If explicit config_path doesn't exist
            ValueError: If configuration is invalid
        """
        if config_path is not None:
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            config = cls._load_from_file(config_path)
        else:
            discovered_path = cls._discover_config()
            if discovered_path is None:
                config = cls._default()
            else:
                config = cls._load_from_file(discovered_path)

        return config._apply_environment(os.environ if environ is None else environ)

    @classmethod
    def _discover_config(cls) -> Path | None:
        """Search for config file in current directory and parents.

        Returns:
            Path to config file or None if not found
        """
        current = Path.cwd()
        while True:
            candidate = current / CONFIG_FILENAME
            if candidate.exists():
                return candidate
            parent = current.parent
            if parent == current:
                return None
            current = parent

    @classmethod
    def _default(cls) -> Config:
        """Create config with all defaults."""
        return cls(
            server=ServerConfig(),
            build=BuildConfig(),
            watch=WatchConfig(),
        )

    @classmethod
    def _load_from_file(cls, path: Path) -> Config:
        """Load configuration from a specific file.

        Args:
            path: Path to TOML configuration file

        Returns:
            Config instance

        Raises:
            ValueError: If configuration is invalid
        """
        with path.open("rb") as f:
            data = tomllib.load(f)

        config_dir = path.parent

        return cls(
            server=cls._parse_server(data.get("server")),
            build=cls._parse_build(data.get("build"), config_dir),
            watch=cls._parse_watch(data.get("watch")),
            config_path=path,
        )

    @classmethod
    def _parse_server(cls, data: object) -> ServerConfig:
        """Parse server configuration section."""
        if data is None:
            return ServerConfig()

        if not isinstance(data, dict):
            raise ValueError("server section must be a dictionary")

        host = data.get("host", "0.0.0.0")
        if not isinstance(host, str):
            raise ValueError("server.host must be a string")

        port = data.get("port", DEFAULT_PORT)
        if not isinstance(port, int) or isinstance(port, bool):
            raise ValueError("server.port must be an integer")
        if not 0 <= port <= MAX_PORT:
            raise ValueError(f"server.port must be between 0 and {MAX_PORT}")

        return ServerConfig(host=host, port=port)

    @classmethod
    def _parse_build(cls, data: object, config_dir: Path) -> BuildConfig:
        """Parse build configuration section.

        Args:
            data: Raw build section data
            config_dir: Directory containing config file (for relative paths)

        Returns:
            BuildConfig instance
        """
        if data is None:
            return BuildConfig(
                entry=config_dir / "src" / "index.js",
                output_dir=config_dir / "dist",
                public_dir=config_dir / "public",
                working_dir=config_dir,
            )

        if not isinstance(data, dict):
            raise ValueError("build section must be a dictionary")

        paths: dict[str, Path] = {}
        for key, default in (
            ("entry", "src/index.js"),
            ("output_dir", "dist"),
            ("public_dir", "public"),
            ("working_dir", "."),
        ):
            value = data.get(key, default)
            if not isinstance(value, str):
                raise ValueError(f"build.{key} must be a string")
            paths[key] = config_dir / value

        names: dict[str, str] = {}
        for key, default in (
            ("filename", "app.bundle.js"),
            ("shell", "app.html"),
            ("title", "App"),
        ):
            value = data.get(key, default)
            if not isinstance(value, str):
                raise ValueError(f"build.{key} must be a string")
            names[key] = value

        for key in ("filename", "shell"):
            if not names[key] or "/" in names[key] or "\\" in names[key]:
                raise ValueError(f"build.{key} must be a plain file name")

        command = cls._parse_string_list(
            data.get("command", ["npx", "webpack"]),
            "build.command",
        )
        if not command:
            raise ValueError("build.command must not be empty")

        rules_raw = data.get("rules")
        rules = _default_rules() if rules_raw is None else cls._parse_rules(rules_raw)

        return BuildConfig(
            entry=paths["entry"],
            output_dir=paths["output_dir"],
            filename=names["filename"],
            shell=names["shell"],
            title=names["title"],
            public_dir=paths["public_dir"],
            working_dir=paths["working_dir"],
            command=command,
            rules=rules,
        )

    @classmethod
    def _parse_rules(cls, data: object) -> list[TransformRule]:
        """Parse ``[[build.rules]]`` tables."""
        if not isinstance(data, list):
            raise ValueError("build.rules must be a list of tables")

        rules: list[TransformRule] = []
        for item in data:
            if not isinstance(item, dict):
                raise ValueError("build.rules items must be tables")

            test = item.get("test", r"\.js$")
            if not isinstance(test, str):
                raise ValueError("build.rules.test must be a string")

            loader = item.get("loader", "babel-loader")
            if not isinstance(loader, str):
                raise ValueError("build.rules.loader must be a string")

            exclude = cls._parse_string_list(
                item.get("exclude", ["node_modules"]),
                "build.rules.exclude",
            )
            presets = cls._parse_string_list(
                item.get("presets", ["react", "env"]),
                "build.rules.presets",
            )

            rules.append(
                TransformRule(
                    test=test,
                    exclude=tuple(exclude),
                    loader=loader,
                    presets=tuple(presets),
                ),
            )
        return rules

    @classmethod
    def _parse_watch(cls, data: object) -> WatchConfig:
        """Parse watch configuration section."""
        if data is None:
            return WatchConfig()

        if not isinstance(data, dict):
            raise ValueError("watch section must be a dictionary")

        enabled = data.get("enabled", False)
        if not isinstance(enabled, bool):
            raise ValueError("watch.enabled must be a boolean")

        return WatchConfig(enabled=enabled)

    @staticmethod
    def _parse_string_list(data: object, name: str) -> list[str]:
        if not isinstance(data, list):
            raise ValueError(f"{name} must be a list")
        items: list[str] = []
        for item in data:
            if not isinstance(item, str):
                raise ValueError(f"{name} items must be strings")
            items.append(item)
        return items

    def _apply_environment(self, environ: Mapping[str, str]) -> Config:
        """Apply the ``PORT`` environment variable, if set."""
        raw_port = environ.get(PORT_ENV_VAR)
        if raw_port is None or raw_port == "":
            return self

        try:
            port = int(raw_port)
        except ValueError:
            raise ValueError(
                f"{PORT_ENV_VAR} must be an integer, got {raw_port!r}"
            ) from None

        if not 0 <= port <= MAX_PORT:
            raise ValueError(
                f"{PORT_ENV_VAR} must be between 0 and {MAX_PORT}, got {raw_port!r}"
            )

        return self.with_overrides(port=port)

    def with_overrides(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        output_dir: Path | None = None,
        watch_enabled: bool | None = None,
    ) -> Config:
        """Create a new Config with CLI overrides applied.

        Only non-None values override the existing config. The original
        Config is not modified.

        Args:
            host: Override server.host
            port: Override server.port
            output_dir: Override build.output_dir
            watch_enabled: Override watch.enabled

        Returns:
            New Config instance with overrides applied
        """
        server = self.server
        if host is not None or port is not None:
            server = replace(
                self.server,
                host=host if host is not None else self.server.host,
                port=port if port is not None else self.server.port,
            )

        build = self.build
        if output_dir is not None:
            build = replace(self.build, output_dir=output_dir)

        watch = self.watch
        if watch_enabled is not None:
            watch = replace(self.watch, enabled=watch_enabled)

        return replace(self, server=server, build=build, watch=watch)
