"""Tests for CLI commands."""

from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner
from spashell.build import BuildError, BuildResult
from spashell.cli import cli
from spashell.config import Config


def _write_config(tmp_path: Path, content: str = "") -> Path:
    config_file = tmp_path / "spashell.toml"
    config_file.write_text(content)
    return config_file


class TestServeCommand:
    """Tests for the serve command."""

    def test__no_arguments__uses_default_port(self) -> None:
        """serve runs with no arguments on the default port."""
        runner = CliRunner()
        with (
            patch.object(Config, "_discover_config", return_value=None),
            patch("spashell.server.run_server") as run_server,
        ):
            result = runner.invoke(cli, ["serve"], env={"PORT": None})

        assert result.exit_code == 0
        assert "Starting server on 0.0.0.0:8080" in result.output
        config = run_server.call_args.args[0]
        assert config.server.port == 8080

    def test__port_env__used(self) -> None:
        """PORT selects the listening port."""
        runner = CliRunner()
        with (
            patch.object(Config, "_discover_config", return_value=None),
            patch("spashell.server.run_server") as run_server,
        ):
            result = runner.invoke(cli, ["serve"], env={"PORT": "3000"})

        assert result.exit_code == 0
        assert run_server.call_args.args[0].server.port == 3000

    def test__port_option__overrides_env(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path)

        runner = CliRunner()
        with patch("spashell.server.run_server") as run_server:
            result = runner.invoke(
                cli,
                ["serve", "-c", str(config_file), "--port", "4000", "--watch"],
                env={"PORT": "3000"},
            )

        assert result.exit_code == 0
        config = run_server.call_args.args[0]
        assert config.server.port == 4000
        assert config.watch.enabled is True
        assert "Rebuild on change: enabled" in result.output

    def test__bind_failure__exits_with_error(self, tmp_path: Path) -> None:
        """A port that cannot be bound is fatal."""
        config_file = _write_config(tmp_path)

        runner = CliRunner()
        with patch(
            "spashell.server.run_server",
            side_effect=OSError(98, "Address already in use"),
        ):
            result = runner.invoke(cli, ["serve", "-c", str(config_file)], env={"PORT": None})

        assert result.exit_code == 1
        assert "cannot listen on 0.0.0.0:8080" in result.output

    def test__invalid_port_env__exits_with_error(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path)

        runner = CliRunner()
        with patch("spashell.server.run_server") as run_server:
            result = runner.invoke(cli, ["serve", "-c", str(config_file)], env={"PORT": "abc"})

        assert result.exit_code == 1
        assert "PORT must be an integer" in result.output
        run_server.assert_not_called()

    def test__out_of_range_port_env__exits_with_error(self, tmp_path: Path) -> None:
        """A PORT beyond 65535 is reported before the server starts."""
        config_file = _write_config(tmp_path)

        runner = CliRunner()
        with patch("spashell.server.run_server") as run_server:
            result = runner.invoke(cli, ["serve", "-c", str(config_file)], env={"PORT": "70000"})

        assert result.exit_code == 1
        assert "PORT must be between 0 and 65535" in result.output
        run_server.assert_not_called()

    def test__out_of_range_port_option__rejected(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path)

        runner = CliRunner()
        with patch("spashell.server.run_server") as run_server:
            result = runner.invoke(cli, ["serve", "-c", str(config_file), "--port", "70000"])

        assert result.exit_code == 2
        run_server.assert_not_called()

    def test__missing_config__fails(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["serve", "-c", str(tmp_path / "nonexistent.toml")])

        assert result.exit_code != 0


class TestBuildCommand:
    """Tests for the build command."""

    def test__successful_build__lists_files(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path)
        build_result = BuildResult(
            output_dir=tmp_path / "dist",
            files=[Path("app.bundle.js"), Path("app.html")],
        )

        runner = CliRunner()
        with patch("spashell.build.Bundler.build", return_value=build_result):
            result = runner.invoke(cli, ["build", "-c", str(config_file)])

        assert result.exit_code == 0
        assert f"Built 2 files into {tmp_path / 'dist'}" in result.output
        assert "-> app.bundle.js" in result.output
        assert "-> app.html" in result.output

    def test__output_dir_option__overrides_config(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path)
        target = tmp_path / "public_html"

        runner = CliRunner()
        with patch("spashell.build.Bundler") as bundler_cls:
            bundler_cls.return_value.build.return_value = BuildResult(output_dir=target)
            result = runner.invoke(cli, ["build", "-c", str(config_file), "-o", str(target)])

        assert result.exit_code == 0
        assert bundler_cls.call_args.args[0].output_dir == target

    def test__build_error__exits_with_diagnostic(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path)

        runner = CliRunner()
        with patch(
            "spashell.build.Bundler.build",
            side_effect=BuildError("Bundler exited with status 2", "Module not found: ./app"),
        ):
            result = runner.invoke(cli, ["build", "-c", str(config_file)])

        assert result.exit_code == 1
        assert "Bundler exited with status 2" in result.output
        assert "Module not found: ./app" in result.output
