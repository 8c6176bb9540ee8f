"""CLI tests — argument handling that needs no running server."""

from click.testing import CliRunner

from devportal import __version__
from devportal.cli.main import main


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_client_commands_require_token(monkeypatch):
    monkeypatch.delenv("DEVPORTAL_TOKEN", raising=False)
    for args in (["me"], ["apps"], ["usage", "abc123"]):
        result = CliRunner().invoke(main, args)
        assert result.exit_code == 1
        assert "--token required" in result.output


def test_usage_rejects_non_positive_step(monkeypatch):
    monkeypatch.setenv("DEVPORTAL_TOKEN", "t")
    result = CliRunner().invoke(main, ["usage", "abc123", "--step", "0"])
    assert result.exit_code == 2
