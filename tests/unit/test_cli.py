"""Tests for the bridge CLI."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from src.cli import cli
from tests.conftest import WEBHOOK_SECRET, sign_b64, sign_hex

ENV = {
    "BASE_URL": "https://api.cucuru.test/app/v1/",
    "API_KEY": "very-secret-key",
    "COLLECTOR_ID": "collector",
}


def _write_body(tmp_path: Path, content: bytes) -> str:
    p = tmp_path / "body.json"
    p.write_bytes(content)
    return str(p)


def test_sign_hex(tmp_path: Path) -> None:
    body = b'{"collection_id":"c1"}'
    result = CliRunner().invoke(cli, [
        "sign", _write_body(tmp_path, body), "--secret", WEBHOOK_SECRET,
    ])
    assert result.exit_code == 0
    assert result.output.strip() == sign_hex(body)


def test_sign_base64(tmp_path: Path) -> None:
    body = b'{"collection_id":"c1"}'
    result = CliRunner().invoke(cli, [
        "sign", _write_body(tmp_path, body),
        "--secret", WEBHOOK_SECRET, "--encoding", "base64",
    ])
    assert result.exit_code == 0
    assert result.output.strip() == sign_b64(body)


def test_sign_unknown_algo(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, [
        "sign", _write_body(tmp_path, b"{}"), "--secret", "s", "--algo", "nope",
    ])
    assert result.exit_code != 0


def test_check_config_reports_flags_without_values() -> None:
    env = {**ENV, "WEBHOOK_SECRET": "hmac-secret"}
    result = CliRunner().invoke(cli, ["check-config"], env=env)
    assert result.exit_code == 0
    assert "hmac auth: enabled" in result.output
    assert "inbound header auth: disabled" in result.output
    assert "very-secret-key" not in result.output
    assert "hmac-secret" not in result.output


def test_check_config_warns_when_validation_disabled() -> None:
    result = CliRunner().invoke(cli, ["check-config"], env=ENV)
    assert result.exit_code == 0
    assert "without validation" in result.output


def test_serve_refuses_to_start_without_config() -> None:
    env: dict[str, str | None] = {
        name: None
        for base in ENV
        for name in (base, f"CUCURU_{base}")
    }
    with patch("src.cli.uvicorn.run") as run:
        result = CliRunner().invoke(cli, ["serve"], env=env)
    assert result.exit_code != 0
    assert "Missing env BASE_URL" in result.output
    run.assert_not_called()


def test_serve_runs_uvicorn_factory() -> None:
    with patch("src.cli.uvicorn.run") as run:
        result = CliRunner().invoke(cli, ["serve", "--port", "8123"], env={**ENV, "PORT": "9000"})
    assert result.exit_code == 0
    kwargs = run.call_args.kwargs
    assert kwargs["factory"] is True
    assert kwargs["port"] == 8123
