"""Click CLI for running and operating the bridge."""

from __future__ import annotations

import logging
from pathlib import Path

import click
import uvicorn

from src.config import BridgeConfig, ConfigurationError
from src.proxy.app import create_app_from_env
from src.webhook.gate import compute_signatures


def _load_config() -> BridgeConfig:
    try:
        return BridgeConfig.from_env()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option("--log-level", default="INFO", help="Root logging level.")
def cli(log_level: str) -> None:
    """Cucuru payment bridge."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--host", default="0.0.0.0", help="Interface to bind.")
@click.option("--port", type=int, default=None, help="Port to bind (default: PORT or 3000).")
def serve(host: str, port: int | None) -> None:
    """Validate configuration and serve the bridge."""
    config = _load_config()
    click.echo(f"{config.service_name} listening on :{port or config.port}")
    uvicorn.run(
        create_app_from_env,
        factory=True,
        host=host,
        port=port or config.port,
    )


@cli.command("check-config")
def check_config() -> None:
    """Report which inbound auth mechanisms the environment enables."""
    config = _load_config()
    click.echo(f"service: {config.service_name}")
    click.echo(f"upstream: {config.base_url}")
    click.echo(f"inbound header auth: {'enabled' if config.header_auth_enabled else 'disabled'}")
    click.echo(f"hmac auth: {'enabled' if config.hmac_auth_enabled else 'disabled'}")
    if not (config.header_auth_enabled or config.hmac_auth_enabled):
        click.echo("WARNING: inbound webhooks are accepted without validation", err=True)


@cli.command()
@click.argument("body_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--secret", required=True, envvar="WEBHOOK_SECRET", help="Shared HMAC secret.")
@click.option("--algo", default="sha256", show_default=True, help="HMAC digest algorithm.")
@click.option(
    "--encoding",
    type=click.Choice(["hex", "base64"]),
    default="hex",
    show_default=True,
)
def sign(body_file: Path, secret: str, algo: str, encoding: str) -> None:
    """Print the signature the webhook gate expects for BODY_FILE."""
    try:
        digest_hex, digest_b64 = compute_signatures(secret, body_file.read_bytes(), algo)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--algo") from exc
    click.echo(digest_hex if encoding == "hex" else digest_b64)


if __name__ == "__main__":
    cli()
