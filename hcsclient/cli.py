"""
Command-line interface for the topic service client.
"""

from __future__ import annotations

import logging
import os

import click

from hcsclient.client.application.scenario import (
    DEFAULT_MEMO,
    DEFAULT_MESSAGE,
    DEFAULT_UPDATED_MEMO,
    TopicScenario,
)
from hcsclient.client.identity import SigningIdentity
from hcsclient.client.infrastructure.config_loader import ConfigLoader
from hcsclient.common.config import Config
from hcsclient.common.exceptions import HcsError
from hcsclient.common.models import ClientConfig
from hcsclient.sandbox import start_sandbox


@click.group()
def cli() -> None:
    """Consensus topic service client CLI"""


@cli.command()
@click.option(
    "--account-id",
    default="0.0.0",
    help="Account id to pair with the generated key (default: 0.0.0)",
)
def keygen(account_id: str) -> None:
    """Generate an Ed25519 operator key"""
    identity = SigningIdentity.generate(account_id)
    click.echo(f"Account:     {identity.account_id}")
    click.echo(f"Private key: {identity.private_key_der_hex()}")
    click.echo(f"Public key:  {identity.public_key_der_hex}")


@cli.command()
@click.option(
    "--network",
    default=None,
    help="Network name or base URL (default: from HCS_NETWORK env or local)",
)
@click.option("--memo", default=DEFAULT_MEMO, show_default=True, help="Initial topic memo")
@click.option(
    "--updated-memo",
    default=DEFAULT_UPDATED_MEMO,
    show_default=True,
    help="Memo to set after creation",
)
@click.option("--message", default=DEFAULT_MESSAGE, show_default=True, help="Message to publish")
def run(network: str | None, memo: str, updated_memo: str, message: str) -> None:
    """Create a topic, update its memo, subscribe and publish a message"""
    try:
        config = Config()
        logging.basicConfig(level=config.LOG_LEVEL)
        loader = ConfigLoader(ClientConfig(network=network), config)
        client, identity = loader.build_client()
        with client:
            result = TopicScenario(
                client, identity, receipt_timeout=loader.receipt_timeout
            ).run(memo, updated_memo, message)
    except HcsError as e:
        msg = f"An error occurred: {e}"
        raise click.ClickException(msg) from e
    click.echo(f"Topic {result.topic_id}: message status {result.status}")


@cli.command()
@click.option(
    "--host",
    default=None,
    help="Host to bind to (default: from HCS_SANDBOX_HOST env or 127.0.0.1)",
)
@click.option(
    "--port",
    default=None,
    type=int,
    help="Port to bind to (default: from HCS_SANDBOX_PORT env or 8545)",
)
@click.option(
    "--receipt-delay",
    default=0.0,
    type=float,
    help="Seconds before receipts become final",
)
def sandbox(host: str | None, port: int | None, receipt_delay: float) -> None:
    """Start a local sandbox node"""
    if host:
        os.environ["HCS_SANDBOX_HOST"] = host
    if port:
        os.environ["HCS_SANDBOX_PORT"] = str(port)
    start_sandbox(Config(), receipt_delay=receipt_delay)


if __name__ == "__main__":
    cli()
