"""
Operator CLI for the DocuSign credential and Stripe connection
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import click

from signflow.api.dependencies.auth import issue_operator_token
from signflow.api.dependencies.redis import open_redis_client
from signflow.api.dependencies.services import ServiceContainer, build_container
from signflow.auth.exchange import build_consent_url
from signflow.core.config import get_settings

T = TypeVar("T")


def _run(action: Callable[[ServiceContainer], Awaitable[T]]) -> T:
    async def runner() -> T:
        settings = get_settings()
        async with open_redis_client(settings) as redis_client:
            container = build_container(settings, redis_client)
            try:
                return await action(container)
            finally:
                await container.close()

    return asyncio.run(runner())


@click.group()
def cli():
    """Signflow operator tools"""


@cli.command("consent-url")
def consent_url():
    """Print the one-time DocuSign consent URL"""
    settings = get_settings()
    click.echo(
        build_consent_url(
            settings.docusign_auth_server,
            settings.docusign_integration_key,
            settings.consent_redirect_uri,
            settings.docusign_scope,
        )
    )


@cli.command("check-credentials")
def check_credentials():
    """Obtain a DocuSign credential and report the resolved account"""

    async def action(container: ServiceContainer):
        return await container.credentials.get_credential(), container.credentials.consent_url()

    result, url = _run(action)
    if result.succeeded:
        click.echo(f"OK: account {result.value.account_id} at {result.value.base_path}")
        return
    click.echo(f"FAILED [{result.error.error_code}]: {result.error.error_message}", err=True)
    click.echo(f"Consent URL: {url}", err=True)
    raise SystemExit(1)


@cli.command("flush-credentials")
def flush_credentials():
    """Drop the cached DocuSign credential"""

    async def action(container: ServiceContainer) -> None:
        await container.credentials.invalidate()

    _run(action)
    click.echo("Cached DocuSign credential flushed.")


@cli.command("stripe-check")
def stripe_check():
    """Probe the Stripe account for the configured mode"""

    async def action(container: ServiceContainer):
        return await container.payments.test_connection()

    status = _run(action)
    click.echo(status.message, err=not status.ok)
    if not status.ok:
        raise SystemExit(1)


@cli.command("issue-token")
@click.option("--subject", default="operator", show_default=True, help="Token subject recorded in admin logs")
@click.option("--ttl", default=900, show_default=True, help="Token lifetime in seconds")
def issue_token(subject: str, ttl: int):
    """Mint a bearer token for the /admin routes"""
    click.echo(issue_operator_token(get_settings(), subject, ttl))


if __name__ == "__main__":
    cli()
