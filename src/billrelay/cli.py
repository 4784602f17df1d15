"""
billrelay CLI

Command-line interface for running and provisioning the relay.
"""

import asyncio
import logging

import click
import structlog

from billrelay import __version__
from billrelay.config import get_settings

logger = structlog.get_logger()


def configure_logging(level: str) -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    logging.basicConfig(level=numeric)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
    )


# ══════════════════════════════════════════════════════════════
# CLI Group
# ══════════════════════════════════════════════════════════════


@click.group()
@click.version_option(version=__version__, prog_name="billrelay")
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
def cli(debug: bool) -> None:
    """billrelay - keep member subscription tiers in sync with Stripe."""
    configure_logging("DEBUG" if debug else get_settings().log_level)


# ══════════════════════════════════════════════════════════════
# Server Commands
# ══════════════════════════════════════════════════════════════


@cli.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.option("--reload/--no-reload", default=False, help="Enable auto-reload")
@click.option("--workers", default=1, help="Number of worker processes")
def serve(host: str | None, port: int | None, reload: bool, workers: int) -> None:
    """Start the billrelay API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port

    click.echo(f"Starting billrelay API on {host}:{port}")

    uvicorn.run(
        "billrelay.api.app:create_app",
        host=host,
        port=port,
        reload=reload,
        workers=workers if not reload else 1,
        factory=True,
    )


# ══════════════════════════════════════════════════════════════
# Database Commands
# ══════════════════════════════════════════════════════════════


@cli.command("init-db")
def init_db_command() -> None:
    """Create the members table if it does not exist."""
    from billrelay.db import close_db, create_tables, init_db

    async def _run() -> None:
        await init_db(get_settings())
        try:
            await create_tables()
        finally:
            await close_db()

    asyncio.run(_run())
    click.echo("Database initialized")


# ══════════════════════════════════════════════════════════════
# Billing Commands
# ══════════════════════════════════════════════════════════════


@cli.command()
def plans() -> None:
    """Show how checkout plan tokens map to Stripe prices."""
    from billrelay.integrations.stripe import PLAN_PERIODS, BillingService

    billing = BillingService(get_settings())

    for plan, period in PLAN_PERIODS.items():
        click.echo(f"{plan:32} {period.value:8} {billing.price_for_period(period)}")

    click.echo(f"{'(other)':32} {'monthly':8} {billing.resolve_price(None)}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
