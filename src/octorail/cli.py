"""
OctoRail CLI — browse, approve and call paid APIs.

Commands:
    octorail list       Browse the marketplace catalog
    octorail get        Show one API and its input schema
    octorail approve    Allow paid calls to an API up to a max price
    octorail revoke     Remove an approval
    octorail call       Call an approved API, paying with USDC
    octorail approved   List approved APIs
    octorail history    Spending summary and recent calls
    octorail wallet     Show the local wallet address
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import sys
from datetime import datetime
from typing import Any, Optional

import click

from . import __version__
from .allowlist import AuthorizationGate
from .config import Settings
from .errors import PolicyBlockedError, ValidationError
from .invocation import Invoker
from .ledger import CallLedger
from .money import format_usdc, is_valid_price
from .storage import JsonFileStore
from .wallet import CredentialStore
from .x402_client import MarketplaceClient, X402Transport


DEFAULT_MAX_PRICE = "0.01"


# ── Wiring ────────────────────────────────────────────────────────

def _store(settings: Settings) -> JsonFileStore:
    return JsonFileStore(settings.home_dir)


def _invoker(settings: Settings) -> Invoker:
    store = _store(settings)

    def client_factory(identity):
        return MarketplaceClient(identity, X402Transport(identity), settings.base_url)

    return Invoker(
        credentials=CredentialStore(store),
        gate=AuthorizationGate(store),
        ledger=CallLedger(store),
        client_factory=client_factory,
    )


def _configure_logging(settings: Settings, verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.getLevelName(settings.log_level)
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _handles_errors(fn):
    """Turn command failures into a single stderr line and exit status 1."""
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except PolicyBlockedError as e:
            click.echo(f"BLOCKED: {e.key} is not in your allowlist.", err=True)
            click.echo(
                f"Approve it first: octorail approve {e.provider} {e.api} --max-price <price>",
                err=True,
            )
            sys.exit(1)
        except (click.ClickException, click.exceptions.Exit, click.Abort):
            raise
        except Exception as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
    return wrapper


def _format_timestamp(value: str) -> str:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.astimezone().strftime("%b %d, %I:%M %p")


def _print_json(value: Any) -> None:
    click.echo(json.dumps(value, indent=2))


def _api_handle(api: dict) -> str:
    owner = api.get("owner")
    handle = api.get("ownerHandle") or (owner.get("handle") if isinstance(owner, dict) else None)
    return f"{handle}/{api.get('slug')}"


# ── CLI ───────────────────────────────────────────────────────────

class _UsageFallbackGroup(click.Group):
    """Unknown commands print the usage text instead of failing."""

    def resolve_command(self, ctx, args):
        if args and self.get_command(ctx, args[0]) is None:
            click.echo(ctx.get_help())
            ctx.exit(0)
        return super().resolve_command(ctx, args)


@click.group(cls=_UsageFallbackGroup, invoke_without_command=True)
@click.version_option(version=__version__)
@click.option("-v", "--verbose", count=True, help="Log more (-v info, -vv debug)")
@click.pass_context
def main(ctx: click.Context, verbose: int):
    """OctoRail — API marketplace with USDC micropayments."""
    settings = Settings.from_env()
    _configure_logging(settings, verbose)
    ctx.obj = settings
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command("list")
@click.option("--search", default=None, help="Free-text search")
@click.option("--category", default=None, help="Category filter")
@click.pass_obj
@_handles_errors
def list_apis(settings: Settings, search: Optional[str], category: Optional[str]):
    """Browse APIs in the marketplace."""
    data = asyncio.run(_invoker(settings).list_apis(search=search, category=category))
    apis = data.get("apis", []) if isinstance(data, dict) else list(data or [])

    if not apis:
        click.echo("No APIs found.")
        return

    click.echo(f"Found {len(apis)} API(s):\n")
    for api in apis:
        meta = [str(api.get("price"))]
        stats = api.get("stats") or {}
        if (stats.get("totalCalls") or 0) > 0:
            meta.append(f"{stats['totalCalls']} calls")
        if (stats.get("avgResponseTime") or 0) > 0:
            meta.append(f"~{stats['avgResponseTime']}ms")
        click.echo(f"- {api.get('name')} ({_api_handle(api)}) — {' · '.join(meta)}")
        click.echo(f"  {api.get('description') or 'No description'}\n")


@main.command("get")
@click.argument("provider")
@click.argument("api")
@click.pass_obj
@_handles_errors
def get_api(settings: Settings, provider: str, api: str):
    """Show API details and its input parameters."""
    detail = asyncio.run(_invoker(settings).get_api(provider, api))

    click.echo(f"{detail.get('name')} ({_api_handle(detail)})")
    click.echo(f"Price: {detail.get('price')}")
    click.echo(f"Category: {detail.get('category')}")
    click.echo(f"Method: {detail.get('upstreamMethod')}")
    click.echo(f"Description: {detail.get('description') or 'None'}")

    schema = detail.get("inputSchema") or {}
    properties = schema.get("properties") if isinstance(schema, dict) else None
    if not properties:
        click.echo("\nNo input schema defined. Send a JSON body or no body.")
        return

    required = schema.get("required") or []
    click.echo("\nInput parameters:")
    for name, prop in properties.items():
        marker = " (required)" if name in required else " (optional)"
        click.echo(
            f"  - {name} ({prop.get('type')}){marker}: "
            f"{prop.get('description') or 'No description'}"
        )


@main.command()
@click.argument("provider")
@click.argument("api")
@click.option("--max-price", default=DEFAULT_MAX_PRICE, show_default=True,
              help="Maximum USDC per call")
@click.pass_obj
@_handles_errors
def approve(settings: Settings, provider: str, api: str, max_price: str):
    """Approve an API for paid calls."""
    if not is_valid_price(max_price):
        raise ValidationError(f"Invalid --max-price: {max_price!r}")
    AuthorizationGate(_store(settings)).approve(provider, api, max_price)
    click.echo(f"Approved {provider}/{api} (max {max_price} USDC per call).")


@main.command()
@click.argument("provider")
@click.argument("api")
@click.pass_obj
@_handles_errors
def revoke(settings: Settings, provider: str, api: str):
    """Revoke an API approval."""
    AuthorizationGate(_store(settings)).revoke(provider, api)
    click.echo(f"Revoked {provider}/{api}. This API can no longer be called.")


@main.command()
@click.argument("provider")
@click.argument("api")
@click.option("--body", default=None, help="JSON request body, e.g. '{\"text\": \"hi\"}'")
@click.pass_obj
@_handles_errors
def call(settings: Settings, provider: str, api: str, body: Optional[str]):
    """Call an approved API, paying if the marketplace asks."""
    result = asyncio.run(_invoker(settings).call(provider, api, body))
    _print_json(result)


@main.command()
@click.pass_obj
@_handles_errors
def approved(settings: Settings):
    """List approved APIs."""
    entries = AuthorizationGate(_store(settings)).list_approved()
    if not entries:
        click.echo("No APIs approved yet.")
        return

    click.echo("Approved APIs:\n")
    for key, entry in entries.items():
        click.echo(f"- {key} — max {entry.max_price} USDC (approved {entry.approved_at})")


@main.command()
@click.option("--limit", type=click.IntRange(min=1), default=20, help="Number of recent calls")
@click.pass_obj
@_handles_errors
def history(settings: Settings, limit: int):
    """Show spending summary and recent calls."""
    ledger = CallLedger(_store(settings))
    recent = ledger.recent(limit)
    if not recent:
        click.echo("No API calls yet.")
        return

    summary = ledger.summarize()
    click.echo(f"Total spent: ${summary.total} USDC\n")

    if summary.by_api:
        click.echo("By API:")
        for key, spend in summary.by_api.items():
            click.echo(f"  - {key}: {spend.calls} call(s), ${format_usdc(spend.spent)} USDC")
        click.echo()

    click.echo(f"Recent calls (last {len(recent)}):\n")
    click.echo("| # | API | Price | Status | Date |")
    click.echo("|---|-----|-------|--------|------|")
    for i, record in enumerate(recent, start=1):
        click.echo(
            f"| {i} | {record.key} | ${record.price} | {record.status} | "
            f"{_format_timestamp(record.timestamp)} |"
        )


@main.command()
@click.pass_obj
@_handles_errors
def wallet(settings: Settings):
    """Show the wallet address used for payments."""
    identity = CredentialStore(_store(settings)).get_or_create_identity()
    click.echo(f"Wallet address: {identity.address}")
    click.echo()
    click.echo(f"To use paid APIs, send USDC to this address on {settings.network_name}.")
    click.echo("Payments are gasless ERC-2612 permit signatures, so you only need USDC, not ETH.")


if __name__ == "__main__":
    main()
