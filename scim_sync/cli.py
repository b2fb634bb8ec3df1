"""CLI interface for scim-sync using Click."""

import json
import logging
import sys
from typing import List, Optional, Tuple

import click
import requests

from . import __version__
from .config import DEFAULT_COMPONENT_ID, DEFAULT_TIMEOUT, ProviderConfig
from .errors import ScimSyncError
from .events import ACTIONS, DELETE, GROUP, SYNC, USER, EventDispatcher, LifecycleEvent
from .mapper import build_scim_group, build_scim_user
from .models import LocalGroup, LocalUser
from .records import dump_records, load_records
from .synchronizer import ScimSynchronizer

logger = logging.getLogger("scim_sync")


def setup_logging(verbose: bool = False) -> None:
    """Send library logs to stderr so stdout stays machine-readable."""
    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.setLevel(level)
    logger.handlers[:] = [handler]
    ctx = click.get_current_context(silent=True)
    if ctx is not None:
        ctx.call_on_close(lambda: logger.removeHandler(handler))


def _colorize(text: str, color: str) -> str:
    """Colorize text using ANSI codes."""
    colors = {
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "bold": "\033[1m",
        "reset": "\033[0m",
    }
    if not sys.stdout.isatty():
        return text  # No colors if not a TTY
    return f"{colors.get(color, '')}{text}{colors['reset']}"


def _print_error(message: str):
    click.echo(_colorize(f"❌ {message}", "red"))


def _print_warning(message: str):
    click.echo(_colorize(f"⚠️  {message}", "yellow"))


def _print_success(message: str):
    click.echo(_colorize(f"✅ {message}", "green"))


def _load(file: str) -> Tuple[List[LocalUser], List[LocalGroup]]:
    try:
        return load_records(file)
    except json.JSONDecodeError as e:
        _print_error(f"Invalid JSON: {e}")
    except (KeyError, ValueError) as e:
        _print_error(f"Invalid record file: {e}")
    sys.exit(1)


def _ordered_events(users: List[LocalUser], groups: List[LocalGroup],
                    action: str, only: Optional[str]) -> List[LifecycleEvent]:
    """Groups before users, except on delete where users go first."""
    group_events = [] if only == "users" else [LifecycleEvent(GROUP, action, g) for g in groups]
    user_events = [] if only == "groups" else [LifecycleEvent(USER, action, u) for u in users]
    if action == DELETE:
        return user_events + group_events
    return group_events + user_events


def _connection_options(f):
    """Options shared by every command that talks to an endpoint."""
    options = [
        click.option("--endpoint", envvar="SCIM_SYNC_ENDPOINT", required=True,
                     help="SCIM base URL (e.g. https://example.com/scim/v2)"),
        click.option("--token", envvar="SCIM_SYNC_TOKEN", help="Bearer token"),
        click.option("--username", envvar="SCIM_SYNC_USERNAME", help="Basic auth username"),
        click.option("--password", envvar="SCIM_SYNC_PASSWORD", help="Basic auth password"),
        click.option("--component-id", envvar="SCIM_SYNC_COMPONENT_ID",
                     default=DEFAULT_COMPONENT_ID, show_default=True,
                     help="Provider component id; keys the stored external ids"),
        click.option("--tls-no-verify/--tls-verify", envvar="SCIM_SYNC_TLS_NO_VERIFY",
                     default=True, show_default=True,
                     help="Accept self-signed certificates"),
        click.option("--ca-bundle", envvar="SCIM_SYNC_CA_BUNDLE",
                     type=click.Path(exists=True, dir_okay=False),
                     help="CA bundle used to verify the endpoint certificate"),
        click.option("--proxy", envvar="SCIM_SYNC_PROXY", help="HTTP/HTTPS proxy URL"),
        click.option("--timeout", envvar="SCIM_SYNC_TIMEOUT", type=int,
                     default=DEFAULT_TIMEOUT, show_default=True,
                     help="Per-request timeout in seconds"),
        click.option("--verbose", "-v", is_flag=True, help="Enable debug logging"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _synchronizer(endpoint, token, username, password, component_id,
                  tls_no_verify, ca_bundle, proxy, timeout) -> ScimSynchronizer:
    config = ProviderConfig(
        component_id=component_id,
        endpoint=endpoint,
        username=username,
        password=password,
        bearer_token=token,
        timeout=timeout,
        tls_no_verify=tls_no_verify,
        ca_bundle=ca_bundle,
        proxy=proxy,
    )
    synchronizer = ScimSynchronizer(config)
    if synchronizer.build_error is not None:
        _print_error(f"Configuration error: {synchronizer.build_error}")
        sys.exit(1)
    return synchronizer


@click.group()
@click.version_option(version=__version__)
def main():
    """Mirror local users and groups into a SCIM 2.0 provisioning endpoint.

    \b
    Examples:
      scim-sync preview records.json
      scim-sync sync records.json --endpoint https://idp.example.com/scim/v2 --token T
      scim-sync check --endpoint https://idp.example.com/scim/v2 --token T
    """


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def preview(file: str):
    """Print the SCIM documents FILE's records map to, without sending them."""
    users, groups = _load(file)
    documents = {
        "groups": [build_scim_group(g) for g in groups],
        "users": [build_scim_user(u) for u in users],
    }
    click.echo(json.dumps(documents, indent=2))


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--action", type=click.Choice(ACTIONS), default=SYNC, show_default=True,
              help="Lifecycle event to send for every record")
@click.option("--only", type=click.Choice(["users", "groups"]),
              help="Restrict to one record type")
@click.option("--write-back/--no-write-back", default=True, show_default=True,
              help="Store the provider ids back into FILE")
@_connection_options
def sync(file, action, only, write_back, endpoint, token, username, password,
         component_id, tls_no_verify, ca_bundle, proxy, timeout, verbose):
    """Send one lifecycle event per record in FILE to the SCIM endpoint."""
    setup_logging(verbose)
    users, groups = _load(file)
    synchronizer = _synchronizer(endpoint, token, username, password, component_id,
                                 tls_no_verify, ca_bundle, proxy, timeout)
    dispatcher = EventDispatcher(synchronizer)

    transport_error = None
    try:
        for event in _ordered_events(users, groups, action, only):
            dispatcher.handle(event)
    except requests.RequestException as e:
        transport_error = e

    if write_back:
        dump_records(file, users, groups)

    summary = dispatcher.summary()
    done = ", ".join(f"{summary[a]} {a}" for a in ACTIONS if summary[a])
    click.echo(_colorize(f"\nProcessed: {done or 'nothing'}", "bold"))
    for failure in dispatcher.failures:
        _print_error(str(failure))
    if transport_error is not None:
        _print_error(f"Connection error: {transport_error}")
        sys.exit(1)
    if dispatcher.failures:
        _print_warning(f"{len(dispatcher.failures)} event(s) failed")
        sys.exit(1)
    _print_success("All events processed")


@main.command()
@_connection_options
def check(endpoint, token, username, password, component_id, tls_no_verify,
          ca_bundle, proxy, timeout, verbose):
    """Verify the endpoint configuration and connectivity."""
    setup_logging(verbose)
    synchronizer = _synchronizer(endpoint, token, username, password, component_id,
                                 tls_no_verify, ca_bundle, proxy, timeout)
    try:
        synchronizer.validate()
    except ScimSyncError as e:
        _print_error(str(e))
        sys.exit(1)
    except requests.RequestException as e:
        _print_error(f"Connection error: {e}")
        sys.exit(1)
    _print_success(f"SCIM endpoint reachable: {synchronizer.config.endpoint}")


if __name__ == "__main__":
    main()
