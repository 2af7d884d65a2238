"""
Typer CLI entrypoint for jamf-api-kit.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from tabulate import tabulate

from .api_objects import APIClient, APIRole, Building, InventoryPreloadRecord, JPackage
from .change_log import change_log_summary
from .classic import APIObject, Category, Computer, Department, Site
from .config import Config, ConfigError, load_config
from .connection import Connection
from .device_enrollment import DeviceEnrollment
from .exceptions import JamfError, MissingDataError
from .logging_utils import setup_logging
from .prestage import ComputerPrestage, MobileDevicePrestage
from .utils import parse_line_delimited_file

app = typer.Typer(add_completion=False, help="Work with Jamf Pro objects from the command line.")

KINDS: Dict[str, type] = {
    "buildings": Building,
    "api-roles": APIRole,
    "api-clients": APIClient,
    "inventory-preload": InventoryPreloadRecord,
    "packages": JPackage,
    "computer-prestages": ComputerPrestage,
    "mobile-device-prestages": MobileDevicePrestage,
    "device-enrollments": DeviceEnrollment,
    "categories": Category,
    "departments": Department,
    "sites": Site,
    "computers": Computer,
}


@dataclass
class CliState:
    logger: Any
    config: Config
    url: Optional[str] = None
    connect_params: Dict[str, Any] = field(default_factory=dict)
    cnx: Optional[Connection] = None


def _connect(state: CliState) -> Connection:
    """Connect once per invocation, using the global options."""
    if state.cnx is None:
        cnx = Connection(logger=state.logger)
        cnx.connect(state.url, config=state.config, **state.connect_params)
        state.cnx = cnx
    return state.cnx


def _kind_class(kind: str) -> type:
    klass = KINDS.get(kind)
    if klass is None:
        typer.echo(f"Unknown kind '{kind}'. Choose from: {', '.join(KINDS)}", err=True)
        raise typer.Exit(code=2)
    return klass


def _prestage_class(mobile: bool) -> type:
    return MobileDevicePrestage if mobile else ComputerPrestage


def _collect_serials(serials: List[str], serials_file: Optional[Path]) -> List[str]:
    collected = list(serials or [])
    if serials_file:
        collected.extend(parse_line_delimited_file(str(serials_file)))
    return collected


def _summary_row(item: Dict[str, Any], klass: type) -> List[Any]:
    name_key = getattr(klass, "OBJECT_NAME_ATTR", None) or "name"
    return [item.get("id"), item.get(name_key, item.get("name"))]


@app.callback()
def main(
    ctx: typer.Context,
    url: Optional[str] = typer.Option(None, "--url", help="Jamf Pro URL, e.g. https://tenant.jamfcloud.com"),
    config_file: Optional[Path] = typer.Option(None, help="Optional config file to load defaults."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose debug logging."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Reduce log verbosity."),
    http_debug: bool = typer.Option(False, "--http-debug", help="Also log connection-level HTTP messages."),
    no_verify_ssl: bool = typer.Option(False, "--no-verify-ssl", help="Disable SSL certificate verification (INSECURE - only for testing)."),
    ssl_cert_path: Optional[Path] = typer.Option(None, "--ssl-cert-path", help="Path to SSL certificate file for verification."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable caching of lists read from the server."),
    cache_ttl: Optional[int] = typer.Option(None, "--cache-ttl", help="Cache time-to-live in seconds (default: until refreshed)."),
    rate_limit: Optional[float] = typer.Option(None, "--rate-limit", help="Maximum API requests per second (0 = no limit)."),
):
    """
    Configure global options and shared context.
    """
    logger = setup_logging(verbose=verbose, quiet=quiet, logger_name="jamf-api-kit", http_debug=http_debug)
    try:
        config = load_config(config_file=str(config_file) if config_file else None)
    except ConfigError as exc:
        typer.echo(f"Config error: {exc}", err=True)
        raise typer.Exit(code=2)

    if no_verify_ssl:
        typer.echo("WARNING: SSL certificate verification disabled. Use only in testing environments.", err=True)

    params: Dict[str, Any] = {}
    if no_verify_ssl:
        params["verify_cert"] = False
    if ssl_cert_path:
        params["ssl_cert_path"] = str(ssl_cert_path)
    if no_cache:
        params["cache_enabled"] = False
    if cache_ttl is not None:
        params["cache_ttl"] = cache_ttl
    if rate_limit is not None:
        params["rate_limit"] = rate_limit
    ctx.obj = CliState(logger=logger, config=config, url=url, connect_params=params)


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Kind of object, e.g. buildings or categories."),
    sort: Optional[str] = typer.Option(None, "--sort", help="Sort criteria, e.g. 'name:desc' (Jamf Pro API kinds only)."),
    filter: Optional[str] = typer.Option(None, "--filter", help="RSQL filter, e.g. 'name==\"HQ*\"' (filterable kinds only)."),
    refresh: bool = typer.Option(False, "--refresh", help="Re-read the list from the server."),
):
    """
    List the id and name of every object of a kind.
    """
    state: CliState = ctx.obj
    klass = _kind_class(kind)
    try:
        cnx = _connect(state)
        if issubclass(klass, APIObject):
            if sort or filter:
                typer.echo("--sort and --filter are not available for Classic API kinds", err=True)
                raise typer.Exit(code=2)
            items = klass.all(refresh, cnx=cnx)
        else:
            items = klass.all(sort=sort, filter=filter, refresh=refresh, cnx=cnx)
        rows = [_summary_row(item, klass) for item in items]
        typer.echo(tabulate(rows, headers=["ID", "Name"], tablefmt="github"))
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2)
    except MissingDataError as exc:
        state.logger.error("Connection settings incomplete: %s", exc)
        raise typer.Exit(code=2)
    except JamfError as exc:
        state.logger.error("List error: %s", exc)
        raise typer.Exit(code=3)


@app.command("show")
def show_cmd(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Kind of object."),
    ident: str = typer.Argument(..., help="Id, name or other identifier of the object."),
):
    """
    Show one object as JSON.
    """
    state: CliState = ctx.obj
    klass = _kind_class(kind)
    try:
        cnx = _connect(state)
        obj = klass.fetch(ident, cnx=cnx)
        data = obj.init_data if isinstance(obj, APIObject) else obj.to_jamf()
        typer.echo(json.dumps(data, indent=2, default=str))
    except MissingDataError as exc:
        state.logger.error("Connection settings incomplete: %s", exc)
        raise typer.Exit(code=2)
    except JamfError as exc:
        state.logger.error("Show error: %s", exc)
        raise typer.Exit(code=3)


@app.command("change-log")
def change_log_cmd(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Kind of object with a change log, e.g. buildings."),
    ident: Optional[str] = typer.Argument(None, help="Identifier of the object; omit for collection-wide logs."),
):
    """
    Show the change log of an object.
    """
    state: CliState = ctx.obj
    klass = _kind_class(kind)
    if not hasattr(klass, "change_log"):
        typer.echo(f"'{kind}' objects have no change log", err=True)
        raise typer.Exit(code=2)
    try:
        cnx = _connect(state)
        obj_id = None
        if ident is not None:
            obj_id = klass.valid_id(ident, cnx=cnx)
            if obj_id is None:
                typer.echo(f"No {kind} matching '{ident}'", err=True)
                raise typer.Exit(code=3)
        rows = change_log_summary(klass.change_log(obj_id, cnx=cnx))
        typer.echo(tabulate(rows, headers="keys", tablefmt="github"))
    except MissingDataError as exc:
        state.logger.error("Connection settings incomplete: %s", exc)
        raise typer.Exit(code=2)
    except JamfError as exc:
        state.logger.error("Change log error: %s", exc)
        raise typer.Exit(code=3)


@app.command("prestage-scope")
def prestage_scope_cmd(
    ctx: typer.Context,
    prestage: str = typer.Argument(..., help="Id or name of the prestage."),
    mobile: bool = typer.Option(False, "--mobile", help="Use mobile device prestages instead of computer prestages."),
):
    """
    List the serial numbers assigned to a prestage.
    """
    state: CliState = ctx.obj
    klass = _prestage_class(mobile)
    try:
        cnx = _connect(state)
        serials = klass.serials_for_prestage(prestage, refresh=True, cnx=cnx)
        typer.echo(tabulate([[sn] for sn in sorted(serials)], headers=["Serial Number"], tablefmt="github"))
        typer.echo(f"\n{len(serials)} serial number(s) assigned")
    except MissingDataError as exc:
        state.logger.error("Connection settings incomplete: %s", exc)
        raise typer.Exit(code=2)
    except JamfError as exc:
        state.logger.error("Prestage scope error: %s", exc)
        raise typer.Exit(code=3)


def _change_scope(ctx: typer.Context, action: str, prestage: str, serials: List[str], serials_file: Optional[Path], mobile: bool) -> None:
    state: CliState = ctx.obj
    sns = _collect_serials(serials, serials_file)
    if not sns:
        typer.echo("No serial numbers given", err=True)
        raise typer.Exit(code=2)
    klass = _prestage_class(mobile)
    try:
        cnx = _connect(state)
        if action == "assign":
            scope = klass.assign(sns, to_prestage=prestage, cnx=cnx)
        else:
            scope = klass.unassign(sns, from_prestage=prestage, cnx=cnx)
        typer.echo(
            tabulate(
                [[scope.prestageId, len(scope.assignments), scope.versionLock]],
                headers=["Prestage ID", "Assigned", "Version Lock"],
                tablefmt="github",
            )
        )
    except MissingDataError as exc:
        state.logger.error("Connection settings incomplete: %s", exc)
        raise typer.Exit(code=2)
    except JamfError as exc:
        state.logger.error("Prestage %s error: %s", action, exc)
        raise typer.Exit(code=3)


@app.command("prestage-assign")
def prestage_assign_cmd(
    ctx: typer.Context,
    prestage: str = typer.Argument(..., help="Id or name of the prestage."),
    serials: List[str] = typer.Argument(None, help="Serial numbers to assign."),
    serials_file: Optional[Path] = typer.Option(None, "--serials-file", help="File with serial numbers, one per line."),
    mobile: bool = typer.Option(False, "--mobile", help="Use mobile device prestages instead of computer prestages."),
):
    """
    Assign serial numbers to a prestage.
    """
    _change_scope(ctx, "assign", prestage, serials, serials_file, mobile)


@app.command("prestage-unassign")
def prestage_unassign_cmd(
    ctx: typer.Context,
    prestage: str = typer.Argument(..., help="Id or name of the prestage."),
    serials: List[str] = typer.Argument(None, help="Serial numbers to unassign."),
    serials_file: Optional[Path] = typer.Option(None, "--serials-file", help="File with serial numbers, one per line."),
    mobile: bool = typer.Option(False, "--mobile", help="Use mobile device prestages instead of computer prestages."),
):
    """
    Remove serial numbers from a prestage.
    """
    _change_scope(ctx, "unassign", prestage, serials, serials_file, mobile)


@app.command("server-info")
def server_info_cmd(ctx: typer.Context):
    """
    Show the server, Jamf Pro version and connected account.
    """
    state: CliState = ctx.obj
    try:
        cnx = _connect(state)
        rows = [
            ["Server", cnx.base_url],
            ["Jamf Pro version", cnx.jamf_version],
            ["User", cnx.user],
            ["Auth method", cnx.token.method if cnx.token else None],
        ]
        typer.echo(tabulate(rows, tablefmt="github"))
    except MissingDataError as exc:
        state.logger.error("Connection settings incomplete: %s", exc)
        raise typer.Exit(code=2)
    except JamfError as exc:
        state.logger.error("Server info error: %s", exc)
        raise typer.Exit(code=3)


if __name__ == "__main__":
    app()
