"""Typer CLI for LocalRank.

Track local rankings, run GMB audits, and manage SEO clients. Every
command prints a JSON document to stdout; failures print ``{"error": ...}``
to stderr and exit with code 1.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx
import typer
from rich.console import Console

from localrank.app import LocalRankConfig, load_config
from localrank.integrations.localrank_client import LocalRankAPIError, LocalRankClient
from localrank.utils.config_store import ConfigurationError, CredentialStore, validate_api_key
from localrank.workflows import ReportWorkflow

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(
    name="localrank",
    help="LocalRank CLI -- local rankings, client reports, audits & agency tools.",
    add_completion=False,
    no_args_is_help=True,
)

API_KEY_URL = "https://app.localrank.so/settings/api"


def _setup_logging(verbose: bool = False) -> None:
    """Log to stderr; stdout is reserved for JSON output."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _load_config() -> LocalRankConfig:
    return load_config()


def _build_workflow(config: LocalRankConfig) -> ReportWorkflow:
    return ReportWorkflow(config)


def _print_json(data: Any) -> None:
    console.print_json(data=data, default=str)


def _fail(message: str) -> None:
    err_console.print_json(data={"error": message})
    raise typer.Exit(code=1)


def _run(action: Callable[[ReportWorkflow], Awaitable[Any]]) -> None:
    """Build a workflow, run *action* on it, and print the JSON result."""
    async def _main():
        async with _build_workflow(_load_config()) as workflow:
            return await action(workflow)

    try:
        result = asyncio.run(_main())
    except (ConfigurationError, LocalRankAPIError) as exc:
        _fail(str(exc))
    except httpx.HTTPError as exc:
        _fail("Request failed: " + (str(exc) or type(exc).__name__))
    else:
        _print_json(result)


def _require(value: Optional[str], usage: str) -> str:
    if not value:
        err_console.print("Usage: localrank " + usage)
        raise typer.Exit(code=1)
    return value


def render_update_email(fields: dict[str, Any]) -> str:
    """Render the monthly update email from structured client fields."""
    name = fields["business_name"]
    avg_rank = fields.get("avg_rank")
    rank_text = f"#{avg_rank:g}" if avg_rank is not None else "#N/A"

    change_line = ""
    if fields.get("direction") == "improved":
        change_line = f"Rankings improved by {fields['change']:g} positions!"
    elif fields.get("direction") == "dropped":
        change_line = (
            f"Rankings dropped by {fields['change']:g} positions - "
            "we're working on recovery."
        )

    lines = [
        f"Subject: {name} - Monthly SEO Update",
        "",
        "Hi,",
        "",
        f"Here's your monthly local SEO update for {name}.",
        "",
        "**Current Performance:**",
        f"- Average Local Rank: {rank_text}",
        f"- Keywords Tracked: {fields.get('keywords_tracked', 0)}",
    ]
    if change_line:
        lines += ["", f"**This Period:** {change_line}"]
    if fields.get("view_url"):
        lines += ["", f"**View Your Ranking Map:** {fields['view_url']}"]
    lines += ["", "Let me know if you have any questions!", "", "Best regards"]
    return "\n".join(lines)


# ------------------------------------------------------------------
# setup / config
# ------------------------------------------------------------------
@app.command()
def setup(
    key: Optional[str] = typer.Option(None, "--key", help="API key (skips the prompt)."),
    location: str = typer.Option("global", "--location", help="Where to save: global or local."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure and verify the LocalRank API key."""
    _setup_logging(verbose)
    if location not in ("global", "local"):
        _fail("Unknown location: " + location)
    if key is None:
        err_console.print("Get your API key at: " + API_KEY_URL)
        key = typer.prompt("API Key")

    try:
        api_key = validate_api_key(key)
    except ConfigurationError as exc:
        _fail(str(exc))

    async def _verify():
        config = _load_config()
        async with LocalRankClient(
            api_key=api_key, api_base=config.api_base, max_retries=0,
        ) as client:
            await client.list_businesses(page_size=1)

    try:
        asyncio.run(_verify())
    except (LocalRankAPIError, httpx.HTTPError) as exc:
        _fail("API key verification failed: " + str(exc))

    path = CredentialStore().save(api_key, location=location)
    _print_json({"saved": True, "config_path": str(path)})


@app.command("config:show")
def config_show(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Show the active configuration with the API key masked."""
    _setup_logging(verbose)
    _print_json(_load_config().describe())


# ------------------------------------------------------------------
# businesses / scans
# ------------------------------------------------------------------
@app.command("businesses:list")
def businesses_list(
    search: Optional[str] = typer.Option(None, "--search", help="Filter by name."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """List all tracked businesses."""
    _setup_logging(verbose)
    _run(lambda wf: wf.businesses(search))


@app.command("scans:list")
def scans_list(
    limit: Optional[int] = typer.Option(None, "--limit", help="Number of scans (max 50)."),
    business: Optional[str] = typer.Option(None, "--business", help="Filter by business name."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """List recent scans."""
    _setup_logging(verbose)
    _run(lambda wf: wf.scans(limit=limit, business=business))


@app.command("scans:get")
def scans_get(
    scan_id: Optional[str] = typer.Argument(None, help="Scan identifier."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Get keyword-level scan details."""
    _setup_logging(verbose)
    scan_id = _require(scan_id, "scans:get <scan_id>")
    _run(lambda wf: wf.scan_detail(scan_id))


# ------------------------------------------------------------------
# reports
# ------------------------------------------------------------------
@app.command("client:report")
def client_report(
    name: Optional[str] = typer.Argument(None, help="Business name."),
    business: Optional[str] = typer.Option(None, "--business", help="Business name."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Full client report with keyword wins and drops."""
    _setup_logging(verbose)
    target = _require(business or name, 'client:report --business "Business Name"')
    _run(lambda wf: wf.client_report(target))


@app.command("portfolio:summary")
def portfolio_summary(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Overview of all clients, declining first."""
    _setup_logging(verbose)
    _run(lambda wf: wf.portfolio_summary())


@app.command("prioritize:today")
def prioritize_today(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """What to work on today: urgent, important, and quick wins."""
    _setup_logging(verbose)
    _run(lambda wf: wf.prioritize_today())


@app.command("quick-wins:find")
def quick_wins_find(
    business: Optional[str] = typer.Option(None, "--business", help="Filter by business name."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Keywords ranking 11-20, close to page 1."""
    _setup_logging(verbose)
    _run(lambda wf: wf.quick_wins(business))


@app.command("at-risk:clients")
def at_risk_clients(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Clients who might churn, highest risk first."""
    _setup_logging(verbose)
    _run(lambda wf: wf.at_risk())


# ------------------------------------------------------------------
# audits
# ------------------------------------------------------------------
@app.command("audit:run")
def audit_run(
    target: Optional[str] = typer.Argument(None, help="Google Maps place URL."),
    url: Optional[str] = typer.Option(None, "--url", help="Google Maps place URL."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Run a GMB audit (costs credits)."""
    _setup_logging(verbose)
    gmb_url = _require(url or target, 'audit:run --url "https://google.com/maps/place/..."')
    _run(lambda wf: wf.run_audit(gmb_url))


@app.command("audit:get")
def audit_get(
    audit_id: Optional[str] = typer.Argument(None, help="Audit identifier."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Get GMB audit results."""
    _setup_logging(verbose)
    audit_id = _require(audit_id, "audit:get <audit_id>")
    _run(lambda wf: wf.get_audit(audit_id))


# ------------------------------------------------------------------
# tools
# ------------------------------------------------------------------
@app.command("recommendations:get")
def recommendations_get(
    name: Optional[str] = typer.Argument(None, help="Business name."),
    business: Optional[str] = typer.Option(None, "--business", help="Business name."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """How to help a client: product recommendations."""
    _setup_logging(verbose)
    target = _require(business or name, 'recommendations:get --business "Business Name"')
    _run(lambda wf: wf.recommendations(target))


@app.command("email:draft")
def email_draft(
    name: Optional[str] = typer.Argument(None, help="Business name."),
    business: Optional[str] = typer.Option(None, "--business", help="Business name."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Draft a monthly update email for a client."""
    _setup_logging(verbose)
    target = _require(business or name, 'email:draft --business "Business Name"')

    async def _draft(wf: ReportWorkflow) -> dict[str, Any]:
        fields = await wf.update_fields(target)
        if "error" in fields:
            return fields
        return {
            "business_name": fields["business_name"],
            "email_draft": render_update_email(fields),
        }

    _run(_draft)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
