"""Command-line interface for the KAKEN client."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Optional

import structlog
import typer
from rich.console import Console
from rich.table import Table

from kaken.constants import (
    ALLOCATION_TYPES,
    PROJECT_SORT_OPTIONS,
    PROJECT_STATUS,
    PROJECT_TYPES,
    RESEARCHER_ROLES,
    RESEARCHER_SORT_OPTIONS,
)
from kaken.exceptions import KakenError
from kaken.models import (
    Project,
    ProjectSearchParams,
    ProjectsResponse,
    Researcher,
    ResearcherSearchParams,
    ResearchersResponse,
)
from kaken.services import KakenClient, ResponseCache
from kaken.settings import Settings, get_settings

console = Console()
app = typer.Typer(help="KAKEN – research grant and researcher search")

_PROJECT_DUMP_EXCLUDE: Any = {"raw_data": True, "projects": {"__all__": {"raw_data"}}}
_RESEARCHER_DUMP_EXCLUDE: Any = {
    "raw_data": True,
    "researchers": {
        "__all__": {
            "raw_data": True,
            "projects": {"__all__": {"raw_data"}},
            "products": {"__all__": {"raw_data"}},
        }
    },
}


@app.callback()
def main() -> None:
    """Configure logging from the resolved settings."""
    _configure_logging(get_settings().log_level)


def _configure_logging(log_level: str) -> None:
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # sys.stderr is looked up per logger; test runners swap it.
    return structlog.PrintLogger(file=sys.stderr)


def _check_code(value: Optional[str], labels: dict[str, str], option: str) -> Optional[str]:
    if value is not None and value not in labels:
        choices = ", ".join(f"{code} ({label})" for code, label in labels.items())
        raise typer.BadParameter(f"{value!r} is not one of {choices}", param_hint=option)
    return value


def _build_client(settings: Settings) -> KakenClient:
    return KakenClient(settings)


async def _run_project_search(params: ProjectSearchParams) -> ProjectsResponse:
    async with _build_client(get_settings()) as client:
        return await client.projects.search(params)


async def _run_researcher_search(params: ResearcherSearchParams) -> ResearchersResponse:
    async with _build_client(get_settings()) as client:
        return await client.researchers.search(params)


@app.command()
def config(
    json_output: bool = typer.Option(False, "--json", help="Output settings as JSON"),
) -> None:
    """Display the resolved settings."""
    settings = get_settings()
    if json_output:
        typer.echo(settings.model_dump_json(indent=2))
        return
    table = Table(title="KAKEN Settings")
    table.add_column("Key")
    table.add_column("Value", overflow="fold")
    for key, value in settings.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def projects(
    keyword: Optional[str] = typer.Argument(None, help="Free-text keyword"),
    title: Optional[str] = typer.Option(None, help="Project title"),
    number: Optional[str] = typer.Option(None, help="Project (award) number"),
    institution: Optional[str] = typer.Option(None, help="Research institution"),
    researcher: Optional[str] = typer.Option(None, help="Researcher name"),
    project_type: Optional[str] = typer.Option(
        None, "--type", help=f"Project type ({', '.join(PROJECT_TYPES)})"
    ),
    allocation: Optional[str] = typer.Option(
        None, help=f"Allocation type ({', '.join(ALLOCATION_TYPES)})"
    ),
    period_from: Optional[int] = typer.Option(None, "--from", help="Grant period start year"),
    period_to: Optional[int] = typer.Option(None, "--to", help="Grant period end year"),
    sort: Optional[str] = typer.Option(None, help="Sort order code (1-5)"),
    rows: int = typer.Option(20, help="Results per page (20, 50, 100, 200 or 500)"),
    start: int = typer.Option(1, help="Start index"),
    lang: Optional[str] = typer.Option(None, help="Response language (ja or en)"),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
) -> None:
    """Search research projects."""
    try:
        params = ProjectSearchParams(
            keyword=keyword,
            project_title=title,
            project_number=number,
            institution=institution,
            researcher_name=researcher,
            project_type=_check_code(project_type, PROJECT_TYPES, "--type"),
            allocation_type=_check_code(allocation, ALLOCATION_TYPES, "--allocation"),
            sort_order=_check_code(sort, PROJECT_SORT_OPTIONS, "--sort"),
            grant_period_from=period_from,
            grant_period_to=period_to,
            results_per_page=rows,
            start_index=start,
            language=lang,
        )
        result = asyncio.run(_run_project_search(params))
    except (KakenError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    if json_output:
        typer.echo(result.model_dump_json(indent=2, exclude_none=True, exclude=_PROJECT_DUMP_EXCLUDE))
        return
    _print_projects(result)


@app.command()
def researchers(
    keyword: Optional[str] = typer.Argument(None, help="Free-text keyword"),
    name: Optional[str] = typer.Option(None, help="Researcher name"),
    number: Optional[str] = typer.Option(None, help="Researcher number"),
    institution: Optional[str] = typer.Option(None, help="Researcher institution"),
    department: Optional[str] = typer.Option(None, help="Researcher department"),
    sort: Optional[str] = typer.Option(None, help="Sort order code (1-7)"),
    rows: int = typer.Option(20, help="Results per page (20, 50, 100, 200 or 500)"),
    start: int = typer.Option(1, help="Start index"),
    lang: Optional[str] = typer.Option(None, help="Response language (ja or en)"),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
) -> None:
    """Search researchers."""
    try:
        params = ResearcherSearchParams(
            keyword=keyword,
            researcher_name=name,
            researcher_number=number,
            researcher_institution=institution,
            researcher_department=department,
            sort_order=_check_code(sort, RESEARCHER_SORT_OPTIONS, "--sort"),
            results_per_page=rows,
            start_index=start,
            language=lang,
        )
        result = asyncio.run(_run_researcher_search(params))
    except (KakenError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    if json_output:
        typer.echo(
            result.model_dump_json(indent=2, exclude_none=True, exclude=_RESEARCHER_DUMP_EXCLUDE)
        )
        return
    _print_researchers(result)


@app.command("clear-cache")
def clear_cache() -> None:
    """Delete every cached API response."""
    settings = get_settings()
    cache = ResponseCache(settings.cache_dir, enabled=settings.use_cache)
    if not cache.enabled:
        console.print("[yellow]Caching is disabled – nothing to clear.")
        return
    asyncio.run(cache.clear())
    console.print(f"[green]Cleared cache:[/green] {settings.cache_dir}")


def _print_projects(result: ProjectsResponse) -> None:
    table = Table(title=f"Projects ({result.total_results if result.total_results is not None else '?'} total)")
    table.add_column("Number", no_wrap=True)
    table.add_column("Type")
    table.add_column("Title", overflow="fold")
    table.add_column("Period")
    table.add_column("Status")
    table.add_column("Principal investigator")
    for project in result.projects:
        table.add_row(
            project.award_number or "—",
            PROJECT_TYPES.get(project.project_type, project.project_type or "—"),
            project.title or project.title_en or "—",
            _format_period(project),
            _format_status(project),
            _principal_investigator(project),
        )
    console.print(table)


def _format_period(project: Project) -> str:
    period = project.period_of_award
    if period is None:
        return "—"
    start = period.start_fiscal_year if period.start_fiscal_year is not None else "?"
    end = period.end_fiscal_year if period.end_fiscal_year is not None else "?"
    return f"{start}–{end}"


def _format_status(project: Project) -> str:
    status = project.project_status
    if status is None:
        return "—"
    return PROJECT_STATUS.get(status.status_code, status.status_code)


def _principal_investigator(project: Project) -> str:
    for member in project.members or []:
        if member.role == "principal_investigator" and member.name:
            return f"{member.name.full_name} ({RESEARCHER_ROLES[member.role]})"
    return "—"


def _print_researchers(result: ResearchersResponse) -> None:
    table = Table(
        title=f"Researchers ({result.total_results if result.total_results is not None else '?'} total)"
    )
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("Reading")
    table.add_column("Affiliation", overflow="fold")
    for item in result.researchers:
        table.add_row(
            item.id or "—",
            item.name.full_name if item.name else "—",
            _name_reading(item),
            _current_affiliation(item),
        )
    console.print(table)


def _name_reading(researcher: Researcher) -> str:
    name = researcher.name
    if name is None:
        return "—"
    parts = [part for part in (name.family_name_reading, name.given_name_reading) if part]
    return " ".join(parts) or "—"


def _current_affiliation(researcher: Researcher) -> str:
    if not researcher.current_affiliations:
        return "—"
    affiliation = researcher.current_affiliations[0]
    parts = [
        entity.name
        for entity in (affiliation.institution, affiliation.department, affiliation.job_title)
        if entity is not None
    ]
    return " / ".join(parts)
