"""Typer-based CLI entry point."""

from __future__ import annotations

import functools
import logging
import signal
from decimal import Decimal
from typing import Iterable, List, Optional

import typer
from rich import print
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .appctx import AppContext
from .config import ADMIN_ROLE
from .domain.models import (
    STATUS_COLORS,
    STATUS_LABELS,
    DEFAULT_STATUS_COLOR,
    FilterSet,
    RosterStatistics,
    StudentRecord,
    validate_student_fields,
)
from .errors import (
    RemoteError,
    RosterError,
    SessionExpiredError,
    TransportError,
    ValidationError,
)
from .state.pagination import PageDescriptor

app = typer.Typer(help="Student roster client")
console = Console()
logger = logging.getLogger(__name__)

_context: Optional[AppContext] = None


def _create_context() -> AppContext:
    return AppContext()


def _ctx() -> AppContext:
    global _context
    if _context is None:
        _context = _create_context()
    return _context


def _handle_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (ValidationError, SessionExpiredError) as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc
        except TransportError as exc:
            typer.echo(f"Connection error: {exc}", err=True)
            raise typer.Exit(1) from exc
        except RemoteError as exc:
            typer.echo(f"Error: {exc.message}", err=True)
            raise typer.Exit(1) from exc
        except RosterError as exc:
            typer.echo(f"Unexpected error: {exc}", err=True)
            raise typer.Exit(1) from exc

    return wrapper


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show informational log output."),
) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------

def _status_markup(status: str) -> str:
    color = STATUS_COLORS.get(status, DEFAULT_STATUS_COLOR)
    return f"[{color}]{STATUS_LABELS.get(status, status)}[/]"


def _format_grade(grade: Optional[Decimal]) -> str:
    return "-" if grade is None else f"{grade:.2f}"


def _records_table(records: Iterable[StudentRecord], title: str = "Students") -> Table:
    table = Table(title=title)
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Program")
    table.add_column("Grade", justify="right")
    table.add_column("Status")
    for record in records:
        table.add_row(
            str(record.id),
            record.name,
            record.email,
            record.program,
            _format_grade(record.grade),
            _status_markup(record.status.value),
        )
    return table


def _pagination_line(page: PageDescriptor) -> str:
    visible = page.visible_range()
    if page.is_beyond_range:
        summary = f"Page {page.page} is past the last page ({page.total_pages})"
    elif visible is None:
        summary = "No students"
    else:
        summary = f"Showing {visible[0]}-{visible[1]} of {page.total} students"
    buttons = []
    for entry in page.window():
        if entry is None:
            buttons.append("...")
        elif entry == page.page:
            buttons.append(f"[bold][{entry}][/bold]")
        else:
            buttons.append(str(entry))
    return f"{summary}    {' '.join(buttons)}" if buttons else summary


def _statistics_table(stats: RosterStatistics) -> Table:
    table = Table(title="Statistics")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total students", str(stats.total_students))
    table.add_row("Average grade", f"{stats.average_grade:.2f}")
    table.add_row("Active", str(stats.active_students))
    table.add_row("Inactive", str(stats.inactive_students))
    table.add_row("Graduated", str(stats.graduated_students))
    for avg in stats.averages_by_status:
        table.add_row(f"Average ({_status_markup(avg.status)}, n={avg.count})", f"{avg.avg_grade:.2f}")
    return table


def _form_fields(
    name: Optional[str],
    email: Optional[str],
    program: Optional[str],
    grade: Optional[str],
    status: Optional[str],
) -> dict:
    values = {"name": name, "email": email, "program": program, "grade": grade, "status": status}
    return {key: value for key, value in values.items() if value is not None}


def _filters(
    search: Optional[str],
    status: Optional[str],
    program: Optional[str],
    grade_min: Optional[str],
    grade_max: Optional[str],
) -> FilterSet:
    filters = FilterSet()
    candidates = {
        "search": search,
        "status": status,
        "program": program,
        "grade_min": grade_min,
        "grade_max": grade_max,
    }
    for name, value in candidates.items():
        try:
            filters = filters.with_filter(name, value)
        except (ValueError, ValidationError) as exc:
            raise ValidationError(f"Invalid {name} filter: {value!r}") from exc
    return filters


# ---------------------------------------------------------------------------
# Session commands
# ---------------------------------------------------------------------------

@app.command()
@_handle_errors
def login(
    username: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
) -> None:
    """Authenticate against the API and store the session locally."""

    ctx = _ctx()
    token, user = ctx.auth.login(username, password)
    ctx.session.save(token, user)
    print(f"[green]Logged in as {user.username} ({user.role})")


@app.command()
@_handle_errors
def logout() -> None:
    """End the session; local credentials are removed even if the server fails."""

    ctx = _ctx()
    if ctx.session.is_authenticated():
        try:
            ctx.auth.logout()
        except RosterError as exc:
            logger.warning("Remote logout failed: %s", exc)
    ctx.session.clear()
    print("[green]Logged out")


@app.command()
@_handle_errors
def whoami() -> None:
    """Show the user of the stored session."""

    user = _ctx().session.require_auth()
    print(f"{user.username} ({user.role})")


# ---------------------------------------------------------------------------
# Record commands
# ---------------------------------------------------------------------------

@app.command("list")
@_handle_errors
def list_students(
    page: int = typer.Option(1, min=1),
    limit: Optional[int] = typer.Option(None, min=1, max=100),
    search: Optional[str] = typer.Option(None),
    status: Optional[str] = typer.Option(None),
    program: Optional[str] = typer.Option(None),
    grade_min: Optional[str] = typer.Option(None),
    grade_max: Optional[str] = typer.Option(None),
) -> None:
    """List one page of students."""

    ctx = _ctx()
    ctx.session.require_auth()
    filters = _filters(search, status, program, grade_min, grade_max)
    result = ctx.records.list_students(filters, page, limit or ctx.page_size)
    if result.records:
        console.print(_records_table(result.records))
    else:
        console.print(result.message or "No students found")
    console.print(_pagination_line(result.pagination))


@app.command()
@_handle_errors
def show(record_id: int) -> None:
    """Show a single student."""

    ctx = _ctx()
    ctx.session.require_auth()
    record = ctx.records.read_one(record_id)
    console.print(_records_table([record], title=f"Student {record_id}"))


@app.command()
@_handle_errors
def stats() -> None:
    """Show aggregate statistics."""

    ctx = _ctx()
    ctx.session.require_auth()
    console.print(_statistics_table(ctx.records.statistics()))


@app.command()
@_handle_errors
def create(
    name: str = typer.Option(...),
    email: str = typer.Option(...),
    program: str = typer.Option(...),
    grade: Optional[str] = typer.Option(None),
    status: Optional[str] = typer.Option(None),
) -> None:
    """Create a student."""

    ctx = _ctx()
    ctx.session.require_auth()
    fields = validate_student_fields(_form_fields(name, email, program, grade, status))
    print(f"[green]{ctx.records.create(fields)}")


@app.command()
@_handle_errors
def update(
    record_id: int,
    name: Optional[str] = typer.Option(None),
    email: Optional[str] = typer.Option(None),
    program: Optional[str] = typer.Option(None),
    grade: Optional[str] = typer.Option(None),
    status: Optional[str] = typer.Option(None),
) -> None:
    """Update selected fields of a student."""

    ctx = _ctx()
    ctx.session.require_auth()
    fields = validate_student_fields(_form_fields(name, email, program, grade, status), partial=True)
    print(f"[green]{ctx.records.update(record_id, fields)}")


@app.command()
@_handle_errors
def delete(
    record_id: int,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete a student."""

    ctx = _ctx()
    ctx.session.require_auth()
    if not yes and not typer.confirm("Are you sure you want to delete this student?"):
        raise typer.Abort()
    print(f"[green]{ctx.records.delete(record_id)}")


@app.command("batch-delete")
@_handle_errors
def batch_delete(
    record_ids: List[int] = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete several students at once (administrators only)."""

    ctx = _ctx()
    user = ctx.session.require_auth()
    if user.role != ADMIN_ROLE:
        raise ValidationError("Only administrators can delete several students at once")
    if not yes and not typer.confirm(f"Are you sure you want to delete {len(record_ids)} student(s)?"):
        raise typer.Abort()
    result = ctx.records.batch_delete(record_ids)
    print(f"[green]{result.deleted} student(s) deleted successfully")
    for failure in result.errors:
        print(f"[yellow]  {failure.id}: {failure.error}")


# ---------------------------------------------------------------------------
# Live view
# ---------------------------------------------------------------------------

@app.command()
@_handle_errors
def watch(
    search: Optional[str] = typer.Option(None),
    status: Optional[str] = typer.Option(None),
    program: Optional[str] = typer.Option(None),
    duration: Optional[float] = typer.Option(
        None, min=0, help="Stop after this many seconds instead of running until Ctrl+C."
    ),
) -> None:
    """Keep the first page on screen, refreshing it in the background."""

    from PySide6.QtCore import QCoreApplication, QTimer

    ctx = _ctx()
    ctx.session.require_auth()
    qt_app = QCoreApplication.instance() or QCoreApplication([])
    facade = ctx.create_facade()

    def _render(_page=None) -> None:
        if facade.records:
            console.print(_records_table(facade.records))
        else:
            console.print(facade.list_message or "No students found")
        console.print(_pagination_line(facade.pagination))

    def _render_message(message) -> None:
        if message is not None:
            console.print(f"{message.level.value.upper()}: {message.text}", markup=False)

    facade.paginationChanged.connect(_render)
    facade.statisticsChanged.connect(lambda s: console.print(_statistics_table(s)))
    facade.messageChanged.connect(_render_message)
    facade.sessionExpired.connect(qt_app.quit)

    facade.state.filters = _filters(search, status, program, None, None)
    facade.start()

    signal.signal(signal.SIGINT, lambda *_: qt_app.quit())
    # Give the interpreter a chance to run the SIGINT handler.
    heartbeat = QTimer()
    heartbeat.timeout.connect(lambda: None)
    heartbeat.start(250)
    if duration is not None:
        QTimer.singleShot(int(duration * 1000), qt_app.quit)
    try:
        qt_app.exec()
    finally:
        facade.teardown()
        heartbeat.stop()


if __name__ == "__main__":  # pragma: no cover - manual execution
    app()
