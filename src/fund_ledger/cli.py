import typer
from pathlib import Path
from typing import Optional
from datetime import date

from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from fund_ledger.config.settings import ConfigLoader
from fund_ledger.domain.enums import ALL_SCOPES, TransactionDirection, UserRole
from fund_ledger.domain.exceptions import AccessDeniedError, LedgerError
from fund_ledger.domain.models import DateRange, SessionContext, TransactionCandidate
from fund_ledger.domain.validation import parse_date, parse_direction
from fund_ledger.formatting import format_currency_vn, format_date_vn, parse_amount_input
from fund_ledger.logging_config import setup_logging
from fund_ledger.repositories.factory import BACKENDS, create_repository
from fund_ledger.services.export import export_transactions
from fund_ledger.services.ledger_service import LedgerService

app = typer.Typer(
    name="fund-ledger",
    help="Department fund ledger with running balances",
    add_completion=False,
)

console = Console()

class State:
    verbose: bool = False
    service: Optional[LedgerService] = None
    session: Optional[SessionContext] = None


state = State()

def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    if state.verbose:
        console.print_exception()
    raise typer.Exit(code=1)

def _date_range(start: Optional[str], end: Optional[str]) -> Optional[DateRange]:
    if start is None and end is None:
        return None
    return DateRange(
        start=parse_date(start) if start else None,
        end=parse_date(end) if end else None,
    )

def _resolve_scope(scope: Optional[str]) -> Optional[str]:
    """Explicit --scope (admins only) wins; otherwise the session decides"""
    if scope is None:
        return state.session.ledger_scope
    if not state.session.can_access(scope):
        raise AccessDeniedError(
            f"User '{state.session.username}' cannot use the ledger of '{scope}'"
        )
    return scope

def _amount_markup(direction: TransactionDirection, amount: int) -> str:
    if direction == TransactionDirection.INCOME:
        return f"[green]+{format_currency_vn(amount)}[/green]"
    return f"[red]-{format_currency_vn(amount)}[/red]"

@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    ),
    backend: Optional[str] = typer.Option(
        None,
        "--backend", "-b",
        help=f"Override the configured store ({', '.join(BACKENDS)})",
    ),
    user: str = typer.Option(
        "admin",
        "--user", "-u",
        help="Username recorded as performer",
    ),
    role: UserRole = typer.Option(
        UserRole.ADMIN,
        "--role",
        help="admin sees every department, staff only their own",
    ),
    department: Optional[str] = typer.Option(
        None,
        "--department", "-d",
        help="Department of the current user",
    ),
):
    """
    Fund Ledger - Record department fund income and expenses.
    """
    state.verbose = verbose

    if state.service is None:
        config = ConfigLoader.load_ledger_config()
        if backend:
            config["backend"] = backend
        setup_logging("DEBUG" if verbose else config.get("log_level", "WARNING"))
        try:
            repository = create_repository(config)
        except (LedgerError, ValueError) as e:
            _fail(e)
        state.service = LedgerService(
            repository,
            serialize_writes=bool(config.get("serialize_writes", True)),
        )

    state.session = SessionContext(username=user, role=role, scope=department)

@app.command(name="add")
def add(
    direction: str = typer.Option(
        ...,
        "--type", "-t",
        help="income/expense (or Thu/Chi)",
    ),
    amount: str = typer.Option(
        ...,
        "--amount", "-a",
        help="Whole amount, thousand separators allowed (1.200.000)",
    ),
    content: str = typer.Option(
        ...,
        "--content", "-c",
        help="What the money was for",
    ),
    on: Optional[str] = typer.Option(
        None,
        "--date",
        help="Transaction date YYYY-MM-DD (default: today)",
    ),
    performer: str = typer.Option(
        "",
        "--performer", "-p",
        help="Who handled the money (default: current user)",
    ),
    scope: Optional[str] = typer.Option(
        None,
        "--scope", "-s",
        help="Department ledger to post to (default: the user's department)",
    ),
):
    """
    Record an income or expense and show the new balance.

    Examples:
        fund-ledger add -t income -a 5.000.000 -c "Thu quỹ hàng tháng"
        fund-ledger -d "Khoa Dược" add -t expense -a 1200000 -c "Mua văn phòng phẩm"
    """
    try:
        candidate = TransactionCandidate(
            date=on or date.today(),
            direction=parse_direction(direction),
            amount=parse_amount_input(amount),
            description=content,
            performed_by=performer,
            scope=_resolve_scope(scope) if scope is not None else None,
        )
        txn = state.service.add_for_session(state.session, candidate)
    except (LedgerError, ValueError) as e:
        _fail(e)

    console.print(
        f"[bold green]✓ Recorded {txn.id}[/bold green] "
        f"{_amount_markup(txn.direction, txn.amount)} on {format_date_vn(txn.date)}"
    )
    console.print(f"Balance after: [bold]{format_currency_vn(txn.balance_after)}[/bold]")

@app.command(name="edit")
def edit(
    transaction_id: str = typer.Argument(..., help="Transaction ID"),
    direction: Optional[str] = typer.Option(None, "--type", "-t", help="income/expense"),
    amount: Optional[str] = typer.Option(None, "--amount", "-a", help="New amount"),
    content: Optional[str] = typer.Option(None, "--content", "-c", help="New description"),
    on: Optional[str] = typer.Option(None, "--date", help="New date YYYY-MM-DD"),
    performer: Optional[str] = typer.Option(None, "--performer", "-p", help="New performer"),
):
    """
    Edit a transaction in place.

    Stored balances are not recalculated; run `fund-ledger audit` to see
    which rows went stale.
    """
    fields = {}
    try:
        if direction is not None:
            fields["direction"] = parse_direction(direction)
        if amount is not None:
            fields["amount"] = parse_amount_input(amount)
        if content is not None:
            fields["description"] = content
        if on is not None:
            fields["date"] = on
        if performer is not None:
            fields["performed_by"] = performer

        txn = state.service.update_transaction(transaction_id, **fields)
    except (LedgerError, ValueError) as e:
        _fail(e)

    console.print(f"[bold green]✓ Updated {txn.id}[/bold green]")
    console.print(
        f"[yellow]Stored balance unchanged: {format_currency_vn(txn.balance_after)}[/yellow]"
    )

@app.command(name="delete")
def delete(
    transaction_id: str = typer.Argument(..., help="Transaction ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a transaction. Other rows keep their stored balances."""
    if not yes:
        typer.confirm(f"Delete transaction {transaction_id}?", abort=True)

    try:
        state.service.delete_transaction(transaction_id)
    except LedgerError as e:
        _fail(e)

    console.print(f"[bold green]✓ Deleted {transaction_id}[/bold green]")

@app.command(name="list")
def list_transactions(
    start: Optional[str] = typer.Option(None, "--from", help="First date YYYY-MM-DD"),
    end: Optional[str] = typer.Option(None, "--to", help="Last date YYYY-MM-DD"),
    scope: Optional[str] = typer.Option(
        None,
        "--scope", "-s",
        help=f"Department, or '{ALL_SCOPES}'",
    ),
):
    """
    Show the ledger with income/expense totals for the listed rows.

    The current balance always reflects the latest row in the scope,
    whatever the date filter.

    Examples:
        fund-ledger list
        fund-ledger list --from 2023-10-01 --to 2023-10-31
    """
    try:
        ledger_scope = _resolve_scope(scope)
        summary = state.service.summarize(
            scope=ledger_scope,
            date_range=_date_range(start, end),
        )
    except LedgerError as e:
        _fail(e)

    console.print(Panel(
        f"[bold]Current balance:[/bold] {format_currency_vn(summary.current_balance)}\n\n"
        f"[green]💰 Income:[/green]   {format_currency_vn(summary.totals.income_sum)}\n"
        f"[red]💸 Expenses:[/red] {format_currency_vn(summary.totals.expense_sum)}",
        title=f"[bold]Fund - {ledger_scope or ALL_SCOPES}[/bold]",
        border_style="cyan",
        padding=(1, 2)
    ))

    if not summary.transactions:
        console.print("[yellow]No transactions found[/yellow]")
        return

    txn_table = Table(show_header=True, padding=(0, 1))
    txn_table.add_column("ID", style="dim")
    txn_table.add_column("Date", style="cyan", width=12)
    txn_table.add_column("Department", style="magenta")
    txn_table.add_column("Content", style="white", max_width=40)
    txn_table.add_column("Performer")
    txn_table.add_column("Amount", justify="right")
    txn_table.add_column("Balance", justify="right", style="dim")

    for txn in summary.transactions:
        txn_table.add_row(
            txn.id,
            format_date_vn(txn.date),
            txn.scope or "-",
            txn.description,
            txn.performed_by,
            _amount_markup(txn.direction, txn.amount),
            format_currency_vn(txn.balance_after),
        )

    console.print(txn_table)

@app.command(name="balance")
def balance(
    scope: Optional[str] = typer.Option(None, "--scope", "-s", help="Department"),
):
    """Show the current balance of a department fund."""
    try:
        ledger_scope = _resolve_scope(scope)
        current = state.service.current_balance(ledger_scope)
    except LedgerError as e:
        _fail(e)

    console.print(f"{ledger_scope or ALL_SCOPES}: [bold]{format_currency_vn(current)}[/bold]")

@app.command(name="audit")
def audit(
    scope: Optional[str] = typer.Option(None, "--scope", "-s", help="Department"),
):
    """
    Compare stored balances with a replay of the ledger.

    Edits, deletes and concurrent writers can leave stored balances
    stale. Nothing is changed.
    """
    try:
        discrepancies = state.service.audit_balances(_resolve_scope(scope))
    except LedgerError as e:
        _fail(e)

    if not discrepancies:
        console.print("[bold green]✓ All stored balances match the ledger[/bold green]")
        return

    table = Table(title="Stale balances", show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Date", style="cyan")
    table.add_column("Stored", justify="right", style="red")
    table.add_column("Expected", justify="right", style="green")
    for item in discrepancies:
        table.add_row(
            item.transaction.id,
            format_date_vn(item.transaction.date),
            format_currency_vn(item.stored_balance),
            format_currency_vn(item.expected_balance),
        )
    console.print(table)
    raise typer.Exit(code=1)

@app.command(name="export")
def export(
    filepath: Path = typer.Argument(..., help="Destination .csv or .xlsx file"),
    start: Optional[str] = typer.Option(None, "--from", help="First date YYYY-MM-DD"),
    end: Optional[str] = typer.Option(None, "--to", help="Last date YYYY-MM-DD"),
    scope: Optional[str] = typer.Option(None, "--scope", "-s", help="Department"),
):
    """Export the (filtered) ledger to CSV or Excel."""
    try:
        transactions = state.service.list_transactions(
            scope=_resolve_scope(scope),
            date_range=_date_range(start, end),
        )
        written = export_transactions(transactions, filepath)
    except (LedgerError, ValueError, OSError) as e:
        _fail(e)

    console.print(f"[bold green]✓ Exported {len(transactions)} transactions to {written}[/bold green]")


def cli_main():
    """Entry point for the CLI"""
    app()


if __name__ == "__main__":
    cli_main()
