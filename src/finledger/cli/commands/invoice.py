"""Invoice commands: listing, payment and maintenance."""

import click

from finledger.cli.error_handling import (
    handle_domain_error,
    parse_amount_or_exit,
    parse_date_or_exit,
)
from finledger.domain.account import AccountService
from finledger.domain.card import CreditCardService
from finledger.domain.category import CategoryService
from finledger.domain.entities import InvoiceStatus
from finledger.domain.errors import DomainError
from finledger.domain.invoice import InvoicePaymentProcessor, InvoiceService
from finledger.utils.resolver import resolve_account, resolve_card, resolve_category

STATUSES = [status.value for status in InvoiceStatus]


def _period(invoice) -> str:
    return f"{invoice.reference_month:02d}/{invoice.reference_year}"


def _echo_invoice_row(invoice) -> None:
    click.echo(
        f"ID: {invoice.id:4d} | Card {invoice.card_id:3d} | {_period(invoice)} | "
        f"Due {invoice.due_date.isoformat()} | Total: {invoice.total:>10} | "
        f"Paid: {invoice.amount_paid:>10} | {invoice.status.value}"
    )


@click.group()
def invoice_group():
    """Manage credit card invoices."""
    pass


@invoice_group.command("list")
@click.option("--card", help="Only invoices of this card (name or ID)")
@click.option("--status", type=click.Choice(STATUSES, case_sensitive=False), help="Only invoices with this status")
@click.pass_context
def list_invoices(ctx, card: str | None, status: str | None):
    """List invoices, newest period first."""
    db = ctx.obj["db"]
    user_id = ctx.obj["user_id"]
    service = InvoiceService(db, ctx.obj["config"])
    try:
        card_id = resolve_card(CreditCardService(db), user_id, card) if card else None
        invoices = service.list_invoices(user_id, card_id=card_id, status=status.lower() if status else None)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not invoices:
        click.echo("No invoices found.")
        return

    click.echo("\nInvoices:")
    click.echo("-" * 100)
    for invoice in invoices:
        _echo_invoice_row(invoice)


@invoice_group.command("show")
@click.argument("invoice_id", type=int)
@click.pass_context
def show_invoice(ctx, invoice_id: int):
    """Show an invoice with its purchases and settlements."""
    user_id = ctx.obj["user_id"]
    service = InvoiceService(ctx.obj["db"], ctx.obj["config"])
    try:
        invoice = service.get_invoice(user_id, invoice_id)
        transactions = service.list_invoice_transactions(user_id, invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"\nInvoice {invoice.id} ({_period(invoice)}) - {invoice.status.value}")
    click.echo(f"Closes: {invoice.closing_date.isoformat()}  Due: {invoice.due_date.isoformat()}")
    click.echo(f"Total: {invoice.total}  Paid: {invoice.amount_paid}  Remaining: {invoice.remaining}")
    click.echo("-" * 80)
    for txn in transactions:
        paid = "paid" if txn.paid else "open"
        click.echo(
            f"{txn.id:5d} | {txn.accrual_date.isoformat()} | {txn.description[:36]:36s} | "
            f"{txn.amount:>10} | {txn.origin.value} ({paid})"
        )


@invoice_group.command("create")
@click.argument("card", metavar="CARD")
@click.argument("month", type=click.IntRange(1, 12))
@click.argument("year", type=int)
@click.option("--closing-date", help="Closing date (defaults to the card's closing day)")
@click.option("--due-date", help="Due date (defaults to the card's due day)")
@click.option("--account", help="Account this invoice is paid from (name or ID)")
@click.pass_context
def create_invoice(
    ctx,
    card: str,
    month: int,
    year: int,
    closing_date: str | None,
    due_date: str | None,
    account: str | None,
):
    """Open an invoice for a card period ahead of any purchase.

    Examples:
        finledger invoice create "Visa" 3 2025
        finledger invoice create 1 3 2025 --due-date 2025-04-05 --account "Savings"
    """
    db = ctx.obj["db"]
    user_id = ctx.obj["user_id"]
    service = InvoiceService(db, ctx.obj["config"])
    closing = parse_date_or_exit(ctx, closing_date, "closing date") if closing_date else None
    due = parse_date_or_exit(ctx, due_date, "due date") if due_date else None
    try:
        card_id = resolve_card(CreditCardService(db), user_id, card)
        account_id = resolve_account(AccountService(db), user_id, account) if account else None
        invoice_id = service.create_invoice(
            user_id,
            card_id,
            month,
            year,
            closing_date=closing,
            due_date=due,
            settlement_account_id=account_id,
        )
        click.echo(f"Created invoice {month:02d}/{year} (ID: {invoice_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@invoice_group.command("update")
@click.argument("invoice_id", type=int)
@click.option("--status", type=click.Choice(STATUSES, case_sensitive=False), help="New status (not 'paid')")
@click.option("--closing-date", help="New closing date")
@click.option("--due-date", help="New due date")
@click.option("--account", help="Account the invoice is paid from (name or ID), or empty string to clear")
@click.pass_context
def update_invoice(
    ctx,
    invoice_id: int,
    status: str | None,
    closing_date: str | None,
    due_date: str | None,
    account: str | None,
):
    """Update an invoice's status, dates or settlement account."""
    db = ctx.obj["db"]
    user_id = ctx.obj["user_id"]
    service = InvoiceService(db, ctx.obj["config"])
    closing = parse_date_or_exit(ctx, closing_date, "closing date") if closing_date else None
    due = parse_date_or_exit(ctx, due_date, "due date") if due_date else None
    try:
        account_id = resolve_account(AccountService(db), user_id, account) if account else None
        invoice = service.update_invoice(
            user_id,
            invoice_id,
            status=status.lower() if status else None,
            closing_date=closing,
            due_date=due,
            settlement_account_id=account_id,
            clear_settlement_account=account == "",
        )
        click.echo(f"Updated invoice {invoice.id} ({_period(invoice)}): {invoice.status.value}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@invoice_group.command("pay")
@click.argument("invoice_id", type=int)
@click.option("--amount", help="Amount to pay (defaults to the remaining balance)")
@click.option("--account", required=True, help="Account to pay from (name or ID)")
@click.option("--date", "pay_date", default="today", help="Payment date (default: today)")
@click.option("--category", help="Category for the payment (name or ID)")
@click.option("--description", help="Description for the payment transaction")
@click.pass_context
def pay_invoice(
    ctx,
    invoice_id: int,
    amount: str | None,
    account: str,
    pay_date: str,
    category: str | None,
    description: str | None,
):
    """Pay all or part of an invoice.

    Examples:
        finledger invoice pay 3 --account "Checking"
        finledger invoice pay 3 --account 1 --amount 250.00 --date 2025-02-20
    """
    db = ctx.obj["db"]
    user_id = ctx.obj["user_id"]
    processor = InvoicePaymentProcessor(db, ctx.obj["config"])
    settlement_date = parse_date_or_exit(ctx, pay_date, "payment date")
    payment = parse_amount_or_exit(ctx, amount) if amount else None
    try:
        account_id = resolve_account(AccountService(db), user_id, account)
        category_id = resolve_category(CategoryService(db), user_id, category) if category else None
        if payment is None:
            payment = InvoiceService(db, ctx.obj["config"]).get_invoice(user_id, invoice_id).remaining
        outcome = processor.pay(
            user_id,
            invoice_id,
            payment,
            settlement_date,
            account_id,
            category_id=category_id,
            description=description,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(
        f"Paid {payment} on invoice {invoice_id}. "
        f"Status: {outcome.invoice.status.value}, remaining: {outcome.remaining}"
    )


@invoice_group.command("delete")
@click.argument("invoice_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_invoice(ctx, invoice_id: int, yes: bool):
    """Delete an invoice with its purchases and settlements."""
    user_id = ctx.obj["user_id"]
    service = InvoiceService(ctx.obj["db"], ctx.obj["config"])
    try:
        invoice = service.get_invoice(user_id, invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not yes and not click.confirm(
        f"Delete invoice {_period(invoice)} (ID: {invoice_id}) with all its transactions?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_invoice(user_id, invoice_id)
        click.echo(f"Deleted invoice {invoice_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@invoice_group.command("refresh-overdue")
@click.option("--date", "as_of", default="today", help="Check due dates against this date (default: today)")
@click.pass_context
def refresh_overdue(ctx, as_of: str):
    """Flag unpaid invoices past their due date as overdue."""
    service = InvoiceService(ctx.obj["db"], ctx.obj["config"])
    today = parse_date_or_exit(ctx, as_of)
    try:
        flagged = service.refresh_overdue(ctx.obj["user_id"], today)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    if flagged:
        click.echo(f"Flagged {len(flagged)} invoice(s) overdue: {', '.join(str(i) for i in flagged)}")
    else:
        click.echo("No overdue invoices.")


def register_commands(cli):
    """Register invoice commands with main CLI."""
    cli.add_command(invoice_group, name="invoice")
