"""Mapper functions to convert SQLAlchemy models into domain entities.

This layer isolates the conversion logic, so string columns become enums
and nullable money columns become Decimals in exactly one place.
"""

from decimal import Decimal

from finledger.domain import entities as domain
from finledger.database.models import (
    Account as ORMAccount,
    Category as ORMCategory,
    CategoryGroup as ORMCategoryGroup,
    CreditCard as ORMCreditCard,
    Invoice as ORMInvoice,
    Series as ORMSeries,
    Transaction as ORMTransaction,
)


def _money(value) -> Decimal:
    return Decimal(value if value is not None else 0).quantize(Decimal("0.01"))


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        user_id=orm_account.user_id,
        name=orm_account.name,
        kind=domain.AccountKind(orm_account.kind),
        opening_balance=_money(orm_account.opening_balance),
        current_balance=_money(orm_account.current_balance),
        active=orm_account.active,
        created_at=orm_account.created_at,
    )


def category_group_to_domain(orm_group: ORMCategoryGroup) -> domain.CategoryGroup:
    return domain.CategoryGroup(
        id=orm_group.id,
        user_id=orm_group.user_id,
        name=orm_group.name,
        created_at=orm_group.created_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        user_id=orm_category.user_id,
        name=orm_category.name,
        kind=domain.CategoryKind(orm_category.kind),
        group_id=orm_category.group_id,
        created_at=orm_category.created_at,
    )


def credit_card_to_domain(orm_card: ORMCreditCard) -> domain.CreditCard:
    """Convert SQLAlchemy CreditCard model to domain CreditCard entity."""
    return domain.CreditCard(
        id=orm_card.id,
        user_id=orm_card.user_id,
        name=orm_card.name,
        credit_limit=_money(orm_card.credit_limit),
        utilized_limit=_money(orm_card.utilized_limit),
        closing_day=orm_card.closing_day,
        due_day=orm_card.due_day,
        default_account_id=orm_card.default_account_id,
        brand=orm_card.brand,
        last_digits=orm_card.last_digits,
        color=orm_card.color,
        active=orm_card.active,
        created_at=orm_card.created_at,
    )


def invoice_to_domain(orm_invoice: ORMInvoice) -> domain.Invoice:
    """Convert SQLAlchemy Invoice model to domain Invoice entity."""
    return domain.Invoice(
        id=orm_invoice.id,
        card_id=orm_invoice.card_id,
        reference_month=orm_invoice.reference_month,
        reference_year=orm_invoice.reference_year,
        closing_date=orm_invoice.closing_date,
        due_date=orm_invoice.due_date,
        total=_money(orm_invoice.total),
        amount_paid=_money(orm_invoice.amount_paid),
        status=domain.InvoiceStatus(orm_invoice.status),
        settlement_account_id=orm_invoice.settlement_account_id,
        settlement_transaction_id=orm_invoice.settlement_transaction_id,
        created_at=orm_invoice.created_at,
    )


def series_to_domain(orm_series: ORMSeries) -> domain.Series:
    return domain.Series(
        id=orm_series.id,
        user_id=orm_series.user_id,
        description=orm_series.description,
        kind=domain.TransactionKind(orm_series.kind),
        start_date=orm_series.start_date,
        end_date=orm_series.end_date,
        occurrences=orm_series.occurrences,
        active=orm_series.active,
        created_at=orm_series.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        user_id=orm_transaction.user_id,
        description=orm_transaction.description,
        amount=_money(orm_transaction.amount),
        kind=domain.TransactionKind(orm_transaction.kind),
        accrual_date=orm_transaction.accrual_date,
        settlement_date=orm_transaction.settlement_date,
        paid=orm_transaction.paid,
        companion=orm_transaction.companion,
        origin=domain.TransactionOrigin(orm_transaction.origin),
        account_id=orm_transaction.account_id,
        category_id=orm_transaction.category_id,
        invoice_id=orm_transaction.invoice_id,
        series_id=orm_transaction.series_id,
        installment_group=orm_transaction.installment_group,
        ordinal=orm_transaction.ordinal,
        total_installments=orm_transaction.total_installments,
        notes=orm_transaction.notes,
        created_at=orm_transaction.created_at,
    )
