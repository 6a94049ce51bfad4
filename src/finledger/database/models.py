"""SQLAlchemy models for finledger database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    Text,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(12, 2)


class Account(Base):
    """Bank account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    kind = Column(String, nullable=False, default="checking")
    opening_balance = Column(MONEY, nullable=False, default=0)
    current_balance = Column(MONEY, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    transactions = relationship("Transaction", back_populates="account", passive_deletes=True)


class CategoryGroup(Base):
    """Category group model."""

    __tablename__ = "category_groups"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class Category(Base):
    """Category model."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    kind = Column(String, nullable=False, default="expense")
    group_id = Column(Integer, ForeignKey("category_groups.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    transactions = relationship("Transaction", back_populates="category", passive_deletes=True)


class CreditCard(Base):
    """Credit card model."""

    __tablename__ = "credit_cards"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    credit_limit = Column(MONEY, nullable=False, default=0)
    utilized_limit = Column(MONEY, nullable=False, default=0)
    closing_day = Column(Integer, nullable=False)
    due_day = Column(Integer, nullable=False)
    default_account_id = Column(Integer, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)
    brand = Column(String, nullable=True)
    last_digits = Column(String(4), nullable=True)
    color = Column(String(7), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    invoices = relationship("Invoice", back_populates="card", passive_deletes=True)


class Invoice(Base):
    """Credit card invoice model."""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    card_id = Column(Integer, ForeignKey("credit_cards.id", ondelete="CASCADE"), nullable=False)
    reference_month = Column(Integer, nullable=False)
    reference_year = Column(Integer, nullable=False)
    closing_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    total = Column(MONEY, nullable=False, default=0)
    amount_paid = Column(MONEY, nullable=False, default=0)
    status = Column(String, nullable=False, default="open")
    settlement_account_id = Column(Integer, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)
    # Plain column rather than a relationship: transactions point back at
    # their invoice, and the two links are maintained independently.
    settlement_transaction_id = Column(
        Integer, ForeignKey("transactions.id", ondelete="SET NULL", use_alter=True), nullable=True
    )
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # One invoice per card per calendar month
    __table_args__ = (
        UniqueConstraint("card_id", "reference_month", "reference_year", name="uq_invoice_card_period"),
    )
    __mapper_args__ = {"version_id_col": version}

    # Relationships
    card = relationship("CreditCard", back_populates="invoices")


class Series(Base):
    """Recurring series model."""

    __tablename__ = "series"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    description = Column(String, nullable=False)
    kind = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    occurrences = Column(Integer, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    description = Column(String, nullable=False)
    amount = Column(MONEY, nullable=False)
    kind = Column(String, nullable=False)
    accrual_date = Column(Date, nullable=False)
    settlement_date = Column(Date, nullable=True)
    paid = Column(Boolean, nullable=False, default=False)
    companion = Column(Boolean, nullable=False, default=False)
    origin = Column(String, nullable=False, default="manual")
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True, index=True)
    series_id = Column(Integer, ForeignKey("series.id", ondelete="SET NULL"), nullable=True, index=True)
    installment_group = Column(String(36), nullable=True, index=True)
    ordinal = Column(Integer, nullable=True)
    total_installments = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    account = relationship("Account", back_populates="transactions")
    category = relationship("Category", back_populates="transactions")


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """Make SQLite honour ON DELETE clauses."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
