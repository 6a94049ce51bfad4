"""Shared pytest fixtures for finledger tests."""

import os
import tempfile
from decimal import Decimal

import pytest

from finledger.config import LedgerConfig
from finledger.database.factories import create_sqlite_database
from finledger.domain.account import AccountService
from finledger.domain.card import CreditCardService
from finledger.domain.category import CategoryService
from finledger.domain.invoice import InvoicePaymentProcessor, InvoiceService
from finledger.domain.series import SeriesService
from finledger.domain.transaction import TransactionService

USER_ID = 1
OTHER_USER_ID = 2


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def config():
    """Default ledger configuration."""
    return LedgerConfig()


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService with a temporary database."""
    return CategoryService(temp_db)


@pytest.fixture
def card_service(temp_db, config):
    """Create a CreditCardService with a temporary database."""
    return CreditCardService(temp_db, config)


@pytest.fixture
def transaction_service(temp_db, config):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db, config)


@pytest.fixture
def invoice_service(temp_db, config):
    """Create an InvoiceService with a temporary database."""
    return InvoiceService(temp_db, config)


@pytest.fixture
def payment_processor(temp_db, config):
    """Create an InvoicePaymentProcessor with a temporary database."""
    return InvoicePaymentProcessor(temp_db, config)


@pytest.fixture
def series_service(temp_db):
    """Create a SeriesService with a temporary database."""
    return SeriesService(temp_db)


@pytest.fixture
def sample_account(account_service):
    """Checking account with an opening balance of 1000.00."""
    account_id = account_service.create_account(
        USER_ID, name="Checking", opening_balance=Decimal("1000.00")
    )
    return account_service.get_account(USER_ID, account_id)


@pytest.fixture
def sample_card(card_service, sample_account):
    """Card closing on the 10th, due on the 20th, paid from the sample account."""
    card_id = card_service.create_card(
        USER_ID,
        name="Visa",
        credit_limit=Decimal("5000.00"),
        closing_day=10,
        due_day=20,
        default_account_id=sample_account.id,
    )
    return card_service.get_card(USER_ID, card_id)


@pytest.fixture
def sample_category(category_service):
    category_id = category_service.create_category(USER_ID, name="Groceries", kind="expense")
    return category_service.get_category(USER_ID, category_id)


@pytest.fixture
def other_account(account_service):
    """Account owned by a different user."""
    account_id = account_service.create_account(OTHER_USER_ID, name="Theirs")
    return account_service.get_account(OTHER_USER_ID, account_id)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
