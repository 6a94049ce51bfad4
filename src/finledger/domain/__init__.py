"""Domain layer for finledger application.

Services are imported lazily: the database layer imports domain entities,
and the services import the database layer.
"""

_SERVICES = {
    "AccountService": "finledger.domain.account",
    "CategoryService": "finledger.domain.category",
    "CreditCardService": "finledger.domain.card",
    "InvoiceService": "finledger.domain.invoice",
    "InvoicePaymentProcessor": "finledger.domain.invoice",
    "SeriesService": "finledger.domain.series",
    "TransactionService": "finledger.domain.transaction",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
