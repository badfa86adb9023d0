import os
import tempfile
from datetime import date
from pathlib import Path

import pytest

# Point every file the app touches at a scratch directory before the
# project modules read their configuration.
_SCRATCH = Path(tempfile.mkdtemp(prefix="rent-invoice-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_SCRATCH / 'kv.db'}"
os.environ["EXPORT_DIR"] = str(_SCRATCH / "exports")
os.environ["LOG_FILE"] = str(_SCRATCH / "rent_invoice.log")
os.environ["CURRENCY_SYMBOL"] = "₹"

from database import Database  # noqa: E402
from identity_cache import IdentityCache  # noqa: E402
from models import InvoiceMetadata, InvoiceSnapshot, ItemKind, Landlord, LineItem, Tenant  # noqa: E402


@pytest.fixture
def storage(tmp_path):
    return Database(str(tmp_path / "identity.db"))


@pytest.fixture
def cache(storage):
    return IdentityCache(storage)


@pytest.fixture
def metadata():
    return InvoiceMetadata(invoice_id="AB12CD34", issue_date=date(2026, 10, 18))


@pytest.fixture
def snapshot(metadata):
    return InvoiceSnapshot(
        landlord=Landlord(name="Asha Verma", phone="98765 43210"),
        tenant=Tenant(name="Rohan Mehta", address="Flat 4B, Lake View Apartments, Pune", contact="rohan@example.com"),
        items=[
            LineItem(title="Rent", amount=15000, kind=ItemKind.CHARGE),
            LineItem(title="Loyalty", amount=1000, kind=ItemKind.DISCOUNT),
        ],
        metadata=metadata,
    )
