import uuid
from datetime import date
from enum import Enum
from typing import ClassVar, List

from pydantic import BaseModel, ConfigDict, Field

# Largest amount a line item can hold; stays exact to the cent in a double
MAX_AMOUNT = 1e15

class ItemKind(str, Enum):
    CHARGE = "charge"
    DISCOUNT = "discount"

class LineItem(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str = ""
    amount: float = Field(default=0.0, ge=0, le=MAX_AMOUNT)
    kind: ItemKind = ItemKind.CHARGE

class IdentityRecord(BaseModel):
    """Flat record of optional text fields, persisted under STORAGE_KEY"""
    STORAGE_KEY: ClassVar[str] = ""

    def is_empty(self) -> bool:
        return not any(self.model_dump().values())

class Landlord(IdentityRecord):
    STORAGE_KEY: ClassVar[str] = "rent_invoice.landlord"

    name: str = ""
    phone: str = ""

class Tenant(IdentityRecord):
    STORAGE_KEY: ClassVar[str] = "rent_invoice.tenant"

    name: str = ""
    address: str = ""
    contact: str = ""

class InvoiceMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    invoice_id: str
    issue_date: date

    @classmethod
    def generate(cls) -> "InvoiceMetadata":
        return cls(invoice_id=uuid.uuid4().hex[:8].upper(), issue_date=date.today())

class Totals(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal: float
    discount_total: float
    total: float

class InvoiceSnapshot(BaseModel):
    """Everything export needs, copied at the moment export begins"""
    landlord: Landlord
    tenant: Tenant
    items: List[LineItem]
    metadata: InvoiceMetadata
