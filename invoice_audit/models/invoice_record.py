"""InvoiceRecord data model representing one normalized invoice or credit note."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple, Union

Number = Union[int, float]

# Upstream ingestion emits camelCase keys; internal names are snake_case.
_RECORD_KEY_ALIASES = {
    "invoiceNumber": "invoice_number",
    "customerCode": "customer_code",
    "taxRate": "tax_rate",
    "taxAmount": "tax_amount",
    "discountAmount": "discount_amount",
    "totalAmount": "total_amount",
    "lineItems": "line_items",
}

_LINE_ITEM_KEY_ALIASES = {
    "unitPrice": "unit_price",
    "lineTotal": "line_total",
}


def _normalize_keys(data: Dict[str, Any], aliases: Dict[str, str]) -> Dict[str, Any]:
    return {aliases.get(key, key): value for key, value in data.items()}


@dataclass(frozen=True)
class LineItem:
    """A single line on an invoice.

    Attributes:
        description: Product/service description
        quantity: Ordered quantity
        unit_price: Price per unit
        line_total: Recorded line total (quantity × unit_price expected)
    """

    description: str = ""
    quantity: Optional[Number] = None
    unit_price: Optional[Number] = None
    line_total: Optional[Number] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineItem":
        data = _normalize_keys(data, _LINE_ITEM_KEY_ALIASES)
        return cls(
            description=data.get("description", "") or "",
            quantity=data.get("quantity"),
            unit_price=data.get("unit_price"),
            line_total=data.get("line_total"),
        )


@dataclass(frozen=True)
class InvoiceRecord:
    """An already type-coerced invoice record supplied by upstream ingestion.

    Records are immutable; the validation engine only reads them.

    Attributes:
        id: Unique record identifier
        invoice_number: Invoice/credit note number as printed
        customer_code: Customer reference
        amount: Net amount before tax and discount
        tax_rate: Tax rate in percent (e.g. 10 for 10%)
        tax_amount: Recorded tax amount
        discount_amount: Recorded discount (defaults to 0)
        total_amount: Recorded gross total
        date: Invoice date
        currency: ISO currency code
        line_items: Optional line items
    """

    id: str
    invoice_number: str = ""
    customer_code: str = ""
    amount: Optional[Number] = None
    tax_rate: Optional[Number] = None
    tax_amount: Optional[Number] = None
    discount_amount: Optional[Number] = 0
    total_amount: Optional[Number] = None
    date: Optional[Union[date, datetime, str]] = None
    currency: str = ""
    line_items: Tuple[LineItem, ...] = field(default_factory=tuple)

    def __post_init__(self):
        """Validate that the record can be identified."""
        if self.id is None or str(self.id) == "":
            raise ValueError("InvoiceRecord must have a non-empty id")

    @property
    def has_line_items(self) -> bool:
        return len(self.line_items) > 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvoiceRecord":
        """Create an InvoiceRecord from a dict with snake_case or camelCase keys."""
        data = _normalize_keys(data, _RECORD_KEY_ALIASES)
        line_items = tuple(
            item if isinstance(item, LineItem) else LineItem.from_dict(item)
            for item in (data.get("line_items") or [])
        )
        discount = data.get("discount_amount", 0)
        return cls(
            id=str(data.get("id", "")),
            invoice_number=data.get("invoice_number", "") or "",
            customer_code=data.get("customer_code", "") or "",
            amount=data.get("amount"),
            tax_rate=data.get("tax_rate"),
            tax_amount=data.get("tax_amount"),
            discount_amount=0 if discount is None else discount,
            total_amount=data.get("total_amount"),
            date=data.get("date"),
            currency=data.get("currency", "") or "",
            line_items=line_items,
        )
