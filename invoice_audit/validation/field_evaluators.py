"""Pure per-field evaluators computing expected values from a record's inputs.

Every validated field is registered statically in FIELD_EVALUATORS; lookup
never falls back to attribute names, so an unknown field fails fast.
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..errors import ConfigurationError, FieldEvaluationError
from ..models.invoice_record import InvoiceRecord, LineItem

TAX_AMOUNT = "tax_amount"
TOTAL_AMOUNT = "total_amount"
SUBTOTAL = "subtotal"
LINE_ITEM_TOTAL = "line_item_total"


def to_decimal(value) -> Optional[Decimal]:
    """Convert a numeric value to Decimal via str() so 0.1 stays 0.1.

    Returns:
        Decimal, or None for None, booleans, non-numeric and non-finite values
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def round_amount(value: Decimal, precision: int = 2) -> Decimal:
    """Round half-up to the given number of decimals (currency rounding)."""
    return value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)


def _require(record: InvoiceRecord, field: str, name: str) -> Decimal:
    value = to_decimal(getattr(record, name, None))
    if value is None:
        raise FieldEvaluationError(
            field, f"'{name}' is missing or not numeric", record_id=record.id
        )
    return value


def expected_tax(record: InvoiceRecord) -> Decimal:
    """expected tax = amount × tax_rate / 100"""
    amount = _require(record, TAX_AMOUNT, "amount")
    tax_rate = _require(record, TAX_AMOUNT, "tax_rate")
    return amount * tax_rate / Decimal(100)


def expected_total(record: InvoiceRecord) -> Decimal:
    """expected total = amount + tax_amount − discount_amount"""
    amount = _require(record, TOTAL_AMOUNT, "amount")
    tax_amount = _require(record, TOTAL_AMOUNT, "tax_amount")
    discount = to_decimal(record.discount_amount) if record.discount_amount is not None else Decimal(0)
    if discount is None:
        raise FieldEvaluationError(
            TOTAL_AMOUNT, "'discount_amount' is not numeric", record_id=record.id
        )
    return amount + tax_amount - discount


def expected_subtotal(record: InvoiceRecord) -> Optional[Decimal]:
    """expected subtotal (compared against amount) = sum of line totals.

    Not applicable (None) for records without line items.
    """
    if not record.has_line_items:
        return None
    subtotal = Decimal(0)
    for index, line_item in enumerate(record.line_items, start=1):
        line_total = to_decimal(line_item.line_total)
        if line_total is None:
            raise FieldEvaluationError(
                SUBTOTAL,
                f"line item {index} has no numeric line_total",
                record_id=record.id,
            )
        subtotal += line_total
    return subtotal


def expected_line_item_total(line_item: LineItem) -> Decimal:
    """expected line total = quantity × unit_price"""
    quantity = to_decimal(line_item.quantity)
    unit_price = to_decimal(line_item.unit_price)
    if quantity is None or unit_price is None:
        raise FieldEvaluationError(LINE_ITEM_TOTAL, "quantity or unit_price is missing or not numeric")
    return quantity * unit_price


@dataclass(frozen=True)
class FieldEvaluator:
    """Registration entry for one validated field.

    Attributes:
        field: Field name reported on results
        evaluate: Pure function record -> expected value (None = not applicable)
        recorded_attr: Record attribute holding the recorded value
        requires: Record attributes needed for the computation
        rule: ValidationRules flag enabling the check
    """

    field: str
    evaluate: Callable[[InvoiceRecord], Optional[Decimal]]
    recorded_attr: str
    requires: Tuple[str, ...]
    rule: str


FIELD_EVALUATORS: Dict[str, FieldEvaluator] = {
    TAX_AMOUNT: FieldEvaluator(
        field=TAX_AMOUNT,
        evaluate=expected_tax,
        recorded_attr="tax_amount",
        requires=("amount", "tax_rate", "tax_amount"),
        rule="validate_tax_calculation",
    ),
    TOTAL_AMOUNT: FieldEvaluator(
        field=TOTAL_AMOUNT,
        evaluate=expected_total,
        recorded_attr="total_amount",
        requires=("amount", "tax_amount", "total_amount"),
        rule="validate_total_calculation",
    ),
    SUBTOTAL: FieldEvaluator(
        field=SUBTOTAL,
        evaluate=expected_subtotal,
        recorded_attr="amount",
        requires=("amount",),
        rule="validate_subtotal",
    ),
}


def validate_field_names(fields: Iterable[str]) -> List[str]:
    """Check that every field has a registered evaluator.

    Raises:
        ConfigurationError: On the first unknown field
    """
    fields = list(fields)
    unknown = [field for field in fields if field not in FIELD_EVALUATORS]
    if unknown:
        raise ConfigurationError(
            f"No evaluator registered for field(s): {', '.join(unknown)} "
            f"(known: {', '.join(sorted(FIELD_EVALUATORS))})"
        )
    return fields


def evaluate_field(record: InvoiceRecord, field: str, precision: int = 2) -> Optional[Decimal]:
    """Compute the expected value of a field, rounded to currency precision.

    Returns:
        Expected value, or None if the field does not apply to this record

    Raises:
        FieldEvaluationError: Unknown field or evaluation failure
    """
    evaluator = FIELD_EVALUATORS.get(field)
    if evaluator is None:
        raise FieldEvaluationError(field, f"No evaluator registered for field '{field}'", record_id=record.id)
    try:
        expected = evaluator.evaluate(record)
    except FieldEvaluationError:
        raise
    except (ArithmeticError, TypeError, ValueError) as e:
        raise FieldEvaluationError(field, f"Evaluation of '{field}' failed: {e}", record_id=record.id) from e
    if expected is None:
        return None
    return round_amount(expected, precision)


def recorded_value(record: InvoiceRecord, field: str) -> Optional[Decimal]:
    """Return the recorded value compared against a field's expected value."""
    evaluator = FIELD_EVALUATORS.get(field)
    if evaluator is None:
        raise FieldEvaluationError(field, f"No evaluator registered for field '{field}'", record_id=record.id)
    return to_decimal(getattr(record, evaluator.recorded_attr, None))


def missing_required_fields(record: InvoiceRecord, fields: Iterable[str]) -> List[str]:
    """List record attributes that the given fields need but that are missing or not numeric."""
    missing = []
    for field in fields:
        for name in FIELD_EVALUATORS[field].requires:
            if name not in missing and to_decimal(getattr(record, name, None)) is None:
                missing.append(name)
    return missing
