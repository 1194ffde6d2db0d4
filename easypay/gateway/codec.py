"""
Field codec for Easypay response documents.

Responses are flat XML records; each child element is decoded to a typed
value according to its name. Unknown names stay plain text.
"""
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from xml.etree import ElementTree

from easypay.errors import DecodeError
from easypay.payments.constants import COLLECTION_RECORD
from easypay.services.money import format_money, round_money

INTEGER_FIELDS = frozenset({"ep_cin", "ep_entity", "ep_reference"})
DECIMAL_FIELDS = frozenset(
    {"ep_value_fixed", "ep_value_var", "ep_value_tax", "ep_value_transf", "ep_value"}
)
DATE_FIELDS = frozenset({"ep_date", "ep_date_read", "ep_date_transf"})

# Accepted date formats: date-only first (also used for encoding)
DATE_FORMATS = ("%Y-%m-%d", "%Y-%m-%d %H:%M:%S")

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)")


def _decode_int(name: str, raw: str) -> int:
    text = raw.strip()
    # int() would also accept "1_000" and non-ASCII digits
    if not _INTEGER_RE.fullmatch(text):
        raise DecodeError(name, raw, "not a base-10 integer")
    return int(text)


def _decode_decimal(name: str, raw: str) -> Decimal:
    text = raw.strip()
    # Decimal() would also accept exponents, NaN and non-ASCII digits
    if not _DECIMAL_RE.fullmatch(text):
        raise DecodeError(name, raw, "not a decimal number")
    return round_money(Decimal(text))


def _decode_date(name: str, raw: str) -> datetime:
    text = raw.strip()
    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        # Gateway timestamps carry no offset; treat them as UTC
        return parsed.replace(tzinfo=timezone.utc)
    raise DecodeError(name, raw, f"expected one of {', '.join(DATE_FORMATS)}")


def decode_field(name: str, raw: str | None) -> Any:
    """
    Decode one response field.

    Raises:
        DecodeError: If the text does not match the field's type
    """
    text = raw or ""
    if name in INTEGER_FIELDS:
        return _decode_int(name, text)
    if name in DECIMAL_FIELDS:
        return _decode_decimal(name, text)
    if name in DATE_FIELDS:
        return _decode_date(name, text)
    return text


def decode_element(element: ElementTree.Element) -> dict[str, Any]:
    """Decode the direct children of a record element into a mapping."""
    return {child.tag: decode_field(child.tag, child.text) for child in element}


def decode_collection(root: ElementTree.Element) -> list[dict[str, Any]]:
    """Decode every repeated record of a collection response."""
    return [decode_element(record) for record in root.iter(COLLECTION_RECORD)]


def encode_value(value: Any) -> str:
    """Encode a request value as invariant text (inverse of decode_field)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Decimal, float)):
        return format_money(value)
    if isinstance(value, (datetime, date)):
        return value.strftime(DATE_FORMATS[0])
    return str(value)
