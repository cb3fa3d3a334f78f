"""``{{ dotted.path }}`` substitution against a nested data context.

A token whose path is missing, or whose value is None, is *unresolved*.
Unresolved tokens take the caller's default for that path when one is given
and otherwise stay in the output exactly as written. Tokens with unbalanced
braces never match and are left untouched. Nothing here raises.

Example:
    >>> resolve("Quotation {{quotation.number}}", {"quotation": {"number": "Q-7"}})
    'Quotation Q-7'
    >>> resolve("{{client.name}}", {}, defaults=DOCUMENT_DEFAULTS)
    'Client Name'
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from typing import Any

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")

_MISSING = object()

DOCUMENT_DEFAULTS: dict[str, str] = {
    "quotation.number": "Q-001",
    "quotation.validUntil": "N/A",
    "quotation.terms": "Standard terms apply",
    "client.name": "Client Name",
    "client.company": "Client Company",
    "client.address": "Client Address",
    "client.phone": "Client Phone",
    "client.email": "client@email.com",
    "company.name": "Company Name",
    "company.address": "Company Address",
    "company.phone": "Company Phone",
    "company.email": "company@email.com",
    "totals.subtotal": "₹0",
    "totals.tax": "₹0",
    "totals.total": "₹0",
    "totals.discount": "₹0",
}

NOTIFICATION_DEFAULTS: dict[str, str] = {
    "quotation.number": "Q-001",
    "quotationNumber": "Q-001",
    "customerName": "Customer",
}


def lookup(context: Any, path: str) -> Any:
    """Walk a dotted path through mappings, attributes and list indexes.

    Returns the module-private missing sentinel when any segment is absent;
    callers should use ``has_value`` or ``resolve`` instead of comparing.
    """
    current = context
    for segment in path.split("."):
        if current is None:
            return _MISSING
        if isinstance(current, Mapping):
            if segment not in current:
                return _MISSING
            current = current[segment]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return _MISSING
        else:
            current = getattr(current, segment, _MISSING)
            if current is _MISSING:
                return _MISSING
    return current


def has_value(context: Any, path: str) -> bool:
    value = lookup(context, path)
    return value is not _MISSING and value is not None


def stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def resolve(
    text: Any,
    context: Any,
    *,
    defaults: Mapping[str, Any] | None = None,
) -> str:
    """Replace every placeholder in ``text`` with its value from ``context``.

    Args:
        text: Template string. ``None`` yields ``''``, other non-strings are
            converted with ``str()``.
        context: Nested data (dicts, lists, objects).
        defaults: Fallback values keyed by the full dotted path.

    Returns:
        The substituted string.
    """
    if text is None:
        return ""
    if not isinstance(text, str):
        return str(text)

    def replace(match: re.Match[str]) -> str:
        path = match.group(1)
        value = lookup(context, path)
        if value is _MISSING or value is None:
            if defaults is not None and path in defaults:
                return stringify(defaults[path])
            return match.group(0)
        return stringify(value)

    return PLACEHOLDER_PATTERN.sub(replace, text)


def extract_variables(text: str | None) -> list[str]:
    """Unique placeholder paths in order of first appearance."""
    if not text:
        return []
    return list(dict.fromkeys(match.group(1) for match in PLACEHOLDER_PATTERN.finditer(text)))


def find_missing(text: str | None, context: Any) -> list[str]:
    """Placeholder paths in ``text`` that have no value in ``context``."""
    return [path for path in extract_variables(text) if not has_value(context, path)]
