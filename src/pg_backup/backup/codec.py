"""Value codec: render one fetched value as a SQL literal.

``render_value`` turns a value of unknown runtime type into literal text
that can be embedded in an ``INSERT`` statement and read back to the same
meaning.  It never raises: anything that cannot be rendered safely becomes
``NULL`` and a ``SerializationError`` diagnostic is logged (and collected
when the caller passes a ``diagnostics`` list).

Rules, in priority order:

1. ``None`` -> ``NULL``.
2. Columns declared ``json``/``jsonb`` -> quoted JSON text.
3. ``bool`` -> ``TRUE``/``FALSE``.
4. Numbers -> canonical decimal text; NaN and infinities -> ``NULL``.
5. ``str`` -> quoted with embedded quotes doubled, or ``NULL`` when the
   text looks like a leaked catalog object name.
6. ``datetime``/``date``/``time`` -> quoted ISO-8601.
7. ``list``/``tuple`` -> ``ARRAY[...]`` of recursively rendered elements.
8. ``dict`` -> quoted JSON text (``NULL`` if it cannot be serialized).
9. Anything else -> best-effort ``str()``, quoted.

Usage:
    from pg_backup.backup.codec import render_value, quote_ident

    render_value("it's a test")      # "'it''s a test'"
    render_value(float("nan"))       # "NULL"
    render_value([1, 2, 3])          # "ARRAY[1, 2, 3]"
    quote_ident('Order')             # '"Order"'
"""

import json
import logging
import math
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from pg_backup.errors import SerializationError
from pg_backup.schema.filters import is_system_like_value

logger = logging.getLogger(__name__)

NULL_LITERAL = "NULL"

_JSON_TYPES = ("json", "jsonb")
_REPR_LIMIT = 80


def quote_ident(name: str) -> str:
    """Quote an identifier, doubling embedded double quotes."""
    return '"' + name.replace('"', '""') + '"'


def quote_literal(text: str) -> str:
    """Quote a string literal, doubling embedded single quotes."""
    return "'" + text.replace("'", "''") + "'"


def render_value(
    value: Any,
    declared_type: str | None = None,
    diagnostics: list[SerializationError] | None = None,
) -> str:
    """Render *value* as a SQL literal.

    Args:
        value: Value as returned by the database driver.
        declared_type: Optional declared column type (``format_type``
            output, e.g. ``"jsonb"`` or ``"integer[]"``).  Used to keep JSON
            arrays out of ``ARRAY[...]`` and to cast array literals.
        diagnostics: Optional list that receives a ``SerializationError``
            for every value suppressed to ``NULL``.

    Returns:
        Literal text.  Never raises.
    """
    try:
        return _render(value, declared_type, diagnostics)
    except Exception as e:
        return _suppress(value, f"unexpected {type(e).__name__}: {e}", diagnostics)


def _render(
    value: Any,
    declared_type: str | None,
    diagnostics: list[SerializationError] | None,
) -> str:
    if value is None:
        return NULL_LITERAL

    if declared_type and declared_type.lower() in _JSON_TYPES:
        return _render_json(value, diagnostics)

    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"

    if isinstance(value, int):
        return str(value)

    if isinstance(value, float):
        if not math.isfinite(value):
            return _suppress(value, "non-finite number", diagnostics)
        return repr(value)

    if isinstance(value, Decimal):
        if not value.is_finite():
            return _suppress(value, "non-finite number", diagnostics)
        return str(value)

    if isinstance(value, str):
        if is_system_like_value(value):
            return _suppress(value, "looks like a catalog object name", diagnostics)
        return quote_literal(value)

    # datetime is a subclass of date -- both render via isoformat()
    if isinstance(value, (datetime, date, time)):
        return quote_literal(value.isoformat())

    if isinstance(value, timedelta):
        return quote_literal(
            f"{value.days} days {value.seconds} seconds "
            f"{value.microseconds} microseconds"
        )

    if isinstance(value, (bytes, bytearray, memoryview)):
        return quote_literal("\\x" + bytes(value).hex())

    if isinstance(value, (list, tuple)):
        return _render_array(value, declared_type, diagnostics)

    if isinstance(value, dict):
        return _render_json(value, diagnostics)

    try:
        text = str(value)
    except Exception as e:
        return _suppress(value, f"str() failed: {e}", diagnostics)
    if is_system_like_value(text):
        return _suppress(value, "looks like a catalog object name", diagnostics)
    return quote_literal(text)


def _render_array(
    items: list | tuple,
    declared_type: str | None,
    diagnostics: list[SerializationError] | None,
) -> str:
    """Render a (possibly nested) array.

    An empty array becomes ``'{}'`` because a bare ``ARRAY[]`` has no type.
    """
    if not items:
        return "'{}'"

    element_type = None
    cast = ""
    if declared_type and declared_type.endswith("[]"):
        element_type = declared_type[:-2]
        cast = f"::{declared_type}"

    rendered = [render_value(item, element_type, diagnostics) for item in items]
    return f"ARRAY[{', '.join(rendered)}]{cast}"


def _render_json(
    value: Any,
    diagnostics: list[SerializationError] | None,
) -> str:
    try:
        text = json.dumps(value, allow_nan=False, default=str)
    except (TypeError, ValueError) as e:
        return _suppress(value, f"JSON serialization failed: {e}", diagnostics)
    if is_system_like_value(text):
        return _suppress(value, "looks like a catalog object name", diagnostics)
    return quote_literal(text)


def _suppress(
    value: Any,
    reason: str,
    diagnostics: list[SerializationError] | None,
) -> str:
    """Record a suppressed value and return the NULL literal."""
    try:
        value_repr = repr(value)
    except Exception:
        value_repr = f"<unrepresentable {type(value).__name__}>"
    if len(value_repr) > _REPR_LIMIT:
        value_repr = value_repr[: _REPR_LIMIT - 3] + "..."

    error = SerializationError(value_repr, reason)
    logger.warning("%s", error)
    if diagnostics is not None:
        diagnostics.append(error)
    return NULL_LITERAL
