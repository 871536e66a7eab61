# ================================================================================
# Dynamic Locator Templates
# ================================================================================
#
# Builds queries from templates such as "//div[@id='%s']" so page objects can
# keep one locator per element family instead of one per element.
#
# Placeholders:
#   %s   one positional value
#   %%   a literal percent sign
#
# Values never get to alter the structure of the expression:
#   - inside a quoted XPath literal, a value containing that quote is rejected
#     (XPath 1.0 literals have no escape sequence)
#   - outside quotes, XPath values become quoted literals (concat() when the
#     value contains both quote kinds)
#   - CSS values are backslash-escaped inside quotes; outside quotes they must
#     be plain identifiers
#
# ================================================================================

import re
from typing import Any, List, Optional, Tuple, Union

from loguru import logger

from .exceptions import InvalidQuerySyntax
from .query import LocatorQuery, Strategy, compile_query


_CSS_IDENTIFIER = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_-]*$|^[A-Za-z0-9_-]+$")


def _scan_placeholders(template: str, strategy: Strategy) -> List[Tuple[int, Optional[str]]]:
    """Return (offset, enclosing quote or None) for each %s placeholder."""
    placeholders: List[Tuple[int, Optional[str]]] = []
    quoted = strategy in (Strategy.XPATH, Strategy.CSS_SELECTOR)
    quote: Optional[str] = None
    pos = 0

    while pos < len(template):
        ch = template[pos]

        if ch == "%":
            nxt = template[pos + 1:pos + 2]
            if nxt == "s":
                placeholders.append((pos, quote))
            elif nxt != "%":
                raise InvalidQuerySyntax(
                    f"Unsupported placeholder %{nxt}; use %s", expression=template, position=pos
                )
            pos += 2
            continue

        if quoted:
            if ch == "\\" and strategy is Strategy.CSS_SELECTOR and quote is not None:
                pos += 2
                continue
            if ch in ("'", '"'):
                if quote is None:
                    quote = ch
                elif quote == ch:
                    quote = None
        pos += 1

    if quote is not None:
        raise InvalidQuerySyntax("Unterminated string literal in template", expression=template)
    return placeholders


def xpath_literal(value: str) -> str:
    """Render ``value`` as an XPath 1.0 string literal."""
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{part}'" for part in parts) + ")"


def _render(value: str, quote: Optional[str], strategy: Strategy, template: str) -> str:
    if strategy is Strategy.XPATH:
        if quote is None:
            return xpath_literal(value)
        if quote in value:
            raise InvalidQuerySyntax(
                f"Value {value!r} would terminate the {quote}-quoted literal in the template",
                expression=template,
            )
        return value

    if strategy is Strategy.CSS_SELECTOR:
        if quote is None:
            if not _CSS_IDENTIFIER.match(value):
                raise InvalidQuerySyntax(
                    f"Value {value!r} is not a CSS identifier; quote the placeholder in the template",
                    expression=template,
                )
            return value
        return value.replace("\\", "\\\\").replace(quote, "\\" + quote)

    return value


def build_dynamic_query(
    template: str,
    *values: Any,
    strategy: Union[Strategy, str] = Strategy.XPATH,
) -> LocatorQuery:
    """
    Substitute ``values`` into ``template`` and compile the result.

    Args:
        template: Locator template with ``%s`` placeholders
        *values: One value per placeholder (converted with ``str``)
        strategy: Strategy of the finished expression (XPath by default)

    Returns:
        The compiled LocatorQuery

    Raises:
        InvalidQuerySyntax: placeholder count mismatch, a value that would
            break the expression's quoting, or an uncompilable result

    Example:
        >>> build_dynamic_query("//button[normalize-space()='%s']", "Save")
        ByXPath(expression="//button[normalize-space()='Save']")
    """
    try:
        strategy = Strategy(strategy)
    except ValueError:
        raise InvalidQuerySyntax(f"Unknown locator strategy: {strategy!r}", expression=template) from None
    if not isinstance(template, str):
        raise InvalidQuerySyntax("Template must be a string", expression=template)

    placeholders = _scan_placeholders(template, strategy)
    if len(placeholders) != len(values):
        raise InvalidQuerySyntax(
            f"Template expects {len(placeholders)} value(s), got {len(values)}",
            expression=template,
        )

    pieces: List[str] = []
    cursor = 0
    for (offset, quote), value in zip(placeholders, values):
        pieces.append(template[cursor:offset].replace("%%", "%"))
        pieces.append(_render(str(value), quote, strategy, template))
        cursor = offset + 2
    pieces.append(template[cursor:].replace("%%", "%"))

    expression = "".join(pieces)
    logger.debug(f"Dynamic locator {template!r} -> {expression!r}")
    return compile_query(strategy, expression)


__all__ = [
    "build_dynamic_query",
    "xpath_literal",
]
