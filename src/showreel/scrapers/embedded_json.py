"""Extract JSON literals assigned to page-global JavaScript variables.

Many cinema sites ship their whole programme inside the page as
``var Events = {...};``. A regex cannot find the end of that literal
because the payload contains nested braces and braces inside quoted
strings, so this module scans it character by character, tracking string
state, escape state and bracket depth.
"""

import json
import re
from typing import Any

_OPENERS = "{["
_CLOSERS = "}]"
_QUOTES = "\"'"


def find_literal_end(text: str, start: int) -> int:
    """
    Return the index just past the object/array literal starting at ``start``.

    Args:
        text: Source text
        start: Index of the opening ``{`` or ``[``

    Raises:
        ValueError: If ``start`` is not an opener or the literal never closes
    """
    if start >= len(text) or text[start] not in _OPENERS:
        raise ValueError(f"No object or array literal at offset {start}")

    depth = 0
    in_string: str | None = None  # the quote character we are inside, if any
    escape_next = False

    for i in range(start, len(text)):
        ch = text[i]

        if escape_next:
            escape_next = False
            continue

        if in_string:
            if ch == "\\":
                escape_next = True
            elif ch == in_string:
                in_string = None
            continue

        if ch in _QUOTES:
            in_string = ch
        elif ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
            if depth == 0:
                return i + 1

    raise ValueError("Unterminated literal")


def _assignment_pattern(var_name: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![\w$.]){re.escape(var_name)}\s*=\s*")


def extract_assigned_literal(html: str, var_name: str) -> str | None:
    """
    Return the raw source of the literal assigned to ``var_name``.

    The first assignment followed by ``{`` or ``[`` wins; assignments of
    other values (``var Events = null``) are skipped.
    """
    for match in _assignment_pattern(var_name).finditer(html):
        start = match.end()
        if start >= len(html) or html[start] not in _OPENERS:
            continue
        try:
            end = find_literal_end(html, start)
        except ValueError:
            continue
        return html[start:end]
    return None


def extract_assigned_json(html: str, var_name: str) -> Any | None:
    """
    Parse the literal assigned to ``var_name`` as JSON.

    Returns None when the variable is absent.

    Raises:
        json.JSONDecodeError: If the literal is present but not valid JSON
    """
    literal = extract_assigned_literal(html, var_name)
    if literal is None:
        return None
    return json.loads(literal)


def extract_quoted_json(html: str, var_name: str) -> Any | None:
    """
    Parse JSON that a page wraps in a JavaScript string.

    Handles ``var shows ='[{"id": "1"}]';`` where the payload is a quoted
    string rather than a literal. Returns None when the variable is absent.

    Raises:
        json.JSONDecodeError: If the string content is not valid JSON
    """
    match = re.search(rf"(?<![\w$.]){re.escape(var_name)}\s*=\s*(['\"])", html)
    if not match:
        return None

    quote = match.group(1)
    start = match.end()
    escape_next = False
    for i in range(start, len(html)):
        ch = html[i]
        if escape_next:
            escape_next = False
            continue
        if ch == "\\":
            escape_next = True
        elif ch == quote:
            raw = html[start:i]
            break
    else:
        return None

    # JS string escapes that are not valid JSON escapes
    raw = raw.replace("\\'", "'")
    return json.loads(raw)
