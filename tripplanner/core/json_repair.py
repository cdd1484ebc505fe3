"""
Best-effort repair of JSON arrays emitted by generative models.

Model output is supposed to be a bare JSON array but routinely arrives wrapped
in markdown fences, followed by prose, cut off mid-object, or with unquoted
keys, quoted numbers, stray commas and unescaped quotes inside free-text
fields. ``repair_json_text`` extracts the array and runs a fixed sequence of
textual passes over it; ``parse_json_array`` then enforces the structure.

Repair passes never raise. Running the whole pipeline on its own output
returns the same structure.
"""

import json
import logging
import re
from collections.abc import Callable

from tripplanner.core.errors import EmptyArray, InvalidJson, MalformedResponse, NotAnArray

logger = logging.getLogger(__name__)

SNIPPET_RADIUS = 50


# =============================================================================
# Array extraction
# =============================================================================


def scan_array_bounds(text: str, start: int) -> tuple[int | None, int]:
    """
    Walk text from the opening '[' at ``start`` with a string-aware lexer.

    Tracks an in-string flag (toggled on unescaped '"'), an escape flag
    (a backslash inside a string skips the next character) and the bracket
    depth. Brackets inside strings are ignored.

    Returns:
        (index of the matching ']' or None if the array never closes,
         index of the last '}' that closed a top-level element or -1)
    """
    depth = 0
    last_object_end = -1
    in_string = False
    escape_next = False

    for i in range(start, len(text)):
        char = text[i]

        if in_string:
            if escape_next:
                escape_next = False
            elif char == "\\":
                escape_next = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in "[{":
            depth += 1
        elif char in "]}":
            depth -= 1
            if depth == 0:
                return i, last_object_end
            if depth == 1 and char == "}":
                last_object_end = i

    return None, last_object_end


def extract_json_array(text: str) -> str:
    """
    Cut the JSON array out of raw model text.

    Leading fences and prose before the array and anything after its matching
    ']' are dropped. A truncated array is closed right after its last complete
    object.

    Raises:
        MalformedResponse: No '[' at all, or truncation left no complete object
    """
    if not text or not text.strip():
        raise MalformedResponse("Empty response from generation service")

    # Prefer an array of objects over a stray '[' in leading prose
    match = re.search(r"\[\s*\{", text)
    start = match.start() if match else text.find("[")
    if start == -1:
        raise MalformedResponse("No JSON array found in response")

    end, last_object_end = scan_array_bounds(text, start)
    if end is not None:
        return text[start : end + 1]

    # A stray quote in an address/description flips the string state for the
    # rest of the text; escape those before deciding the array is truncated
    candidate = escape_embedded_quotes(text[start:])
    end, last_object_end = scan_array_bounds(candidate, 0)
    if end is not None:
        return candidate[: end + 1]

    if last_object_end != -1:
        logger.warning(
            f"[JsonRepair] Response truncated; dropping {len(candidate) - last_object_end - 1} trailing chars"
        )
        return candidate[: last_object_end + 1] + "]"

    # Unbalanced but closed: hand everything up to the last ']' to the repair passes
    close = candidate.rfind("]")
    if close != -1:
        return candidate[: close + 1]

    raise MalformedResponse("Response was truncated before the first complete object")


# =============================================================================
# Repair passes
# =============================================================================


def _split_strings(text: str) -> list[tuple[bool, str]]:
    """Split text into (is_string_literal, segment) pairs."""
    segments: list[tuple[bool, str]] = []
    seg_start = 0
    in_string = False
    escape_next = False

    for i, char in enumerate(text):
        if in_string:
            if escape_next:
                escape_next = False
            elif char == "\\":
                escape_next = True
            elif char == '"':
                segments.append((True, text[seg_start : i + 1]))
                seg_start = i + 1
                in_string = False
        elif char == '"':
            if i > seg_start:
                segments.append((False, text[seg_start:i]))
            seg_start = i
            in_string = True

    if seg_start < len(text):
        segments.append((in_string, text[seg_start:]))
    return segments


def _outside_strings(text: str, fn: Callable[[str], str]) -> str:
    """Apply fn to every part of text that is not inside a string literal."""
    return "".join(seg if is_string else fn(seg) for is_string, seg in _split_strings(text))


def strip_comments_and_fences(text: str) -> str:
    """Drop ``` fences, // and /* */ comments, and fold line breaks."""
    text = re.sub(r"```(?:json)?", "", text, flags=re.IGNORECASE)

    out = []
    i = 0
    in_string = False
    escape_next = False
    while i < len(text):
        char = text[i]
        if in_string:
            if escape_next:
                escape_next = False
            elif char == "\\":
                escape_next = True
            elif char == '"':
                in_string = False
            out.append(char)
            i += 1
            continue

        if text.startswith("//", i):
            newline = text.find("\n", i)
            i = len(text) if newline == -1 else newline
            continue
        if text.startswith("/*", i):
            close = text.find("*/", i + 2)
            i = len(text) if close == -1 else close + 2
            continue

        if char == '"':
            in_string = True
        out.append(char)
        i += 1

    text = "".join(out).replace("\r\n", "\n")
    # Raw newlines inside strings are invalid JSON; fold them with the indentation
    return re.sub(r"\n\s*", " ", text).strip()


_BARE_KEY = re.compile(r"([{,]\s*)('?)([A-Za-z_][A-Za-z0-9_]*)\2\s*:")


def quote_bare_keys(text: str) -> str:
    """{name: ...} and {'name': ...} -> {"name": ...}"""
    return _outside_strings(text, lambda seg: _BARE_KEY.sub(r'\1"\3":', seg))


_BOOL_FIELD = re.compile(
    r'"(isStartingPoint|isHotel)"\s*:\s*"?(true|false|1|0)"?(?=\s*[,}])', re.IGNORECASE
)
_NUMERIC_FIELD = re.compile(r'"(estimatedDuration|travelTimeToNext|dayIndex)"\s*:\s*"(-?\d+(?:\.\d+)?)"')
_SINGLE_QUOTED_VALUE = re.compile(r"(:\s*)'([^'\n]*)'(?=\s*[,}\]])")


def _python_literals(segment: str) -> str:
    segment = re.sub(r"\bTrue\b", "true", segment)
    segment = re.sub(r"\bFalse\b", "false", segment)
    segment = re.sub(r"\bNone\b", "null", segment)
    return _SINGLE_QUOTED_VALUE.sub(r'\1"\2"', segment)


def normalize_quoted_values(text: str) -> str:
    """Unquote numbers and booleans the model wrapped in quotes."""
    text = _outside_strings(text, _python_literals)
    text = _BOOL_FIELD.sub(
        lambda m: f'"{m.group(1)}":{"true" if m.group(2).lower() in ("true", "1") else "false"}',
        text,
    )
    return _NUMERIC_FIELD.sub(r'"\1":\2', text)


_FREE_TEXT_FIELD = re.compile(r'"(address|description)"\s*:\s*"')
# What may legally follow the closing quote of a value
_VALUE_END = re.compile(r'\s*(?:,\s*"[^"\\]*"\s*:|,\s*[}\]]|[}\]]|$)')


def _find_value_end(text: str, start: int) -> int | None:
    i = start
    while i < len(text):
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == '"' and _VALUE_END.match(text, i + 1):
            return i
        i += 1
    return None


def escape_embedded_quotes(text: str) -> str:
    """
    Escape stray quotes inside address/description values.

    'The "Old" Bridge' is a common model output; the real closing quote is the
    first one followed by a separator and the next key, or by the object end.
    """
    out = []
    pos = 0
    for match in _FREE_TEXT_FIELD.finditer(text):
        if match.start() < pos:
            continue
        value_start = match.end()
        value_end = _find_value_end(text, value_start)
        if value_end is None:
            continue
        value = text[value_start:value_end]
        out.append(text[pos:value_start])
        out.append(re.sub(r'(?<!\\)"', r'\\"', value))
        pos = value_end
    out.append(text[pos:])
    return "".join(out)


def _comma_fixes(segment: str) -> str:
    segment = re.sub(r",(\s*,)+", ",", segment)
    segment = re.sub(r",(\s*[}\]])", r"\1", segment)
    return re.sub(r"\[\s*,", "[", segment)


def remove_stray_commas(text: str) -> str:
    """Trailing, doubled and leading commas."""
    return _outside_strings(text, _comma_fixes)


_MISSING_MEMBER_COMMA = re.compile(r'(?<=[0-9"el}\]])(\s+)(?="[A-Za-z_][A-Za-z0-9_]*"\s*:)')


def fix_missing_separators(text: str) -> str:
    """Insert commas between adjacent objects and between adjacent members."""
    text = _outside_strings(text, lambda seg: re.sub(r"}\s*{", "},{", seg))
    return _MISSING_MEMBER_COMMA.sub(r",\1", text)


REPAIR_PASSES: list[Callable[[str], str]] = [
    strip_comments_and_fences,
    quote_bare_keys,
    normalize_quoted_values,
    escape_embedded_quotes,
    remove_stray_commas,
    fix_missing_separators,
]


def repair_json_text(raw_text: str) -> str:
    """Extract the array from raw model text and run every repair pass over it."""
    text = extract_json_array(raw_text)
    for repair in REPAIR_PASSES:
        text = repair(text)
        logger.debug(f"[JsonRepair] After {repair.__name__}: {text[:200]}")
    return text


# =============================================================================
# Structural validation
# =============================================================================


def _snippet(text: str, offset: int) -> str:
    start = max(0, offset - SNIPPET_RADIUS)
    end = min(len(text), offset + SNIPPET_RADIUS)
    return text[start:end]


def parse_json_array(text: str) -> list:
    """
    Parse repaired text and check it is a non-empty JSON array.

    Raises:
        NotAnArray: Text is not bracketed or parses to something else
        InvalidJson: json.loads failed; carries the context around the offset
        EmptyArray: The array has no elements
    """
    text = text.strip()
    if not text.startswith("[") or not text.endswith("]"):
        raise NotAnArray("Invalid JSON structure: must be an array", context=_snippet(text, 0), offset=0)

    try:
        parsed = json.loads(text, strict=False)
    except json.JSONDecodeError as exc:
        logger.error(f"[JsonRepair] JSON parse error at {exc.pos}: {exc.msg}")
        raise InvalidJson(
            f"Failed to parse response: {exc.msg}",
            context=_snippet(text, exc.pos),
            offset=exc.pos,
        ) from exc

    if not isinstance(parsed, list):
        raise NotAnArray("Parsed result is not an array", context=_snippet(text, 0), offset=0)

    if not parsed:
        raise EmptyArray("Empty array returned from generation service")

    return parsed
