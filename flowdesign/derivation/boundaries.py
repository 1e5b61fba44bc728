"""
boundaries.py - Boundary-value test cases from input field rules.

For every input node (node order) and every declared field (field order),
one case per present constraint, in this order:

    missing      required field left out               -> rejected
    below-min    just under the minimum                -> rejected
    at-min       exactly the minimum                   -> accepted
    at-max       exactly the maximum                   -> accepted
    above-max    just over the maximum                 -> rejected
    bad-format   value violating format/pattern        -> rejected
    valid        a value satisfying every rule         -> accepted

String fields are bounded by length, integer/number fields by value.
Rejected cases carry the configured error text for the violated
constraint (falling back to the field's generic error message). An accepted
case is only emitted when a value meeting every rule of the field (length,
format and pattern together) can be built; otherwise it is logged and left out.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from flowdesign.config.runtime_config import (
    get_number_step,
    get_sample_length,
    get_string_fill,
)
from flowdesign.spec.types import FlowGraph, InputField, InputSpec

logger = logging.getLogger(__name__)


class BoundaryKind(str, Enum):
    VALID = "valid"
    MISSING = "missing"
    BELOW_MIN = "below-min"
    AT_MIN = "at-min"
    AT_MAX = "at-max"
    ABOVE_MAX = "above-max"
    BAD_FORMAT = "bad-format"


@dataclass(frozen=True)
class BoundaryTest:
    """One directly assertable input case.

    ``value`` is None for the missing case. ``expected_error`` is None for
    accepted cases and for rejected cases without configured error text.
    """

    field: str
    kind: BoundaryKind
    value: Any
    expect_success: bool
    expected_error: Optional[str] = None
    node_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "kind": self.kind.value,
            "value": self.value,
            "expect_success": self.expect_success,
            "expected_error": self.expected_error,
            "node_id": self.node_id,
        }


# A value each format rejects
BAD_FORMAT_VALUES: Dict[str, str] = {
    "email": "not-an-email",
    "url": "not a url",
    "uuid": "not-a-uuid",
    "date": "2024-13-45",
    "datetime": "not-a-datetime",
    "phone": "call-me-maybe",
}

# A value each format accepts
FORMAT_SAMPLES: Dict[str, str] = {
    "email": "user@example.com",
    "url": "https://example.com/",
    "uuid": "123e4567-e89b-12d3-a456-426614174000",
    "date": "2024-01-15",
    "datetime": "2024-01-15T10:30:00Z",
    "phone": "+15555550100",
}

# Tried in order against a pattern; the first one it rejects is used
PATTERN_PROBES = ("!", "invalid value", "0", "~~~", "aaaaa", "A1", "")

TYPE_SAMPLES: Dict[str, Any] = {
    "boolean": True,
    "date": "2024-01-15",
    "datetime": "2024-01-15T10:30:00Z",
    "array": [],
    "object": {},
    "file": "upload.txt",
}

# Shape a value must have to pass each format check
FORMAT_CHECKS: Dict[str, re.Pattern[str]] = {
    "email": re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+"),
    "url": re.compile(r"https?://[^\s/]+\.[^\s/]+(/\S*)?"),
    "uuid": re.compile(r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"),
    "date": re.compile(r"\d{4}-\d{2}-\d{2}"),
    "datetime": re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})"),
    "phone": re.compile(r"\+?[0-9]{7,15}"),
}

# Single characters and two-part runs tried when building a pattern-conforming value
SAMPLE_CHARS = ("a", "A", "0", "1", "z", "Z", "9", "x", "-", "_", ".", " ")
SAMPLE_SPLITS = (("A", "0"), ("a", "0"), ("0", "A"), ("0", "a"), ("A", "a"), ("a", "A"))
MAX_SPLIT_LENGTH = 64

# How many lengths past the preferred one the valid-value search may try
LENGTH_SEARCH_SPAN = 64

GENERIC_BAD_FORMAT = "!@#invalid"


def _message(item: InputField, *constraints: str) -> Optional[str]:
    for constraint in constraints:
        text = item.messages.get(constraint)
        if text:
            return text
    return item.error_message or None


def _compiled_pattern(item: InputField) -> Optional[re.Pattern[str]]:
    if not item.pattern:
        return None
    try:
        return re.compile(item.pattern)
    except re.error:
        logger.debug("Ignoring invalid pattern of field %s", item.name)
        return None


def _conforms(item: InputField, value: str, pattern: Optional[re.Pattern[str]]) -> bool:
    """True when ``value`` passes the field's format check and pattern.

    Formats without a known check are not enforced.
    """
    check = FORMAT_CHECKS.get(item.format) if item.format else None
    if check is not None and check.fullmatch(value) is None:
        return False
    return pattern is None or pattern.fullmatch(value) is not None


def _shaped(fmt: str, length: int, fill: str) -> List[str]:
    """Values of exactly ``length`` characters in the shape of ``fmt``."""
    shaped: List[str] = []
    sample = FORMAT_SAMPLES.get(fmt)
    if sample is not None and len(sample) == length:
        shaped.append(sample)
    if fmt == "email":
        for domain in ("@example.com", "@b.co"):
            if length > len(domain):
                shaped.append(fill * (length - len(domain)) + domain)
    elif fmt == "url":
        for prefix in ("https://example.com/", "http://a.co/"):
            if length >= len(prefix):
                shaped.append(prefix + fill * (length - len(prefix)))
        if length == len("http://a.co"):
            shaped.append("http://a.co")
    elif fmt == "datetime" and length > 21:
        shaped.append("2024-01-15T10:30:00." + "0" * (length - 21) + "Z")
    elif fmt == "phone":
        if 8 <= length <= 16:
            shaped.append("+1" + "5" * (length - 2))
        elif length == 7:
            shaped.append("5" * length)
    return shaped


def _candidates(item: InputField, length: int) -> Iterator[str]:
    fill = get_string_fill()
    if item.format:
        yield from _shaped(item.format, length, fill)
    yield fill * length
    for char in SAMPLE_CHARS:
        yield char * length
    if length <= MAX_SPLIT_LENGTH:
        for head, tail in SAMPLE_SPLITS:
            for split in range(1, length):
                yield head * split + tail * (length - split)


def _conforming_text(item: InputField, length: int) -> Optional[str]:
    """A string of exactly ``length`` characters accepted by format and pattern."""
    if length < 0:
        return None
    pattern = _compiled_pattern(item)
    for candidate in _candidates(item, length):
        if _conforms(item, candidate, pattern):
            return candidate
    return None


def _off_length_text(item: InputField, length: int) -> str:
    """A rejected-by-length value; format-shaped when possible so length is the only fault."""
    return _conforming_text(item, length) or get_string_fill() * length


def _bounds(item: InputField) -> Tuple[Optional[float], Optional[float]]:
    """Declared bounds, narrowed to whole numbers for lengths and integers."""
    low, high = item.lower_bound(), item.upper_bound()
    if item.is_string or item.type == "integer":
        low = math.ceil(low) if low is not None else None
        high = math.floor(high) if high is not None else None
    return low, high


def _number(item: InputField, value: float) -> Any:
    if item.type == "integer":
        return int(value)
    # Keep step arithmetic free of float noise (e.g. 0.30000000000000004)
    return round(value, 10)


def _step(item: InputField) -> float:
    return 1 if item.type == "integer" else get_number_step()


def _bad_format_value(item: InputField) -> Optional[str]:
    if item.format:
        return BAD_FORMAT_VALUES.get(item.format, GENERIC_BAD_FORMAT)
    if item.pattern:
        compiled = _compiled_pattern(item)
        if compiled is None:
            return None
        for probe in PATTERN_PROBES:
            if compiled.fullmatch(probe) is None:
                return probe
        logger.debug("Pattern of field %s accepts every probe; no bad-format case", item.name)
    return None


def _valid_text(item: InputField) -> Optional[str]:
    low, high = _bounds(item)
    default = len(FORMAT_SAMPLES[item.format]) if item.format in FORMAT_SAMPLES else get_sample_length()
    if low is not None and high is not None:
        preferred = int((low + high) // 2)
    elif low is not None:
        preferred = int(max(low, default))
    elif high is not None:
        preferred = int(min(high, default))
    else:
        preferred = default

    first = int(low) if low is not None else 0
    last = int(high) if high is not None else max(first, preferred) + LENGTH_SEARCH_SPAN
    last = min(last, first + LENGTH_SEARCH_SPAN)
    lengths = [preferred] + [n for n in range(max(first, 0), last + 1) if n != preferred]

    for length in lengths:
        value = _conforming_text(item, length)
        if value is not None:
            return value
    return None


def _valid_value(item: InputField) -> Any:
    if item.is_string:
        return _valid_text(item)

    if item.is_numeric:
        low, high = _bounds(item)
        if low is not None and high is not None:
            if item.type == "integer":
                return int((low + high) // 2)
            return _number(item, (low + high) / 2)
        if low is not None:
            return _number(item, low)
        if high is not None:
            return _number(item, high)
        return 1

    if item.format in FORMAT_SAMPLES:
        return FORMAT_SAMPLES[item.format]
    if item.type in TYPE_SAMPLES:
        return TYPE_SAMPLES[item.type]
    return get_string_fill() * get_sample_length()


def field_boundary_tests(item: InputField, node_id: Optional[str] = None) -> List[BoundaryTest]:
    """Every boundary case for one field, in case order.

    Accepted cases whose value cannot satisfy every rule of the field
    (length, format and pattern together) are left out and logged.
    """
    tests: List[BoundaryTest] = []

    def add(kind: BoundaryKind, value: Any, ok: bool, error: Optional[str] = None) -> None:
        if ok and value is None:
            logger.warning(
                "No %s value for field %s satisfies all of its rules; case skipped",
                kind.value,
                item.name,
            )
            return
        tests.append(
            BoundaryTest(
                field=item.name,
                kind=kind,
                value=value,
                expect_success=ok,
                expected_error=None if ok else error,
                node_id=node_id,
            )
        )

    if item.required:
        tests.append(
            BoundaryTest(
                field=item.name,
                kind=BoundaryKind.MISSING,
                value=None,
                expect_success=False,
                expected_error=_message(item, "required"),
                node_id=node_id,
            )
        )

    low, high = _bounds(item)
    empty = low is not None and high is not None and low > high
    if empty:
        logger.warning("Field %s has an empty range (%s > %s); no accepted cases", item.name, low, high)

    if low is not None:
        if item.is_string:
            if low - 1 >= 0:
                add(BoundaryKind.BELOW_MIN, _off_length_text(item, int(low) - 1), False, _message(item, "min", "min_length"))
            if low >= 0 and not empty:
                add(BoundaryKind.AT_MIN, _conforming_text(item, int(low)), True)
        else:
            add(BoundaryKind.BELOW_MIN, _number(item, low - _step(item)), False, _message(item, "min", "minimum"))
            if not empty:
                add(BoundaryKind.AT_MIN, _number(item, low), True)

    if high is not None:
        if item.is_string:
            if high >= 0 and not empty:
                add(BoundaryKind.AT_MAX, _conforming_text(item, int(high)), True)
            add(BoundaryKind.ABOVE_MAX, _off_length_text(item, max(int(high) + 1, 0)), False, _message(item, "max", "max_length"))
        else:
            if not empty:
                add(BoundaryKind.AT_MAX, _number(item, high), True)
            add(BoundaryKind.ABOVE_MAX, _number(item, high + _step(item)), False, _message(item, "max", "maximum"))

    bad = _bad_format_value(item)
    if bad is not None:
        add(BoundaryKind.BAD_FORMAT, bad, False, _message(item, "format", "pattern"))

    if not empty:
        add(BoundaryKind.VALID, _valid_value(item), True)
    return tests


def derive_boundary_tests(graph: FlowGraph) -> List[BoundaryTest]:
    """Boundary cases for every field of every input node of ``graph``."""
    tests: List[BoundaryTest] = []
    for node in graph.nodes:
        spec = node.spec
        if not isinstance(spec, InputSpec):
            continue
        for item in spec.fields:
            if not item.name:
                continue
            tests.extend(field_boundary_tests(item, node.id))

    logger.debug("Derived %d boundary tests for flow %s", len(tests), graph.id)
    return tests
