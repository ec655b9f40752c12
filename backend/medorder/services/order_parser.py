"""
Order text parser.

Grammar: `name,quantity` segments separated by `;`.

    "Paracetamol,10"                  -> one line
    "Paracetamol,10; Amoxicillin , 5" -> two lines
    "Paracetamol;,5;Dolo,ten"         -> three errors

Parsing never fails as a whole. Every segment is classified on its own and
the caller gets all lines and all errors together.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List

SEGMENT_SEPARATOR = ";"
FIELD_SEPARATOR = ","

_INTEGER_RE = re.compile(r"^[0-9]+$")


class ParseErrorReason(str, Enum):
    MISSING_NAME = "missing name"
    MISSING_QUANTITY = "missing quantity"
    INVALID_QUANTITY = "quantity is not a whole number"
    ZERO_QUANTITY = "quantity must be at least 1"


@dataclass(frozen=True)
class ParsedLine:
    name: str
    quantity: int


@dataclass(frozen=True)
class ParseError:
    raw_text: str
    reason: ParseErrorReason

    def describe(self) -> str:
        return f"Invalid format: {self.raw_text} ({self.reason.value})"


@dataclass
class ParseResult:
    lines: List[ParsedLine] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def parse_segment(segment: str):
    """Classify one trimmed segment as ParsedLine or ParseError."""
    name, _, quantity_text = segment.partition(FIELD_SEPARATOR)
    name = name.strip()
    quantity_text = quantity_text.strip()

    if not name:
        return ParseError(segment, ParseErrorReason.MISSING_NAME)
    if not quantity_text:
        return ParseError(segment, ParseErrorReason.MISSING_QUANTITY)
    if not _INTEGER_RE.match(quantity_text):
        return ParseError(segment, ParseErrorReason.INVALID_QUANTITY)

    quantity = int(quantity_text)
    if quantity == 0:
        return ParseError(segment, ParseErrorReason.ZERO_QUANTITY)
    return ParsedLine(name=name, quantity=quantity)


def parse_order_text(text: str) -> ParseResult:
    result = ParseResult()
    if not text:
        return result

    for raw in text.split(SEGMENT_SEPARATOR):
        segment = raw.strip()
        if not segment:
            continue
        parsed = parse_segment(segment)
        if isinstance(parsed, ParseError):
            result.errors.append(parsed)
        else:
            result.lines.append(parsed)
    return result
