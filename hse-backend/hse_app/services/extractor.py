"""Keyword-driven indicator extraction from decoded report text.

The scan for each indicator walks keywords in catalog order and, for each
keyword, lines from the top of the document. The first keyword that yields a
number wins, then the first line for that keyword. Keywords match as
case-insensitive substrings without word boundaries, so ``"fire"`` also
matches ``"firewall"``.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, List, Optional, Sequence

from ..catalog import Indicator, IndicatorKind
from ..models import ExtractionResult, PlannedActual

logger = logging.getLogger(__name__)

NUMBER_PATTERN = re.compile(r"[\d,]+\.?\d*")


def split_lines(text: str) -> List[str]:
    return (text or "").split("\n")


def parse_numbers(line: str) -> List[float]:
    """Numeric tokens on ``line`` in order; tokens that do not parse are skipped."""
    numbers: List[float] = []
    for token in NUMBER_PATTERN.findall(line):
        cleaned = token.replace(",", "")
        try:
            numbers.append(float(cleaned))
        except ValueError:
            continue
    return numbers


def scan(
    lines: Sequence[str],
    keywords: Iterable[str],
    accept: Callable[[List[float]], bool],
) -> Optional[List[float]]:
    """Return the numbers of the first keyword/line pair that ``accept`` takes.

    Keyword order is the outer loop and line order the inner one.
    """
    lowered = [line.lower() for line in lines]
    for keyword in keywords:
        needle = keyword.lower()
        if not needle:
            continue
        for index, line in enumerate(lowered):
            if needle not in line:
                continue
            numbers = parse_numbers(lines[index])
            if accept(numbers):
                return numbers
    return None


def extract_single(lines: Sequence[str], indicator: Indicator) -> Optional[float]:
    numbers = scan(lines, indicator.keywords, lambda found: len(found) >= 1)
    if numbers is None:
        return None
    return numbers[0]


def extract_planned_actual(lines: Sequence[str], indicator: Indicator) -> Optional[PlannedActual]:
    numbers = scan(lines, indicator.keywords, lambda found: len(found) >= 1)
    if numbers is None:
        return None
    if len(numbers) >= 2:
        return PlannedActual(planned=numbers[0], actual=numbers[1])
    # A lone number is read as the actual figure
    return PlannedActual(planned=None, actual=numbers[0])


def extract(text: str, indicators: Iterable[Indicator]) -> ExtractionResult:
    lines = split_lines(text)
    result = ExtractionResult()
    for indicator in indicators:
        if indicator.derived:
            continue
        if indicator.kind is IndicatorKind.SINGLE:
            value = extract_single(lines, indicator)
            if value is not None:
                result.table1[indicator.name] = value
        elif indicator.kind is IndicatorKind.PLANNED_ACTUAL:
            pair = extract_planned_actual(lines, indicator)
            if pair is not None:
                result.table2[indicator.name] = pair
    logger.debug("extract lines=%s found=%s", len(lines), result.found_count())
    return result
