from __future__ import annotations

from datetime import date
from typing import Any, Callable

from backoffice.paths import get_path
from backoffice.validators import FieldIssue

Rule = Callable[[dict[str, Any]], dict[str, FieldIssue]]


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def not_in_future(path: str, message: str) -> Rule:
    def rule(document: dict[str, Any]) -> dict[str, FieldIssue]:
        year = _number(get_path(document, path))
        if year and year > date.today().year:
            return {path: FieldIssue(kind="range", message=message)}
        return {}

    return rule


def not_before(path: str, other: str, message: str) -> Rule:
    def rule(document: dict[str, Any]) -> dict[str, FieldIssue]:
        value = _number(get_path(document, path))
        floor = _number(get_path(document, other))
        if value and floor and value < floor:
            return {path: FieldIssue(kind="range", message=message)}
        return {}

    return rule


def not_above(path: str, other: str, message: str) -> Rule:
    def rule(document: dict[str, Any]) -> dict[str, FieldIssue]:
        value = _number(get_path(document, path))
        ceiling = _number(get_path(document, other))
        if value and ceiling and value > ceiling:
            return {path: FieldIssue(kind="range", message=message)}
        return {}

    return rule


RULES: dict[str, list[Rule]] = {
    "hotel": [
        not_in_future("developer.established", "Invalid establishment year"),
        not_in_future("yearBuilt", "Year built cannot be in the future"),
        not_before("yearOpened", "yearBuilt", "Year opened cannot precede year built"),
        not_above("totalSuites", "totalRooms", "Total suites cannot exceed total rooms"),
    ],
    "property": [
        not_above("builtUpArea", "totalArea", "Built-up area cannot exceed total area"),
    ],
}
