from __future__ import annotations

from typing import TYPE_CHECKING, Any

from backoffice.paths import get_path, is_blank, path_within, split_path
from backoffice.state import StepDefinition, StepStatus
from backoffice.validators import ValidationResult, branch_active, validate_document

if TYPE_CHECKING:
    from backoffice.entities import EntitySchema


def _in_list_item(path: str) -> bool:
    return any(seg.isdigit() for seg in split_path(path))


def required_paths(schema: "EntitySchema", step: StepDefinition, document: dict[str, Any]) -> list[str]:
    if step.required is not None:
        return list(step.required)
    out: list[str] = []
    for path in step.fields:
        c = schema.fields.get(path)
        if not c or not c.required or "*" in path:
            continue
        if c.when and not branch_active(get_path(document, c.when)):
            continue
        out.append(path)
    return out


def _present(schema: "EntitySchema", document: dict[str, Any], path: str) -> bool:
    c = schema.fields.get(path)
    return not is_blank(get_path(document, path), allow_zero=c.allow_zero if c else True)


def _owned(step: StepDefinition, path: str) -> bool:
    return any(path_within(owner, path) for owner in step.fields)


def _field_status(schema: "EntitySchema", step: StepDefinition, document: dict[str, Any], result: ValidationResult) -> StepStatus:
    present = all(_present(schema, document, p) for p in required_paths(schema, step, document))
    violated = False

    for path, found in result.issues.items():
        if not _owned(step, path):
            continue
        # a blank top-level field is missing; a blank field inside an added record is a violation
        if found.kind == "required" and not _in_list_item(path):
            present = False
            continue
        violated = True
        break

    if violated:
        return "invalid"
    return "valid" if present else "incomplete"


def step_status(schema: "EntitySchema", index: int, document: dict[str, Any], *, result: ValidationResult | None = None) -> StepStatus:
    if not 0 <= index < len(schema.steps):
        raise ValueError(f"Unknown step index: {index}")

    result = result if result is not None else validate_document(document, schema)
    step = schema.steps[index]
    if not step.review:
        return _field_status(schema, step, document, result)

    others = [s for s in schema.steps if not s.review]
    if all(_field_status(schema, s, document, result) == "valid" for s in others):
        return "valid"
    return "incomplete"


def step_statuses(schema: "EntitySchema", document: dict[str, Any], *, result: ValidationResult | None = None) -> list[StepStatus]:
    result = result if result is not None else validate_document(document, schema)
    return [step_status(schema, i, document, result=result) for i in range(len(schema.steps))]


def can_submit(schema: "EntitySchema", document: dict[str, Any], *, result: ValidationResult | None = None) -> bool:
    result = result if result is not None else validate_document(document, schema)
    if not result.is_valid:
        return False
    return all(
        step_status(schema, i, document, result=result) == "valid"
        for i, step in enumerate(schema.steps)
        if not step.review
    )


def progress(schema: "EntitySchema", document: dict[str, Any], *, result: ValidationResult | None = None) -> int:
    if not schema.steps:
        return 0
    statuses = step_statuses(schema, document, result=result)
    return round(100 * statuses.count("valid") / len(statuses))
