from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from backoffice.paths import expand_path, get_path, is_blank, split_path

if TYPE_CHECKING:
    from backoffice.entities import EntitySchema

FieldType = Literal["text", "number", "integer", "email", "url", "image", "boolean", "list", "object"]
IssueKind = Literal["required", "type", "pattern", "choice", "range", "length"]

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_URL_RE = re.compile(r"^https?://.+")
_IMAGE_RE = re.compile(r"^https?://.+\.(jpg|jpeg|png|webp|gif)$", re.IGNORECASE)


class FieldConstraint(BaseModel):
    label: Optional[str] = None
    required: bool = False
    type: FieldType = "text"
    min: Optional[float] = None
    max: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    choices: Optional[List[Any]] = None
    allow_zero: bool = True
    when: Optional[str] = None
    messages: Dict[str, str] = Field(default_factory=dict)


class FieldIssue(BaseModel):
    kind: IssueKind
    message: str


class ValidationResult(BaseModel):
    issues: Dict[str, FieldIssue] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)

    @property
    def errors(self) -> dict[str, str]:
        return {path: issue.message for path, issue in self.issues.items()}

    @property
    def is_valid(self) -> bool:
        return not self.issues


def label_for(path: str) -> str:
    names = [p for p in split_path(path) if not p.isdigit() and p != "*"]
    if not names:
        return "This field"
    words = re.sub(r"(?<!^)(?=[A-Z])", " ", names[-1]).replace("_", " ").split()
    text = " ".join(words).lower()
    return text[:1].upper() + text[1:]


def branch_active(value: Any) -> bool:
    return value is not False and not is_blank(value)


def _num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _type_ok(value: Any, ftype: str) -> bool:
    if ftype == "number":
        return _is_number(value)
    if ftype == "integer":
        return _is_number(value) and float(value).is_integer()
    if ftype == "boolean":
        return isinstance(value, bool)
    if ftype == "list":
        return isinstance(value, list)
    if ftype == "object":
        return isinstance(value, dict)
    if not isinstance(value, str):
        return False
    candidate = value.strip()
    if ftype == "email":
        return bool(_EMAIL_RE.match(candidate))
    if ftype == "url":
        return bool(_URL_RE.match(candidate))
    if ftype == "image":
        return bool(_IMAGE_RE.match(candidate))
    return True


def _type_message(label: str, ftype: str) -> str:
    return {
        "number": f"{label} must be a number",
        "integer": f"{label} must be a whole number",
        "boolean": f"{label} must be true or false",
        "list": f"{label} must be a list",
        "object": f"{label} is malformed",
        "email": f"{label} must be a valid email address",
        "url": f"{label} must be a valid URL",
        "image": f"{label} must be a valid URL ending with an image extension",
    }.get(ftype, f"{label} must be text")


def _range_message(label: str, c: FieldConstraint) -> str:
    if c.min is not None and c.max is not None:
        return f"{label} must be between {_num(c.min)} and {_num(c.max)}"
    if c.min is not None:
        return f"{label} must be at least {_num(c.min)}"
    return f"{label} cannot exceed {_num(c.max)}"


def check_field(value: Any, constraint: FieldConstraint, *, label: str | None = None) -> FieldIssue | None:
    # required, then type/pattern/choices, then range/length; first hit wins
    c = constraint
    name = c.label or label or "This field"

    def issue(kind: IssueKind, default: str) -> FieldIssue:
        return FieldIssue(kind=kind, message=c.messages.get(kind) or default)

    if is_blank(value, allow_zero=c.allow_zero):
        if c.required:
            return issue("required", f"{name} is required")
        return None

    if not _type_ok(value, c.type):
        return issue("type", _type_message(name, c.type))

    if c.pattern and isinstance(value, str) and not re.match(c.pattern, value.strip()):
        return issue("pattern", f"{name} has an invalid format")

    if c.choices is not None and value not in c.choices:
        return issue("choice", f"{name} must be one of: {', '.join(str(x) for x in c.choices)}")

    if _is_number(value):
        if (c.min is not None and value < c.min) or (c.max is not None and value > c.max):
            return issue("range", _range_message(name, c))
        return None

    if isinstance(value, (str, list)):
        size = len(value.strip()) if isinstance(value, str) else len(value)
        unit = "characters" if isinstance(value, str) else "items"
        if c.max_length is not None and size > c.max_length:
            return issue("length", f"{name} cannot exceed {c.max_length} {unit}")
        if c.min_length is not None and size < c.min_length:
            return issue("length", f"{name} must be at least {c.min_length} {unit}")

    return None


def validate_field(value: Any, constraint: FieldConstraint, *, label: str | None = None) -> str | None:
    found = check_field(value, constraint, label=label)
    return found.message if found else None


def validate_document(document: dict[str, Any], schema: "EntitySchema") -> ValidationResult:
    result = ValidationResult()

    for pattern, constraint in schema.fields.items():
        if constraint.when and not branch_active(get_path(document, constraint.when)):
            continue
        for path in expand_path(document, pattern):
            found = check_field(get_path(document, path), constraint, label=label_for(path))
            if found:
                result.issues[path] = found

    for rule in schema.rules:
        for path, found in rule(document).items():
            result.issues.setdefault(path, found)

    for hint in schema.recommended:
        known = schema.fields.get(hint.path)
        if is_blank(get_path(document, hint.path), allow_zero=known.allow_zero if known else True):
            result.warnings.append(hint.message)

    return result
