from __future__ import annotations

import copy
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, List

from pydantic import BaseModel, Field

from backoffice.paths import get_path, is_blank
from backoffice.rules import RULES
from backoffice.state import PriceBinding, StepDefinition
from backoffice.validators import FieldConstraint, FieldIssue

logger = logging.getLogger(__name__)

_SCHEMA_DIR = Path(__file__).parent / "schemas"


class DraftPolicy(BaseModel):
    key: str
    debounce_ms: int = 1500
    text_min_lengths: Dict[str, int] = Field(default_factory=dict)
    collections: List[str] = Field(default_factory=list)
    positive: List[str] = Field(default_factory=list)

    def is_meaningful(self, document: dict[str, Any] | None) -> bool:
        if not isinstance(document, dict):
            return False
        for path, min_length in self.text_min_lengths.items():
            value = get_path(document, path)
            if isinstance(value, str) and len(value.strip()) >= max(1, min_length):
                return True
        for path in self.collections:
            value = get_path(document, path)
            if isinstance(value, (list, dict)) and not is_blank(value):
                return True
        for path in self.positive:
            value = get_path(document, path)
            if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
                return True
        return False


class Hint(BaseModel):
    path: str
    message: str


class EntitySchema(BaseModel):
    name: str
    label: str
    collection: str
    title_field: str = "name"
    template: Dict[str, Any]
    fields: Dict[str, FieldConstraint] = Field(default_factory=dict)
    steps: List[StepDefinition] = Field(default_factory=list)
    draft: DraftPolicy
    recommended: List[Hint] = Field(default_factory=list)
    price_bindings: List[PriceBinding] = Field(default_factory=list)
    rules: List[Callable[[Dict[str, Any]], Dict[str, FieldIssue]]] = Field(default_factory=list, exclude=True)

    def empty_document(self) -> dict[str, Any]:
        return copy.deepcopy(self.template)

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "label": self.label,
            "collection": self.collection,
            "template": self.template,
            "steps": [s.model_dump() for s in self.steps],
        }


def _schema_path(name: str) -> Path:
    return _SCHEMA_DIR / f"{name}.json"


def available_entities() -> list[str]:
    return sorted(p.stem for p in _SCHEMA_DIR.glob("*.json"))


@lru_cache(maxsize=None)
def get_entity(name: str) -> EntitySchema:
    if name not in available_entities():
        raise ValueError(f"Unknown entity type: {name}")
    raw = json.loads(_schema_path(name).read_text(encoding="utf-8"))
    raw["name"] = name
    schema = EntitySchema.model_validate(raw)
    schema.rules = list(RULES.get(name, []))
    logger.debug("Loaded %s schema: %d fields, %d steps", name, len(schema.fields), len(schema.steps))
    return schema
