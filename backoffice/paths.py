from __future__ import annotations

import copy
from typing import Any

WILDCARD = "*"


def split_path(path: str) -> list[str]:
    return [p for p in str(path).split(".") if p != ""]


def _is_index(segment: str) -> bool:
    return segment.isdigit()


def get_path(document: Any, path: str, default: Any = None) -> Any:
    current = document
    for segment in split_path(path):
        if isinstance(current, dict):
            if segment not in current:
                return default
            current = current[segment]
        elif isinstance(current, list) and _is_index(segment):
            idx = int(segment)
            if idx >= len(current):
                return default
            current = current[idx]
        else:
            return default
    return current


def set_path(document: dict[str, Any], path: str, value: Any) -> dict[str, Any]:
    parts = split_path(path)
    if not parts:
        raise ValueError("Empty field path")

    current: Any = document
    for i, segment in enumerate(parts[:-1]):
        following = parts[i + 1]
        child = _step_into(current, segment, [] if _is_index(following) else {})
        current = child

    _assign(current, parts[-1], value)
    return document


def _step_into(container: Any, segment: str, fresh: Any) -> Any:
    if isinstance(container, list):
        if not _is_index(segment):
            raise ValueError(f"Cannot address list with '{segment}'")
        idx = int(segment)
        while len(container) <= idx:
            container.append(None)
        if not isinstance(container[idx], (dict, list)):
            container[idx] = fresh
        return container[idx]

    existing = container.get(segment)
    if not isinstance(existing, (dict, list)):
        container[segment] = fresh
    return container[segment]


def _assign(container: Any, segment: str, value: Any) -> None:
    if isinstance(container, list):
        if not _is_index(segment):
            raise ValueError(f"Cannot address list with '{segment}'")
        idx = int(segment)
        while len(container) <= idx:
            container.append(None)
        container[idx] = value
        return
    container[segment] = value


def path_matches(pattern: str, path: str) -> bool:
    pat = split_path(pattern)
    parts = split_path(path)
    if len(pat) != len(parts):
        return False
    return all(p == WILDCARD or p == s for p, s in zip(pat, parts))


def path_within(owner: str, path: str) -> bool:
    pat = split_path(owner)
    parts = split_path(path)
    if len(parts) < len(pat):
        return False
    return all(p == WILDCARD or p == s for p, s in zip(pat, parts))


def expand_path(document: Any, pattern: str) -> list[str]:
    results: list[str] = []

    def walk(node: Any, remaining: list[str], prefix: list[str]) -> None:
        if not remaining:
            results.append(".".join(prefix))
            return
        head, rest = remaining[0], remaining[1:]
        if head == WILDCARD:
            if isinstance(node, list):
                for idx, item in enumerate(node):
                    walk(item, rest, prefix + [str(idx)])
            return
        child = get_path(node, head) if isinstance(node, (dict, list)) else None
        walk(child, rest, prefix + [head])

    walk(document, split_path(pattern), [])
    return results


def is_blank(value: Any, *, allow_zero: bool = True) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (int, float)):
        return (not allow_zero) and value == 0
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def merge_template(template: dict[str, Any], entity: dict[str, Any] | None) -> dict[str, Any]:
    # entity values win at the leaves; None and missing keys keep the template value, lists are replaced whole
    merged = copy.deepcopy(template)
    if not entity:
        return merged

    for key, value in entity.items():
        base = merged.get(key)
        if value is None:
            if key not in merged:
                merged[key] = None
            continue
        if isinstance(base, dict) and isinstance(value, dict):
            merged[key] = merge_template(base, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def sanitize(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        cleaned = [sanitize(v) for v in value]
        if any(isinstance(v, str) for v in value):
            cleaned = [v for v in cleaned if not (isinstance(v, str) and v == "")]
        return cleaned
    if isinstance(value, dict):
        return {k: sanitize(v) for k, v in value.items()}
    return value
