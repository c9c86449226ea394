"""Structured JSON report, one entry per scored object."""

from __future__ import annotations

import json
from typing import Any

from kubescore.domain import Check, ObjectMeta, Scorecard, TestScore, TypeMeta

_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _dumps(value: Any) -> str:
    text = json.dumps(value, indent=4, ensure_ascii=False)
    for char, escaped in _ESCAPES.items():
        text = text.replace(char, escaped)
    return text


def _type_meta(meta: TypeMeta) -> dict[str, Any]:
    result: dict[str, Any] = {}
    if meta.kind:
        result["kind"] = meta.kind
    if meta.api_version:
        result["apiVersion"] = meta.api_version
    return result


def _object_meta(meta: ObjectMeta) -> dict[str, Any]:
    result: dict[str, Any] = {}
    if meta.name:
        result["name"] = meta.name
    if meta.namespace:
        result["namespace"] = meta.namespace
    result["creationTimestamp"] = None
    if meta.labels:
        result["labels"] = dict(meta.labels)
    if meta.annotations:
        result["annotations"] = dict(meta.annotations)
    return result


def _check(check: Check) -> dict[str, Any]:
    return {
        "name": check.name,
        "id": check.id,
        "target_type": check.target_type,
        "comment": check.comment,
        "optional": check.optional,
    }


def _test_score(score: TestScore) -> dict[str, Any]:
    comments = [
        {"path": c.path, "summary": c.summary, "description": c.description}
        for c in score.comments
    ]
    return {
        "check": _check(score.check),
        "grade": int(score.grade),
        "skipped": score.skipped,
        "comments": comments or None,
    }


def render(scorecard: Scorecard) -> str:
    """The scorecard as indented JSON; ``null`` when it holds no objects."""
    objects = [
        {
            "object_name": key,
            "type_meta": _type_meta(obj.type_meta),
            "object_meta": _object_meta(obj.object_meta),
            "checks": [_test_score(c) for c in obj.checks] or None,
            "file_name": obj.file_location.name,
            "file_row": obj.file_location.line,
        }
        for key, obj in sorted(scorecard.items())
    ]
    return _dumps(objects or None)