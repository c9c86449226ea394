"""Core data types shared by the parser, the checks and the renderers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Mapping


@dataclass(frozen=True)
class Check:
    """Description of a single score check."""

    name: str = ""
    id: str = ""
    target_type: str = ""
    comment: str = ""
    optional: bool = False


@dataclass(frozen=True)
class FileLocation:
    """Where an object was found: file name and 1-based line."""

    name: str = ""
    line: int = 0


@dataclass(frozen=True)
class TypeMeta:
    api_version: str = ""
    kind: str = ""


@dataclass
class ObjectMeta:
    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class BothMeta:
    """Type and object metadata of any parsed object, with its location."""

    type_meta: TypeMeta = field(default_factory=TypeMeta)
    object_meta: ObjectMeta = field(default_factory=ObjectMeta)
    file_location: FileLocation = field(default_factory=FileLocation)


def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): "" if v is None else str(v) for k, v in value.items()}


def type_meta_from(manifest: Mapping[str, Any] | None) -> TypeMeta:
    """Read apiVersion and kind from a decoded manifest."""
    manifest = manifest or {}
    return TypeMeta(
        api_version=str(manifest.get("apiVersion") or ""),
        kind=str(manifest.get("kind") or ""),
    )


def object_meta_from(manifest: Mapping[str, Any] | None) -> ObjectMeta:
    """Read the metadata block from a decoded manifest."""
    meta = (manifest or {}).get("metadata") or {}
    return ObjectMeta(
        name=str(meta.get("name") or ""),
        namespace=str(meta.get("namespace") or ""),
        labels=_string_map(meta.get("labels")),
        annotations=_string_map(meta.get("annotations")),
    )


class Grade(IntEnum):
    """Outcome of a check; lower is worse."""

    UNSET = 0
    CRITICAL = 1
    WARNING = 5
    ALMOST_OK = 7
    ALL_OK = 10

    def __str__(self) -> str:
        if self is Grade.CRITICAL:
            return "CRITICAL"
        if self is Grade.WARNING:
            return "WARNING"
        if self in (Grade.ALMOST_OK, Grade.ALL_OK):
            return "OK"
        raise ValueError(f"unknown grade: {self.value}")


@dataclass
class TestScoreComment:
    __test__ = False

    path: str = ""
    summary: str = ""
    description: str = ""
    documentation_url: str = ""


@dataclass
class TestScore:
    """The result of running one check against one object."""

    __test__ = False

    check: Check = field(default_factory=Check)
    grade: Grade = Grade.UNSET
    skipped: bool = False
    comments: list[TestScoreComment] = field(default_factory=list)

    def add_comment(self, path: str, summary: str, description: str) -> None:
        self.comments.append(
            TestScoreComment(path=path, summary=summary, description=description)
        )


@dataclass
class ScoredObject:
    """An object together with the results of every check run on it."""

    type_meta: TypeMeta = field(default_factory=TypeMeta)
    object_meta: ObjectMeta = field(default_factory=ObjectMeta)
    file_location: FileLocation = field(default_factory=FileLocation)
    checks: list[TestScore] = field(default_factory=list)

    def human_friendly_ref(self) -> str:
        ref = self.object_meta.name
        if self.object_meta.namespace:
            ref += "/" + self.object_meta.namespace
        return f"{ref} {self.type_meta.api_version}/{self.type_meta.kind}"

    def any_below_or_equal_to_grade(self, grade: Grade) -> bool:
        return any(not c.skipped and c.grade <= grade for c in self.checks)


class Scorecard(dict):
    """Scored objects keyed by a unique object key."""

    def any_below_or_equal_to_grade(self, grade: Grade) -> bool:
        return any(obj.any_below_or_equal_to_grade(grade) for obj in self.values())