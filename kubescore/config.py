"""Run configuration and Kubernetes version handling."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

_INTEGER = re.compile(r"[+-]?[0-9]+")


class InvalidSemverError(ValueError):
    """Raised when a Kubernetes version string cannot be parsed."""

    def __init__(self) -> None:
        super().__init__("invalid semver")


@dataclass(frozen=True)
class Semver:
    """A major.minor version such as v1.18."""

    major: int = 0
    minor: int = 0

    def less_than(self, other: Semver) -> bool:
        return (self.major, self.minor) < (other.major, other.minor)

    def __str__(self) -> str:
        return f"v{self.major}.{self.minor}"


def parse_semver(s: str) -> Semver:
    """Parse "vMAJOR.MINOR" or "MAJOR.MINOR" into a Semver."""
    if not s:
        raise InvalidSemverError()
    body = s[1:] if s.startswith("v") else s
    parts = body.split(".")
    if len(parts) != 2 or not all(_INTEGER.fullmatch(part) for part in parts):
        raise InvalidSemverError()
    return Semver(major=int(parts[0]), minor=int(parts[1]))


@dataclass
class Configuration:
    """Settings that control parsing and scoring.

    ``all_files`` holds readable objects that carry a ``name`` attribute,
    such as open file objects.
    """

    all_files: list[Any] = field(default_factory=list)
    verbose_output: int = 0
    ignore_container_cpu_limit_requirement: bool = False
    ignore_container_memory_limit_requirement: bool = False
    ignored_tests: set[str] = field(default_factory=set)
    enabled_optional_tests: set[str] = field(default_factory=set)
    use_ignore_checks_annotation: bool = False
    use_optional_checks_annotation: bool = False
    kubernetes_version: Semver = field(default_factory=Semver)