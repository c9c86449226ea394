"""SARIF document model and its JSON encoding."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

_ZERO_TIME = "0001-01-01T00:00:00Z"

_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _omit_empty(values: dict[str, Any]) -> dict[str, Any]:
    """Drop empty scalars and lists; nested objects are always kept."""
    return {k: v for k, v in values.items() if isinstance(v, dict) or v}


@dataclass
class Message:
    text: str = ""

    def _to_dict(self) -> dict[str, Any]:
        return _omit_empty({"text": self.text})


@dataclass
class Rule:
    id: str = ""
    name: str = ""
    help_uri: str = ""

    def _to_dict(self) -> dict[str, Any]:
        return _omit_empty({"id": self.id, "name": self.name, "helpUri": self.help_uri})


@dataclass
class Driver:
    name: str = ""
    rules: list[Rule] = field(default_factory=list)

    def _to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            {"name": self.name, "rules": [r._to_dict() for r in self.rules]}
        )


@dataclass
class Tool:
    driver: Driver = field(default_factory=Driver)

    def _to_dict(self) -> dict[str, Any]:
        return {"driver": self.driver._to_dict()}


@dataclass
class Location:
    """A physical location: artifact URI plus region and context region lines."""

    uri: str = ""
    start_line: int = 0
    context_start_line: int = 0
    context_end_line: int = 0

    def _to_dict(self) -> dict[str, Any]:
        return {
            "physicalLocation": {
                "region": _omit_empty({"snippet": {}, "startLine": self.start_line}),
                "artifactLocation": _omit_empty({"uri": self.uri}),
                "contextRegion": _omit_empty(
                    {
                        "snippet": {},
                        "endLine": self.context_end_line,
                        "startLine": self.context_start_line,
                    }
                ),
            }
        }


@dataclass
class Result:
    message: Message = field(default_factory=Message)
    level: str = ""
    locations: list[Location] = field(default_factory=list)
    rule_id: str = ""
    rule_index: int = 0
    issue_confidence: str = ""
    issue_severity: str = ""

    def _to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            {
                "message": self.message._to_dict(),
                "level": self.level,
                "locations": [loc._to_dict() for loc in self.locations],
                "properties": _omit_empty(
                    {
                        "issue_confidence": self.issue_confidence,
                        "issue_severity": self.issue_severity,
                    }
                ),
                "ruleId": self.rule_id,
                "ruleIndex": self.rule_index,
            }
        )


@dataclass
class Run:
    tool: Tool = field(default_factory=Tool)
    results: list[Result] = field(default_factory=list)

    def _to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            {
                "tool": self.tool._to_dict(),
                "conversion": {
                    "tool": {"driver": {}},
                    "invocation": {"endTimeUtc": _ZERO_TIME, "workingDirectory": {}},
                },
                "properties": {},
                "results": [r._to_dict() for r in self.results],
            }
        )


@dataclass
class Sarif:
    runs: list[Run] = field(default_factory=list)
    version: str = "2.1.0"
    schema: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            {
                "runs": [run._to_dict() for run in self.runs],
                "version": self.version,
                "$schema": self.schema,
            }
        )

    def to_json(self) -> str:
        """Indented JSON with HTML-sensitive characters escaped."""
        text = json.dumps(self.to_dict(), indent=4, ensure_ascii=False)
        for char, escaped in _ESCAPES.items():
            text = text.replace(char, escaped)
        return text