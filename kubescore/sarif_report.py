"""SARIF report of the warnings and critical findings in a scorecard."""

from __future__ import annotations

from kubescore.domain import Grade, Scorecard
from kubescore.sarif import Driver, Location, Message, Result, Rule, Run, Sarif, Tool

_SCHEMA = (
    "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/"
    "Schemata/sarif-schema-2.1.0.json"
)
_LEVELS = {Grade.CRITICAL: "error", Grade.WARNING: "warning"}


def render(scorecard: Scorecard) -> str:
    """The scorecard as a SARIF 2.1.0 JSON document."""
    rules: dict[str, Rule] = {}
    results: list[Result] = []

    for key in sorted(scorecard):
        scored_object = scorecard[key]
        for card in scored_object.checks:
            if card.skipped:
                continue
            level = _LEVELS.get(card.grade)
            if level is None:
                continue
            rules.setdefault(card.check.id, Rule(id=card.check.id, name=card.check.name))
            for comment in card.comments:
                results.append(
                    Result(
                        message=Message(text=comment.summary),
                        rule_id=card.check.id,
                        level=level,
                        issue_confidence="HIGH",
                        issue_severity="HIGH",
                        locations=[
                            Location(
                                uri="file://" + scored_object.file_location.name,
                                context_start_line=scored_object.file_location.line,
                            )
                        ],
                    )
                )

    run = Run(
        tool=Tool(driver=Driver(name="kube-score", rules=list(rules.values()))),
        results=results,
    )
    return Sarif(runs=[run], version="2.1.0", schema=_SCHEMA).to_json()