"""Human readable report with per-object headers and wrapped descriptions."""

from __future__ import annotations

from kubescore.domain import Grade, Scorecard, TestScore

_INDENT = " " * 12
_MAX_HEADER_WIDTH = 80
_MIN_WRAP_WIDTH = 40


def wrap(text: str, width: int) -> str:
    """Greedily wrap ``text`` at spaces so lines are at most ``width`` long.

    Existing line breaks are kept; words longer than ``width`` are not split.
    """
    if width < 1:
        raise ValueError("wrap width must be at least 1")
    out: list[str] = []
    for line in text.split("\n"):
        current = ""
        for word in line.split():
            if current and len(current) + 1 + len(word) > width:
                out.append(current)
                current = word
            else:
                current = f"{current} {word}" if current else word
        out.append(current)
    return "\n".join(out)


def _indent(text: str) -> str:
    return "\n".join(_INDENT + line if line else line for line in text.split("\n"))


def _render_step(card: TestScore, verbose_output: int, term_width: int) -> str:
    if card.skipped and verbose_output < 2:
        return ""
    if (card.skipped or card.grade >= Grade.ALL_OK) and verbose_output == 0:
        return ""

    status = "SKIPPED" if card.skipped else str(card.grade)
    parts = [f"    [{status}] {card.check.name}\n"]

    for comment in card.comments:
        parts.append("        · ")
        if comment.path:
            parts.append(f"{comment.path} -> ")
        parts.append(comment.summary)
        if comment.description:
            wrap_width = max(term_width - 12, _MIN_WRAP_WIDTH)
            parts.append("\n")
            parts.append(_indent(wrap(comment.description, wrap_width)))
        if comment.documentation_url:
            parts.append(f"\n{_INDENT}More information: {comment.documentation_url}")
        parts.append("\n")

    return "".join(parts)


def render(scorecard: Scorecard, verbose_output: int, term_width: int) -> str:
    """The report for every object in the scorecard, sorted by key."""
    parts: list[str] = []
    for key in sorted(scorecard):
        scored_object = scorecard[key]
        type_meta = scored_object.type_meta
        object_meta = scored_object.object_meta

        header = f"{type_meta.api_version}/{type_meta.kind} {object_meta.name}"
        if object_meta.namespace:
            header += f" in {object_meta.namespace}"
        padding = min(_MAX_HEADER_WIDTH, term_width) - len(header.encode("utf-8")) - 2
        parts.append(header)
        parts.append(" " * max(0, padding))

        if scored_object.any_below_or_equal_to_grade(Grade.CRITICAL):
            parts.append("💥\n")
        elif scored_object.any_below_or_equal_to_grade(Grade.WARNING):
            parts.append("🤔\n")
        else:
            parts.append("✅\n")

        for card in scored_object.checks:
            parts.append(_render_step(card, verbose_output, term_width))

    return "".join(parts)