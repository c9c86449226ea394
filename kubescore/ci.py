"""Line-oriented output that is easy for other programs to parse."""

from __future__ import annotations

from kubescore.domain import Scorecard


def render(scorecard: Scorecard) -> str:
    """One line per comment (or per check without comments), objects sorted by key."""
    lines: list[str] = []
    for key in sorted(scorecard):
        scored_object = scorecard[key]
        ref = scored_object.human_friendly_ref()
        for card in scored_object.checks:
            status = "SKIPPED" if card.skipped else str(card.grade)
            if not card.comments:
                lines.append(f"[{status}] {ref}\n")
            for comment in card.comments:
                message = comment.summary
                if comment.path:
                    message = f"({comment.path}) {comment.summary}"
                lines.append(f"[{status}] {ref}: {message}\n")
    return "".join(lines)