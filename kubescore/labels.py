"""Label selector matching."""

from __future__ import annotations

from typing import Any, Mapping

_SET_OPERATORS = ("In", "NotIn")
_EXISTENCE_OPERATORS = ("Exists", "DoesNotExist")


class InvalidSelectorError(ValueError):
    """Raised when a label selector is malformed."""


def _requirements(selector: Mapping[str, Any]) -> list[tuple[str, str, frozenset[str]]]:
    requirements = [
        (str(key), "In", frozenset({"" if value is None else str(value)}))
        for key, value in (selector.get("matchLabels") or {}).items()
    ]
    for expression in selector.get("matchExpressions") or []:
        key = str(expression.get("key") or "")
        operator = str(expression.get("operator") or "")
        values = frozenset(str(v) for v in expression.get("values") or ())
        if not key:
            raise InvalidSelectorError("label selector key must not be empty")
        if operator in _SET_OPERATORS:
            if not values:
                raise InvalidSelectorError(
                    "values: for 'in', 'notin' operators, values set can't be empty"
                )
        elif operator in _EXISTENCE_OPERATORS:
            if values:
                raise InvalidSelectorError(
                    "values: values set must be empty for exists and does not exist"
                )
        else:
            raise InvalidSelectorError(
                f'"{operator}" is not a valid label selector operator'
            )
        requirements.append((key, operator, values))
    return requirements


def _requirement_matches(
    key: str, operator: str, values: frozenset[str], labels: Mapping[str, str]
) -> bool:
    if operator == "In":
        return key in labels and labels[key] in values
    if operator == "NotIn":
        return key not in labels or labels[key] not in values
    if operator == "Exists":
        return key in labels
    return key not in labels


def selector_matches(
    selector: Mapping[str, Any] | None, labels: Mapping[str, str]
) -> bool:
    """Whether a LabelSelector (matchLabels/matchExpressions) selects ``labels``.

    A missing selector selects nothing; an empty one selects everything.
    """
    if selector is None:
        return False
    labels = labels or {}
    return all(
        _requirement_matches(key, operator, values, labels)
        for key, operator, values in _requirements(selector)
    )


def map_selector_matches(
    selector: Mapping[str, str] | None, labels: Mapping[str, str] | None
) -> bool:
    """Whether every pair of a plain map selector is present in ``labels``.

    An empty selector matches nothing.
    """
    if not selector:
        return False
    labels = labels or {}
    return all(key in labels and labels[key] == value for key, value in selector.items())