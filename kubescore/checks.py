"""Registry of score checks, grouped by the kind of object they inspect."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from kubescore.config import Configuration
from kubescore.domain import Check


class TargetType(str, Enum):
    """The kind of object a check runs against."""

    ALL = "all"
    POD = "Pod"
    SERVICE = "Service"
    STATEFUL_SET = "StatefulSet"
    DEPLOYMENT = "Deployment"
    NETWORK_POLICY = "NetworkPolicy"
    INGRESS = "Ingress"
    CRON_JOB = "CronJob"
    HORIZONTAL_POD_AUTOSCALER = "HorizontalPodAutoscaler"
    POD_DISRUPTION_BUDGET = "PodDisruptionBudget"


@dataclass(frozen=True)
class RegisteredCheck:
    """A check description together with the function that runs it."""

    check: Check
    fn: Callable[..., Any]


def machine_friendly_name(name: str) -> str:
    """Lower-case the name and replace spaces with dashes."""
    return name.lower().replace(" ", "-")


def new_check(name: str, target_type: str, comment: str, optional: bool) -> Check:
    """A Check whose ID is derived from its name."""
    return Check(
        name=name,
        id=machine_friendly_name(name),
        target_type=str(TargetType(target_type).value),
        comment=comment,
        optional=optional,
    )


class Checks:
    """Every registered check, and the enabled ones per target type.

    Checks listed in the configuration's ``ignored_tests`` are still part of
    :meth:`all`, but are never returned by :meth:`for_target`.
    """

    def __init__(self, config: Configuration | None = None) -> None:
        self.config = config if config is not None else Configuration()
        self._all: list[Check] = []
        self._by_target: dict[TargetType, dict[str, RegisteredCheck]] = {
            target: {} for target in TargetType
        }

    def _is_enabled(self, check: Check) -> bool:
        return check.id not in self.config.ignored_tests

    def register(
        self,
        target_type: TargetType | str,
        name: str,
        comment: str,
        fn: Callable[..., Any],
        optional: bool = False,
    ) -> Check:
        """Register ``fn`` as the check called ``name`` for ``target_type``."""
        target = TargetType(target_type)
        check = new_check(name, target.value, comment, optional)
        self._all.append(check)
        if self._is_enabled(check):
            self._by_target[target][machine_friendly_name(name)] = RegisteredCheck(check, fn)
        return check

    def for_target(self, target_type: TargetType | str) -> dict[str, RegisteredCheck]:
        """The enabled checks for one target type, keyed by check ID."""
        return dict(self._by_target[TargetType(target_type)])

    def all(self) -> list[Check]:
        """Every registered check, in registration order."""
        return list(self._all)