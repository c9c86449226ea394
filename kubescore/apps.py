"""Checks for Deployments and StatefulSets.

The check functions receive the decoded manifest of the object as a dict.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping

from kubescore.checks import Checks, TargetType
from kubescore.domain import Grade, TestScore, object_meta_from, type_meta_from
from kubescore.labels import InvalidSelectorError, map_selector_matches, selector_matches
from kubescore.resources import HorizontalPodAutoscaler, Service

_ANTI_AFFINITY_URL = "https://kubernetes.io/docs/concepts/configuration/assign-pod-node/"

_APPROVED_TOPOLOGY_KEYS = frozenset(
    {
        "kubernetes.io/hostname",
        "topology.kubernetes.io/region",
        "topology.kubernetes.io/zone",
        # Deprecated in Kubernetes v1.17
        "failure-domain.beta.kubernetes.io/region",
        "failure-domain.beta.kubernetes.io/zone",
    }
)


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _spec(manifest: Mapping[str, Any]) -> dict[str, Any]:
    return _mapping(manifest.get("spec"))


def _template(manifest: Mapping[str, Any]) -> dict[str, Any]:
    return _mapping(_spec(manifest).get("template"))


def _template_labels(manifest: Mapping[str, Any]) -> dict[str, str]:
    return object_meta_from(_template(manifest)).labels


def register(
    all_checks: Checks,
    all_hpas: Iterable[HorizontalPodAutoscaler],
    all_services: Iterable[Service],
) -> None:
    """Add the Deployment and StatefulSet checks to ``all_checks``."""
    hpas = list(all_hpas)
    services = list(all_services)
    anti_affinity_comment = (
        "Makes sure that a podAntiAffinity has been set that prevents multiple pods "
        f"from being scheduled on the same node. {_ANTI_AFFINITY_URL}"
    )
    all_checks.register(
        TargetType.DEPLOYMENT,
        "Deployment has host PodAntiAffinity",
        anti_affinity_comment,
        deployment_has_anti_affinity,
    )
    all_checks.register(
        TargetType.STATEFUL_SET,
        "StatefulSet has host PodAntiAffinity",
        anti_affinity_comment,
        statefulset_has_anti_affinity,
    )
    all_checks.register(
        TargetType.DEPLOYMENT,
        "Deployment targeted by HPA does not have replicas configured",
        "Makes sure that Deployments using a HorizontalPodAutoscaler doesn't have "
        "a statically configured replica count set",
        hpa_deployment_no_replicas(hpas),
    )
    all_checks.register(
        TargetType.STATEFUL_SET,
        "StatefulSet has ServiceName",
        "Makes sure that StatefulSets have an existing headless serviceName.",
        statefulset_has_service_name(services),
    )
    selector_comment = "Ensure the StatefulSet selector labels match the template metadata labels."
    all_checks.register(
        TargetType.DEPLOYMENT,
        "Deployment Pod Selector labels match template metadata labels",
        selector_comment,
        deployment_selector_labels_matching,
    )
    all_checks.register(
        TargetType.STATEFUL_SET,
        "StatefulSet Pod Selector labels match template metadata labels",
        selector_comment,
        statefulset_selector_labels_matching,
    )


def hpa_deployment_no_replicas(
    all_hpas: Iterable[HorizontalPodAutoscaler],
) -> Callable[[Mapping[str, Any]], TestScore]:
    """A check that a Deployment scaled by an HPA leaves replicas unset."""
    hpas = list(all_hpas)

    def check(deployment: Mapping[str, Any]) -> TestScore:
        score = TestScore()
        meta = object_meta_from(deployment)
        kind = type_meta_from(deployment).kind
        for hpa in hpas:
            target = hpa.hpa_target()
            if (
                hpa.object_meta().namespace == meta.namespace
                and target["kind"].casefold() == kind.casefold()
                and target["name"] == meta.name
            ):
                if _spec(deployment).get("replicas") is None:
                    score.grade = Grade.ALL_OK
                    return score
                score.grade = Grade.CRITICAL
                score.add_comment(
                    "",
                    "The deployment is targeted by a HPA, but a static replica count "
                    "is configured in the DeploymentSpec",
                    "When replicas are both statically set and managed by the HPA, the "
                    "replicas will be changed to the statically configured count when "
                    "the spec is applied, even if the HPA wants the replica count to be "
                    "higher.",
                )
                return score

        score.grade = Grade.ALL_OK
        score.skipped = True
        score.add_comment(
            "", "Skipped because the deployment is not targeted by a HorizontalPodAutoscaler", ""
        )
        return score

    return check


def _anti_affinity_score(manifest: Mapping[str, Any], noun: str, title: str) -> TestScore:
    score = TestScore()
    # An unset replica count may mean an autoscaler is in use, so still check.
    replicas = _spec(manifest).get("replicas")
    if replicas is not None and int(replicas) < 2:
        score.skipped = True
        score.add_comment("", f"Skipped because the {noun} has less than 2 replicas", "")
        return score

    affinity = _mapping(_template(manifest).get("spec")).get("affinity")
    if (
        isinstance(affinity, dict)
        and isinstance(affinity.get("podAntiAffinity"), dict)
        and has_pod_anti_affinity(_template_labels(manifest), affinity)
    ):
        score.grade = Grade.ALL_OK
        return score

    score.grade = Grade.WARNING
    score.add_comment(
        "",
        f"{title} does not have a host podAntiAffinity set",
        "It's recommended to set a podAntiAffinity that stops multiple pods from a "
        f"{noun} from being scheduled on the same node. This increases availability "
        "in case the node becomes unavailable.",
    )
    return score


def deployment_has_anti_affinity(deployment: Mapping[str, Any]) -> TestScore:
    """Warn when a replicated Deployment lacks a host podAntiAffinity."""
    return _anti_affinity_score(deployment, "deployment", "Deployment")


def statefulset_has_anti_affinity(statefulset: Mapping[str, Any]) -> TestScore:
    """Warn when a replicated StatefulSet lacks a host podAntiAffinity."""
    return _anti_affinity_score(statefulset, "statefulset", "StatefulSet")


def _term_selects(term: Any, labels: Mapping[str, str]) -> bool:
    term = _mapping(term)
    if term.get("topologyKey") not in _APPROVED_TOPOLOGY_KEYS:
        return False
    selector = term.get("labelSelector")
    try:
        return selector_matches(selector if isinstance(selector, dict) else None, labels)
    except InvalidSelectorError:
        return False


def has_pod_anti_affinity(self_labels: Mapping[str, str], affinity: Mapping[str, Any]) -> bool:
    """Whether an anti-affinity term on an approved topology key selects the pod itself."""
    anti = _mapping(affinity.get("podAntiAffinity"))
    preferred = anti.get("preferredDuringSchedulingIgnoredDuringExecution") or []
    if any(_term_selects(_mapping(p).get("podAffinityTerm"), self_labels) for p in preferred):
        return True
    required = anti.get("requiredDuringSchedulingIgnoredDuringExecution") or []
    return any(_term_selects(r, self_labels) for r in required)


def statefulset_has_service_name(
    all_services: Iterable[Service],
) -> Callable[[Mapping[str, Any]], TestScore]:
    """A check that a StatefulSet names a headless Service selecting its pods."""
    services = list(all_services)

    def check(statefulset: Mapping[str, Any]) -> TestScore:
        score = TestScore()
        namespace = object_meta_from(statefulset).namespace
        service_name = str(_spec(statefulset).get("serviceName") or "")
        labels = _template_labels(statefulset)
        for service in services:
            meta = service.object_meta()
            spec = _mapping(service.obj.get("spec"))
            if (
                meta.namespace != namespace
                or meta.name != service_name
                or spec.get("clusterIP") != "None"
            ):
                continue
            selector = spec.get("selector")
            if map_selector_matches(selector if isinstance(selector, dict) else None, labels):
                score.grade = Grade.ALL_OK
                return score

        score.grade = Grade.CRITICAL
        score.add_comment(
            "",
            "StatefulSet does not have a valid serviceName",
            "StatefulSets currently require a Headless Service to be responsible for the "
            "network identity of the Pods. You are responsible for creating this Service. "
            "https://kubernetes.io/docs/concepts/workloads/controllers/statefulset/#limitations",
        )
        return score

    return check


def _selector_labels_score(
    manifest: Mapping[str, Any], title: str, verb: str, url: str
) -> TestScore:
    score = TestScore()
    selector = _spec(manifest).get("selector")
    try:
        matches = selector_matches(
            selector if isinstance(selector, dict) else None, _template_labels(manifest)
        )
    except InvalidSelectorError as exc:
        score.grade = Grade.CRITICAL
        score.add_comment(
            "",
            f"{title} selector labels are not matching template metadata labels",
            f"Invalid selector: {exc}",
        )
        return score

    if matches:
        score.grade = Grade.ALL_OK
        return score

    score.grade = Grade.CRITICAL
    score.add_comment(
        "",
        f"{title} selector labels not matching template metadata labels",
        f"{title}{verb} require `.spec.selector` to match `.spec.template.metadata.labels`. {url}",
    )
    return score


def statefulset_selector_labels_matching(statefulset: Mapping[str, Any]) -> TestScore:
    """Critical unless the StatefulSet selector selects its own template labels."""
    return _selector_labels_score(
        statefulset,
        "StatefulSet",
        "s",
        "https://kubernetes.io/docs/concepts/workloads/controllers/statefulset/#pod-selector",
    )


def deployment_selector_labels_matching(deployment: Mapping[str, Any]) -> TestScore:
    """Critical unless the Deployment selector selects its own template labels."""
    return _selector_labels_score(
        deployment,
        "Deployment",
        "",
        "https://kubernetes.io/docs/concepts/workloads/controllers/deployment/",
    )