import pytest

from kubescore.apps import (
    deployment_has_anti_affinity,
    deployment_selector_labels_matching,
    has_pod_anti_affinity,
    hpa_deployment_no_replicas,
    register,
    statefulset_has_anti_affinity,
    statefulset_has_service_name,
    statefulset_selector_labels_matching,
)
from kubescore.checks import Checks, TargetType
from kubescore.domain import Grade
from kubescore.resources import HorizontalPodAutoscaler, Service


def _required(topology_key, app):
    return {
        "podAntiAffinity": {
            "requiredDuringSchedulingIgnoredDuringExecution": [
                {"topologyKey": topology_key, "labelSelector": {"matchLabels": {"app": app}}}
            ]
        }
    }


ANTI_AFFINITY_CASES = [
    (5, None, Grade.WARNING, False),
    (5, _required("kubernetes.io/hostname", "foo"), Grade.ALL_OK, False),
    (5, _required("topology.kubernetes.io/zone", "foo"), Grade.ALL_OK, False),
    (5, _required("topology.kubernetes.io/region", "foo"), Grade.ALL_OK, False),
    (5, _required("topology.kubernetes.io/what-is-this-key", "foo"), Grade.WARNING, False),
    (
        5,
        {
            "podAntiAffinity": {
                "preferredDuringSchedulingIgnoredDuringExecution": [
                    {
                        "weight": 100,
                        "podAffinityTerm": {
                            "topologyKey": "kubernetes.io/hostname",
                            "labelSelector": {"matchLabels": {"app": "foo"}},
                        },
                    }
                ]
            }
        },
        Grade.ALL_OK,
        False,
    ),
    (5, _required("kubernetes.io/hostname", "not-foo"), Grade.WARNING, False),
    (1, None, Grade.UNSET, True),
]


def _workload(replicas, affinity):
    template_spec = {} if affinity is None else {"affinity": affinity}
    return {
        "spec": {
            "replicas": replicas,
            "template": {"metadata": {"labels": {"app": "foo"}}, "spec": template_spec},
        }
    }


@pytest.mark.parametrize("replicas,affinity,grade,skipped", ANTI_AFFINITY_CASES)
def test_statefulset_has_anti_affinity(replicas, affinity, grade, skipped):
    score = statefulset_has_anti_affinity(_workload(replicas, affinity))
    assert score.grade == grade
    assert score.skipped == skipped


@pytest.mark.parametrize("replicas,affinity,grade,skipped", ANTI_AFFINITY_CASES)
def test_deployment_has_anti_affinity(replicas, affinity, grade, skipped):
    score = deployment_has_anti_affinity(_workload(replicas, affinity))
    assert score.grade == grade
    assert score.skipped == skipped


def test_has_pod_anti_affinity_direct():
    assert has_pod_anti_affinity({"app": "foo"}, _required("kubernetes.io/hostname", "foo"))
    assert not has_pod_anti_affinity({"app": "bar"}, _required("kubernetes.io/hostname", "foo"))


def _hpa(kind, name):
    return HorizontalPodAutoscaler(
        obj={
            "apiVersion": "autoscaling/v1",
            "kind": "HorizontalPodAutoscaler",
            "spec": {"scaleTargetRef": {"kind": kind, "name": name, "apiVersion": "apps/v1"}},
        }
    )


def _deployment(replicas):
    spec = {} if replicas is None else {"replicas": replicas}
    return {"kind": "Deployment", "metadata": {"name": "foo"}, "spec": spec}


def test_deployment_targeted_by_hpa_has_no_replicas_all_ok():
    score = hpa_deployment_no_replicas([_hpa("Deployment", "foo")])(_deployment(None))
    assert score.grade == Grade.ALL_OK
    assert score.skipped is False


def test_deployment_targeted_by_hpa_has_set_replicas_critical():
    score = hpa_deployment_no_replicas([_hpa("Deployment", "foo")])(_deployment(30))
    assert score.grade == Grade.CRITICAL
    assert score.skipped is False


def test_deployment_not_targeted_by_hpa_is_skipped_all_ok():
    score = hpa_deployment_no_replicas([_hpa("Deployment", "some-other-foo")])(_deployment(30))
    assert score.grade == Grade.ALL_OK
    assert score.skipped is True


def test_deployment_targeted_by_hpa_case_insensitive_kind():
    score = hpa_deployment_no_replicas([_hpa("deployment", "foo")])(_deployment(None))
    assert score.grade == Grade.ALL_OK
    assert score.skipped is False


def _statefulset(service_name="", namespace=""):
    spec = {"template": {"metadata": {"labels": {"app": "foo"}}}}
    if service_name:
        spec["serviceName"] = service_name
    metadata = {"name": "foo"}
    if namespace:
        metadata["namespace"] = namespace
    return {"kind": "StatefulSet", "metadata": metadata, "spec": spec}


def _service(name, namespace="", cluster_ip="None", app="foo"):
    metadata = {"name": name}
    if namespace:
        metadata["namespace"] = namespace
    return Service(
        obj={
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": metadata,
            "spec": {"clusterIP": cluster_ip, "selector": {"app": app}},
        }
    )


SERVICE_NAME_CASES = [
    (_statefulset("foo-svc"), [_service("foo-svc")], Grade.ALL_OK),
    (_statefulset("bar-svc"), [_service("foo-svc")], Grade.CRITICAL),
    (_statefulset(), [_service("foo-svc")], Grade.CRITICAL),
    (_statefulset("foo-svc", "foo-ns"), [_service("foo-svc", "foo-ns")], Grade.ALL_OK),
    (_statefulset("foo-svc", "foo-ns"), [_service("foo-svc", "bar-ns")], Grade.CRITICAL),
    (
        _statefulset("foo-svc", "foo-ns"),
        [_service("foo-svc", "bar-ns"), _service("foo-svc", "foo-ns")],
        Grade.ALL_OK,
    ),
    (
        _statefulset("foo-svc", "foo-ns"),
        [_service("foo-svc", "foo-ns"), _service("foo-svc", "bar-ns")],
        Grade.ALL_OK,
    ),
    (_statefulset("foo-svc"), [_service("foo-svc", cluster_ip="")], Grade.CRITICAL),
    (_statefulset("foo-svc"), [_service("foo-svc", app="bar")], Grade.CRITICAL),
]


@pytest.mark.parametrize("statefulset,services,grade", SERVICE_NAME_CASES)
def test_statefulset_has_service_name(statefulset, services, grade):
    score = statefulset_has_service_name(services)(statefulset)
    assert score.grade == grade
    assert score.skipped is False


def _with_selector(selector, template_app):
    return {
        "kind": "StatefulSet",
        "metadata": {"name": "foo"},
        "spec": {
            "selector": selector,
            "template": {"metadata": {"labels": {"app": template_app}}},
        },
    }


SELECTOR_CASES = [
    (_with_selector({"matchLabels": {"app": "foo"}}, "foo"), Grade.ALL_OK),
    (_with_selector({"matchLabels": {"app": "foo"}}, "bar"), Grade.CRITICAL),
    (
        _with_selector(
            {
                "matchExpressions": [
                    {"key": "app", "operator": "In", "values": ["aaa", "bbb", "bar"]}
                ]
            },
            "bar",
        ),
        Grade.ALL_OK,
    ),
    (
        _with_selector(
            {
                "matchExpressions": [
                    {"key": "app", "operator": "NotIn", "values": ["aaa", "bbb", "bar"]}
                ]
            },
            "bar",
        ),
        Grade.CRITICAL,
    ),
]


@pytest.mark.parametrize("manifest,grade", SELECTOR_CASES)
def test_statefulset_selector_labels(manifest, grade):
    assert statefulset_selector_labels_matching(manifest).grade == grade


@pytest.mark.parametrize("manifest,grade", SELECTOR_CASES)
def test_deployment_selector_labels(manifest, grade):
    assert deployment_selector_labels_matching(manifest).grade == grade


def test_invalid_selector_is_critical_with_reason():
    manifest = _with_selector(
        {"matchExpressions": [{"key": "app", "operator": "Bogus", "values": ["x"]}]}, "x"
    )
    score = deployment_selector_labels_matching(manifest)
    assert score.grade == Grade.CRITICAL
    assert score.comments[0].description.startswith("Invalid selector: ")


def test_register_adds_deployment_and_statefulset_checks():
    checks = Checks()
    register(checks, [], [])
    assert len(checks.all()) == 6
    assert len(checks.for_target(TargetType.DEPLOYMENT)) == 3
    assert len(checks.for_target(TargetType.STATEFUL_SET)) == 3
    names = {c.name for c in checks.all()}
    assert "StatefulSet has ServiceName" in names
    assert "Deployment has host PodAntiAffinity" in names