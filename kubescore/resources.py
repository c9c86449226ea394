"""Wrappers around decoded Kubernetes manifests.

Every wrapper keeps the decoded manifest in ``obj`` and the place it was
read from in ``location``. The accessors present the parts the checks
need in one shape, whatever API version the manifest used.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Mapping

from kubescore.domain import (
    FileLocation,
    ObjectMeta,
    TypeMeta,
    object_meta_from,
    type_meta_from,
)

_INGRESS_V1 = "networking.k8s.io/v1"


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _with_namespace(template: Any, namespace: str) -> dict[str, Any]:
    """Copy a pod template and give it the owning object's namespace."""
    spec = copy.deepcopy(_mapping(template))
    metadata = spec.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
        spec["metadata"] = metadata
    metadata["namespace"] = namespace
    return spec


@dataclass
class Resource:
    """Any decoded object together with its file location."""

    obj: dict[str, Any] = field(default_factory=dict)
    location: FileLocation = field(default_factory=FileLocation)

    def type_meta(self) -> TypeMeta:
        return type_meta_from(self.obj)

    def object_meta(self) -> ObjectMeta:
        return object_meta_from(self.obj)

    def _spec(self) -> dict[str, Any]:
        return _mapping(self.obj.get("spec"))


class Workload(Resource):
    """A Deployment, StatefulSet, DaemonSet or Job: anything with spec.template."""

    def pod_template_spec(self) -> dict[str, Any]:
        """The pod template, placed in the workload's own namespace."""
        return _with_namespace(self._spec().get("template"), self.object_meta().namespace)


class CronJob(Resource):
    """A CronJob of batch/v1 or batch/v1beta1."""

    def pod_template_spec(self) -> dict[str, Any]:
        """The job template's pod template, placed in the CronJob's namespace."""
        job_template = _mapping(self._spec().get("jobTemplate"))
        template = _mapping(job_template.get("spec")).get("template")
        return _with_namespace(template, self.object_meta().namespace)

    def starting_deadline_seconds(self) -> int | None:
        value = self._spec().get("startingDeadlineSeconds")
        return None if value is None else int(value)


class Pod(Resource):
    """A bare Pod."""


class Service(Resource):
    """A Service."""


class NetworkPolicy(Resource):
    """A NetworkPolicy."""


class PodDisruptionBudget(Resource):
    """A PodDisruptionBudget of policy/v1 or policy/v1beta1."""

    def namespace(self) -> str:
        return self.object_meta().namespace

    def spec(self) -> dict[str, Any]:
        return copy.deepcopy(self._spec())

    def selector(self) -> dict[str, Any] | None:
        selector = self._spec().get("selector")
        return copy.deepcopy(selector) if isinstance(selector, dict) else None


class HorizontalPodAutoscaler(Resource):
    """A HorizontalPodAutoscaler of any supported version."""

    def hpa_target(self) -> dict[str, str]:
        """The scaled object reference: kind, name and apiVersion."""
        ref = _mapping(self._spec().get("scaleTargetRef"))
        return {
            "kind": str(ref.get("kind") or ""),
            "name": str(ref.get("name") or ""),
            "apiVersion": str(ref.get("apiVersion") or ""),
        }


def _v1_path(path: Mapping[str, Any]) -> dict[str, Any]:
    backend = _mapping(path.get("backend"))
    port = backend.get("servicePort")
    if isinstance(port, bool) or port is None:
        port_name, port_number = "", 0
    elif isinstance(port, int):
        port_name, port_number = "", port
    else:
        port_name, port_number = str(port), 0
    return {
        "path": str(path.get("path") or ""),
        "backend": {
            "service": {
                "name": str(backend.get("serviceName") or ""),
                "port": {"name": port_name, "number": port_number},
            }
        },
    }


class Ingress(Resource):
    """An Ingress of networking.k8s.io/v1, networking.k8s.io/v1beta1 or extensions/v1beta1."""

    def rules(self) -> list[dict[str, Any]]:
        """The ingress rules in the networking.k8s.io/v1 shape."""
        raw_rules = [r for r in self._spec().get("rules") or [] if isinstance(r, dict)]
        if self.type_meta().api_version == _INGRESS_V1:
            return copy.deepcopy(raw_rules)

        converted = []
        for rule in raw_rules:
            http = rule.get("http")
            if isinstance(http, dict):
                paths = [p for p in http.get("paths") or [] if isinstance(p, dict)]
                http_value: dict[str, Any] | None = {
                    "paths": [_v1_path(p) for p in paths]
                }
            else:
                http_value = None
            converted.append({"host": str(rule.get("host") or ""), "http": http_value})
        return converted