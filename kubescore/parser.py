"""Splitting manifest files into documents and sorting them by kind."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, NamedTuple

import yaml

from kubescore.config import Configuration
from kubescore.domain import BothMeta, FileLocation
from kubescore.resources import (
    CronJob,
    HorizontalPodAutoscaler,
    Ingress,
    NetworkPolicy,
    Pod,
    PodDisruptionBudget,
    Resource,
    Service,
    Workload,
)

logger = logging.getLogger(__name__)

_HELM_SOURCE_PREFIX = "# Source: "
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


class ParseError(ValueError):
    """Raised when a manifest cannot be read or decoded."""


class ParseErrors(ParseError):
    """Several parse errors reported together, one per line."""

    def __init__(self, errors: Iterable[BaseException]) -> None:
        self.errors = list(errors)
        super().__init__("\n".join(str(e) for e in self.errors))

    def __str__(self) -> str:
        return "\n".join(str(e) for e in self.errors)


@dataclass
class ParsedObjects:
    """Every object found in the input, grouped by what the checks need."""

    metas: list[BothMeta] = field(default_factory=list)
    pods: list[Pod] = field(default_factory=list)
    pod_speccers: list[Workload | CronJob] = field(default_factory=list)
    network_policies: list[NetworkPolicy] = field(default_factory=list)
    services: list[Service] = field(default_factory=list)
    pod_disruption_budgets: list[PodDisruptionBudget] = field(default_factory=list)
    deployments: list[Workload] = field(default_factory=list)
    statefulsets: list[Workload] = field(default_factory=list)
    ingresses: list[Ingress] = field(default_factory=list)
    cronjobs: list[CronJob] = field(default_factory=list)
    hpa_targeters: list[HorizontalPodAutoscaler] = field(default_factory=list)


def empty() -> ParsedObjects:
    """A collection holding no objects."""
    return ParsedObjects()


class _GroupVersionKind(NamedTuple):
    group: str
    version: str
    kind: str

    def __str__(self) -> str:
        return f"{self.group}/{self.version}, Kind={self.kind}"


def _gvk(api_version: str, kind: str) -> _GroupVersionKind:
    if not api_version:
        return _GroupVersionKind("", "", kind)
    parts = api_version.split("/")
    if len(parts) == 1:
        return _GroupVersionKind("", parts[0], kind)
    if len(parts) == 2:
        return _GroupVersionKind(parts[0], parts[1], kind)
    return _GroupVersionKind("", "", kind)


_LIST = _GroupVersionKind("", "v1", "List")

_KINDS: dict[_GroupVersionKind, tuple[type[Resource], tuple[str, ...]]] = {
    _GroupVersionKind("", "v1", "Pod"): (Pod, ("pods",)),
    _GroupVersionKind("batch", "v1", "Job"): (Workload, ("pod_speccers",)),
    _GroupVersionKind("batch", "v1beta1", "CronJob"): (CronJob, ("pod_speccers", "cronjobs")),
    _GroupVersionKind("batch", "v1", "CronJob"): (CronJob, ("pod_speccers", "cronjobs")),
    _GroupVersionKind("apps", "v1", "Deployment"): (Workload, ("pod_speccers", "deployments")),
    _GroupVersionKind("apps", "v1beta1", "Deployment"): (Workload, ("pod_speccers",)),
    _GroupVersionKind("apps", "v1beta2", "Deployment"): (Workload, ("pod_speccers",)),
    _GroupVersionKind("extensions", "v1beta1", "Deployment"): (Workload, ("pod_speccers",)),
    _GroupVersionKind("apps", "v1", "StatefulSet"): (Workload, ("pod_speccers", "statefulsets")),
    _GroupVersionKind("apps", "v1beta1", "StatefulSet"): (Workload, ("pod_speccers",)),
    _GroupVersionKind("apps", "v1beta2", "StatefulSet"): (Workload, ("pod_speccers",)),
    _GroupVersionKind("apps", "v1", "DaemonSet"): (Workload, ("pod_speccers",)),
    _GroupVersionKind("apps", "v1beta2", "DaemonSet"): (Workload, ("pod_speccers",)),
    _GroupVersionKind("extensions", "v1beta1", "DaemonSet"): (Workload, ("pod_speccers",)),
    _GroupVersionKind("networking.k8s.io", "v1", "NetworkPolicy"): (
        NetworkPolicy,
        ("network_policies",),
    ),
    _GroupVersionKind("", "v1", "Service"): (Service, ("services",)),
    _GroupVersionKind("policy", "v1beta1", "PodDisruptionBudget"): (
        PodDisruptionBudget,
        ("pod_disruption_budgets",),
    ),
    _GroupVersionKind("policy", "v1", "PodDisruptionBudget"): (
        PodDisruptionBudget,
        ("pod_disruption_budgets",),
    ),
    _GroupVersionKind("extensions", "v1beta1", "Ingress"): (Ingress, ("ingresses",)),
    _GroupVersionKind("networking.k8s.io", "v1beta1", "Ingress"): (Ingress, ("ingresses",)),
    _GroupVersionKind("networking.k8s.io", "v1", "Ingress"): (Ingress, ("ingresses",)),
    _GroupVersionKind("autoscaling", "v1", "HorizontalPodAutoscaler"): (
        HorizontalPodAutoscaler,
        ("hpa_targeters",),
    ),
    _GroupVersionKind("autoscaling", "v2beta1", "HorizontalPodAutoscaler"): (
        HorizontalPodAutoscaler,
        ("hpa_targeters",),
    ),
    _GroupVersionKind("autoscaling", "v2beta2", "HorizontalPodAutoscaler"): (
        HorizontalPodAutoscaler,
        ("hpa_targeters",),
    ),
}


def detect_file_location(file_name: str, file_offset: int, contents: str) -> FileLocation:
    """Where a document comes from, honouring a leading Helm "# Source: " comment."""
    first_row = contents.split("\n", 1)[0]
    if first_row.startswith(_HELM_SOURCE_PREFIX):
        # Helm output loses the original line numbers.
        return FileLocation(name=first_row[len(_HELM_SOURCE_PREFIX):], line=1)
    return FileLocation(name=file_name, line=file_offset)


def _json_kind(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return f"number {value}"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "string"


def _mismatch(value: Any, field_path: str, type_name: str) -> str:
    return (
        f"json: cannot unmarshal {_json_kind(value)} "
        f"into Go struct field {field_path} of type {type_name}"
    )


def _int32_problem(value: Any, field_path: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return _mismatch(value, field_path, "int32")
    if isinstance(value, int) and _INT32_MIN <= value <= _INT32_MAX:
        return None
    if isinstance(value, float) and value.is_integer() and _INT32_MIN <= value <= _INT32_MAX:
        return None
    return _mismatch(value, field_path, "int32")


def _type_problems(gvk: _GroupVersionKind, doc: dict[str, Any]) -> Iterator[str]:
    metadata = doc.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        yield _mismatch(metadata, f"{gvk.kind}.metadata", "v1.ObjectMeta")
    spec = doc.get("spec")
    if spec is None:
        return
    if not isinstance(spec, dict):
        yield _mismatch(spec, f"{gvk.kind}.spec", f"{gvk.version}.{gvk.kind}Spec")
        return
    if gvk.kind in ("Deployment", "StatefulSet"):
        problem = _int32_problem(spec.get("replicas"), f"{gvk.kind}Spec.spec.replicas")
        if problem:
            yield problem
    if gvk.kind == "Service":
        ports = spec.get("ports")
        if ports is None:
            return
        if not isinstance(ports, list):
            yield _mismatch(ports, "ServiceSpec.spec.ports", "[]v1.ServicePort")
            return
        for port in ports:
            if not isinstance(port, dict):
                yield _mismatch(port, "ServiceSpec.spec.ports", "v1.ServicePort")
                continue
            for name in ("port", "nodePort"):
                problem = _int32_problem(port.get(name), f"ServicePort.spec.ports.{name}")
                if problem:
                    yield problem


class Parser:
    """Reads manifest files into a ParsedObjects collection."""

    def parse_files(self, config: Configuration) -> ParsedObjects:
        """Parse every readable in ``config.all_files``."""
        objects = ParsedObjects()
        for reader in config.all_files:
            try:
                data = reader.read()
            except OSError as exc:
                raise ParseError(str(exc)) from exc
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            self._parse_into(config, objects, str(getattr(reader, "name", "")), data)
        return objects

    def parse_text(self, config: Configuration, file_name: str, text: str) -> ParsedObjects:
        """Parse the contents of one file given as text."""
        objects = ParsedObjects()
        self._parse_into(config, objects, file_name, text)
        return objects

    def _parse_into(
        self, config: Configuration, objects: ParsedObjects, file_name: str, text: str
    ) -> None:
        text = text.replace("\r\n", "\n")
        offset = 1
        if text.startswith("---\n"):
            text = text[4:]
            offset = 2
        for contents in text.split("\n---\n"):
            if contents.strip():
                self._detect_and_decode(config, objects, file_name, offset, contents)
            offset += 2 + contents.count("\n")

    def _detect_and_decode(
        self,
        config: Configuration,
        objects: ParsedObjects,
        file_name: str,
        offset: int,
        contents: str,
    ) -> None:
        try:
            doc = next(iter(yaml.safe_load_all(contents)), None)
        except yaml.YAMLError as exc:
            raise ParseError(str(exc)) from exc
        self._decode_document(config, objects, file_name, offset, contents, doc)

    def _decode_document(
        self,
        config: Configuration,
        objects: ParsedObjects,
        file_name: str,
        offset: int,
        contents: str,
        doc: Any,
    ) -> None:
        if doc is None:
            doc = {}
        if not isinstance(doc, dict):
            raise ParseError(f"cannot decode {_json_kind(doc)} as a Kubernetes object")

        gvk = _gvk(str(doc.get("apiVersion") or ""), str(doc.get("kind") or ""))

        if gvk == _LIST:
            problem = next(_type_problems(gvk, doc), None)
            items = doc.get("items") or []
            if problem is None and not isinstance(items, list):
                problem = _mismatch(items, "List.items", "[]runtime.RawExtension")
            if problem:
                raise ParseErrors([ParseError(f"Failed to parse {gvk}: err={problem}")])
            for item in items:
                # Items carry no Helm comment of their own.
                self._decode_document(config, objects, file_name, offset, "", item)
            return

        self._decode_item(config, objects, gvk, file_name, offset, contents, doc)

    def _decode_item(
        self,
        config: Configuration,
        objects: ParsedObjects,
        gvk: _GroupVersionKind,
        file_name: str,
        offset: int,
        contents: str,
        doc: dict[str, Any],
    ) -> None:
        entry = _KINDS.get(gvk)
        if entry is None:
            if config.verbose_output > 1:
                logger.warning("Unknown datatype: %s", gvk)
            return

        problem = next(_type_problems(gvk, doc), None)
        if problem:
            raise ParseErrors([ParseError(f"Failed to parse {gvk}: err={problem}")])

        wrapper_class, collections = entry
        location = detect_file_location(file_name, offset, contents)
        wrapped = wrapper_class(obj=doc, location=location)
        for name in collections:
            getattr(objects, name).append(wrapped)
        objects.metas.append(
            BothMeta(
                type_meta=wrapped.type_meta(),
                object_meta=wrapped.object_meta(),
                file_location=location,
            )
        )