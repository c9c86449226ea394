import pytest

from kubescore.checks import (
    Checks,
    RegisteredCheck,
    TargetType,
    machine_friendly_name,
    new_check,
)
from kubescore.config import Configuration


def _noop(obj):
    return obj


def test_machine_friendly_name_lowercases_and_dashes():
    assert machine_friendly_name("Pod Probes") == "pod-probes"
    assert machine_friendly_name("already-fine") == "already-fine"


def test_new_check_derives_id():
    check = new_check("Stable version", "all", "comment text", True)
    assert check.name == "Stable version"
    assert check.id == machine_friendly_name("Stable version")
    assert check.target_type == "all"
    assert check.comment == "comment text"
    assert check.optional is True


def test_new_check_rejects_unknown_target():
    with pytest.raises(ValueError):
        new_check("x", "NotAKind", "", False)


def test_register_and_for_target():
    checks = Checks(Configuration())
    check = checks.register(TargetType.DEPLOYMENT, "My Deployment Check", "c", _noop)
    registered = checks.for_target(TargetType.DEPLOYMENT)
    assert list(registered) == [check.id]
    assert registered[check.id] == RegisteredCheck(check, _noop)
    assert checks.for_target(TargetType.POD) == {}
    assert checks.all() == [check]
    assert check.target_type == "Deployment"
    assert check.optional is False


def test_register_accepts_string_target_type():
    checks = Checks()
    check = checks.register("Service", "Service Type", "c", _noop, True)
    assert check.optional is True
    assert check.id in checks.for_target(TargetType.SERVICE)


def test_ignored_check_is_listed_but_not_enabled():
    name = "Container Resources"
    config = Configuration(ignored_tests={machine_friendly_name(name)})
    checks = Checks(config)
    check = checks.register(TargetType.POD, name, "c", _noop)
    kept = checks.register(TargetType.POD, "Pod Probes", "c", _noop)
    assert checks.all() == [check, kept]
    assert list(checks.for_target(TargetType.POD)) == [kept.id]


def test_all_preserves_registration_order_across_targets():
    checks = Checks()
    names = ["A check", "B check", "C check"]
    targets = [TargetType.INGRESS, TargetType.ALL, TargetType.CRON_JOB]
    for target, name in zip(targets, names):
        checks.register(target, name, "", _noop)
    assert [c.name for c in checks.all()] == names
    assert [c.target_type for c in checks.all()] == [t.value for t in targets]


def test_for_target_returns_a_copy():
    checks = Checks()
    checks.register(TargetType.NETWORK_POLICY, "Net", "", _noop)
    snapshot = checks.for_target(TargetType.NETWORK_POLICY)
    snapshot.clear()
    assert len(checks.for_target(TargetType.NETWORK_POLICY)) == 1