import pytest

from kubescore.labels import InvalidSelectorError, map_selector_matches, selector_matches

LABELS = {"app": "bar"}


def test_match_labels_matching():
    assert selector_matches({"matchLabels": {"app": "foo"}}, {"app": "foo"})


def test_match_labels_differing():
    assert not selector_matches({"matchLabels": {"app": "not-foo"}}, {"app": "foo"})


def test_expression_in():
    selector = {
        "matchExpressions": [
            {"key": "app", "operator": "In", "values": ["aaa", "bbb", "bar"]}
        ]
    }
    assert selector_matches(selector, LABELS)


def test_expression_not_in():
    selector = {
        "matchExpressions": [
            {"key": "app", "operator": "NotIn", "values": ["aaa", "bbb", "bar"]}
        ]
    }
    assert not selector_matches(selector, LABELS)
    assert selector_matches(selector, {"other": "x"})


def test_exists_and_does_not_exist():
    exists = {"matchExpressions": [{"key": "app", "operator": "Exists"}]}
    absent = {"matchExpressions": [{"key": "app", "operator": "DoesNotExist"}]}
    assert selector_matches(exists, LABELS)
    assert not selector_matches(absent, LABELS)
    assert selector_matches(absent, {})


def test_all_requirements_must_hold():
    selector = {
        "matchLabels": {"app": "bar"},
        "matchExpressions": [{"key": "tier", "operator": "Exists"}],
    }
    assert not selector_matches(selector, LABELS)
    assert selector_matches(selector, {"app": "bar", "tier": "web"})


def test_none_selector_selects_nothing():
    assert not selector_matches(None, LABELS)


def test_empty_selector_selects_everything():
    assert selector_matches({}, LABELS)
    assert selector_matches({}, {})


@pytest.mark.parametrize(
    "expression",
    [
        {"key": "app", "operator": "Matches", "values": ["x"]},
        {"key": "app", "operator": "In", "values": []},
        {"key": "app", "operator": "Exists", "values": ["x"]},
        {"key": "", "operator": "Exists"},
    ],
)
def test_invalid_selector_raises(expression):
    with pytest.raises(InvalidSelectorError):
        selector_matches({"matchExpressions": [expression]}, LABELS)


def test_map_selector_subset_matches():
    assert map_selector_matches({"app": "foo"}, {"app": "foo", "tier": "web"})


def test_map_selector_mismatch():
    assert not map_selector_matches({"app": "bar"}, {"app": "foo"})
    assert not map_selector_matches({"app": "foo", "tier": "db"}, {"app": "foo"})


def test_map_selector_empty_matches_nothing():
    assert not map_selector_matches({}, {"app": "foo"})
    assert not map_selector_matches(None, {"app": "foo"})