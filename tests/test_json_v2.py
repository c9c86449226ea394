import json

from kubescore.domain import (
    Check,
    FileLocation,
    Grade,
    ObjectMeta,
    Scorecard,
    ScoredObject,
    TestScore,
    TestScoreComment,
    TypeMeta,
)
from kubescore.json_v2 import render


def _card():
    return Scorecard(
        {
            "b": ScoredObject(
                type_meta=TypeMeta(api_version="v1", kind="Testing"),
                object_meta=ObjectMeta(name="bar-no-namespace"),
                file_location=FileLocation(name="/tmp/b.yaml", line=7),
                checks=[TestScore(check=Check(name="skipped"), skipped=True)],
            ),
            "a": ScoredObject(
                type_meta=TypeMeta(api_version="v1", kind="Testing"),
                object_meta=ObjectMeta(
                    name="foo", namespace="foofoo", labels={"app": "foo"}
                ),
                file_location=FileLocation(name="/tmp/a.yaml", line=3),
                checks=[
                    TestScore(
                        check=Check(
                            name="Check one",
                            id="check-one",
                            target_type="Pod",
                            comment="about",
                            optional=True,
                        ),
                        grade=Grade.WARNING,
                        comments=[
                            TestScoreComment(
                                path="p",
                                summary="s",
                                description="d",
                                documentation_url="https://docs.example.com/x",
                            )
                        ],
                    )
                ],
            ),
        }
    )


def test_objects_sorted_and_named_by_key():
    data = json.loads(render(_card()))
    assert [o["object_name"] for o in data] == ["a", "b"]


def test_object_fields_round_trip():
    first = json.loads(render(_card()))[0]
    assert first["type_meta"] == {"kind": "Testing", "apiVersion": "v1"}
    assert first["object_meta"]["name"] == "foo"
    assert first["object_meta"]["namespace"] == "foofoo"
    assert first["object_meta"]["labels"] == {"app": "foo"}
    assert first["object_meta"]["creationTimestamp"] is None
    assert first["file_name"] == "/tmp/a.yaml"
    assert first["file_row"] == 3


def test_check_and_comment_fields():
    check = json.loads(render(_card()))[0]["checks"][0]
    assert check["check"] == {
        "name": "Check one",
        "id": "check-one",
        "target_type": "Pod",
        "comment": "about",
        "optional": True,
    }
    assert check["grade"] == int(Grade.WARNING)
    assert check["skipped"] is False
    assert check["comments"] == [{"path": "p", "summary": "s", "description": "d"}]


def test_empty_fields_are_omitted_or_null():
    second = json.loads(render(_card()))[1]
    assert "namespace" not in second["object_meta"]
    assert "labels" not in second["object_meta"]
    assert second["checks"][0]["comments"] is None
    assert second["checks"][0]["skipped"] is True


def test_empty_scorecard_is_null():
    assert render(Scorecard()) == "null"


def test_html_characters_are_escaped():
    card = Scorecard(
        {
            "x": ScoredObject(
                object_meta=ObjectMeta(name="x"),
                checks=[
                    TestScore(
                        check=Check(name="c"),
                        grade=Grade.CRITICAL,
                        comments=[TestScoreComment(summary="<b> & </b>")],
                    )
                ],
            )
        }
    )
    text = render(card)
    assert "<" not in text and ">" not in text and "&" not in text
    assert "\\u003c" in text
    assert json.loads(text)[0]["checks"][0]["comments"][0]["summary"] == "<b> & </b>"


def test_output_is_indented_with_four_spaces():
    assert render(_card()).startswith("[\n    {")