from __future__ import annotations

import json

import pytest

from awsgoodies.formatting import (
    NO_DATA,
    extract_records,
    flatten_object,
    render_kv,
    render_table,
    render_tree,
)


def test_flatten_object():
    flat = flatten_object({
        "name": "svc-a",
        "meta": {"owner": {"team": "core"}, "tags": ["a", "b"]},
        "empty": {},
        "missing": None,
        "enabled": True,
    })
    assert flat == {
        "name": "svc-a",
        "meta.owner.team": "core",
        "meta.tags": '["a","b"]',
        "empty": "{}",
        "missing": "-",
        "enabled": "true",
    }


def test_extract_records_unwraps_known_lists():
    data = {"repositories": [{"repositoryName": "a"}], "nextToken": "x"}
    assert extract_records(data) == [{"repositoryName": "a"}]


def test_extract_records_scalars():
    assert extract_records({"pullRequestIds": ["1", "2"]}) == [{"value": "1"}, {"value": "2"}]
    assert extract_records("hello") == [{"value": "hello"}]


def test_extract_records_single_unknown_wrapper():
    assert extract_records({"Things": [{"a": 1}]}) == [{"a": 1}]


def test_extract_records_plain_object_is_one_row():
    assert extract_records({"Account": "1", "Arn": "x"}) == [{"Account": "1", "Arn": "x"}]


def test_render_table_columns_and_missing_cells():
    output = render_table({
        "repositories": [
            {"repositoryName": "alpha", "meta": {"lang": "py"}},
            {"repositoryName": "b"},
        ]
    })
    lines = output.splitlines()

    assert lines[0].split() == ["repositoryName", "meta.lang"]
    assert lines[1].split() == ["*" * len("repositoryName"), "*" * len("meta.lang")]
    assert lines[2].split() == ["alpha", "py"]
    assert lines[3].split() == ["b", "-"]
    assert lines[2].index("py") == lines[0].index("meta.lang")


def test_render_table_empty():
    assert render_table({"repositories": []}) == NO_DATA
    assert render_table([]) == NO_DATA


def test_render_kv():
    output = render_kv({"Account": "111", "Tags": {"a": 1}, "Gone": None}, color=False)
    assert output.splitlines() == ["Account: 111", 'Tags: {"a":1}', "Gone: null"]


def test_render_kv_rejects_non_objects():
    with pytest.raises(ValueError, match="Not an object"):
        render_kv([1, 2])


def test_render_tree():
    data = {"a": [1, {"b": "é"}]}
    output = render_tree(data)
    assert json.loads(output) == data
    assert "é" in output
    assert '\n  "a"' in output
