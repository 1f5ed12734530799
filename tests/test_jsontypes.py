import json

import pytest

from n9e.jsontypes import json_value, marshal_arr, marshal_obj, scan_json


def test_scan_bytes_and_str():
    assert scan_json(b'[1, 2]') == "[1, 2]"
    assert scan_json('{"a": 1}') == '{"a": 1}'


def test_scan_round_trips_through_json():
    doc = {"k": ["v", 1]}
    assert json.loads(scan_json(json.dumps(doc))) == doc


def test_scan_rejects_other_types():
    with pytest.raises(ValueError, match="Failed to unmarshal"):
        scan_json(5)


def test_scan_rejects_invalid_json():
    with pytest.raises(ValueError):
        scan_json("{bad")


def test_json_value():
    assert json_value("") is None
    assert json_value(None) is None
    assert json_value('{"a":1}') == '{"a":1}'


def test_marshal_obj():
    assert marshal_obj("") == "{}"
    assert marshal_obj('"text"') == "{}"
    assert marshal_obj('{"a":1}') == '{"a":1}'


def test_marshal_arr():
    assert marshal_arr(None) == "[]"
    assert marshal_arr('"text"') == "[]"
    assert marshal_arr('[{"key":"a"}]') == '[{"key":"a"}]'