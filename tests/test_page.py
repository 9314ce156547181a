import json

from imserverkit.page import PageResult


def test_to_dict_keys_and_values():
    page = PageResult(2, 20, 45, ["a", "b"])
    assert page.to_dict() == {
        "page_index": 2,
        "page_size": 20,
        "total": 45,
        "data": ["a", "b"],
    }


def test_to_dict_round_trips_through_json():
    page = PageResult(page_index=1, page_size=10, total=0, data=[])
    restored = PageResult(**json.loads(json.dumps(page.to_dict())))
    assert restored == page


def test_data_defaults_to_none():
    assert PageResult(1, 10, 0).to_dict()["data"] is None