from dataclasses import dataclass
from datetime import datetime, timezone

from tgmcp.client.base import Dialog, MessagePreview
from tgmcp.commands.serialize import to_plain
from tgmcp.errors import ErrorKind


class FakeTLObject:
    """Mimics a remote protocol object exposing to_dict()."""

    def __init__(self, **fields):
        self.fields = fields

    def to_dict(self):
        return {"_": type(self).__name__, **self.fields}


def test_remote_objects_are_flattened():
    obj = FakeTLObject(
        file_reference=b"\x00\x01",
        date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        callback=lambda: None,
        nested=FakeTLObject(access_hash=5),
    )

    assert to_plain(obj) == {
        "_type": "FakeTLObject",
        "fileReference": "AAE=",
        "date": "2024-01-01T00:00:00+00:00",
        "nested": {"_type": "FakeTLObject", "accessHash": 5},
    }


def test_dataclasses_use_camel_case_keys():
    dialog = Dialog(id="1", name="x", type="user", unread_count=0, last_message=MessagePreview("t", None, True))
    assert to_plain([dialog]) == [
        {
            "id": "1",
            "name": "x",
            "type": "user",
            "unreadCount": 0,
            "lastMessage": {"text": "t", "date": None, "fromMe": True},
        }
    ]


def test_enums_and_unknown_objects():
    @dataclass
    class Holder:
        kind: ErrorKind
        other: object

    plain = to_plain(Holder(ErrorKind.NOT_FOUND, object()))
    assert plain["kind"] == "NotFound"
    assert plain["other"].startswith("<object object")


def test_cycles_become_null():
    data = {"name": "root"}
    data["self"] = data
    assert to_plain(data) == {"name": "root", "self": None}


def test_shared_references_are_not_cycles():
    shared = {"a": 1}
    assert to_plain({"x": shared, "y": shared}) == {"x": {"a": 1}, "y": {"a": 1}}


def test_top_level_callable_is_null():
    assert to_plain(print) is None
