"""Tests for decoding tagged Reddit things."""

import json

import pytest
from pydantic import TypeAdapter

from snooclient.errors import JSONError
from snooclient.things import (
    THING_KINDS,
    Account,
    Comment,
    KarmaList,
    Link,
    Listing,
    Message,
    More,
    Subreddit,
    Thing,
    parse_thing,
    parse_thing_json,
)

COMMENT = {
    "kind": "t1",
    "data": {
        "id": "c1",
        "name": "t1_c1",
        "author": "v_95",
        "body": "Hello",
        "score": 5,
        "edited": False,
        "parent_id": "t3_p1",
        "link_id": "t3_p1",
        "subreddit": "test",
        "replies": "",
        "some_new_field": [1, 2, 3],
    },
}

LINK = {
    "kind": "t3",
    "data": {
        "id": "p1",
        "name": "t3_p1",
        "title": "Test Post",
        "selftext": "Test content",
        "permalink": "/r/test/comments/p1/test_post/",
        "num_comments": 2,
        "is_self": True,
        "created_utc": 1704067200.0,
        "edited": 1704070800.0,
    },
}


def _listing(*children: dict, after: str | None = None) -> dict:
    return {
        "kind": "Listing",
        "data": {
            "after": after,
            "before": None,
            "dist": len(children),
            "modhash": "mh",
            "children": list(children),
        },
    }


class TestKindDispatch:
    """Tests for choosing a model by kind."""

    def test_comment(self) -> None:
        """Test decoding a comment."""
        thing = parse_thing(COMMENT)

        assert isinstance(thing, Comment)
        assert thing.kind == "t1"
        assert thing.id == "c1"
        assert thing.name == "t1_c1"
        assert thing.data.body == "Hello"
        assert thing.data.replies is None

    def test_unknown_fields_are_kept(self) -> None:
        """Test unknown payload fields are kept."""
        thing = parse_thing(COMMENT)
        assert thing.data.model_extra == {"some_new_field": [1, 2, 3]}

    @pytest.mark.parametrize(
        ("kind", "model"),
        [
            ("t2", Account),
            ("t3", Link),
            ("t4", Message),
            ("t5", Subreddit),
            ("more", More),
            ("Listing", Listing),
        ],
    )
    def test_kind_table(self, kind: str, model: type) -> None:
        """Test every kind maps to its model."""
        assert isinstance(parse_thing({"kind": kind, "data": {}}), model)
        assert THING_KINDS[kind] is model

    def test_link_edited_timestamp(self) -> None:
        """Test a link edited timestamp decodes as a float."""
        thing = parse_thing(LINK)

        assert isinstance(thing, Link)
        assert thing.data.edited == 1704070800.0
        assert thing.data.is_self is True

    def test_unknown_kind(self) -> None:
        """Test an unknown kind is a JSON error naming it."""
        with pytest.raises(JSONError, match="t99"):
            parse_thing({"kind": "t99", "data": {}})

    def test_missing_kind(self) -> None:
        """Test a payload without a kind is a JSON error."""
        with pytest.raises(JSONError):
            parse_thing({"data": {"id": "x"}})

    def test_bad_payload(self) -> None:
        """Test a payload that does not fit its kind is a JSON error."""
        with pytest.raises(JSONError):
            parse_thing({"kind": "t1", "data": {"score": "lots"}})

    def test_supplemental_kind(self) -> None:
        """Test decoding a karma list."""
        thing = parse_thing(
            {"kind": "KarmaList", "data": [{"sr": "nba", "comment_karma": 21999, "link_karma": 144}]}
        )

        assert isinstance(thing, KarmaList)
        assert thing.data[0].sr == "nba"
        assert thing.id is None


class TestRecursiveDecoding:
    """Listings and replies decode through the same dispatch."""

    def test_listing_children(self) -> None:
        """Test listing children decode into their kinds."""
        listing = parse_thing(_listing(LINK, COMMENT, after="t3_next"))

        assert isinstance(listing, Listing)
        assert [type(child) for child in listing.children] == [Link, Comment]
        assert listing.after == "t3_next"
        assert listing.before is None
        assert listing.modhash == "mh"

    def test_comment_replies(self) -> None:
        """Test comment replies decode recursively."""
        reply = {"kind": "t1", "data": {"id": "c2", "body": "Reply", "replies": ""}}
        more = {"kind": "more", "data": {"id": "m1", "count": 3, "children": ["c3", "c4"]}}
        comment = {"kind": "t1", "data": {"id": "c1", "replies": _listing(reply, more)}}

        thing = parse_thing(comment)

        assert isinstance(thing, Comment)
        replies = thing.data.replies
        assert isinstance(replies, Listing)
        assert isinstance(replies.children[0], Comment)
        assert replies.children[0].data.body == "Reply"
        assert isinstance(replies.children[1], More)
        assert replies.children[1].data.children == ["c3", "c4"]

    def test_unknown_kind_inside_listing(self) -> None:
        """Test an unknown kind inside a listing fails the whole decode."""
        payload = json.dumps(_listing(LINK, {"kind": "t99", "data": {}})).encode()

        with pytest.raises(JSONError, match="t99") as exc_info:
            parse_thing_json(payload)

        assert exc_info.value.data == payload

    def test_listing_as_model(self) -> None:
        """Listing can be used directly as a decode target."""
        listing = Listing.model_validate(_listing(COMMENT))
        assert isinstance(listing.children[0], Comment)

    def test_thing_type_adapter(self) -> None:
        """Test decoding a list of things."""
        adapter = TypeAdapter(list[Thing])
        things = adapter.validate_python([LINK, COMMENT])
        assert [thing.kind for thing in things] == ["t3", "t1"]


class TestParseThingJson:
    """Tests for parse_thing_json."""

    def test_decodes_bytes(self) -> None:
        """Test decoding raw JSON bytes."""
        thing = parse_thing_json(json.dumps(LINK).encode())
        assert isinstance(thing, Link)

    def test_invalid_json_keeps_raw_bytes(self) -> None:
        """Test invalid JSON keeps the raw bytes on the error."""
        with pytest.raises(JSONError) as exc_info:
            parse_thing_json(b"<html>not json</html>")

        assert exc_info.value.data == b"<html>not json</html>"
