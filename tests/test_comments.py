"""Comment log parsing, serialization, and appending."""
import json

from quotedesk.core.models import Comment, QuoteRequest
from quotedesk.mapping.comments import append_comment, make_comment, parse_comments, serialize_comments

STAMP = "2024-03-02T12:30:00.000Z"


def test_serialized_comments_parse_back_in_order():
    comments = [
        Comment("a1", "Jane", "contractor", "Looks good", STAMP),
        Comment("b2", "Sam", "client", "Thanks!", STAMP),
    ]
    parsed = parse_comments({"Comments": serialize_comments(comments)})
    assert parsed == comments


def test_empty_log_has_no_comments():
    assert parse_comments({"Comments": ""}) == []
    assert parse_comments({"Comments": "[]"}) == []
    assert parse_comments({}) == []


def test_legacy_free_text_becomes_one_system_comment():
    parsed = parse_comments({"Comment Log": "Customer called about lead time"}, fallback_timestamp=STAMP)

    assert len(parsed) == 1
    assert parsed[0].author == "System"
    assert parsed[0].author_type == "contractor"
    assert parsed[0].message == "Customer called about lead time"
    assert parsed[0].timestamp == STAMP


def test_partial_items_get_defaults():
    parsed = parse_comments({"Comments": json.dumps([{"text": "hi", "authorType": "owner"}])})

    assert parsed[0].author == "System"
    assert parsed[0].author_type == "contractor"
    assert parsed[0].message == "hi"
    assert parsed[0].id
    assert parsed[0].timestamp


def test_rich_text_wrapped_log_is_read():
    payload = serialize_comments([Comment("a1", "Jane", "contractor", "Wrapped", STAMP)])
    parsed = parse_comments({"Comments": {"value": payload, "format": "text", "operation": "replace"}})
    assert [comment.message for comment in parsed] == ["Wrapped"]


def test_serialize_uses_wire_names():
    payload = json.loads(serialize_comments([Comment("a1", "Jane", "client", "Hi", STAMP)]))
    assert payload == [{"id": "a1", "author": "Jane", "authorType": "client", "message": "Hi", "timestamp": STAMP}]


def test_make_comment_trims_and_defaults():
    comment = make_comment("  spaced  ", "  ", author_type="robot", now=STAMP)
    assert comment.message == "spaced"
    assert comment.author == "System"
    assert comment.author_type == "contractor"
    assert comment.timestamp == STAMP


def test_append_comment_keeps_existing_history():
    first = Comment("a1", "Jane", "contractor", "First", STAMP)
    quote = QuoteRequest(id="1", comments=[first])

    updated = append_comment(quote, "Second", "Sam", "client")

    assert [comment.message for comment in updated.comments] == ["First", "Second"]
    assert updated.comments[0] is first
    assert updated.updated_at == updated.comments[-1].timestamp
    assert quote.comments == [first]


def test_free_text_already_in_the_log_is_read_once():
    log = serialize_comments([
        Comment("s1", "System", "contractor", "Called client on Monday", STAMP),
        Comment("a1", "Jane", "contractor", "first", STAMP),
    ])

    parsed = parse_comments({"Comments": log, "comments": "Called client on Monday"})

    assert [comment.message for comment in parsed] == ["Called client on Monday", "first"]


def test_free_text_missing_from_the_log_is_still_kept():
    log = serialize_comments([Comment("a1", "Jane", "contractor", "first", STAMP)])

    parsed = parse_comments({"Comments": log, "Comment Log": "Older note"}, fallback_timestamp=STAMP)

    assert [comment.message for comment in parsed] == ["first", "Older note"]
