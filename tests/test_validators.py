"""Tests for input sanitization and payload validation."""
import pytest

from chat_relay import sanitize_input, validate_username, validate_json_payload
from chat_relay.constants import MAX_MESSAGE_LENGTH


@pytest.mark.parametrize("value", [None, 42, 3.5, ["a"], {"a": 1}, b"bytes"])
def test_non_text_becomes_empty(value):
    assert sanitize_input(value) == ""


def test_escapes_html_significant_characters():
    assert sanitize_input("<script>") == "&lt;script&gt;"
    assert sanitize_input("a & b") == "a &amp; b"
    assert sanitize_input("\"quoted\" 'single'") == "&quot;quoted&quot; &#x27;single&#x27;"
    assert sanitize_input("path/to") == "path&#x2F;to"


def test_ampersand_is_not_double_escaped():
    assert sanitize_input("<&>") == "&lt;&amp;&gt;"


def test_trims_surrounding_whitespace():
    assert sanitize_input("   hello world \n\t") == "hello world"
    assert sanitize_input("   ") == ""


def test_truncates_to_max_length():
    assert sanitize_input("x" * 600) == "x" * MAX_MESSAGE_LENGTH


def test_truncation_happens_after_escaping():
    # The entity at the boundary is cut, not dropped or completed
    text = "a" * (MAX_MESSAGE_LENGTH - 2) + "&"
    assert sanitize_input(text) == "a" * (MAX_MESSAGE_LENGTH - 2) + "&a"


def test_escaped_length_counts_against_budget():
    assert len(sanitize_input("<" * 200)) == MAX_MESSAGE_LENGTH


@pytest.mark.parametrize("username", ["al", "alice", "a" * 20, "  ab  ", "O'Brien/O'Neil-Smith"])
def test_valid_usernames(username):
    assert validate_username(username) == (True, "")


@pytest.mark.parametrize("username", ["", "a", "a" * 21, "   a   ", None, 12])
def test_invalid_usernames(username):
    is_valid, error = validate_username(username)
    assert not is_valid
    assert "between 2 and 20" in error


def test_payload_must_be_object_with_known_type():
    assert validate_json_payload({"type": "get_rooms"}) == (True, "")
    assert validate_json_payload([1, 2])[0] is False
    assert validate_json_payload({"message": "hi"})[0] is False
    assert validate_json_payload({"type": 7})[0] is False


def test_unknown_type_error_names_the_type():
    is_valid, error = validate_json_payload({"type": "<dance>"})
    assert not is_valid
    assert error == "Unknown event type: &lt;dance&gt;"
