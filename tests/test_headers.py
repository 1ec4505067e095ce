"""
Test 1: Headers (_headers.py, message.py)

Tests HeaderBag storage, RFC 7230 legality checks and the header
operations every message exposes.
"""

import pytest

from plume import HeaderBag, InvalidHeaderFault, Message
from plume._headers import validate_header_name, validate_header_values


# ============================================================================
# Validation
# ============================================================================

class TestHeaderNameValidation:

    @pytest.mark.parametrize("name", ["Content-Type", "X-Custom_1", "a", "x~!#$%&'*+.^_`|"])
    def test_token_names_accepted(self, name):
        assert validate_header_name(name) == name

    @pytest.mark.parametrize("name", ["", "Bad Name", "Bad:Name", "Bad\r\nName", "Ünïcode", None, 42])
    def test_illegal_names_rejected(self, name):
        with pytest.raises(InvalidHeaderFault):
            validate_header_name(name)

    def test_trailing_newline_rejected(self):
        with pytest.raises(InvalidHeaderFault):
            validate_header_name("X-Test\n")


class TestHeaderValueValidation:

    def test_scalar_becomes_list(self):
        assert validate_header_values("X", "value") == ["value"]

    def test_numbers_converted(self):
        assert validate_header_values("Content-Length", 42) == ["42"]
        assert validate_header_values("X-Ratio", 1.5) == ["1.5"]

    def test_values_trimmed(self):
        assert validate_header_values("X", ["  a  ", "\tb"]) == ["a", "b"]

    def test_folded_continuation_allowed(self):
        assert validate_header_values("X", "first\r\n second") == ["first\r\n second"]

    @pytest.mark.parametrize("value", [
        "bad\r\nvalue",
        "bad\nvalue",
        "bad\rvalue",
        "bad\x00value",
        "bad\x7fvalue",
        "bad\xffvalue",
    ])
    def test_unsafe_values_rejected(self, value):
        with pytest.raises(InvalidHeaderFault):
            validate_header_values("X", value)

    def test_latin1_range_allowed(self):
        assert validate_header_values("X", "caf\xe9") == ["caf\xe9"]

    def test_non_string_values_rejected(self):
        with pytest.raises(InvalidHeaderFault):
            validate_header_values("X", [object()])
        with pytest.raises(InvalidHeaderFault):
            validate_header_values("X", b"bytes")
        with pytest.raises(InvalidHeaderFault):
            validate_header_values("X", True)

    def test_empty_sequence_rejected(self):
        with pytest.raises(InvalidHeaderFault):
            validate_header_values("X", [])


# ============================================================================
# HeaderBag
# ============================================================================

class TestHeaderBag:

    def test_case_insensitive_lookup(self):
        bag = HeaderBag({"Content-Type": "text/plain"})
        assert bag.has("content-type")
        assert bag.get("CONTENT-TYPE") == ["text/plain"]
        assert bag.line("Content-type") == "text/plain"

    def test_duplicate_names_merge_in_constructor(self):
        bag = HeaderBag({"Accept": "a", "accept": "b"})
        assert len(bag) == 1
        assert bag.get("ACCEPT") == ["a", "b"]

    def test_with_header_returns_new_bag(self):
        bag = HeaderBag()
        updated = bag.with_header("X-A", "1")
        assert bag is not updated
        assert not bag.has("x-a")
        assert updated.get("x-a") == ["1"]

    def test_with_first_header_moves_to_front(self):
        bag = HeaderBag({"Accept": "*/*", "Host": "old"})
        updated = bag.with_first_header("host", "new")
        assert list(updated) == ["host", "Accept"]
        assert updated.get("Host") == ["new"]

    def test_items_and_membership(self):
        bag = HeaderBag({"Accept": ["a", "b"], "X-Id": 1})
        assert list(bag.items()) == [("Accept", ["a", "b"]), ("X-Id", ["1"])]
        assert "accept" in bag
        assert 42 not in bag

    def test_equality(self):
        assert HeaderBag({"A": "1"}) == HeaderBag({"A": "1"})
        assert HeaderBag({"A": "1"}) != HeaderBag({"a": "1"})


# ============================================================================
# Message header operations
# ============================================================================

class TestMessageHeaders:

    def test_default_content_type(self):
        message = Message()
        assert message.headers == {"Content-Type": ["text/html; charset=utf-8"]}

    @pytest.mark.parametrize("written,looked_up", [
        ("X-Request-Id", "x-request-id"),
        ("x-request-id", "X-REQUEST-ID"),
        ("X-REQUEST-ID", "X-Request-Id"),
    ])
    def test_case_insensitivity(self, written, looked_up):
        message = Message().with_header(written, "abc")
        assert message.has_header(looked_up)
        assert message.get_header(looked_up) == ["abc"]

    def test_missing_header(self):
        message = Message()
        assert message.has_header("X-Missing") is False
        assert message.get_header("X-Missing") == []
        assert message.get_header_line("X-Missing") == ""

    def test_header_line_joins_values(self):
        message = Message().with_header("Accept", ["text/html", "application/json"])
        assert message.get_header_line("accept") == "text/html, application/json"

    def test_with_header_replaces_case_insensitive_match(self):
        message = Message().with_header("X-Foo", "1").with_header("x-foo", "2")
        assert message.get_header("X-FOO") == ["2"]
        headers = message.headers
        assert "x-foo" in headers
        assert "X-Foo" not in headers

    def test_with_header_trims_values(self):
        message = Message().with_header("X-Foo", "  padded  ")
        assert message.get_header("x-foo") == ["padded"]

    def test_with_added_header_appends_and_keeps_casing(self):
        message = Message().with_header("X-Foo", "1").with_added_header("x-foo", ["2", "3"])
        assert message.headers["X-Foo"] == ["1", "2", "3"]
        assert "x-foo" not in message.headers

    def test_with_added_header_when_absent(self):
        message = Message().with_added_header("X-New", "v")
        assert message.get_header("X-New") == ["v"]

    def test_without_header(self):
        message = Message().with_header("X-Foo", "1")
        stripped = message.without_header("x-FOO")
        assert not stripped.has_header("X-Foo")
        assert message.has_header("X-Foo")

    def test_without_absent_header_returns_unchanged_copy(self):
        message = Message()
        stripped = message.without_header("X-Missing")
        assert stripped.headers == message.headers
        assert stripped.body is message.body

    @pytest.mark.parametrize("name", ["X-Foo", "Set-Cookie", "Location"])
    def test_crlf_injection_rejected(self, name):
        with pytest.raises(InvalidHeaderFault):
            Message().with_header(name, "bad\r\nvalue")

    def test_rejected_header_leaves_message_untouched(self):
        message = Message().with_header("X-Foo", "1")
        with pytest.raises(InvalidHeaderFault):
            message.with_added_header("X-Foo", ["2", "bad\nvalue"])
        assert message.get_header("X-Foo") == ["1"]

    def test_invalid_name_rejected(self):
        with pytest.raises(InvalidHeaderFault):
            Message().with_header("", "value")
        with pytest.raises(InvalidHeaderFault):
            Message().with_added_header("Bad Name", "value")

    def test_headers_property_is_a_copy(self):
        message = Message()
        headers = message.headers
        headers["Content-Type"].append("mutated")
        headers["X-New"] = ["x"]
        assert message.get_header("Content-Type") == ["text/html; charset=utf-8"]
        assert not message.has_header("X-New")

    def test_constructor_headers_applied_over_default(self):
        message = Message(headers={"content-type": "application/json", "X-A": "1"})
        assert message.headers == {"content-type": ["application/json"], "X-A": ["1"]}
