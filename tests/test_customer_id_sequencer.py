"""
Unit tests for the customer ID sequencer.

Tests cover:
- First ID and simple increments
- Carry propagation at every segment boundary
- Prefix odometer (including the ZZZ capacity wrap)
- Validation grammar (documented behavior for counter 00)
- Malformed predecessors
"""

import pytest

from app.intake.modules.customer_ids.sequencer import (
    FIRST_CUSTOMER_ID,
    CustomerId,
    MalformedCustomerIdError,
    advance_prefix,
    next_customer_id,
    parse_customer_id,
    validate_customer_id,
)


class TestNextCustomerId:
    """Tests for next_customer_id()"""

    def test_first_id_when_nothing_issued(self):
        assert next_customer_id(None) == "A-000a01"
        assert next_customer_id("") == "A-000a01"
        assert FIRST_CUSTOMER_ID == "A-000a01"

    def test_counter_increment(self):
        assert next_customer_id("A-000a01") == "A-000a02"
        assert next_customer_id("A-000a09") == "A-000a10"
        assert next_customer_id("C-512k41") == "C-512k42"

    def test_counter_overflow_carries_into_letter(self):
        assert next_customer_id("A-000a99") == "A-000b01"
        assert next_customer_id("A-000y99") == "A-000z01"

    def test_letter_overflow_carries_into_block(self):
        assert next_customer_id("A-000z99") == "A-001a01"
        assert next_customer_id("A-009z99") == "A-010a01"
        assert next_customer_id("A-998z99") == "A-999a01"

    def test_block_overflow_carries_into_prefix(self):
        assert next_customer_id("A-999z99") == "B-000a01"
        assert next_customer_id("Y-999z99") == "Z-000a01"

    def test_single_letter_prefix_grows(self):
        assert next_customer_id("Z-999z99") == "AA-000a01"

    def test_two_letter_prefix(self):
        assert next_customer_id("AA-999z99") == "AB-000a01"
        assert next_customer_id("AZ-999z99") == "BA-000a01"
        assert next_customer_id("ZZ-999z99") == "AAA-000a01"

    def test_three_letter_prefix(self):
        assert next_customer_id("AAA-999z99") == "AAB-000a01"
        assert next_customer_id("AAZ-999z99") == "ABA-000a01"
        assert next_customer_id("AZZ-999z99") == "BAA-000a01"

    def test_three_letter_prefix_wraps_at_capacity(self):
        """ZZZ does not widen to four letters; the sequence wraps (documented behavior)"""
        assert next_customer_id("ZZZ-999z99") == "AAA-000a01"

    def test_no_carry_outside_overflow(self):
        assert next_customer_id("ZZZ-999z98") == "ZZZ-999z99"
        assert next_customer_id("Z-999y99") == "Z-999z01"

    def test_deterministic(self):
        assert next_customer_id("B-123c45") == next_customer_id("B-123c45")

    def test_generated_ids_always_valid(self):
        cur = None
        for _ in range(3000):
            cur = next_customer_id(cur)
            assert validate_customer_id(cur)
            assert not cur.endswith("00")

    def test_malformed_predecessor_raises(self):
        for bad in ("garbage", "A000a01", "a-000a01", "A-00a01", "ABCD-000a01", " A-000a01"):
            with pytest.raises(MalformedCustomerIdError):
                next_customer_id(bad)

    def test_malformed_error_is_value_error(self):
        with pytest.raises(ValueError):
            next_customer_id("nope")


class TestCarryCascade:
    """Walk the sequence and check every boundary lands where the carry rules say"""

    def test_99_steps_roll_the_letter(self):
        cur = "X-000a01"
        for _ in range(99):
            cur = next_customer_id(cur)
        assert cur == "X-000b01"

    def test_full_block_rolls_over(self):
        cur = "K-041a01"
        for _ in range(26 * 99):
            cur = next_customer_id(cur)
        assert cur == "K-042a01"

    def test_every_step_follows_carry_rules(self):
        cur = parse_customer_id("A-998x01")
        for _ in range(5 * 26 * 99):
            nxt = parse_customer_id(next_customer_id(str(cur)))
            if cur.counter < 99:
                assert (nxt.prefix, nxt.block, nxt.letter, nxt.counter) == (
                    cur.prefix, cur.block, cur.letter, cur.counter + 1
                )
            elif cur.letter != "z":
                assert nxt.counter == 1
                assert nxt.letter == chr(ord(cur.letter) + 1)
                assert (nxt.prefix, nxt.block) == (cur.prefix, cur.block)
            elif cur.block < 999:
                assert (nxt.letter, nxt.counter) == ("a", 1)
                assert nxt.block == cur.block + 1
                assert nxt.prefix == cur.prefix
            else:
                assert (nxt.block, nxt.letter, nxt.counter) == (0, "a", 1)
                assert nxt.prefix == advance_prefix(cur.prefix)
            cur = nxt
        assert cur.prefix == "B"


class TestAdvancePrefix:
    """Tests for advance_prefix()"""

    def test_single_letter(self):
        assert advance_prefix("A") == "B"
        assert advance_prefix("Y") == "Z"
        assert advance_prefix("Z") == "AA"

    def test_two_letters(self):
        assert advance_prefix("AA") == "AB"
        assert advance_prefix("AZ") == "BA"
        assert advance_prefix("ZY") == "ZZ"
        assert advance_prefix("ZZ") == "AAA"

    def test_three_letters(self):
        assert advance_prefix("ABC") == "ABD"
        assert advance_prefix("AZZ") == "BAA"
        assert advance_prefix("ZAZ") == "ZBA"
        assert advance_prefix("ZZZ") == "AAA"

    def test_rejects_bad_prefix(self):
        for bad in ("", "a", "ABCD", "A1"):
            with pytest.raises(MalformedCustomerIdError):
                advance_prefix(bad)


class TestValidateCustomerId:
    """Tests for validate_customer_id()"""

    def test_valid_ids(self):
        for ok in ("A-000a01", "AB-123b45", "ZZZ-999z99", "Q-500m50"):
            assert validate_customer_id(ok) is True

    def test_counter_00_passes_grammar(self):
        """Grammar fixes the digit count only; generation never yields 00 (documented behavior)"""
        assert validate_customer_id("A-000a00") is True

    def test_rejects_wrong_segments(self):
        assert validate_customer_id("AB-12a3") is False
        assert validate_customer_id("a-000A01") is False
        assert validate_customer_id("ABCD-000a01") is False
        assert validate_customer_id("A-0000a01") is False
        assert validate_customer_id("A-000ab01") is False
        assert validate_customer_id("A-000a1") is False
        assert validate_customer_id("A-000a001") is False
        assert validate_customer_id("A000a01") is False
        assert validate_customer_id("-000a01") is False

    def test_no_whitespace_or_case_tolerance(self):
        assert validate_customer_id(" A-000a01") is False
        assert validate_customer_id("A-000a01 ") is False
        assert validate_customer_id("A-000a01\n") is False
        assert validate_customer_id("A-000A01") is False

    def test_never_raises(self):
        for junk in (None, 123, b"A-000a01", [], {}, ""):
            assert validate_customer_id(junk) is False


class TestParseCustomerId:
    def test_round_trips_to_canonical_form(self):
        cid = parse_customer_id("AB-007c09")
        assert cid == CustomerId(prefix="AB", block=7, letter="c", counter=9)
        assert str(cid) == "AB-007c09"

    def test_successor_matches_next(self):
        assert str(parse_customer_id("A-999z99").successor()) == next_customer_id("A-999z99")

    def test_rejects_malformed(self):
        with pytest.raises(MalformedCustomerIdError):
            parse_customer_id("A-000a1")

    def test_sort_key_follows_issue_order(self):
        ids = ["A-000a01", "A-000a99", "A-000b01", "A-001a01", "Z-999z99", "AA-000a01", "ZZ-999z99", "AAA-000a01"]
        keys = [parse_customer_id(v).sort_key() for v in ids]
        assert keys == sorted(keys)
        assert parse_customer_id("B-000a01").sort_key() < parse_customer_id("AA-000a01").sort_key()

    def test_sort_key_agrees_with_successor(self):
        cid = parse_customer_id("AZ-999z98")
        for _ in range(5):
            nxt = cid.successor()
            assert nxt.sort_key() > cid.sort_key()
            cid = nxt


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
