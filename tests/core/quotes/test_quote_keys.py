"""
Tests for quote fingerprinting.
"""

from quotekit.core.quotes.keys import (
    CalldataDigest,
    create_quote_key,
    digest_call_data,
    hash_action_call,
    keys_equal,
)
from quotekit.core.quotes.models import ActionCall, CallType, Currency, LendingAction


# =============================================================================
# Key Determinism
# =============================================================================

class TestQuoteKey:
    """Tests for create_quote_key."""

    def test_structurally_equal_requests_share_a_key(self, make_request):
        first = make_request()
        second = make_request()

        assert first is not second
        assert create_quote_key(first) == create_quote_key(second)

    def test_address_case_does_not_change_key(self, make_request, currencies):
        usdc = currencies["USDC"]
        upper = Currency(chain_id=usdc.chain_id, address=usdc.address.upper(), decimals=6)

        assert create_quote_key(make_request(dst=usdc)) == create_quote_key(make_request(dst=upper))
        assert create_quote_key(make_request(receiver="0xABCDEF")) == create_quote_key(
            make_request(receiver="0xabcdef")
        )

    def test_every_field_participates(self, make_request, currencies):
        base = create_quote_key(make_request())

        assert create_quote_key(make_request(amount=2 * 10**18)) != base
        assert create_quote_key(make_request(dst=currencies["USDC_BASE"])) != base
        assert create_quote_key(make_request(slippage=0.01)) != base
        assert create_quote_key(make_request(receiver="0x1111")) != base
        assert create_quote_key(
            make_request(destination_calls=[ActionCall(target="0xpool", call_data="0x1234")])
        ) != base

    def test_key_layout(self, make_request):
        key = create_quote_key(make_request())
        parts = key.split("|")

        assert parts[0] == "1:0x0000000000000000000000000000000000000000:1000000000000000000"
        assert parts[1] == "1:0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
        assert parts[2] == "0.005"
        assert parts[4] == "" and parts[5] == ""

    def test_pre_and_post_calls_are_distinguished(self, make_request):
        call = ActionCall(target="0xpool", call_data="0xdeadbeef")

        as_post = create_quote_key(make_request(destination_calls=[call]))
        as_pre = create_quote_key(make_request(input_calls=[call]))

        assert as_post != as_pre

    def test_key_is_deterministic_across_calls(self, make_request):
        request = make_request(destination_calls=[ActionCall(target="0xA", call_data="0x01")])
        assert create_quote_key(request) == create_quote_key(request)


# =============================================================================
# Call Hashing
# =============================================================================

class TestCallHashing:
    """Tests for call payload digests."""

    def test_full_digest_distinguishes_middle_bytes(self):
        edges = "0x" + "a" * 8
        first = edges + "1111" + "b" * 10
        second = edges + "2222" + "b" * 10

        assert digest_call_data(first) != digest_call_data(second)

    def test_edge_digest_collides_on_equal_edges(self):
        first = "0x" + "a" * 8 + "1111" + "b" * 10
        second = "0x" + "a" * 8 + "2222" + "b" * 10

        assert digest_call_data(first, CalldataDigest.EDGES) == digest_call_data(second, CalldataDigest.EDGES)

    def test_empty_payload(self):
        assert digest_call_data("") == ""

    def test_digest_mode_accepts_strings(self, make_request):
        request = make_request(destination_calls=[ActionCall(target="0xA", call_data="0x" + "ab" * 40)])

        assert create_quote_key(request, "edges") == create_quote_key(request, CalldataDigest.EDGES)

    def test_lending_fields_participate(self):
        deposit = ActionCall(
            target="0xpool",
            call_type=CallType.LENDING,
            lending_action=LendingAction.DEPOSIT,
            lender="AAVE_V3",
        )
        repay = ActionCall(
            target="0xpool",
            call_type=CallType.LENDING,
            lending_action=LendingAction.REPAY,
            lender="AAVE_V3",
        )

        assert hash_action_call(deposit) != hash_action_call(repay)


class TestKeysEqual:
    def test_missing_keys_never_match(self):
        assert keys_equal(None, None) is False
        assert keys_equal("a", None) is False

    def test_equal_keys(self):
        assert keys_equal("a|b", "a|b") is True
        assert keys_equal("a|b", "a|c") is False
