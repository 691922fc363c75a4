"""Tests for the L2 transaction hash derivation in bridgeflow.bridge."""
from __future__ import annotations

from web3 import Web3

from bridgeflow.bridge import (
    bit_flip_seq_num,
    calculate_auto_redeem_hash,
    calculate_request_id,
    calculate_retryable_redeem_hash,
)

L2_CHAIN_ID = 412346


def _is_hash(value: str) -> bool:
    return value.startswith("0x") and len(value) == 66


def test_bit_flip_sets_top_bit_only() -> None:
    assert bit_flip_seq_num(5) == (1 << 255) + 5
    assert bit_flip_seq_num(bit_flip_seq_num(5)) == bit_flip_seq_num(5)


def test_request_id_matches_manual_keccak() -> None:
    expected = Web3.keccak(L2_CHAIN_ID.to_bytes(32, "big") + ((1 << 255) | 42).to_bytes(32, "big"))
    assert calculate_request_id(42, L2_CHAIN_ID) == Web3.to_hex(expected)


def test_derived_hashes_are_deterministic_and_distinct() -> None:
    native = calculate_request_id(1000, L2_CHAIN_ID)
    retryable = calculate_retryable_redeem_hash(1000, L2_CHAIN_ID)
    auto = calculate_auto_redeem_hash(1000, L2_CHAIN_ID)

    assert all(_is_hash(h) for h in (native, retryable, auto))
    assert len({native, retryable, auto}) == 3
    assert calculate_retryable_redeem_hash(1000, L2_CHAIN_ID) == retryable


def test_retryable_hash_is_derived_from_request_id() -> None:
    rid = Web3.to_bytes(hexstr=calculate_request_id(3, L2_CHAIN_ID))
    expected = Web3.keccak(rid + (0).to_bytes(32, "big"))
    assert calculate_retryable_redeem_hash(3, L2_CHAIN_ID) == Web3.to_hex(expected)


def test_hashes_depend_on_chain_and_sequence_number() -> None:
    assert calculate_request_id(1, L2_CHAIN_ID) != calculate_request_id(2, L2_CHAIN_ID)
    assert calculate_request_id(1, L2_CHAIN_ID) != calculate_request_id(1, 42161)
