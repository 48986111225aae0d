"""Tests for amount formatting and record emission."""

import pytest

from holder_ledger.core.aggregator import HolderLedger
from holder_ledger.core.emitter import RecordEmitter, format_amount
from holder_ledger.core.models import AuthorityTag, SourceTag


@pytest.mark.parametrize(
    ("amount", "decimals", "expected"),
    [
        (1_000_000_000, 9, "1.000000000"),
        (5, 9, "0.000000005"),
        (0, 9, "0.000000000"),
        (123_456_789_012, 9, "123.456789012"),
        (42, 0, "42"),
        (2**64, 9, "18446744073.709551616"),
    ],
)
def test_format_amount(amount, decimals, expected):
    """Test fixed-point rendering without floats."""
    assert format_amount(amount, decimals) == expected


@pytest.mark.parametrize("amount", [-1, 1.0, True])
def test_format_amount_rejects(amount):
    """Test that only non-negative integers render."""
    with pytest.raises(ValueError):
        format_amount(amount, 9)


def test_records_order_and_vault_flag():
    """Test one record per contribution, in fold order, with vault flags."""
    ledger = HolderLedger()
    ledger.fold(SourceTag.WALLET, {"bob": 2, "treasury": 42})
    ledger.fold(SourceTag.ORCA, {"alice": 1, "bob": 3})

    records = list(RecordEmitter(ledger, frozenset({"treasury"}), 9).records())

    assert [(r.owner, r.source, r.amount, r.is_vault) for r in records] == [
        ("bob", SourceTag.WALLET, "0.000000002", False),
        ("treasury", SourceTag.WALLET, "0.000000042", True),
        ("alice", SourceTag.ORCA, "0.000000001", False),
        ("bob", SourceTag.ORCA, "0.000000003", False),
    ]


def test_records_are_lazy():
    """Test that records are produced by a generator."""
    ledger = HolderLedger()
    ledger.fold(SourceTag.WALLET, {"alice": 1})

    records = RecordEmitter(ledger, frozenset(), 9).records()

    assert next(records).owner == "alice"
    with pytest.raises(StopIteration):
        next(records)


def test_authority_records():
    """Test authority records skip zero amounts."""
    emitter = RecordEmitter(HolderLedger(), frozenset(), 9)

    records = list(emitter.authority_records(AuthorityTag.VEMNDE, {"alice": 1_500_000_000, "bob": 0}))

    assert len(records) == 1
    assert records[0].authority == "alice"
    assert records[0].amount == "1.500000000"
    assert records[0].source == AuthorityTag.VEMNDE
