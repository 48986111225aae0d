"""Tests for Pydantic data models."""

import pytest
from pydantic import ValidationError

from holder_ledger.core.models import (
    FilterContribution,
    FilterDescriptor,
    OutputRecord,
    RawContribution,
    ReconciliationResult,
    SourceTag,
)


def test_source_tag_order():
    """Test that source tags enumerate in the fixed extraction order."""
    tags = list(SourceTag)

    assert tags[0] == SourceTag.WALLET
    assert tags[-1] == SourceTag.KAMINO_LENDING
    assert len(tags) == 17


def test_raw_contribution_rejects_floats():
    """Test that amounts never enter as floats."""
    with pytest.raises(ValidationError):
        RawContribution(owner="alice", amount=1.5, source=SourceTag.WALLET)

    with pytest.raises(ValidationError):
        RawContribution(owner="alice", amount=-1, source=SourceTag.WALLET)


def test_raw_contribution_accepts_big_integers():
    """Test that amounts beyond 2**64 survive intact."""
    amount = 2**80 + 7
    contribution = RawContribution(owner="alice", amount=amount, source=SourceTag.ORCA)

    assert contribution.amount == amount


def test_output_record_is_frozen():
    """Test that emitted records are immutable."""
    record = OutputRecord(owner="alice", amount="1.000000000", source=SourceTag.WALLET, is_vault=False)

    with pytest.raises(ValidationError):
        record.amount = "2.000000000"


def test_reconciliation_double_counted():
    """Test double count detection."""
    ok = ReconciliationResult(total_parsed=90, total_vault=10, total_supply=100, delta=10)
    over = ReconciliationResult(total_parsed=95, total_vault=10, total_supply=100, delta=5)

    assert not ok.double_counted
    assert over.double_counted


def test_filter_descriptor_merge_dedupes():
    """Test merging source requirements keeps first-seen order."""
    descriptor = FilterDescriptor(account_owners="System", account_mints=["mint"])
    descriptor.merge(FilterContribution(account_mints=["lp1", "mint"], whirlpool_pool_address=["pool"]))
    descriptor.merge(FilterContribution(account_mints=["lp2", "lp1"], account_data={"blob": "AAAA"}))

    assert descriptor.account_mints == ["mint", "lp1", "lp2"]
    assert descriptor.whirlpool_pool_address == ["pool"]
    assert descriptor.account_data == {"blob": "AAAA"}


def test_filter_descriptor_collector_json():
    """Test the collector's flat JSON format."""
    descriptor = FilterDescriptor(
        account_owners="System",
        account_mints=["a", "b"],
        meteora_vaults=["v"],
        account_data={"vsr_registrar_data": "AQID"},
    )

    data = descriptor.to_collector_json()

    assert data["account_owners"] == "System"
    assert data["account_mints"] == "a,b"
    assert data["whirlpool_pool_address"] == ""
    assert data["meteora_vaults"] == "v"
    assert data["vsr_registrar_data"] == "AQID"
