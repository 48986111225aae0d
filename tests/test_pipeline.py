"""End-to-end tests of snapshot runs."""

import logging

import pytest
from conftest import MINT, TREASURY, make_registry

from holder_ledger.core.context import ExtractionContext
from holder_ledger.core.errors import ExternalMetadataUnavailable, ReconciliationMismatch, SupplyUnavailable
from holder_ledger.core.models import AuthorityTag, OutputRecord, SourceTag
from holder_ledger.core.pipeline import SnapshotRun
from holder_ledger.snapshot import SnapshotStore


def test_single_direct_holder(builder, make_context):
    """Test one wallet holding the whole supply."""
    builder.mint(MINT, 1_000_000_000)
    builder.token_account("acc", "alice", MINT, 1_000_000_000)
    run = SnapshotRun(make_context(builder))

    records = list(run.records())

    assert records == [OutputRecord(owner="alice", amount="1.000000000", source=SourceTag.WALLET, is_vault=False)]
    assert run.reconciliation.delta == 0
    assert run.reconciliation.mismatch is None


def test_pool_share_scenario(builder, make_context):
    """Test 250 of 1000 LP tokens over a 500 unit vault yields 125."""
    builder.mint(MINT, 500)
    builder.mint("SaberLp", 1_000)
    builder.token_account("SaberVault", "saber-pda", MINT, 500, wallet=False)
    builder.token_account("lp", "alice", "SaberLp", 250)
    run = SnapshotRun(make_context(builder))

    records = list(run.records())

    assert [(r.owner, r.amount, r.source) for r in records] == [("alice", "0.000000125", SourceTag.SABER)]
    assert run.reconciliation.total_parsed == 125
    assert run.reconciliation.slack == 1


def test_static_vault_flagged_and_excluded(builder, make_context):
    """Test that a registered vault is emitted as a vault and not counted as organic."""
    builder.mint(MINT, 100)
    builder.token_account("acc", "alice", MINT, 58)
    builder.token_account("LifinityVault", "lifinity-pda", MINT, 42, wallet=False)
    run = SnapshotRun(make_context(builder))

    records = list(run.records())

    assert (TREASURY, "0.000000042", SourceTag.LIFINITY, True) in [
        (r.owner, r.amount, r.source, r.is_vault) for r in records
    ]
    assert run.reconciliation.total_parsed == 58
    assert run.reconciliation.total_vault == 42
    assert run.reconciliation.delta == 42
    assert TREASURY in run.vaults


def test_missing_vault_does_not_abort(builder, make_context, caplog):
    """Test that a source with a missing vault contributes nothing and the run completes."""
    builder.mint(MINT, 1_000)
    builder.mint("SaberLp", 1_000)
    builder.token_account("lp", "alice", "SaberLp", 250)
    builder.token_account("acc", "bob", MINT, 700)
    run = SnapshotRun(make_context(builder))

    with caplog.at_level(logging.WARNING):
        records = list(run.records())

    assert [(r.owner, r.source) for r in records] == [("bob", SourceTag.WALLET)]
    assert "SaberVault" in caplog.text
    assert len(run.ledger.sources) == len(SourceTag)


def test_malformed_amount_recovered_per_source(builder, make_context, caplog):
    """Test that a source with an unreadable amount contributes nothing and the run completes."""
    builder.mint(MINT, 100)
    builder.token_account("acc", "alice", MINT, 40)
    builder.row("drift", pubkey="d1", owner="bob", amount=-5)
    run = SnapshotRun(make_context(builder))

    with caplog.at_level(logging.WARNING):
        records = list(run.records())

    assert [(r.owner, r.source) for r in records] == [("alice", SourceTag.WALLET)]
    assert run.ledger.source_total(SourceTag.DRIFT) == 0
    assert "DRIFT contributes nothing" in caplog.text


def test_missing_supply_is_fatal(builder, make_context):
    """Test that the run refuses to start without the reference mint."""
    builder.token_account("acc", "alice", MINT, 1)
    run = SnapshotRun(make_context(builder))

    with pytest.raises(SupplyUnavailable):
        run.run()
    assert run.ledger.sources == []


def test_records_follow_enumeration_order(builder, make_context):
    """Test that records come out source by source in enumeration order."""
    builder.mint(MINT, 10_000)
    builder.mint("SaberLp", 10)
    builder.token_account("SaberVault", "saber-pda", MINT, 100, wallet=False)
    builder.token_account("lp", "alice", "SaberLp", 10)
    builder.token_account("tum", "carol", "TumSolMint", 5)
    builder.token_account("acc", "bob", MINT, 7)
    run = SnapshotRun(make_context(builder))

    sources = [r.source for r in run.records()]

    assert sources == [SourceTag.WALLET, SourceTag.TULIP, SourceTag.SABER]


def test_source_subset(builder, make_context):
    """Test restricting a run to some sources."""
    builder.mint(MINT, 10)
    builder.token_account("acc", "bob", MINT, 7)
    builder.token_account("tum", "carol", "TumSolMint", 5)
    run = SnapshotRun(make_context(builder), sources=[SourceTag.TULIP])

    records = list(run.records())

    assert [r.owner for r in records] == ["carol"]
    assert run.ledger.sources == [SourceTag.TULIP]


def test_strict_mismatch(builder, make_context):
    """Test that strict runs fail when holdings exceed the supply."""
    builder.mint(MINT, 5)
    builder.token_account("acc", "bob", MINT, 7)

    with pytest.raises(ReconciliationMismatch):
        SnapshotRun(make_context(builder), strict=True).run()


def test_discovered_vaults_flagged(builder, make_context):
    """Test that custody addresses reported by extractors are flagged."""
    builder.mint(MINT, 100)
    builder.row(
        "kamino_strategies",
        pubkey="strategy",
        shares_mint="kShares",
        shares_issued=0,
        token_a_mint=MINT,
        token_b_mint="SOL",
        token_a_vault="strategy-owner",
        token_b_vault="strategy-b",
        pool_token_vault_a="pool-a",
        pool_token_vault_b="pool-b",
        position_liquidity=0,
        tick_lower_index=-5,
        tick_upper_index=5,
        pool_sqrt_price_x64=2**64,
    )
    builder.token_account("acc", "strategy-owner", MINT, 9)
    run = SnapshotRun(make_context(builder))

    records = list(run.records())

    assert records[0].owner == "strategy-owner"
    assert records[0].is_vault
    assert run.reconciliation.total_vault == 9


def test_offline_run_needing_metadata(builder, make_context):
    """Test that a source needing live metadata aborts an offline run."""
    builder.mint(MINT, 10)
    run = SnapshotRun(make_context(builder, metadata=None))

    with pytest.raises(ExternalMetadataUnavailable, match="offline"):
        run.run()


def test_given_timestamp_skips_lookup(builder, make_context, metadata):
    """Test that an explicit timestamp avoids the block time lookup."""
    builder.mint(MINT, 10)
    context = make_context(builder, timestamp=123)

    assert context.timestamp == 123
    assert metadata.block_time_calls == 0


def test_authority_records(builder, make_context):
    """Test authority records of a run."""
    builder.row("vemnde_accounts", pubkey="v1", voter_authority="alice", voting_power=1_000_000_000)
    run = SnapshotRun(make_context(builder))

    records = list(run.authority_records(AuthorityTag.VEMNDE))

    assert [(r.authority, r.amount) for r in records] == [("alice", "1.000000000")]
    with pytest.raises(ValueError, match="No authority extractor"):
        list(run.authority_records("WALLET"))


def test_filters(metadata):
    """Test the filter descriptor built from registry and live metadata."""
    metadata.accounts["VsrRegistrar"] = b"\x01\x02"
    metadata.program["MangoProgram"] = [("bank", (3 << 47).to_bytes(16, "little", signed=True))]
    registry = make_registry()
    run = SnapshotRun(ExtractionContext(registry=registry, metadata=metadata))

    descriptor = run.filters()
    data = descriptor.to_collector_json()

    assert descriptor.account_owners == registry.owner_program
    assert descriptor.account_mints[0] == MINT
    for mint in ("TumSolMint", "FriktionMint", "SaberLp", "MercurialLp", "SolendCollateralMint"):
        assert mint in descriptor.account_mints
    assert len(descriptor.account_mints) == len(set(descriptor.account_mints))
    assert set(descriptor.account_data) == {
        "solend_reserve_data",
        "drift_cumulative_interest",
        "mango_bank_deposit_index",
        "vsr_registrar_data",
    }
    assert data["vsr_registrar_data"] == "AQI="
    assert data["mango_bank_deposit_index"] == "1.5"


def _proportional_snapshot(builder, saber_vault: int, mercurial_vault: int):
    builder.mint(MINT, saber_vault + mercurial_vault + 200)
    builder.mint("SaberLp", 7)
    builder.mint("MercurialLp", 9)
    builder.token_account("acc", "alice", MINT, 100)
    builder.token_account("SaberVault", "saber-pda", MINT, saber_vault, wallet=False)
    builder.token_account("MercurialVault", "mercurial-pda", MINT, mercurial_vault, wallet=False)
    builder.token_account("LifinityVault", "lifinity-pda", MINT, 66, wallet=False)
    builder.token_account("s1", "bob", "SaberLp", 3)
    builder.token_account("s2", "carol", "SaberLp", 4)
    builder.token_account("m1", "bob", "MercurialLp", 2)
    builder.token_account("m2", "dave", "MercurialLp", 3)
    builder.token_account("m3", "erin", "MercurialLp", 4)
    return builder


@pytest.mark.parametrize(("saber_vault", "mercurial_vault"), [(333, 301), (1, 1), (999_999_937, 7), (0, 10**18 + 1)])
def test_proportional_sources_never_overcount(builder, make_context, saber_vault, mercurial_vault):
    """Test that parsed plus vault holdings stay within the supply across proportional sources."""
    run = SnapshotRun(make_context(_proportional_snapshot(builder, saber_vault, mercurial_vault)))

    result = run.run()

    assert result.total_parsed + result.total_vault <= result.total_supply
    assert result.mismatch is None
    saber = run.ledger.source_total(SourceTag.SABER)
    mercurial = run.ledger.source_total(SourceTag.MERCURIAL_STABLE_SWAP_POOL)
    assert saber_vault - 2 < saber <= saber_vault
    assert mercurial_vault - 3 < mercurial <= mercurial_vault
    assert result.total_vault == 66


def test_repeated_runs_emit_identical_records(builder, registry, metadata):
    """Test that two runs over the same snapshot emit the same records in the same order."""
    path = _proportional_snapshot(builder, 333, 301).build()

    def _records() -> list[OutputRecord]:
        with SnapshotStore(path) as snapshot:
            context = ExtractionContext(registry=registry, snapshot=snapshot, metadata=metadata, slot=250_000_000)
            return list(SnapshotRun(context).records())

    first = _records()
    second = _records()

    assert first
    assert first == second
