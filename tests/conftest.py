"""Pytest configuration and shared fixtures for holder-ledger tests."""

import sqlite3
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from holder_ledger.core.context import ExtractionContext
from holder_ledger.data.registry import AddressRegistry
from holder_ledger.metadata.models import (
    KaminoStrategyListing,
    MeteoraPoolListing,
    MeteoraVaultListing,
    RaydiumPoolListing,
    WhirlpoolListing,
)
from holder_ledger.sharemath import encode_pubkey
from holder_ledger.snapshot import SYSTEM_PROGRAM, SnapshotStore, create_schema

MINT = "MSoLMint1111111111111111111111111111111111"
TREASURY = "Treasury11111111111111111111111111111111111"
TOKEN_PROGRAM = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

PORT_MARKET = encode_pubkey(bytes([1]) * 32)
PORT_RESERVE = encode_pubkey(bytes([2]) * 32)
KAMINO_MARKET = encode_pubkey(bytes([3]) * 32)
KAMINO_RESERVE = encode_pubkey(bytes([4]) * 32)


class SnapshotBuilder:
    """Writes a snapshot file the way the collector does."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.connection = sqlite3.connect(path)
        create_schema(self.connection)

    def wallet(self, address: str, owner_program: str = SYSTEM_PROGRAM) -> "SnapshotBuilder":
        self.connection.execute(
            "INSERT OR IGNORE INTO account (pubkey, owner, lamports) VALUES (?, ?, '0')", (address, owner_program)
        )
        return self

    def mint(self, mint: str, supply: int, decimals: int = 9) -> "SnapshotBuilder":
        self.connection.execute(
            "INSERT INTO token_mint (pubkey, supply, decimals) VALUES (?, ?, ?)", (mint, str(supply), decimals)
        )
        return self

    def token_account(self, address: str, owner: str, mint: str, amount: int, wallet: bool = True) -> "SnapshotBuilder":
        if wallet:
            self.wallet(owner)
        self.connection.execute(
            "INSERT INTO token_account (pubkey, owner, mint, amount) VALUES (?, ?, ?, ?)",
            (address, owner, mint, str(amount)),
        )
        return self

    def row(self, table: str, **columns: object) -> "SnapshotBuilder":
        names = ", ".join(columns)
        placeholders = ", ".join("?" for _ in columns)
        values = [str(value) if isinstance(value, int) else value for value in columns.values()]
        self.connection.execute(f"INSERT INTO {table} ({names}) VALUES ({placeholders})", values)  # noqa: S608
        return self

    def build(self) -> Path:
        self.connection.commit()
        self.connection.close()
        return self.path


class FakeMetadata:
    """In-memory live metadata."""

    def __init__(self) -> None:
        self.time = 1_700_000_000
        self.whirlpools: list[WhirlpoolListing] = []
        self.raydium_pools: list[RaydiumPoolListing] = []
        self.vaults: list[MeteoraVaultListing] = []
        self.amm_pools: list[MeteoraPoolListing] = []
        self.markets: list[str] = []
        self.strategies: list[KaminoStrategyListing] = []
        self.accounts: dict[str, bytes] = {}
        self.program: dict[str, list[tuple[str, bytes]]] = {}
        self.program_queries: list[tuple[str, dict[int, str], int | None, int | None]] = []
        self.block_time_calls = 0

    def block_time(self, slot: int) -> int:
        self.block_time_calls += 1
        return self.time

    def account_data(self, address: str, offset: int | None = None, length: int | None = None) -> bytes:
        data = self.accounts.get(address, b"\x00" * 32)
        if offset is not None and length is not None:
            return data[offset : offset + length]
        return data

    def program_accounts(
        self, program: str, memcmp: dict[int, str], offset: int | None = None, length: int | None = None
    ) -> list[tuple[str, bytes]]:
        self.program_queries.append((program, memcmp, offset, length))
        return self.program.get(program, [])

    def orca_whirlpools(self) -> list[WhirlpoolListing]:
        return self.whirlpools

    def raydium_liquidity_pools(self) -> list[RaydiumPoolListing]:
        return self.raydium_pools

    def meteora_vaults(self) -> list[MeteoraVaultListing]:
        return self.vaults

    def meteora_amm_pools(self) -> list[MeteoraPoolListing]:
        return self.amm_pools

    def kamino_markets(self) -> list[str]:
        return self.markets

    def kamino_strategies(self) -> list[KaminoStrategyListing]:
        return self.strategies


def make_registry(**overrides: object) -> AddressRegistry:
    """Small registry with one address per integration."""
    data: dict[str, object] = {
        "version": 1,
        "reference_asset": {"mint": MINT, "symbol": "mSOL", "decimals": 9},
        "vaults": [TREASURY],
        "direct_mints": {"TULIP": "TumSolMint", "FRIKTION": "FriktionMint"},
        "pools": {
            "SABER": [{"name": "mSOL-SOL", "lp": "SaberLp", "vault": "SaberVault"}],
            "MERCURIAL_STABLE_SWAP_POOL": [{"name": "mSOL-2Pool", "lp": "MercurialLp", "vault": "MercurialVault"}],
        },
        "static_shares": {"LIFINITY": [{"name": "mSOL-USDC", "vault": "LifinityVault", "owner": TREASURY}]},
        "decoded_tables": {
            "SOLEND": {
                "table": "solend",
                "filter_mints": ["SolendCollateralMint"],
                "account_data": {"solend_reserve_data": {"address": "SolendReserve"}},
            },
            "DRIFT": {
                "table": "drift",
                "account_data": {"drift_cumulative_interest": {"address": "DriftMarket", "offset": 4, "length": 2}},
            },
            "MRGN": {"table": "mrgn"},
            "MANGO": {
                "table": "mango",
                "bank_index": {"name": "mango_bank_deposit_index", "program_id": "MangoProgram", "group": "MangoGroup"},
            },
        },
        "lending": {
            "PORT": {
                "program_id": "PortProgram",
                "table": "port",
                "lending_markets": [PORT_MARKET],
                "reserves": [PORT_RESERVE],
                "layout": {
                    "data_size": 200,
                    "lending_market_offset": 0,
                    "owner_offset": 32,
                    "deposits_count_offset": 64,
                    "deposits_offset": 65,
                    "max_deposits": 2,
                    "deposit_size": 40,
                },
            },
            "KAMINO_LENDING": {
                "program_id": "KaminoLendProgram",
                "table": "kamino_obligations",
                "layout": {
                    "data_size": 180,
                    "lending_market_offset": 0,
                    "owner_offset": 32,
                    "deposits_offset": 64,
                    "max_deposits": 2,
                    "deposit_size": 56,
                },
            },
        },
        "authority_data": {"VEMNDE": {"vsr_registrar_data": {"address": "VsrRegistrar"}}},
    }
    data.update(overrides)
    return AddressRegistry.model_validate(data)


@pytest.fixture
def registry() -> AddressRegistry:
    return make_registry()


@pytest.fixture
def metadata() -> FakeMetadata:
    return FakeMetadata()


@pytest.fixture
def builder(tmp_path: Path) -> SnapshotBuilder:
    return SnapshotBuilder(tmp_path / "snapshot.sqlite")


@pytest.fixture
def open_snapshot() -> Iterator[Callable[[SnapshotBuilder], SnapshotStore]]:
    """Build a snapshot and open it read-only; closed at teardown."""
    stores: list[SnapshotStore] = []

    def _open(builder: SnapshotBuilder) -> SnapshotStore:
        store = SnapshotStore(builder.build())
        store.open()
        stores.append(store)
        return store

    yield _open
    for store in stores:
        store.close()


@pytest.fixture
def make_context(registry: AddressRegistry, metadata: FakeMetadata, open_snapshot):
    """Extraction context over a freshly built snapshot."""

    def _make(builder: SnapshotBuilder, **kwargs: object) -> ExtractionContext:
        kwargs.setdefault("registry", registry)
        kwargs.setdefault("metadata", metadata)
        kwargs.setdefault("slot", 250_000_000)
        return ExtractionContext(snapshot=open_snapshot(builder), **kwargs)

    return _make
