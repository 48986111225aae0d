"""Read-only adapter over the SQLite snapshot produced by the collector."""

import logging
import sqlite3
from pathlib import Path
from typing import Any

from holder_ledger.core.errors import MalformedSnapshotData, SnapshotDataMissing
from holder_ledger.core.models import AccountRecord
from holder_ledger.snapshot.rows import (
    AuthorityAmountRow,
    ClmmPoolRow,
    ClmmPositionRow,
    KaminoStrategyRow,
    LendingReserveRow,
    MeteoraAmmPoolRow,
    MeteoraVaultRow,
    OwnerAmountRow,
    ProgramAccountRow,
    WhirlpoolPoolRow,
    WhirlpoolPositionRow,
)

logger = logging.getLogger(__name__)

SYSTEM_PROGRAM = "11111111111111111111111111111111"

# Collector-facing DDL. u64/u128 quantities are TEXT so values above 2**63
# keep their exact digits; readers also accept INTEGER storage.
SCHEMA = """
CREATE TABLE IF NOT EXISTS metadata (key TEXT PRIMARY KEY, value TEXT NOT NULL);
CREATE TABLE IF NOT EXISTS account (pubkey TEXT PRIMARY KEY, owner TEXT NOT NULL, lamports TEXT);
CREATE TABLE IF NOT EXISTS token_account (
    pubkey TEXT PRIMARY KEY, owner TEXT NOT NULL, mint TEXT NOT NULL, amount TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS token_account_mint ON token_account (mint);
CREATE TABLE IF NOT EXISTS token_mint (pubkey TEXT PRIMARY KEY, supply TEXT NOT NULL, decimals INTEGER);
CREATE TABLE IF NOT EXISTS port (pubkey TEXT PRIMARY KEY, owner TEXT NOT NULL, data BLOB NOT NULL);
CREATE TABLE IF NOT EXISTS kamino_obligations (pubkey TEXT PRIMARY KEY, owner TEXT NOT NULL, data BLOB NOT NULL);
CREATE TABLE IF NOT EXISTS whirlpool_pools (
    pubkey TEXT PRIMARY KEY, token_a TEXT NOT NULL, token_b TEXT NOT NULL, sqrt_price TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS orca (
    pubkey TEXT PRIMARY KEY, pool TEXT NOT NULL, position_mint TEXT NOT NULL,
    liquidity TEXT NOT NULL, price_lower TEXT NOT NULL, price_upper TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS raydium_amms (
    pubkey TEXT PRIMARY KEY, mint1 TEXT NOT NULL, mint2 TEXT NOT NULL, vault1 TEXT NOT NULL, vault2 TEXT NOT NULL,
    liquidity TEXT NOT NULL, sqrt_price_x64 TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS raydium_amm_positions (
    pubkey TEXT PRIMARY KEY, pool_id TEXT NOT NULL, nft_mint TEXT NOT NULL,
    tick_lower_index INTEGER NOT NULL, tick_upper_index INTEGER NOT NULL, liquidity TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS solend (pubkey TEXT PRIMARY KEY, owner TEXT NOT NULL, deposit_amount TEXT NOT NULL);
CREATE TABLE IF NOT EXISTS drift (pubkey TEXT PRIMARY KEY, owner TEXT NOT NULL, amount TEXT NOT NULL);
CREATE TABLE IF NOT EXISTS mrgn (pubkey TEXT PRIMARY KEY, owner TEXT NOT NULL, amount TEXT NOT NULL);
CREATE TABLE IF NOT EXISTS mango (pubkey TEXT PRIMARY KEY, owner TEXT NOT NULL, amount TEXT NOT NULL);
CREATE TABLE IF NOT EXISTS meteora_vaults (
    pubkey TEXT PRIMARY KEY, lp_mint TEXT NOT NULL, token_vault TEXT NOT NULL,
    last_report TEXT NOT NULL, locked_profit_degradation TEXT NOT NULL,
    last_updated_locked_profit TEXT NOT NULL, total_amount TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS mercurial_pools (
    pubkey TEXT PRIMARY KEY, lp_mint TEXT NOT NULL, token_a_mint TEXT NOT NULL, token_b_mint TEXT NOT NULL,
    a_vault_lp TEXT NOT NULL, b_vault_lp TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS kamino_strategies (
    pubkey TEXT PRIMARY KEY, shares_mint TEXT NOT NULL, shares_issued TEXT NOT NULL,
    token_a_mint TEXT NOT NULL, token_b_mint TEXT NOT NULL, token_a_vault TEXT NOT NULL, token_b_vault TEXT NOT NULL,
    pool_token_vault_a TEXT NOT NULL, pool_token_vault_b TEXT NOT NULL,
    position_liquidity TEXT NOT NULL, tick_lower_index INTEGER NOT NULL, tick_upper_index INTEGER NOT NULL,
    pool_sqrt_price_x64 TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS lending_reserves (
    pubkey TEXT PRIMARY KEY, lending_market TEXT NOT NULL, liquidity_mint TEXT NOT NULL,
    collateral_mint_supply TEXT NOT NULL, total_liquidity TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS vemnde_accounts (
    pubkey TEXT PRIMARY KEY, voter_authority TEXT NOT NULL, voting_power TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS native_stake_accounts (
    pubkey TEXT PRIMARY KEY, withdraw_authority TEXT NOT NULL, amount TEXT NOT NULL
);
"""

DECODED_POSITION_TABLES = {
    "solend": "deposit_amount",
    "drift": "amount",
    "mrgn": "amount",
    "mango": "amount",
}

OBLIGATION_TABLES = ("port", "kamino_obligations")


def create_schema(connection: sqlite3.Connection) -> None:
    """
    Create the snapshot tables on a writable connection.

    Parameters
    ----------
    connection : sqlite3.Connection
        Writable connection (used by the collector and test fixtures)

    """
    connection.executescript(SCHEMA)
    connection.commit()


def to_amount(value: Any) -> int:
    """
    Convert a stored quantity to an exact integer.

    Accepts integers and decimal-digit strings; anything else (including
    floats, which would have lost precision already) is rejected.

    Raises
    ------
    MalformedSnapshotData
        If the value is not an exact non-negative integer

    """
    if isinstance(value, int) and not isinstance(value, bool):
        if value < 0:
            msg = f"Negative amount: {value}"
            raise MalformedSnapshotData(msg)
        return value
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    msg = f"Not an integer amount: {value!r}"
    raise MalformedSnapshotData(msg)


class SnapshotStore:
    """
    Read-only, indexed access to one frozen ledger snapshot.

    The store is the sole reader of the underlying SQLite file for a run.
    Quantities are read with ``CAST(... AS TEXT)`` and converted with
    ``int()``; host floats never appear.

    Parameters
    ----------
    path : str | Path
        Path to the SQLite snapshot file

    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._connection: sqlite3.Connection | None = None

    def open(self) -> None:
        """Open the snapshot read-only."""
        if self._connection is not None:
            return
        if not self.path.exists():
            msg = f"Snapshot file not found: {self.path}"
            raise FileNotFoundError(msg)
        logger.info("Opening snapshot %s", self.path)
        self._connection = sqlite3.connect(f"{self.path.resolve().as_uri()}?mode=ro", uri=True)
        self._connection.row_factory = sqlite3.Row

    def close(self) -> None:
        """Close the snapshot."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def __enter__(self) -> "SnapshotStore":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        if self._connection is None:
            msg = "Snapshot not open. Call open() first."
            raise RuntimeError(msg)
        return self._connection.execute(sql, params).fetchall()

    def _query_optional_table(self, table: str, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        try:
            return self._query(sql, params)
        except sqlite3.OperationalError as e:
            if "no such table" not in str(e):
                raise
            logger.warning("Snapshot has no %s table, treating it as empty", table)
            return []

    # -- core queries -----------------------------------------------------

    def accounts_by_mint_and_owner_program(
        self,
        mint: str,
        owner_program: str = SYSTEM_PROGRAM,
    ) -> list[AccountRecord]:
        """
        Token accounts of a mint held by wallets owned by a program.

        Parameters
        ----------
        mint : str
            Token mint
        owner_program : str
            Program owning the wallet accounts (system program by default)

        Returns
        -------
        list[AccountRecord]
            Accounts with a positive amount, largest first, ties by address

        """
        rows = self._query(
            """
            SELECT token_account.pubkey, token_account.owner, token_account.mint,
                   CAST(token_account.amount AS TEXT) AS amount
            FROM token_account, account
            WHERE token_account.mint = ? AND token_account.owner = account.pubkey AND account.owner = ?
            """,
            (mint, owner_program),
        )
        records = [
            AccountRecord(address=row["pubkey"], owner=row["owner"], mint=row["mint"], amount=to_amount(row["amount"]))
            for row in rows
        ]
        records = [record for record in records if record.amount > 0]
        records.sort(key=lambda record: (-record.amount, record.address))
        return records

    def token_accounts_by_mint(self, mint: str) -> list[AccountRecord]:
        """All token accounts of a mint regardless of the owner's program, largest first."""
        rows = self._query(
            """
            SELECT pubkey, owner, mint, CAST(amount AS TEXT) AS amount
            FROM token_account WHERE mint = ?
            """,
            (mint,),
        )
        records = [
            AccountRecord(address=row["pubkey"], owner=row["owner"], mint=row["mint"], amount=to_amount(row["amount"]))
            for row in rows
        ]
        records = [record for record in records if record.amount > 0]
        records.sort(key=lambda record: (-record.amount, record.address))
        return records

    def mint_supply(self, mint: str) -> int | None:
        """Total supply of a mint, or None when the mint is not in the snapshot."""
        rows = self._query("SELECT CAST(supply AS TEXT) AS supply FROM token_mint WHERE pubkey = ?", (mint,))
        return to_amount(rows[0]["supply"]) if rows else None

    def account_balance(self, address: str) -> int | None:
        """Balance of a token account, or None when it is not in the snapshot."""
        rows = self._query("SELECT CAST(amount AS TEXT) AS amount FROM token_account WHERE pubkey = ?", (address,))
        return to_amount(rows[0]["amount"]) if rows else None

    def require_mint_supply(self, mint: str) -> int:
        """
        Total supply of a mint.

        Raises
        ------
        SnapshotDataMissing
            If the mint is not in the snapshot

        """
        supply = self.mint_supply(mint)
        if supply is None:
            raise SnapshotDataMissing("mint", mint)
        return supply

    def require_account_balance(self, address: str) -> int:
        """
        Balance of a token account.

        Raises
        ------
        SnapshotDataMissing
            If the token account is not in the snapshot

        """
        balance = self.account_balance(address)
        if balance is None:
            raise SnapshotDataMissing("token_account", address)
        return balance

    def snapshot_slot(self) -> int | None:
        """Slot the collector recorded in the metadata table, if any."""
        rows = self._query_optional_table("metadata", "SELECT value FROM metadata WHERE key = 'slot'")
        return int(rows[0]["value"]) if rows else None

    # -- auxiliary queries ------------------------------------------------

    def whirlpool_pool(self, address: str) -> WhirlpoolPoolRow | None:
        """State of one Whirlpool, or None when it was not captured."""
        rows = self._query_optional_table(
            "whirlpool_pools",
            """
            SELECT pubkey, token_a, token_b, CAST(sqrt_price AS TEXT) AS sqrt_price
            FROM whirlpool_pools WHERE pubkey = ?
            """,
            (address,),
        )
        if not rows:
            return None
        row = rows[0]
        return WhirlpoolPoolRow(
            address=row["pubkey"],
            token_a=row["token_a"],
            token_b=row["token_b"],
            sqrt_price=to_amount(row["sqrt_price"]),
        )

    def whirlpool_positions(self, pool: str) -> list[WhirlpoolPositionRow]:
        """Positions of a Whirlpool with the current holders of their position NFTs."""
        rows = self._query_optional_table(
            "orca",
            """
            SELECT CAST(orca.price_lower AS TEXT) AS price_lower,
                   CAST(orca.price_upper AS TEXT) AS price_upper,
                   CAST(orca.liquidity AS TEXT) AS liquidity,
                   token_account.owner
            FROM orca, token_account
            WHERE orca.position_mint = token_account.mint AND orca.pool = ?
              AND CAST(token_account.amount AS TEXT) != '0'
            ORDER BY orca.pubkey
            """,
            (pool,),
        )
        return [
            WhirlpoolPositionRow(
                owner=row["owner"],
                liquidity=to_amount(row["liquidity"]),
                sqrt_price_lower=to_amount(row["price_lower"]),
                sqrt_price_upper=to_amount(row["price_upper"]),
            )
            for row in rows
        ]

    def raydium_clmm_pools(self, mint: str) -> list[ClmmPoolRow]:
        """Raydium AMM v3 pools with the mint on either side."""
        rows = self._query_optional_table(
            "raydium_amms",
            """
            SELECT pubkey, mint1, mint2, vault1, vault2,
                   CAST(liquidity AS TEXT) AS liquidity, CAST(sqrt_price_x64 AS TEXT) AS sqrt_price_x64
            FROM raydium_amms
            WHERE mint1 = ? OR mint2 = ?
            ORDER BY pubkey
            """,
            (mint, mint),
        )
        return [
            ClmmPoolRow(
                address=row["pubkey"],
                mint_a=row["mint1"],
                mint_b=row["mint2"],
                vault_a=row["vault1"],
                vault_b=row["vault2"],
                liquidity=to_amount(row["liquidity"]),
                sqrt_price_x64=to_amount(row["sqrt_price_x64"]),
            )
            for row in rows
        ]

    def raydium_clmm_positions(self, pool: str) -> list[ClmmPositionRow]:
        """Positions of a Raydium AMM v3 pool with the holders of their NFTs."""
        rows = self._query_optional_table(
            "raydium_amm_positions",
            """
            SELECT raydium_amm_positions.tick_lower_index,
                   raydium_amm_positions.tick_upper_index,
                   CAST(raydium_amm_positions.liquidity AS TEXT) AS liquidity,
                   token_account.owner
            FROM raydium_amm_positions, token_account
            WHERE raydium_amm_positions.nft_mint = token_account.mint AND raydium_amm_positions.pool_id = ?
              AND CAST(token_account.amount AS TEXT) != '0'
            ORDER BY raydium_amm_positions.pubkey
            """,
            (pool,),
        )
        return [
            ClmmPositionRow(
                owner=row["owner"],
                tick_lower=int(row["tick_lower_index"]),
                tick_upper=int(row["tick_upper_index"]),
                liquidity=to_amount(row["liquidity"]),
            )
            for row in rows
        ]

    def decoded_positions(self, table: str) -> list[OwnerAmountRow]:
        """
        Per-owner rows of a collector-decoded protocol table.

        Parameters
        ----------
        table : str
            One of the tables in ``DECODED_POSITION_TABLES``

        """
        if table not in DECODED_POSITION_TABLES:
            msg = f"Unknown decoded position table: {table}"
            raise ValueError(msg)
        column = DECODED_POSITION_TABLES[table]
        rows = self._query_optional_table(
            table,
            f"SELECT pubkey, owner, CAST({column} AS TEXT) AS amount FROM {table} ORDER BY pubkey",  # noqa: S608
        )
        records = [OwnerAmountRow(address=row["pubkey"], owner=row["owner"], amount=to_amount(row["amount"])) for row in rows]
        records.sort(key=lambda record: (-record.amount, record.address))
        return records

    def meteora_vaults(self) -> list[MeteoraVaultRow]:
        """Yield vaults captured by the collector (filtered to the reference mint upstream)."""
        rows = self._query_optional_table(
            "meteora_vaults",
            """
            SELECT pubkey, lp_mint, token_vault,
                   CAST(last_report AS TEXT) AS last_report,
                   CAST(locked_profit_degradation AS TEXT) AS locked_profit_degradation,
                   CAST(last_updated_locked_profit AS TEXT) AS last_updated_locked_profit,
                   CAST(total_amount AS TEXT) AS total_amount
            FROM meteora_vaults ORDER BY pubkey
            """,
        )
        return [
            MeteoraVaultRow(
                address=row["pubkey"],
                lp_mint=row["lp_mint"],
                token_vault=row["token_vault"],
                last_report=to_amount(row["last_report"]),
                locked_profit_degradation=to_amount(row["locked_profit_degradation"]),
                last_updated_locked_profit=to_amount(row["last_updated_locked_profit"]),
                total_amount=to_amount(row["total_amount"]),
            )
            for row in rows
        ]

    def meteora_amm_pools(self) -> list[MeteoraAmmPoolRow]:
        """AMM pools depositing into yield vaults."""
        rows = self._query_optional_table(
            "mercurial_pools",
            """
            SELECT pubkey, lp_mint, token_a_mint, token_b_mint, a_vault_lp, b_vault_lp
            FROM mercurial_pools ORDER BY pubkey
            """,
        )
        return [
            MeteoraAmmPoolRow(
                address=row["pubkey"],
                lp_mint=row["lp_mint"],
                token_a_mint=row["token_a_mint"],
                token_b_mint=row["token_b_mint"],
                a_vault_lp=row["a_vault_lp"],
                b_vault_lp=row["b_vault_lp"],
            )
            for row in rows
        ]

    def kamino_strategies(self, mint: str) -> list[KaminoStrategyRow]:
        """Automated liquidity strategies with the mint on either side."""
        rows = self._query_optional_table(
            "kamino_strategies",
            """
            SELECT pubkey, shares_mint, CAST(shares_issued AS TEXT) AS shares_issued,
                   token_a_mint, token_b_mint, token_a_vault, token_b_vault,
                   pool_token_vault_a, pool_token_vault_b,
                   CAST(position_liquidity AS TEXT) AS position_liquidity,
                   tick_lower_index, tick_upper_index,
                   CAST(pool_sqrt_price_x64 AS TEXT) AS pool_sqrt_price_x64
            FROM kamino_strategies
            WHERE token_a_mint = ? OR token_b_mint = ?
            ORDER BY pubkey
            """,
            (mint, mint),
        )
        return [
            KaminoStrategyRow(
                address=row["pubkey"],
                shares_mint=row["shares_mint"],
                shares_issued=to_amount(row["shares_issued"]),
                token_a_mint=row["token_a_mint"],
                token_b_mint=row["token_b_mint"],
                token_a_vault=row["token_a_vault"],
                token_b_vault=row["token_b_vault"],
                pool_token_vault_a=row["pool_token_vault_a"],
                pool_token_vault_b=row["pool_token_vault_b"],
                position_liquidity=to_amount(row["position_liquidity"]),
                tick_lower=int(row["tick_lower_index"]),
                tick_upper=int(row["tick_upper_index"]),
                pool_sqrt_price_x64=to_amount(row["pool_sqrt_price_x64"]),
            )
            for row in rows
        ]

    def lending_reserves(self, mint: str) -> list[LendingReserveRow]:
        """Lending reserves lending out the mint."""
        rows = self._query_optional_table(
            "lending_reserves",
            """
            SELECT pubkey, lending_market, liquidity_mint,
                   CAST(collateral_mint_supply AS TEXT) AS collateral_mint_supply,
                   CAST(total_liquidity AS TEXT) AS total_liquidity
            FROM lending_reserves WHERE liquidity_mint = ? ORDER BY pubkey
            """,
            (mint,),
        )
        return [
            LendingReserveRow(
                address=row["pubkey"],
                lending_market=row["lending_market"],
                liquidity_mint=row["liquidity_mint"],
                collateral_mint_supply=to_amount(row["collateral_mint_supply"]),
                total_liquidity=to_amount(row["total_liquidity"]),
            )
            for row in rows
        ]

    def program_accounts(self, table: str, program: str) -> list[ProgramAccountRow]:
        """
        Raw obligation accounts of a lending program.

        Parameters
        ----------
        table : str
            One of the tables in ``OBLIGATION_TABLES``
        program : str
            Program that must own the account; rows owned by anything else are dropped

        """
        if table not in OBLIGATION_TABLES:
            msg = f"Unknown obligation table: {table}"
            raise ValueError(msg)
        rows = self._query_optional_table(
            table,
            f"SELECT pubkey, owner, data FROM {table} WHERE owner = ? ORDER BY pubkey",  # noqa: S608
            (program,),
        )
        return [
            ProgramAccountRow(address=row["pubkey"], owner=row["owner"], data=bytes(row["data"] or b"")) for row in rows
        ]

    def vemnde_accounts(self) -> list[AuthorityAmountRow]:
        """Vote escrow accounts keyed by voter authority."""
        rows = self._query_optional_table(
            "vemnde_accounts",
            """
            SELECT pubkey, voter_authority AS authority, CAST(voting_power AS TEXT) AS amount
            FROM vemnde_accounts ORDER BY pubkey
            """,
        )
        return [
            AuthorityAmountRow(address=row["pubkey"], authority=row["authority"], amount=to_amount(row["amount"]))
            for row in rows
        ]

    def native_stake_accounts(self) -> list[AuthorityAmountRow]:
        """Native stake accounts keyed by withdraw authority."""
        rows = self._query_optional_table(
            "native_stake_accounts",
            """
            SELECT pubkey, withdraw_authority AS authority, CAST(amount AS TEXT) AS amount
            FROM native_stake_accounts ORDER BY pubkey
            """,
        )
        return [
            AuthorityAmountRow(address=row["pubkey"], authority=row["authority"], amount=to_amount(row["amount"]))
            for row in rows
        ]
