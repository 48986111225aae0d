"""Fixed-layout decoder for lending obligation accounts."""

import logging
import struct

import base58
from pydantic import BaseModel, ConfigDict

from holder_ledger.sharemath.interfaces import DecodedObligation, ObligationDeposit

logger = logging.getLogger(__name__)

PUBKEY_SIZE = 32
_ZERO_KEY = bytes(PUBKEY_SIZE)


class ObligationLayout(BaseModel):
    """
    Byte layout of an obligation account.

    Attributes
    ----------
    data_size : int
        Exact account data length; other lengths are not obligations
    discriminator : str | None
        Hex-encoded account discriminator expected at offset 0
    lending_market_offset : int
        Offset of the lending market pubkey
    owner_offset : int
        Offset of the owner pubkey
    deposits_offset : int
        Offset of the first deposit entry
    deposits_count_offset : int | None
        Offset of a u8 deposit count; None for fixed arrays where empty
        entries have an all-zero reserve
    max_deposits : int
        Capacity of the deposits array
    deposit_size : int
        Size of one deposit entry
    reserve_offset : int
        Offset of the reserve pubkey inside a deposit entry
    amount_offset : int
        Offset of the little-endian u64 deposited amount inside a deposit entry

    """

    model_config = ConfigDict(frozen=True)

    data_size: int
    discriminator: str | None = None
    lending_market_offset: int
    owner_offset: int
    deposits_offset: int
    deposits_count_offset: int | None = None
    max_deposits: int
    deposit_size: int
    reserve_offset: int = 0
    amount_offset: int = PUBKEY_SIZE


def encode_pubkey(raw: bytes) -> str:
    """Base58 representation of a 32-byte public key."""
    return base58.b58encode(raw).decode("ascii")


class StructObligationDecoder:
    """
    Decode obligations whose layout is described by an ``ObligationLayout``.

    Parameters
    ----------
    layout : ObligationLayout
        Account layout

    """

    def __init__(self, layout: ObligationLayout) -> None:
        self.layout = layout
        self.data_size = layout.data_size
        self._discriminator = bytes.fromhex(layout.discriminator) if layout.discriminator else b""

    def decode(self, data: bytes) -> DecodedObligation | None:
        """
        Decode raw account data.

        Parameters
        ----------
        data : bytes
            Raw account data

        Returns
        -------
        DecodedObligation | None
            Decoded obligation, or None for data of another size or discriminator

        """
        layout = self.layout
        if len(data) != layout.data_size:
            return None
        if self._discriminator and not data.startswith(self._discriminator):
            return None

        lending_market = encode_pubkey(self._pubkey_at(data, layout.lending_market_offset))
        owner = encode_pubkey(self._pubkey_at(data, layout.owner_offset))

        if layout.deposits_count_offset is not None:
            (count,) = struct.unpack_from("<B", data, layout.deposits_count_offset)
            count = min(count, layout.max_deposits)
        else:
            count = layout.max_deposits

        deposits = []
        for index in range(count):
            entry = layout.deposits_offset + index * layout.deposit_size
            if entry + layout.deposit_size > len(data):
                logger.debug("Deposit entry %d of obligation owned by %s exceeds account data", index, owner)
                break
            reserve = self._pubkey_at(data, entry + layout.reserve_offset)
            if reserve == _ZERO_KEY:
                continue
            (amount,) = struct.unpack_from("<Q", data, entry + layout.amount_offset)
            deposits.append(ObligationDeposit(reserve=encode_pubkey(reserve), amount=amount))

        return DecodedObligation(lending_market=lending_market, owner=owner, deposits=deposits)

    @staticmethod
    def _pubkey_at(data: bytes, offset: int) -> bytes:
        return data[offset : offset + PUBKEY_SIZE]
