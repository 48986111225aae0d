"""Protocol share-math collaborators: interfaces and reference implementations."""

from holder_ledger.sharemath.bank import anchor_discriminator, i80f48_to_str
from holder_ledger.sharemath.clmm import ConcentratedLiquidityMath
from holder_ledger.sharemath.interfaces import (
    CurveMath,
    DecodedObligation,
    ObligationDecoder,
    ObligationDeposit,
    VaultMath,
    VaultState,
)
from holder_ledger.sharemath.obligation import ObligationLayout, StructObligationDecoder, encode_pubkey
from holder_ledger.sharemath.vault import LockedProfitVaultMath

__all__ = [
    "ConcentratedLiquidityMath",
    "CurveMath",
    "DecodedObligation",
    "LockedProfitVaultMath",
    "ObligationDecoder",
    "ObligationDeposit",
    "ObligationLayout",
    "StructObligationDecoder",
    "VaultMath",
    "VaultState",
    "anchor_discriminator",
    "encode_pubkey",
    "i80f48_to_str",
]
