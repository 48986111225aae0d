"""Fields of lending bank accounts: Anchor discriminators and I80F48 fixed point."""

import hashlib
from decimal import Decimal, localcontext

I80F48_SIZE = 16
I80F48_FRACTION_BITS = 48


def anchor_discriminator(account_name: str) -> bytes:
    """First 8 bytes of ``sha256("account:<Name>")``, the prefix of every Anchor account."""
    return hashlib.sha256(f"account:{account_name}".encode()).digest()[:8]


def i80f48_to_str(raw: bytes) -> str:
    """
    Exact decimal rendering of a little-endian I80F48 fixed-point number.

    Every I80F48 value has a finite decimal expansion of at most 48
    fractional digits, so nothing is rounded.

    Parameters
    ----------
    raw : bytes
        The 16 bytes of the field

    Returns
    -------
    str
        Plain decimal without exponent or trailing zeros (e.g., '1.0000321')

    Raises
    ------
    ValueError
        If ``raw`` is not 16 bytes long

    """
    if len(raw) != I80F48_SIZE:
        msg = f"I80F48 needs {I80F48_SIZE} bytes, got {len(raw)}"
        raise ValueError(msg)
    bits = int.from_bytes(raw, "little", signed=True)
    with localcontext() as ctx:
        ctx.prec = 100
        value = Decimal(bits) / (1 << I80F48_FRACTION_BITS)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
