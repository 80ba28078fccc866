"""
Address Deriver
===============
Deterministic address derivation for pool accounts and pool authorities.

Two modes:
- Seeded account address (`Pubkey.create_with_seed`), used to create the
  pool account without a dedicated keypair.
- Program-derived address (`Pubkey.find_program_address`): seeds plus a bump
  byte that lands off the ed25519 curve, so no private key can exist for it.

The bump found at pool creation is stored in the pool as `nonce`. Every
later instruction re-derives the authority from that stored bump; it never
searches again.
"""

from __future__ import annotations

import time
from typing import Optional, Sequence, Tuple, Union

from solders.pubkey import Pubkey

from ammkit.errors import AddressMismatch, InvalidAddress, InvalidSeed
from ammkit.shared.system.logging import Logger


MAX_SEED_LEN = 32
MAX_SEEDS = 16

AddressLike = Union[Pubkey, str, bytes]


def to_pubkey(value: AddressLike, field: str = "address") -> Pubkey:
    """Coerce a Pubkey, base58 string or 32 raw bytes into a Pubkey."""
    if isinstance(value, Pubkey):
        return value
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 32:
            raise InvalidAddress(bytes(value).hex(), reason=f"{field} must be 32 bytes, got {len(value)}")
        return Pubkey.from_bytes(bytes(value))
    if isinstance(value, str):
        try:
            return Pubkey.from_string(value)
        except ValueError as e:
            raise InvalidAddress(value, reason=f"{field}: {e}") from e
    raise InvalidAddress(value, reason=f"{field} has unsupported type {type(value).__name__}")


# ═══════════════════════════════════════════════════════════════════════════════
# SEEDED ACCOUNT ADDRESS
# ═══════════════════════════════════════════════════════════════════════════════

def derive_seeded_address(base: AddressLike, seed: str, owning_program: AddressLike) -> Pubkey:
    """Address of an account created with `create_account_with_seed`."""
    if not isinstance(seed, str):
        raise InvalidSeed(seed, "seed must be text")
    if len(seed.encode("utf-8")) > MAX_SEED_LEN:
        raise InvalidSeed(seed, f"longer than {MAX_SEED_LEN} bytes")

    base_key = to_pubkey(base, "base")
    program_key = to_pubkey(owning_program, "owning_program")
    return Pubkey.create_with_seed(base_key, seed, program_key)


def new_pool_seed(prefix: str = "AMM", now_ms: Optional[int] = None) -> str:
    """Prefix + millisecond timestamp, the naming scheme for pool accounts."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    seed = f"{prefix}{now_ms}"
    if len(seed.encode("utf-8")) > MAX_SEED_LEN:
        raise InvalidSeed(seed, f"longer than {MAX_SEED_LEN} bytes")
    return seed


# ═══════════════════════════════════════════════════════════════════════════════
# PROGRAM-DERIVED ADDRESS
# ═══════════════════════════════════════════════════════════════════════════════

def _check_seeds(seeds: Sequence[bytes]) -> Tuple[bytes, ...]:
    if len(seeds) > MAX_SEEDS:
        raise InvalidSeed(len(seeds), f"at most {MAX_SEEDS} seeds allowed")
    checked = []
    for seed in seeds:
        if isinstance(seed, Pubkey):
            seed = bytes(seed)
        if not isinstance(seed, (bytes, bytearray)):
            raise InvalidSeed(seed, "seeds must be bytes")
        if len(seed) > MAX_SEED_LEN:
            raise InvalidSeed(bytes(seed).hex(), f"longer than {MAX_SEED_LEN} bytes")
        checked.append(bytes(seed))
    return tuple(checked)


def create_pda(seeds: Sequence[bytes], owning_program: AddressLike) -> Pubkey:
    """
    Exact derivation from seeds that already include the bump byte.

    Raises AddressMismatch if the result is on curve, i.e. the bump is not a
    valid one for these seeds.
    """
    checked = _check_seeds(seeds)
    program = to_pubkey(owning_program, "owning_program")
    try:
        return Pubkey.create_program_address(list(checked), program)
    except Exception as e:
        raise AddressMismatch(
            "Seeds derive an on-curve address; the stored bump is invalid",
            program=str(program),
            reason=str(e),
        ) from e


def derive_pda(seeds: Sequence[bytes], owning_program: AddressLike) -> Tuple[Pubkey, int]:
    """Search bumps 255 down to 0; the first off-curve address wins."""
    # Validate with a placeholder so the bump still fits under MAX_SEEDS.
    checked = _check_seeds(list(seeds) + [b""])[:-1]
    program = to_pubkey(owning_program, "owning_program")
    return Pubkey.find_program_address(list(checked), program)


# ═══════════════════════════════════════════════════════════════════════════════
# POOL AUTHORITY
# ═══════════════════════════════════════════════════════════════════════════════

def find_pool_authority(pool_address: AddressLike, owning_program: AddressLike) -> Tuple[Pubkey, int]:
    """Search the authority for a brand-new pool; the bump becomes its nonce."""
    pool = to_pubkey(pool_address, "pool")
    authority, nonce = derive_pda([bytes(pool)], owning_program)
    Logger.debug(f"[PDA] Pool {pool} authority {authority} (nonce {nonce})")
    return authority, nonce


def pool_authority(pool_address: AddressLike, nonce: int, owning_program: AddressLike) -> Pubkey:
    """Re-derive the vault authority from the pool's stored nonce."""
    if isinstance(nonce, bool) or not isinstance(nonce, int) or not 0 <= nonce <= 255:
        raise InvalidSeed(nonce, "nonce must be an integer in 0..255")
    pool = to_pubkey(pool_address, "pool")
    return create_pda([bytes(pool), bytes([nonce])], owning_program)


def verify_pool_authority(
    pool_address: AddressLike,
    nonce: int,
    owning_program: AddressLike,
    expected: AddressLike,
) -> Pubkey:
    """Return the authority if it matches `expected`, else AddressMismatch."""
    derived = pool_authority(pool_address, nonce, owning_program)
    expected_key = to_pubkey(expected, "pool_authority")
    if derived != expected_key:
        raise AddressMismatch(
            "Pool authority does not match the stored nonce",
            expected=str(derived),
            actual=str(expected_key),
            nonce=nonce,
        )
    return derived
