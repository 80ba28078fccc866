"""
Error Taxonomy
==============
Typed failures raised by the pure protocol functions.

Every error carries a stable ErrorCode and a `details` dict of
diagnostics so that workflow entry points can convert it into a
structured OperationResult without losing context.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Standardized error codes for protocol failures."""

    # Layout errors
    MALFORMED_LAYOUT = "MALFORMED_LAYOUT"
    FIELD_OVERFLOW = "FIELD_OVERFLOW"
    UNKNOWN_LAYOUT = "UNKNOWN_LAYOUT"

    # Address errors
    ADDRESS_MISMATCH = "ADDRESS_MISMATCH"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_SEED = "INVALID_SEED"

    # Swap math errors
    EXCEEDS_RESERVE = "EXCEEDS_RESERVE"
    TOLERANCE_EXCEEDED = "TOLERANCE_EXCEEDED"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_DIRECTION = "INVALID_DIRECTION"
    SUPER_SWAP_LEG_FAILED = "SUPER_SWAP_LEG_FAILED"

    # Collaborator errors
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    POOL_NOT_FOUND = "POOL_NOT_FOUND"
    POOL_EXISTS = "POOL_EXISTS"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    MISSING_SIGNER = "MISSING_SIGNER"

    UNKNOWN = "UNKNOWN"


class AmmError(Exception):
    """Base class for all protocol-layer failures."""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details


# ═══════════════════════════════════════════════════════════════════════════════
# LAYOUT
# ═══════════════════════════════════════════════════════════════════════════════

class MalformedLayout(AmmError):
    code = ErrorCode.MALFORMED_LAYOUT

    def __init__(self, layout: str, expected: int, actual: int, unit: str = "bytes"):
        super().__init__(
            f"{layout}: expected {expected} {unit}, got {actual}",
            layout=layout,
            expected=expected,
            actual=actual,
        )


class FieldOverflow(AmmError):
    code = ErrorCode.FIELD_OVERFLOW

    def __init__(self, field: str, value: Any, kind: str, reason: str = "does not fit"):
        super().__init__(
            f"{field}={value!r} {reason} {kind}",
            field=field,
            value=value,
            kind=kind,
        )


class UnknownLayout(AmmError):
    code = ErrorCode.UNKNOWN_LAYOUT

    def __init__(self, length: int, known: Optional[Dict[str, int]] = None):
        super().__init__(
            f"No pool layout variant is {length} bytes long",
            length=length,
            known=known or {},
        )


# ═══════════════════════════════════════════════════════════════════════════════
# ADDRESSES
# ═══════════════════════════════════════════════════════════════════════════════

class AddressMismatch(AmmError):
    code = ErrorCode.ADDRESS_MISMATCH

    def __init__(self, message: str, expected: Optional[str] = None, actual: Optional[str] = None, **details: Any):
        super().__init__(message, expected=expected, actual=actual, **details)


class InvalidAddress(AmmError):
    code = ErrorCode.INVALID_ADDRESS

    def __init__(self, value: Any, reason: str = "not a canonical 32-byte address"):
        super().__init__(f"Invalid address {value!r}: {reason}", value=str(value))


class InvalidSeed(AmmError):
    code = ErrorCode.INVALID_SEED

    def __init__(self, seed: Any, reason: str):
        super().__init__(f"Invalid seed {seed!r}: {reason}", seed=repr(seed))


# ═══════════════════════════════════════════════════════════════════════════════
# SWAP MATH
# ═══════════════════════════════════════════════════════════════════════════════

class ExceedsReserve(AmmError):
    code = ErrorCode.EXCEEDS_RESERVE

    def __init__(self, side: str, requested: int, reserve: int, reason: str = "would drain the reserve"):
        super().__init__(
            f"Side {side}: {requested} {reason} ({reserve})",
            side=side,
            requested=requested,
            reserve=reserve,
        )


class ToleranceExceeded(AmmError):
    code = ErrorCode.TOLERANCE_EXCEEDED

    def __init__(self, drift: int, tolerance: int, invariant_before: int, invariant_after: int):
        super().__init__(
            f"Invariant drift {drift} exceeds tolerance {tolerance}",
            drift=drift,
            tolerance=tolerance,
            invariant_before=invariant_before,
            invariant_after=invariant_after,
        )
        self.drift = drift


class InvalidAmount(AmmError):
    code = ErrorCode.INVALID_AMOUNT

    def __init__(self, field: str, value: Any, reason: str = "must be a positive integer"):
        super().__init__(f"{field}={value!r} {reason}", field=field, value=repr(value))


class InvalidDirection(AmmError):
    code = ErrorCode.INVALID_DIRECTION

    def __init__(self, value: Any):
        super().__init__(f"Unknown swap direction {value!r} (expected 1=A->B or 2=B->A)", value=repr(value))


class SuperSwapLegFailed(AmmError):
    code = ErrorCode.SUPER_SWAP_LEG_FAILED

    def __init__(self, leg: int, cause: AmmError):
        super().__init__(
            f"Super-swap leg {leg} failed: {cause.message}",
            leg=leg,
            cause=cause.code.value,
            **cause.details,
        )
        self.leg = leg
        self.cause = cause


# ═══════════════════════════════════════════════════════════════════════════════
# COLLABORATORS
# ═══════════════════════════════════════════════════════════════════════════════

class UpstreamUnavailable(AmmError):
    code = ErrorCode.UPSTREAM_UNAVAILABLE

    def __init__(self, operation: str, reason: str):
        super().__init__(f"{operation} failed: {reason}", operation=operation, reason=reason)


class PoolNotFound(AmmError):
    code = ErrorCode.POOL_NOT_FOUND

    def __init__(self, address: str):
        super().__init__(f"Pool account {address} does not exist", address=address)


class PoolExists(AmmError):
    code = ErrorCode.POOL_EXISTS

    def __init__(self, address: str):
        super().__init__(f"Pool account {address} already exists", address=address)


# ═══════════════════════════════════════════════════════════════════════════════
# SUBMISSION
# ═══════════════════════════════════════════════════════════════════════════════

class TransactionRejected(AmmError):
    """The ledger refused the transaction, optionally naming the instruction."""

    code = ErrorCode.TRANSACTION_FAILED

    def __init__(self, reason: str, instruction_index: Optional[int] = None, **details: Any):
        super().__init__(f"Transaction rejected: {reason}", instruction_index=instruction_index, **details)
        self.instruction_index = instruction_index


class MissingSigner(AmmError):
    code = ErrorCode.MISSING_SIGNER

    def __init__(self, pubkey: str):
        super().__init__(f"Required signer {pubkey} was not provided", pubkey=pubkey)
