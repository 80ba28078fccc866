"""
Unified Operation Result
========================
Standardized return type for every public workflow entry point.

Pure builders and the quoting engine raise typed AmmErrors; the client
facade and the transaction orchestrator convert them into this shape so
calling UIs can render operation-specific messages.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import time

from ammkit.errors import AmmError, ErrorCode


@dataclass
class OperationResult:
    """
    Result of a protocol operation.

    Usage:
        result = await client.swap(...)
        if result.success:
            show(result.signature)
        else:
            handle_error(result.error_code, result.details)
    """

    success: bool
    operation: str = ""

    # Payload (decoded pool, quote, address, ...)
    data: Any = None

    # Submission reference when a transaction was sent
    signature: Optional[str] = None

    # Error handling
    error_code: Optional[ErrorCode] = None
    error_message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/rendering."""
        return {
            "success": self.success,
            "operation": self.operation,
            "signature": self.signature,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": self.error_message,
            "details": dict(self.details),
        }

    def __repr__(self) -> str:
        if self.success:
            return f"OperationResult(SUCCESS: {self.operation}, sig={self.signature or 'N/A'})"
        return f"OperationResult(FAILED: {self.operation}, {self.error_code}, {self.error_message})"


# ═══════════════════════════════════════════════════════════════════════════════
# FACTORY FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════════════

def success_result(operation: str, data: Any = None, signature: Optional[str] = None) -> OperationResult:
    """Create a successful result."""
    return OperationResult(success=True, operation=operation, data=data, signature=signature)


def failure_result(operation: str, error: AmmError) -> OperationResult:
    """Create a failed result from a typed protocol error."""
    return OperationResult(
        success=False,
        operation=operation,
        error_code=error.code,
        error_message=error.message,
        details=dict(error.details),
    )
