"""
ammkit
======
Client-side protocol layer for a constant-product AMM program on Solana.

Layout codec, address derivation, instruction building, swap quoting,
pool decoding and transaction orchestration.
"""

from ammkit.errors import AmmError, ErrorCode
from ammkit.shared.config.network import NetworkConfig
from ammkit.shared.execution.execution_result import OperationResult


__version__ = "0.1.0"

__all__ = ["AmmError", "ErrorCode", "NetworkConfig", "OperationResult", "__version__"]
