"""
Network Configuration
=====================
Immutable program identifiers and endpoint settings.

A NetworkConfig is injected into every builder/client at construction so
that several environments (localnet, devnet, mainnet) can live in one
process without touching module-level state.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

from solders.pubkey import Pubkey

from ammkit.errors import InvalidAddress


TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

# Deployed AMM program (mainnet build of the client).
DEFAULT_AMM_PROGRAM_ID = "aAmLZ9yP1adeZyRC9qMskX9e1Ma2gR4ktpyrDCWPkdm"

# Fee fractions travel as integer parts-per-million.
FEE_PRECISION = 10**6

# Size of an SPL token account.
ACCOUNT_LAYOUT_LEN = 165


@dataclass(frozen=True)
class NetworkConfig:
    """Per-environment settings; build with preset() or from_env()."""

    rpc_url: str = "https://api.devnet.solana.com"
    amm_program_id: str = DEFAULT_AMM_PROGRAM_ID
    token_program_id: str = TOKEN_PROGRAM_ID
    commitment: str = "finalized"
    pool_seed_prefix: str = "AMM"
    confirmation_timeout_sec: float = 60.0

    def __post_init__(self):
        for name in ("amm_program_id", "token_program_id"):
            value = getattr(self, name)
            try:
                Pubkey.from_string(value)
            except ValueError as e:
                raise InvalidAddress(value, reason=f"{name}: {e}") from e

    @property
    def program(self) -> Pubkey:
        return Pubkey.from_string(self.amm_program_id)

    @property
    def token_program(self) -> Pubkey:
        return Pubkey.from_string(self.token_program_id)

    def with_overrides(self, **changes) -> "NetworkConfig":
        return replace(self, **changes)

    @classmethod
    def preset(cls, name: str) -> "NetworkConfig":
        """Named environments: localnet, devnet, mainnet."""
        urls = {
            "localnet": "http://localhost:8899",
            "devnet": "https://api.devnet.solana.com",
            "mainnet": "https://api.mainnet-beta.solana.com",
        }
        if name not in urls:
            raise ValueError(f"Unknown network preset: {name}")
        return cls(rpc_url=urls[name])

    @classmethod
    def from_env(cls, prefix: str = "AMM_") -> "NetworkConfig":
        """Build from environment variables (after .env is loaded by Settings)."""
        from ammkit.shared.config.settings import Settings  # noqa: F401 (loads .env)

        base = cls.preset(os.getenv(f"{prefix}NETWORK", "devnet"))
        return replace(
            base,
            rpc_url=os.getenv(f"{prefix}RPC_URL", base.rpc_url),
            amm_program_id=os.getenv(f"{prefix}PROGRAM_ID", base.amm_program_id),
            commitment=os.getenv(f"{prefix}COMMITMENT", base.commitment),
        )
