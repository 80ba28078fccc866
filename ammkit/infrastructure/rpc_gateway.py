"""
RPC Gateway
===========
Async account-fetch and submission collaborator over solana-py's AsyncClient.

Single-shot calls only: no caching, no retries. Every transport failure is
raised as UpstreamUnavailable; a rejected transaction is raised as
TransactionRejected carrying the failing instruction index when the node
reports one.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Tuple

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.types import MemcmpOpts, TokenAccountOpts, TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from ammkit.addresses import AddressLike, to_pubkey
from ammkit.errors import AmmError, PoolNotFound, TransactionRejected, UpstreamUnavailable
from ammkit.execution.transaction_orchestrator import instruction_index_of
from ammkit.layouts.pool import LayoutVariant
from ammkit.quoting.swap_math import Reserves
from ammkit.shared.config.network import NetworkConfig
from ammkit.shared.system.logging import Logger
from ammkit.state.pool_decoder import Pool, decode_pool, pool_filters


@dataclass(frozen=True)
class TokenBalance:
    """Raw token amount plus the mint's decimals."""
    amount: int
    decimals: int


class RpcGateway:
    """
    Thin async facade over a Solana JSON-RPC node.

    Usage:
        async with RpcGateway(NetworkConfig.preset("devnet")) as rpc:
            pool = await rpc.get_pool(address)
    """

    def __init__(self, config: Optional[NetworkConfig] = None, client: Optional[AsyncClient] = None):
        self.config = config or NetworkConfig()
        self.commitment = Commitment(self.config.commitment)
        self.client = client or AsyncClient(self.config.rpc_url, commitment=self.commitment)

    async def __aenter__(self) -> "RpcGateway":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.close()

    # ─── accounts ─────────────────────────────────────────────────────────────

    async def get_account_data(self, address: AddressLike) -> Optional[bytes]:
        """Raw account bytes, or None when the account does not exist."""
        key = to_pubkey(address)
        try:
            resp = await self.client.get_account_info(key, encoding="base64")
        except Exception as e:
            raise UpstreamUnavailable("get_account_info", str(e)) from e
        if resp.value is None:
            return None
        return bytes(resp.value.data)

    async def account_exists(self, address: AddressLike) -> bool:
        return await self.get_account_data(address) is not None

    async def get_pool(self, address: AddressLike) -> Pool:
        data = await self.get_account_data(address)
        if data is None:
            raise PoolNotFound(str(address))
        return decode_pool(data, address=str(address))

    async def get_token_balance(self, account: AddressLike) -> TokenBalance:
        try:
            resp = await self.client.get_token_account_balance(to_pubkey(account), commitment=self.commitment)
        except Exception as e:
            raise UpstreamUnavailable("get_token_account_balance", str(e)) from e
        return TokenBalance(amount=int(resp.value.amount), decimals=resp.value.decimals)

    async def get_mint_decimals(self, mint: AddressLike) -> int:
        try:
            resp = await self.client.get_token_supply(to_pubkey(mint), commitment=self.commitment)
        except Exception as e:
            raise UpstreamUnavailable("get_token_supply", str(e)) from e
        return resp.value.decimals

    async def get_vault_reserves(self, pool: Pool) -> Reserves:
        """Fresh vault balances for one quote; never cached."""
        balance_a, balance_b = await asyncio.gather(
            self.get_token_balance(pool.vault_a),
            self.get_token_balance(pool.vault_b),
        )
        return Reserves(amount_a=balance_a.amount, amount_b=balance_b.amount)

    async def find_largest_token_account(
        self,
        owner: AddressLike,
        mint: AddressLike,
    ) -> Optional[Tuple[Pubkey, int]]:
        """The owner's token account for `mint` holding the most, if any."""
        try:
            resp = await self.client.get_token_accounts_by_owner_json_parsed(
                to_pubkey(owner, "owner"),
                TokenAccountOpts(mint=to_pubkey(mint, "mint")),
                commitment=self.commitment,
            )
        except Exception as e:
            raise UpstreamUnavailable("get_token_accounts_by_owner", str(e)) from e

        best: Optional[Tuple[Pubkey, int]] = None
        for keyed in resp.value:
            info = keyed.account.data.parsed["info"]
            amount = int(info["tokenAmount"]["amount"])
            if best is None or amount > best[1]:
                best = (keyed.pubkey, amount)
        return best

    # ─── pool lookups ─────────────────────────────────────────────────────────

    async def find_pools(
        self,
        variant: LayoutVariant = LayoutVariant.SINGLE_FEE,
        owner: Optional[str] = None,
        mint_a: Optional[str] = None,
        mint_b: Optional[str] = None,
    ) -> List[Pool]:
        """Program accounts of the pool size, optionally filtered by memcmp."""
        span, memcmp = pool_filters(variant, owner=owner, mint_a=mint_a, mint_b=mint_b)
        filters = [span] + [MemcmpOpts(offset=m["offset"], bytes=m["bytes"]) for m in memcmp]
        try:
            resp = await self.client.get_program_accounts(
                self.config.program,
                commitment=self.commitment,
                encoding="base64",
                filters=filters,
            )
        except Exception as e:
            raise UpstreamUnavailable("get_program_accounts", str(e)) from e

        pools = []
        for keyed in resp.value:
            try:
                pools.append(decode_pool(bytes(keyed.account.data), address=str(keyed.pubkey)))
            except AmmError as e:
                Logger.warning(f"[RPC] Skipping undecodable pool {keyed.pubkey}: {e.message}")
        Logger.debug(f"[RPC] {len(pools)} {variant.value} pools matched {len(memcmp)} filters")
        return pools

    async def find_pools_by_owner(self, owner: str, variant: LayoutVariant = LayoutVariant.SINGLE_FEE) -> List[Pool]:
        return await self.find_pools(variant, owner=owner)

    async def find_pools_by_mints(
        self,
        mint_a: str,
        mint_b: str,
        variant: LayoutVariant = LayoutVariant.SINGLE_FEE,
    ) -> List[Pool]:
        return await self.find_pools(variant, mint_a=mint_a, mint_b=mint_b)

    # ─── submission ───────────────────────────────────────────────────────────

    async def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        try:
            resp = await self.client.get_minimum_balance_for_rent_exemption(size, commitment=self.commitment)
        except Exception as e:
            raise UpstreamUnavailable("get_minimum_balance_for_rent_exemption", str(e)) from e
        return resp.value

    async def get_latest_blockhash(self) -> Hash:
        try:
            resp = await self.client.get_latest_blockhash(commitment=self.commitment)
        except Exception as e:
            raise UpstreamUnavailable("get_latest_blockhash", str(e)) from e
        return resp.value.blockhash

    async def send_transaction(self, tx: VersionedTransaction) -> str:
        try:
            resp = await self.client.send_transaction(
                tx, opts=TxOpts(skip_preflight=False, preflight_commitment=self.commitment)
            )
        except Exception as e:
            raise self._rejection("send_transaction", e) from e
        return str(resp.value)

    async def confirm_transaction(self, signature: str) -> None:
        try:
            resp = await asyncio.wait_for(
                self.client.confirm_transaction(Signature.from_string(str(signature)), commitment=self.commitment),
                timeout=self.config.confirmation_timeout_sec,
            )
        except Exception as e:
            raise self._rejection("confirm_transaction", e) from e

        status = resp.value[0] if resp.value else None
        if status is not None and status.err is not None:
            raise TransactionRejected(str(status.err), instruction_index=instruction_index_of(status.err))

    @staticmethod
    def _rejection(operation: str, error: Exception) -> AmmError:
        index = instruction_index_of(error)
        if index is not None:
            return TransactionRejected(str(error), instruction_index=index)
        return UpstreamUnavailable(operation, str(error) or type(error).__name__)


class RpcLedger:
    """Ledger collaborator: blockhash source."""

    def __init__(self, gateway: RpcGateway):
        self.gateway = gateway

    async def get_latest_blockhash(self) -> Hash:
        return await self.gateway.get_latest_blockhash()


class RpcSubmitter:
    """Submitter collaborator: send + confirm through the gateway."""

    def __init__(self, gateway: RpcGateway):
        self.gateway = gateway

    async def send_transaction(self, tx: VersionedTransaction) -> str:
        return await self.gateway.send_transaction(tx)

    async def confirm_transaction(self, signature: str) -> None:
        await self.gateway.confirm_transaction(signature)
