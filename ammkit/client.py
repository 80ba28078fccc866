"""
AMM Client
==========
Async workflow facade: fetch -> quote -> build -> submit.

Every public method returns an OperationResult; typed AmmErrors raised by
the pure layers below are converted with failure_result() and never
escape as the primary channel.

Usage:
    client = AmmClient.from_keypair(keypair, NetworkConfig.preset("devnet"))
    result = await client.swap(pool_address, 1_000_000, SwapDirection.A_TO_B)
    if result.success:
        print(result.signature)
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Union

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from ammkit.addresses import AddressLike, derive_seeded_address, new_pool_seed, pool_authority, to_pubkey
from ammkit.amounts import HumanAmount, to_atomic
from ammkit.errors import AddressMismatch, AmmError, InvalidAddress, PoolExists
from ammkit.execution.instruction_factory import InstructionFactory
from ammkit.execution.transaction_orchestrator import KeypairSigner, TransactionOrchestrator
from ammkit.infrastructure.rpc_gateway import RpcGateway, RpcLedger, RpcSubmitter
from ammkit.layouts.instructions import SwapDirection, coerce_direction
from ammkit.layouts.pool import POOL_LAYOUTS, LayoutVariant, PoolStatus
from ammkit.quoting.swap_math import quote_super_swap, quote_swap
from ammkit.shared.config.network import ACCOUNT_LAYOUT_LEN, NetworkConfig
from ammkit.shared.execution.execution_result import OperationResult, failure_result, success_result
from ammkit.shared.system.logging import Logger
from ammkit.state.pool_decoder import Pool


# Fee fractions scale to ppm exactly like a 6-decimal amount.
_PPM_DECIMALS = 6


class AmmClient:
    """Workflows over one wallet, one network and one AMM program."""

    def __init__(
        self,
        gateway: RpcGateway,
        orchestrator: TransactionOrchestrator,
        config: Optional[NetworkConfig] = None,
        factory: Optional[InstructionFactory] = None,
    ):
        self.config = config or gateway.config
        self.gateway = gateway
        self.orchestrator = orchestrator
        self.factory = factory or InstructionFactory(self.config)

    @classmethod
    def from_keypair(cls, keypair: Keypair, config: Optional[NetworkConfig] = None) -> "AmmClient":
        config = config or NetworkConfig.from_env()
        gateway = RpcGateway(config)
        orchestrator = TransactionOrchestrator(
            KeypairSigner(keypair), RpcLedger(gateway), RpcSubmitter(gateway), config
        )
        return cls(gateway, orchestrator, config)

    @property
    def wallet(self) -> Pubkey:
        return self.orchestrator.payer

    async def close(self) -> None:
        await self.gateway.close()

    # ─── helpers ──────────────────────────────────────────────────────────────

    @staticmethod
    def _fail(operation: str, error: AmmError) -> OperationResult:
        Logger.warning(f"[CLIENT] {operation} failed: {error.message}")
        return failure_result(operation, error)

    async def _scale(self, amount: HumanAmount, mint: str, human: bool) -> int:
        if not human:
            return amount
        return to_atomic(amount, await self.gateway.get_mint_decimals(mint))

    async def _token_account(self, mint: str, supplied: Optional[AddressLike] = None) -> Pubkey:
        """Caller-supplied token account, else the wallet's largest for `mint`."""
        if supplied is not None:
            return to_pubkey(supplied, "token_account")
        found = await self.gateway.find_largest_token_account(self.wallet, mint)
        if found is None:
            raise InvalidAddress(mint, reason="wallet holds no token account for this mint")
        return found[0]

    async def _owned_pool(self, address: AddressLike) -> Pool:
        pool = await self.gateway.get_pool(str(address))
        if pool.owner != str(self.wallet):
            raise AddressMismatch("Wallet is not the pool owner", expected=pool.owner, actual=str(self.wallet))
        return pool

    # ═══════════════════════════════════════════════════════════════════════════
    # READS
    # ═══════════════════════════════════════════════════════════════════════════

    async def get_pool(self, address: AddressLike) -> OperationResult:
        try:
            pool = await self.gateway.get_pool(str(address))
        except AmmError as e:
            return self._fail("get_pool", e)
        return success_result("get_pool", data=pool)

    async def get_pool_authority(self, address: AddressLike) -> OperationResult:
        """Vault authority re-derived from the pool's stored nonce."""
        try:
            pool = await self.gateway.get_pool(str(address))
            authority = pool_authority(address, pool.nonce, self.config.program)
        except AmmError as e:
            return self._fail("get_pool_authority", e)
        return success_result("get_pool_authority", data=str(authority))

    async def list_pools(self, variant: LayoutVariant = LayoutVariant.SINGLE_FEE) -> OperationResult:
        try:
            pools = await self.gateway.find_pools(variant)
        except AmmError as e:
            return self._fail("list_pools", e)
        return success_result("list_pools", data=pools)

    async def list_pools_by_owner(
        self,
        owner: Optional[str] = None,
        variant: LayoutVariant = LayoutVariant.SINGLE_FEE,
    ) -> OperationResult:
        try:
            pools = await self.gateway.find_pools_by_owner(owner or str(self.wallet), variant)
        except AmmError as e:
            return self._fail("list_pools_by_owner", e)
        return success_result("list_pools_by_owner", data=pools)

    async def list_pools_by_mints(
        self,
        mint_a: str,
        mint_b: str,
        variant: LayoutVariant = LayoutVariant.SINGLE_FEE,
    ) -> OperationResult:
        try:
            pools = await self.gateway.find_pools_by_mints(mint_a, mint_b, variant)
        except AmmError as e:
            return self._fail("list_pools_by_mints", e)
        return success_result("list_pools_by_mints", data=pools)

    async def calculate_swap_amount(
        self,
        pool_address: AddressLike,
        amount: HumanAmount,
        direction: Union[SwapDirection, int],
        human: bool = False,
        enforce_tolerance: bool = True,
    ) -> OperationResult:
        """Quote against freshly fetched vault balances. `amount` is side A."""
        try:
            pool = await self.gateway.get_pool(str(pool_address))
            atomic = await self._scale(amount, pool.mint_a, human)
            reserves = await self.gateway.get_vault_reserves(pool)
            quote = quote_swap(pool, reserves, atomic, direction, enforce_tolerance=enforce_tolerance)
        except AmmError as e:
            return self._fail("calculate_swap_amount", e)
        return success_result("calculate_swap_amount", data=quote)

    # ═══════════════════════════════════════════════════════════════════════════
    # POOL LIFECYCLE
    # ═══════════════════════════════════════════════════════════════════════════

    async def create_pool(
        self,
        mint_a: str,
        mint_b: str,
        fee_rates: Sequence[HumanAmount],
        amount_a: HumanAmount,
        amount_b: HumanAmount,
        tolerance: int,
        variant: LayoutVariant = LayoutVariant.SINGLE_FEE,
        fee_receivers: Sequence[str] = (),
        fee_mint: Optional[str] = None,
        human: bool = True,
    ) -> OperationResult:
        """
        Create and initialize a pool in one transaction.

        Order: pool account (seeded), vault_a, vault_b, fee_vault, then
        Initialize. The three vault keypairs co-sign.

        Args:
            fee_rates: Fee fractions ("0.003" = 0.3%); one or five
            amount_a / amount_b: Seed liquidity (human units unless human=False)
        """
        operation = "create_pool"
        try:
            seed = new_pool_seed(self.config.pool_seed_prefix)
            pool_address = derive_seeded_address(self.wallet, seed, self.config.program)
            if await self.gateway.account_exists(pool_address):
                raise PoolExists(str(pool_address))

            fees = [to_atomic(rate, _PPM_DECIMALS) for rate in fee_rates]
            owner_token_a = await self._token_account(mint_a)
            owner_token_b = await self._token_account(mint_b)
            atomic_a = await self._scale(amount_a, mint_a, human)
            atomic_b = await self._scale(amount_b, mint_b, human)
            pool_lamports = await self.gateway.get_minimum_balance_for_rent_exemption(POOL_LAYOUTS[variant].span)
            vault_lamports = await self.gateway.get_minimum_balance_for_rent_exemption(ACCOUNT_LAYOUT_LEN)

            plan = self.factory.build_create_pool_accounts(
                self.wallet, mint_a, mint_b, seed, pool_lamports, vault_lamports,
                variant=variant, fee_mint=fee_mint,
            )
            init = self.factory.build_initialize(
                pool_address=plan.pool_address,
                owner=self.wallet,
                mint_a=mint_a,
                mint_b=mint_b,
                vault_a=plan.vault_a.pubkey(),
                vault_b=plan.vault_b.pubkey(),
                fee_vault=plan.fee_vault.pubkey(),
                nonce=plan.nonce,
                fees=fees,
                amount_a=atomic_a,
                amount_b=atomic_b,
                tolerance=tolerance,
                owner_token_a=owner_token_a,
                owner_token_b=owner_token_b,
                variant=variant,
                fee_mint=fee_mint,
                fee_receivers=fee_receivers,
                pool_authority=plan.pool_authority,
            )
        except AmmError as e:
            return self._fail(operation, e)

        Logger.section(f"Creating pool {plan.pool_address}")
        Logger.info(f"[CLIENT] Seed {seed}, authority nonce {plan.nonce}")
        submission = await self.orchestrator.submit(plan.instructions + [init], extra_signers=plan.extra_signers)
        return submission.to_operation_result(
            operation,
            data={
                "pool": str(plan.pool_address),
                "seed": seed,
                "pool_authority": str(plan.pool_authority),
                "nonce": plan.nonce,
            },
        )

    async def update_status(self, pool_address: AddressLike, status: Union[PoolStatus, int]) -> OperationResult:
        try:
            await self._owned_pool(pool_address)
            ix = self.factory.build_update_status(pool_address, self.wallet, status)
        except AmmError as e:
            return self._fail("update_status", e)
        submission = await self.orchestrator.submit([ix])
        return submission.to_operation_result("update_status")

    async def update_tolerance(self, pool_address: AddressLike, tolerance: int) -> OperationResult:
        try:
            await self._owned_pool(pool_address)
            ix = self.factory.build_update_tolerance(pool_address, self.wallet, tolerance)
        except AmmError as e:
            return self._fail("update_tolerance", e)
        submission = await self.orchestrator.submit([ix])
        return submission.to_operation_result("update_tolerance")

    async def update_pool(self, pool_address: AddressLike) -> OperationResult:
        try:
            await self._owned_pool(pool_address)
            ix = self.factory.build_update_pool(pool_address, self.wallet)
        except AmmError as e:
            return self._fail("update_pool", e)
        submission = await self.orchestrator.submit([ix])
        return submission.to_operation_result("update_pool")

    async def terminate(
        self,
        pool_address: AddressLike,
        owner_token_a: Optional[AddressLike] = None,
        owner_token_b: Optional[AddressLike] = None,
    ) -> OperationResult:
        try:
            pool = await self._owned_pool(pool_address)
            ix = self.factory.build_terminate(
                pool,
                self.wallet,
                await self._token_account(pool.mint_a, owner_token_a),
                await self._token_account(pool.mint_b, owner_token_b),
            )
        except AmmError as e:
            return self._fail("terminate", e)
        Logger.info(f"[CLIENT] Terminating pool {pool_address}")
        submission = await self.orchestrator.submit([ix])
        return submission.to_operation_result("terminate")

    async def withdraw_fee(self, pool_address: AddressLike, fee_receiver: Optional[AddressLike] = None) -> OperationResult:
        """Single-fee pools pay the wallet's token-B account unless one is given."""
        try:
            pool = await self._owned_pool(pool_address)
            receiver = None
            if not pool.is_five_tier:
                receiver = await self._token_account(pool.mint_b, fee_receiver)
            ix = self.factory.build_withdraw_fee(pool, self.wallet, fee_receiver=receiver)
        except AmmError as e:
            return self._fail("withdraw_fee", e)
        submission = await self.orchestrator.submit([ix])
        return submission.to_operation_result("withdraw_fee")

    # ═══════════════════════════════════════════════════════════════════════════
    # TRADING
    # ═══════════════════════════════════════════════════════════════════════════

    async def swap(
        self,
        pool_address: AddressLike,
        amount: HumanAmount,
        direction: Union[SwapDirection, int],
        user_token_a: Optional[AddressLike] = None,
        user_token_b: Optional[AddressLike] = None,
        human: bool = False,
        quote_first: bool = True,
    ) -> OperationResult:
        """
        Swap against one pool. `amount` is side A in both directions.

        With quote_first the tolerance check runs locally before anything
        is signed, so a doomed swap never reaches the ledger.
        """
        quote = None
        try:
            pool = await self.gateway.get_pool(str(pool_address))
            direction = coerce_direction(direction)
            atomic = await self._scale(amount, pool.mint_a, human)
            if quote_first:
                reserves = await self.gateway.get_vault_reserves(pool)
                quote = quote_swap(pool, reserves, atomic, direction)
            ix = self.factory.build_swap(
                pool,
                self.wallet,
                await self._token_account(pool.mint_a, user_token_a),
                await self._token_account(pool.mint_b, user_token_b),
                atomic,
                direction,
            )
        except AmmError as e:
            return self._fail("swap", e)

        submission = await self.orchestrator.submit([ix])
        return submission.to_operation_result("swap", data=quote)

    async def super_swap(
        self,
        first_pool_address: AddressLike,
        second_pool_address: AddressLike,
        input_mint: str,
        amount: HumanAmount,
        human: bool = False,
    ) -> OperationResult:
        """
        input -> intermediate -> output through two pools, one transaction.

        Both legs are quoted (each against its own invariant) before any
        instruction is built; either leg failing aborts the whole swap.
        """
        try:
            first = await self.gateway.get_pool(str(first_pool_address))
            second = await self.gateway.get_pool(str(second_pool_address))
            atomic = await self._scale(amount, input_mint, human)
            quote = quote_super_swap(
                first,
                await self.gateway.get_vault_reserves(first),
                second,
                await self.gateway.get_vault_reserves(second),
                input_mint,
                atomic,
            )

            accounts: Dict[str, Pubkey] = {}
            instructions: List = []
            for pool, leg in ((first, quote.first), (second, quote.second)):
                for mint in (pool.mint_a, pool.mint_b):
                    if mint not in accounts:
                        accounts[mint] = await self._token_account(mint)
                instructions.append(
                    self.factory.build_swap(
                        pool,
                        self.wallet,
                        accounts[pool.mint_a],
                        accounts[pool.mint_b],
                        leg.amount_a,
                        leg.direction,
                    )
                )
        except AmmError as e:
            return self._fail("super_swap", e)

        Logger.info(
            f"[CLIENT] Super swap {quote.amount_in} via {quote.intermediate_mint[:8]} -> {quote.amount_out}"
        )
        submission = await self.orchestrator.submit(instructions)
        return submission.to_operation_result("super_swap", data=quote)
