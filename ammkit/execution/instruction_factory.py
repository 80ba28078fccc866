"""
Instruction Factory
===================
Pure, deterministic AMM instruction building.

100% testable without RPC or wallet connections: every method takes the
addresses and amounts it needs and returns an AmmInstruction (or raises a
typed AmmError). Nothing here signs, fetches or submits.

Responsibilities:
- Encode instruction payloads per discriminant
- Order account lists exactly as the program reads them
- Re-derive the pool authority from the stored nonce
- Build the system/SPL instructions that create a pool's accounts
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import (
    CreateAccountParams,
    CreateAccountWithSeedParams,
    create_account,
    create_account_with_seed,
)
from spl.token.instructions import InitializeAccountParams, initialize_account

from ammkit.addresses import (
    AddressLike,
    derive_seeded_address,
    find_pool_authority,
    pool_authority,
    to_pubkey,
    verify_pool_authority,
)
from ammkit.errors import FieldOverflow, InvalidAddress, InvalidAmount
from ammkit.layouts.instructions import (
    SWAP,
    UPDATE_POOL,
    UPDATE_STATUS,
    UPDATE_TOLERANCE,
    WITHDRAW_FEE,
    SwapDirection,
    coerce_direction,
    initialize_layout,
    terminate_layout,
)
from ammkit.layouts.pool import FEE_TIERS, POOL_LAYOUTS, LayoutVariant
from ammkit.shared.config.network import ACCOUNT_LAYOUT_LEN, NetworkConfig
from ammkit.shared.system.logging import Logger
from ammkit.state.pool_decoder import Pool


MAX_INSTRUCTIONS = 20


# ═══════════════════════════════════════════════════════════════════════════════
# INSTRUCTION SCHEMAS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AccountRef:
    """One account slot: its role name, key and access flags."""

    role: str
    pubkey: Pubkey
    is_signer: bool = False
    is_writable: bool = False

    def to_meta(self) -> AccountMeta:
        return AccountMeta(pubkey=self.pubkey, is_signer=self.is_signer, is_writable=self.is_writable)


@dataclass(frozen=True)
class AmmInstruction:
    """A named, ready-to-sign instruction."""

    name: str
    program_id: Pubkey
    data: bytes
    accounts: Tuple[AccountRef, ...]

    @property
    def discriminant(self) -> Optional[int]:
        return self.data[0] if self.data else None

    @property
    def roles(self) -> Tuple[str, ...]:
        return tuple(a.role for a in self.accounts)

    @property
    def signers(self) -> Tuple[Pubkey, ...]:
        return tuple(a.pubkey for a in self.accounts if a.is_signer)

    def account(self, role: str) -> AccountRef:
        for ref in self.accounts:
            if ref.role == role:
                return ref
        raise KeyError(role)

    def to_instruction(self) -> Instruction:
        return Instruction(self.program_id, bytes(self.data), [a.to_meta() for a in self.accounts])

    @classmethod
    def from_instruction(cls, name: str, ix: Instruction, roles: Sequence[str] = ()) -> "AmmInstruction":
        """Wrap a system/SPL instruction so it travels with a name."""
        metas = list(ix.accounts)
        names = list(roles) + [f"account_{i}" for i in range(len(roles), len(metas))]
        return cls(
            name=name,
            program_id=ix.program_id,
            data=bytes(ix.data),
            accounts=tuple(
                AccountRef(role, meta.pubkey, meta.is_signer, meta.is_writable)
                for role, meta in zip(names, metas)
            ),
        )


@dataclass
class PoolAccountsPlan:
    """Everything create_pool needs before the Initialize instruction."""

    seed: str
    pool_address: Pubkey
    pool_authority: Pubkey
    nonce: int
    vault_a: Keypair
    vault_b: Keypair
    fee_vault: Keypair
    instructions: List[AmmInstruction] = field(default_factory=list)

    @property
    def extra_signers(self) -> List[Keypair]:
        return [self.vault_a, self.vault_b, self.fee_vault]


def _require_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(name, value, reason="must be an integer in smallest units")
    return value


def _ro(role: str, key: AddressLike) -> AccountRef:
    return AccountRef(role, to_pubkey(key, role))


def _w(role: str, key: AddressLike) -> AccountRef:
    return AccountRef(role, to_pubkey(key, role), is_writable=True)


def _s(role: str, key: AddressLike) -> AccountRef:
    return AccountRef(role, to_pubkey(key, role), is_signer=True)


# ═══════════════════════════════════════════════════════════════════════════════
# INSTRUCTION FACTORY
# ═══════════════════════════════════════════════════════════════════════════════

class InstructionFactory:
    """
    Pure instruction builder for the AMM program.

    Usage:
        factory = InstructionFactory(NetworkConfig.preset("devnet"))
        ix = factory.build_swap(pool, user, user_token_a, user_token_b, 1_000, SwapDirection.A_TO_B)
    """

    def __init__(self, config: Optional[NetworkConfig] = None):
        self.config = config or NetworkConfig()
        self.program_id = self.config.program
        self.token_program = self.config.token_program

    # ─── helpers ──────────────────────────────────────────────────────────────

    def _make(self, name: str, data: bytes, accounts: Sequence[AccountRef]) -> AmmInstruction:
        ix = AmmInstruction(name=name, program_id=self.program_id, data=data, accounts=tuple(accounts))
        Logger.debug(f"[BUILDER] {name}: {len(data)} bytes, {len(ix.accounts)} accounts")
        return ix

    def _pool_key(self, pool: Pool, pool_address: Optional[AddressLike]) -> Pubkey:
        if pool_address is not None:
            return to_pubkey(pool_address, "pool")
        if pool.address:
            return to_pubkey(pool.address, "pool")
        raise InvalidAddress(None, reason="pool address is required (decoded pool carries none)")

    def _authority(self, pool_key: Pubkey, nonce: int, supplied: Optional[AddressLike]) -> Pubkey:
        if supplied is None:
            return pool_authority(pool_key, nonce, self.program_id)
        return verify_pool_authority(pool_key, nonce, self.program_id, supplied)

    def _token_program(self) -> AccountRef:
        return AccountRef("token_program", self.token_program)

    # ─── pool lifecycle ───────────────────────────────────────────────────────

    def build_create_pool_accounts(
        self,
        owner: AddressLike,
        mint_a: AddressLike,
        mint_b: AddressLike,
        seed: str,
        pool_lamports: int,
        vault_lamports: int,
        variant: LayoutVariant = LayoutVariant.SINGLE_FEE,
        fee_mint: Optional[AddressLike] = None,
        vault_keypairs: Optional[Tuple[Keypair, Keypair, Keypair]] = None,
    ) -> PoolAccountsPlan:
        """
        System + SPL instructions creating the pool account and its vaults.

        Order: create pool (with seed), then create + initialize vault_a,
        vault_b and fee_vault, each owned by the pool authority. The fee
        vault holds mint B unless a five-tier fee mint is given.
        """
        owner_key = to_pubkey(owner, "owner")
        _require_int("pool_lamports", pool_lamports)
        _require_int("vault_lamports", vault_lamports)

        pool_address = derive_seeded_address(owner_key, seed, self.program_id)
        authority, nonce = find_pool_authority(pool_address, self.program_id)
        vault_a, vault_b, fee_vault = vault_keypairs or (Keypair(), Keypair(), Keypair())

        fee_vault_mint = mint_b
        if variant is LayoutVariant.FIVE_TIER and fee_mint is not None:
            fee_vault_mint = fee_mint

        plan = PoolAccountsPlan(
            seed=seed,
            pool_address=pool_address,
            pool_authority=authority,
            nonce=nonce,
            vault_a=vault_a,
            vault_b=vault_b,
            fee_vault=fee_vault,
        )

        create_pool = create_account_with_seed(
            CreateAccountWithSeedParams(
                from_pubkey=owner_key,
                to_pubkey=pool_address,
                base=owner_key,
                seed=seed,
                lamports=pool_lamports,
                space=POOL_LAYOUTS[variant].span,
                owner=self.program_id,
            )
        )
        plan.instructions.append(
            AmmInstruction.from_instruction("create_pool_account", create_pool, ("owner", "pool"))
        )

        for role, keypair, mint in (
            ("vault_a", vault_a, mint_a),
            ("vault_b", vault_b, mint_b),
            ("fee_vault", fee_vault, fee_vault_mint),
        ):
            create = create_account(
                CreateAccountParams(
                    from_pubkey=owner_key,
                    to_pubkey=keypair.pubkey(),
                    lamports=vault_lamports,
                    space=ACCOUNT_LAYOUT_LEN,
                    owner=self.token_program,
                )
            )
            init = initialize_account(
                InitializeAccountParams(
                    program_id=self.token_program,
                    account=keypair.pubkey(),
                    mint=to_pubkey(mint, f"{role}_mint"),
                    owner=authority,
                )
            )
            plan.instructions.append(AmmInstruction.from_instruction(f"create_{role}", create, ("owner", role)))
            plan.instructions.append(
                AmmInstruction.from_instruction(f"init_{role}", init, (role, "mint", "pool_authority"))
            )

        Logger.debug(f"[BUILDER] Pool accounts for {pool_address} (seed {seed}, nonce {nonce})")
        return plan

    def build_initialize(
        self,
        pool_address: AddressLike,
        owner: AddressLike,
        mint_a: AddressLike,
        mint_b: AddressLike,
        vault_a: AddressLike,
        vault_b: AddressLike,
        fee_vault: AddressLike,
        nonce: int,
        fees: Union[int, Sequence[int]],
        amount_a: int,
        amount_b: int,
        tolerance: int,
        owner_token_a: AddressLike,
        owner_token_b: AddressLike,
        variant: LayoutVariant = LayoutVariant.SINGLE_FEE,
        fee_mint: Optional[AddressLike] = None,
        fee_receivers: Sequence[AddressLike] = (),
        pool_authority: Optional[AddressLike] = None,
    ) -> AmmInstruction:
        """
        Initialize a freshly created pool with its seed liquidity.

        Args:
            fees: ppm int (single-fee) or five ppm ints (five-tier)
            amount_a / amount_b: Seed liquidity in smallest units
            pool_authority: Optional; must match the one derived from nonce
        """
        pool_key = to_pubkey(pool_address, "pool")
        authority = self._authority(pool_key, nonce, pool_authority)

        fee_values = (fees,) if isinstance(fees, int) and not isinstance(fees, bool) else tuple(fees)
        if len(fee_values) != variant.fee_count:
            raise FieldOverflow("fees", fee_values, variant.value, reason=f"must hold {variant.fee_count} values for")
        for i, fee in enumerate(fee_values, start=1):
            _require_int(f"fee_{i}", fee)
        for name, value in (("amount_a", amount_a), ("amount_b", amount_b), ("tolerance", tolerance)):
            _require_int(name, value)

        payload = {"nonce": nonce, "amount_a": amount_a, "amount_b": amount_b, "tolerance": tolerance}
        if variant is LayoutVariant.SINGLE_FEE:
            payload["fee"] = fee_values[0]
        else:
            payload.update({f"fee_{i}": fee for i, fee in enumerate(fee_values, start=1)})
        data = initialize_layout(variant).encode(**payload)

        accounts = [
            _w("pool", pool_key),
            _s("owner", owner),
            _ro("mint_a", mint_a),
            _ro("mint_b", mint_b),
            _w("vault_a", vault_a),
            _w("vault_b", vault_b),
            _ro("fee_vault", fee_vault),
            AccountRef("pool_authority", authority),
            _w("owner_token_a", owner_token_a),
            _w("owner_token_b", owner_token_b),
            self._token_program(),
        ]
        if variant is LayoutVariant.FIVE_TIER:
            if fee_mint is None or len(fee_receivers) != FEE_TIERS:
                raise FieldOverflow(
                    "fee_receivers", len(fee_receivers), variant.value,
                    reason="needs a fee mint and five receivers for",
                )
            accounts.append(_ro("fee_mint", fee_mint))
            accounts.extend(_ro(f"fee_receiver_{i}", r) for i, r in enumerate(fee_receivers, start=1))

        return self._make("initialize", data, accounts)

    def build_update_pool(self, pool_address: AddressLike, owner: AddressLike) -> AmmInstruction:
        return self._make(
            "update_pool",
            UPDATE_POOL.encode(),
            [_w("pool", pool_address), _s("owner", owner)],
        )

    def build_update_status(self, pool_address: AddressLike, owner: AddressLike, status: int) -> AmmInstruction:
        _require_int("status", status)
        return self._make(
            "update_status",
            UPDATE_STATUS.encode(status=int(status)),
            [_w("pool", pool_address), _s("owner", owner)],
        )

    def build_update_tolerance(self, pool_address: AddressLike, owner: AddressLike, tolerance: int) -> AmmInstruction:
        _require_int("tolerance", tolerance)
        return self._make(
            "update_tolerance",
            UPDATE_TOLERANCE.encode(tolerance=tolerance),
            [_w("pool", pool_address), _s("owner", owner)],
        )

    def build_terminate(
        self,
        pool: Pool,
        owner: AddressLike,
        owner_token_a: AddressLike,
        owner_token_b: AddressLike,
        pool_address: Optional[AddressLike] = None,
        pool_authority: Optional[AddressLike] = None,
    ) -> AmmInstruction:
        """
        Drain both vaults and the fee vault back to the owner.

        Single-fee pools reuse discriminant 1 here; the 9-account list is
        what tells the program this is Terminate and not UpdatePool.
        """
        pool_key = self._pool_key(pool, pool_address)
        authority = self._authority(pool_key, pool.nonce, pool_authority)
        return self._make(
            "terminate",
            terminate_layout(pool.variant).encode(),
            [
                _w("pool", pool_key),
                _s("owner", owner),
                _w("vault_a", pool.vault_a),
                _w("vault_b", pool.vault_b),
                _w("fee_vault", pool.fee_vault),
                AccountRef("pool_authority", authority),
                _w("owner_token_a", owner_token_a),
                _w("owner_token_b", owner_token_b),
                self._token_program(),
            ],
        )

    # ─── trading ──────────────────────────────────────────────────────────────

    def build_swap(
        self,
        pool: Pool,
        user: AddressLike,
        user_token_a: AddressLike,
        user_token_b: AddressLike,
        amount: int,
        direction: Union[SwapDirection, int],
        pool_address: Optional[AddressLike] = None,
        pool_authority: Optional[AddressLike] = None,
    ) -> AmmInstruction:
        """
        Swap against one pool. `amount` is the side-A amount in both
        directions (A in for A->B, A out for B->A).

        Account order is fixed at nine entries:
        pool, vault_a, vault_b, fee_vault, pool_authority, user,
        user_token_a, user_token_b, token_program.
        """
        _require_int("amount", amount)
        if amount <= 0:
            raise InvalidAmount("amount", amount)
        direction = coerce_direction(direction)

        pool_key = self._pool_key(pool, pool_address)
        authority = self._authority(pool_key, pool.nonce, pool_authority)
        return self._make(
            "swap",
            SWAP.encode(amount=amount, direction=int(direction)),
            [
                _w("pool", pool_key),
                _w("vault_a", pool.vault_a),
                _w("vault_b", pool.vault_b),
                _w("fee_vault", pool.fee_vault),
                AccountRef("pool_authority", authority),
                _s("user", user),
                _w("user_token_a", user_token_a),
                _w("user_token_b", user_token_b),
                self._token_program(),
            ],
        )

    def build_withdraw_fee(
        self,
        pool: Pool,
        owner: AddressLike,
        fee_receiver: Optional[AddressLike] = None,
        pool_address: Optional[AddressLike] = None,
        pool_authority: Optional[AddressLike] = None,
    ) -> AmmInstruction:
        """
        Sweep the fee vault. Single-fee pools pay `fee_receiver` (a token-B
        account); five-tier pools pay their five stored receivers in order.
        """
        pool_key = self._pool_key(pool, pool_address)
        authority = self._authority(pool_key, pool.nonce, pool_authority)

        if pool.variant is LayoutVariant.FIVE_TIER:
            receivers = [_w(f"fee_receiver_{i}", r) for i, r in enumerate(pool.fee_receivers, start=1)]
            if len(receivers) != FEE_TIERS:
                raise FieldOverflow("fee_receivers", len(receivers), pool.variant.value, reason="needs five for")
        else:
            if fee_receiver is None:
                raise InvalidAddress(None, reason="fee_receiver is required for a single-fee pool")
            receivers = [_w("fee_receiver", fee_receiver)]

        return self._make(
            "withdraw_fee",
            WITHDRAW_FEE.encode(),
            [_w("pool", pool_key), _s("owner", owner), _w("fee_vault", pool.fee_vault)]
            + receivers
            + [AccountRef("pool_authority", authority), self._token_program()],
        )

    # ─── checks ───────────────────────────────────────────────────────────────

    def validate_instructions(self, instructions: Sequence[AmmInstruction]) -> Tuple[bool, List[str]]:
        """
        Validate an instruction list for common errors.

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        errors = []

        if not instructions:
            errors.append("No instructions in transaction")
            return False, errors

        if len(instructions) > MAX_INSTRUCTIONS:
            errors.append(f"Too many instructions: {len(instructions)} (max {MAX_INSTRUCTIONS})")

        for i, ix in enumerate(instructions):
            if not ix.data and ix.program_id == self.program_id:
                errors.append(f"Instruction {i} ({ix.name}) has no payload")
            if not ix.accounts:
                errors.append(f"Instruction {i} ({ix.name}) has no accounts")

        if not any(ix.signers for ix in instructions):
            errors.append("No instruction requires a signer")

        return len(errors) == 0, errors
