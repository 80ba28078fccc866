"""
Transaction Orchestrator
========================
Ordered instruction list -> one signed, submitted transaction.

Handles the messy real-world interaction through three collaborators:

- signer:    wallet that pays fees and signs (pubkey + sign_message)
- ledger:    recent blockhash source
- submitter: sends the signed transaction and (optionally) confirms it

Instructions are never reordered and nothing is retried. Any collaborator
failure comes back as UPSTREAM_UNAVAILABLE; a ledger rejection that names
an instruction index is mapped back to that instruction's name.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from ammkit.errors import AmmError, ErrorCode, MissingSigner, TransactionRejected, UpstreamUnavailable
from ammkit.execution.instruction_factory import AmmInstruction
from ammkit.shared.config.network import NetworkConfig
from ammkit.shared.execution.execution_result import OperationResult
from ammkit.shared.system.logging import Logger


# ═══════════════════════════════════════════════════════════════════════════════
# COLLABORATOR PROTOCOLS
# ═══════════════════════════════════════════════════════════════════════════════

class WalletSigner(Protocol):
    def pubkey(self) -> Pubkey: ...

    async def sign_message(self, message: MessageV0) -> Signature: ...


class Ledger(Protocol):
    async def get_latest_blockhash(self) -> Hash: ...


class Submitter(Protocol):
    async def send_transaction(self, tx: VersionedTransaction) -> str: ...

    async def confirm_transaction(self, signature: str) -> None: ...


class KeypairSigner:
    """WalletSigner backed by a local solders Keypair."""

    def __init__(self, keypair: Keypair):
        self.keypair = keypair

    def pubkey(self) -> Pubkey:
        return self.keypair.pubkey()

    async def sign_message(self, message: MessageV0) -> Signature:
        return self.keypair.sign_message(to_bytes_versioned(message))


# ═══════════════════════════════════════════════════════════════════════════════
# RESULT
# ═══════════════════════════════════════════════════════════════════════════════

class SubmissionStatus(Enum):
    """Status of a submitted transaction."""
    REJECTED = "REJECTED"      # never left the process
    SUBMITTED = "SUBMITTED"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"


@dataclass
class SubmissionResult:
    """Result of one submission attempt."""

    status: SubmissionStatus = SubmissionStatus.REJECTED
    signature: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    error_message: Optional[str] = None
    failed_instruction: Optional[str] = None
    instruction_names: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    latency_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.status in (SubmissionStatus.SUBMITTED, SubmissionStatus.CONFIRMED)

    def to_operation_result(self, operation: str, data: Any = None) -> OperationResult:
        details = dict(self.details)
        if self.failed_instruction:
            details["failed_instruction"] = self.failed_instruction
        return OperationResult(
            success=self.success,
            operation=operation,
            data=data,
            signature=self.signature,
            error_code=self.error_code,
            error_message=self.error_message,
            details=details,
        )


InstructionItem = Union[AmmInstruction, Instruction, OperationResult]

_INDEX_PATTERN = re.compile(r"InstructionError\D*?(\d+)")


def instruction_index_of(error: Any) -> Optional[int]:
    """Pull the failing instruction index out of a ledger error, if any."""
    index = getattr(error, "instruction_index", None)
    if isinstance(index, int):
        return index
    match = _INDEX_PATTERN.search(str(error))
    return int(match.group(1)) if match else None


# ═══════════════════════════════════════════════════════════════════════════════
# ORCHESTRATOR
# ═══════════════════════════════════════════════════════════════════════════════

class TransactionOrchestrator:
    """
    Assembles, signs and submits one transaction per call.

    Usage:
        orchestrator = TransactionOrchestrator(KeypairSigner(kp), ledger, submitter)
        result = await orchestrator.submit([ix_1, ix_2], extra_signers=[vault_kp])
    """

    def __init__(
        self,
        signer: WalletSigner,
        ledger: Ledger,
        submitter: Submitter,
        config: Optional[NetworkConfig] = None,
    ):
        self.signer = signer
        self.ledger = ledger
        self.submitter = submitter
        self.config = config or NetworkConfig()

    @property
    def payer(self) -> Pubkey:
        return self.signer.pubkey()

    async def submit(
        self,
        instructions: Sequence[InstructionItem],
        extra_signers: Sequence[Keypair] = (),
        confirm: bool = True,
    ) -> SubmissionResult:
        """
        Submit instructions as one transaction, in the given order.

        Args:
            instructions: Built instructions; a failed build outcome
                (OperationResult) aborts before anything is signed
            extra_signers: Keypairs for freshly created accounts
            confirm: Wait for the submitter to confirm the signature

        Returns:
            SubmissionResult with status and details
        """
        start_time = time.time()

        def _elapsed() -> float:
            return (time.time() - start_time) * 1000

        if not instructions:
            return self._reject(TransactionRejected("no instructions to submit"), latency_ms=_elapsed())

        for item in instructions:
            if isinstance(item, OperationResult) and not item.success:
                Logger.warning(f"[TX] Build of {item.operation} failed: {item.error_message}")
                return SubmissionResult(
                    status=SubmissionStatus.REJECTED,
                    error_code=item.error_code,
                    error_message=item.error_message,
                    failed_instruction=item.operation,
                    details=dict(item.details),
                    latency_ms=_elapsed(),
                )

        names = [self._name_of(i, item) for i, item in enumerate(instructions)]
        try:
            raw = [self._unwrap(item) for item in instructions]
        except TypeError as e:
            return self._reject(TransactionRejected(str(e)), names, latency_ms=_elapsed())

        # Step 1: Blockhash
        try:
            blockhash = await self.ledger.get_latest_blockhash()
        except AmmError as e:
            return self._reject(e, names, status=SubmissionStatus.FAILED, latency_ms=_elapsed())
        except Exception as e:
            return self._reject(
                UpstreamUnavailable("get_latest_blockhash", str(e)), names,
                status=SubmissionStatus.FAILED, latency_ms=_elapsed(),
            )

        # Step 2: Compile + sign
        try:
            message = MessageV0.try_compile(
                payer=self.payer,
                instructions=raw,
                address_lookup_table_accounts=[],
                recent_blockhash=blockhash,
            )
            tx = await self._sign(message, extra_signers)
        except AmmError as e:
            return self._reject(e, names, latency_ms=_elapsed())
        except Exception as e:
            return self._reject(UpstreamUnavailable("sign_transaction", str(e)), names, latency_ms=_elapsed())

        Logger.debug(f"[TX] Built: {len(raw)} ixs ({', '.join(names)})")

        # Step 3: Submit
        try:
            signature = await self.submitter.send_transaction(tx)
        except Exception as e:
            return self._submission_failure("send_transaction", e, names, None, _elapsed())

        Logger.info(f"[TX] Submitted {signature}")
        if not confirm:
            return SubmissionResult(
                status=SubmissionStatus.SUBMITTED,
                signature=str(signature),
                instruction_names=names,
                latency_ms=_elapsed(),
            )

        # Step 4: Confirm
        try:
            await self.submitter.confirm_transaction(signature)
        except Exception as e:
            return self._submission_failure("confirm_transaction", e, names, str(signature), _elapsed())

        Logger.success(f"[TX] Confirmed {signature}")
        return SubmissionResult(
            status=SubmissionStatus.CONFIRMED,
            signature=str(signature),
            instruction_names=names,
            latency_ms=_elapsed(),
        )

    # ─── helpers ──────────────────────────────────────────────────────────────

    @staticmethod
    def _name_of(index: int, item: InstructionItem) -> str:
        if isinstance(item, AmmInstruction):
            return item.name
        if isinstance(item, OperationResult):
            return item.operation or f"instruction_{index}"
        return f"instruction_{index}"

    @staticmethod
    def _unwrap(item: InstructionItem) -> Instruction:
        if isinstance(item, AmmInstruction):
            return item.to_instruction()
        if isinstance(item, OperationResult):
            return TransactionOrchestrator._unwrap(item.data)
        if isinstance(item, Instruction):
            return item
        raise TypeError(f"Cannot submit {type(item).__name__} as an instruction")

    async def _sign(self, message: MessageV0, extra_signers: Sequence[Keypair]) -> VersionedTransaction:
        """Wallet signs as fee payer; extra keypairs fill the remaining slots."""
        signatures = {self.payer: await self.signer.sign_message(message)}
        payload = to_bytes_versioned(message)
        for keypair in extra_signers:
            signatures[keypair.pubkey()] = keypair.sign_message(payload)

        required = list(message.account_keys)[: message.header.num_required_signatures]
        ordered = []
        for key in required:
            if key not in signatures:
                raise MissingSigner(str(key))
            ordered.append(signatures[key])
        return VersionedTransaction.populate(message, ordered)

    def _submission_failure(
        self,
        operation: str,
        error: Exception,
        names: List[str],
        signature: Optional[str],
        latency_ms: float,
    ) -> SubmissionResult:
        if isinstance(error, AmmError):
            amm_error = error
        else:
            index = instruction_index_of(error)
            if index is not None:
                amm_error = TransactionRejected(str(error), instruction_index=index)
            else:
                amm_error = UpstreamUnavailable(operation, str(error))

        result = self._reject(amm_error, names, status=SubmissionStatus.FAILED, latency_ms=latency_ms)
        result.signature = signature
        return result

    def _reject(
        self,
        error: AmmError,
        names: Sequence[str] = (),
        status: SubmissionStatus = SubmissionStatus.REJECTED,
        latency_ms: float = 0.0,
    ) -> SubmissionResult:
        failed = None
        index = getattr(error, "instruction_index", None)
        if isinstance(index, int) and 0 <= index < len(names):
            failed = names[index]

        Logger.error(f"[TX] {error.code.value}: {error.message}" + (f" (at {failed})" if failed else ""))
        return SubmissionResult(
            status=status,
            error_code=error.code,
            error_message=error.message,
            failed_instruction=failed,
            instruction_names=list(names),
            details=dict(error.details),
            latency_ms=latency_ms,
        )
