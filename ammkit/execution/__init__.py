"""
Execution Pipeline
==================
Instruction building and transaction submission.

Components:
- InstructionFactory: Pure instruction building
- TransactionOrchestrator: Ordered signing and submission
"""

from ammkit.execution.instruction_factory import (
    AccountRef,
    AmmInstruction,
    InstructionFactory,
    PoolAccountsPlan,
)

from ammkit.execution.transaction_orchestrator import (
    KeypairSigner,
    SubmissionResult,
    SubmissionStatus,
    TransactionOrchestrator,
)


__all__ = [
    # Factory
    "AccountRef",
    "AmmInstruction",
    "InstructionFactory",
    "PoolAccountsPlan",
    # Orchestrator
    "KeypairSigner",
    "SubmissionResult",
    "SubmissionStatus",
    "TransactionOrchestrator",
]
