# backend/marketplace/ledger.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
"""
Ledger collaborator: the queries the orchestrator needs, the transaction
description it hands over (``TxPlan``), and a pycardano/Blockfrost backend that
balances, signs and submits that description.

The orchestrator decides *what* a transaction must contain; the ledger decides
fee, change, collateral and min-ADA. Nothing here caches UTXO sets.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol, Union

from pycardano import (
    Address,
    BlockFrostChainContext,
    MultiAsset,
    Network,
    PaymentSigningKey,
    PaymentExtendedSigningKey,
    PlutusData,
    PlutusV3Script,
    Redeemer,
    TransactionBuilder,
    TransactionOutput,
    UTxO,
    Value,
    VerificationKeyHash,
    min_lovelace,
)
from pycardano.exception import TransactionFailedException, UTxOSelectionException

from .assets import AssetId
from .errors import (
    InputAlreadySpent,
    InsufficientFunds,
    LedgerRejection,
    MissingReferenceInput,
    ScriptExecutionFailed,
)

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Transaction description
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScriptSpend:
    """A script-locked UTXO to consume, with the validator and redeemer."""

    utxo: UTxO
    script: PlutusV3Script
    redeemer: PlutusData


@dataclass(frozen=True)
class MintAction:
    """Mint (positive) or burn (negative) ``assets`` under ``script``."""

    script: PlutusV3Script
    redeemer: PlutusData
    assets: MultiAsset


@dataclass
class TxPlan:
    """
    Everything an action requires of its transaction.

    Output amounts are the protocol amounts; a backend may add lovelace to
    meet the ledger's minimum-UTXO rule but never removes any. Wallet inputs
    are the inputs that *must* be consumed; balancing may add more.
    """

    action: str
    wallet_inputs: list[UTxO] = field(default_factory=list)
    script_inputs: list[ScriptSpend] = field(default_factory=list)
    reference_inputs: list[UTxO] = field(default_factory=list)
    outputs: list[TransactionOutput] = field(default_factory=list)
    mint: Optional[MintAction] = None
    required_signers: list[VerificationKeyHash] = field(default_factory=list)

    def summary(self) -> dict:
        def ref(u: UTxO) -> str:
            return f"{u.input.transaction_id.payload.hex()}#{u.input.index}"

        return {
            "action": self.action,
            "wallet_inputs": [ref(u) for u in self.wallet_inputs],
            "script_inputs": [ref(s.utxo) for s in self.script_inputs],
            "reference_inputs": [ref(u) for u in self.reference_inputs],
            "outputs": len(self.outputs),
            "mint": bool(self.mint),
            "signers": [str(s) for s in self.required_signers],
        }


class Ledger(Protocol):
    """Queries and submission the orchestrator relies on."""

    @property
    def network(self) -> Network: ...

    def utxos_at(self, address: Address) -> list[UTxO]: ...

    def utxos_with_unit(self, address: Address, unit: str) -> list[UTxO]: ...

    def wallet_address(self) -> Address: ...

    def wallet_utxos(self) -> list[UTxO]: ...

    def submit(self, plan: TxPlan) -> str: ...


# ---------------------------------------------------------------------------
# pycardano + Blockfrost backend
# ---------------------------------------------------------------------------


def classify_rejection(message: str) -> LedgerRejection:
    """
    Map a node/evaluator error message onto the rejection taxonomy.

    Text alone cannot always tell a spent input from a vanished reference
    input; ``ChainLedger.submit`` refines the answer with
    :func:`locate_missing_input` when the chain can be asked.
    """
    text = message.lower()
    if "already spent" in text or "already been spent" in text:
        return InputAlreadySpent(message)
    if "reference input" in text:
        return MissingReferenceInput(message)
    if "badinputsutxo" in text or "bad inputs" in text or "unknown utxo" in text:
        return InputAlreadySpent(message)
    return ScriptExecutionFailed(message)


def _is_live(ledger: Ledger, utxo: UTxO) -> bool:
    key = (utxo.input.transaction_id.payload, utxo.input.index)
    return any(
        (u.input.transaction_id.payload, u.input.index) == key
        for u in ledger.utxos_at(utxo.output.address)
    )


def locate_missing_input(ledger: Ledger, plan: TxPlan, message: str) -> Optional[LedgerRejection]:
    """
    Ask the chain which of ``plan``'s inputs are gone.

    A consumed input (wallet or script) that is no longer live means another
    transaction won the race; only a vanished reference input means the
    config moved. Returns None when every input is still live.
    """
    consumed = list(plan.wallet_inputs) + [s.utxo for s in plan.script_inputs]
    if any(not _is_live(ledger, u) for u in consumed):
        return InputAlreadySpent(message)
    if any(not _is_live(ledger, u) for u in plan.reference_inputs):
        return MissingReferenceInput(message)
    return None


class ChainLedger:
    """
    ``Ledger`` over a pycardano ``ChainContext`` (Blockfrost in production)
    for a single signing wallet.
    """

    def __init__(
        self,
        context: BlockFrostChainContext,
        signing_key: Union[PaymentSigningKey, PaymentExtendedSigningKey],
        address: Address,
    ):
        self.context = context
        self.signing_key = signing_key
        self.address = address

    @property
    def network(self) -> Network:
        return self.context.network

    def utxos_at(self, address: Address) -> list[UTxO]:
        return list(self.context.utxos(address))

    def utxos_with_unit(self, address: Address, unit: str) -> list[UTxO]:
        asset = AssetId.from_unit(unit)
        return [u for u in self.utxos_at(address) if asset.quantity_in(u.output.amount) > 0]

    def wallet_address(self) -> Address:
        return self.address

    def wallet_utxos(self) -> list[UTxO]:
        return self.utxos_at(self.address)

    def _with_min_ada(self, out: TransactionOutput) -> TransactionOutput:
        amount = out.amount if isinstance(out.amount, Value) else Value(int(out.amount))
        required = min_lovelace(self.context, output=out)
        if out.datum is not None:
            # Indefinite-length list encoding can undercount by a byte.
            required += self.context.protocol_param.coins_per_utxo_byte
        if amount.coin >= required:
            return out
        return TransactionOutput(
            out.address,
            Value(coin=required, multi_asset=amount.multi_asset),
            datum=out.datum,
            script=out.script,
        )

    def submit(self, plan: TxPlan) -> str:
        builder = TransactionBuilder(self.context)
        for u in plan.wallet_inputs:
            builder.add_input(u)
        for spend in plan.script_inputs:
            builder.add_script_input(
                spend.utxo, script=spend.script, redeemer=Redeemer(spend.redeemer)
            )
        for u in plan.reference_inputs:
            builder.reference_inputs.add(u)
        if plan.mint is not None:
            builder.mint = plan.mint.assets
            builder.add_minting_script(plan.mint.script, redeemer=Redeemer(plan.mint.redeemer))
        for out in plan.outputs:
            builder.add_output(self._with_min_ada(out))
        if plan.required_signers:
            builder.required_signers = list(plan.required_signers)
        builder.add_input_address(self.address)

        try:
            tx = builder.build_and_sign([self.signing_key], change_address=self.address)
            self.context.submit_tx(tx)
        except UTxOSelectionException as e:
            raise InsufficientFunds(f"{plan.action}: wallet cannot cover the transaction: {e}") from e
        except TransactionFailedException as e:
            message = f"{plan.action}: {e}"
            rejection = classify_rejection(message)
            if isinstance(rejection, (InputAlreadySpent, MissingReferenceInput)):
                rejection = locate_missing_input(self, plan, message) or rejection
            raise rejection from e

        tx_id = tx.id.payload.hex()
        log.info("Submitted %s tx %s", plan.action, tx_id)
        return tx_id


def wait_for_confirmation(
    ledger: Ledger, tx_id: str, timeout: float = 180.0, interval: float = 5.0
) -> None:
    """
    Block until an output of ``tx_id`` shows up in the wallet.

    Every action pays change (or the bought NFT) back to the wallet, so this is
    enough to know the next action can reference the new outputs.

    Raises:
        TimeoutError: not observed within ``timeout`` seconds.
    """
    deadline = time.monotonic() + timeout
    while True:
        if any(u.input.transaction_id.payload.hex() == tx_id for u in ledger.wallet_utxos()):
            log.info("Confirmed tx %s", tx_id)
            return
        if time.monotonic() >= deadline:
            raise TimeoutError(f"Transaction {tx_id} not confirmed after {timeout:.0f}s")
        time.sleep(interval)
