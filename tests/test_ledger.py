"""
Tests for ledger helpers (backend/marketplace/ledger.py)

Tests cover:
- Mapping node and evaluator error text onto rejection classes
- Telling a spent input from a vanished reference input by asking the chain
- Waiting for confirmation
"""

import pytest

from conftest import ADA
from marketplace.assets import AssetId
from marketplace.errors import InputAlreadySpent, MissingReferenceInput, ScriptExecutionFailed
from marketplace.ledger import classify_rejection, locate_missing_input, wait_for_confirmation

EVALUATOR_SPENT = (
    "buy: The transaction contains unknown UTxO references as inputs. This can happen "
    "if the inputs you're trying to spend have already been spent"
)


# ============================================================
# classify_rejection
# ============================================================

class TestClassifyRejection:
    """Node error text maps onto the rejection classes."""

    def test_spent_input(self):
        assert isinstance(classify_rejection("ConwayUtxowFailure (BadInputsUTxO ...)"), InputAlreadySpent)

    def test_evaluator_spent_input_wording(self):
        """Should not mistake 'UTxO references as inputs' for a reference input."""
        assert isinstance(classify_rejection(EVALUATOR_SPENT), InputAlreadySpent)

    def test_unknown_utxo_is_spent_input(self):
        assert isinstance(classify_rejection("buy: unknown UTxO 'abc#0'"), InputAlreadySpent)

    def test_missing_reference(self):
        assert isinstance(
            classify_rejection("BadInputsUTxO on reference input abc#0"), MissingReferenceInput
        )

    def test_everything_else_is_script_failure(self):
        assert isinstance(classify_rejection("PlutusFailure: validator crashed"), ScriptExecutionFailed)


# ============================================================
# locate_missing_input
# ============================================================

class TestLocateMissingInput:
    """The chain, not the message, decides which input went missing."""

    def test_losing_buyer_sees_spent_input(self, actors, orch_for):
        orch_for(actors.seller).list_nft(actors.nft, AssetId.native(), 10 * ADA)
        first = orch_for(actors.buyer)
        second = orch_for(actors.buyer2)
        winning = first.plan_buy(actors.nft)
        losing = second.plan_buy(actors.nft)
        first.ledger.submit(winning)

        err = locate_missing_input(second.ledger, losing, EVALUATOR_SPENT)

        assert isinstance(err, InputAlreadySpent)
        assert str(err) == EVALUATOR_SPENT

    def test_moved_config_is_missing_reference(self, actors, orch_for):
        orch_for(actors.seller).list_nft(actors.nft, AssetId.native(), 10 * ADA)
        buyer = orch_for(actors.buyer)
        plan = buyer.plan_buy(actors.nft)
        owner = orch_for(actors.owner)
        owner.update_config(owner.config().config)

        err = locate_missing_input(buyer.ledger, plan, EVALUATOR_SPENT)

        assert isinstance(err, MissingReferenceInput)

    def test_all_inputs_live(self, actors, orch_for):
        orch_for(actors.seller).list_nft(actors.nft, AssetId.native(), 10 * ADA)
        buyer = orch_for(actors.buyer)

        assert locate_missing_input(buyer.ledger, buyer.plan_buy(actors.nft), "buy: ?") is None


# ============================================================
# wait_for_confirmation
# ============================================================

class TestWaitForConfirmation:
    def test_sees_change_output(self, chain, actors, orch_for):
        seller = orch_for(actors.seller)
        tx_id = seller.list_nft(actors.nft, AssetId.native(), 10 * ADA)

        wait_for_confirmation(seller.ledger, tx_id, timeout=0, interval=0)

    def test_times_out(self, actors, orch_for):
        with pytest.raises(TimeoutError):
            wait_for_confirmation(orch_for(actors.seller).ledger, "00" * 32, timeout=0, interval=0)
