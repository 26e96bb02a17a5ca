"""
End-to-end lifecycle tests for MarketplaceOrchestrator on the ledger emulator.

Tests cover:
- Initialize token placement (with and without a config)
- Publish, List, Edit, Delist, Buy and their preconditions
- Balance deltas after Buy
- UpdateConfig and Shutdown
- Two buyers racing for one listing
"""

import pytest

from conftest import ADA, TX_FEE
from marketplace.assets import AssetId, total_of
from marketplace.errors import (
    AlreadyInitialized,
    ConfigAlreadyPublished,
    ConfigMissing,
    InputAlreadySpent,
    InvalidPrice,
    ListingNotFound,
    NftNotInWallet,
    NoFeeRuleForAsset,
    NotInitialized,
    OwnershipTokenMissing,
    SignerMismatch,
)
from marketplace.model import FeeRule, MarketplaceConfig
from marketplace.orchestrator import MarketplaceOrchestrator, MarketplaceStatus


# ============================================================
# Initialize
# ============================================================

class TestInitialize:
    """Tests for instance creation."""

    def test_tokens_after_initialize_with_config(self, chain, actors, orch_for):
        owner = orch_for(actors.owner)
        scripts = owner.scripts

        assert chain.balance(actors.owner, scripts.ownership_asset) == 1
        assert chain.balance(scripts.config_address, scripts.config_asset) == 1
        assert chain.balance(actors.owner, scripts.config_asset) == 0
        assert owner.status() is MarketplaceStatus.ACTIVE

    def test_config_utxo_carries_reference_script(self, actors, orch_for):
        owner = orch_for(actors.owner)
        state = owner.config()

        assert state.utxo.output.script == owner.scripts.marketplace_validator

    def test_seed_is_lowest_wallet_utxo(self, chain, actors, scripts_factory):
        ledger = chain.ledger(actors.buyer)
        lowest = min(ledger.wallet_utxos(), key=lambda u: (u.input.transaction_id.payload, u.input.index))
        orch = MarketplaceOrchestrator(ledger, None, scripts_factory)

        scripts, plan = orch.plan_initialize("seeded")

        assert plan.wallet_inputs == [lowest]
        assert scripts.instance.tx_hash == lowest.input.transaction_id.payload.hex()
        assert orch.instance_id is None

    def test_initialize_without_config_then_publish(self, chain, actors, scripts_factory, fee_config):
        owner = MarketplaceOrchestrator(chain.ledger(actors.buyer), None, scripts_factory)
        owner.initialize("later")
        scripts = owner.scripts

        assert chain.balance(actors.buyer, scripts.config_asset) == 1
        assert owner.status() is MarketplaceStatus.SHUT_DOWN
        with pytest.raises(ConfigMissing):
            owner.config()

        owner.publish_config(fee_config)

        assert chain.balance(scripts.config_address, scripts.config_asset) == 1
        assert owner.status() is MarketplaceStatus.ACTIVE
        with pytest.raises(ConfigAlreadyPublished):
            owner.publish_config(fee_config)

    def test_cannot_initialize_twice(self, actors, orch_for):
        with pytest.raises(AlreadyInitialized):
            orch_for(actors.owner).initialize("again")

    def test_unbound_orchestrator(self, chain, actors, scripts_factory):
        orch = MarketplaceOrchestrator(chain.ledger(actors.owner), None, scripts_factory)

        assert orch.status() is MarketplaceStatus.UNINITIALIZED
        with pytest.raises(NotInitialized):
            orch.listings()

    def test_instances_are_independent(self, chain, actors, scripts_factory, orch_for):
        other = MarketplaceOrchestrator(chain.ledger(actors.buyer2), None, scripts_factory)
        other.initialize("market")

        assert other.scripts.control_policy_id != orch_for(actors.owner).scripts.control_policy_id


# ============================================================
# Listings
# ============================================================

class TestListing:
    """Tests for List, Edit and Delist."""

    def test_list_moves_nft_to_marketplace(self, chain, actors, orch_for):
        seller = orch_for(actors.seller)
        seller.list_nft(actors.nft, AssetId.native(), 10 * ADA)

        assert chain.balance(actors.seller, actors.nft) == 0
        assert chain.balance(seller.scripts.marketplace_address, actors.nft) == 1
        listing = seller.listing(actors.nft)
        assert listing.price_amount == 10 * ADA
        assert listing.price_asset.is_native
        assert len(seller.listings()) == 1

    def test_list_requires_nft_in_wallet(self, actors, orch_for):
        with pytest.raises(NftNotInWallet):
            orch_for(actors.buyer).list_nft(actors.nft, AssetId.native(), 10 * ADA)

    def test_list_rejects_negative_price(self, actors, orch_for):
        with pytest.raises(InvalidPrice):
            orch_for(actors.seller).list_nft(actors.nft, AssetId.native(), -1)

    def test_zero_price_is_allowed(self, actors, orch_for):
        seller = orch_for(actors.seller)
        seller.list_nft(actors.nft, AssetId.native(), 0)

        assert seller.listing(actors.nft).price_amount == 0

    def test_edit_changes_price_only(self, chain, actors, orch_for):
        seller = orch_for(actors.seller)
        seller.list_nft(actors.nft, AssetId.native(), 10 * ADA)
        before = seller.listing(actors.nft)

        seller.edit(actors.nft, 12 * ADA)

        after = seller.listing(actors.nft)
        assert after.price_amount == 12 * ADA
        assert after.seller_onchain == before.seller_onchain
        assert after.nft == before.nft
        assert after.out_ref != before.out_ref

    def test_only_seller_can_edit_or_delist(self, actors, orch_for):
        orch_for(actors.seller).list_nft(actors.nft, AssetId.native(), 10 * ADA)
        buyer = orch_for(actors.buyer)

        with pytest.raises(SignerMismatch):
            buyer.edit(actors.nft, 1)
        with pytest.raises(SignerMismatch):
            buyer.delist(actors.nft)

    def test_delist_returns_nft(self, chain, actors, orch_for):
        seller = orch_for(actors.seller)
        seller.list_nft(actors.nft, AssetId.native(), 10 * ADA)
        seller.list_nft(actors.nft2, AssetId.native(), 20 * ADA)

        seller.delist(actors.nft)

        assert chain.balance(actors.seller, actors.nft) == 1
        assert [l.nft for l in seller.listings()] == [actors.nft2]
        with pytest.raises(ListingNotFound):
            seller.listing(actors.nft)


# ============================================================
# Buy
# ============================================================

class TestBuy:
    """Tests for Buy and its payment outputs."""

    def test_balance_deltas(self, chain, actors, orch_for):
        price = 10_000 * ADA
        orch_for(actors.seller).list_nft(actors.nft, AssetId.native(), price)
        listing_ada = orch_for(actors.buyer).listing(actors.nft).utxo.output.amount.coin
        seller_before = chain.balance(actors.seller)
        fees_before = chain.balance(actors.fees)
        buyer_before = chain.balance(actors.buyer)

        orch_for(actors.buyer).buy(actors.nft)

        assert chain.balance(actors.seller) - seller_before == 9_500_000_000
        assert chain.balance(actors.fees) - fees_before == 500_000_000
        # The listing's min-ADA deposit comes back to the buyer as change.
        assert buyer_before - chain.balance(actors.buyer) == price + TX_FEE - listing_ada
        assert chain.balance(actors.buyer, actors.nft) == 1
        assert orch_for(actors.buyer).listings() == []

    def test_plan_outputs_for_token_price(self, actors, orch_for):
        orch_for(actors.seller).list_nft(actors.nft, actors.token, 10_000_000)

        plan = orch_for(actors.buyer).plan_buy(actors.nft)

        paid = {str(o.address): actors.token.quantity_in(o.amount) for o in plan.outputs}
        assert paid[str(actors.seller)] == 9_300_000
        assert paid[str(actors.fees)] == 700_000
        assert len(plan.reference_inputs) == 1
        assert plan.required_signers == [actors.buyer.payment_part]

    def test_buy_with_token_price(self, chain, actors, orch_for):
        orch_for(actors.seller).list_nft(actors.nft, actors.token, 100_000)

        orch_for(actors.buyer).buy(actors.nft)

        assert chain.balance(actors.seller, actors.token) == 93_000
        assert chain.balance(actors.fees, actors.token) == 7_000
        assert chain.balance(actors.buyer, actors.token) == 1_000_000 - 100_000

    def test_zero_fee_output_is_omitted(self, chain, actors, scripts_factory):
        owner = MarketplaceOrchestrator(chain.ledger(actors.buyer2), None, scripts_factory)
        owner.initialize("free", MarketplaceConfig.build(actors.fees, [FeeRule(AssetId.native(), 0)]))
        seller = MarketplaceOrchestrator(chain.ledger(actors.seller), owner.instance_id, scripts_factory)
        seller.list_nft(actors.nft, AssetId.native(), 10 * ADA)

        plan = MarketplaceOrchestrator(
            chain.ledger(actors.buyer), owner.instance_id, scripts_factory
        ).plan_buy(actors.nft)

        assert str(actors.fees) not in {str(o.address) for o in plan.outputs}

    def test_zero_price_buy_pays_nobody(self, actors, orch_for):
        orch_for(actors.seller).list_nft(actors.nft, AssetId.native(), 0)

        plan = orch_for(actors.buyer).plan_buy(actors.nft)

        assert [str(o.address) for o in plan.outputs] == [str(actors.buyer)]

    def test_no_fee_rule_for_price_asset(self, actors, orch_for):
        odd = AssetId(b"\x33" * 28, b"ODD")
        orch_for(actors.seller).list_nft(actors.nft, odd, 5)

        with pytest.raises(NoFeeRuleForAsset):
            orch_for(actors.buyer).buy(actors.nft)

    def test_two_buyers_race(self, chain, actors, orch_for):
        orch_for(actors.seller).list_nft(actors.nft, AssetId.native(), 10 * ADA)
        first = orch_for(actors.buyer)
        second = orch_for(actors.buyer2)
        plan_a = first.plan_buy(actors.nft)
        plan_b = second.plan_buy(actors.nft)

        first.ledger.submit(plan_a)
        with pytest.raises(InputAlreadySpent):
            second.ledger.submit(plan_b)

        assert chain.balance(actors.buyer, actors.nft) == 1
        assert chain.balance(actors.buyer2, actors.nft) == 0


# ============================================================
# Owner actions
# ============================================================

class TestOwnerActions:
    """Tests for UpdateConfig and Shutdown."""

    def test_update_config(self, chain, actors, orch_for):
        owner = orch_for(actors.owner)
        new = MarketplaceConfig.build(
            actors.buyer2,
            [FeeRule(AssetId.native(), 250), FeeRule(actors.token, 100)],
        )

        owner.update_config(new)

        state = owner.config()
        assert state.config.fee_rules == new.fee_rules
        assert str(state.config.fee_address) == str(actors.buyer2)
        assert chain.balance(owner.scripts.config_address, owner.scripts.config_asset) == 1
        assert chain.balance(actors.owner, owner.scripts.ownership_asset) == 1

    def test_update_config_requires_ownership(self, actors, orch_for, fee_config):
        with pytest.raises(OwnershipTokenMissing):
            orch_for(actors.buyer).update_config(fee_config)

    def test_new_fee_applies_to_existing_listing(self, chain, actors, orch_for):
        orch_for(actors.seller).list_nft(actors.nft, AssetId.native(), 100 * ADA)
        orch_for(actors.owner).update_config(
            MarketplaceConfig.build(actors.fees, [FeeRule(AssetId.native(), 1_000)])
        )
        fees_before = chain.balance(actors.fees)

        orch_for(actors.buyer).buy(actors.nft)

        assert chain.balance(actors.fees) - fees_before == 10 * ADA

    def test_shutdown(self, chain, actors, orch_for):
        orch_for(actors.seller).list_nft(actors.nft, AssetId.native(), 10 * ADA)
        owner = orch_for(actors.owner)
        scripts = owner.scripts

        owner.shutdown()

        assert owner.status() is MarketplaceStatus.SHUT_DOWN
        assert chain.balance(scripts.config_address, scripts.config_asset) == 0
        assert total_of(chain.utxos.values(), scripts.ownership_asset) == 0
        with pytest.raises(ConfigMissing):
            orch_for(actors.buyer).buy(actors.nft)
        with pytest.raises(ConfigMissing):
            orch_for(actors.seller).list_nft(actors.nft2, AssetId.native(), ADA)

        orch_for(actors.seller).delist(actors.nft)
        assert chain.balance(actors.seller, actors.nft) == 1

    def test_shutdown_requires_ownership(self, actors, orch_for):
        with pytest.raises(OwnershipTokenMissing):
            orch_for(actors.seller).shutdown()
