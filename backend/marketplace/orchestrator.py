# backend/marketplace/orchestrator.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
"""
Lifecycle orchestrator for one marketplace instance.

For each action the orchestrator re-reads the ledger, checks the action's
preconditions, and produces a ``TxPlan`` naming exactly which UTXOs are
consumed, which are only referenced, where value goes, what is minted or
burned, and who must sign. Balancing, signing and submission belong to the
ledger collaborator.

States are ``UNINITIALIZED -> ACTIVE -> SHUT_DOWN``. Shut-down is not
tracked locally; it is the absence of the config UTXO once an instance
exists, so ``status()`` always asks the ledger.

Each ``plan_*`` method is side-effect free. The matching action method
(``list_nft``, ``buy``, ...) submits the plan and returns the tx id; it does
not wait for confirmation.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Union

from pycardano import (
    Asset,
    AssetName,
    MultiAsset,
    TransactionOutput,
    UTxO,
    VerificationKeyHash,
)

from .address import decode_address, payment_key_hash
from .assets import AssetId, total_of
from .blueprint import BlueprintScripts
from .datums import (
    Burning,
    Buy,
    Delist,
    Edit,
    Initialize,
    ListingDatum,
    Shutdown,
    Updating,
)
from .errors import (
    AlreadyInitialized,
    ConfigAlreadyPublished,
    ConfigMissing,
    ConfigTokenMissing,
    NftNotInWallet,
    NoSpendableUtxo,
    NotInitialized,
    OwnershipTokenMissing,
    SignerMismatch,
)
from .fees import compute_split, fee_rule_for, validate_price
from .instance import (
    CONFIG_TOKEN_NAME,
    OWNERSHIP_TOKEN_NAME,
    InstanceId,
    MarketplaceScripts,
    ScriptFactory,
    derive_scripts,
)
from .ledger import Ledger, MintAction, ScriptSpend, TxPlan
from .model import ConfigState, Listing, MarketplaceConfig, listing_datum
from .resolvers import find_config, find_listing, list_listings

log = logging.getLogger(__name__)


class MarketplaceStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    SHUT_DOWN = "shut_down"


def _by_out_ref(utxo: UTxO) -> tuple[bytes, int]:
    return (utxo.input.transaction_id.payload, utxo.input.index)


class MarketplaceOrchestrator:
    """
    Drive the marketplace lifecycle through a ``Ledger``.

    Args:
        ledger: Query/submit collaborator bound to the acting wallet.
        instance_id: Existing instance (object or canonical text); omit
            before ``initialize``.
        factory: Source of parameter-applied validators. Defaults to the
            packaged blueprint.
    """

    def __init__(
        self,
        ledger: Ledger,
        instance_id: Union[InstanceId, str, None] = None,
        factory: Optional[ScriptFactory] = None,
    ):
        if factory is None:
            factory = BlueprintScripts()
        self.ledger = ledger
        self.factory = factory
        self._scripts: Optional[MarketplaceScripts] = None
        if instance_id is not None:
            if isinstance(instance_id, str):
                instance_id = InstanceId.parse(instance_id)
            self._scripts = derive_scripts(instance_id, factory, ledger.network)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def instance_id(self) -> Optional[InstanceId]:
        return self._scripts.instance if self._scripts else None

    @property
    def scripts(self) -> MarketplaceScripts:
        if self._scripts is None:
            raise NotInitialized("No marketplace instance; run initialize or pass an instance id")
        return self._scripts

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def config(self) -> ConfigState:
        return find_config(self.ledger, self.scripts)

    def listing(self, nft: AssetId) -> Listing:
        return find_listing(self.ledger, self.scripts.marketplace_address, nft)

    def listings(self) -> list[Listing]:
        return list_listings(self.ledger, self.scripts.marketplace_address)

    def status(self) -> MarketplaceStatus:
        if self._scripts is None:
            return MarketplaceStatus.UNINITIALIZED
        try:
            self.config()
        except ConfigMissing:
            return MarketplaceStatus.SHUT_DOWN
        return MarketplaceStatus.ACTIVE

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _wallet_key_hash(self) -> VerificationKeyHash:
        return payment_key_hash(decode_address(self.ledger.wallet_address()))

    def _require_seller(self, listing: Listing) -> VerificationKeyHash:
        seller = payment_key_hash(listing.seller_onchain)
        if seller != self._wallet_key_hash():
            raise SignerMismatch(
                f"Wallet is not the seller of {listing.nft.unit} (seller {listing.seller})"
            )
        return seller

    def _wallet_utxo_with(self, asset: AssetId, error: type[Exception], what: str) -> UTxO:
        for utxo in sorted(self.ledger.wallet_utxos(), key=_by_out_ref):
            if asset.quantity_in(utxo.output.amount) > 0:
                return utxo
        raise error(f"Wallet {self.ledger.wallet_address()} holds no {what} token")

    def _config_output(self, scripts: MarketplaceScripts, config: MarketplaceConfig) -> TransactionOutput:
        return TransactionOutput(
            scripts.config_address,
            scripts.config_asset.value(1),
            datum=config.to_datum(),
            script=scripts.marketplace_validator,
        )

    def _control_tokens(self, scripts: MarketplaceScripts, quantity: int) -> MultiAsset:
        return MultiAsset(
            {
                scripts.control_policy_id: Asset(
                    {
                        AssetName(CONFIG_TOKEN_NAME): quantity,
                        AssetName(OWNERSHIP_TOKEN_NAME): quantity,
                    }
                )
            }
        )

    def _submit(self, plan: TxPlan) -> str:
        log.debug("Plan %s", plan.summary())
        tx_id = self.ledger.submit(plan)
        log.info("%s submitted: %s", plan.action, tx_id)
        return tx_id

    # ------------------------------------------------------------------
    # Initialize / config publication
    # ------------------------------------------------------------------

    def plan_initialize(
        self, name: str, config: Optional[MarketplaceConfig] = None
    ) -> tuple[MarketplaceScripts, TxPlan]:
        """
        Mint the control tokens under a policy bound to a wallet UTXO.

        With ``config`` the Config token goes straight to the config address;
        without it the token stays in the wallet until ``publish_config``.
        """
        if self._scripts is not None:
            raise AlreadyInitialized(f"Already bound to instance {self._scripts.instance}")
        if config is not None:
            config.validate()
        wallet_utxos = sorted(self.ledger.wallet_utxos(), key=_by_out_ref)
        if not wallet_utxos:
            raise NoSpendableUtxo(f"Wallet {self.ledger.wallet_address()} has no UTXO to seed from")

        seed = wallet_utxos[0]
        scripts = derive_scripts(InstanceId.from_seed(seed, name), self.factory, self.ledger.network)
        wallet = self.ledger.wallet_address()

        outputs = [TransactionOutput(wallet, scripts.ownership_asset.value(1))]
        if config is not None:
            outputs.append(self._config_output(scripts, config))
        else:
            outputs.append(TransactionOutput(wallet, scripts.config_asset.value(1)))

        plan = TxPlan(
            action="initialize",
            wallet_inputs=[seed],
            outputs=outputs,
            mint=MintAction(scripts.control_policy, Initialize(), self._control_tokens(scripts, 1)),
        )
        return scripts, plan

    def initialize(self, name: str, config: Optional[MarketplaceConfig] = None) -> str:
        scripts, plan = self.plan_initialize(name, config)
        tx_id = self._submit(plan)
        # Bound only once the ledger accepted the seed spend.
        self._scripts = scripts
        log.info("Marketplace instance %s", scripts.instance)
        return tx_id

    def plan_publish_config(self, config: MarketplaceConfig) -> TxPlan:
        scripts = self.scripts
        config.validate()
        try:
            live = find_config(self.ledger, scripts)
        except ConfigMissing:
            live = None
        if live is not None:
            raise ConfigAlreadyPublished("Config UTXO already exists; use update_config")

        token_utxo = self._wallet_utxo_with(scripts.config_asset, ConfigTokenMissing, "MarketplaceConfig")
        return TxPlan(
            action="publish_config",
            wallet_inputs=[token_utxo],
            outputs=[self._config_output(scripts, config)],
        )

    def publish_config(self, config: MarketplaceConfig) -> str:
        return self._submit(self.plan_publish_config(config))

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def plan_list_nft(self, nft: AssetId, price_asset: AssetId, price_amount: int) -> TxPlan:
        scripts = self.scripts
        validate_price(price_amount)
        find_config(self.ledger, scripts)

        wallet_utxos = self.ledger.wallet_utxos()
        held = total_of(wallet_utxos, nft)
        if held != 1:
            raise NftNotInWallet(f"Wallet must hold exactly one {nft.unit}; holds {held}")
        nft_utxo = next(u for u in wallet_utxos if nft.quantity_in(u.output.amount) == 1)

        seller = decode_address(self.ledger.wallet_address())
        datum = listing_datum(seller, price_asset, price_amount, nft)
        return TxPlan(
            action="list",
            wallet_inputs=[nft_utxo],
            outputs=[TransactionOutput(scripts.marketplace_address, nft.value(1), datum=datum)],
        )

    def list_nft(self, nft: AssetId, price_asset: AssetId, price_amount: int) -> str:
        return self._submit(self.plan_list_nft(nft, price_asset, price_amount))

    def plan_edit(self, nft: AssetId, new_price: int) -> TxPlan:
        scripts = self.scripts
        validate_price(new_price)
        listing = self.listing(nft)
        signer = self._require_seller(listing)

        old = listing.datum
        datum = ListingDatum(
            old.seller, old.price_policy, old.price_name, new_price, old.nft_policy, old.nft_name
        )
        return TxPlan(
            action="edit",
            script_inputs=[ScriptSpend(listing.utxo, scripts.marketplace_validator, Edit(new_price))],
            outputs=[
                TransactionOutput(scripts.marketplace_address, listing.utxo.output.amount, datum=datum)
            ],
            required_signers=[signer],
        )

    def edit(self, nft: AssetId, new_price: int) -> str:
        return self._submit(self.plan_edit(nft, new_price))

    def plan_delist(self, nft: AssetId) -> TxPlan:
        """Return the listing to its seller. Needs no config, so it works after shutdown."""
        scripts = self.scripts
        listing = self.listing(nft)
        signer = self._require_seller(listing)
        return TxPlan(
            action="delist",
            script_inputs=[ScriptSpend(listing.utxo, scripts.marketplace_validator, Delist())],
            outputs=[TransactionOutput(listing.seller, listing.utxo.output.amount)],
            required_signers=[signer],
        )

    def delist(self, nft: AssetId) -> str:
        return self._submit(self.plan_delist(nft))

    def plan_buy(self, nft: AssetId) -> TxPlan:
        """
        Consume the listing, pay seller and fee recipient, take the NFT.

        The config UTXO is cited as a reference input so the validator can
        read the fee table without the Config token moving.
        """
        scripts = self.scripts
        listing = self.listing(nft)
        state = find_config(self.ledger, scripts)
        rule = fee_rule_for(state.config.fee_rules, listing.price_asset)
        split = compute_split(listing.price_amount, rule.fee_bps)
        buyer_hash = self._wallet_key_hash()

        outputs = []
        if split.seller_amount:
            outputs.append(TransactionOutput(listing.seller, listing.price_asset.value(split.seller_amount)))
        if split.fee:
            outputs.append(
                TransactionOutput(state.config.fee_address, listing.price_asset.value(split.fee))
            )
        outputs.append(TransactionOutput(self.ledger.wallet_address(), listing.nft.value(1)))

        log.debug(
            "Buy %s: price=%d %s fee=%d seller=%d",
            nft.unit,
            listing.price_amount,
            listing.price_asset.unit,
            split.fee,
            split.seller_amount,
        )
        return TxPlan(
            action="buy",
            script_inputs=[ScriptSpend(listing.utxo, scripts.marketplace_validator, Buy())],
            reference_inputs=[state.utxo],
            outputs=outputs,
            required_signers=[buyer_hash],
        )

    def buy(self, nft: AssetId) -> str:
        return self._submit(self.plan_buy(nft))

    # ------------------------------------------------------------------
    # Owner actions
    # ------------------------------------------------------------------

    def plan_update_config(self, config: MarketplaceConfig) -> TxPlan:
        scripts = self.scripts
        config.validate()
        state = find_config(self.ledger, scripts)
        ownership = self._wallet_utxo_with(scripts.ownership_asset, OwnershipTokenMissing, "Ownership")
        return TxPlan(
            action="update_config",
            wallet_inputs=[ownership],
            script_inputs=[ScriptSpend(state.utxo, scripts.config_validator, Updating())],
            outputs=[
                self._config_output(scripts, config),
                TransactionOutput(self.ledger.wallet_address(), scripts.ownership_asset.value(1)),
            ],
        )

    def update_config(self, config: MarketplaceConfig) -> str:
        return self._submit(self.plan_update_config(config))

    def plan_shutdown(self) -> TxPlan:
        scripts = self.scripts
        state = find_config(self.ledger, scripts)
        ownership = self._wallet_utxo_with(scripts.ownership_asset, OwnershipTokenMissing, "Ownership")
        return TxPlan(
            action="shutdown",
            wallet_inputs=[ownership],
            script_inputs=[ScriptSpend(state.utxo, scripts.config_validator, Burning())],
            mint=MintAction(scripts.control_policy, Shutdown(), self._control_tokens(scripts, -1)),
        )

    def shutdown(self) -> str:
        return self._submit(self.plan_shutdown())
