# backend/marketplace/model.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
"""
Domain objects the orchestrator works with, and their datum conversions.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Union

from pycardano import Address, Network, UTxO

from .address import decode_address, encode_address, parse_address
from .assets import AssetId
from .datums import ConfigDatum, ListingDatum, OnChainAddress, TokenFee
from .errors import InvalidConfig, UnsupportedAddressForm
from .fees import validate_rate


@dataclass(frozen=True)
class FeeRule:
    asset: AssetId
    fee_bps: int

    def to_datum(self) -> TokenFee:
        return TokenFee(self.asset.policy, self.asset.name, self.fee_bps)

    @classmethod
    def from_datum(cls, entry: TokenFee) -> FeeRule:
        return cls(AssetId(bytes(entry.policy), bytes(entry.name)), int(entry.fee_bps))


@dataclass(frozen=True)
class MarketplaceConfig:
    """Fee recipient plus the ordered per-asset fee table."""

    fee_address: Address
    fee_rules: tuple[FeeRule, ...] = field(default_factory=tuple)

    @classmethod
    def build(
        cls,
        fee_address: Union[str, Address],
        fee_rules: Sequence[FeeRule] = (),
    ) -> MarketplaceConfig:
        """Parse ``fee_address`` and validate the table; raises InvalidConfig."""
        try:
            addr = parse_address(fee_address)
        except UnsupportedAddressForm as e:
            raise InvalidConfig(f"Fee address is not usable: {e}") from e
        cfg = cls(addr, tuple(fee_rules))
        cfg.validate()
        return cfg

    def validate(self) -> MarketplaceConfig:
        seen: set[AssetId] = set()
        for rule in self.fee_rules:
            try:
                validate_rate(rule.fee_bps)
            except ValueError as e:
                raise InvalidConfig(f"Fee rule for {rule.asset.unit}: {e}") from e
            if rule.asset in seen:
                raise InvalidConfig(f"Duplicate fee rule for asset {rule.asset.unit}")
            seen.add(rule.asset)
        try:
            decode_address(self.fee_address)
        except UnsupportedAddressForm as e:
            raise InvalidConfig(f"Fee address is not usable: {e}") from e
        return self

    def to_datum(self) -> ConfigDatum:
        return ConfigDatum(
            decode_address(self.fee_address),
            [rule.to_datum() for rule in self.fee_rules],
        )

    @classmethod
    def from_datum(cls, datum: ConfigDatum, network: Network) -> MarketplaceConfig:
        return cls(
            encode_address(datum.fee_address, network),
            tuple(FeeRule.from_datum(entry) for entry in datum.fees),
        )

    def to_dict(self) -> dict:
        return {
            "fee_address": str(self.fee_address),
            "fees": [
                {"asset": r.asset.unit, "name": r.asset.display_name, "fee_bps": r.fee_bps}
                for r in self.fee_rules
            ],
        }


@dataclass(frozen=True)
class ConfigState:
    """The live config UTXO and its decoded contents."""

    utxo: UTxO
    config: MarketplaceConfig


@dataclass(frozen=True)
class Listing:
    """A listing UTXO at the marketplace address and its decoded datum."""

    utxo: UTxO
    datum: ListingDatum
    seller: Address
    price_asset: AssetId
    price_amount: int
    nft: AssetId

    @property
    def seller_onchain(self) -> OnChainAddress:
        return self.datum.seller

    @property
    def out_ref(self) -> str:
        return f"{self.utxo.input.transaction_id.payload.hex()}#{self.utxo.input.index}"

    def to_dict(self) -> dict:
        return {
            "out_ref": self.out_ref,
            "seller": str(self.seller),
            "nft": self.nft.unit,
            "nft_name": self.nft.display_name,
            "price_asset": self.price_asset.unit,
            "price_amount": self.price_amount,
        }


def listing_datum(
    seller: OnChainAddress, price_asset: AssetId, price_amount: int, nft: AssetId
) -> ListingDatum:
    return ListingDatum(
        seller,
        price_asset.policy,
        price_asset.name,
        price_amount,
        nft.policy,
        nft.name,
    )
