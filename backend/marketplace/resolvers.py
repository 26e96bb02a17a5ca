# backend/marketplace/resolvers.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
"""
Config and listing resolution. Every call is a fresh ledger query.
"""

from __future__ import annotations

import logging

from pycardano import Address, Network, UTxO

from .address import encode_address
from .assets import AssetId, holds_exactly
from .datums import ConfigDatum, ListingDatum, decode_inline_datum
from .errors import (
    ConfigMissing,
    ListingNotFound,
    MalformedDatum,
    MultipleConfigUtxos,
    UnsupportedAddressForm,
)
from .instance import MarketplaceScripts
from .ledger import Ledger
from .model import ConfigState, Listing, MarketplaceConfig

log = logging.getLogger(__name__)


def _out_ref_key(utxo: UTxO) -> tuple[bytes, int]:
    return (utxo.input.transaction_id.payload, utxo.input.index)


def find_config(ledger: Ledger, scripts: MarketplaceScripts) -> ConfigState:
    """
    Locate the single live config UTXO of an instance and decode it.

    Raises:
        ConfigMissing: no UTXO holds the Config token (shut down or unpublished).
        MultipleConfigUtxos: more than one does; never retry.
        MalformedDatum: the config datum does not parse.
    """
    token = scripts.config_asset
    found = [
        u
        for u in ledger.utxos_with_unit(scripts.config_address, token.unit)
        if token.quantity_in(u.output.amount) > 0
    ]
    if not found:
        raise ConfigMissing(
            f"No config UTXO for instance {scripts.instance} at {scripts.config_address}"
        )
    if len(found) > 1:
        refs = ", ".join(f"{u.input.transaction_id.payload.hex()}#{u.input.index}" for u in found)
        raise MultipleConfigUtxos(f"{len(found)} config UTXOs found: {refs}")

    utxo = found[0]
    datum = decode_inline_datum(utxo, ConfigDatum)
    try:
        config = MarketplaceConfig.from_datum(datum, ledger.network)
    except UnsupportedAddressForm as e:
        raise MalformedDatum(f"Config fee address does not decode: {e}") from e
    return ConfigState(utxo=utxo, config=config)


def decode_listing(utxo: UTxO, network: Network) -> Listing:
    """
    Decode a marketplace UTXO into a ``Listing``.

    Raises:
        MalformedDatum: missing or unparseable datum, negative price, or a
            seller address that does not encode.
    """
    datum = decode_inline_datum(utxo, ListingDatum)
    if datum.price_amount < 0:
        raise MalformedDatum(f"Listing price is negative: {datum.price_amount}")
    try:
        seller = encode_address(datum.seller, network)
    except UnsupportedAddressForm as e:
        raise MalformedDatum(f"Listing seller address does not decode: {e}") from e
    return Listing(
        utxo=utxo,
        datum=datum,
        seller=seller,
        price_asset=AssetId(bytes(datum.price_policy), bytes(datum.price_name)),
        price_amount=int(datum.price_amount),
        nft=AssetId(bytes(datum.nft_policy), bytes(datum.nft_name)),
    )


def find_listing(ledger: Ledger, address: Address, nft: AssetId) -> Listing:
    """
    Find the listing at ``address`` holding exactly one unit of ``nft``.

    Duplicates are not expected; if they exist the lowest output reference
    that decodes wins so repeated calls pick the same UTXO. Candidates with a
    malformed datum, or a datum naming another NFT, are logged and skipped
    the way ``list_listings`` skips them.
    """
    candidates = sorted(
        (u for u in ledger.utxos_with_unit(address, nft.unit) if holds_exactly(u, nft, 1)),
        key=_out_ref_key,
    )
    if len(candidates) > 1:
        log.warning("%d listings hold %s; using the lowest well-formed out-ref", len(candidates), nft.unit)
    for utxo in candidates:
        try:
            listing = decode_listing(utxo, ledger.network)
        except MalformedDatum as e:
            log.warning("Skipping malformed listing: %s", e)
            continue
        if listing.nft != nft:
            log.warning("Skipping %s: datum names %s, holds %s", listing.out_ref, listing.nft.unit, nft.unit)
            continue
        return listing
    raise ListingNotFound(f"No listing for {nft.unit} at {address}")


def list_listings(ledger: Ledger, address: Address) -> list[Listing]:
    """Every well-formed listing at ``address``; malformed UTXOs are logged and skipped."""
    out: list[Listing] = []
    for utxo in sorted(ledger.utxos_at(address), key=_out_ref_key):
        try:
            listing = decode_listing(utxo, ledger.network)
        except MalformedDatum as e:
            log.warning("Skipping malformed listing: %s", e)
            continue
        if not holds_exactly(utxo, listing.nft, 1):
            log.warning("Skipping %s: does not hold exactly one %s", listing.out_ref, listing.nft.unit)
            continue
        out.append(listing)
    return out
