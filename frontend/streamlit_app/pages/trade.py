# frontend/streamlit_app/pages/trade.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Trade: browse, list, edit, delist and buy.

Seller actions use the seller mnemonic; Buy uses the buyer mnemonic. The
listings table is read with whichever wallet is available. Every action
resolves the listing and config again right before building, so a stale
table never feeds a transaction.
"""

from typing import Optional

import streamlit as st

from core.clients import orchestrator_for
from marketplace.assets import AssetId
from marketplace.errors import InvalidAssetUnit
from marketplace.fees import fee_rule_for
from services.marketplace import ada_to_lovelace, fmt_amount, parse_asset, parse_nft, split_preview
from ui.components import listings_table, show_error, tx_result
from ui.keys import keyer
from ui.layout import stack_or_columns_spec, step

K = keyer("trade")


def _nft_input(label: str, name: str) -> Optional[AssetId]:
    """The NFT to act on, or None (with a warning) until a token unit is entered."""
    value = st.text_input(
        label,
        value=st.session_state.get("TRADE_NFT_UNIT", ""),
        key=K(name),
        help="Policy id + asset name hex.",
    ).strip()
    if value:
        st.session_state["TRADE_NFT_UNIT"] = value
    try:
        return parse_nft(value)
    except InvalidAssetUnit as e:
        st.warning(str(e))
        return None


def _price_input(name: str, asset_text: str) -> int:
    if parse_asset(asset_text).is_native:
        return ada_to_lovelace(st.text_input("Price (ADA)", value="10", key=K(name)))
    return int(st.number_input("Price (token units)", min_value=0, step=1, key=K(name + "_qty")))


def _browse(ctx: dict) -> None:
    step(1, "Listings", bool(ctx.get("GUIDED_MODE")))
    reader = ctx.get("buyer_mn") or ctx.get("seller_mn") or ctx.get("owner_mn")
    if not reader:
        st.info("Enter any wallet mnemonic in the sidebar to browse listings.")
        return
    try:
        orch = orchestrator_for(reader, ctx["instance_id"])
        st.caption(f"Marketplace address: `{orch.scripts.marketplace_address}`  ·  status: **{orch.status().value}**")
        listings_table(orch.listings())
    except Exception as e:
        show_error("Loading listings", e)


def _seller(ctx: dict) -> None:
    seller_mn = ctx.get("seller_mn")
    step(2, "Sell", bool(ctx.get("GUIDED_MODE")))
    if not seller_mn:
        st.info("Enter the seller mnemonic in the sidebar.")
        return

    list_tab, edit_tab, delist_tab = st.tabs(["List", "Edit price", "Delist"])
    with list_tab:
        nft = _nft_input("NFT unit", "list_nft")
        asset_text = st.text_input("Price asset", value="ada", key=K("list_asset"))
        try:
            price = _price_input("list_price", asset_text)
            if st.button("List NFT", type="primary", key=K("list_go"), disabled=nft is None):
                orch = orchestrator_for(seller_mn, ctx["instance_id"])
                with st.spinner("Submitting list…"):
                    tx_id = orch.list_nft(nft, parse_asset(asset_text), price)
                tx_result("List", tx_id)
        except Exception as e:
            show_error("List", e)

    with edit_tab:
        nft = _nft_input("NFT unit", "edit_nft")
        try:
            new_price = int(st.number_input("New price (smallest unit)", min_value=0, step=1, key=K("edit_price")))
            if st.button("Update price", key=K("edit_go"), disabled=nft is None):
                orch = orchestrator_for(seller_mn, ctx["instance_id"])
                with st.spinner("Submitting edit…"):
                    tx_id = orch.edit(nft, new_price)
                tx_result("Edit", tx_id)
        except Exception as e:
            show_error("Edit", e)

    with delist_tab:
        nft = _nft_input("NFT unit", "delist_nft")
        if st.button("Delist", key=K("delist_go"), disabled=nft is None):
            try:
                orch = orchestrator_for(seller_mn, ctx["instance_id"])
                with st.spinner("Submitting delist…"):
                    tx_id = orch.delist(nft)
                tx_result("Delist", tx_id)
            except Exception as e:
                show_error("Delist", e)


def _buyer(ctx: dict) -> None:
    buyer_mn = ctx.get("buyer_mn")
    step(3, "Buy", bool(ctx.get("GUIDED_MODE")))
    if not buyer_mn:
        st.info("Enter the buyer mnemonic in the sidebar.")
        return
    nft = _nft_input("NFT unit", "buy_nft")
    if nft is None:
        return
    try:
        orch = orchestrator_for(buyer_mn, ctx["instance_id"])
        listing = orch.listing(nft)
        rule = fee_rule_for(orch.config().config.fee_rules, listing.price_asset)
        split = split_preview(listing.price_amount, rule.fee_bps)
        c1, c2, c3 = st.columns(3)
        c1.metric("Price", fmt_amount(listing.price_asset, listing.price_amount))
        c2.metric(f"Fee ({rule.fee_bps} bps)", fmt_amount(listing.price_asset, split["fee"]))
        c3.metric("To seller", fmt_amount(listing.price_asset, split["seller_amount"]))
        if st.button("Buy", type="primary", key=K("buy_go")):
            with st.spinner("Submitting buy…"):
                tx_id = orch.buy(listing.nft)
            tx_result("Buy", tx_id)
    except Exception as e:
        show_error("Buy", e)


def render(ctx: dict) -> None:
    if not ctx.get("instance_id"):
        st.info("Set a marketplace instance id in the sidebar (or deploy one first).")
        return
    _browse(ctx)
    sell_col, buy_col = stack_or_columns_spec(2, bool(ctx.get("GUIDED_MODE")))
    with sell_col:
        _seller(ctx)
    with buy_col:
        _buyer(ctx)
