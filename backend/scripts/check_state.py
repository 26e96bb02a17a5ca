# backend/scripts/check_state.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
#
# Purpose
# -------
# Preflight diagnostics for **Buy**. This script checks:
#   • Instance status (active / shut down) and the single live config UTXO
#   • The listing for the NFT and its decoded datum
#   • A fee rule exists for the listing's price asset; previews the split
#   • The buyer wallet is key-based and holds enough of the price asset
#     (plus an ADA budget for fees, collateral and min-UTXO deposits)
#
# Output is **human-readable** with ✅/⚠️/❌ markers to guide next steps.
# No transactions are submitted; this is safe to run repeatedly.
#
# Environment (.env)
# ------------------
# BLOCKFROST_PROJECT_ID, CARDANO_NETWORK, MARKETPLACE_INSTANCE_ID,
# BUYER_MNEMONIC
#
# Usage
# -----
#   python backend/scripts/check_state.py --nft <policy+name hex>

from __future__ import annotations

import argparse

from common import (
    ROLE_MNEMONICS,
    asset_arg,
    orchestrator_for,
    require_instance,
    setup_logging,
    wallet_summary,
)
from marketplace.address import decode_address, payment_key_hash
from marketplace.assets import AssetId
from marketplace.errors import MarketplaceError, NotKeyCredential
from marketplace.fees import compute_split, fee_rule_for
from marketplace.orchestrator import MarketplaceOrchestrator, MarketplaceStatus

# Rough ADA the buyer needs on top of the price: tx fee, collateral, and the
# min-UTXO deposit travelling with the NFT output.
ADA_BUDGET = 5_000_000


def fmt_ada(lovelace: int) -> str:
    return f"{lovelace / 1_000_000:.6f} ADA"


def fmt_amount(asset: AssetId, qty: int) -> str:
    return fmt_ada(qty) if asset.is_native else f"{qty} {asset.display_name}"


# ---------------------------------------------------------------------------
# Pretty printers
# ---------------------------------------------------------------------------


def print_header(title: str) -> None:
    print("\n" + "=" * len(title))
    print(title)
    print("=" * len(title))


def fail(msg: str) -> None:
    print(f"❌ {msg}")


def ok(msg: str) -> None:
    print(f"✅ {msg}")


def warn(msg: str) -> None:
    print(f"⚠️  {msg}")


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def check_buy(orch: MarketplaceOrchestrator, nft: AssetId) -> bool:
    print_header("BUY preflight")
    scripts = orch.scripts
    print(f"Instance: {scripts.instance}")
    print(f"Marketplace address: {scripts.marketplace_address}")
    print(f"Config address:      {scripts.config_address}")

    status = orch.status()
    if status is not MarketplaceStatus.ACTIVE:
        fail(f"Marketplace is {status.value}; Buy needs a live config UTXO")
        print("   → Listings can still be delisted by their sellers")
        return False
    state = orch.config()
    ok(
        f"Config live at {state.utxo.input.transaction_id.payload.hex()}#{state.utxo.input.index} "
        f"({len(state.config.fee_rules)} fee rule(s))"
    )

    try:
        listing = orch.listing(nft)
    except MarketplaceError as e:
        fail(str(e))
        return False
    ok(f"Listing {listing.out_ref}: {fmt_amount(listing.price_asset, listing.price_amount)}")
    print(f"   seller: {listing.seller}")

    all_ok = True
    try:
        payment_key_hash(listing.seller_onchain)
    except NotKeyCredential:
        warn("Seller is a script address; only Buy can consume this listing")

    try:
        rule = fee_rule_for(state.config.fee_rules, listing.price_asset)
    except MarketplaceError as e:
        fail(str(e))
        print("   → The owner must add a fee rule for this asset (config_ops.py update)")
        return False
    split = compute_split(listing.price_amount, rule.fee_bps)
    ok(
        f"Fee rule {rule.fee_bps} bps → fee {fmt_amount(listing.price_asset, split.fee)}, "
        f"seller {fmt_amount(listing.price_asset, split.seller_amount)}"
    )
    if split.fee == 0:
        warn("Fee rounds to zero; no fee output will be created")

    buyer = wallet_summary(orch.ledger)
    try:
        payment_key_hash(decode_address(orch.ledger.wallet_address()))
    except NotKeyCredential:
        fail("Buyer wallet is not key-based; it cannot sign")
        all_ok = False

    if listing.price_asset.is_native:
        need = listing.price_amount + ADA_BUDGET
        have = buyer["lovelace"]
        if have < need:
            fail(f"Buyer has {fmt_ada(have)}; needs ≥ {fmt_ada(need)} (price + {fmt_ada(ADA_BUDGET)} budget)")
            print(f"   → Top up at least {fmt_ada(need - have)}")
            all_ok = False
        else:
            ok(f"Buyer has enough: {fmt_ada(have)}")
    else:
        have = buyer["tokens"].get(listing.price_asset.unit, 0)
        if have < listing.price_amount:
            fail(f"Buyer holds {have} {listing.price_asset.display_name}; needs {listing.price_amount}")
            all_ok = False
        else:
            ok(f"Buyer holds {have} {listing.price_asset.display_name}")
        if buyer["lovelace"] < ADA_BUDGET:
            fail(f"Buyer ADA {fmt_ada(buyer['lovelace'])} below {fmt_ada(ADA_BUDGET)} budget")
            all_ok = False

    print_header("Result")
    if all_ok:
        ok("BUY preconditions satisfied.")
    else:
        fail("BUY has issues (see above). Fix and re-run.")
    return all_ok


def main() -> None:
    setup_logging()
    ap = argparse.ArgumentParser(
        prog="check_state.py",
        description="Preflight checks for buying a listing (never submits).",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    ap.add_argument("--nft", type=asset_arg, required=True, help="NFT unit to buy")
    ap.add_argument(
        "--mnemonic",
        default=None,
        help=f"Buyer mnemonic (overrides {ROLE_MNEMONICS['buyer']} env)",
    )
    ap.add_argument("--instance", default=None, help="Instance id (overrides env)")
    args = ap.parse_args()

    instance = require_instance(args.instance)
    try:
        orch = orchestrator_for("buyer", args.mnemonic, instance)
        passed = check_buy(orch, args.nft)
    except Exception as e:
        raise SystemExit(f"check failed: {e}") from e
    if not passed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
