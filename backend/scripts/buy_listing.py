# backend/scripts/buy_listing.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
#
# High-level purpose:
# -------------------
# Buy a listed NFT. One transaction:
#   inputs     : the listing UTXO (redeemer Buy) + buyer wallet UTXOs
#   reference  : the config UTXO (fee table; not consumed)
#   outputs    : seller   <- price - fee
#                fee addr <- fee           (fee = floor(price * bps / 10000))
#                buyer    <- the NFT
#   signer     : buyer
#
# The validator recomputes the split from the two datums; an output that is
# short by even one unit fails the whole transaction.
#
# Usage:
#   python backend/scripts/buy_listing.py --nft <policy+name hex> [--dry-run] [--wait]
#
# Output (JSON to stdout):
#   { "txid": "...", "nft": "<unit>", "price": 25000000, "fee": 625000, "seller_amount": 24375000 }

from __future__ import annotations

import argparse

from common import (
    add_common_args,
    asset_arg,
    emit,
    finish,
    orchestrator_for,
    require_instance,
    setup_logging,
)
from marketplace.fees import compute_split, fee_rule_for


def main() -> None:
    setup_logging()
    ap = argparse.ArgumentParser(
        prog="buy_listing.py",
        description="Buy a listed NFT.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    ap.add_argument("--nft", type=asset_arg, required=True, help="NFT unit (policy+name hex)")
    ap.add_argument("--dry-run", action="store_true", help="Print the plan summary; do not submit")
    add_common_args(ap, "buyer")
    args = ap.parse_args()

    instance = require_instance(args.instance)
    try:
        orch = orchestrator_for("buyer", args.mnemonic, instance)
        listing = orch.listing(args.nft)
        rule = fee_rule_for(orch.config().config.fee_rules, listing.price_asset)
        split = compute_split(listing.price_amount, rule.fee_bps)
        quote = {
            "nft": args.nft.unit,
            "price_asset": listing.price_asset.unit,
            "price": listing.price_amount,
            "fee_bps": rule.fee_bps,
            "fee": split.fee,
            "seller_amount": split.seller_amount,
        }
        if args.dry_run:
            emit({"plan": orch.plan_buy(args.nft).summary(), **quote})
            return
        finish(orch, orch.buy(args.nft), args.wait, **quote)
    except Exception as e:
        raise SystemExit(f"buy failed: {e}") from e


if __name__ == "__main__":
    main()
