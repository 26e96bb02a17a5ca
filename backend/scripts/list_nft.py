# backend/scripts/list_nft.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
#
# Purpose
# -------
# List an NFT for sale. The seller wallet must hold exactly one unit of the
# NFT; it is locked at the marketplace address with an inline listing datum
# (seller address, price asset, price amount, NFT id).
#
# The price asset must have a fee rule in the config for the listing to be
# buyable; listing itself does not check this (use check_state.py).
#
# Usage
# -----
#   python backend/scripts/list_nft.py --nft <policy+name hex> \
#     --price 25000000 [--price-asset lovelace] --wait
#
# Output (JSON to stdout)
# -----------------------
#   { "txid": "...", "nft": "<unit>", "price_asset": "lovelace", "price": 25000000 }

from __future__ import annotations

import argparse

from common import (
    add_common_args,
    asset_arg,
    finish,
    non_negative_int,
    orchestrator_for,
    require_instance,
    setup_logging,
)
from marketplace.assets import AssetId


def main() -> None:
    setup_logging()
    ap = argparse.ArgumentParser(
        prog="list_nft.py",
        description="List an NFT on the marketplace.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    ap.add_argument("--nft", type=asset_arg, required=True, help="NFT unit (policy+name hex)")
    ap.add_argument(
        "--price", type=non_negative_int, required=True, help="Price in the price asset's smallest unit"
    )
    ap.add_argument(
        "--price-asset",
        type=asset_arg,
        default=AssetId.native(),
        help="Price asset unit; 'lovelace' for ADA",
    )
    add_common_args(ap, "seller")
    args = ap.parse_args()

    instance = require_instance(args.instance)
    try:
        orch = orchestrator_for("seller", args.mnemonic, instance)
        tx_id = orch.list_nft(args.nft, args.price_asset, args.price)
        finish(
            orch,
            tx_id,
            args.wait,
            nft=args.nft.unit,
            price_asset=args.price_asset.unit,
            price=args.price,
        )
    except Exception as e:
        raise SystemExit(f"list failed: {e}") from e


if __name__ == "__main__":
    main()
