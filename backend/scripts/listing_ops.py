# backend/scripts/listing_ops.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
#
# Purpose
# -------
# Inspect and manage listings at the marketplace address.
#
# Subcommands
# -----------
#   ls     : every well-formed listing (malformed UTXOs are skipped with a warning)
#   show   : one listing by NFT unit
#   edit   : change the price (seller only)
#   delist : return the NFT to the seller (seller only; works after shutdown)
#
# Usage
# -----
#   python backend/scripts/listing_ops.py ls
#   python backend/scripts/listing_ops.py edit --nft <unit> --price 30000000 --wait
#   python backend/scripts/listing_ops.py delist --nft <unit>

from __future__ import annotations

import argparse

from common import (
    add_common_args,
    asset_arg,
    emit,
    finish,
    non_negative_int,
    orchestrator_for,
    require_instance,
    setup_logging,
)


def _parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        prog="listing_ops.py",
        description="Inspect, edit and delist marketplace listings.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    p = sub.add_parser("ls", help="List all listings", formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    add_common_args(p, "seller")

    for name, help_text in (("show", "Show one listing"), ("delist", "Delist an NFT")):
        p = sub.add_parser(name, help=help_text, formatter_class=argparse.ArgumentDefaultsHelpFormatter)
        add_common_args(p, "seller")
        p.add_argument("--nft", type=asset_arg, required=True, help="NFT unit")

    p = sub.add_parser("edit", help="Change a listing's price", formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    add_common_args(p, "seller")
    p.add_argument("--nft", type=asset_arg, required=True, help="NFT unit")
    p.add_argument("--price", type=non_negative_int, required=True, help="New price")
    return ap.parse_args()


def main() -> None:
    setup_logging()
    args = _parse_args()
    instance = require_instance(args.instance)

    try:
        orch = orchestrator_for("seller", args.mnemonic, instance)
        if args.cmd == "ls":
            rows = [listing.to_dict() for listing in orch.listings()]
            emit({"marketplace_address": str(orch.scripts.marketplace_address), "listings": rows})
        elif args.cmd == "show":
            emit(orch.listing(args.nft).to_dict())
        elif args.cmd == "edit":
            finish(orch, orch.edit(args.nft, args.price), args.wait, nft=args.nft.unit, price=args.price)
        elif args.cmd == "delist":
            finish(orch, orch.delist(args.nft), args.wait, nft=args.nft.unit)
    except Exception as e:
        raise SystemExit(f"{args.cmd} failed: {e}") from e


if __name__ == "__main__":
    main()
