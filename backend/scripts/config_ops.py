# backend/scripts/config_ops.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
#
# Purpose
# -------
# Owner-side operations on the marketplace configuration UTXO.
#
# Subcommands
# -----------
#   show     : print the live config (fee address + fee table)
#   status   : uninitialized | active | shut_down (from a fresh ledger query)
#   publish  : move the wallet-held MarketplaceConfig token to the config
#              address with a fee table (after a token-only deploy)
#   update   : replace fee address/table; needs the Ownership token
#   shutdown : burn both control tokens; irreversible. Listings can still be
#              delisted afterwards but no longer bought.
#
# Usage
# -----
#   python backend/scripts/config_ops.py show
#   python backend/scripts/config_ops.py update --fee-address addr_test1... \
#     --fee lovelace=300 --wait
#   python backend/scripts/config_ops.py shutdown --yes

from __future__ import annotations

import argparse

from common import (
    add_common_args,
    emit,
    fee_rule_arg,
    finish,
    orchestrator_for,
    require_instance,
    setup_logging,
)
from marketplace.model import MarketplaceConfig


def _parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        prog="config_ops.py",
        description="Inspect and manage the marketplace config UTXO.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    for name, help_text in (
        ("show", "Print the live config"),
        ("status", "Print the lifecycle state"),
    ):
        p = sub.add_parser(name, help=help_text, formatter_class=argparse.ArgumentDefaultsHelpFormatter)
        add_common_args(p, "owner")

    for name, help_text in (
        ("publish", "Publish the first config (token currently in wallet)"),
        ("update", "Replace the config (requires Ownership token)"),
    ):
        p = sub.add_parser(name, help=help_text, formatter_class=argparse.ArgumentDefaultsHelpFormatter)
        add_common_args(p, "owner")
        p.add_argument("--fee-address", required=True, help="Fee recipient address")
        p.add_argument(
            "--fee",
            type=fee_rule_arg,
            action="append",
            default=[],
            help="Fee rule <unit>=<bps>; repeatable",
        )

    p = sub.add_parser(
        "shutdown",
        help="Burn control tokens and retire the instance",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    add_common_args(p, "owner")
    p.add_argument("--yes", action="store_true", help="Confirm the irreversible shutdown")
    return ap.parse_args()


def main() -> None:
    setup_logging()
    args = _parse_args()
    instance = require_instance(args.instance)
    if args.cmd == "shutdown" and not args.yes:
        raise SystemExit("Shutdown is irreversible; re-run with --yes")

    try:
        orch = orchestrator_for("owner", args.mnemonic, instance)
        if args.cmd == "show":
            state = orch.config()
            emit(
                {
                    "instance_id": instance,
                    "config_utxo": f"{state.utxo.input.transaction_id.payload.hex()}#{state.utxo.input.index}",
                    **state.config.to_dict(),
                }
            )
        elif args.cmd == "status":
            emit({"instance_id": instance, "status": orch.status().value})
        elif args.cmd == "publish":
            config = MarketplaceConfig.build(args.fee_address, args.fee)
            finish(orch, orch.publish_config(config), args.wait, **config.to_dict())
        elif args.cmd == "update":
            config = MarketplaceConfig.build(args.fee_address, args.fee)
            finish(orch, orch.update_config(config), args.wait, **config.to_dict())
        elif args.cmd == "shutdown":
            finish(orch, orch.shutdown(), args.wait, instance_id=instance)
    except Exception as e:
        raise SystemExit(f"{args.cmd} failed: {e}") from e


if __name__ == "__main__":
    main()
