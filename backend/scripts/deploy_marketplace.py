# backend/scripts/deploy_marketplace.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
#
# Purpose
# -------
# Create a new marketplace instance (Initialize). One owner-wallet UTXO is
# consumed as the seed; the control policy is parameterized by it, so the
# resulting policy id (and both validator addresses) are unique to this run.
#
# Two control tokens are minted:
#   MarketplaceConfig : sent to the config address with the fee table when
#                       --fee-address is given, otherwise kept in the wallet
#                       for a later `config_ops.py publish`.
#   Ownership         : kept in the owner wallet; authorizes update/shutdown.
#
# Usage
# -----
#   python backend/scripts/deploy_marketplace.py --name "My Market" \
#     --fee-address addr_test1... --fee lovelace=250 --fee <unit>=500 --wait
#
# Output (JSON to stdout)
# -----------------------
#   { "txid": "...", "instance_id": "<txhash>-<index>-<hex name>", ... }
#
# Save instance_id as MARKETPLACE_INSTANCE_ID in .env for the other scripts.

from __future__ import annotations

import argparse

from common import (
    ROLE_MNEMONICS,
    fee_rule_arg,
    finish,
    orchestrator_for,
    setup_logging,
)
from marketplace.model import MarketplaceConfig


def _parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        prog="deploy_marketplace.py",
        description="Initialize a new marketplace instance (mint control tokens).",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    ap.add_argument("--name", required=True, help="Human-readable instance name")
    ap.add_argument(
        "--fee-address",
        default=None,
        help="Fee recipient; when set the config is published in the same tx",
    )
    ap.add_argument(
        "--fee",
        type=fee_rule_arg,
        action="append",
        default=[],
        help="Fee rule <unit>=<bps>; repeatable (unit is 'lovelace' or policy+name hex)",
    )
    ap.add_argument(
        "--mnemonic",
        default=None,
        help=f"Owner mnemonic (overrides {ROLE_MNEMONICS['owner']} env)",
    )
    ap.add_argument("--wait", action="store_true", help="Block until confirmed")
    return ap.parse_args()


def main() -> None:
    setup_logging()
    args = _parse_args()
    if args.fee and not args.fee_address:
        raise SystemExit("--fee needs --fee-address (or publish later with config_ops.py)")

    try:
        config = (
            MarketplaceConfig.build(args.fee_address, args.fee) if args.fee_address else None
        )
        # Empty instance id: a fresh orchestrator, regardless of .env.
        orch = orchestrator_for("owner", args.mnemonic, instance_id="")
        tx_id = orch.initialize(args.name, config)
        scripts = orch.scripts
        finish(
            orch,
            tx_id,
            args.wait,
            **scripts.to_dict(),
            config_published=config is not None,
        )
    except Exception as e:
        raise SystemExit(f"deploy failed: {e}") from e


if __name__ == "__main__":
    main()
