# backend/scripts/common.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
#
# Purpose
# -------
# Shared bootstrap for the marketplace CLI scripts (logging, Blockfrost
# context, mnemonic -> wallet ledger, orchestrator construction, JSON output)
# plus one subcommand of its own:
#
#   wallet : print a wallet's address, ADA balance and native tokens.
#
# Usage
# -----
#   python backend/scripts/common.py wallet --role seller
#   python backend/scripts/common.py wallet --mnemonic "24 words ..."
#
# Conventions
# -----------
# * Amounts are in **lovelace** (1 ADA = 1,000,000 lovelace) unless a flag
#   says otherwise.
# * Targets the network in CARDANO_NETWORK (preprod by default).
# * Results go to stdout as JSON; logs go to stderr.
#
# Security
# --------
# * Mnemonics grant full control of funds; never commit them.
# * Role mnemonics are read from .env (OWNER_/SELLER_/BUYER_MNEMONIC) unless
#   --mnemonic is passed explicitly.

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Optional

from pycardano import BlockFrostChainContext

from marketplace.assets import AssetId, value_to_units
from marketplace.blueprint import BlueprintScripts
from marketplace.config import settings
from marketplace.errors import MarketplaceError
from marketplace.fees import validate_rate
from marketplace.ledger import ChainLedger, wait_for_confirmation
from marketplace.model import FeeRule
from marketplace.orchestrator import MarketplaceOrchestrator
from marketplace.wallet import wallet_from_mnemonic

log = logging.getLogger("marketplace.cli")

ROLE_MNEMONICS = {
    "owner": "OWNER_MNEMONIC",
    "seller": "SELLER_MNEMONIC",
    "buyer": "BUYER_MNEMONIC",
}


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)-8s: %(message)s",
        stream=sys.stderr,
    )


# ---------------------------------------------------------------------------
# Chain / wallet bootstrap
# ---------------------------------------------------------------------------


def chain_context() -> BlockFrostChainContext:
    """Blockfrost-backed chain context for the configured network."""
    if not settings.BLOCKFROST_PROJECT_ID:
        raise SystemExit("Set BLOCKFROST_PROJECT_ID in .env (Blockfrost project for the network)")
    return BlockFrostChainContext(
        settings.BLOCKFROST_PROJECT_ID, base_url=settings.BLOCKFROST_URL
    )


def resolve_mnemonic(role: str, explicit: Optional[str]) -> str:
    phrase = explicit or getattr(settings, ROLE_MNEMONICS[role])
    if not phrase:
        raise SystemExit(f"Set {ROLE_MNEMONICS[role]} in .env or pass --mnemonic")
    return phrase


def ledger_for(role: str, mnemonic: Optional[str] = None) -> ChainLedger:
    w = wallet_from_mnemonic(resolve_mnemonic(role, mnemonic), settings.network)
    return ChainLedger(chain_context(), w.signing_key, w.address)


def orchestrator_for(
    role: str,
    mnemonic: Optional[str] = None,
    instance_id: Optional[str] = None,
) -> MarketplaceOrchestrator:
    """Orchestrator acting as ``role``; ``instance_id`` falls back to .env."""
    ledger = ledger_for(role, mnemonic)
    factory = BlueprintScripts(settings.MARKETPLACE_BLUEPRINT or None)
    iid = instance_id if instance_id is not None else settings.MARKETPLACE_INSTANCE_ID
    return MarketplaceOrchestrator(ledger, iid or None, factory)


def require_instance(instance_id: Optional[str]) -> str:
    iid = instance_id or settings.MARKETPLACE_INSTANCE_ID
    if not iid:
        raise SystemExit("Set MARKETPLACE_INSTANCE_ID in .env or pass --instance")
    return iid


# ---------------------------------------------------------------------------
# argparse helpers
# ---------------------------------------------------------------------------


def asset_arg(value: str) -> AssetId:
    """argparse type: ``lovelace`` or ``<policy hex><name hex>``."""
    try:
        return AssetId.from_unit(value)
    except MarketplaceError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def non_negative_int(value: str) -> int:
    try:
        iv = int(value, 10)
    except ValueError as e:
        raise argparse.ArgumentTypeError("must be an integer") from e
    if iv < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return iv


def fee_rule_arg(value: str) -> FeeRule:
    """argparse type: ``<unit>=<bps>``, e.g. ``lovelace=250``."""
    unit, sep, bps = value.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError("expected <unit>=<bps>")
    try:
        return FeeRule(AssetId.from_unit(unit), validate_rate(int(bps, 10)))
    except (MarketplaceError, ValueError) as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def add_common_args(ap: argparse.ArgumentParser, role: str) -> None:
    ap.add_argument(
        "--mnemonic",
        default=None,
        help=f"Wallet mnemonic (overrides {ROLE_MNEMONICS[role]} env)",
    )
    ap.add_argument(
        "--instance",
        default=None,
        help="Marketplace instance id (overrides MARKETPLACE_INSTANCE_ID env)",
    )
    ap.add_argument(
        "--wait", action="store_true", help="Block until the transaction is seen on chain"
    )


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def finish(orch: MarketplaceOrchestrator, tx_id: str, wait: bool, **extra: Any) -> None:
    """Optionally wait for ``tx_id``, then print the JSON result."""
    if wait:
        wait_for_confirmation(orch.ledger, tx_id)
    emit({"txid": tx_id, "confirmed": wait, **extra})


def wallet_summary(ledger: ChainLedger) -> dict:
    totals: dict[str, int] = {}
    utxos = ledger.wallet_utxos()
    for u in utxos:
        for unit, qty in value_to_units(u.output.amount).items():
            totals[unit] = totals.get(unit, 0) + qty
    lovelace = totals.pop("lovelace", 0)
    return {
        "address": str(ledger.wallet_address()),
        "network": settings.CARDANO_NETWORK,
        "utxos": len(utxos),
        "ada": lovelace / 1_000_000,
        "lovelace": lovelace,
        "tokens": totals,
    }


def _parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        description="Common marketplace utilities.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    w = sub.add_parser(
        "wallet",
        help="Show address, ADA balance and tokens of a role wallet",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    w.add_argument("--role", choices=sorted(ROLE_MNEMONICS), default="owner")
    w.add_argument("--mnemonic", default=None, help="Overrides the role mnemonic from .env")
    return ap.parse_args()


def main() -> None:
    setup_logging()
    args = _parse_args()

    if args.cmd == "wallet":
        try:
            emit(wallet_summary(ledger_for(args.role, args.mnemonic)))
        except Exception as e:
            # One clear line for scripting/CI; network errors land here too.
            raise SystemExit(f"wallet failed: {e}") from e


if __name__ == "__main__":
    main()
