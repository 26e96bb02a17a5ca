# backend/marketplace/config.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
"""
Process-wide settings for the marketplace CLIs and library.

Values come from environment variables, with a local ``.env`` loaded first via
python-dotenv (pre-set variables win). The frozen ``settings`` singleton is
what other modules import; nothing else should call ``os.getenv`` for these
keys.

Mnemonics are secrets: keep them in ``.env`` (never committed) or pass them on
the command line for one-off runs.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv
from pycardano import Network

load_dotenv()

BLOCKFROST_URLS = {
    "mainnet": "https://cardano-mainnet.blockfrost.io/api",
    "preprod": "https://cardano-preprod.blockfrost.io/api",
    "preview": "https://cardano-preview.blockfrost.io/api",
}


def _network_name() -> str:
    name = os.getenv("CARDANO_NETWORK", "preprod").strip().lower()
    return name if name in BLOCKFROST_URLS else "preprod"


@dataclass(frozen=True)
class Settings:
    # --- Chain access ---------------------------------------------------------
    # mainnet | preprod | preview; anything else falls back to preprod.
    CARDANO_NETWORK: str = _network_name()
    BLOCKFROST_PROJECT_ID: str = os.getenv("BLOCKFROST_PROJECT_ID", "")
    BLOCKFROST_URL: str = os.getenv("BLOCKFROST_URL", BLOCKFROST_URLS[_network_name()])

    # --- Instance --------------------------------------------------------------
    # Canonical "<txhash>-<index>-<hex name>" printed by deploy_marketplace.py.
    MARKETPLACE_INSTANCE_ID: str = os.getenv("MARKETPLACE_INSTANCE_ID", "")
    # Empty means the blueprint shipped with the package.
    MARKETPLACE_BLUEPRINT: str = os.getenv("MARKETPLACE_BLUEPRINT", "")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # --- Role wallets (24-word mnemonics) ----------------------------------------
    OWNER_MNEMONIC: str = os.getenv("OWNER_MNEMONIC", "")
    SELLER_MNEMONIC: str = os.getenv("SELLER_MNEMONIC", "")
    BUYER_MNEMONIC: str = os.getenv("BUYER_MNEMONIC", "")

    @property
    def network(self) -> Network:
        return Network.MAINNET if self.CARDANO_NETWORK == "mainnet" else Network.TESTNET


settings = Settings()
