# frontend/streamlit_app/core/config.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Immutable settings for the Streamlit marketplace console.

Fields are read from the environment once at import (after python-dotenv
loads a local `.env`), and the frozen singleton `settings` is what pages and
services import. Restart the process to pick up changes.

Keys mirror the backend scripts (`marketplace.config`) so one `.env` serves
both; the console adds only `EXPLORER_BASE_URL` for transaction links.

Security notes
--------------
- Mnemonics are not read here; the sidebar prefills them from the environment
  for demos only. Never point the console at mainnet keys you care about.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv
from pycardano import Network

load_dotenv()

_NETWORKS = ("mainnet", "preprod", "preview")
_EXPLORERS = {
    "mainnet": "https://cardanoscan.io",
    "preprod": "https://preprod.cardanoscan.io",
    "preview": "https://preview.cardanoscan.io",
}


def _network() -> str:
    n = os.getenv("CARDANO_NETWORK", "preprod").strip().lower()
    return n if n in _NETWORKS else "preprod"


@dataclass(frozen=True)
class Settings:
    """Console settings; see `.env.example` for the template."""

    # --- Chain access ----------------------------------------------------------
    CARDANO_NETWORK: str = _network()
    BLOCKFROST_PROJECT_ID: str = os.getenv("BLOCKFROST_PROJECT_ID", "")
    BLOCKFROST_URL: str = os.getenv(
        "BLOCKFROST_URL", f"https://cardano-{_network()}.blockfrost.io/api"
    )

    # --- Instance defaults (editable in the sidebar) -----------------------------
    MARKETPLACE_INSTANCE_ID: str = os.getenv("MARKETPLACE_INSTANCE_ID", "")
    MARKETPLACE_BLUEPRINT: str = os.getenv("MARKETPLACE_BLUEPRINT", "")

    # --- Links -------------------------------------------------------------------
    EXPLORER_BASE_URL: str = os.getenv("EXPLORER_BASE_URL", _EXPLORERS[_network()])

    @property
    def network(self) -> Network:
        return Network.MAINNET if self.CARDANO_NETWORK == "mainnet" else Network.TESTNET


settings = Settings()
