# frontend/streamlit_app/core/clients.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Client factories for the marketplace console.

- `get_chain_context()` → pycardano `BlockFrostChainContext` (cached)
- `get_script_factory()` → `BlueprintScripts` with the blueprint loaded (cached)
- `orchestrator_for(mnemonic, instance_id)` → a fresh `MarketplaceOrchestrator`
  acting as that wallet

The two cached objects are process-wide resources (`@st.cache_resource`): the
chain context holds an HTTP session and the factory the parsed blueprint.
Orchestrators are cheap and wallet-specific, so they are built per action and
never cached; they hold no UTXO state anyway.
"""

from typing import Optional

import streamlit as st
from pycardano import BlockFrostChainContext

from marketplace.blueprint import BlueprintScripts
from marketplace.ledger import ChainLedger
from marketplace.orchestrator import MarketplaceOrchestrator
from marketplace.wallet import wallet_from_mnemonic

from .config import settings


@st.cache_resource(show_spinner=False)
def get_chain_context() -> BlockFrostChainContext:
    """Blockfrost context for `settings.CARDANO_NETWORK`.

    Raises:
        RuntimeError: no Blockfrost project id configured.
    """
    if not settings.BLOCKFROST_PROJECT_ID:
        raise RuntimeError("Set BLOCKFROST_PROJECT_ID in .env")
    return BlockFrostChainContext(settings.BLOCKFROST_PROJECT_ID, base_url=settings.BLOCKFROST_URL)


@st.cache_resource(show_spinner=False)
def get_script_factory() -> BlueprintScripts:
    return BlueprintScripts(settings.MARKETPLACE_BLUEPRINT or None)


def ledger_for(mnemonic: str) -> ChainLedger:
    w = wallet_from_mnemonic(mnemonic, settings.network)
    return ChainLedger(get_chain_context(), w.signing_key, w.address)


def orchestrator_for(mnemonic: str, instance_id: Optional[str]) -> MarketplaceOrchestrator:
    """Orchestrator for the wallet behind `mnemonic`; blank instance id means none yet."""
    return MarketplaceOrchestrator(
        ledger_for(mnemonic), (instance_id or "").strip() or None, get_script_factory()
    )
