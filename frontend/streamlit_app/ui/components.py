# frontend/streamlit_app/ui/components.py
# SPDX-License-Identifier: Apache-2.0
"""Reusable Streamlit widgets for marketplace pages.

  • listings_table(): render active listings (or a hint when there are none)
  • fee_rules_table(): render a config's fee schedule
  • tx_result(): success banner with explorer link, remembered in session
  • show_error(): one consistent error banner for failed actions
"""

from __future__ import annotations

from collections.abc import Sequence

import streamlit as st

from core.config import settings
from core.state import remember_tx
from marketplace.errors import MarketplaceError
from marketplace.model import FeeRule, Listing
from services.marketplace import explorer_tx_url, listing_rows


def listings_table(listings: Sequence[Listing]) -> None:
    if not listings:
        st.info("No listings at this marketplace yet. List an NFT below to create one.")
        return
    st.dataframe(listing_rows(listings), hide_index=True, use_container_width=True)


def fee_rules_table(rules: Sequence[FeeRule]) -> None:
    if not rules:
        st.warning("Fee schedule is empty: no asset can be bought until a rule is added.")
        return
    st.table(
        [
            {
                "Asset": r.asset.display_name,
                "Unit": r.asset.unit,
                "Fee (bps)": r.fee_bps,
                "Fee (%)": f"{r.fee_bps / 100:.2f}%",
            }
            for r in rules
        ]
    )


def tx_result(action: str, tx_id: str) -> None:
    """Show a submitted tx and store it as the session's last action."""
    remember_tx(action, tx_id)
    st.success(f"{action} submitted: `{tx_id}`")
    st.markdown(f"[View on explorer]({explorer_tx_url(settings.EXPLORER_BASE_URL, tx_id)})")


def show_error(action: str, e: Exception) -> None:
    """Marketplace errors are expected outcomes; anything else gets a traceback."""
    if isinstance(e, MarketplaceError):
        st.error(f"{action} failed: {type(e).__name__}: {e}")
    else:
        st.error(f"{action} failed: {e}")
        st.exception(e)
