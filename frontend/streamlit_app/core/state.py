# frontend/streamlit_app/core/state.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Session-scoped defaults for the console.

`ensure_defaults()` seeds `st.session_state` with every key the pages read,
without overwriting values a widget or earlier action already set. Call it on
every rerun (the sidebar does). Keep values primitive; no secrets here.
"""

from collections.abc import Mapping
from typing import Final

import streamlit as st

from .config import settings

DEFAULTS: Final[Mapping[str, object]] = {
    # Active marketplace instance ("<txhash>-<index>-<hex name>").
    "MKT_INSTANCE_ID": settings.MARKETPLACE_INSTANCE_ID,
    # Last submitted transaction id and its action, for the status line.
    "LAST_TXID": "",
    "LAST_ACTION": "",
    # NFT unit last typed on the Trade tab, reused across its forms.
    "TRADE_NFT_UNIT": "",
}

__all__ = ["DEFAULTS", "ensure_defaults", "remember_tx"]


def ensure_defaults() -> None:
    for key, default_value in DEFAULTS.items():
        st.session_state.setdefault(key, default_value)


def remember_tx(action: str, tx_id: str) -> None:
    st.session_state["LAST_ACTION"] = action
    st.session_state["LAST_TXID"] = tx_id
