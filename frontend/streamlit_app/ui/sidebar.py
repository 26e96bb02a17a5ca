# frontend/streamlit_app/ui/sidebar.py
# SPDX-License-Identifier: Apache-2.0
"""Sidebar for the marketplace console.

Collects the three demo wallets (owner, seller, buyer) as mnemonics, shows
their derived addresses and ADA balances, and holds the active marketplace
instance id that every tab acts on.

Security
--------
Testnet demos only. Mnemonics are password fields prefilled from `.env`; they
stay in the Streamlit process for the session and are never logged.

Returns
-------
`render_sidebar_and_status()` returns the page context dict:
- `settings`, `GUIDED_MODE`, `instance_id`
- `owner_mn` / `seller_mn` / `buyer_mn` and the matching `*_addr`
  (`None` when the mnemonic is blank or invalid)
"""

from __future__ import annotations

import os
from typing import Any

import streamlit as st

from core.clients import get_chain_context
from core.config import settings
from core.state import ensure_defaults
from services.marketplace import addr_from_mn, fmt_ada, short_addr

ROLES = (
    ("owner", "Owner", "OWNER_MNEMONIC"),
    ("seller", "Seller", "SELLER_MNEMONIC"),
    ("buyer", "Buyer", "BUYER_MNEMONIC"),
)


def _sb_row(label: str, addr: str | None) -> None:
    if not addr:
        st.sidebar.write(f"**{label}**: —")
        return
    try:
        lovelace = sum(u.output.amount.coin for u in get_chain_context().utxos(addr))
        st.sidebar.write(f"**{label}**  `{short_addr(addr, 10, 4)}`  ✅ {fmt_ada(lovelace)}")
    except Exception:
        # Balance is informational; keep the sidebar usable when Blockfrost is down.
        st.sidebar.write(f"**{label}**  `{short_addr(addr, 10, 4)}`  ⚠️ n/a")


def render_sidebar_and_status() -> dict[str, Any]:
    ensure_defaults()
    ctx: dict[str, Any] = {"settings": settings}

    st.sidebar.header(f"Wallets ({settings.CARDANO_NETWORK})")
    for role, label, env_key in ROLES:
        mn = st.sidebar.text_input(
            f"{label} mnemonic", os.getenv(env_key) or "", type="password", key=f"sb:{role}_mn"
        )
        ctx[f"{role}_mn"] = mn
        ctx[f"{role}_addr"] = addr_from_mn(mn, settings.network)

    ctx["GUIDED_MODE"] = st.sidebar.toggle("Guided mode", value=True, key="sb:guided")

    st.sidebar.markdown("### Balances")
    for role, label, _ in ROLES:
        _sb_row(label, ctx[f"{role}_addr"])
    if settings.CARDANO_NETWORK != "mainnet":
        st.sidebar.markdown("[Testnet Faucet](https://docs.cardano.org/cardano-testnets/tools/faucet)")

    st.sidebar.markdown("---")
    # Deploy hands a fresh instance id over here; widget-bound keys can only be
    # written before the widget is created.
    pending = st.session_state.pop("PENDING_INSTANCE_ID", None)
    if pending:
        st.session_state["MKT_INSTANCE_ID"] = pending
    st.sidebar.text_input(
        "Marketplace instance id",
        key="MKT_INSTANCE_ID",
        help="<seed tx hash>-<output index>-<hex name>; filled in after Deploy.",
    )
    ctx["instance_id"] = (st.session_state.get("MKT_INSTANCE_ID") or "").strip()

    last = st.session_state.get("LAST_TXID")
    if last:
        st.sidebar.caption(f"Last: {st.session_state.get('LAST_ACTION')} `{short_addr(last, 10, 6)}`")
    return ctx
