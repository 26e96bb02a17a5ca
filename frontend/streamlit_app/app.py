# frontend/streamlit_app/app.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

__doc__ = """NFT Marketplace: Operator Console (Streamlit).

Entrypoint wiring the page chrome, the sidebar (wallets, instance id) and
three tabs:
  1) Deploy  : mint control tokens, optionally publish the fee config
  2) Trade   : browse listings; list, edit, delist and buy
  3) Admin   : fee schedule updates and shutdown (owner only)

Run from the repo root:
    streamlit run frontend/streamlit_app/app.py

Sibling packages (ui/, pages/, core/, services/) are imported by putting this
directory on sys.path; the `marketplace` library comes from the installed
package (`pip install -e .`).
"""

# ────────────────────── sys.path bootstrap for local packages ─────────────────
import pathlib
import sys

APP_DIR = pathlib.Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))
# ──────────────────────────────────────────────────────────────────────────────

from typing import Final

import streamlit as st

from pages import admin, deploy, trade
from ui.layout import configure_page
from ui.sidebar import render_sidebar_and_status

configure_page(title="NFT Marketplace Console")

ctx: dict = render_sidebar_and_status()

TAB_TITLES: Final[list[str]] = ["Deploy", "Trade", "Admin"]
tab_deploy, tab_trade, tab_admin = st.tabs(TAB_TITLES)

with tab_deploy:
    deploy.render(ctx)

with tab_trade:
    trade.render(ctx)

with tab_admin:
    admin.render(ctx)
