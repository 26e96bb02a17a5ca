# frontend/streamlit_app/pages/deploy.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Deploy a marketplace instance (owner wallet).

One click mints the Ownership and Config tokens under a policy bound to the
owner's lowest wallet UTXO. With "Publish config now" the Config token goes
straight to the config address with the fee schedule below; otherwise it
stays in the wallet and the Admin tab publishes it later.

The resulting instance id is copied into the sidebar so Trade and Admin act
on the new instance.
"""

import streamlit as st

from core.clients import orchestrator_for
from marketplace.model import MarketplaceConfig
from services.marketplace import parse_fee_table
from ui.components import show_error, tx_result
from ui.keys import keyer
from ui.layout import stack_or_columns_spec, step

K = keyer("deploy")

DEFAULT_FEES = "lovelace=250\n"


def render(ctx: dict) -> None:
    guided = bool(ctx.get("GUIDED_MODE"))
    owner_mn, owner_addr = ctx.get("owner_mn"), ctx.get("owner_addr")

    left, right = stack_or_columns_spec([3, 2], guided)
    with left:
        step(1, "Instance and fee schedule", guided)
        name = st.text_input("Instance name", value="market", key=K("name"))
        fee_addr = st.text_input(
            "Fee address",
            value=owner_addr or "",
            key=K("fee_addr"),
            help="Shelley address that receives marketplace fees (defaults to the owner).",
        )
        fees_text = st.text_area(
            "Fee rules (one `<unit>=<bps>` per line)",
            value=DEFAULT_FEES,
            key=K("fees"),
            help="`lovelace` (or `ada`) for ADA; policy id + asset name hex for tokens. 250 bps = 2.5%.",
        )
        publish_now = st.checkbox("Publish config now", value=True, key=K("publish_now"))

    with right:
        step(2, "Mint control tokens", guided)
        if not owner_mn:
            st.info("Enter the owner mnemonic in the sidebar.")
            return
        if ctx.get("instance_id"):
            st.caption(f"Sidebar currently targets `{ctx['instance_id']}`; deploying creates a new one.")

        if st.button("Deploy marketplace", type="primary", key=K("go")):
            try:
                config = None
                if publish_now:
                    config = MarketplaceConfig.build(fee_addr.strip(), parse_fee_table(fees_text))
                orch = orchestrator_for(owner_mn, None)
                with st.spinner("Submitting initialize…"):
                    tx_id = orch.initialize(name.strip(), config)
                scripts = orch.scripts
                st.session_state["PENDING_INSTANCE_ID"] = str(scripts.instance)
                tx_result("Initialize", tx_id)
                st.code(str(scripts.instance), language=None)
                st.json(scripts.to_dict())
                if config is None:
                    st.info("Config token is in the owner wallet; publish it from the Admin tab.")
            except Exception as e:
                show_error("Deploy", e)
