# frontend/streamlit_app/pages/admin.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Owner administration: status, fee schedule, publish/update config, shutdown.

All writes need the owner wallet holding the Ownership token. Shutdown burns
both control tokens; afterwards Buy stops working, while sellers can still
delist.
"""

import streamlit as st

from core.clients import orchestrator_for
from marketplace.errors import ConfigMissing
from marketplace.model import MarketplaceConfig
from services.marketplace import format_fee_table, parse_fee_table
from ui.components import fee_rules_table, show_error, tx_result
from ui.keys import keyer
from ui.layout import step

K = keyer("admin")


def render(ctx: dict) -> None:
    guided = bool(ctx.get("GUIDED_MODE"))
    owner_mn = ctx.get("owner_mn")
    if not ctx.get("instance_id"):
        st.info("Set a marketplace instance id in the sidebar (or deploy one first).")
        return
    if not owner_mn:
        st.info("Enter the owner mnemonic in the sidebar.")
        return

    try:
        orch = orchestrator_for(owner_mn, ctx["instance_id"])
        status = orch.status()
    except Exception as e:
        show_error("Loading instance", e)
        return

    step(1, "Status", guided)
    st.write(f"Instance `{orch.scripts.instance}` is **{status.value}**.")
    with st.expander("Scripts and addresses"):
        st.json(orch.scripts.to_dict())

    current = None
    try:
        current = orch.config().config
    except ConfigMissing:
        st.warning(
            "No live config UTXO. Either it was never published (the Config token is "
            "still in the owner wallet) or the marketplace was shut down; remaining "
            "listings can then only be delisted."
        )
    except Exception as e:
        show_error("Loading config", e)
        return

    step(2, "Fee schedule", guided)
    if current is not None:
        st.caption(f"Fee address: `{current.fee_address}`")
        fee_rules_table(current.fee_rules)

    fee_addr = st.text_input(
        "Fee address",
        value=str(current.fee_address) if current else (ctx.get("owner_addr") or ""),
        key=K("fee_addr"),
    )
    fees_text = st.text_area(
        "Fee rules (one `<unit>=<bps>` per line)",
        value=format_fee_table(current.fee_rules) if current else "lovelace=250",
        key=K("fees"),
    )
    label = "Update config" if current is not None else "Publish config"
    if st.button(label, type="primary", key=K("save")):
        try:
            config = MarketplaceConfig.build(fee_addr.strip(), parse_fee_table(fees_text))
            with st.spinner(f"Submitting {label.lower()}…"):
                if current is not None:
                    tx_id = orch.update_config(config)
                else:
                    tx_id = orch.publish_config(config)
            tx_result(label, tx_id)
        except Exception as e:
            show_error(label, e)

    step(3, "Shut down", guided)
    st.caption("Burns the Ownership and Config tokens. This cannot be undone.")
    confirm = st.checkbox("I understand Buy stops working for every listing", key=K("confirm"))
    if st.button("Shut down marketplace", disabled=not confirm, key=K("shutdown")):
        try:
            with st.spinner("Submitting shutdown…"):
                tx_id = orch.shutdown()
            tx_result("Shutdown", tx_id)
        except Exception as e:
            show_error("Shutdown", e)
