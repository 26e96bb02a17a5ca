# frontend/streamlit_app/ui/keys.py
# SPDX-License-Identifier: Apache-2.0
"""Widget keys for the console.

Every widget gets an explicit key namespaced by its tab, so that forms with the
same labels on Deploy, Trade and Admin never collide across reruns:

    from ui.keys import k

    price = st.text_input("Price", key=k("trade", "list_price"))
"""

from __future__ import annotations

from collections.abc import Callable


def k(page: str, name: str) -> str:
    """Return ``"<page>:<name>"``; pass literals, never user input."""
    return f"{page}:{name}"


def keyer(page: str) -> Callable[[str], str]:
    """Bind `page` once for a module: ``K = keyer("admin"); K("fees")``."""
    return lambda name: k(page, name)
