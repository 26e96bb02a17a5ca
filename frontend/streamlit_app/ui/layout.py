# frontend/streamlit_app/ui/layout.py
# SPDX-License-Identifier: Apache-2.0
"""Page chrome and the guided/compact layout switch.

- `configure_page` must run before any other Streamlit call.
- `stack_or_columns_spec` returns stacked containers in guided mode and
  `st.columns(spec)` otherwise, so pages write one code path for both.
"""

from __future__ import annotations

from collections.abc import Sequence

import streamlit as st
from streamlit.delta_generator import DeltaGenerator


def configure_page(title: str) -> None:
    st.set_page_config(page_title=title, page_icon="🖼️", layout="wide")
    st.title(f"🖼️ {title}")


def stack_or_columns_spec(
    spec: int | Sequence[float] | Sequence[int],
    guided: bool,
) -> list[DeltaGenerator]:
    """Containers for `spec` slots: stacked when `guided`, else side by side.

    In guided mode only the slot count of `spec` matters.
    """
    if guided:
        count = spec if isinstance(spec, int) else len(spec)
        return [st.container() for _ in range(count)]
    return st.columns(spec)


def step(n: int, title: str, guided: bool) -> None:
    """Numbered step heading in guided mode, plain subheader otherwise."""
    st.subheader(f"Step {n}: {title}" if guided else title)
