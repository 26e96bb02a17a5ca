# frontend/streamlit_app/services/marketplace.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Marketplace helpers for the console.

Pure functions only (no Streamlit, no network) so they can be unit tested:
  • parsing operator input (fee tables, asset and NFT units, prices in ADA)
  • formatting amounts, addresses and explorer links
  • shaping listings and fee splits into table rows

Chain access lives in core/clients.py; transaction logic lives in the
`marketplace` package.
"""

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from typing import Optional

from pycardano import Network

from marketplace.assets import AssetId
from marketplace.errors import InvalidAssetUnit, InvalidConfig, InvalidPrice, MarketplaceError
from marketplace.fees import compute_split
from marketplace.model import FeeRule, Listing
from marketplace.wallet import wallet_from_mnemonic

LOVELACE_PER_ADA = 1_000_000


# =============================================================================
# Parsing
# =============================================================================


def parse_fee_table(text: str) -> list[FeeRule]:
    """
    Parse one fee rule per line: ``<unit>=<bps>`` or ``<unit> <bps>``.

    Blank lines and ``#`` comments are ignored; ``ada`` is accepted as an
    alias for ``lovelace``. Duplicate detection is left to
    ``MarketplaceConfig.validate``.

    Raises:
        InvalidConfig: a line does not parse (message names the line).
    """
    rules: list[FeeRule] = []
    for lineno, raw in enumerate((text or "").splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        parts = line.replace("=", " ").split()
        if len(parts) != 2:
            raise InvalidConfig(f"Line {lineno}: expected '<unit>=<bps>', got {raw!r}")
        unit, bps = parts
        if unit.lower() == "ada":
            unit = "lovelace"
        try:
            rules.append(FeeRule(AssetId.from_unit(unit), int(bps, 10)))
        except (MarketplaceError, ValueError) as e:
            raise InvalidConfig(f"Line {lineno}: {e}") from e
    return rules


def format_fee_table(rules: Iterable[FeeRule]) -> str:
    """Inverse of :func:`parse_fee_table` (one ``unit=bps`` per line)."""
    return "\n".join(f"{r.asset.unit}={r.fee_bps}" for r in rules)


def ada_to_lovelace(text: str) -> int:
    """``"12.5"`` → ``12_500_000``; at most 6 decimals, never negative."""
    try:
        amount = Decimal((text or "").strip())
    except InvalidOperation as e:
        raise InvalidPrice(f"Not a number: {text!r}") from e
    lovelace = amount * LOVELACE_PER_ADA
    if lovelace != lovelace.to_integral_value() or lovelace < 0:
        raise InvalidPrice(f"ADA amount must be >= 0 with at most 6 decimals: {text!r}")
    return int(lovelace)


def parse_asset(text: str) -> AssetId:
    """Asset unit from operator input; blank, ``ada`` and ``lovelace`` mean ADA."""
    t = (text or "").strip()
    if t.lower() in ("", "ada", "lovelace"):
        return AssetId.native()
    return AssetId.from_unit(t)


def parse_nft(text: str) -> AssetId:
    """
    NFT unit from operator input. Unlike :func:`parse_asset`, blank input and
    ADA are rejected: an NFT is always a native token.

    Raises:
        InvalidAssetUnit: blank, ``ada``/``lovelace``, or not a valid unit.
    """
    asset = parse_asset(text)
    if asset.is_native:
        raise InvalidAssetUnit("Enter the NFT unit (policy id + asset name hex)")
    return asset


# =============================================================================
# Formatting
# =============================================================================


def fmt_ada(lovelace: int) -> str:
    return f"{lovelace / LOVELACE_PER_ADA:,.6f} ADA"


def fmt_amount(asset: AssetId, qty: int) -> str:
    return fmt_ada(qty) if asset.is_native else f"{qty:,} {asset.display_name}"


def short_addr(addr: Optional[str], prefix: int = 12, suffix: int = 6) -> str:
    if not addr:
        return "—"
    if len(addr) <= prefix + suffix + 1:
        return addr
    return f"{addr[:prefix]}…{addr[-suffix:]}"


def explorer_tx_url(base_url: str, tx_id: str) -> str:
    return f"{base_url.rstrip('/')}/transaction/{tx_id}"


def listing_rows(listings: Iterable[Listing]) -> list[dict]:
    """Table rows for the Trade tab, in the order given."""
    return [
        {
            "NFT": l.nft.display_name,
            "Unit": l.nft.unit,
            "Price": fmt_amount(l.price_asset, l.price_amount),
            "Seller": short_addr(str(l.seller)),
            "UTXO": l.out_ref,
        }
        for l in listings
    ]


def split_preview(price: int, rate_bps: int) -> dict[str, int]:
    """Fee split for display; same integer arithmetic the validator checks."""
    s = compute_split(price, rate_bps)
    return {"price": price, "fee_bps": rate_bps, "fee": s.fee, "seller_amount": s.seller_amount}


def addr_from_mn(mn: Optional[str], network: Network) -> Optional[str]:
    """Bech32 address for a mnemonic, or None when blank/invalid."""
    if not mn or not mn.strip():
        return None
    try:
        return str(wallet_from_mnemonic(mn, network).address)
    except MarketplaceError:
        return None
