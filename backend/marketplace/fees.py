# backend/marketplace/fees.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
"""
Fee arithmetic for marketplace purchases.

The on-chain validator recomputes the split from the listing datum and the
config datum and compares it bit-for-bit with the transaction outputs, so the
off-chain side must produce the identical integer result:

    fee           = floor(price * rate_bps / 10_000)
    seller_amount = price - fee

Only Python ints are used (arbitrary precision, no overflow, no floats).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from .assets import AssetId
from .errors import InvalidPrice, InvalidRate, NoFeeRuleForAsset

if TYPE_CHECKING:
    from .model import FeeRule

BPS_DENOMINATOR: Final[int] = 10_000


@dataclass(frozen=True)
class FeeSplit:
    fee: int
    seller_amount: int

    @property
    def price(self) -> int:
        return self.fee + self.seller_amount


def _is_int(value: object) -> bool:
    # bool is an int subclass; True/False as a price or rate is a caller bug.
    return isinstance(value, int) and not isinstance(value, bool)


def validate_rate(rate_bps: object) -> int:
    """Return ``rate_bps`` if it is an int in [0, 10000], else raise InvalidRate."""
    if not _is_int(rate_bps) or not 0 <= rate_bps <= BPS_DENOMINATOR:
        raise InvalidRate(
            f"Fee rate must be an integer in [0, {BPS_DENOMINATOR}] bps. Got: {rate_bps!r}"
        )
    return rate_bps


def validate_price(price: object) -> int:
    """Return ``price`` if it is a non-negative int, else raise InvalidPrice."""
    if not _is_int(price) or price < 0:
        raise InvalidPrice(f"Price must be a non-negative integer. Got: {price!r}")
    return price


def compute_split(price: int, rate_bps: int) -> FeeSplit:
    """
    Split ``price`` into the marketplace fee and the seller's share.

    Args:
        price: Listing price in the smallest unit of the price asset (>= 0).
        rate_bps: Fee rate in basis points, 0..10000 inclusive.

    Returns:
        FeeSplit with ``fee + seller_amount == price`` and ``0 <= fee <= price``.

    Raises:
        InvalidRate: rate outside [0, 10000] or not an int.
        InvalidPrice: negative or non-int price.
    """
    validate_rate(rate_bps)
    validate_price(price)
    fee = price * rate_bps // BPS_DENOMINATOR
    return FeeSplit(fee=fee, seller_amount=price - fee)


def fee_rule_for(rules: Iterable[FeeRule], asset: AssetId) -> FeeRule:
    """
    Return the fee rule whose asset equals ``asset`` exactly.

    There is no wildcard and no default rate: an asset missing from the fee
    table blocks Buy until the config is updated.
    """
    for rule in rules:
        if rule.asset == asset:
            return rule
    raise NoFeeRuleForAsset(f"No fee rule configured for price asset {asset.unit}")
