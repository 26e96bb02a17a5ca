# backend/marketplace/assets.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
"""
Asset identity and value helpers.

An asset is identified by a ``(policy id, asset name)`` byte pair. The pair
``(b"", b"")`` is reserved for the ledger's native unit (lovelace); everything
else is a native token. Unit strings follow the usual off-chain convention:
``"lovelace"`` or ``policy_hex + name_hex``.

Amounts are plain Python ints throughout. Values are converted to and from
``{unit: quantity}`` dicts for arithmetic, since that is easy to reason about
and to print.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Final

from pycardano import Asset, AssetName, MultiAsset, ScriptHash, UTxO, Value

from .errors import InvalidAssetUnit

NATIVE_UNIT: Final[str] = "lovelace"
POLICY_ID_LEN: Final[int] = 28
MAX_ASSET_NAME_LEN: Final[int] = 32


@dataclass(frozen=True)
class AssetId:
    """A (policy id, asset name) pair; ``(b"", b"")`` means lovelace."""

    policy: bytes
    name: bytes

    @classmethod
    def native(cls) -> AssetId:
        return cls(b"", b"")

    @classmethod
    def from_unit(cls, unit: str) -> AssetId:
        """Parse ``"lovelace"`` or ``<56 hex policy><0..64 hex name>``."""
        unit = (unit or "").strip()
        if unit == NATIVE_UNIT:
            return cls.native()
        try:
            raw = bytes.fromhex(unit)
        except ValueError as e:
            raise InvalidAssetUnit(f"Asset unit is not hex: {unit!r}") from e
        if len(raw) < POLICY_ID_LEN or len(raw) > POLICY_ID_LEN + MAX_ASSET_NAME_LEN:
            raise InvalidAssetUnit(
                f"Asset unit must be a 28-byte policy id plus at most 32 name bytes: {unit!r}"
            )
        return cls(raw[:POLICY_ID_LEN], raw[POLICY_ID_LEN:])

    @classmethod
    def from_text(cls, policy_hex: str, name: str) -> AssetId:
        """Build from a policy id in hex and a human-readable (UTF-8) name."""
        return cls.from_unit(policy_hex + name.encode("utf-8").hex())

    @property
    def is_native(self) -> bool:
        return self.policy == b"" and self.name == b""

    @property
    def unit(self) -> str:
        if self.is_native:
            return NATIVE_UNIT
        return self.policy.hex() + self.name.hex()

    @property
    def display_name(self) -> str:
        """Readable name: ``ADA`` for the native unit, UTF-8 name when decodable."""
        if self.is_native:
            return "ADA"
        try:
            return self.name.decode("utf-8")
        except UnicodeDecodeError:
            return self.name.hex()

    def value(self, quantity: int) -> Value:
        """A ``Value`` holding ``quantity`` of this asset and nothing else."""
        if self.is_native:
            return Value(coin=int(quantity))
        return Value(
            coin=0,
            multi_asset=MultiAsset(
                {ScriptHash(self.policy): Asset({AssetName(self.name): int(quantity)})}
            ),
        )

    def quantity_in(self, value: Value | int) -> int:
        """Quantity of this asset inside ``value`` (0 when absent)."""
        return value_to_units(value).get(self.unit, 0)

    def __str__(self) -> str:
        return self.unit


def value_to_units(value: Value | int) -> dict[str, int]:
    """Flatten a pycardano ``Value`` into ``{unit: quantity}`` (zeros dropped)."""
    if isinstance(value, int):
        return {NATIVE_UNIT: value} if value else {}
    out: dict[str, int] = {}
    if value.coin:
        out[NATIVE_UNIT] = int(value.coin)
    for policy, assets in (value.multi_asset or {}).items():
        for name, qty in assets.items():
            if qty:
                unit = policy.payload.hex() + name.payload.hex()
                out[unit] = out.get(unit, 0) + int(qty)
    return out


def units_to_value(units: Mapping[str, int]) -> Value:
    """Inverse of :func:`value_to_units`; zero quantities are skipped."""
    coin = 0
    tokens: dict[ScriptHash, Asset] = {}
    for unit, qty in units.items():
        if not qty:
            continue
        asset = AssetId.from_unit(unit)
        if asset.is_native:
            coin += int(qty)
            continue
        bucket = tokens.setdefault(ScriptHash(asset.policy), Asset())
        key = AssetName(asset.name)
        bucket[key] = bucket.get(key, 0) + int(qty)
    return Value(coin=coin, multi_asset=MultiAsset(tokens))


def holds_exactly(utxo: UTxO, asset: AssetId, quantity: int = 1) -> bool:
    return asset.quantity_in(utxo.output.amount) == quantity


def total_of(utxos: Iterable[UTxO], asset: AssetId) -> int:
    """Sum of ``asset`` across ``utxos``."""
    return sum(asset.quantity_in(u.output.amount) for u in utxos)
