# backend/marketplace/instance.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
"""
Marketplace instance identity and the scripts derived from it.

An instance is pinned by the UTXO consumed at Initialize (the seed) plus an
operator-chosen name. Its canonical text form is::

    <seed tx hash hex>-<seed output index>-<hex(utf8 name)>

Every script hash and address of the instance is a pure function of that
identity: the control policy is parameterized by the seed output reference,
and both spending validators by the control policy id.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final, Protocol

from pycardano import (
    Address,
    Network,
    PlutusV3Script,
    ScriptHash,
    TransactionId,
    TransactionInput,
    UTxO,
    plutus_script_hash,
)

from .assets import AssetId
from .datums import OutputReference
from .errors import InvalidInstanceId

CONFIG_TOKEN_NAME: Final[bytes] = b"MarketplaceConfig"
OWNERSHIP_TOKEN_NAME: Final[bytes] = b"Ownership"

_INSTANCE_RE = re.compile(r"^([0-9a-fA-F]{64})-(\d+)-([0-9a-fA-F]*)$")


@dataclass(frozen=True)
class InstanceId:
    tx_hash: str
    output_index: int
    name: str

    @classmethod
    def parse(cls, text: str) -> InstanceId:
        """Parse ``<txhash>-<index>-<hex name>``; raises InvalidInstanceId."""
        m = _INSTANCE_RE.match((text or "").strip())
        if not m:
            raise InvalidInstanceId(
                f"Instance id must look like <64 hex tx hash>-<index>-<hex name>. Got: {text!r}"
            )
        tx_hash, index, name_hex = m.groups()
        if len(name_hex) % 2:
            raise InvalidInstanceId(f"Instance name hex has odd length: {name_hex!r}")
        try:
            name = bytes.fromhex(name_hex).decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidInstanceId(f"Instance name is not UTF-8: {name_hex!r}") from e
        return cls(tx_hash.lower(), int(index), name)

    @classmethod
    def from_seed(cls, seed: UTxO, name: str) -> InstanceId:
        return cls(seed.input.transaction_id.payload.hex(), seed.input.index, name)

    def seed_reference(self) -> OutputReference:
        return OutputReference(bytes.fromhex(self.tx_hash), self.output_index)

    def seed_input(self) -> TransactionInput:
        return TransactionInput(TransactionId(bytes.fromhex(self.tx_hash)), self.output_index)

    def __str__(self) -> str:
        return f"{self.tx_hash}-{self.output_index}-{self.name.encode('utf-8').hex()}"


class ScriptFactory(Protocol):
    """Source of the compiled, parameter-applied validators."""

    def control_policy(self, seed: OutputReference) -> PlutusV3Script: ...

    def config_validator(self, control_policy_id: bytes) -> PlutusV3Script: ...

    def marketplace_validator(self, control_policy_id: bytes) -> PlutusV3Script: ...


@dataclass(frozen=True)
class MarketplaceScripts:
    """Every script, hash and address of one marketplace instance."""

    instance: InstanceId
    control_policy: PlutusV3Script
    control_policy_id: ScriptHash
    config_validator: PlutusV3Script
    config_address: Address
    marketplace_validator: PlutusV3Script
    marketplace_hash: ScriptHash
    marketplace_address: Address

    @property
    def config_asset(self) -> AssetId:
        return AssetId(self.control_policy_id.payload, CONFIG_TOKEN_NAME)

    @property
    def ownership_asset(self) -> AssetId:
        return AssetId(self.control_policy_id.payload, OWNERSHIP_TOKEN_NAME)

    def to_dict(self) -> dict:
        return {
            "instance_id": str(self.instance),
            "control_policy_id": self.control_policy_id.payload.hex(),
            "config_address": str(self.config_address),
            "marketplace_hash": self.marketplace_hash.payload.hex(),
            "marketplace_address": str(self.marketplace_address),
        }


def derive_scripts(
    instance: InstanceId, factory: ScriptFactory, network: Network
) -> MarketplaceScripts:
    """Apply the instance parameters and compute hashes and addresses."""
    control = factory.control_policy(instance.seed_reference())
    policy_id = plutus_script_hash(control)

    config = factory.config_validator(policy_id.payload)
    config_hash = plutus_script_hash(config)

    market = factory.marketplace_validator(policy_id.payload)
    market_hash = plutus_script_hash(market)

    return MarketplaceScripts(
        instance=instance,
        control_policy=control,
        control_policy_id=policy_id,
        config_validator=config,
        config_address=Address(payment_part=config_hash, network=network),
        marketplace_validator=market,
        marketplace_hash=market_hash,
        marketplace_address=Address(payment_part=market_hash, network=network),
    )
