# backend/marketplace/blueprint.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
"""
Load the pre-compiled validators from a CIP-57 blueprint (plutus.json) and
apply instance parameters to them.

The validator bytecode is consumed as-is; the only transformation is UPLC
parameter application, which is what makes the policy id unique per seed.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Union

import uplc
import uplc.ast
from pycardano import PlutusV3Script

from .datums import OutputReference
from .errors import MarketplaceError

log = logging.getLogger(__name__)

DEFAULT_BLUEPRINT = Path(__file__).resolve().parent / "artifacts" / "plutus.json"

CONFIG_VALIDATOR = "config_validator.config_validator.spend"
MARKETPLACE_VALIDATOR = "marketplace.marketplace.spend"
CONTROL_POLICY = "marketplace_control.marketplace_control.mint"


class BlueprintError(MarketplaceError):
    """Blueprint file is missing, unreadable, or lacks a required validator."""


@lru_cache(maxsize=8)
def _load(path: str) -> dict[str, str]:
    try:
        doc = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise BlueprintError(f"Cannot read blueprint {path}: {e}") from e
    version = str(doc.get("preamble", {}).get("plutusVersion", "")).lower()
    if version != "v3":
        raise BlueprintError(f"Blueprint {path} targets Plutus {version or '?'}; v3 required")
    codes = {v["title"]: v["compiledCode"] for v in doc.get("validators", [])}
    log.debug("Loaded %d validators from %s", len(codes), path)
    return codes


def apply_params(compiled_hex: str, *params: uplc.ast.PlutusData) -> bytes:
    """Apply Plutus data arguments to a CBOR-wrapped flat program, in order."""
    program = uplc.unflatten(bytes.fromhex(compiled_hex))
    term = program.term
    for p in params:
        term = uplc.ast.Apply(term, p)
    return uplc.flatten(uplc.ast.Program(program.version, term))


class BlueprintScripts:
    """ScriptFactory backed by a blueprint file."""

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path) if path else DEFAULT_BLUEPRINT
        self._codes = _load(str(self.path))
        for title in (CONFIG_VALIDATOR, MARKETPLACE_VALIDATOR, CONTROL_POLICY):
            if title not in self._codes:
                raise BlueprintError(f"Blueprint {self.path} has no validator {title!r}")

    def control_policy(self, seed: OutputReference) -> PlutusV3Script:
        arg = uplc.ast.data_from_cbor(seed.to_cbor())
        return PlutusV3Script(apply_params(self._codes[CONTROL_POLICY], arg))

    def config_validator(self, control_policy_id: bytes) -> PlutusV3Script:
        arg = uplc.ast.PlutusByteString(control_policy_id)
        return PlutusV3Script(apply_params(self._codes[CONFIG_VALIDATOR], arg))

    def marketplace_validator(self, control_policy_id: bytes) -> PlutusV3Script:
        arg = uplc.ast.PlutusByteString(control_policy_id)
        return PlutusV3Script(apply_params(self._codes[MARKETPLACE_VALIDATOR], arg))
