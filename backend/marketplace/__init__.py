# backend/marketplace/__init__.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
"""Off-chain transaction protocol for the Plutus V3 NFT marketplace."""

from .assets import AssetId
from .errors import ConsistencyError, LedgerRejection, MarketplaceError, PreconditionError
from .fees import FeeSplit, compute_split
from .instance import InstanceId
from .model import FeeRule, Listing, MarketplaceConfig
from .orchestrator import MarketplaceOrchestrator, MarketplaceStatus

__all__ = [
    "AssetId",
    "ConsistencyError",
    "FeeRule",
    "FeeSplit",
    "InstanceId",
    "LedgerRejection",
    "Listing",
    "MarketplaceConfig",
    "MarketplaceError",
    "MarketplaceOrchestrator",
    "MarketplaceStatus",
    "PreconditionError",
    "compute_split",
]
