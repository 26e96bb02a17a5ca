# backend/marketplace/errors.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
"""
Typed failures raised by the marketplace protocol.

Three families, each with a different reaction expected from the caller:

* ``PreconditionError``: detected locally *before* anything is submitted.
  Ledger state is untouched; fix the input (or re-query) and try again.
* ``LedgerRejection``: the ledger or the on-chain validator refused a
  submitted transaction. A double spend lands here too: re-resolve and
  re-attempt is the caller's decision, never an automatic retry.
* ``ConsistencyError``: protocol invariants are broken on chain (e.g. two
  live config UTXOs). Fatal; do not retry.
"""

from __future__ import annotations


class MarketplaceError(Exception):
    """Root of every failure surfaced by the marketplace package."""


# ---------------------------------------------------------------------------
# Precondition errors
# ---------------------------------------------------------------------------


class PreconditionError(MarketplaceError):
    """Raised before submission when an action's precondition does not hold."""


class InvalidRate(PreconditionError, ValueError):
    """Fee rate is not an integer in [0, 10000] basis points."""


class InvalidPrice(PreconditionError, ValueError):
    """Price is not a non-negative integer."""


class InvalidConfig(PreconditionError, ValueError):
    """Marketplace configuration failed local validation."""


class InvalidInstanceId(PreconditionError, ValueError):
    """Instance id text is not ``<txhash>-<index>-<hex name>``."""


class InvalidAssetUnit(PreconditionError, ValueError):
    """Asset unit string is neither ``lovelace`` nor ``<policy><name>`` hex."""


class UnsupportedAddressForm(PreconditionError, ValueError):
    """Address is not a Shelley-era payment address (Byron, reward, garbage)."""


class NotInitialized(PreconditionError):
    """Action needs a marketplace instance but none is configured."""


class AlreadyInitialized(PreconditionError):
    """Initialize called on an orchestrator that already has an instance."""


class ConfigMissing(PreconditionError):
    """No live config UTXO: the marketplace was shut down (or never published).

    Buy after shutdown fails with this error since the config UTXO it must
    cite as a reference input no longer exists.
    """


class ConfigAlreadyPublished(PreconditionError):
    """A config UTXO already exists; use update_config instead."""


class ListingNotFound(PreconditionError):
    """No listing UTXO holds the requested NFT."""


class MalformedDatum(PreconditionError):
    """Inline datum is missing or does not parse as the expected schema."""


class NoFeeRuleForAsset(PreconditionError):
    """Config has no fee rule for the listing's price asset."""


class NftNotInWallet(PreconditionError):
    """The wallet does not hold exactly one unit of the NFT to list."""


class OwnershipTokenMissing(PreconditionError):
    """The wallet does not hold the Ownership control token."""


class ConfigTokenMissing(PreconditionError):
    """The wallet does not hold the Config control token."""


class NoSpendableUtxo(PreconditionError):
    """The wallet has no UTXO to seed a new instance with."""


class SignerMismatch(PreconditionError):
    """The wallet key does not match the credential the action requires."""


class NotKeyCredential(PreconditionError):
    """A payment credential is a script hash where a key hash is required."""


class InsufficientFunds(PreconditionError):
    """The wallet cannot cover the outputs and fees of the transaction."""


# ---------------------------------------------------------------------------
# Ledger rejections
# ---------------------------------------------------------------------------


class LedgerRejection(MarketplaceError):
    """The ledger refused a submitted transaction."""


class ScriptExecutionFailed(LedgerRejection):
    """A validator or minting policy evaluated to failure."""


class InputAlreadySpent(LedgerRejection):
    """One of the consumed inputs was spent by a concurrent transaction."""


class MissingReferenceInput(LedgerRejection):
    """A cited reference input no longer exists on the ledger."""


# ---------------------------------------------------------------------------
# Consistency errors
# ---------------------------------------------------------------------------


class ConsistencyError(MarketplaceError):
    """On-chain state violates a protocol invariant."""


class MultipleConfigUtxos(ConsistencyError):
    """More than one UTXO holds the Config control token."""
