# backend/marketplace/wallet.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
"""
Mnemonic -> signing key + base address (CIP-1852, account 0, index 0).
"""

from __future__ import annotations

from dataclasses import dataclass

from pycardano import (
    Address,
    HDWallet,
    Network,
    PaymentExtendedSigningKey,
    StakeExtendedSigningKey,
)

from .errors import MarketplaceError

PAYMENT_PATH = "m/1852'/1815'/0'/0/0"
STAKE_PATH = "m/1852'/1815'/0'/2/0"


class InvalidMnemonic(MarketplaceError, ValueError):
    """Mnemonic is missing or not a valid BIP-39 phrase."""


@dataclass(frozen=True)
class Wallet:
    signing_key: PaymentExtendedSigningKey
    address: Address


def wallet_from_mnemonic(phrase: str, network: Network) -> Wallet:
    phrase = " ".join((phrase or "").split())
    if len(phrase.split()) not in (12, 15, 18, 21, 24):
        raise InvalidMnemonic("Expected a 12-24 word BIP-39 mnemonic")
    try:
        root = HDWallet.from_mnemonic(phrase)
    except ValueError as e:
        raise InvalidMnemonic(f"Invalid mnemonic: {e}") from e

    payment_sk = PaymentExtendedSigningKey.from_hdwallet(root.derive_from_path(PAYMENT_PATH))
    stake_sk = StakeExtendedSigningKey.from_hdwallet(root.derive_from_path(STAKE_PATH))
    payment_vk = payment_sk.to_verification_key()
    address = Address(
        payment_part=payment_vk.hash(),
        staking_part=stake_sk.to_verification_key().hash(),
        network=network,
    )
    return Wallet(signing_key=payment_sk, address=address)
