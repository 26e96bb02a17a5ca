# backend/marketplace/address.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
"""
Bech32 address <-> on-chain address record.

Validators see addresses as ``OnChainAddress`` (payment credential plus an
optional stake reference). Only Shelley-era payment addresses are supported:
base, pointer and enterprise, each with a key or script payment part. Byron
bootstrap addresses and reward-only (stake) addresses are rejected.
"""

from __future__ import annotations

from typing import Union

from pycardano import Address, Network, ScriptHash, VerificationKeyHash
from pycardano.address import AddressType, PointerAddress
from pycardano.exception import (
    DecodingException,
    DeserializeException,
    InvalidAddressInputException,
)

from .datums import (
    InlineStake,
    NoStake,
    OnChainAddress,
    PointerStake,
    ScriptCredential,
    SomeStake,
    VerificationKeyCredential,
)
from .errors import NotKeyCredential, UnsupportedAddressForm

_PAYMENT_TYPES = (VerificationKeyHash, ScriptHash)


def parse_address(address: Union[str, Address]) -> Address:
    """Parse a bech32 string into a pycardano ``Address`` (Shelley payment forms only)."""
    if isinstance(address, Address):
        parsed = address
    else:
        text = (address or "").strip()
        if not text.startswith("addr"):
            raise UnsupportedAddressForm(
                f"Not a Shelley payment address (expected addr/addr_test prefix): {text!r}"
            )
        try:
            parsed = Address.from_primitive(text)
        except (
            DecodingException,
            DeserializeException,
            InvalidAddressInputException,
            TypeError,
            ValueError,
        ) as e:
            raise UnsupportedAddressForm(f"Cannot decode address {text!r}: {e}") from e

    if getattr(parsed, "address_type", None) == AddressType.BYRON:
        raise UnsupportedAddressForm("Byron bootstrap addresses are not supported")
    if not isinstance(parsed.payment_part, _PAYMENT_TYPES):
        raise UnsupportedAddressForm(
            f"Address has no payment credential (reward address?): {parsed}"
        )
    return parsed


def _credential(part: Union[VerificationKeyHash, ScriptHash]):
    if isinstance(part, VerificationKeyHash):
        return VerificationKeyCredential(part.payload)
    return ScriptCredential(part.payload)


def _hash_of(credential) -> Union[VerificationKeyHash, ScriptHash]:
    if isinstance(credential, VerificationKeyCredential):
        return VerificationKeyHash(credential.key_hash)
    if isinstance(credential, ScriptCredential):
        return ScriptHash(credential.script_hash)
    raise UnsupportedAddressForm(f"Unknown credential variant: {credential!r}")


def decode_address(address: Union[str, Address]) -> OnChainAddress:
    """
    Convert a bech32 address (or pycardano ``Address``) into its on-chain record.

    Raises:
        UnsupportedAddressForm: Byron, reward-only, or undecodable input.
    """
    parsed = parse_address(address)
    payment = _credential(parsed.payment_part)

    staking = parsed.staking_part
    if staking is None:
        stake = NoStake()
    elif isinstance(staking, PointerAddress):
        stake = SomeStake(PointerStake(staking.slot, staking.tx_index, staking.cert_index))
    elif isinstance(staking, _PAYMENT_TYPES):
        stake = SomeStake(InlineStake(_credential(staking)))
    else:
        raise UnsupportedAddressForm(f"Unsupported stake reference: {staking!r}")
    return OnChainAddress(payment, stake)


def encode_address(onchain: OnChainAddress, network: Network) -> Address:
    """Inverse of :func:`decode_address` for the given ``network``."""
    payment = _hash_of(onchain.payment)

    stake = onchain.stake
    if isinstance(stake, NoStake):
        staking = None
    elif isinstance(stake, SomeStake) and isinstance(stake.stake, InlineStake):
        staking = _hash_of(stake.stake.credential)
    elif isinstance(stake, SomeStake) and isinstance(stake.stake, PointerStake):
        ptr = stake.stake
        staking = PointerAddress(ptr.slot, ptr.tx_index, ptr.cert_index)
    else:
        raise UnsupportedAddressForm(f"Unknown stake variant: {stake!r}")
    return Address(payment_part=payment, staking_part=staking, network=network)


def payment_key_hash(onchain: OnChainAddress) -> VerificationKeyHash:
    """Key hash of the payment credential; scripts cannot sign."""
    if not isinstance(onchain.payment, VerificationKeyCredential):
        raise NotKeyCredential("Payment credential is a script hash, not a key hash")
    return VerificationKeyHash(onchain.payment.key_hash)
