# backend/marketplace/datums.py
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Joltkin LLC.
"""
On-chain data schemas (datums, redeemers, parameters).

Field order and constructor indices must match the compiled validators in
``artifacts/plutus.json``; the CBOR encoding itself is pycardano's.
"""

from dataclasses import dataclass
from typing import List, Type, TypeVar, Union

from pycardano import PlutusData, RawCBOR, RawPlutusData, UTxO
from pycardano.exception import DecodingException, DeserializeException

from .errors import MalformedDatum

# ---------------------------------------------------------------------------
# Address (Plutus ledger-api shape)
# ---------------------------------------------------------------------------


@dataclass
class VerificationKeyCredential(PlutusData):
    CONSTR_ID = 0
    key_hash: bytes


@dataclass
class ScriptCredential(PlutusData):
    CONSTR_ID = 1
    script_hash: bytes


Credential = Union[VerificationKeyCredential, ScriptCredential]


@dataclass
class InlineStake(PlutusData):
    CONSTR_ID = 0
    credential: Credential


@dataclass
class PointerStake(PlutusData):
    CONSTR_ID = 1
    slot: int
    tx_index: int
    cert_index: int


@dataclass
class SomeStake(PlutusData):
    CONSTR_ID = 0
    stake: Union[InlineStake, PointerStake]


@dataclass
class NoStake(PlutusData):
    CONSTR_ID = 1


@dataclass
class OnChainAddress(PlutusData):
    CONSTR_ID = 0
    payment: Credential
    stake: Union[SomeStake, NoStake]


# ---------------------------------------------------------------------------
# Datums
# ---------------------------------------------------------------------------


@dataclass
class ListingDatum(PlutusData):
    CONSTR_ID = 0
    seller: OnChainAddress
    price_policy: bytes
    price_name: bytes
    price_amount: int
    nft_policy: bytes
    nft_name: bytes


@dataclass
class TokenFee(PlutusData):
    CONSTR_ID = 0
    policy: bytes
    name: bytes
    fee_bps: int


@dataclass
class ConfigDatum(PlutusData):
    CONSTR_ID = 0
    fee_address: OnChainAddress
    fees: List[TokenFee]


# ---------------------------------------------------------------------------
# Redeemers
# ---------------------------------------------------------------------------


@dataclass
class Buy(PlutusData):
    CONSTR_ID = 0


@dataclass
class Delist(PlutusData):
    CONSTR_ID = 1


@dataclass
class Edit(PlutusData):
    CONSTR_ID = 2
    new_price: int


@dataclass
class Updating(PlutusData):
    CONSTR_ID = 0


@dataclass
class Burning(PlutusData):
    CONSTR_ID = 1


@dataclass
class Initialize(PlutusData):
    CONSTR_ID = 0


@dataclass
class Shutdown(PlutusData):
    CONSTR_ID = 1


# Control policy parameter.
@dataclass
class OutputReference(PlutusData):
    CONSTR_ID = 0
    transaction_id: bytes
    output_index: int


D = TypeVar("D", bound=PlutusData)


def decode_inline_datum(utxo: UTxO, schema: Type[D]) -> D:
    """
    Decode the inline datum of ``utxo`` as ``schema``.

    Accepts whatever form the chain context handed back (an already typed
    instance, ``RawPlutusData``, ``RawCBOR`` or raw bytes).

    Raises:
        MalformedDatum: no inline datum, or it does not parse as ``schema``.
    """
    datum = utxo.output.datum
    where = f"{utxo.input.transaction_id.payload.hex()}#{utxo.input.index}"
    if datum is None:
        raise MalformedDatum(f"UTXO {where} carries no inline datum")
    if isinstance(datum, schema):
        return datum
    try:
        if isinstance(datum, (PlutusData, RawPlutusData)):
            cbor = datum.to_cbor()
        elif isinstance(datum, RawCBOR):
            cbor = datum.cbor
        elif isinstance(datum, (bytes, bytearray)):
            cbor = bytes(datum)
        else:
            raise MalformedDatum(
                f"UTXO {where} has an unsupported datum type {type(datum).__name__}"
            )
        return schema.from_cbor(cbor)
    except (DecodingException, DeserializeException, ValueError, TypeError, KeyError, IndexError) as e:
        raise MalformedDatum(f"UTXO {where} datum is not a {schema.__name__}: {e}") from e
