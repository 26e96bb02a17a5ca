"""
Shared fixtures: an in-memory ledger emulator and stub validators.

The emulator keeps a UTXO set, consumes the whole wallet on every submission
(change returns to the wallet), and re-checks the rules the real validators
enforce so rejection paths can be tested without a node:
- inputs and reference inputs must exist
- a bought listing must hold the NFT its datum names
- required signers must be the submitting wallet
- spending and minting follow the marketplace, config and control rules,
  including the accumulated Buy payment check
"""

import hashlib
import os
from dataclasses import dataclass

import pytest

os.environ.setdefault("CARDANO_NETWORK", "preprod")

from pycardano import (
    Address,
    Network,
    PlutusV3Script,
    TransactionId,
    TransactionInput,
    TransactionOutput,
    UTxO,
    Value,
    VerificationKeyHash,
    plutus_script_hash,
)

from marketplace.assets import AssetId, holds_exactly, units_to_value, value_to_units
from marketplace.datums import (
    Buy,
    Burning,
    ConfigDatum,
    Delist,
    Edit,
    Initialize,
    ListingDatum,
    OutputReference,
    Shutdown,
    Updating,
    decode_inline_datum,
)
from marketplace.errors import (
    InputAlreadySpent,
    InsufficientFunds,
    MarketplaceError,
    MissingReferenceInput,
    ScriptExecutionFailed,
)
from marketplace.fees import compute_split, fee_rule_for
from marketplace.instance import CONFIG_TOKEN_NAME, OWNERSHIP_TOKEN_NAME
from marketplace.ledger import TxPlan
from marketplace.model import FeeRule, MarketplaceConfig
from marketplace.orchestrator import MarketplaceOrchestrator
from marketplace.resolvers import decode_listing

ADA = 1_000_000
MIN_UTXO = 1_000_000
TX_FEE = 200_000

CONTROL_TAG = b"control:"
CONFIG_TAG = b"config:"
MARKET_TAG = b"market:"


# ============================================================
# Stub validators
# ============================================================


class StubScripts:
    """Script factory whose bytecode is just a tag plus the parameter."""

    def control_policy(self, seed: OutputReference) -> PlutusV3Script:
        return PlutusV3Script(
            CONTROL_TAG + bytes(seed.transaction_id) + seed.output_index.to_bytes(4, "big")
        )

    def config_validator(self, control_policy_id: bytes) -> PlutusV3Script:
        return PlutusV3Script(CONFIG_TAG + control_policy_id)

    def marketplace_validator(self, control_policy_id: bytes) -> PlutusV3Script:
        return PlutusV3Script(MARKET_TAG + control_policy_id)


def _param(script: PlutusV3Script, tag: bytes) -> bytes:
    return bytes(script)[len(tag):]


def key_address(tag: int) -> Address:
    return Address(payment_part=VerificationKeyHash(bytes([tag]) * 28), network=Network.TESTNET)


def nft_asset(name: str, policy_tag: int = 0x11) -> AssetId:
    return AssetId(bytes([policy_tag]) * 28, name.encode())


# ============================================================
# Ledger emulator
# ============================================================


def _ref(u: UTxO) -> tuple[bytes, int]:
    return (u.input.transaction_id.payload, u.input.index)


def _add(into: dict, units: dict, sign: int = 1) -> None:
    for unit, qty in units.items():
        into[unit] = into.get(unit, 0) + sign * qty


class EmulatedChain:
    """Shared UTXO set; hand out one ``EmulatedLedger`` per wallet."""

    def __init__(self, network: Network = Network.TESTNET):
        self.network = network
        self.utxos: dict[tuple[bytes, int], UTxO] = {}
        self._tx_counter = 0
        self.submitted: list[str] = []

    def _next_tx_id(self) -> TransactionId:
        self._tx_counter += 1
        return TransactionId(hashlib.sha256(f"tx-{self._tx_counter}".encode()).digest())

    def _emit(self, outputs: list[TransactionOutput]) -> str:
        tx_id = self._next_tx_id()
        for i, out in enumerate(outputs):
            u = UTxO(TransactionInput(tx_id, i), out)
            self.utxos[_ref(u)] = u
        return tx_id.payload.hex()

    def fund(self, address: Address, lovelace: int, *tokens: tuple[AssetId, int]) -> UTxO:
        units = {"lovelace": lovelace}
        for asset, qty in tokens:
            _add(units, {asset.unit: qty})
        tx_id = self._emit([TransactionOutput(address, units_to_value(units))])
        return self.utxos[(bytes.fromhex(tx_id), 0)]

    def put(self, output: TransactionOutput) -> UTxO:
        """Place an arbitrary output on chain (e.g. a hand-crafted listing)."""
        tx_id = self._emit([output])
        return self.utxos[(bytes.fromhex(tx_id), 0)]

    def at(self, address: Address) -> list[UTxO]:
        return [u for u in self.utxos.values() if str(u.output.address) == str(address)]

    def balance(self, address: Address, asset: AssetId = AssetId.native()) -> int:
        return sum(asset.quantity_in(u.output.amount) for u in self.at(address))

    def ledger(self, address: Address) -> "EmulatedLedger":
        return EmulatedLedger(self, address)


class EmulatedLedger:
    """``Ledger`` for one wallet on an ``EmulatedChain``."""

    def __init__(self, chain: EmulatedChain, address: Address):
        self.chain = chain
        self.address = address

    @property
    def network(self) -> Network:
        return self.chain.network

    def utxos_at(self, address: Address) -> list[UTxO]:
        return self.chain.at(address)

    def utxos_with_unit(self, address: Address, unit: str) -> list[UTxO]:
        asset = AssetId.from_unit(unit)
        return [u for u in self.chain.at(address) if asset.quantity_in(u.output.amount) > 0]

    def wallet_address(self) -> Address:
        return self.address

    def wallet_utxos(self) -> list[UTxO]:
        return self.chain.at(self.address)

    # --------------------------------------------------------
    # Submission
    # --------------------------------------------------------

    def submit(self, plan: TxPlan) -> str:
        chain = self.chain
        explicit = list(plan.wallet_inputs) + [s.utxo for s in plan.script_inputs]
        for u in explicit:
            if _ref(u) not in chain.utxos:
                raise InputAlreadySpent(f"{plan.action}: BadInputsUTxO {u.input}")
        for u in plan.reference_inputs:
            if _ref(u) not in chain.utxos:
                raise MissingReferenceInput(f"{plan.action}: unknown reference input {u.input}")

        wallet_hash = self.address.payment_part
        for signer in plan.required_signers:
            if signer != wallet_hash:
                raise ScriptExecutionFailed(f"{plan.action}: missing signature for {signer}")

        inputs = {_ref(u): u for u in explicit}
        for u in self.wallet_utxos():
            inputs.setdefault(_ref(u), u)

        outputs = [self._with_min_ada(o) for o in plan.outputs]
        self._run_scripts(plan, list(inputs.values()), outputs)

        balance: dict[str, int] = {}
        for u in inputs.values():
            _add(balance, value_to_units(u.output.amount))
        if plan.mint is not None:
            _add(balance, value_to_units(Value(0, plan.mint.assets)))
        for o in outputs:
            _add(balance, value_to_units(o.amount), -1)
        _add(balance, {"lovelace": TX_FEE}, -1)
        short = {unit: qty for unit, qty in balance.items() if qty < 0}
        if short:
            raise InsufficientFunds(f"{plan.action}: wallet cannot cover {short}")

        change = {unit: qty for unit, qty in balance.items() if qty}
        if change:
            outputs.append(TransactionOutput(self.address, units_to_value(change)))
        for key in inputs:
            del chain.utxos[key]
        tx_id = chain._emit(outputs)
        chain.submitted.append(plan.action)
        return tx_id

    def _with_min_ada(self, out: TransactionOutput) -> TransactionOutput:
        amount = out.amount if isinstance(out.amount, Value) else Value(int(out.amount))
        if amount.coin >= MIN_UTXO:
            return out
        return TransactionOutput(
            out.address,
            Value(MIN_UTXO, amount.multi_asset),
            datum=out.datum,
            script=out.script,
        )

    # --------------------------------------------------------
    # Validator rules
    # --------------------------------------------------------

    def _run_scripts(self, plan: TxPlan, inputs: list[UTxO], outputs: list[TransactionOutput]) -> None:
        try:
            buys = []
            for spend in plan.script_inputs:
                if spend.utxo.output.address.payment_part != plutus_script_hash(spend.script):
                    raise ScriptExecutionFailed("spend: script does not match the input address")
                script = bytes(spend.script)
                if script.startswith(MARKET_TAG):
                    if isinstance(spend.redeemer, Buy):
                        buys.append(spend)
                    else:
                        self._check_seller_action(spend, plan, outputs)
                elif script.startswith(CONFIG_TAG):
                    self._check_config_spend(spend, plan, inputs, outputs)
                else:
                    raise ScriptExecutionFailed("spend: unknown validator")
            if buys:
                self._check_buys(buys, plan, outputs)
            if plan.mint is not None:
                self._check_mint(plan, inputs)
        except ScriptExecutionFailed:
            raise
        except MarketplaceError as e:
            raise ScriptExecutionFailed(f"{plan.action}: {e}") from e

    def _check_seller_action(self, spend, plan: TxPlan, outputs) -> None:
        datum = decode_inline_datum(spend.utxo, ListingDatum)
        seller = VerificationKeyHash(datum.seller.payment.key_hash)
        if seller not in plan.required_signers:
            raise ScriptExecutionFailed("listing: seller did not sign")
        if isinstance(spend.redeemer, Edit):
            relisted = [
                o
                for o in outputs
                if o.address == spend.utxo.output.address
                and isinstance(o.datum, ListingDatum)
                and o.datum.price_amount == spend.redeemer.new_price
                and o.datum.seller == datum.seller
            ]
            if not relisted:
                raise ScriptExecutionFailed("edit: listing not re-created with the new price")
        elif not isinstance(spend.redeemer, Delist):
            raise ScriptExecutionFailed("listing: unknown redeemer")

    def _check_config_spend(self, spend, plan: TxPlan, inputs, outputs) -> None:
        policy = _param(spend.script, CONFIG_TAG)
        ownership = AssetId(policy, OWNERSHIP_TOKEN_NAME)
        config_token = AssetId(policy, CONFIG_TOKEN_NAME)
        if not any(ownership.quantity_in(u.output.amount) for u in inputs):
            raise ScriptExecutionFailed("config: Ownership token not spent")
        if isinstance(spend.redeemer, Updating):
            kept = [
                o
                for o in outputs
                if o.address == spend.utxo.output.address and config_token.quantity_in(o.amount) == 1
            ]
            if len(kept) != 1:
                raise ScriptExecutionFailed("config: Config token must stay at the config address")
        elif isinstance(spend.redeemer, Burning):
            burned = value_to_units(Value(0, plan.mint.assets)) if plan.mint else {}
            if burned.get(config_token.unit) != -1:
                raise ScriptExecutionFailed("config: Burning without burning the Config token")
        else:
            raise ScriptExecutionFailed("config: unknown redeemer")

    def _check_mint(self, plan: TxPlan, inputs) -> None:
        script = bytes(plan.mint.script)
        if not script.startswith(CONTROL_TAG):
            raise ScriptExecutionFailed("mint: unknown policy")
        policy = plutus_script_hash(plan.mint.script).payload
        minted = value_to_units(Value(0, plan.mint.assets))
        expected_units = {AssetId(policy, n).unit for n in (CONFIG_TOKEN_NAME, OWNERSHIP_TOKEN_NAME)}
        if set(minted) != expected_units:
            raise ScriptExecutionFailed("mint: must mint or burn exactly Config and Ownership")
        if isinstance(plan.mint.redeemer, Initialize):
            seed = _param(plan.mint.script, CONTROL_TAG)
            seed_ref = (seed[:32], int.from_bytes(seed[32:], "big"))
            if seed_ref not in {_ref(u) for u in inputs}:
                raise ScriptExecutionFailed("mint: seed UTXO not consumed")
            if set(minted.values()) != {1}:
                raise ScriptExecutionFailed("mint: Initialize mints one of each token")
        elif isinstance(plan.mint.redeemer, Shutdown):
            if set(minted.values()) != {-1}:
                raise ScriptExecutionFailed("mint: Shutdown burns one of each token")
        else:
            raise ScriptExecutionFailed("mint: unknown redeemer")

    def _check_buys(self, buys, plan: TxPlan, outputs) -> None:
        """Every Buy adds its seller and fee payments to one running total."""
        required: dict[tuple[str, str], int] = {}
        signer_outputs = [o for o in outputs if o.address.payment_part in plan.required_signers]
        for spend in buys:
            listing = decode_listing(spend.utxo, self.network)
            if not holds_exactly(spend.utxo, listing.nft, 1):
                raise ScriptExecutionFailed(f"buy: listing input does not hold {listing.nft.unit}")
            config_token = AssetId(_param(spend.script, MARKET_TAG), CONFIG_TOKEN_NAME)
            config_utxo = next(
                (u for u in plan.reference_inputs if config_token.quantity_in(u.output.amount) == 1),
                None,
            )
            if config_utxo is None:
                raise ScriptExecutionFailed("buy: config reference input missing")
            config = MarketplaceConfig.from_datum(
                decode_inline_datum(config_utxo, ConfigDatum), self.network
            )
            rule = fee_rule_for(config.fee_rules, listing.price_asset)
            split = compute_split(listing.price_amount, rule.fee_bps)
            unit = listing.price_asset.unit
            for addr, qty in ((listing.seller, split.seller_amount), (config.fee_address, split.fee)):
                if qty:
                    key = (str(addr), unit)
                    required[key] = required.get(key, 0) + qty
            if not any(listing.nft.quantity_in(o.amount) for o in signer_outputs):
                raise ScriptExecutionFailed(f"buy: {listing.nft.unit} not sent to the buyer")

        paid: dict[tuple[str, str], int] = {}
        for o in outputs:
            for unit, qty in value_to_units(o.amount).items():
                key = (str(o.address), unit)
                paid[key] = paid.get(key, 0) + qty
        for (addr, unit), qty in required.items():
            if paid.get((addr, unit), 0) < qty:
                raise ScriptExecutionFailed(
                    f"buy: {addr} received {paid.get((addr, unit), 0)} {unit}, needs {qty}"
                )


# ============================================================
# Fixtures
# ============================================================


@dataclass
class Actors:
    owner: Address
    seller: Address
    buyer: Address
    buyer2: Address
    fees: Address
    nft: AssetId
    nft2: AssetId
    token: AssetId


@pytest.fixture
def chain():
    return EmulatedChain()


@pytest.fixture
def actors(chain):
    a = Actors(
        owner=key_address(1),
        seller=key_address(2),
        buyer=key_address(3),
        buyer2=key_address(4),
        fees=key_address(5),
        nft=nft_asset("Art1"),
        nft2=nft_asset("Art2"),
        token=nft_asset("USDM", policy_tag=0x22),
    )
    for addr in (a.owner, a.seller, a.buyer, a.buyer2):
        chain.fund(addr, 20_000 * ADA)
        chain.fund(addr, 5 * ADA)
    chain.fund(a.seller, 2 * ADA, (a.nft, 1), (a.nft2, 1))
    chain.fund(a.buyer, 2 * ADA, (a.token, 1_000_000))
    return a


@pytest.fixture
def scripts_factory():
    return StubScripts()


@pytest.fixture
def fee_config(actors):
    return MarketplaceConfig.build(
        actors.fees,
        [FeeRule(AssetId.native(), 500), FeeRule(actors.token, 700)],
    )


@pytest.fixture
def instance_id(chain, actors, scripts_factory, fee_config):
    """A live instance initialized by the owner with ``fee_config`` published."""
    owner = MarketplaceOrchestrator(chain.ledger(actors.owner), None, scripts_factory)
    owner.initialize("market", fee_config)
    return str(owner.instance_id)


@pytest.fixture
def orch_for(chain, scripts_factory, instance_id):
    def make(address: Address) -> MarketplaceOrchestrator:
        return MarketplaceOrchestrator(chain.ledger(address), instance_id, scripts_factory)

    return make
