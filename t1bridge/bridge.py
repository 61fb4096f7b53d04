"""Bridge contract calls: the T1 ``sendMessage`` and L2 ``bridgeETH`` adapters."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .chain import PendingTx, describe_error, format_ether, short_hash
from .config import (
    DEFAULT_BRIDGE_GAS_LIMIT,
    DEFAULT_TX_GAS_LIMIT,
    L2_BRIDGE_ABI,
    T1_BRIDGE_ABI,
    Network,
)
from .logs import BRIDGE, SUCCESS, SYSTEM

log = logging.getLogger("t1bridge.bridge")


class BridgeMode(str, Enum):
    T1 = "T1"
    L2 = "L2"


@dataclass(frozen=True)
class ModeProfile:
    """Amount range (ETH) and post-submission wait range (ms) for a mode."""

    label: str
    amount_range_eth: Tuple[float, float]
    settle_range_ms: Tuple[float, float]


PROFILES = {
    BridgeMode.T1: ModeProfile("T1", (0.0001, 0.001), (300_000, 600_000)),
    BridgeMode.L2: ModeProfile("L2", (0.0001, 0.001), (120_000, 300_000)),
}


class InsufficientBalanceError(Exception):
    def __init__(self, network: Network, required: int, available: int):
        self.network = network
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient balance on {network.name}. Required: {format_ether(required)} ETH"
        )


@dataclass
class TransactionOutcome:
    tx_hash: Optional[str] = None
    confirmed: bool = False
    success: bool = False
    gas_used: Optional[int] = None
    reason: Optional[str] = None


def ensure_balance(client, network: Network, address: str, amount: int) -> int:
    """Return the wallet balance on ``network``, raising when it cannot cover ``amount``."""
    balance = client.get_balance(network, address)
    if balance < amount:
        raise InsufficientBalanceError(network, amount, balance)
    return balance


def send_t1_message(client, address: str, source: Network, destination: Network, amount: int) -> PendingTx:
    """Self-addressed ``sendMessage`` on the source network's T1 bridge."""
    log.info("Submitting T1 bridge message...", extra=SYSTEM)
    return client.submit_call(
        source, source.bridge_contract, T1_BRIDGE_ABI, "sendMessage",
        [address, amount, b"", DEFAULT_BRIDGE_GAS_LIMIT, destination.chain_id, address],
        value=amount, gas_limit=DEFAULT_TX_GAS_LIMIT,
    )


def send_l2_bridge(client, address: str, source: Network, destination: Network, amount: int) -> PendingTx:
    """``bridgeETH`` on the L2 standard bridge; funds arrive at the same address."""
    log.info(f"Submitting transaction to {source.name} bridge...", extra=SYSTEM)
    return client.submit_call(
        source, source.bridge_contract, L2_BRIDGE_ABI, "bridgeETH",
        [DEFAULT_BRIDGE_GAS_LIMIT, b""],
        value=amount, gas_limit=DEFAULT_TX_GAS_LIMIT,
    )


ADAPTERS = {
    BridgeMode.T1: send_t1_message,
    BridgeMode.L2: send_l2_bridge,
}


def execute_bridge(client, mode: BridgeMode, address: str, source: Network,
                   destination: Network, amount: int) -> TransactionOutcome:
    """Run one bridge attempt; every error becomes a failed outcome."""
    label = PROFILES[mode].label
    log.info(f"Bridging {format_ether(amount)} ETH from {source.name} to {destination.name}", extra=BRIDGE)
    outcome = TransactionOutcome()

    try:
        ensure_balance(client, source, address, amount)
        pending = ADAPTERS[mode](client, address, source, destination, amount)
        outcome.tx_hash = pending.hash
        log.info(f"{label} bridge tx sent: {short_hash(pending.hash)}", extra=BRIDGE)

        receipt = pending.wait()
        outcome.confirmed = True
        outcome.gas_used = receipt.get("gasUsed")
        if receipt.get("status") == 1:
            outcome.success = True
            log.info(f"{label} bridge tx successful on {source.name}! Gas used: {outcome.gas_used}", extra=SUCCESS)
        else:
            outcome.reason = "transaction reverted"
            log.error(f"{label} bridge tx failed on {source.name}")
    except InsufficientBalanceError as e:
        outcome.reason = str(e)
        log.error(outcome.reason)
    except Exception as e:
        outcome.reason = describe_error(e)
        log.error(f"{label} bridge error on {source.name}: {outcome.reason}")

    return outcome
