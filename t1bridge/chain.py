"""Thin chain client over web3.py: providers, balances, signed contract calls."""

import time
import logging
import threading
from decimal import Decimal
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from web3 import Web3
from web3.exceptions import ContractLogicError, TransactionNotFound
from web3.middleware import ExtraDataToPOAMiddleware
from eth_account.signers.local import LocalAccount

from .config import DEFAULT_TX_WAIT_TIMEOUT_SECONDS, Network

log = logging.getLogger("t1bridge.chain")

RPC_TIMEOUT = 30
TX_WAIT_TIMEOUT = DEFAULT_TX_WAIT_TIMEOUT_SECONDS
TX_POLL_INTERVAL = 2

FEE_TIP_GWEI = 2.0
FEE_MAX_MULTIPLIER = 2.0


class ChainCallError(RuntimeError):
    """An RPC call, submission or confirmation did not go through."""


# ========================
# Formatting helpers
# ========================

def short_address(address: str) -> str:
    """``0x1234...abcd`` form of an address."""
    return f"{address[:6]}...{address[-4:]}"


def short_hash(tx_hash: str) -> str:
    """``0xabcd...1234`` form of a transaction hash."""
    return f"{tx_hash[:6]}...{tx_hash[-4:]}"


def format_ether(wei_amount: int) -> str:
    """Exact ether string for a wei amount, without trailing zeros."""
    eth = Decimal(Web3.from_wei(wei_amount, "ether"))
    text = format(eth.normalize(), "f")
    return text if "." in text else f"{text}.0"


def describe_error(exc: BaseException) -> str:
    """Best human-readable reason carried by a web3 / RPC exception."""
    if isinstance(exc, ContractLogicError) and exc.message:
        return exc.message
    if exc.args and isinstance(exc.args[0], dict) and "message" in exc.args[0]:
        return str(exc.args[0]["message"])
    return str(exc) or type(exc).__name__


# ========================
# Providers and fees
# ========================

def make_w3(rpc: str, timeout: int = RPC_TIMEOUT) -> Web3:
    """Create a Web3 instance for ``rpc``."""
    log.debug("Connecting to RPC: %s", rpc)
    w3 = Web3(Web3.HTTPProvider(rpc, request_kwargs={"timeout": timeout}))
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    if not w3.is_connected():
        raise ChainCallError(f"Cannot connect to RPC: {rpc}")
    return w3


def get_eip1559_fees(w3: Web3, tip_gwei: float, max_multiplier: float) -> Tuple[int, int, int]:
    """Return (base fee, priority fee, max fee) in wei; 2 gwei base when fee history is unavailable."""
    try:
        base = w3.eth.fee_history(1, "latest")["baseFeePerGas"][-1]
    except Exception:
        base = Web3.to_wei(2, "gwei")
    priority = Web3.to_wei(tip_gwei, "gwei")
    max_fee = int(base * max_multiplier + priority * 2)
    return base, priority, max_fee


@dataclass
class PendingTx:
    """A submitted transaction that can be waited on."""

    hash: str
    w3: Web3
    timeout: float = TX_WAIT_TIMEOUT
    poll_interval: float = TX_POLL_INTERVAL

    def wait(self) -> Dict[str, Any]:
        start = time.monotonic()
        last_err = None
        while time.monotonic() - start < self.timeout:
            try:
                rcpt = self.w3.eth.get_transaction_receipt(self.hash)
                if rcpt:
                    return rcpt
            except TransactionNotFound as e:
                last_err = e
            time.sleep(self.poll_interval)
        detail = f" (last error: {last_err})" if last_err else ""
        raise ChainCallError(f"Timed out after {self.timeout:.0f}s waiting for {short_hash(self.hash)}{detail}")


class ChainClient:
    """Balance reads and contract calls for one wallet across several networks."""

    def __init__(self, account: LocalAccount, rpc_timeout: int = RPC_TIMEOUT,
                 receipt_timeout: float = TX_WAIT_TIMEOUT,
                 tip_gwei: float = FEE_TIP_GWEI, max_fee_multiplier: float = FEE_MAX_MULTIPLIER):
        self.account = account
        self.rpc_timeout = rpc_timeout
        self.receipt_timeout = receipt_timeout
        self.tip_gwei = tip_gwei
        self.max_fee_multiplier = max_fee_multiplier
        self._w3: Dict[str, Web3] = {}
        # shared by the run worker and the balance refresher
        self._lock = threading.Lock()

    @property
    def address(self) -> str:
        return self.account.address

    def w3_for(self, network: Network) -> Web3:
        if not network.rpc_url:
            raise ChainCallError(f"No RPC endpoint configured for {network.name}")
        with self._lock:
            w3 = self._w3.get(network.rpc_url)
        if w3 is not None:
            return w3
        # connect outside the lock so a slow endpoint never stalls cached ones
        w3 = make_w3(network.rpc_url, self.rpc_timeout)
        with self._lock:
            return self._w3.setdefault(network.rpc_url, w3)

    def get_balance(self, network: Network, address: str) -> int:
        w3 = self.w3_for(network)
        return w3.eth.get_balance(Web3.to_checksum_address(address))

    def submit_call(self, network: Network, contract_address: str, abi: List[Dict[str, Any]],
                    fn_name: str, args: Sequence[Any], value: int, gas_limit: int) -> PendingTx:
        """Sign and broadcast ``fn_name(*args)`` on ``network``'s contract."""
        w3 = self.w3_for(network)
        sender = self.account.address
        contract = w3.eth.contract(address=Web3.to_checksum_address(contract_address), abi=abi)
        _, tip, max_fee = get_eip1559_fees(w3, self.tip_gwei, self.max_fee_multiplier)

        tx = getattr(contract.functions, fn_name)(*args).build_transaction({
            "from": sender,
            "value": value,
            "gas": gas_limit,
            "chainId": network.chain_id,
            "nonce": w3.eth.get_transaction_count(sender, "pending"),
            "maxPriorityFeePerGas": tip,
            "maxFeePerGas": max_fee,
        })

        signed = self.account.sign_transaction(tx)
        h = w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hash = Web3.to_hex(h)
        log.debug("Sent %s on %s: %s", fn_name, network.name, tx_hash)
        return PendingTx(hash=tx_hash, w3=w3, timeout=self.receipt_timeout)
