"""
Runtime configuration: environment variables, network registry and ABIs.

Values are read from the process environment, optionally seeded from a
``.env`` file in the working directory. Required values:

    PRIVATE_KEY, RPC_URL_SEPOLIA, RPC_URL_T1, T1_CHAIN_ID,
    T1_L1_BRIDGE_CONTRACT, T1_L2_BRIDGE_CONTRACT

Optional: RPC_URL_BASE_SEPOLIA, RPC_URL_ARBITRUM_SEPOLIA, LOG_LEVEL,
BALANCE_REFRESH_SECONDS, TX_WAIT_TIMEOUT_SECONDS.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv
from eth_account import Account
from eth_account.signers.local import LocalAccount


class ConfigurationError(Exception):
    """Missing or malformed startup configuration."""


# ========================
# Constants
# ========================

SEPOLIA_CHAIN_ID = 11155111
BASE_SEPOLIA_CHAIN_ID = 84532
ARBITRUM_SEPOLIA_CHAIN_ID = 421614

ADDR_L2_STANDARD_BRIDGE = "0x4200000000000000000000000000000000000010"

DEFAULT_BRIDGE_GAS_LIMIT = 200_000
DEFAULT_TX_GAS_LIMIT = 1_000_000
DEFAULT_BALANCE_REFRESH_SECONDS = 60
DEFAULT_TX_WAIT_TIMEOUT_SECONDS = 240

REQUIRED_ENV_VARS = (
    "RPC_URL_SEPOLIA",
    "RPC_URL_T1",
    "T1_CHAIN_ID",
    "T1_L1_BRIDGE_CONTRACT",
    "T1_L2_BRIDGE_CONTRACT",
)

# ========================
# ABIs
# ========================

T1_BRIDGE_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "_to", "type": "address"},
            {"internalType": "uint256", "name": "_value", "type": "uint256"},
            {"internalType": "bytes", "name": "_message", "type": "bytes"},
            {"internalType": "uint256", "name": "_gasLimit", "type": "uint256"},
            {"internalType": "uint64", "name": "_destChainId", "type": "uint64"},
            {"internalType": "address", "name": "_callbackAddress", "type": "address"}],
        "name": "sendMessage", "outputs": [], "stateMutability": "payable", "type": "function"
    }
]

L2_BRIDGE_ABI = [
    {
        "inputs": [
            {"internalType": "uint32", "name": "_l1Gas", "type": "uint32"},
            {"internalType": "bytes", "name": "_data", "type": "bytes"}],
        "name": "bridgeETH", "outputs": [], "stateMutability": "payable", "type": "function"
    }
]


@dataclass(frozen=True)
class Network:
    key: str
    name: str
    rpc_url: Optional[str]
    chain_id: int
    bridge_contract: str

    @property
    def can_send(self) -> bool:
        return bool(self.rpc_url)


@dataclass(frozen=True)
class Settings:
    private_key: str
    networks: Dict[str, Network] = field(default_factory=dict)
    log_level: str = "INFO"
    balance_refresh_seconds: int = DEFAULT_BALANCE_REFRESH_SECONDS
    tx_wait_timeout_seconds: int = DEFAULT_TX_WAIT_TIMEOUT_SECONDS

    def network(self, key: str) -> Network:
        return self.networks[key]


def _require(env: Mapping[str, str], name: str) -> str:
    """Non-blank value of ``name`` or a ConfigurationError naming it."""
    value = (env.get(name) or "").strip()
    if not value:
        raise ConfigurationError(f"{name} is not set in your .env file.")
    return value


def _optional(env: Mapping[str, str], name: str) -> Optional[str]:
    value = (env.get(name) or "").strip()
    return value or None


def _int_value(name: str, raw: str) -> int:
    try:
        return int(raw, 10)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}.") from None


def build_networks(env: Mapping[str, str]) -> Dict[str, Network]:
    """Build the ordered network registry from environment values."""
    return {
        "sepolia": Network(
            key="sepolia",
            name="Sepolia",
            rpc_url=_require(env, "RPC_URL_SEPOLIA"),
            chain_id=SEPOLIA_CHAIN_ID,
            bridge_contract=_require(env, "T1_L1_BRIDGE_CONTRACT"),
        ),
        "t1": Network(
            key="t1",
            name="T1 Devnet",
            rpc_url=_require(env, "RPC_URL_T1"),
            chain_id=_int_value("T1_CHAIN_ID", _require(env, "T1_CHAIN_ID")),
            bridge_contract=_require(env, "T1_L2_BRIDGE_CONTRACT"),
        ),
        "base_sepolia": Network(
            key="base_sepolia",
            name="Base Sepolia",
            rpc_url=_optional(env, "RPC_URL_BASE_SEPOLIA"),
            chain_id=BASE_SEPOLIA_CHAIN_ID,
            bridge_contract=ADDR_L2_STANDARD_BRIDGE,
        ),
        "arbitrum_sepolia": Network(
            key="arbitrum_sepolia",
            name="Arbitrum Sepolia",
            rpc_url=_optional(env, "RPC_URL_ARBITRUM_SEPOLIA"),
            chain_id=ARBITRUM_SEPOLIA_CHAIN_ID,
            bridge_contract=ADDR_L2_STANDARD_BRIDGE,
        ),
    }


def load_settings(env: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = None) -> Settings:
    """Load settings from ``env`` (default: the process environment after reading .env)."""
    if env is None:
        load_dotenv(dotenv_path)
        env = os.environ

    # The wallet key is reported before anything else.
    private_key = _require(env, "PRIVATE_KEY")
    for name in REQUIRED_ENV_VARS:
        _require(env, name)

    refresh = _optional(env, "BALANCE_REFRESH_SECONDS")
    refresh_seconds = _int_value("BALANCE_REFRESH_SECONDS", refresh) if refresh else DEFAULT_BALANCE_REFRESH_SECONDS
    if refresh_seconds <= 0:
        raise ConfigurationError("BALANCE_REFRESH_SECONDS must be positive.")

    wait = _optional(env, "TX_WAIT_TIMEOUT_SECONDS")
    wait_seconds = _int_value("TX_WAIT_TIMEOUT_SECONDS", wait) if wait else DEFAULT_TX_WAIT_TIMEOUT_SECONDS
    if wait_seconds <= 0:
        raise ConfigurationError("TX_WAIT_TIMEOUT_SECONDS must be positive.")

    return Settings(
        private_key=private_key,
        networks=build_networks(env),
        log_level=(_optional(env, "LOG_LEVEL") or "INFO").upper(),
        balance_refresh_seconds=refresh_seconds,
        tx_wait_timeout_seconds=wait_seconds,
    )


def load_account(private_key: str) -> LocalAccount:
    """Turn the configured key into a signing account."""
    key = private_key.strip()
    if not key.startswith("0x"):
        key = "0x" + key
    try:
        return Account.from_key(key)
    except Exception as e:
        raise ConfigurationError(f"PRIVATE_KEY is not a valid private key: {e}") from None
