"""Terminal dashboard: status box, network balances, log panel, menu and prompts."""

import os
import logging
import threading
from typing import Callable, Iterable, List, Optional

from colorama import Fore, Style
from web3 import Web3

from .chain import short_address
from .config import Network
from .logs import LogBuffer

log = logging.getLogger("t1bridge.dashboard")

TITLE = "T1 Protocol Auto Bridge Bot"
LOG_PANEL_LINES = 18
CHOICE_PROMPT = f"\n{Fore.YELLOW}Select an action: {Style.RESET_ALL}"

MENU_ITEMS = [
    ("1", "T1 Bridge", "Auto Bridge: Sepolia - T1"),
    ("2", "L2 Bridge", "Arbitrum Sepolia - Base Sepolia"),
    ("3", "L2 Bridge", "Base Sepolia - Arbitrum Sepolia"),
    ("s", "Stop", "Stop current operation"),
    ("c", "Clear", "Clear transaction logs"),
    ("m", "Menu", "Refresh dashboard"),
    ("q", "Quit", "Exit application"),
]


class UserInputError(ValueError):
    """Rejected or abandoned cycle-count input."""


# ========================
# Balances
# ========================

class BalanceBoard:
    """Display-only wallet balances per network, refreshed on demand and periodically."""

    def __init__(self, client, networks: Iterable[Network], address: str, interval: float = 60,
                 on_refresh: Optional[Callable[[], None]] = None):
        self.client = client
        self.networks = list(networks)
        self.address = address
        self.interval = interval
        self.on_refresh = on_refresh
        self._lines: List[str] = [f"{n.name}: ..." for n in self.networks]
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _line(self, network: Network) -> str:
        if not network.rpc_url:
            return f"{network.name}: {Fore.YELLOW}No RPC{Style.RESET_ALL}"
        try:
            balance = self.client.get_balance(network, self.address)
        except Exception as e:
            log.debug("Balance read failed on %s: %s", network.name, e)
            return f"{network.name}: {Fore.RED}Error{Style.RESET_ALL}"
        eth = Web3.from_wei(balance, "ether")
        return f"{network.name}: {Fore.GREEN}{eth:.5f} ETH{Style.RESET_ALL}"

    def refresh(self) -> List[str]:
        lines = [self._line(network) for network in self.networks]
        with self._lock:
            self._lines = lines
        if self.on_refresh is not None:
            try:
                self.on_refresh()
            except Exception as e:
                log.error(f"Failed to repaint dashboard: {e}")
        return lines

    @property
    def lines(self) -> List[str]:
        with self._lock:
            return list(self._lines)

    def _refresh_loop(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.refresh()
            except Exception as e:
                log.error(f"Failed to refresh balances: {e}")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._refresh_loop, name="balance-refresh", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


# ========================
# Rendering
# ========================

def clear_terminal():
    """Wipe the console before a repaint."""
    os.system("cls" if os.name == "nt" else "clear")


def render_status(address: str, status: str) -> List[str]:
    """Wallet and run status lines for the top box."""
    color = Fore.GREEN if status == "Running" else Fore.YELLOW
    return [
        f" Wallet: {Fore.CYAN}{short_address(address)}{Style.RESET_ALL}",
        f" Status: {color}{status}{Style.RESET_ALL}",
    ]


def _section(title: str) -> str:
    return f"\n{Fore.CYAN}{'=' * 20} {title} {'=' * 20}{Style.RESET_ALL}"


def render_dashboard(address: str, status: str, balances: List[str], buffer: LogBuffer,
                     log_lines: int = LOG_PANEL_LINES) -> str:
    """Whole screen as one string."""
    parts = [f"{Fore.CYAN}{'=' * 80}", f"{TITLE:^80}", f"{'=' * 80}{Style.RESET_ALL}"]
    parts.append(_section("Status"))
    parts.extend(render_status(address, status))
    parts.append(_section("Network Balances"))
    parts.extend(f" {line}" for line in balances)
    parts.append(_section("Transaction Logs"))
    parts.extend(buffer.lines(log_lines) or [" (empty)"])
    parts.append(_section("Actions"))
    for key, title, desc in MENU_ITEMS:
        parts.append(f" {Fore.WHITE}[{key}]{Style.RESET_ALL} {title:<10} {Fore.CYAN}{desc}{Style.RESET_ALL}")
    parts.append(f"\n{Fore.CYAN}(Q)uit | (M)enu | (C)lear Logs | (S)top Operation{Style.RESET_ALL}")
    return "\n".join(parts)


# ========================
# Prompts
# ========================

def parse_cycle_count(value: Optional[str]) -> int:
    """Positive integer from user text; None means the prompt was abandoned."""
    if value is None:
        raise UserInputError("Operation cancelled.")
    text = value.strip()
    try:
        count = int(text, 10)
    except ValueError:
        raise UserInputError("Invalid input. Please enter a positive number.") from None
    if count <= 0:
        raise UserInputError("Invalid input. Please enter a positive number.")
    return count


def prompt_cycle_count(input_fn: Callable[[str], str] = input) -> int:
    """Ask how many bridge transactions to run."""
    try:
        value = input_fn(f"{Fore.YELLOW}Enter number of bridge transactions: {Style.RESET_ALL}")
    except (EOFError, KeyboardInterrupt):
        value = None
    return parse_cycle_count(value)


def get_user_choice(input_fn: Callable[[str], str] = input) -> str:
    """Read one menu key; EOF or Ctrl-C count as quit."""
    try:
        return input_fn(CHOICE_PROMPT).strip().lower()
    except (EOFError, KeyboardInterrupt):
        return "q"
