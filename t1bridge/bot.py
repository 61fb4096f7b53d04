#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
T1 Protocol auto bridge bot
================================================
Interactive terminal tool that bridges small random ETH amounts back and
forth between test networks:
- Sepolia <-> T1 Devnet through the T1 message bridge
- Arbitrum Sepolia <-> Base Sepolia through the L2 standard bridge

Configure it with a .env file (see t1bridge.config), then run ``t1-bridge``
or ``python -m t1bridge``.
================================================
"""

import sys
import logging
import threading
from dataclasses import dataclass
from typing import Callable

from colorama import Fore, Style
from eth_account.signers.local import LocalAccount

from .bridge import BridgeMode
from .chain import ChainClient, short_address
from .config import ConfigurationError, Settings, load_account, load_settings
from .dashboard import (
    CHOICE_PROMPT,
    BalanceBoard,
    UserInputError,
    clear_terminal,
    get_user_choice,
    prompt_cycle_count,
    render_dashboard,
)
from .logs import SUCCESS, SYSTEM, LogBuffer, setup_logging
from .sequencer import BridgeController

log = logging.getLogger("t1bridge")
_paint_lock = threading.Lock()


@dataclass
class App:
    settings: Settings
    account: LocalAccount
    client: ChainClient
    board: BalanceBoard
    controller: BridgeController
    buffer: LogBuffer
    # True while the main thread is blocked on the menu prompt
    at_menu: bool = False


def build_app(settings: Settings) -> App:
    """Wire the account, chain client, balance board and controller together."""
    account = load_account(settings.private_key)
    buffer = LogBuffer()
    setup_logging(settings.log_level, buffer)
    client = ChainClient(account, receipt_timeout=settings.tx_wait_timeout_seconds)
    board = BalanceBoard(client, settings.networks.values(), account.address, settings.balance_refresh_seconds)
    controller = BridgeController(client, account.address, board=board)
    app = App(settings, account, client, board, controller, buffer)
    board.on_refresh = lambda: repaint_at_menu(app)
    return app


# ========================
# Commands
# ========================

L2_DIRECTIONS = {
    "2": ("arbitrum_sepolia", "base_sepolia"),
    "3": ("base_sepolia", "arbitrum_sepolia"),
}


def clear_logs(app: App) -> None:
    """Empty the log panel."""
    app.buffer.clear()
    log.info("Transaction logs cleared.", extra=SYSTEM)


def start_bridge(app: App, mode: BridgeMode, source_key: str, dest_key: str,
                 prompt: Callable[[], int]) -> bool:
    """Check both networks can send, ask for a cycle count and start the run."""
    source = app.settings.network(source_key)
    destination = app.settings.network(dest_key)
    if not (source.can_send and destination.can_send):
        missing = source if not source.can_send else destination
        log.error(f"No RPC configured for {missing.name}; cannot bridge.")
        return False

    try:
        count = prompt()
    except UserInputError as e:
        log.error(str(e))
        return False
    return app.controller.start(mode, source, destination, count)


def handle_choice(app: App, choice: str, prompt: Callable[[], int] = prompt_cycle_count) -> bool:
    """Dispatch one menu selection; False means quit."""
    if choice == "1":
        start_bridge(app, BridgeMode.T1, "sepolia", "t1", prompt)
    elif choice in L2_DIRECTIONS:
        source_key, dest_key = L2_DIRECTIONS[choice]
        start_bridge(app, BridgeMode.L2, source_key, dest_key, prompt)
    elif choice in ("s", "4"):
        app.controller.cancel()
    elif choice in ("c", "5"):
        clear_logs(app)
    elif choice in ("m", "6", ""):
        app.board.refresh()
    elif choice in ("q", "0", "exit"):
        return False
    else:
        log.error(f"Unknown option: {choice}")
    return True


def paint(app: App, with_prompt: bool = False) -> None:
    """Redraw the whole dashboard."""
    with _paint_lock:
        clear_terminal()
        print(render_dashboard(app.account.address, app.controller.status, app.board.lines, app.buffer))
        if with_prompt:
            print(CHOICE_PROMPT, end="", flush=True)


def repaint_at_menu(app: App) -> None:
    """Repaint after a background balance refresh, but only while the menu is waiting."""
    if app.at_menu:
        paint(app, with_prompt=True)


def run_menu(app: App) -> None:
    """Paint, read a key, dispatch; returns on quit."""
    while True:
        paint(app)
        app.at_menu = True
        try:
            choice = get_user_choice()
        finally:
            app.at_menu = False
        if not handle_choice(app, choice):
            break


# ========================
# Main
# ========================

def main():
    """Program entry point."""
    try:
        settings = load_settings()
        app = build_app(settings)
    except ConfigurationError as e:
        print(f"{Fore.RED}Fatal Error: {e}{Style.RESET_ALL}", file=sys.stderr)
        sys.exit(1)

    try:
        log.info("Initializing...", extra=SYSTEM)
        log.info(f"Wallet: {short_address(app.account.address)}")
        log.info("Fetching initial network balances...", extra=SYSTEM)
        app.board.refresh()
        app.board.start()
        log.info("Bridge bot is ready. Select an action.", extra=SUCCESS)
        log.warning("Note: Verify all Sepolia RPC endpoints and contracts if needed.")

        run_menu(app)
    except KeyboardInterrupt:
        pass
    except Exception as e:
        print(f"{Fore.RED}A fatal error occurred: {e}{Style.RESET_ALL}", file=sys.stderr)
        sys.exit(1)
    finally:
        app.board.stop(timeout=1)

    print(f"{Fore.GREEN}Goodbye!{Style.RESET_ALL}")
    sys.exit(0)


if __name__ == "__main__":
    main()
