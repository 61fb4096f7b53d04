"""
Auto-bridge sequencer.

A run alternates direction between two networks for a fixed number of
cycles. Each cycle samples an amount, refreshes the balance board, makes one
bridge call, waits for the bridge to settle and sleeps before the next
cycle. A failed call ends the run; nothing is retried. Stop requests are
cooperative: they are noticed at the top of a cycle and while waiting, never
in the middle of a chain call.
"""

import time
import random
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, TypeVar

from web3 import Web3

from .bridge import PROFILES, BridgeMode, ModeProfile, TransactionOutcome, execute_bridge
from .config import Network
from .logs import SUCCESS, SYSTEM

log = logging.getLogger("t1bridge.sequencer")

IDLE = "Idle"
RUNNING = "Running"

COMPLETED = "completed"
CANCELLED = "cancelled"

POLL_INTERVAL_MS = 100
INTER_CYCLE_DELAY_MS = (30_000, 60_000)

T = TypeVar("T")


def wait_cancellable(duration_ms: float, cancel_event: threading.Event,
                     poll_ms: float = POLL_INTERVAL_MS) -> str:
    """Sleep up to ``duration_ms``, returning early once ``cancel_event`` is set."""
    deadline = time.monotonic() + max(duration_ms, 0) / 1000
    poll = poll_ms / 1000
    while True:
        if cancel_event.is_set():
            return CANCELLED
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return COMPLETED
        if cancel_event.wait(min(poll, remaining)):
            return CANCELLED


def rotate(pair: Tuple[T, T]) -> Tuple[T, T]:
    """Swap a (source, destination) pair."""
    first, second = pair
    return second, first


def sample_amount(amount_range_eth: Tuple[float, float], rng: random.Random) -> int:
    """Uniform ether amount rounded to 6 decimals, in wei."""
    low, high = amount_range_eth
    return Web3.to_wei(f"{rng.uniform(low, high):.6f}", "ether")


def sample_delay_ms(range_ms: Tuple[float, float], rng: random.Random) -> float:
    """Uniform delay in milliseconds."""
    low, high = range_ms
    return rng.uniform(low, high)


@dataclass
class Attempt:
    source: Network
    destination: Network
    amount: int
    outcome: TransactionOutcome


@dataclass
class BridgeRun:
    mode: BridgeMode
    source: Network
    destination: Network
    total_cycles: int
    current_cycle: int = 0
    cancel_requested: bool = False
    attempts: List[Attempt] = field(default_factory=list)

    @property
    def pair_label(self) -> str:
        return f"{self.source.name} <-> {self.destination.name}"


class BridgeController:
    """Owns the single active run: start, stop and status."""

    def __init__(self, client, address: str, board=None,
                 profiles: Optional[Dict[BridgeMode, ModeProfile]] = None,
                 inter_cycle_delay_ms: Tuple[float, float] = INTER_CYCLE_DELAY_MS,
                 poll_ms: float = POLL_INTERVAL_MS,
                 rng: Optional[random.Random] = None):
        self.client = client
        self.address = address
        self.board = board
        self.profiles = profiles or PROFILES
        self.inter_cycle_delay_ms = inter_cycle_delay_ms
        self.poll_ms = poll_ms
        self.rng = rng or random.Random()
        self.last_run: Optional[BridgeRun] = None

        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._run: Optional[BridgeRun] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def status(self) -> str:
        return RUNNING if self._run is not None else IDLE

    @property
    def run(self) -> Optional[BridgeRun]:
        return self._run

    @property
    def cancel_requested(self) -> bool:
        return self._cancel.is_set()

    # ========================
    # Start / stop
    # ========================

    def _claim(self, mode: BridgeMode, source: Network, destination: Network,
               total_cycles: int) -> Optional[BridgeRun]:
        """Validate a request and register it as the active run, or return None."""
        with self._lock:
            if self._run is not None:
                log.warning("Bridge operation already in progress.")
                return None
            if isinstance(total_cycles, bool) or not isinstance(total_cycles, int) or total_cycles < 1:
                log.error(f"Cycle count must be a positive integer, got {total_cycles!r}.")
                return None
            if source == destination:
                log.error("Source and destination networks must differ.")
                return None
            self._cancel.clear()
            self._run = BridgeRun(mode, source, destination, total_cycles)
            return self._run

    def start(self, mode: BridgeMode, source: Network, destination: Network, total_cycles: int) -> bool:
        """Launch a run on a worker thread; False if one is already active."""
        run = self._claim(mode, source, destination, total_cycles)
        if run is None:
            return False
        self._thread = threading.Thread(target=self._drive, args=(run,), name="bridge-run", daemon=True)
        self._thread.start()
        return True

    def run_auto_bridge(self, mode: BridgeMode, source: Network, destination: Network,
                        total_cycles: int) -> None:
        """Run to completion on the calling thread. Never raises."""
        run = self._claim(mode, source, destination, total_cycles)
        if run is not None:
            self._drive(run)

    def cancel(self) -> bool:
        """Ask the active run to stop after its current step."""
        with self._lock:
            if self._run is None:
                log.info("No operation currently running.")
                return False
            self._run.cancel_requested = True
            self._cancel.set()
        log.warning("Stop signal sent. Finishing current step...")
        return True

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker thread; True once no run is active."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return self._run is None

    # ========================
    # The loop
    # ========================

    def _drive(self, run: BridgeRun) -> None:
        try:
            self._loop(run)
        except Exception as e:
            log.error(f"{self.profiles[run.mode].label} bridge run aborted: {e}")
        finally:
            self._finish(run)

    def _stopped_by_user(self, label: str) -> bool:
        if self._cancel.is_set():
            log.warning(f"{label} bridge operation stopped by user.")
            return True
        return False

    def _loop(self, run: BridgeRun) -> None:
        profile = self.profiles[run.mode]
        label = profile.label
        total = run.total_cycles
        log.info(f"Starting {label} bridge: {run.pair_label} ({total} cycles)", extra=SYSTEM)

        for i in range(1, total + 1):
            if self._stopped_by_user(label):
                break

            run.current_cycle = i
            amount = sample_amount(profile.amount_range_eth, self.rng)
            log.info(f"--- {label} Cycle {i}/{total} ---", extra=SYSTEM)
            self._refresh_balances()

            outcome = execute_bridge(self.client, run.mode, self.address, run.source, run.destination, amount)
            run.attempts.append(Attempt(run.source, run.destination, amount, outcome))
            if not outcome.success:
                log.error(f"Stopping {label} bridge due to tx failure.")
                break

            settle_ms = sample_delay_ms(profile.settle_range_ms, self.rng)
            log.info(f"Waiting {round(settle_ms / 60000)} mins for {label} bridge completion...", extra=SYSTEM)
            wait_cancellable(settle_ms, self._cancel, self.poll_ms)

            run.source, run.destination = rotate((run.source, run.destination))

            if i < total and not self._cancel.is_set():
                delay_ms = sample_delay_ms(self.inter_cycle_delay_ms, self.rng)
                log.info(f"Delaying {round(delay_ms / 1000)}s before next cycle...", extra=SYSTEM)
                if wait_cancellable(delay_ms, self._cancel, self.poll_ms) == CANCELLED:
                    log.warning(f"{label} bridge operation stopped by user.")
                    break

    def _finish(self, run: BridgeRun) -> None:
        with self._lock:
            self._run = None
            self._cancel.clear()
            self.last_run = run
            # no new run can be claimed until this line is logged
            log.info(f"Automated {self.profiles[run.mode].label} bridge operation finished.", extra=SUCCESS)
        self._refresh_balances()

    def _refresh_balances(self) -> None:
        if self.board is None:
            return
        try:
            self.board.refresh()
        except Exception as e:
            log.error(f"Failed to refresh balances: {e}")
