"""Tests for the balance board, dashboard rendering and cycle-count prompt."""

import threading
import time
import unittest
from unittest import mock

from t1bridge.config import Network
from t1bridge.dashboard import (
    BalanceBoard,
    UserInputError,
    get_user_choice,
    parse_cycle_count,
    prompt_cycle_count,
    render_dashboard,
)
from t1bridge.logs import LogBuffer

from fakes import ARBITRUM, ONE_ETH, SEPOLIA, T1, WALLET, FakeClient

NO_RPC = Network("base_sepolia", "Base Sepolia", None, 84532, "0x" + "00" * 20)


class BalanceBoardTests(unittest.TestCase):
    def test_one_line_per_network(self):
        client = FakeClient(balances=[ONE_ETH, 123_456_789_000_000])
        board = BalanceBoard(client, [SEPOLIA, T1, NO_RPC], WALLET)
        lines = board.refresh()

        self.assertEqual(len(lines), 3)
        self.assertIn("Sepolia: ", lines[0])
        self.assertIn("1.00000 ETH", lines[0])
        self.assertIn("0.00012 ETH", lines[1])
        self.assertIn("No RPC", lines[2])
        self.assertEqual(client.balance_queries, ["Sepolia", "T1 Devnet"])
        self.assertEqual(board.lines, lines)

    def test_read_failure_is_isolated(self):
        client = FakeClient(balances=[ConnectionError("down"), ONE_ETH])
        board = BalanceBoard(client, [SEPOLIA, ARBITRUM], WALLET)
        lines = board.refresh()
        self.assertIn("Error", lines[0])
        self.assertIn("1.00000 ETH", lines[1])

    def test_background_refresh(self):
        client = FakeClient()
        board = BalanceBoard(client, [SEPOLIA], WALLET, interval=0.02)
        board.start()
        try:
            deadline = time.monotonic() + 2
            while len(client.balance_queries) < 2 and time.monotonic() < deadline:
                time.sleep(0.01)
        finally:
            board.stop(timeout=1)
        self.assertGreaterEqual(len(client.balance_queries), 2)

        settled = len(client.balance_queries)
        time.sleep(0.1)
        self.assertEqual(len(client.balance_queries), settled)

    def test_refresh_notifies_hook(self):
        hook = mock.Mock()
        board = BalanceBoard(FakeClient(), [SEPOLIA], WALLET, on_refresh=hook)
        board.refresh()
        hook.assert_called_once_with()

    def test_background_refresh_repaints(self):
        repainted = threading.Event()
        board = BalanceBoard(FakeClient(), [SEPOLIA], WALLET, interval=0.02, on_refresh=repainted.set)
        board.start()
        try:
            self.assertTrue(repainted.wait(2))
        finally:
            board.stop(timeout=1)

    def test_failing_hook_is_logged(self):
        board = BalanceBoard(FakeClient(), [SEPOLIA], WALLET,
                             on_refresh=mock.Mock(side_effect=OSError("terminal gone")))
        with self.assertLogs("t1bridge", level="ERROR") as logs:
            lines = board.refresh()
        self.assertIn("1.00000 ETH", lines[0])
        self.assertIn("terminal gone", logs.output[0])


class RenderTests(unittest.TestCase):
    def test_dashboard_sections(self):
        buffer = LogBuffer(colors=False)
        screen = render_dashboard(WALLET, "Running", ["Sepolia: 1.00000 ETH"], buffer)
        self.assertIn("T1 Protocol Auto Bridge Bot", screen)
        self.assertIn("0x0000...dEaD", screen)
        self.assertIn("Running", screen)
        self.assertIn("Sepolia: 1.00000 ETH", screen)
        self.assertIn("(empty)", screen)
        self.assertIn("(Q)uit", screen)


class PromptTests(unittest.TestCase):
    def test_parse_positive(self):
        self.assertEqual(parse_cycle_count(" 12 "), 12)

    def test_rejects_bad_input(self):
        for value in ("0", "-3", "abc", "", "1.5"):
            with self.subTest(value=value):
                with self.assertRaises(UserInputError):
                    parse_cycle_count(value)

    def test_cancelled_prompt(self):
        def interrupted(_):
            raise EOFError

        with self.assertRaises(UserInputError) as ctx:
            prompt_cycle_count(interrupted)
        self.assertEqual(str(ctx.exception), "Operation cancelled.")

    def test_prompt_reads_input(self):
        self.assertEqual(prompt_cycle_count(lambda _: "3"), 3)

    def test_choice_eof_means_quit(self):
        def interrupted(_):
            raise KeyboardInterrupt

        self.assertEqual(get_user_choice(interrupted), "q")
        self.assertEqual(get_user_choice(lambda _: " S "), "s")


if __name__ == "__main__":
    unittest.main()
