"""Tests for word wrap, the colored formatter and the log panel buffer."""

import io
import logging
import unittest

from t1bridge.logs import (
    BRIDGE,
    LABEL_WIDTH,
    ColoredFormatter,
    LogBuffer,
    record_tag,
    setup_logging,
    word_wrap,
)


def make_record(msg, level=logging.INFO, **extra):
    record = logging.LogRecord("t1bridge.test", level, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class WordWrapTests(unittest.TestCase):
    def test_short_text_untouched(self):
        self.assertEqual(word_wrap("hello world", 20), ["hello world"])

    def test_empty_text(self):
        self.assertEqual(word_wrap("", 10), [""])
        self.assertEqual(word_wrap(None, 10), [""])

    def test_non_positive_width(self):
        self.assertEqual(word_wrap("a long line of text", 0), ["a long line of text"])

    def test_wraps_on_spaces(self):
        self.assertEqual(word_wrap("one two three four", 9), ["one two", "three", "four"])

    def test_hard_splits_long_words(self):
        self.assertEqual(word_wrap("ab 0123456789abc", 5), ["ab", "01234", "56789", "abc"])

    def test_lines_never_exceed_width(self):
        text = "Bridge error on Sepolia: " + "x" * 90 + " insufficient funds for gas * price + value"
        for line in word_wrap(text, 17):
            self.assertLessEqual(len(line), 17)


class FormatterTests(unittest.TestCase):
    def test_tag_from_extra_or_level(self):
        self.assertEqual(record_tag(make_record("x", tag="bridge")), "bridge")
        self.assertEqual(record_tag(make_record("x", logging.ERROR)), "error")
        self.assertEqual(record_tag(make_record("x", logging.WARNING, tag="nonsense")), "warning")

    def test_plain_prefix_is_padded(self):
        formatter = ColoredFormatter(colors=False)
        _, plain = formatter.prefix(make_record("x", tag="info"))
        self.assertRegex(plain, r"^\[\d\d:\d\d:\d\d\] \[INFO\] +$")
        self.assertEqual(len(plain), len("[00:00:00] ") + LABEL_WIDTH + 1)

    def test_colored_label(self):
        text = ColoredFormatter().format(make_record("sent", tag="bridge"))
        self.assertIn("[BRIDGE]", text)
        self.assertIn("\x1b[", text)
        self.assertTrue(text.endswith("sent"))


class LogBufferTests(unittest.TestCase):
    def test_wraps_with_indented_continuation(self):
        buffer = LogBuffer(width=40, colors=False)
        buffer.handle(make_record("alpha beta gamma delta epsilon zeta eta theta"))
        lines = buffer.lines()
        self.assertGreater(len(lines), 1)
        prefix_len = len("[00:00:00] ") + LABEL_WIDTH + 1
        for line in lines:
            self.assertLessEqual(len(line), 40)
        for line in lines[1:]:
            self.assertTrue(line.startswith(" " * prefix_len))

    def test_capacity(self):
        buffer = LogBuffer(capacity=500, colors=False)
        for i in range(620):
            buffer.handle(make_record(f"line {i}"))
        self.assertEqual(len(buffer.lines()), 500)
        self.assertTrue(buffer.lines()[-1].endswith("line 619"))
        self.assertTrue(buffer.lines()[0].endswith("line 120"))
        self.assertEqual(len(buffer.lines(3)), 3)
        self.assertEqual(buffer.lines(0), [])

    def test_clear(self):
        buffer = LogBuffer(colors=False)
        buffer.handle(make_record("x"))
        buffer.clear()
        self.assertEqual(buffer.lines(), [])

    def test_empty_buffer_is_truthy(self):
        buffer = LogBuffer(colors=False)
        self.assertTrue(buffer)
        app_buffer = buffer or LogBuffer(colors=False)
        self.assertIs(app_buffer, buffer)


class SetupLoggingTests(unittest.TestCase):
    def tearDown(self):
        logger = logging.getLogger("t1bridge")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

    def test_console_and_buffer(self):
        stream = io.StringIO()
        buffer = LogBuffer(colors=False)
        logger = setup_logging("info", buffer, stream=stream)
        logging.getLogger("t1bridge.bridge").info("Transaction sent", extra=BRIDGE)
        logger.debug("hidden")

        self.assertIn("[BRIDGE]", stream.getvalue())
        self.assertNotIn("hidden", stream.getvalue())
        self.assertEqual(len(buffer.lines()), 1)

    def test_repeated_setup_replaces_handlers(self):
        setup_logging("INFO", LogBuffer(), stream=io.StringIO())
        logger = setup_logging("INFO", LogBuffer(), stream=io.StringIO())
        self.assertEqual(len(logger.handlers), 2)


if __name__ == "__main__":
    unittest.main()
