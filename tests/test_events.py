"""
Tests for updatecheck.events
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import logging
import unittest

from updatecheck.events import EventHook, LogNotifier
from updatecheck.models import UpdateVerdict


class TestEventHook(unittest.TestCase):
    """Tests for EventHook."""

    def setUp(self):
        self.hook = EventHook("on_test")
        self.calls = []

    def test_emit_passes_arguments(self):
        self.hook.subscribe(lambda *args: self.calls.append(args))
        self.hook.emit("mod.a", "1.0.0")
        self.assertEqual(self.calls, [("mod.a", "1.0.0")])

    def test_subscribe_as_decorator(self):
        @self.hook.subscribe
        def handler(value):
            self.calls.append(value)

        self.hook.emit(1)
        self.assertEqual(self.calls, [1])
        self.assertTrue(callable(handler))

    def test_subscribe_twice_is_once(self):
        handler = self.calls.append
        self.hook.subscribe(handler)
        self.hook.subscribe(handler)
        self.assertEqual(len(self.hook), 1)

    def test_unsubscribe(self):
        handler = self.hook.subscribe(self.calls.append)
        self.assertTrue(self.hook.unsubscribe(handler))
        self.assertFalse(self.hook.unsubscribe(handler))
        self.hook.emit("x")
        self.assertEqual(self.calls, [])

    def test_failing_subscriber_does_not_stop_others(self):
        def broken(value):
            raise RuntimeError("boom")

        self.hook.subscribe(broken)
        self.hook.subscribe(self.calls.append)
        with self.assertLogs("updatecheck.events", level="ERROR"):
            self.hook.emit("x")
        self.assertEqual(self.calls, ["x"])


class TestLogNotifier(unittest.TestCase):
    """Tests for LogNotifier."""

    def test_banner(self):
        log = logging.getLogger("test.notifier")
        verdict = UpdateVerdict(
            component_id="mod.a",
            current_version="1.0.0",
            latest_version="1.2.0",
            is_newer=True,
            download_url="https://example.com/mod.zip",
            changelog="fixes",
        )
        with self.assertLogs(log, level="WARNING") as cm:
            LogNotifier(log)("mod.a", verdict)

        output = "\n".join(cm.output)
        self.assertIn("UPDATE AVAILABLE: mod.a", output)
        self.assertIn("Current: v1.0.0", output)
        self.assertIn("Latest: v1.2.0", output)
        self.assertIn("Changelog: fixes", output)
        self.assertIn("Download: https://example.com/mod.zip", output)

    def test_banner_without_metadata(self):
        log = logging.getLogger("test.notifier.bare")
        verdict = UpdateVerdict("mod.a", "1.0.0", "2.0.0", True)
        with self.assertLogs(log, level="WARNING") as cm:
            LogNotifier(log)("mod.a", verdict)
        output = "\n".join(cm.output)
        self.assertNotIn("Changelog", output)
        self.assertNotIn("Download", output)


if __name__ == "__main__":
    unittest.main()
