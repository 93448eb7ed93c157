"""
Tests for updatecheck.registry: registration, cached verdicts and
concurrent checks.
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import threading
import unittest

from fetchers import StaticFetcher
from updatecheck.config import CheckerSettings
from updatecheck.errors import FetchError, FetchErrorKind, RegistrationResult
from updatecheck.registry import Registry

CHECK_URL = "https://updates.example.com/mod-a.json"


class RegistryTestCase(unittest.TestCase):
    """Creates a fresh registry backed by a StaticFetcher."""

    settings = None

    def setUp(self):
        self.fetcher = StaticFetcher()
        self.registry = Registry(self.fetcher, self.settings)
        self.addCleanup(self.registry.shutdown)
        self.registered = []
        self.updates = []
        self.registry.on_registered.subscribe(
            lambda cid, version: self.registered.append((cid, version))
        )
        self.registry.on_update_available.subscribe(
            lambda cid, verdict: self.updates.append((cid, verdict))
        )


class TestRegister(RegistryTestCase):
    """Tests for Registry.register()."""

    def test_success(self):
        result = self.registry.register("mod.a", "1.0.0", "1.0.0")
        self.assertIs(result, RegistrationResult.SUCCESS)
        self.assertTrue(result)
        self.assertTrue(self.registry.is_registered("mod.a"))
        self.assertEqual(self.registered, [("mod.a", "1.0.0")])

    def test_record_fields(self):
        self.registry.register("mod.a", "1.0.0")
        record = self.registry.get_component("mod.a")
        self.assertEqual(record.version, "1.0.0")
        self.assertTrue(record.enabled)
        self.assertIsNotNone(record.registered_at)

    def test_duplicate(self):
        self.registry.register("mod.a", "1.0.0")
        result = self.registry.register("mod.a", "2.0.0")
        self.assertIs(result, RegistrationResult.ALREADY_REGISTERED)
        self.assertFalse(result)
        self.assertEqual(self.registry.get_component("mod.a").version, "1.0.0")
        self.assertEqual(len(self.registered), 1)

    def test_major_mismatch(self):
        result = self.registry.register("mod.a", "1.0.0", "2.0.0")
        self.assertIs(result, RegistrationResult.INCOMPATIBLE)
        self.assertFalse(self.registry.is_registered("mod.a"))
        self.assertEqual(self.registered, [])

    def test_minor_mismatch_accepted(self):
        self.assertTrue(self.registry.register("mod.a", "1.0.0", "1.7.3"))

    def test_registered_components(self):
        self.registry.register("mod.a", "1.0.0")
        self.registry.register("mod.b", "0.1")
        ids = sorted(c.id for c in self.registry.get_registered_components())
        self.assertEqual(ids, ["mod.a", "mod.b"])

    def test_unregister(self):
        self.registry.register("mod.a", "1.0.0")
        self.assertTrue(self.registry.unregister("mod.a"))
        self.assertFalse(self.registry.is_registered("mod.a"))
        self.assertFalse(self.registry.unregister("mod.a"))

    def test_reregister_after_unregister(self):
        self.registry.register("mod.a", "1.0.0")
        self.registry.unregister("mod.a")
        self.assertTrue(self.registry.register("mod.a", "1.1.0"))

    def test_set_enabled(self):
        self.registry.register("mod.a", "1.0.0")
        self.assertTrue(self.registry.set_enabled("mod.a", False))
        self.assertFalse(self.registry.get_component("mod.a").enabled)
        self.assertFalse(self.registry.set_enabled("missing", False))

    def test_failing_subscriber_does_not_block_registration(self):
        def broken(cid, version):
            raise RuntimeError("subscriber bug")

        self.registry.on_registered.subscribe(broken)
        self.assertTrue(self.registry.register("mod.a", "1.0.0"))


class TestCoreVersionGate(unittest.TestCase):
    """Registration against a non-default core version."""

    def test_core_one_x_rejects_two(self):
        with Registry(StaticFetcher(), CheckerSettings(core_version="1.4.2")) as registry:
            self.assertEqual(registry.core_version, "1.4.2")
            self.assertIs(
                registry.register("mod.a", "1.0.0", "2.0.0"),
                RegistrationResult.INCOMPATIBLE,
            )
            self.assertTrue(registry.register("mod.b", "1.0.0", "1.0.0"))

    def test_api_disabled(self):
        with Registry(StaticFetcher(), CheckerSettings(enable_api=False)) as registry:
            self.assertIs(registry.register("mod.a", "1.0.0"), RegistrationResult.DISABLED)
            self.assertIs(
                registry.register_with_update_source("mod.a", "1.0.0", check_url=CHECK_URL),
                RegistrationResult.DISABLED,
            )
            self.assertIsNone(registry.get_update_info("mod.a"))


class TestRegisterWithUpdateSource(RegistryTestCase):
    """Tests for Registry.register_with_update_source()."""

    def test_checks_immediately(self):
        self.fetcher.set_response(CHECK_URL, '{"version":"1.2.0","changelog":"fixes"}')
        result = self.registry.register_with_update_source("mod.a", "1.0.0", check_url=CHECK_URL)
        self.assertTrue(result)

        verdicts = self.registry.wait_all(timeout=5)
        self.assertEqual(len(verdicts), 1)
        self.assertTrue(verdicts[0].is_newer)
        self.assertEqual(verdicts[0].latest_version, "1.2.0")
        self.assertEqual(verdicts[0].changelog, "fixes")
        self.assertEqual(self.registry.get_available_updates(), verdicts)
        self.assertEqual(self.updates, [("mod.a", verdicts[0])])

    def test_source_fields(self):
        self.registry.register_with_update_source(
            "mod.a", "1.0.0", download_url="https://dl", changelog="first"
        )
        source = self.registry.get_update_info("mod.a")
        self.assertIsNone(source.check_url)
        self.assertEqual(source.download_url, "https://dl")
        self.assertEqual(source.changelog, "first")
        self.assertIsNone(source.last_check_time)
        self.assertIsNone(source.verdict)

    def test_without_check_url_no_check(self):
        self.registry.register_with_update_source("mod.a", "1.0.0")
        self.assertEqual(self.registry.wait_all(timeout=5), [])
        self.assertEqual(self.fetcher.fetched_urls, [])

    def test_existing_id_overwrites_source(self):
        other_url = "https://updates.example.com/other.json"
        self.fetcher.set_response(other_url, "2.0.0")
        self.registry.register_with_update_source("mod.a", "1.0.0")

        result = self.registry.register_with_update_source("mod.a", "1.0.0", check_url=other_url)
        self.assertIs(result, RegistrationResult.ALREADY_REGISTERED)
        self.assertEqual(self.registry.get_update_info("mod.a").check_url, other_url)
        self.registry.wait_all(timeout=5)
        self.assertTrue(self.registry.get_verdict("mod.a").is_newer)

    def test_incompatible_installs_no_source(self):
        result = self.registry.register_with_update_source(
            "mod.a", "1.0.0", check_url=CHECK_URL, required_core_version="3.0"
        )
        self.assertIs(result, RegistrationResult.INCOMPATIBLE)
        self.assertIsNone(self.registry.get_update_info("mod.a"))

    def test_end_to_end_flip(self):
        self.fetcher.set_response(CHECK_URL, '{"version":"1.2.0","changelog":"fixes"}')
        self.registry.register_with_update_source("mod.a", "1.0.0", check_url=CHECK_URL)
        self.registry.wait_all(timeout=5)
        verdict = self.registry.get_verdict("mod.a")
        self.assertTrue(verdict.is_newer)
        self.assertEqual(verdict.latest_version, "1.2.0")

        self.fetcher.set_response(CHECK_URL, '{"version":"1.0.0"}')
        self.registry.check_component("mod.a").result(timeout=5)
        self.registry.wait_all(timeout=5)
        verdict = self.registry.get_verdict("mod.a")
        self.assertFalse(verdict.is_newer)
        self.assertEqual(self.registry.get_available_updates(), [])

    def test_unregister_keeps_cached_verdict(self):
        self.fetcher.set_response(CHECK_URL, "1.5.0")
        self.registry.register_with_update_source("mod.a", "1.0.0", check_url=CHECK_URL)
        self.registry.wait_all(timeout=5)
        self.registry.unregister("mod.a")
        self.assertTrue(self.registry.get_verdict("mod.a").is_newer)
        self.assertEqual(len(self.registry.get_available_updates()), 1)
        self.assertIsNone(self.registry.check_component("mod.a"))

    def test_reregister_triggers_auto_check(self):
        self.fetcher.set_response(CHECK_URL, "1.5.0")
        self.registry.register_with_update_source("mod.a", "1.0.0", check_url=CHECK_URL)
        self.registry.wait_all(timeout=5)
        self.registry.unregister("mod.a")

        self.registry.register("mod.a", "1.0.0")
        self.registry.wait_all(timeout=5)
        self.assertEqual(self.fetcher.fetched_urls, [CHECK_URL, CHECK_URL])


class TestNoAutoCheck(RegistryTestCase):
    """auto_check_updates=False leaves plain register() alone."""

    settings = CheckerSettings(auto_check_updates=False)

    def test_reregister_does_not_check(self):
        self.fetcher.set_response(CHECK_URL, "1.5.0")
        self.registry.register_with_update_source("mod.a", "1.0.0", check_url=CHECK_URL)
        self.registry.wait_all(timeout=5)
        self.registry.unregister("mod.a")

        self.registry.register("mod.a", "1.0.0")
        self.registry.wait_all(timeout=5)
        self.assertEqual(self.fetcher.fetched_urls, [CHECK_URL])


class TestCheckAll(RegistryTestCase):
    """Tests for Registry.check_all() and wait_all()."""

    def _add(self, component_id, body):
        url = f"https://updates.example.com/{component_id}.json"
        self.fetcher.set_response(url, body)
        self.registry.register_with_update_source(component_id, "1.0.0", check_url=url)
        return url

    def test_one_failing_check_does_not_affect_others(self):
        self._add("mod.a", "1.1.0")
        self._add("mod.b", '{"version": "2.0"}')
        failing = self._add("mod.c", "1.0.0")
        self.fetcher.set_response(failing, FetchError(FetchErrorKind.CONNECTION, failing))
        self.registry.wait_all(timeout=5)

        futures = self.registry.check_all()
        self.assertEqual(sorted(futures), ["mod.a", "mod.b", "mod.c"])
        verdicts = {cid: f.result(timeout=5) for cid, f in futures.items()}
        self.assertTrue(verdicts["mod.a"].is_newer)
        self.assertTrue(verdicts["mod.b"].is_newer)
        self.assertFalse(verdicts["mod.c"].is_newer)

        ids = sorted(v.component_id for v in self.registry.get_available_updates())
        self.assertEqual(ids, ["mod.a", "mod.b"])

    def test_unexpected_exception_contained(self):
        def fetch(url):
            if "broken" in url:
                raise RuntimeError("fetcher bug")
            return "9.0.0"

        with Registry(fetch) as registry:
            registry.register_with_update_source("mod.ok", "1.0.0", check_url="https://x/ok")
            registry.register_with_update_source("mod.broken", "1.0.0", check_url="https://x/broken")
            verdicts = {v.component_id: v for v in registry.wait_all(timeout=5)}

        self.assertTrue(verdicts["mod.ok"].is_newer)
        self.assertFalse(verdicts["mod.broken"].is_newer)
        self.assertIsNone(verdicts["mod.broken"].latest_version)

    def test_wait_all_returns_each_verdict_once(self):
        self._add("mod.a", "1.1.0")
        self._add("mod.b", "1.1.0")
        self.assertEqual(len(self.registry.wait_all(timeout=5)), 2)
        self.assertEqual(self.registry.wait_all(timeout=5), [])

    def test_unjoined_checks_keep_only_latest(self):
        self._add("mod.a", "1.1.0")
        self.registry.wait_all(timeout=5)

        for body in ("1.2.0", "1.3.0"):
            self.fetcher.set_response("https://updates.example.com/mod.a.json", body)
            self.registry.check_component("mod.a").result(timeout=5)

        verdicts = self.registry.wait_all(timeout=5)
        self.assertEqual(len(verdicts), 1)
        self.assertEqual(verdicts[0].latest_version, "1.3.0")

    def test_skips_disabled_and_sourceless(self):
        self._add("mod.a", "1.1.0")
        self._add("mod.b", "1.1.0")
        self.registry.register("mod.plain", "1.0.0")
        self.registry.set_enabled("mod.b", False)
        self.registry.wait_all(timeout=5)

        futures = self.registry.check_all()
        self.assertEqual(list(futures), ["mod.a"])
        self.assertIsNone(self.registry.check_component("mod.b"))
        self.assertIsNone(self.registry.check_component("mod.plain"))

    def test_check_unknown_component(self):
        self.assertIsNone(self.registry.check_component("missing"))

    def test_one_check_in_flight_per_component(self):
        release = threading.Event()
        calls = []

        def slow_fetch(url):
            calls.append(url)
            release.wait(5)
            return "2.0.0"

        registry = Registry(slow_fetch)
        self.addCleanup(registry.shutdown)
        self.addCleanup(release.set)

        registry.register_with_update_source("mod.a", "1.0.0", check_url=CHECK_URL)
        first = registry.check_component("mod.a")
        second = registry.check_component("mod.a")
        self.assertIs(first, second)

        release.set()
        self.assertTrue(first.result(timeout=5).is_newer)
        registry.wait_all(timeout=5)
        self.assertEqual(calls, [CHECK_URL])

    def test_check_after_shutdown(self):
        self._add("mod.a", "1.1.0")
        self.registry.wait_all(timeout=5)
        self.registry.shutdown()
        self.assertIsNone(self.registry.check_component("mod.a"))


class TestSetUpdateInfo(RegistryTestCase):
    """Tests for Registry.set_update_info()."""

    def test_newer(self):
        self.registry.register("mod.a", "1.0.0")
        self.assertTrue(self.registry.set_update_info("mod.a", "v1.1", "https://dl", "notes"))
        verdict = self.registry.get_verdict("mod.a")
        self.assertTrue(verdict.is_newer)
        self.assertEqual(verdict.latest_version, "1.1.0")
        self.assertEqual(verdict.download_url, "https://dl")
        self.assertEqual(self.updates, [("mod.a", verdict)])

    def test_not_newer_is_still_compared(self):
        self.registry.register("mod.a", "2.0.0")
        self.assertTrue(self.registry.set_update_info("mod.a", "1.9.9", None))
        self.assertFalse(self.registry.get_verdict("mod.a").is_newer)
        self.assertEqual(self.updates, [])

    def test_check_all_keeps_manual_update(self):
        self.registry.register("mod.a", "1.0.0")
        self.registry.set_update_info("mod.a", "2.0.0", "http://dl")

        self.assertEqual(self.registry.check_all(), {})
        self.registry.wait_all(timeout=5)
        updates = self.registry.get_available_updates()
        self.assertEqual(len(updates), 1, updates)
        self.assertEqual(updates[0].latest_version, "2.0.0")
        self.assertEqual(self.fetcher.fetched_urls, [])

    def test_reregister_keeps_manual_update(self):
        self.registry.register("mod.a", "1.0.0")
        self.registry.set_update_info("mod.a", "2.0.0", "http://dl")
        self.registry.unregister("mod.a")

        self.registry.register("mod.a", "1.0.0")
        self.registry.wait_all(timeout=5)
        verdict = self.registry.get_verdict("mod.a")
        self.assertTrue(verdict.is_newer)
        self.assertEqual(verdict.download_url, "http://dl")

    def test_check_component_without_check_url(self):
        self.registry.register("mod.a", "1.0.0")
        self.registry.set_update_info("mod.a", "2.0.0", None)
        self.assertIsNone(self.registry.check_component("mod.a"))
        self.assertTrue(self.registry.get_verdict("mod.a").is_newer)

    def test_unknown_component(self):
        self.assertFalse(self.registry.set_update_info("missing", "1.0.0", None))

    def test_empty_version(self):
        self.registry.register("mod.a", "1.0.0")
        self.assertFalse(self.registry.set_update_info("mod.a", " v ", None))
        self.assertIsNone(self.registry.get_verdict("mod.a"))


if __name__ == "__main__":
    unittest.main()
