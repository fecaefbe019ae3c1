import unittest

from pydantic import ValidationError

from contracts.errors import ConfigurationError, ConnprobeError, ProbeError
from contracts.probe_settings import DbProbeSettings, HttpProbeSettings


class TestHttpProbeSettings(unittest.TestCase):
    def test_unit_conversions(self):
        s = HttpProbeSettings(
            url="http://example.test",
            connect_timeout_ms=15,
            timeout_ms=20,
            pool_idle_timeout_us=1,
            interval_ms=100,
        )
        self.assertAlmostEqual(s.connect_timeout, 0.015)
        self.assertAlmostEqual(s.timeout, 0.02)
        self.assertAlmostEqual(s.pool_idle_timeout, 0.000001)
        self.assertAlmostEqual(s.interval, 0.1)

    def test_timeout_context(self):
        s = HttpProbeSettings(url="http://example.test")
        self.assertEqual(s.timeout_context(), {"connect_timeout_ms": 15, "timeout_ms": 20})

    def test_frozen(self):
        s = HttpProbeSettings(url="http://example.test")
        with self.assertRaises(ValidationError):
            s.parallel = 5

    def test_url_required(self):
        with self.assertRaises(ValidationError):
            HttpProbeSettings()

    def test_unknown_field_rejected(self):
        with self.assertRaises(ValidationError):
            HttpProbeSettings(url="http://example.test", host="x")


class TestDbProbeSettings(unittest.TestCase):
    def test_pool_max_lifetime(self):
        self.assertIsNone(DbProbeSettings().pool_max_lifetime)
        s = DbProbeSettings(pool_max_lifetime_us=2_500_000)
        self.assertAlmostEqual(s.pool_max_lifetime, 2.5)
        self.assertEqual(s.timeout_context()["pool_max_lifetime_us"], 2_500_000)

    def test_password_hidden_from_repr(self):
        s = DbProbeSettings(host="db", password="hunter2")
        self.assertNotIn("hunter2", repr(s))

    def test_port_range(self):
        with self.assertRaises(ValidationError):
            DbProbeSettings(host="db", port=0)


class TestErrors(unittest.TestCase):
    def test_hierarchy(self):
        self.assertTrue(issubclass(ConfigurationError, ConnprobeError))
        self.assertTrue(issubclass(ProbeError, ConnprobeError))

    def test_probe_error_detail(self):
        e = ProbeError("connect refused")
        self.assertEqual(e.detail, "connect refused")
        self.assertEqual(str(e), "connect refused")


if __name__ == "__main__":
    unittest.main()
