import unittest

from abstractions.probe import Probe


class TestProbeAbstraction(unittest.IsolatedAsyncioTestCase):
    def test_cannot_instantiate_abstract(self):
        with self.assertRaises(TypeError):
            Probe()

    async def test_subclass_must_implement_attempt(self):
        class DummyProbe(Probe):
            def __init__(self):
                self.calls = 0

            async def attempt(self):
                self.calls += 1

            def describe(self):
                return "dummy"

        probe = DummyProbe()
        await probe.attempt()
        await probe.aclose()
        self.assertEqual(probe.calls, 1)
        self.assertEqual(probe.describe(), "dummy")


if __name__ == "__main__":
    unittest.main()
