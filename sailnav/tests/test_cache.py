import unittest

from sailnav import (
    MU_SUN,
    BodyRegistry,
    OrbitalElements,
    PredictionCache,
    SailState,
    SOIState,
    TruncationReason,
    fingerprint,
    make_context,
)

ELEMENTS = OrbitalElements(a=1.0, e=0.1, i=0.0, Omega=0.0, omega=0.0, M0=0.0, epoch=0.0, mu=MU_SUN)
SAIL = SailState()


class TestFingerprint(unittest.TestCase):

    def test_stable(self):
        self.assertEqual(fingerprint(ELEMENTS, SAIL, 1000.0, 10.0, 30.0, 20),
                         fingerprint(ELEMENTS, SailState(), 1000.0, 10.0, 30.0, 20))

    def test_start_time_rounded(self):
        self.assertEqual(fingerprint(ELEMENTS, SAIL, 1000.0, 100.0001, 30.0, 20),
                         fingerprint(ELEMENTS, SAIL, 1000.0, 100.0002, 30.0, 20))
        self.assertNotEqual(fingerprint(ELEMENTS, SAIL, 1000.0, 100.0, 30.0, 20),
                            fingerprint(ELEMENTS, SAIL, 1000.0, 100.01, 30.0, 20))

    def test_every_input_changes_key(self):
        base = fingerprint(ELEMENTS, SAIL, 1000.0, 10.0, 30.0, 20)
        variants = [
            fingerprint(ELEMENTS._replace(e=0.2), SAIL, 1000.0, 10.0, 30.0, 20),
            fingerprint(ELEMENTS, SAIL.model_copy(update={'yaw': 0.1}), 1000.0, 10.0, 30.0, 20),
            fingerprint(ELEMENTS, SAIL, 1001.0, 10.0, 30.0, 20),
            fingerprint(ELEMENTS, SAIL, 1000.0, 10.0, 31.0, 20),
            fingerprint(ELEMENTS, SAIL, 1000.0, 10.0, 30.0, 21),
            fingerprint(ELEMENTS, SAIL, 1000.0, 10.0, 30.0, 20, SOIState.heliocentric(last_transition_time=5.0)),
        ]
        self.assertNotIn(base, variants)
        self.assertEqual(len(set(variants)), len(variants))


class TestPredictionCache(unittest.TestCase):

    def setUp(self):
        self.cache = PredictionCache(make_context(bodies=BodyRegistry({})), maxsize=2)

    def predict(self, mass, **kwargs):
        return self.cache.predict(ELEMENTS, SAIL, mass, 0.0, duration_days=10.0, steps=10, **kwargs)

    def test_hit_returns_same_result(self):
        first = self.predict(10000.0)
        second = self.predict(10000.0)
        self.assertEqual((self.cache.misses, self.cache.hits), (1, 1))
        self.assertIs(first.trajectory, second.trajectory)
        self.assertIs(first.intersections, second.intersections)
        self.assertEqual(len(first.trajectory), 10)
        self.assertIn(first.key, self.cache)

    def test_least_recently_used_evicted(self):
        a = self.predict(10000.0)
        b = self.predict(20000.0)
        self.predict(10000.0)
        c = self.predict(30000.0)

        self.assertEqual(len(self.cache), 2)
        self.assertIn(a.key, self.cache)
        self.assertNotIn(b.key, self.cache)
        self.assertIn(c.key, self.cache)

    def test_partial_trajectory_not_cached(self):
        partial = self.predict(10000.0, deadline=float('-inf'))
        self.assertIs(partial.trajectory[-1].truncated, TruncationReason.TIME_BUDGET)
        self.assertEqual(len(self.cache), 0)

        self.predict(10000.0, deadline=float('-inf'))
        self.assertEqual(self.cache.misses, 2)

    def test_intersections_keyed_by_reference_time(self):
        first = self.predict(10000.0, reference_time=2.0)
        again = self.predict(10000.0, reference_time=2.0)
        later = self.predict(10000.0, reference_time=5.0)
        self.assertIs(first.intersections, again.intersections)
        self.assertIsNot(first.intersections, later.intersections)
        self.assertIs(first.trajectory, later.trajectory)

    def test_clear(self):
        self.predict(10000.0)
        self.cache.clear()
        self.assertEqual(len(self.cache), 0)

    def test_invalid_size(self):
        with self.assertRaises(ValueError):
            PredictionCache(make_context(bodies=BodyRegistry({})), maxsize=0)


if __name__ == '__main__':
    unittest.main()
