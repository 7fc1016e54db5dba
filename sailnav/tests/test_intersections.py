"""
Tests for close-approach and orbit-crossing detection.

Trajectories are built directly from offsets relative to the sampled body
positions, so the relative motion along each segment is known exactly.
"""
import unittest

import numpy as np
import pytest

from sailnav import (
    MU_SUN,
    Body,
    BodyRegistry,
    OrbitalElements,
    PhysicsConfig,
    Reliability,
    TrajectoryPoint,
    TruncationReason,
    closest_approach,
    detect_intersections,
    find_orbit_crossings,
)

EARTH_MU = 8.887692445e-10


def circular_body(name, a, M0=0.0, soi_radius=0.1):
    elements = OrbitalElements(a=a, e=0.0, i=0.0, Omega=0.0, omega=0.0, M0=M0, epoch=0.0, mu=MU_SUN)
    return Body(name=name, mu=EARTH_MU, radius=4.26e-5, soi_radius=soi_radius, elements=elements)


def relative_trajectory(registry, name, times, offsets, truncated=None):
    """Trajectory points at ``offsets`` from body ``name`` at each time."""
    points = []
    for t, d in zip(times, offsets):
        r = registry.state_of(name, t).r + np.asarray(d, dtype=float)
        points.append(TrajectoryPoint(position=tuple(float(x) for x in r), time=t))
    if truncated is not None:
        points[-1] = points[-1].model_copy(update={'truncated': truncated})
    return points


class TestDetectIntersections(unittest.TestCase):

    def setUp(self):
        self.registry = BodyRegistry({
            'TERRA': circular_body('TERRA', 1.0),
            'ARES': circular_body('ARES', 1.5, M0=3.0),
        })

    def test_past_approach_filtered(self):
        """An approach before the reference time is not reported"""
        d = np.array([0.05, 0.0, 0.0])
        trajectory = relative_trajectory(self.registry, 'TERRA', [100.0, 200.0], [d, 40.0 * d])

        self.assertEqual(detect_intersections(trajectory, self.registry, 150.0, active_soi_body='TERRA'), [])

        events = detect_intersections(trajectory, self.registry, 50.0, active_soi_body='TERRA')
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].body, 'TERRA')
        self.assertEqual(events[0].time, 100.0)
        self.assertAlmostEqual(events[0].distance, 0.05, places=9)
        # the minimum sits on the first sample, so it may lie before the window
        self.assertIs(events[0].reliability, Reliability.PARTIAL)

    def test_interior_minimum_is_reliable(self):
        offsets = [[-0.1, 0.03, 0.0], [0.1, 0.03, 0.0], [0.5, 0.03, 0.0]]
        trajectory = relative_trajectory(self.registry, 'TERRA', [0.0, 10.0, 20.0], offsets)
        events = detect_intersections(trajectory, self.registry, 0.0, active_soi_body='TERRA')

        self.assertEqual(len(events), 1)
        event = events[0]
        self.assertAlmostEqual(event.time, 5.0, places=9)
        self.assertAlmostEqual(event.distance, 0.03, places=9)
        self.assertIs(event.reliability, Reliability.FULL)
        gap = np.array(event.trajectory_position) - np.array(event.body_position)
        self.assertAlmostEqual(np.linalg.norm(gap), event.distance, places=12)

    def test_truncated_trajectory_is_partial(self):
        offsets = [[-0.1, 0.03, 0.0], [0.1, 0.03, 0.0]]
        full = relative_trajectory(self.registry, 'TERRA', [0.0, 10.0], offsets)
        cut = relative_trajectory(self.registry, 'TERRA', [0.0, 10.0], offsets,
                                  truncated=TruncationReason.SUN_COLLISION)

        self.assertIs(detect_intersections(full, self.registry, 0.0, 'TERRA')[0].reliability, Reliability.FULL)
        self.assertIs(detect_intersections(cut, self.registry, 0.0, 'TERRA')[0].reliability, Reliability.PARTIAL)

    def test_active_soi_restricts_bodies(self):
        offsets = [[-0.1, 0.03, 0.0], [0.1, 0.03, 0.0], [0.5, 0.03, 0.0]]
        trajectory = relative_trajectory(self.registry, 'TERRA', [0.0, 10.0, 20.0], offsets)

        self.assertEqual(detect_intersections(trajectory, self.registry, 0.0, active_soi_body='ARES'), [])
        self.assertEqual([e.body for e in detect_intersections(trajectory, self.registry, 0.0)], ['TERRA'])
        with self.assertRaises(ValueError):
            detect_intersections(trajectory, self.registry, 0.0, active_soi_body='VULCAN')

    def test_one_event_per_pass_sorted_and_capped(self):
        near = [0.05, 0.0, 0.0]
        far1 = [1.0, 0.0, 0.0]
        far2 = [1.0, 0.5, 0.0]
        offsets = [near, far1, far2, near, far1, far2, near]
        times = [10.0 * k for k in range(len(offsets))]
        trajectory = relative_trajectory(self.registry, 'TERRA', times, offsets)

        events = detect_intersections(trajectory, self.registry, 0.0, 'TERRA')
        self.assertEqual([e.time for e in events], pytest.approx([0.0, 30.0, 60.0]))
        self.assertIs(events[-1].reliability, Reliability.PARTIAL)

        capped = detect_intersections(trajectory, self.registry, 0.0, 'TERRA',
                                      config=PhysicsConfig(max_intersections=2))
        self.assertEqual([e.time for e in capped], pytest.approx([0.0, 30.0]))

    def test_bodies_without_soi_use_fixed_threshold(self):
        registry = BodyRegistry({'ROCK': circular_body('ROCK', 1.0, soi_radius=0.0)})
        offsets = [[-0.2, 0.15, 0.0], [0.2, 0.15, 0.0]]
        trajectory = relative_trajectory(registry, 'ROCK', [0.0, 10.0], offsets)

        self.assertEqual(detect_intersections(trajectory, registry, 0.0), [])
        events = detect_intersections(trajectory, registry, 0.0, config=PhysicsConfig(intersection_threshold=0.2))
        self.assertAlmostEqual(events[0].distance, 0.15, places=9)

    def test_non_finite_sample_splits_passes(self):
        gap = [np.nan, np.nan, np.nan]
        offsets = [[-0.1, 0.03, 0.0], [0.1, 0.03, 0.0], gap, [-0.1, 0.04, 0.0], [0.1, 0.04, 0.0]]
        trajectory = relative_trajectory(self.registry, 'TERRA', [0.0, 10.0, 20.0, 30.0, 40.0], offsets)

        events = detect_intersections(trajectory, self.registry, 0.0, 'TERRA')
        self.assertEqual([e.time for e in events], pytest.approx([5.0, 35.0]))
        self.assertEqual([e.distance for e in events], pytest.approx([0.03, 0.04]))

    def test_short_trajectory(self):
        point = TrajectoryPoint(position=(1.0, 0.0, 0.0), time=0.0)
        self.assertEqual(detect_intersections([point], self.registry, 0.0), [])
        self.assertEqual(detect_intersections([], self.registry, 0.0), [])


def test_closest_approach_static_body():
    approach = closest_approach([-1.0, 1.0, 0.0], [1.0, 1.0, 0.0], np.zeros(3), np.zeros(3), 0.0, 2.0)
    assert approach.s == pytest.approx(0.5)
    assert approach.time == pytest.approx(1.0)
    assert approach.distance == pytest.approx(1.0)


def test_closest_approach_parallel_motion():
    """No relative motion: the separation is constant and the first sample is used"""
    approach = closest_approach([0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.3, 0.0], [1.0, 0.3, 0.0], 5.0, 6.0)
    assert approach.s == 0.0
    assert approach.time == 5.0
    assert approach.distance == pytest.approx(0.3)


def test_orbit_crossings_on_radial_line():
    registry = BodyRegistry({'TERRA': circular_body('TERRA', 1.0)})
    trajectory = [
        TrajectoryPoint(position=(0.5, 0.0, 0.0), time=0.0),
        TrajectoryPoint(position=(1.5, 0.0, 0.0), time=10.0),
    ]
    crossings = find_orbit_crossings(trajectory, registry, 0.0)
    assert len(crossings) == 1
    assert crossings[0].body == 'TERRA'
    assert crossings[0].time == pytest.approx(5.0)
    assert crossings[0].radius == 1.0
    np.testing.assert_allclose(crossings[0].trajectory_position, [1.0, 0.0, 0.0])

    assert find_orbit_crossings(trajectory, registry, 6.0) == []


def test_orbit_crossings_restricted_to_active_soi_body():
    registry = BodyRegistry({
        'TERRA': circular_body('TERRA', 1.0),
        'ARES': circular_body('ARES', 1.5, M0=3.0),
    })
    trajectory = [
        TrajectoryPoint(position=(0.5, 0.0, 0.0), time=0.0),
        TrajectoryPoint(position=(2.0, 0.0, 0.0), time=10.0),
    ]
    assert [c.body for c in find_orbit_crossings(trajectory, registry, 0.0)] == ['TERRA', 'ARES']
    assert [c.body for c in find_orbit_crossings(trajectory, registry, 0.0, active_soi_body='ARES')] == ['ARES']
    with pytest.raises(ValueError):
        find_orbit_crossings(trajectory, registry, 0.0, active_soi_body='VULCAN')


if __name__ == '__main__':
    unittest.main()
