"""
Tests for thrust propagation.

The state-vector propagator is checked against a DOP853 Cowell integration
of the same sailing problem.
"""
import math
import unittest

import numpy as np

from sailnav import (
    MU_SUN,
    Body,
    BodyRegistry,
    CoordinateFrame,
    OrbitalElements,
    SailState,
    ShipState,
    SOIState,
    advance,
    ballistic_ode,
    coast,
    elements_to_state,
    integrate_reference,
    make_context,
    propagate,
    solar_sail_ode,
    specific_energy,
    step_ship,
)

EARTH_MU = 8.887692445e-10
SHIP_MASS = 10000.0


def circular_elements(a=1.0, epoch=0.0, mu=MU_SUN):
    return OrbitalElements(a=a, e=0.0, i=0.0, Omega=0.0, omega=0.0, M0=0.0, epoch=epoch, mu=mu)


class TestAdvance(unittest.TestCase):

    def test_zero_thrust_leaves_elements_untouched(self):
        elements = circular_elements()
        stowed = SailState(deployment=0.0)
        self.assertIs(advance(elements, stowed, SHIP_MASS, 0.0, 1.0), elements)

    def test_prograde_thrust_raises_energy(self):
        elements = circular_elements()
        new = advance(elements, SailState(yaw=0.6), SHIP_MASS, 0.0, 1.0)
        self.assertGreater(new.a, elements.a)
        self.assertEqual(new.epoch, 1.0)

    def test_retrograde_thrust_lowers_energy(self):
        elements = circular_elements()
        new = advance(elements, SailState(yaw=-0.6), SHIP_MASS, 0.0, 1.0)
        self.assertLess(new.a, elements.a)

    def test_pitch_changes_inclination(self):
        """Out-of-plane thrust tilts an equatorial orbit"""
        elements = circular_elements()
        new = advance(elements, SailState(yaw=0.0, pitch=0.5), SHIP_MASS, 0.0, 1.0)
        self.assertGreater(new.i, 0.0)

    def test_kick_applied_at_end_of_step(self):
        """The new elements reproduce the coasted position at t + dt"""
        elements = OrbitalElements(1.2, 0.1, 0.2, 0.3, 0.4, 0.5, 0.0, MU_SUN)
        new = advance(elements, SailState(), SHIP_MASS, 0.0, 2.0)
        np.testing.assert_allclose(elements_to_state(new, 2.0).r, coast(elements, 2.0).r,
                                   rtol=0.0, atol=1e-10)

    def test_invalid_arguments(self):
        elements = circular_elements()
        with self.assertRaises(ValueError):
            advance(elements, SailState(), 0.0, 0.0, 1.0)
        with self.assertRaises(ValueError):
            advance(elements, SailState(), SHIP_MASS, 0.0, -1.0)
        with self.assertRaises(ValueError):
            propagate(elements, SailState(), SHIP_MASS, 10.0, 5.0)

    def test_non_finite_elements_returned_unchanged(self):
        bad = circular_elements()._replace(e=float('nan'))
        self.assertIs(advance(bad, SailState(), SHIP_MASS, 0.0, 1.0), bad)


class TestAgainstReferenceIntegration(unittest.TestCase):

    def test_ballistic_reference_matches_conic(self):
        elements = OrbitalElements(1.3, 0.3, 0.1, 0.5, 1.0, 2.0, 0.0, MU_SUN)
        state0 = elements_to_state(elements, 0.0)
        times = np.linspace(0.0, 100.0, 11)
        t, r, v = integrate_reference(state0.r, state0.v, MU_SUN, (0.0, 100.0), t_eval=times)

        for k, tk in enumerate(t):
            state = coast(elements, tk)
            np.testing.assert_allclose(r[k], state.r, rtol=0.0, atol=1e-9)
            np.testing.assert_allclose(v[k], state.v, rtol=0.0, atol=1e-11)

    def test_sailing_propagation_matches_cowell(self):
        """Small steps converge on the continuously thrusting trajectory"""
        sail = SailState(area=3.0e5, yaw=0.6)
        elements = circular_elements()
        state0 = elements_to_state(elements, 0.0)

        final = propagate(elements, sail, SHIP_MASS, 0.0, 20.0, max_step=0.05)
        r_prop = elements_to_state(final, 20.0).r

        _, r_ref, _ = integrate_reference(state0.r, state0.v, MU_SUN, (0.0, 20.0), t_eval=[20.0],
                                          sail=sail, mass=SHIP_MASS)
        error = np.linalg.norm(r_prop - r_ref[-1])
        sail_effect = np.linalg.norm(r_ref[-1] - coast(elements, 20.0).r)

        self.assertLess(error, 5e-5)
        self.assertGreater(sail_effect, 10.0 * error)

    def test_energy_gain_tracks_reference(self):
        sail = SailState(area=3.0e5, yaw=0.6)
        elements = circular_elements()
        state0 = elements_to_state(elements, 0.0)

        final = propagate(elements, sail, SHIP_MASS, 0.0, 10.0, max_step=0.05)
        end = elements_to_state(final, 10.0)
        _, r_ref, v_ref = integrate_reference(state0.r, state0.v, MU_SUN, (0.0, 10.0), t_eval=[10.0],
                                              sail=sail, mass=SHIP_MASS)

        E0 = specific_energy(state0.r, state0.v, MU_SUN)
        gain = specific_energy(end.r, end.v, MU_SUN) - E0
        gain_ref = specific_energy(r_ref[-1], v_ref[-1], MU_SUN) - E0
        self.assertGreater(gain_ref, 0.0)
        self.assertAlmostEqual(gain / gain_ref, 1.0, delta=0.02)


class TestStepShip(unittest.TestCase):

    def setUp(self):
        terra = Body(name='TERRA', mu=EARTH_MU, radius=4.26e-5, soi_radius=0.1,
                     elements=circular_elements())
        self.context = make_context(bodies=BodyRegistry({'TERRA': terra}))

    def test_heliocentric_step(self):
        ship = ShipState(circular_elements(a=2.0), SOIState.heliocentric())
        step = step_ship(ship, SailState(), SHIP_MASS, 0.0, 1.0, self.context)
        self.assertIsNone(step.event)
        self.assertFalse(step.ship.soi_state.is_in_soi)
        np.testing.assert_allclose(step.state.r, elements_to_state(step.ship.elements, 1.0).r)
        # the input record is never modified
        self.assertEqual(ship.elements, circular_elements(a=2.0))

    def test_planetocentric_step_reports_heliocentric_state(self):
        elements = circular_elements(a=0.01, mu=EARTH_MU)
        soi_state = SOIState(current_body='TERRA', frame=CoordinateFrame.PLANETOCENTRIC,
                             entry_time=-10.0, last_transition_time=-10.0)
        step = step_ship(ShipState(elements, soi_state), SailState(deployment=0.0), SHIP_MASS,
                         0.0, 1.0, self.context)

        self.assertIsNone(step.event)
        self.assertEqual(step.ship.soi_state.current_body, 'TERRA')
        terra = self.context.bodies.state_of('TERRA', 1.0)
        self.assertAlmostEqual(np.linalg.norm(step.state.r - terra.r), 0.01, places=12)
        self.assertAlmostEqual(np.linalg.norm(step.state.r), 1.0, delta=0.011)


def test_propagate_zero_interval_is_identity():
    elements = circular_elements()
    assert propagate(elements, SailState(), SHIP_MASS, 3.0, 3.0) is elements


def test_propagate_substeps_respect_max_step():
    """Splitting the interval differently changes the answer only slightly"""
    elements = circular_elements()
    sail = SailState(area=3.0e5)
    fine = propagate(elements, sail, SHIP_MASS, 0.0, 5.0, max_step=0.05)
    coarse = propagate(elements, sail, SHIP_MASS, 0.0, 5.0, max_step=0.1)
    assert math.isclose(fine.epoch, 5.0)
    assert math.isclose(fine.a, coarse.a, rel_tol=1e-4)


def test_ode_right_hand_sides():
    y = np.array([1.0, 0.0, 0.0, 0.0, 1.0, 0.0])
    np.testing.assert_allclose(ballistic_ode(0.0, y, 1.0), [0.0, 1.0, 0.0, -1.0, 0.0, 0.0])

    furled = SailState(deployment=0.0)
    np.testing.assert_allclose(solar_sail_ode(0.0, y, 1.0, furled, SHIP_MASS), ballistic_ode(0.0, y, 1.0))

    sailing = solar_sail_ode(0.0, y, MU_SUN, SailState(area=3.0e5), SHIP_MASS)
    # thrust pushes away from the sun
    assert sailing[3] > ballistic_ode(0.0, y, MU_SUN)[3]


if __name__ == '__main__':
    unittest.main()
