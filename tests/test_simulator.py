"""
Flight simulator tests

End-to-end tests of the tick loop:
- Session reset and snapshots
- Pilot input and autopilot
- Failure injection through the session
- Fuel starvation and pitot blockage
- History export and determinism
"""

import logging

import pytest
import numpy as np
import pandas as pd

from crashsim import FlightSimulator
from crashsim.core.severity import Severity
from crashsim.core.units import M_TO_FT
from crashsim.exceptions import ConfigurationError, InvalidEngineIndexError
from crashsim.failures import (
    CriticalMessage,
    EnginePayload,
    EventRecorder,
    FailureOccurred,
    FailureType,
    NoPayload,
)
from crashsim.propulsion import EngineFailureType
from crashsim.simulation import ControlInput

DT = 1.0 / 60.0


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def sim(recorder):
    return FlightSimulator('a320', seed=1, sink=recorder)


@pytest.fixture
def airborne(recorder):
    simulator = FlightSimulator('a320', seed=1, sink=recorder)
    simulator.reset(altitude=3000.0, airspeed=200.0, heading_deg=90.0)
    return simulator


def warning_ids(snapshot):
    return [w.id for w in snapshot.warnings]


class TestSession:
    """Test reset and basic stepping."""

    def test_ground_start(self, sim):
        """Test the initial ground snapshot."""
        snapshot = sim.snapshot
        assert snapshot.time == 0.0
        assert snapshot.on_ground
        assert not snapshot.crashed
        assert len(snapshot.engine_n1) == 2
        assert snapshot.fuel_kg == pytest.approx(12000.0)
        assert snapshot.master_warning is None
        assert sim.inputs.gear == 1.0

    def test_step(self, sim):
        """Test one tick advances time and records history."""
        snapshot = sim.step()
        assert snapshot.time == pytest.approx(DT)
        assert sim.history == [snapshot]

    @pytest.mark.parametrize('dt', [0.0, float('nan'), -1.0])
    def test_invalid_dt_is_a_no_op(self, sim, dt):
        """Test invalid time steps are ignored."""
        before = sim.snapshot
        assert sim.step(dt) is before
        assert sim.history == []

    def test_run(self, sim):
        """Test running for a duration."""
        snapshot = sim.run(1.0)
        assert snapshot.time == pytest.approx(1.0)
        assert len(sim.history) == 60

    def test_airborne_reset(self, airborne):
        """Test airborne reset throttle, gear and autopilot targets."""
        autopilot = airborne.aircraft.autopilot
        assert not airborne.snapshot.on_ground
        assert airborne.inputs.throttle == FlightSimulator.AIRBORNE_THROTTLE
        assert airborne.inputs.gear == 0.0
        assert autopilot.targets.heading == 90.0
        assert autopilot.targets.altitude == pytest.approx(3000.0 * M_TO_FT)
        assert autopilot.targets.airspeed == pytest.approx(airborne.snapshot.indicated_airspeed_kt)

    def test_reset_rebuilds_aircraft(self, sim):
        """Test reset builds a fresh aircraft."""
        sim.run(1.0)
        old = sim.aircraft
        sim.reset()
        assert sim.aircraft is not old
        assert sim.history == []
        assert sim.snapshot.time == 0.0

    def test_quad_airframe(self):
        """Test a four engine session."""
        sim = FlightSimulator('b747', seed=0)
        snapshot = sim.step()
        assert len(snapshot.engine_n1) == 4
        assert 'n1_4' in snapshot.to_dict()

    def test_unknown_airframe(self):
        """Test unknown airframe name."""
        with pytest.raises(ConfigurationError):
            FlightSimulator('concorde')

    def test_unknown_difficulty_falls_back(self, caplog):
        """Test unknown difficulty falls back to intermediate."""
        with caplog.at_level(logging.WARNING):
            sim = FlightSimulator(difficulty='impossible', seed=0)
        assert sim.failures.settings.recovery_chance == 0.5


class TestControls:
    """Test pilot input and autopilot."""

    def test_control_input_clamped(self):
        """Test control input clamping."""
        inputs = ControlInput(pitch=5.0, throttle=-2.0, flaps=float('nan')).clamped()
        assert inputs.pitch == 1.0
        assert inputs.throttle == -0.7
        assert inputs.flaps == 0.0

    def test_set_controls_by_keyword(self, sim):
        """Test updating controls by keyword."""
        sim.set_controls(throttle=0.5)
        sim.set_controls(pitch=3.0)
        assert sim.inputs.throttle == 0.5
        assert sim.inputs.pitch == 1.0

    def test_inputs_reach_control_state(self, sim):
        """Test pilot inputs reach the control surfaces."""
        sim.set_controls(ControlInput(pitch=0.2, roll=-0.3, yaw=0.1, brakes=1.0))
        sim.step()
        controls = sim.aircraft.controls
        assert (controls.elevator, controls.aileron, controls.rudder) == (0.2, -0.3, 0.1)
        assert controls.brakes == 1.0

    def test_takeoff_power(self, sim):
        """Test takeoff power accelerates the aircraft."""
        sim.set_controls(throttle=1.0)
        snapshot = sim.run(10.0)

        assert snapshot.total_thrust > 100000.0
        assert snapshot.true_airspeed > 10.0
        assert snapshot.fuel_kg < 12000.0
        assert 'CONFIG_FLAPS' in warning_ids(snapshot)

    def test_differential_throttle(self, sim):
        """Test differential throttle through the session."""
        sim.set_controls(throttle=0.5, differential=0.5)
        sim.step()

        left, right = sim.aircraft.propulsion.engines
        assert left.throttle == pytest.approx(0.25)
        assert right.throttle == pytest.approx(0.75)

    def test_autopilot(self, airborne):
        """Test autopilot engaged in flight."""
        airborne.engage_autopilot(heading_deg=100.0)
        snapshot = airborne.run(2.0)

        autopilot = airborne.aircraft.autopilot
        assert autopilot.engaged
        assert autopilot.targets.heading == 100.0
        assert not snapshot.crashed
        assert np.isfinite(snapshot.altitude_m)

    def test_autopilot_disconnect_warning(self, airborne):
        """Test autopilot disconnect warning."""
        airborne.engage_autopilot()
        airborne.step()
        airborne.disengage_autopilot()
        assert 'AP_DISCONNECT' in warning_ids(airborne.step())


class TestFailures:
    """Test failures injected through the session."""

    def test_engine_failure(self, airborne, recorder):
        """Test engine failure through the session."""
        airborne.trigger_failure(FailureType.ENGINE_FAILURE, EnginePayload(0))
        snapshot = airborne.step()

        left, right = airborne.aircraft.propulsion.engines
        assert left.failure.failure_type is EngineFailureType.FLAMEOUT
        assert not right.is_failed
        assert [f.type for f in snapshot.active_failures] == [FailureType.ENGINE_FAILURE]
        assert len(recorder.of_type(FailureOccurred)) == 1

        snapshot = airborne.run(10.0)
        assert snapshot.engines_running == 1
        assert 'ENG_1_FAIL' in warning_ids(snapshot)
        assert 'engine_failure' in airborne.history_frame()['failures'].iloc[-1]

    def test_engine_relight(self):
        """Test engine relight after a recoverable failure."""
        sim = FlightSimulator(difficulty='rookie', seed=0)
        sim.reset(altitude=3000.0, airspeed=200.0)
        sim.trigger_failure(FailureType.ENGINE_FAILURE, EnginePayload(1))
        sim.step()

        assert sim.recover_engine(1)
        assert sim.run(10.0).engines_running == 2

    def test_mismatched_payload_rejected_before_tick(self, airborne):
        """A wrong payload fails at trigger time and the next tick runs normally."""
        with pytest.raises(TypeError):
            airborne.trigger_failure(FailureType.ENGINE_FAILURE, NoPayload())
        with pytest.raises(InvalidEngineIndexError):
            airborne.trigger_failure(FailureType.BIRD_STRIKE, EnginePayload(2))

        snapshot = airborne.step()
        assert snapshot.active_failures == ()
        assert snapshot.engines_running == 2

    def test_emergency_shutdown(self, airborne):
        """Test emergency shutdown through the session."""
        airborne.emergency_shutdown()
        snapshot = airborne.run(5.0)
        assert snapshot.engines_running == 0
        assert snapshot.total_thrust == pytest.approx(0.0, abs=1.0)

    def test_forced_failure_fires(self, recorder):
        """Test forced failure fires during the session."""
        sim = FlightSimulator(forced_failure='hull_breach', seed=3, sink=recorder,
                              record_history=False)
        trigger_time = sim.failures.pending.trigger_time
        sim.run(trigger_time + 1.0, dt=0.05)

        assert sim.failures.is_active(FailureType.HULL_BREACH)
        assert sim.aircraft.systems.pressurization.breach
        assert sim.history == []

    def test_fuel_starvation(self, recorder, caplog):
        """Test fuel starvation flames out every engine once."""
        sim = FlightSimulator(seed=0, sink=recorder)
        sim.reset(altitude=3000.0, airspeed=200.0, fuel_kg=0.0)

        with caplog.at_level(logging.WARNING):
            snapshot = sim.run(2.0)

        engines = sim.aircraft.propulsion.engines
        assert all(e.failure.failure_type is EngineFailureType.FLAMEOUT for e in engines)
        assert all(e.failure.severity is Severity.CRITICAL for e in engines)
        assert not any(e.failure.recovery_possible for e in engines)
        assert snapshot.engines_running == 0

        messages = [e for e in recorder.of_type(CriticalMessage) if e.title == 'FUEL EXHAUSTION']
        assert len(messages) == 1
        assert messages[0].content == 'WARNING: ALL ENGINES FLAMED OUT.'
        assert 'Fuel exhausted' in caplog.text
        assert 'FUEL_LOW' in warning_ids(snapshot)

    def test_pitot_blockage_freezes_airspeed(self, airborne):
        """Test pitot blockage freezes displayed airspeed."""
        airborne.trigger_failure(FailureType.PITOT_STATIC_FAILURE)
        frozen = airborne.step().indicated_airspeed_kt
        snapshot = airborne.run(5.0)

        physical = airborne.aircraft.physics.indicated_airspeed_kt
        assert snapshot.indicated_airspeed_kt == frozen
        assert physical != frozen
        assert 'UNRELIABLE_AIRSPEED' in warning_ids(snapshot)

        airborne.failures.clear_failure(FailureType.PITOT_STATIC_FAILURE)
        snapshot = airborne.step()
        assert snapshot.indicated_airspeed_kt == pytest.approx(
            airborne.aircraft.physics.indicated_airspeed_kt)
        assert 'UNRELIABLE_AIRSPEED' not in warning_ids(snapshot)


class TestCrash:
    """Test the end of a session."""

    def test_crash_stops_the_session(self, sim):
        """Test a crash ends the session."""
        sim.reset(altitude=20.0)
        sim.aircraft.physics.state.velocity_body = np.array([30.0, 0.0, 20.0])
        snapshot = sim.run(10.0)

        assert snapshot.crashed
        assert snapshot.crash_reason.startswith('hard impact')
        ticks = len(sim.history)
        assert sim.step() is snapshot
        assert len(sim.history) == ticks


class TestHistory:
    """Test history export and reproducibility."""

    def test_history_frame(self, sim):
        """Test history export to a DataFrame."""
        sim.set_controls(throttle=0.4)
        sim.run(1.0)
        frame = sim.history_frame()

        assert isinstance(frame, pd.DataFrame)
        assert len(frame) == 60
        for column in ('time', 'altitude_m', 'indicated_airspeed_kt', 'n1_1', 'n1_2',
                       'thrust_1', 'thrust_2', 'failures', 'warnings'):
            assert column in frame.columns
        assert frame['time'].is_monotonic_increasing

    def test_empty_history(self, sim):
        """Test empty history export."""
        assert sim.history_frame().empty

    def test_same_seed_same_session(self):
        """Test identical seeds give identical sessions."""
        frames = []
        for _ in range(2):
            sim = FlightSimulator('a320', difficulty='advanced', forced_failure='engine_failure',
                                  seed=42)
            sim.set_controls(throttle=0.2, brakes=1.0)
            sim.run(100.0, dt=0.05)
            assert sim.failures.is_active(FailureType.ENGINE_FAILURE)
            frames.append(sim.history_frame())

        pd.testing.assert_frame_equal(frames[0], frames[1])
