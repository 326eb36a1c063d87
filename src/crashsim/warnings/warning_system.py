"""
Cockpit warning evaluation.

The warning list is rebuilt from scratch on every update and returned
sorted by level: CRITICAL first, then WARNING, then ADVISORY. Display code
relies on index 0 being the highest-priority warning.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional, Tuple

import numpy as np

from ..core.units import M_TO_FT, MS_TO_FPM


class WarningLevel(IntEnum):
    CRITICAL = 0
    WARNING = 1
    ADVISORY = 2


@dataclass(frozen=True)
class CockpitWarning:
    id: str
    message: str
    level: WarningLevel
    flashing: bool = False

    def to_dict(self) -> dict:
        return {'id': self.id, 'message': self.message,
                'level': self.level.name, 'flashing': self.flashing}


@dataclass(frozen=True)
class WarningInputs:
    """Everything the warning checks look at, in display units."""

    altitude_agl_ft: float = 0.0
    altitude_msl_ft: float = 0.0
    indicated_airspeed_kt: float = 0.0
    vertical_speed_fpm: float = 0.0
    roll_deg: float = 0.0
    pitch_deg: float = 0.0
    alpha_deg: float = 0.0
    on_ground: bool = False

    gear: float = 0.0
    flaps: float = 0.0
    airbrake: float = 0.0
    brakes: float = 0.0
    throttle: float = 0.0

    fuel_kg: float = 0.0
    engine_n1: Tuple[float, ...] = ()
    engine_fire: Tuple[bool, ...] = ()
    apu_fire: bool = False
    hyd_a_psi: float = 3000.0
    hyd_b_psi: float = 3000.0
    all_generators_lost: bool = False
    cabin_altitude_ft: float = 0.0
    pitot_blocked: bool = False

    autopilot_engaged: bool = False
    autopilot_disconnect: bool = False
    autopilot_target_altitude_ft: Optional[float] = None

    @classmethod
    def from_aircraft(cls, aircraft, indicated_airspeed_kt: float = None) -> 'WarningInputs':
        """
        Derive the inputs from an Aircraft aggregate.

        Parameters
        ----------
        aircraft : Aircraft
        indicated_airspeed_kt : float, optional
            Airspeed as displayed; defaults to the physical IAS
        """
        physics = aircraft.physics
        controls = physics.controls
        systems = aircraft.systems
        autopilot = aircraft.autopilot
        roll, pitch, _ = physics.euler_angles_deg

        if indicated_airspeed_kt is None:
            indicated_airspeed_kt = physics.indicated_airspeed_kt

        return cls(
            altitude_agl_ft=physics.altitude_agl * M_TO_FT,
            altitude_msl_ft=physics.altitude * M_TO_FT,
            indicated_airspeed_kt=indicated_airspeed_kt,
            vertical_speed_fpm=physics.vertical_speed * MS_TO_FPM,
            roll_deg=roll,
            pitch_deg=pitch,
            alpha_deg=np.degrees(physics.alpha),
            on_ground=physics.on_ground,
            gear=controls.gear,
            flaps=controls.flaps,
            airbrake=controls.airbrake,
            brakes=controls.brakes,
            throttle=controls.throttle,
            fuel_kg=physics.fuel_kg,
            engine_n1=tuple(e.n1 for e in aircraft.propulsion.engines),
            engine_fire=tuple(systems.fire.engines),
            apu_fire=systems.fire.apu,
            hyd_a_psi=systems.hydraulics.sys_a.pressure,
            hyd_b_psi=systems.hydraulics.sys_b.pressure,
            all_generators_lost=systems.electrical.all_generators_lost,
            cabin_altitude_ft=systems.pressurization.cabin_altitude_ft,
            pitot_blocked=systems.sensors.pitot_blocked,
            autopilot_engaged=autopilot.engaged,
            autopilot_disconnect=autopilot.disconnect_alert,
            autopilot_target_altitude_ft=autopilot.targets.altitude if autopilot.engaged else None,
        )


@dataclass
class WarningThresholds:
    stall_alpha_deg: float = 15.0
    bank_angle_deg: float = 40.0
    overspeed_kt: float = 340.0
    sink_rate_fpm: float = 2500.0
    pull_up_fpm: float = 4000.0
    sink_rate_floor_ft: float = 50.0
    sink_rate_ceiling_ft: float = 2500.0
    terrain_agl_ft: float = 500.0
    terrain_speed_kt: float = 250.0
    terrain_descent_fpm: float = 1000.0
    gear_warning_agl_ft: float = 500.0
    gear_warning_speed_kt: float = 180.0
    flaps_warning_agl_ft: float = 200.0
    flaps_warning_speed_kt: float = 160.0
    takeoff_throttle: float = 0.7
    tail_strike_agl_ft: float = 50.0
    tail_strike_pitch_deg: float = 10.0
    hydraulic_low_psi: float = 1000.0
    cabin_altitude_ft: float = 10000.0
    low_fuel_kg: float = 500.0
    engine_fail_n1: float = 10.0
    engine_fail_agl_ft: float = 500.0
    altitude_deviation_ft: float = 300.0


class WarningSystem:
    """
    Evaluates GPWS, envelope, configuration, system and automation warnings.

    Parameters
    ----------
    thresholds : WarningThresholds, optional
    """

    def __init__(self, thresholds: WarningThresholds = None):
        self.thresholds = thresholds or WarningThresholds()
        self.active_warnings: List[CockpitWarning] = []
        # Autopilot altitude target last reached; None while climbing or descending to a new one
        self._captured_altitude_ft: Optional[float] = None

    def reset(self):
        self.active_warnings = []
        self._captured_altitude_ft = None

    def update(self, inputs: WarningInputs) -> List[CockpitWarning]:
        """
        Rebuild the warning list.

        Parameters
        ----------
        inputs : WarningInputs

        Returns
        -------
        list of CockpitWarning
            Sorted CRITICAL, WARNING, ADVISORY; insertion order within a level
        """
        self.active_warnings = []

        self.check_gpws(inputs)
        self.check_envelope(inputs)
        self.check_configuration(inputs)
        self.check_systems(inputs)
        self.check_automation(inputs)

        # sorted() is stable
        self.active_warnings = sorted(self.active_warnings, key=lambda w: w.level)
        return list(self.active_warnings)

    def add_warning(self, warning_id: str, message: str, level: WarningLevel,
                    flashing: bool = False):
        """Add a warning unless one with the same id is already listed."""
        if any(w.id == warning_id for w in self.active_warnings):
            return
        self.active_warnings.append(CockpitWarning(warning_id, message, WarningLevel(level), flashing))

    def check_gpws(self, s: WarningInputs):
        t = self.thresholds
        if s.on_ground:
            return

        agl = s.altitude_agl_ft
        vs = s.vertical_speed_fpm

        # Mode 1: excessive sink rate
        if t.sink_rate_floor_ft < agl < t.sink_rate_ceiling_ft:
            if vs < -t.pull_up_fpm:
                self.add_warning('GPWS_PULL_UP', 'PULL UP', WarningLevel.CRITICAL, True)
            elif vs < -t.sink_rate_fpm:
                self.add_warning('GPWS_SINK_RATE', 'SINK RATE', WarningLevel.WARNING, True)

        # Mode 2: terrain closure, inhibited in landing configuration
        landing_config = s.gear > 0.9 and s.flaps > 0.5
        if (not landing_config and agl < t.terrain_agl_ft
                and s.indicated_airspeed_kt > t.terrain_speed_kt
                and vs < -t.terrain_descent_fpm):
            self.add_warning('GPWS_TERRAIN', 'TERRAIN', WarningLevel.CRITICAL, True)

        # Mode 4: unsafe terrain clearance
        gear_down = s.gear > 0.5
        if agl < t.gear_warning_agl_ft and not gear_down and s.indicated_airspeed_kt < t.gear_warning_speed_kt:
            self.add_warning('GPWS_TOO_LOW_GEAR', 'TOO LOW GEAR', WarningLevel.WARNING)
        if (agl < t.flaps_warning_agl_ft and s.flaps < 0.1 and gear_down
                and s.indicated_airspeed_kt < t.flaps_warning_speed_kt):
            self.add_warning('GPWS_TOO_LOW_FLAPS', 'TOO LOW FLAPS', WarningLevel.WARNING)

    def check_envelope(self, s: WarningInputs):
        t = self.thresholds
        if not s.on_ground and s.alpha_deg > t.stall_alpha_deg:
            self.add_warning('STALL', 'STALL', WarningLevel.CRITICAL, True)
        if s.indicated_airspeed_kt > t.overspeed_kt:
            self.add_warning('OVERSPEED', 'OVERSPEED', WarningLevel.CRITICAL, True)
        if abs(s.roll_deg) > t.bank_angle_deg:
            self.add_warning('BANK_ANGLE', 'BANK ANGLE', WarningLevel.WARNING, True)

    def check_configuration(self, s: WarningInputs):
        t = self.thresholds
        if s.on_ground and s.throttle > t.takeoff_throttle:
            if s.flaps < 0.1:
                self.add_warning('CONFIG_FLAPS', 'CONFIG FLAPS', WarningLevel.WARNING, True)
            if s.airbrake > 0.1:
                self.add_warning('CONFIG_SPOILERS', 'CONFIG SPOILERS', WarningLevel.WARNING, True)
            if s.brakes > 0.1:
                self.add_warning('CONFIG_BRAKES', 'CONFIG BRAKES', WarningLevel.WARNING, True)

        if s.altitude_agl_ft <= t.tail_strike_agl_ft and s.pitch_deg > t.tail_strike_pitch_deg:
            self.add_warning('TAIL_STRIKE', 'TAIL STRIKE RISK', WarningLevel.CRITICAL, True)

    def check_systems(self, s: WarningInputs):
        t = self.thresholds

        for i, fire in enumerate(s.engine_fire):
            if fire:
                self.add_warning(f'FIRE_ENG{i + 1}', f'ENGINE {i + 1} FIRE', WarningLevel.CRITICAL, True)
        if s.apu_fire:
            self.add_warning('FIRE_APU', 'APU FIRE', WarningLevel.CRITICAL, True)

        if s.hyd_a_psi < t.hydraulic_low_psi:
            self.add_warning('HYD_A_LOW', 'HYD A PRESS LOW', WarningLevel.ADVISORY)
        if s.hyd_b_psi < t.hydraulic_low_psi:
            self.add_warning('HYD_B_LOW', 'HYD B PRESS LOW', WarningLevel.ADVISORY)

        if s.all_generators_lost:
            self.add_warning('ELEC_EMER', 'ELEC EMER CONFIG', WarningLevel.WARNING)

        if s.cabin_altitude_ft > t.cabin_altitude_ft:
            self.add_warning('CABIN_ALT', 'CABIN ALTITUDE', WarningLevel.CRITICAL, True)

        if s.fuel_kg < t.low_fuel_kg:
            self.add_warning('FUEL_LOW', 'LOW FUEL', WarningLevel.WARNING)

        if s.altitude_agl_ft > t.engine_fail_agl_ft:
            for i, n1 in enumerate(s.engine_n1):
                if n1 < t.engine_fail_n1:
                    self.add_warning(f'ENG_{i + 1}_FAIL', f'ENGINE {i + 1} FAIL', WarningLevel.CRITICAL, True)

        if s.pitot_blocked:
            self.add_warning('UNRELIABLE_AIRSPEED', 'UNRELIABLE AIRSPEED', WarningLevel.WARNING)

    def check_automation(self, s: WarningInputs):
        t = self.thresholds
        if s.autopilot_disconnect:
            self.add_warning('AP_DISCONNECT', 'AUTOPILOT DISCONNECT', WarningLevel.WARNING, True)

        target = s.autopilot_target_altitude_ft
        if not s.autopilot_engaged or target is None:
            self._captured_altitude_ft = None
            return

        # Only after the target has been captured, so commanded climbs and descents stay quiet
        if abs(s.altitude_msl_ft - target) <= t.altitude_deviation_ft:
            self._captured_altitude_ft = target
        elif self._captured_altitude_ft == target:
            self.add_warning('ALTITUDE_DEVIATION', 'ALTITUDE', WarningLevel.ADVISORY)
