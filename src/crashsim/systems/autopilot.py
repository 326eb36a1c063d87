"""
Autopilot

Provides PID-based hold modes producing normalized control commands:
- Generic PID controller
- Altitude hold (elevator)
- Heading hold (aileron)
- Airspeed hold (throttle)

A disengagement while engaged latches a disconnect alert until acknowledged.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core.numerics import finite_or
from ..core.units import M_TO_FT

logger = logging.getLogger(__name__)


class PIDController:
    """
    Generic PID (Proportional-Integral-Derivative) controller.

    Parameters
    ----------
    Kp : float
        Proportional gain
    Ki : float
        Integral gain
    Kd : float
        Derivative gain
    output_limits : tuple of float, optional
        (min, max) output saturation limits
    integral_limits : tuple of float, optional
        (min, max) integral windup limits
    """

    def __init__(self,
                 Kp: float,
                 Ki: float,
                 Kd: float,
                 output_limits: Optional[tuple] = None,
                 integral_limits: Optional[tuple] = None):
        self.Kp = Kp
        self.Ki = Ki
        self.Kd = Kd
        self.output_limits = output_limits
        self.integral_limits = integral_limits

        self.error_integral = 0.0
        self.error_prev = 0.0
        self.first_call = True

    def update(self, error: float, dt: float) -> float:
        """
        Compute control output for given error.

        Parameters
        ----------
        error : float
            Control error (setpoint - measured)
        dt : float
            Time step (seconds)

        Returns
        -------
        float
            Control output
        """
        error = finite_or(error, 0.0)
        if dt <= 0.0:
            return self._limit(self.Kp * error + self.Ki * self.error_integral)

        P = self.Kp * error

        self.error_integral += error * dt
        if self.integral_limits is not None:
            self.error_integral = float(np.clip(self.error_integral,
                                                self.integral_limits[0],
                                                self.integral_limits[1]))
        I = self.Ki * self.error_integral

        # Skip the derivative on the first call to avoid a spike
        if self.first_call:
            D = 0.0
            self.first_call = False
        else:
            D = self.Kd * (error - self.error_prev) / dt

        self.error_prev = error

        return self._limit(P + I + D)

    def _limit(self, output: float) -> float:
        if self.output_limits is not None:
            output = np.clip(output, self.output_limits[0], self.output_limits[1])
        return float(output)

    def reset(self):
        """Reset controller state."""
        self.error_integral = 0.0
        self.error_prev = 0.0
        self.first_call = True


def _windup_limits(limit: float, Ki: float):
    if Ki <= 0:
        return None
    return (-limit / Ki, limit / Ki)


class AltitudeHoldController:
    """
    Altitude hold: altitude error → pitch command → elevator.

    Parameters
    ----------
    Kp_alt, Ki_alt, Kd_alt : float
        Altitude loop gains (rad/m)
    Kp_pitch, Ki_pitch, Kd_pitch : float
        Pitch loop gains (elevator per rad)
    pitch_limit : float
        Maximum pitch command (rad)
    """

    def __init__(self,
                 Kp_alt: float = 0.004,
                 Ki_alt: float = 0.0002,
                 Kd_alt: float = 0.01,
                 Kp_pitch: float = 2.5,
                 Ki_pitch: float = 0.3,
                 Kd_pitch: float = 0.2,
                 pitch_limit: float = np.radians(15)):
        self.altitude_pid = PIDController(
            Kp=Kp_alt, Ki=Ki_alt, Kd=Kd_alt,
            output_limits=(-pitch_limit, pitch_limit),
            integral_limits=_windup_limits(pitch_limit, Ki_alt),
        )
        self.pitch_pid = PIDController(
            Kp=Kp_pitch, Ki=Ki_pitch, Kd=Kd_pitch,
            output_limits=(-1.0, 1.0),
            integral_limits=_windup_limits(1.0, Ki_pitch),
        )

    def update(self, target_altitude: float, altitude: float, pitch: float, dt: float) -> float:
        """Elevator command in [-1, 1], positive = nose up."""
        pitch_command = self.altitude_pid.update(target_altitude - altitude, dt)
        return self.pitch_pid.update(pitch_command - pitch, dt)

    def reset(self):
        self.altitude_pid.reset()
        self.pitch_pid.reset()


class HeadingHoldController:
    """Heading hold: heading error → bank command → aileron."""

    def __init__(self,
                 Kp_heading: float = 0.8,
                 Ki_heading: float = 0.02,
                 Kd_heading: float = 0.1,
                 Kp_roll: float = 1.5,
                 Ki_roll: float = 0.1,
                 Kd_roll: float = 0.1,
                 roll_limit: float = np.radians(25)):
        self.heading_pid = PIDController(
            Kp=Kp_heading, Ki=Ki_heading, Kd=Kd_heading,
            output_limits=(-roll_limit, roll_limit),
            integral_limits=_windup_limits(roll_limit, Ki_heading),
        )
        self.roll_pid = PIDController(
            Kp=Kp_roll, Ki=Ki_roll, Kd=Kd_roll,
            output_limits=(-1.0, 1.0),
            integral_limits=_windup_limits(1.0, Ki_roll),
        )

    def update(self, target_heading: float, heading: float, roll: float, dt: float) -> float:
        """Aileron command in [-1, 1], positive = roll right. Angles in radians."""
        heading_error = target_heading - heading
        # Wrap to [-pi, pi]
        heading_error = np.arctan2(np.sin(heading_error), np.cos(heading_error))

        roll_command = self.heading_pid.update(heading_error, dt)
        return self.roll_pid.update(roll_command - roll, dt)

    def reset(self):
        self.heading_pid.reset()
        self.roll_pid.reset()


class AirspeedHoldController:
    """Airspeed hold on throttle."""

    def __init__(self, Kp: float = 0.05, Ki: float = 0.005, Kd: float = 0.0):
        self.pid = PIDController(
            Kp=Kp, Ki=Ki, Kd=Kd,
            output_limits=(0.0, 1.0),
            integral_limits=_windup_limits(1.0, Ki),
        )

    def update(self, target_airspeed: float, airspeed: float, dt: float) -> float:
        return self.pid.update(target_airspeed - airspeed, dt)

    def reset(self):
        self.pid.reset()


@dataclass
class AutopilotTargets:
    heading: float = 0.0       # deg true
    altitude: float = 0.0      # ft MSL
    airspeed: float = 250.0    # kt IAS


@dataclass(frozen=True)
class AutopilotCommand:
    elevator: float
    aileron: float
    throttle: Optional[float]


class Autopilot:
    """
    Heading, altitude and optional airspeed hold.

    Parameters
    ----------
    autothrottle : bool
        Also drive the throttle toward the airspeed target
    """

    def __init__(self, autothrottle: bool = False):
        self.autothrottle = autothrottle
        self.targets = AutopilotTargets()
        self.engaged = False
        self.disconnect_alert = False

        self.altitude_hold = AltitudeHoldController()
        self.heading_hold = HeadingHoldController()
        self.airspeed_hold = AirspeedHoldController()

    def set_engaged(self, engaged: bool):
        engaged = bool(engaged)
        if self.engaged and not engaged:
            self.disconnect_alert = True
            logger.info("Autopilot disconnected")
        elif engaged and not self.engaged:
            self.disconnect_alert = False
            self.reset_controllers()
            logger.info("Autopilot engaged: HDG %.0f ALT %.0f",
                        self.targets.heading, self.targets.altitude)
        self.engaged = engaged

    def acknowledge_disconnect(self):
        self.disconnect_alert = False

    def reset_controllers(self):
        self.altitude_hold.reset()
        self.heading_hold.reset()
        self.airspeed_hold.reset()

    def reset(self):
        self.targets = AutopilotTargets()
        self.engaged = False
        self.disconnect_alert = False
        self.reset_controllers()

    def update(self, altitude_ft: float, heading_deg: float, roll_deg: float,
               pitch_deg: float, airspeed_kt: float, dt: float) -> Optional[AutopilotCommand]:
        """
        Compute control commands while engaged.

        Returns
        -------
        AutopilotCommand or None
            None when disengaged
        """
        if not self.engaged:
            return None

        altitude_m = altitude_ft / M_TO_FT
        target_m = self.targets.altitude / M_TO_FT

        elevator = self.altitude_hold.update(target_m, altitude_m, np.radians(pitch_deg), dt)
        aileron = self.heading_hold.update(np.radians(self.targets.heading),
                                           np.radians(heading_deg), np.radians(roll_deg), dt)
        throttle = None
        if self.autothrottle:
            throttle = self.airspeed_hold.update(self.targets.airspeed, airspeed_kt, dt)

        return AutopilotCommand(elevator=elevator, aileron=aileron, throttle=throttle)
