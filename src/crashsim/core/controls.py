"""
Control positions applied to the airframe.

Surfaces are normalized in pilot sense: +1 elevator is full nose up,
+1 aileron full roll right, +1 rudder full yaw right.
"""

from dataclasses import dataclass, fields

from .numerics import clamp, finite_or


@dataclass
class ControlState:
    elevator: float = 0.0
    aileron: float = 0.0
    rudder: float = 0.0
    throttle: float = 0.0    # master lever, negative = reverse
    trim: float = 0.0        # added to elevator
    flaps: float = 0.0       # 0 retracted, 1 full
    gear: float = 1.0        # 0 up, 1 down
    airbrake: float = 0.0
    brakes: float = 0.0

    LIMITS = {
        'elevator': (-1.0, 1.0),
        'aileron': (-1.0, 1.0),
        'rudder': (-1.0, 1.0),
        'throttle': (-0.7, 1.0),
        'trim': (-1.0, 1.0),
        'flaps': (0.0, 1.0),
        'gear': (0.0, 1.0),
        'airbrake': (0.0, 1.0),
        'brakes': (0.0, 1.0),
    }

    def clamp(self) -> 'ControlState':
        """Clamp every field to its range in place; non-finite values become 0."""
        for f in fields(self):
            lower, upper = self.LIMITS[f.name]
            setattr(self, f.name, clamp(finite_or(getattr(self, f.name), 0.0), lower, upper))
        return self

    def copy(self) -> 'ControlState':
        return ControlState(**{f.name: getattr(self, f.name) for f in fields(self)})
