"""
Engine installation layouts.

Mounting positions are relative to the CG in the body frame
(x forward, y right, z down), in meters. Engine 0 is the leftmost.
"""

from dataclasses import dataclass
from typing import Tuple

from ..core.vector import Vector3
from ..exceptions import ConfigurationError


@dataclass(frozen=True)
class EngineMount:
    position: Vector3
    max_thrust: float          # N
    differential_gain: float   # throttle offset per unit differential


@dataclass(frozen=True)
class EngineLayout:
    name: str
    mounts: Tuple[EngineMount, ...]

    @property
    def engine_count(self) -> int:
        return len(self.mounts)


LAYOUTS = {
    'twin': EngineLayout('twin', (
        EngineMount(Vector3(2.0, -5.8, 1.5), 85000.0, -0.5),
        EngineMount(Vector3(2.0, 5.8, 1.5), 85000.0, 0.5),
    )),
    # Wing pair plus tail-mounted centre engine
    'tri': EngineLayout('tri', (
        EngineMount(Vector3(2.0, -4.5, 1.5), 75000.0, -0.5),
        EngineMount(Vector3(2.0, 4.5, 1.5), 75000.0, 0.5),
        EngineMount(Vector3(-15.0, 0.0, -3.0), 80000.0, 0.0),
    )),
    'quad': EngineLayout('quad', (
        EngineMount(Vector3(4.0, -12.0, 1.5), 70000.0, -0.3),
        EngineMount(Vector3(2.0, -6.0, 1.5), 70000.0, -0.3),
        EngineMount(Vector3(2.0, 6.0, 1.5), 70000.0, 0.3),
        EngineMount(Vector3(4.0, 12.0, 1.5), 70000.0, 0.3),
    )),
}

DEFAULT_LAYOUT_FOR_COUNT = {2: 'twin', 3: 'tri', 4: 'quad'}


def get_layout(name: str, engine_count: int = None) -> EngineLayout:
    """
    Look up a layout by name, optionally checking the engine count.

    Raises
    ------
    ConfigurationError
        Unknown layout, or engine_count does not match the layout
    """
    try:
        layout = LAYOUTS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown engine layout '{name}' (known: {', '.join(sorted(LAYOUTS))})"
        ) from None

    if engine_count is not None and engine_count != layout.engine_count:
        raise ConfigurationError(
            f"Layout '{name}' has {layout.engine_count} engines, configuration asks for {engine_count}"
        )

    return layout
