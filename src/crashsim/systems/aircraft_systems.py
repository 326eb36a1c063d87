"""Simplified aircraft system models: electrics, APU, hydraulics, pressurization, fire, sensors."""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from ..core.numerics import finite_or
from ..propulsion.engine import EngineFailureType, EngineState

logger = logging.getLogger(__name__)

GENERATOR_N2 = 50.0          # % N2 for a generator or bleed to come online
HYDRAULIC_PUMP_N2 = 10.0     # % N2 for an engine-driven pump
HYDRAULIC_NOMINAL_PSI = 3000.0
HYDRAULIC_BUILD_RATE = 500.0   # psi/s
HYDRAULIC_DECAY_RATE = 100.0   # psi/s


@dataclass
class ElectricalSystem:
    """Engine generators, APU generator and standby power."""

    generators: List[bool] = field(default_factory=lambda: [True, True])
    generators_online: List[bool] = field(default_factory=lambda: [False, False])
    apu_gen: bool = True
    apu_gen_online: bool = False
    stby_power: bool = True
    battery: bool = True
    dc_volts: float = 24.0

    def update(self, engine_n2: Sequence[float], apu_running: bool) -> None:
        self.generators_online = [
            switch and i < len(engine_n2) and engine_n2[i] > GENERATOR_N2
            for i, switch in enumerate(self.generators)
        ]
        self.apu_gen_online = self.apu_gen and apu_running

        self.dc_volts = 24.0 if self.battery else 0.0
        if self.ac_power_available:
            self.dc_volts = 28.0

    @property
    def ac_power_available(self) -> bool:
        return any(self.generators_online) or self.apu_gen_online

    @property
    def all_generators_lost(self) -> bool:
        return not self.ac_power_available

    def fail_generator(self, index: int) -> None:
        if 0 <= index < len(self.generators) and self.generators[index]:
            self.generators[index] = False
            logger.info("Generator %d offline", index + 1)

    def fail_all_sources(self) -> None:
        self.generators = [False] * len(self.generators)
        self.apu_gen = False
        self.stby_power = False


@dataclass
class APU:
    """Auxiliary power unit with a simple EGT-driven start sequence."""

    master: bool = False
    starting: bool = False
    running: bool = False
    bleed: bool = False
    egt: float = 0.0

    START_RATE = 50.0     # °C/s during start
    STABLE_EGT = 600.0

    def start(self) -> None:
        self.master = True
        if not self.running:
            self.starting = True

    def shutdown(self) -> None:
        self.master = False

    def update(self, dt: float) -> None:
        if not self.master:
            self.running = False
            self.starting = False
            self.egt = max(0.0, self.egt - 15.0 * dt)
            return

        if self.starting:
            self.egt += self.START_RATE * dt
            if self.egt >= self.STABLE_EGT:
                self.running = True
                self.starting = False
        elif self.running:
            self.egt = 650.0
        else:
            self.egt = max(0.0, self.egt - 10.0 * dt)


@dataclass
class HydraulicCircuit:
    pressure: float = HYDRAULIC_NOMINAL_PSI   # psi
    eng_pump: bool = True
    elec_pump: bool = True
    failed: bool = False
    engine_indices: tuple = ()

    def update(self, engine_n2: Sequence[float], ac_power: bool, dt: float) -> None:
        target = 0.0
        if not self.failed:
            engine_pump_ok = self.eng_pump and any(
                engine_n2[i] > HYDRAULIC_PUMP_N2 for i in self.engine_indices if i < len(engine_n2)
            )
            if engine_pump_ok or (self.elec_pump and ac_power):
                target = HYDRAULIC_NOMINAL_PSI

        if self.pressure < target:
            self.pressure = min(target, self.pressure + HYDRAULIC_BUILD_RATE * dt)
        elif self.pressure > target:
            self.pressure = max(target, self.pressure - HYDRAULIC_DECAY_RATE * dt)


@dataclass
class HydraulicSystem:
    """Two circuits, A on the left engines and B on the right."""

    sys_a: HydraulicCircuit = field(default_factory=HydraulicCircuit)
    sys_b: HydraulicCircuit = field(default_factory=HydraulicCircuit)

    def update(self, engine_n2: Sequence[float], ac_power: bool, dt: float) -> None:
        self.sys_a.update(engine_n2, ac_power, dt)
        self.sys_b.update(engine_n2, ac_power, dt)

    def fail_system(self, name: str) -> None:
        circuit = self.sys_a if name.upper() == 'A' else self.sys_b
        if not circuit.failed:
            circuit.failed = True
            logger.info("Hydraulic system %s failed", name.upper())


@dataclass
class PressurizationSystem:
    """Cabin altitude controller; a breach bleeds the cabin to ambient."""

    cabin_altitude_ft: float = 0.0
    max_cabin_altitude_ft: float = 8000.0
    packs_on: bool = True
    breach: bool = False

    CLIMB_RATE = 500.0 / 60.0     # ft/s scheduled
    LEAK_RATE = 100.0             # ft/s without bleed air
    BREACH_RATE = 3000.0          # ft/s

    def update(self, altitude_ft: float, bleed_available: bool, dt: float) -> None:
        altitude_ft = max(0.0, finite_or(altitude_ft, 0.0))
        current = self.cabin_altitude_ft

        if self.breach:
            step = self.BREACH_RATE * dt
            if current < altitude_ft:
                current = min(altitude_ft, current + step)
            else:
                current = max(altitude_ft, current - step)
        elif bleed_available and self.packs_on:
            desired = min(altitude_ft, self.max_cabin_altitude_ft)
            step = self.CLIMB_RATE * dt
            if current < desired:
                current = min(desired, current + step)
            elif current > desired:
                current = max(desired, current - step)
        elif current < altitude_ft:
            current = min(altitude_ft, current + self.LEAK_RATE * dt)

        self.cabin_altitude_ft = current


@dataclass
class FireProtection:
    engines: List[bool] = field(default_factory=lambda: [False, False])
    apu: bool = False

    def update(self, engines: Sequence[EngineState]) -> None:
        self.engines = [e.failure.failure_type is EngineFailureType.FIRE for e in engines]


@dataclass
class Sensors:
    pitot_blocked: bool = False


class AircraftSystems:
    """
    Aircraft systems driven by the engine states each tick.

    Parameters
    ----------
    engine_count : int
        Number of engine-driven generators and fire loops
    """

    def __init__(self, engine_count: int = 2):
        self.engine_count = engine_count
        self.reset()

    def reset(self):
        n = self.engine_count
        left = tuple(range(n // 2)) or (0,)
        right = tuple(range(n // 2, n))

        self.electrical = ElectricalSystem(generators=[True] * n, generators_online=[False] * n)
        self.apu = APU()
        self.hydraulics = HydraulicSystem(
            sys_a=HydraulicCircuit(engine_indices=left),
            sys_b=HydraulicCircuit(engine_indices=right),
        )
        self.pressurization = PressurizationSystem()
        self.fire = FireProtection(engines=[False] * n)
        self.sensors = Sensors()

    def update(self, dt: float, engines: Sequence[EngineState], altitude_ft: float):
        """
        Advance all systems.

        Parameters
        ----------
        dt : float
            Time step (s)
        engines : sequence of EngineState
        altitude_ft : float
            Aircraft pressure altitude (ft)
        """
        dt = max(0.0, finite_or(dt, 0.0))
        n2 = [e.n2 for e in engines]

        self.apu.update(dt)
        self.electrical.update(n2, self.apu.running)
        self.hydraulics.update(n2, self.electrical.ac_power_available, dt)

        bleed = any(v > GENERATOR_N2 for v in n2) or (self.apu.bleed and self.apu.running)
        self.pressurization.update(altitude_ft, bleed, dt)
        self.fire.update(engines)

    def to_dict(self) -> dict:
        return {
            'generators_online': list(self.electrical.generators_online),
            'apu_running': self.apu.running,
            'all_generators_lost': self.electrical.all_generators_lost,
            'hyd_a_psi': self.hydraulics.sys_a.pressure,
            'hyd_b_psi': self.hydraulics.sys_b.pressure,
            'cabin_altitude_ft': self.pressurization.cabin_altitude_ft,
            'pressurization_breach': self.pressurization.breach,
            'engine_fire': list(self.fire.engines),
            'pitot_blocked': self.sensors.pitot_blocked,
        }
