"""
Airframe configuration tests

Tests for YAML airframe loading:
- Packaged airframes
- Validation errors
- Building physics, aero and propulsion from a config
"""

import pytest
import numpy as np

from crashsim.exceptions import ConfigurationError
from crashsim.io import AirframeConfig, available_airframes, load_airframe, load_airframe_config
from crashsim.simulation import Aircraft


def minimal(**overrides):
    config = {'name': 'Test Jet', 'mass': {'empty': 30000.0, 'fuel': 5000.0, 'max_fuel': 8000.0}}
    config.update(overrides)
    return config


class TestPackagedAirframes:
    """Test the airframes shipped with the package."""

    def test_available(self):
        """Test listing the packaged airframes."""
        assert available_airframes() == ['a320', 'b737', 'b747', 'md11']

    @pytest.mark.parametrize('name,count,layout', [
        ('a320', 2, 'twin'),
        ('b737', 2, 'twin'),
        ('md11', 3, 'tri'),
        ('b747', 4, 'quad'),
    ])
    def test_engine_installation(self, name, count, layout):
        """Test engine count and layout per airframe."""
        config = load_airframe(name)
        assert config.engine_count == count
        assert config.layout == layout
        assert config.create_propulsion_manager().engine_count == count

    def test_a320_values(self):
        """Test A320 mass, geometry and inertia values."""
        config = load_airframe('a320')
        assert config.name == 'Airbus A320-200'
        assert config.empty_mass == 42600.0
        assert config.fuel == 12000.0
        assert config.max_takeoff_weight == pytest.approx(61600.0)
        assert config.S_ref == pytest.approx(122.6)
        assert config.inertia[0, 0] == pytest.approx(1.28e6)
        assert config.inertia.dtype == np.float64

    def test_engine_spec(self):
        """Test engine spec built from the propulsion block."""
        config = load_airframe('a320')
        spec = config.create_engine_spec()
        assert spec.sfc == pytest.approx(1.6e-5)
        assert spec.egt_max == 900.0
        assert config.create_propulsion_manager().total_max_thrust == pytest.approx(240000.0)

    def test_name_is_case_insensitive(self):
        """Test airframe lookup ignores case and whitespace."""
        assert load_airframe(' B737 ').name == 'Boeing 737-800'

    def test_unknown_airframe(self):
        """Test unknown airframe name."""
        with pytest.raises(ConfigurationError, match='Unknown airframe'):
            load_airframe('a380')

    def test_aero_overrides(self):
        """Test aero coefficient overrides."""
        model = load_airframe('md11').create_aero_model()
        assert model.coefficients.CL_max == pytest.approx(1.45)
        assert model.coefficients.Cm_q == pytest.approx(-18.0)
        assert model.coefficients.CD_0 == pytest.approx(0.022)
        assert model.S_ref == pytest.approx(338.9)

    def test_control_limits(self):
        """Test control deflection limits in radians."""
        model = load_airframe('a320').create_aero_model()
        assert model.max_elevator == pytest.approx(np.radians(25.0))
        assert model.max_rudder == pytest.approx(np.radians(30.0))


class TestValidation:
    """Test configuration errors."""

    def test_missing_empty_mass(self):
        """Test missing empty mass is rejected."""
        with pytest.raises(ConfigurationError, match='mass.empty'):
            AirframeConfig({'name': 'Broken', 'mass': {'fuel': 100.0}})

    def test_fuel_over_capacity(self):
        """Test fuel above tank capacity is rejected."""
        with pytest.raises(ConfigurationError):
            AirframeConfig(minimal(mass={'empty': 30000.0, 'fuel': 9000.0, 'max_fuel': 8000.0}))

    def test_not_a_mapping(self):
        """Test a non-mapping config is rejected."""
        with pytest.raises(ConfigurationError):
            AirframeConfig(['a320'])

    def test_layout_count_mismatch(self):
        """Test layout and engine count disagreement."""
        config = AirframeConfig(minimal(propulsion={'layout': 'twin', 'engine_count': 3}))
        with pytest.raises(ConfigurationError):
            config.create_propulsion_manager()

    def test_no_layout_for_count(self):
        """Test engine count with no matching layout."""
        with pytest.raises(ConfigurationError):
            AirframeConfig(minimal(propulsion={'engine_count': 6}))

    def test_default_layout_from_count(self):
        """Test layout derived from engine count."""
        assert AirframeConfig(minimal(propulsion={'engine_count': 3})).layout == 'tri'
        assert AirframeConfig(minimal()).layout == 'twin'

    def test_configuration_error_is_value_error(self):
        """Test ConfigurationError is a ValueError."""
        with pytest.raises(ValueError):
            load_airframe('nope')


class TestYamlFile:
    """Test loading a user file."""

    def test_load_wrapped_config(self, tmp_path):
        """Test loading a file with an aircraft wrapper."""
        path = tmp_path / 'jet.yaml'
        path.write_text(
            "aircraft:\n"
            "  name: Trainer Jet\n"
            "  mass:\n"
            "    empty: 25000.0\n"
            "    fuel: 4000.0\n"
            "    max_fuel: 6000.0\n"
            "  inertia:\n"
            "    Ixx: 5.0e+5\n"
            "    Iyy: 1.5e+6\n"
            "    Izz: 2.0e+6\n"
            "    Ixz: 1.0e+4\n"
            "  propulsion:\n"
            "    layout: twin\n"
            "    max_thrust: 60000.0\n"
        )

        config = load_airframe_config(str(path))
        assert config.name == 'Trainer Jet'
        assert config.inertia[0, 2] == pytest.approx(-1.0e4)
        assert config.inertia[2, 0] == config.inertia[0, 2]
        assert config.create_propulsion_manager().total_max_thrust == pytest.approx(120000.0)


class TestBuild:
    """Test building simulation objects from a config."""

    def test_physics(self):
        """Test building the physics service."""
        config = load_airframe('b737')
        physics = config.create_physics(terrain_elevation=200.0)
        assert physics.mass == pytest.approx(config.empty_mass + config.fuel)
        assert physics.max_fuel_kg == config.max_fuel
        assert physics.altitude == 200.0

    def test_aircraft(self):
        """Test building a complete aircraft."""
        aircraft = Aircraft.from_config(load_airframe('md11'), rng=np.random.default_rng(0))
        assert aircraft.name == 'McDonnell Douglas MD-11'
        assert aircraft.engine_count == 3
        assert aircraft.controls is aircraft.physics.controls
        assert len(aircraft.systems.electrical.generators) == 3

        aircraft.fuel_kg = 1000.0
        assert aircraft.physics.fuel_kg == 1000.0

    def test_repr(self):
        """Test config repr."""
        assert 'twin' in repr(load_airframe('a320'))
