from .warning_system import CockpitWarning, WarningInputs, WarningLevel, WarningSystem, WarningThresholds

__all__ = ['CockpitWarning', 'WarningInputs', 'WarningLevel', 'WarningSystem', 'WarningThresholds']
