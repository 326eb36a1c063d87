"""Failure severity shared by engine records and fleet-level failures."""

from enum import Enum


class Severity(str, Enum):
    MINOR = 'minor'
    MAJOR = 'major'
    CRITICAL = 'critical'
