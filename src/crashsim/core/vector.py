"""
Immutable 3D vector used at the boundaries of the simulation core.

Internally the models work on numpy arrays; Vector3 is the typed value
handed to collaborators (engine mounting positions, published forces).
"""

import numpy as np

from archimedes import struct


@struct(frozen=True)
class Vector3:
    """Cartesian 3-vector."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def add(self, other: 'Vector3') -> 'Vector3':
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def sub(self, other: 'Vector3') -> 'Vector3':
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def scale(self, s: float) -> 'Vector3':
        return Vector3(self.x * s, self.y * s, self.z * s)

    def dot(self, other: 'Vector3') -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: 'Vector3') -> 'Vector3':
        return Vector3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def magnitude(self) -> float:
        return float(np.sqrt(self.dot(self)))

    def normalize(self) -> 'Vector3':
        """Unit vector in the same direction; the zero vector stays zero."""
        m = self.magnitude()
        if m < 1e-12:
            return Vector3()
        return self.scale(1.0 / m)

    def __add__(self, other: 'Vector3') -> 'Vector3':
        return self.add(other)

    def __sub__(self, other: 'Vector3') -> 'Vector3':
        return self.sub(other)

    def __mul__(self, s: float) -> 'Vector3':
        return self.scale(s)

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    @staticmethod
    def from_array(v) -> 'Vector3':
        return Vector3(float(v[0]), float(v[1]), float(v[2]))
