"""Material variants attached to scene primitives.

A material only selects the scattering model; the surface colour and the
emitted radiance belong to the primitive itself.
"""

import math
from dataclasses import dataclass
from enum import IntEnum


class MaterialKind(IntEnum):
    """Enumeration of supported scattering models.

    Used for material dispatch in the path tracer.
    """

    DIFFUSE = 0
    METALLIC = 1
    DIELECTRIC = 2


@dataclass(frozen=True)
class Material:
    """A scattering model and its parameters.

    Attributes:
        kind: Which scattering model to use.
        ior: Index of refraction; only meaningful for dielectrics.
    """

    kind: MaterialKind = MaterialKind.DIFFUSE
    ior: float = 1.0

    def __post_init__(self) -> None:
        if not math.isfinite(self.ior) or self.ior <= 0.0:
            raise ValueError(f"Index of refraction must be positive, got {self.ior}")

    @classmethod
    def diffuse(cls) -> "Material":
        """Lambertian reflector."""
        return cls(MaterialKind.DIFFUSE)

    @classmethod
    def metallic(cls) -> "Material":
        """Perfect mirror."""
        return cls(MaterialKind.METALLIC)

    @classmethod
    def dielectric(cls, ior: float) -> "Material":
        """Transparent refracting material such as glass (ior ~1.5)."""
        return cls(MaterialKind.DIELECTRIC, float(ior))
