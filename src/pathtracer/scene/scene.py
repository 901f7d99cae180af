"""Host-side scene description.

A ``Scene`` is built once (usually by ``pathtracer.scene.parser``) and is
read-only afterwards. Uploading it to the device is a separate step, see
``pathtracer.scene.intersection.load_primitives`` and
``pathtracer.core.integrator.load_scene``.
"""

import math
from dataclasses import dataclass, field

from pathtracer.camera.pinhole import PinholeCamera
from pathtracer.geometry.shapes import Shape, ShapeKind
from pathtracer.materials.material import Material

Vec3 = tuple[float, float, float]
Quat = tuple[float, float, float, float]

IDENTITY_ROTATION: Quat = (0.0, 0.0, 0.0, 1.0)


def _vec3(values, name: str) -> Vec3:
    vector = tuple(float(v) for v in values)
    if len(vector) != 3 or not all(math.isfinite(v) for v in vector):
        raise ValueError(f"{name} must be 3 finite numbers, got {values!r}")
    return vector  # type: ignore[return-value]


def normalize_quaternion(rotation) -> Quat:
    """Return ``rotation`` (x, y, z, w) scaled to unit length.

    Raises:
        ValueError: If the quaternion has the wrong arity or zero length.
    """
    q = tuple(float(v) for v in rotation)
    if len(q) != 4:
        raise ValueError(f"Rotation must have 4 components (x, y, z, w), got {len(q)}")
    norm = math.sqrt(sum(c * c for c in q))
    if not math.isfinite(norm) or norm == 0.0:
        raise ValueError(f"Rotation quaternion must be non-zero and finite, got {q}")
    return (q[0] / norm, q[1] / norm, q[2] / norm, q[3] / norm)


@dataclass(frozen=True)
class Primitive:
    """A shape placed in the world together with its surface properties.

    Attributes:
        shape: Shape in its local frame.
        color: Base reflectance (RGB). Not clamped.
        emission: Emitted radiance (RGB); zero for non-emitters.
        position: World-space translation of the local origin.
        rotation: Unit quaternion (x, y, z, w) rotating local into world.
        material: Scattering model.
    """

    shape: Shape
    color: Vec3 = (0.0, 0.0, 0.0)
    emission: Vec3 = (0.0, 0.0, 0.0)
    position: Vec3 = (0.0, 0.0, 0.0)
    rotation: Quat = IDENTITY_ROTATION
    material: Material = field(default_factory=Material.diffuse)

    def __post_init__(self) -> None:
        object.__setattr__(self, "color", _vec3(self.color, "color"))
        object.__setattr__(self, "emission", _vec3(self.emission, "emission"))
        object.__setattr__(self, "position", _vec3(self.position, "position"))
        object.__setattr__(self, "rotation", normalize_quaternion(self.rotation))

    @property
    def is_planar(self) -> bool:
        """Planes are unbounded and cannot be sampled as area lights."""
        return self.shape.kind == ShapeKind.PLANE


@dataclass(frozen=True)
class Scene:
    """Everything needed to render one image.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        background: Radiance returned by rays that escape the scene.
        camera: The viewing camera.
        primitives: Primitives in declaration order.
        ray_depth: Maximum number of surface interactions per path.
        samples: Number of estimator draws averaged per pixel.
    """

    width: int
    height: int
    background: Vec3
    camera: PinholeCamera
    primitives: tuple[Primitive, ...] = ()
    ray_depth: int = 6
    samples: int = 16

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {self.width}x{self.height}")
        if self.ray_depth < 0:
            raise ValueError(f"ray_depth must be non-negative, got {self.ray_depth}")
        if self.samples < 1:
            raise ValueError(f"samples must be at least 1, got {self.samples}")
        object.__setattr__(self, "background", _vec3(self.background, "background"))
        object.__setattr__(self, "primitives", tuple(self.primitives))

    def light_candidates(self) -> tuple[Primitive, ...]:
        """Primitives usable as area-light sampling targets (non-planar)."""
        return tuple(p for p in self.primitives if not p.is_planar)
