"""Direction distributions used for importance sampling diffuse bounces.

A distribution answers two questions about directions leaving a surface
point: draw one (``sample``) and report the solid-angle density of a given
one (``pdf``). Three variants exist:

    CosineWeighted: cosine lobe around the surface normal
    LightSource: directions towards a point on one primitive's surface
    Mixture: picks a member uniformly; density is the members' mean

Composing a cosine lobe with a mixture of all lights gives multiple
importance sampling over the material and the emitters.

On the host the variants form a tree of Python objects. Kernels cannot walk
Python objects, so ``load_distribution`` flattens the tree breadth-first
into a node table: every mixture's children occupy a contiguous index range,
and every node carries the product of ``1 / member_count`` along its path
from the root. Sampling walks from the root to a leaf; the density is the
weighted sum of all leaf densities, which equals the nested means.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.distribution import CosineWeighted, Mixture
    >>> mixture = Mixture([CosineWeighted(), CosineWeighted()])
    >>> mixture.pdf((0, 0, 0), (0, 0, 1), (0, 0, 1))  # 1 / pi
    0.3183...
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from enum import IntEnum
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
import taichi as ti

from pathtracer.core.ray import vec3
from pathtracer.core.sampler import random_index, seed_streams
from pathtracer.distribution.cosine import pdf_cosine, sample_cosine
from pathtracer.distribution.light import pdf_light, sample_light
from pathtracer.errors import EmptyMixtureError

if TYPE_CHECKING:
    from pathtracer.scene.scene import Primitive, Scene

logger = logging.getLogger(__name__)

Vec3 = tuple[float, float, float]


class DistributionKind(IntEnum):
    """Device-side tag of a distribution node."""

    COSINE = 0
    LIGHT = 1
    MIXTURE = 2


# =============================================================================
# Node Table
# =============================================================================

# One cosine lobe, two mixtures and one leaf per light fit comfortably
MAX_DISTRIBUTION_NODES = 2048

# Deepest allowed leaf, counted in mixture levels below the root
MAX_MIXTURE_DEPTH = 8

node_kinds = ti.field(dtype=ti.i32, shape=MAX_DISTRIBUTION_NODES)
node_weights = ti.field(dtype=ti.f32, shape=MAX_DISTRIBUTION_NODES)
node_first_child = ti.field(dtype=ti.i32, shape=MAX_DISTRIBUTION_NODES)
node_child_count = ti.field(dtype=ti.i32, shape=MAX_DISTRIBUTION_NODES)
# Light geometry, copied from the bound primitive
node_light_shape_kinds = ti.field(dtype=ti.i32, shape=MAX_DISTRIBUTION_NODES)
node_light_params = ti.Vector.field(3, dtype=ti.f32, shape=MAX_DISTRIBUTION_NODES)
node_light_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_DISTRIBUTION_NODES)
node_light_rotations = ti.Vector.field(4, dtype=ti.f32, shape=MAX_DISTRIBUTION_NODES)
num_distribution_nodes = ti.field(dtype=ti.i32, shape=())


@ti.func
def sample_distribution(stream: ti.i32, origin: vec3, normal: vec3) -> vec3:
    """Draw a direction from the loaded distribution.

    Args:
        stream: Random stream to draw from.
        origin: Surface point the direction leaves from.
        normal: Unit surface normal at ``origin``.

    Returns:
        A unit direction.
    """
    node = 0
    for _ in range(MAX_MIXTURE_DEPTH):
        if node_kinds[node] == int(DistributionKind.MIXTURE):
            node = node_first_child[node] + random_index(stream, node_child_count[node])

    direction = vec3(0.0, 0.0, 0.0)
    kind = node_kinds[node]
    if kind == int(DistributionKind.COSINE):
        direction = sample_cosine(stream, normal)
    elif kind == int(DistributionKind.LIGHT):
        direction = sample_light(
            stream,
            origin,
            node_light_shape_kinds[node],
            node_light_params[node],
            node_light_positions[node],
            node_light_rotations[node],
        )
    return direction


@ti.func
def distribution_pdf(origin: vec3, normal: vec3, direction: vec3) -> ti.f32:
    """Solid-angle density of ``direction`` under the loaded distribution."""
    total = 0.0
    for node in range(num_distribution_nodes[None]):
        kind = node_kinds[node]
        if kind == int(DistributionKind.COSINE):
            total += node_weights[node] * pdf_cosine(normal, direction)
        elif kind == int(DistributionKind.LIGHT):
            total += node_weights[node] * pdf_light(
                origin,
                direction,
                node_light_shape_kinds[node],
                node_light_params[node],
                node_light_positions[node],
                node_light_rotations[node],
            )
    return total


# =============================================================================
# Host-side Distribution Tree
# =============================================================================

# Largest batch ``Distribution.sample_many`` can return in one call
MAX_HOST_SAMPLES = 1 << 18

_sample_output = ti.Vector.field(3, dtype=ti.f32, shape=MAX_HOST_SAMPLES)


@ti.kernel
def _sample_kernel(count: ti.i32, origin: vec3, normal: vec3):
    for k in range(count):
        _sample_output[k] = sample_distribution(k, origin, normal)


_pdf_output = ti.field(dtype=ti.f32, shape=())


@ti.kernel
def _pdf_kernel(origin: vec3, normal: vec3, direction: vec3):
    # Single-iteration outer loop keeps the node scan serial
    for _ in range(1):
        _pdf_output[None] = distribution_pdf(origin, normal, direction)


class Distribution(ABC):
    """A way of drawing directions from a surface point.

    ``sample``, ``sample_many`` and ``pdf`` upload this distribution to the
    device node table and run it there, so they replace whatever
    distribution the renderer had loaded. They exist for tooling and tests;
    rendering uses ``sample_distribution`` and ``distribution_pdf`` directly.
    """

    @abstractmethod
    def _write_node(self, index: int, weight: float) -> None:
        """Store this node's own data at ``index`` of the node table."""

    def sample(self, origin: Vec3, normal: Vec3, seed: int = 0) -> Vec3:
        """Draw a single unit direction."""
        x, y, z = self.sample_many(origin, normal, 1, seed=seed)[0]
        return (float(x), float(y), float(z))

    def sample_many(
        self,
        origin: Vec3,
        normal: Vec3,
        count: int,
        seed: int = 0,
    ) -> npt.NDArray[np.float32]:
        """Draw ``count`` independent directions in parallel.

        Args:
            origin: Surface point the directions leave from.
            normal: Unit surface normal at ``origin``.
            count: Number of directions, at most ``MAX_HOST_SAMPLES``.
            seed: Seed for the random streams.

        Returns:
            Array of shape (count, 3).

        Raises:
            ValueError: If ``count`` is out of range.
        """
        if count < 1 or count > MAX_HOST_SAMPLES:
            raise ValueError(f"Sample count {count} outside [1, {MAX_HOST_SAMPLES}]")
        load_distribution(self)
        seed_streams(seed, count)
        _sample_kernel(count, vec3(*origin), vec3(*normal))
        return _sample_output.to_numpy()[:count]

    def pdf(self, origin: Vec3, normal: Vec3, direction: Vec3) -> float:
        """Solid-angle density of ``direction`` at ``origin``."""
        load_distribution(self)
        _pdf_kernel(vec3(*origin), vec3(*normal), vec3(*direction))
        return float(_pdf_output[None])


class CosineWeighted(Distribution):
    """Cosine-weighted hemisphere around the surface normal."""

    def _write_node(self, index: int, weight: float) -> None:
        node_kinds[index] = int(DistributionKind.COSINE)
        node_weights[index] = weight
        node_child_count[index] = 0

    def __repr__(self) -> str:
        return "CosineWeighted()"


class LightSource(Distribution):
    """Directions towards uniformly drawn points on one primitive.

    Args:
        primitive: The light. Its material and emission do not matter, only
            its shape and placement.

    Raises:
        ValueError: If the primitive is a plane; planes are unbounded and
            have no finite area to sample.
    """

    def __init__(self, primitive: "Primitive") -> None:
        if primitive.is_planar:
            raise ValueError("Planes cannot be sampled as area lights")
        self.primitive = primitive

    def _write_node(self, index: int, weight: float) -> None:
        node_kinds[index] = int(DistributionKind.LIGHT)
        node_weights[index] = weight
        node_child_count[index] = 0
        node_light_shape_kinds[index] = int(self.primitive.shape.kind)
        node_light_params[index] = list(self.primitive.shape.param)
        node_light_positions[index] = list(self.primitive.position)
        node_light_rotations[index] = list(self.primitive.rotation)

    def __repr__(self) -> str:
        return f"LightSource({self.primitive.shape!r})"


class Mixture(Distribution):
    """Uniform mixture: sample picks a member at random, pdf is the mean.

    Args:
        members: Non-empty ordered collection of distributions.

    Raises:
        EmptyMixtureError: If ``members`` is empty.
        TypeError: If a member is not a ``Distribution``.
    """

    def __init__(self, members: Iterable[Distribution]) -> None:
        members = tuple(members)
        if not members:
            raise EmptyMixtureError("A mixture needs at least one member distribution")
        for member in members:
            if not isinstance(member, Distribution):
                raise TypeError(f"Mixture members must be distributions, got {member!r}")
        self.members = members

    def _write_node(self, index: int, weight: float) -> None:
        node_kinds[index] = int(DistributionKind.MIXTURE)
        node_weights[index] = weight

    def __repr__(self) -> str:
        return f"Mixture({list(self.members)!r})"


def clear_distribution() -> None:
    """Forget the loaded distribution."""
    num_distribution_nodes[None] = 0


def load_distribution(distribution: Distribution) -> int:
    """Flatten ``distribution`` into the device node table.

    Args:
        distribution: Root of the distribution tree.

    Returns:
        Number of nodes written.

    Raises:
        ValueError: If mixtures nest deeper than ``MAX_MIXTURE_DEPTH``.
        RuntimeError: If the tree has more than ``MAX_DISTRIBUTION_NODES``
            nodes.
    """
    pending = [(distribution, 1.0, 0)]
    index = 0
    while index < len(pending):
        node, weight, depth = pending[index]
        if depth > MAX_MIXTURE_DEPTH:
            raise ValueError(f"Mixtures nest deeper than {MAX_MIXTURE_DEPTH} levels")
        node._write_node(index, weight)
        if isinstance(node, Mixture):
            count = len(node.members)
            if len(pending) + count > MAX_DISTRIBUTION_NODES:
                raise RuntimeError(
                    f"Maximum number of distribution nodes ({MAX_DISTRIBUTION_NODES}) exceeded"
                )
            node_first_child[index] = len(pending)
            node_child_count[index] = count
            pending.extend((member, weight / count, depth + 1) for member in node.members)
        index += 1
    num_distribution_nodes[None] = len(pending)
    return len(pending)


def build_scene_distribution(scene: "Scene") -> Distribution:
    """Distribution used for every diffuse bounce in ``scene``.

    A cosine lobe mixed with a mixture of all non-planar primitives. The
    light mixture is left out when the scene has nothing to sample.
    """
    lights = [LightSource(primitive) for primitive in scene.light_candidates()]
    members: list[Distribution] = [CosineWeighted()]
    if lights:
        members.append(Mixture(lights))
    logger.debug("Scene distribution: cosine lobe + %d light(s)", len(lights))
    return Mixture(members)
