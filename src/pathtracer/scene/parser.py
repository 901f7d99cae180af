"""Line-oriented text format for scene descriptions.

Each non-empty line starts with a keyword followed by whitespace-separated
values. Scene-level keywords:

    DIMENSIONS w h          image size in pixels (required)
    RAY_DEPTH n             depth limit (default 6)
    SAMPLES n               samples per pixel (default 16)
    BG_COLOR r g b          background radiance (required)
    CAMERA_POSITION x y z   (required)
    CAMERA_RIGHT x y z      (required)
    CAMERA_UP x y z         (required)
    CAMERA_FORWARD x y z    (required)
    CAMERA_FOV_X radians    horizontal field of view (required)

``NEW_PRIMITIVE`` starts a primitive; the keywords after it describe that
primitive until the next ``NEW_PRIMITIVE``:

    PLANE nx ny nz | ELLIPSOID rx ry rz | BOX sx sy sz   shape (required)
    POSITION x y z
    ROTATION x y z w        quaternion, normalised on load
    COLOR r g b
    EMISSION r g b
    METALLIC | DIELECTRIC   material (diffuse when absent)
    IOR n                   index of refraction for DIELECTRIC

Unknown keywords are ignored.

Example:
    >>> from pathtracer.scene.parser import parse_scene
    >>> scene = parse_scene('''
    ... DIMENSIONS 4 3
    ... BG_COLOR 0.1 0.2 0.3
    ... CAMERA_POSITION 0 0 0
    ... CAMERA_RIGHT 1 0 0
    ... CAMERA_UP 0 1 0
    ... CAMERA_FORWARD 0 0 1
    ... CAMERA_FOV_X 1.5708
    ... ''')
    >>> scene.width, scene.height
    (4, 3)
"""

import logging
import os
from dataclasses import dataclass, field

from pathtracer.camera.pinhole import PinholeCamera
from pathtracer.errors import MalformedGeometryError, SceneFormatError
from pathtracer.geometry.shapes import Box, Ellipsoid, Plane, Shape
from pathtracer.materials.material import Material, MaterialKind
from pathtracer.scene.scene import IDENTITY_ROTATION, Primitive, Scene

logger = logging.getLogger(__name__)

Vec3 = tuple[float, float, float]

DEFAULT_RAY_DEPTH = 6
DEFAULT_SAMPLES = 16

_SHAPES = {
    "PLANE": Plane,
    "ELLIPSOID": Ellipsoid,
    "BOX": Box,
}

_CAMERA_KEYWORDS = {
    "CAMERA_POSITION": "position",
    "CAMERA_RIGHT": "right",
    "CAMERA_UP": "up",
    "CAMERA_FORWARD": "forward",
}


@dataclass
class _PrimitiveDraft:
    """Mutable primitive under construction."""

    line_number: int
    shape: Shape | None = None
    color: Vec3 = (0.0, 0.0, 0.0)
    emission: Vec3 = (0.0, 0.0, 0.0)
    position: Vec3 = (0.0, 0.0, 0.0)
    rotation: tuple[float, float, float, float] = IDENTITY_ROTATION
    material_kind: MaterialKind = MaterialKind.DIFFUSE
    ior: float = 1.0

    def build(self) -> Primitive:
        if self.shape is None:
            raise SceneFormatError("Primitive has no shape", self.line_number)
        if self.material_kind == MaterialKind.DIELECTRIC:
            material = Material.dielectric(self.ior)
        else:
            material = Material(self.material_kind)
        return Primitive(
            shape=self.shape,
            color=self.color,
            emission=self.emission,
            position=self.position,
            rotation=self.rotation,
            material=material,
        )


@dataclass
class _SceneDraft:
    """Mutable scene settings collected while reading lines."""

    width: int | None = None
    height: int | None = None
    background: Vec3 | None = None
    camera: dict[str, Vec3] = field(default_factory=dict)
    fov_x: float | None = None
    ray_depth: int = DEFAULT_RAY_DEPTH
    samples: int = DEFAULT_SAMPLES
    primitives: list[_PrimitiveDraft] = field(default_factory=list)


def _floats(tokens: list[str], count: int, line_number: int) -> tuple[float, ...]:
    if len(tokens) < count + 1:
        raise SceneFormatError(
            f"{tokens[0]} expects {count} values, got {len(tokens) - 1}", line_number
        )
    try:
        return tuple(float(token) for token in tokens[1 : count + 1])
    except ValueError as exc:
        raise SceneFormatError(f"{tokens[0]}: {exc}", line_number) from exc


def _ints(tokens: list[str], count: int, line_number: int) -> tuple[int, ...]:
    if len(tokens) < count + 1:
        raise SceneFormatError(
            f"{tokens[0]} expects {count} values, got {len(tokens) - 1}", line_number
        )
    try:
        return tuple(int(token) for token in tokens[1 : count + 1])
    except ValueError as exc:
        raise SceneFormatError(f"{tokens[0]}: {exc}", line_number) from exc


def _current(draft: _SceneDraft, keyword: str, line_number: int) -> _PrimitiveDraft:
    if not draft.primitives:
        raise SceneFormatError(f"{keyword} before any NEW_PRIMITIVE", line_number)
    return draft.primitives[-1]


def _apply_line(draft: _SceneDraft, tokens: list[str], line_number: int) -> None:
    keyword = tokens[0]

    if keyword == "DIMENSIONS":
        draft.width, draft.height = _ints(tokens, 2, line_number)
    elif keyword == "RAY_DEPTH":
        (draft.ray_depth,) = _ints(tokens, 1, line_number)
    elif keyword == "SAMPLES":
        (draft.samples,) = _ints(tokens, 1, line_number)
    elif keyword == "BG_COLOR":
        draft.background = _floats(tokens, 3, line_number)
    elif keyword in _CAMERA_KEYWORDS:
        draft.camera[_CAMERA_KEYWORDS[keyword]] = _floats(tokens, 3, line_number)
    elif keyword == "CAMERA_FOV_X":
        (draft.fov_x,) = _floats(tokens, 1, line_number)
    elif keyword == "NEW_PRIMITIVE":
        draft.primitives.append(_PrimitiveDraft(line_number))
    elif keyword in _SHAPES:
        primitive = _current(draft, keyword, line_number)
        try:
            primitive.shape = _SHAPES[keyword](_floats(tokens, 3, line_number))
        except MalformedGeometryError as exc:
            raise SceneFormatError(str(exc), line_number) from exc
    elif keyword == "POSITION":
        _current(draft, keyword, line_number).position = _floats(tokens, 3, line_number)
    elif keyword == "ROTATION":
        _current(draft, keyword, line_number).rotation = _floats(tokens, 4, line_number)
    elif keyword == "COLOR":
        _current(draft, keyword, line_number).color = _floats(tokens, 3, line_number)
    elif keyword == "EMISSION":
        _current(draft, keyword, line_number).emission = _floats(tokens, 3, line_number)
    elif keyword == "METALLIC":
        _current(draft, keyword, line_number).material_kind = MaterialKind.METALLIC
    elif keyword == "DIELECTRIC":
        _current(draft, keyword, line_number).material_kind = MaterialKind.DIELECTRIC
    elif keyword == "IOR":
        (_current(draft, keyword, line_number).ior,) = _floats(tokens, 1, line_number)
    else:
        logger.debug("Ignoring unknown keyword %r on line %d", keyword, line_number)


def _require(value, name: str):
    if value is None:
        raise SceneFormatError(f"{name} is not specified")
    return value


def parse_scene(text: str) -> Scene:
    """Build a Scene from the text format.

    Args:
        text: Full scene description.

    Returns:
        The parsed, validated scene.

    Raises:
        SceneFormatError: If a mandatory field is missing, a value does not
            parse, a primitive keyword appears before ``NEW_PRIMITIVE`` or a
            value is out of range.
    """
    draft = _SceneDraft()
    for line_number, line in enumerate(text.splitlines(), start=1):
        tokens = line.split()
        if tokens:
            _apply_line(draft, tokens, line_number)

    width = _require(draft.width, "DIMENSIONS")
    height = _require(draft.height, "DIMENSIONS")
    background = _require(draft.background, "BG_COLOR")
    fov_x = _require(draft.fov_x, "CAMERA_FOV_X")
    for keyword, name in _CAMERA_KEYWORDS.items():
        _require(draft.camera.get(name), keyword)
    if width <= 0 or height <= 0:
        raise SceneFormatError(f"DIMENSIONS must be positive, got {width} {height}")

    primitives = []
    for primitive in draft.primitives:
        try:
            primitives.append(primitive.build())
        except SceneFormatError:
            raise
        except ValueError as exc:
            raise SceneFormatError(str(exc), primitive.line_number) from exc

    try:
        camera = PinholeCamera.from_fov_x(fov_x=fov_x, width=width, height=height, **draft.camera)
        scene = Scene(
            width=width,
            height=height,
            background=background,
            camera=camera,
            primitives=tuple(primitives),
            ray_depth=draft.ray_depth,
            samples=draft.samples,
        )
    except ValueError as exc:
        raise SceneFormatError(str(exc)) from exc

    logger.debug("Parsed scene with %d primitives", len(primitives))
    return scene


def load_scene_file(path: str | os.PathLike) -> Scene:
    """Read and parse a scene file.

    Raises:
        OSError: If the file cannot be read.
        SceneFormatError: If the contents are invalid.
    """
    with open(path, encoding="utf-8") as scene_file:
        return parse_scene(scene_file.read())
