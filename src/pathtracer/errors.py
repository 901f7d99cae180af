"""Exception types raised by the renderer.

Legitimate "no result" cases (a ray missing everything, a zero density) are
never exceptions; they come back as absence values. The classes below are
reserved for invariant violations that make the whole render meaningless.
"""


class RenderError(RuntimeError):
    """Base class for fatal rendering failures."""


class MalformedGeometryError(RenderError):
    """Geometry produced a value that cannot be ordered or intersected.

    Raised for degenerate shape parameters (zero-length plane normal,
    non-positive radii) and for NaN ray parameters met while searching for
    the nearest hit.
    """


class EmptyMixtureError(RenderError, ValueError):
    """A mixture distribution was built without any member to sample from."""


class SceneFormatError(ValueError):
    """A scene description is missing a mandatory field or has a bad value."""

    def __init__(self, message: str, line_number: int | None = None) -> None:
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
