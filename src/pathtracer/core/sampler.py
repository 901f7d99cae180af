"""Per-stream pseudo-random number generation for Monte Carlo sampling.

Every pixel owns an independent xorshift32 stream stored in a Taichi field,
so parallel pixel workers never share generator state and a render is
reproducible for a fixed seed no matter how the backend schedules threads.
Streams are seeded by hashing ``(seed, stream index)`` with Wang's integer
hash.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.sampler import seed_streams, random_float
    >>> seed_streams(seed=7, count=64 * 64)
    >>> # Inside a kernel: u = random_float(stream_index)
"""

import taichi as ti

from pathtracer.core.ray import length_squared, safe_normalize, vec3

# Preallocated so that every supported image size gets one stream per pixel
MAX_STREAMS = 2048 * 2048

# Rejection sampling gives up after this many attempts (probability of
# reaching it is (1 - pi/6)^64, i.e. never in practice).
MAX_REJECTION_ATTEMPTS = 64

_stream_states = ti.field(dtype=ti.u32, shape=MAX_STREAMS)


@ti.func
def _wang_hash(value: ti.u32) -> ti.u32:
    """Wang's 32-bit integer hash, used to decorrelate stream seeds."""
    x = (value ^ ti.u32(61)) ^ (value >> ti.u32(16))
    x = x * ti.u32(9)
    x = x ^ (x >> ti.u32(4))
    x = x * ti.u32(668265261)
    x = x ^ (x >> ti.u32(15))
    return x


@ti.kernel
def _seed_streams_kernel(seed: ti.i32, count: ti.i32):
    seed_hash = _wang_hash(ti.cast(seed, ti.u32) + ti.u32(1))
    for k in range(count):
        state = _wang_hash(ti.cast(k, ti.u32) ^ seed_hash)
        if state == 0:
            state = ti.u32(1)
        _stream_states[k] = state


def seed_streams(seed: int, count: int) -> None:
    """Seed the first ``count`` random streams from ``seed``.

    Args:
        seed: Any integer; only its low 31 bits are used.
        count: Number of streams to (re)initialise.

    Raises:
        ValueError: If ``count`` is not in ``[1, MAX_STREAMS]``.
    """
    if count < 1 or count > MAX_STREAMS:
        raise ValueError(f"Stream count {count} outside [1, {MAX_STREAMS}]")
    _seed_streams_kernel(seed & 0x7FFFFFFF, count)


@ti.func
def random_float(stream: ti.i32) -> ti.f32:
    """Advance ``stream`` and return a uniform float in ``[0, 1)``."""
    x = _stream_states[stream]
    x = x ^ (x << ti.u32(13))
    x = x ^ (x >> ti.u32(17))
    x = x ^ (x << ti.u32(5))
    _stream_states[stream] = x
    # Top 24 bits are exactly representable in f32
    return ti.cast(x >> ti.u32(8), ti.f32) * (1.0 / 16777216.0)


@ti.func
def random_range(stream: ti.i32, low: ti.f32, high: ti.f32) -> ti.f32:
    """Uniform float in ``[low, high)``."""
    return low + (high - low) * random_float(stream)


@ti.func
def random_index(stream: ti.i32, count: ti.i32) -> ti.i32:
    """Uniform integer in ``[0, count)``."""
    k = ti.cast(random_float(stream) * ti.cast(count, ti.f32), ti.i32)
    return ti.max(0, ti.min(k, count - 1))


@ti.func
def random_in_unit_ball(stream: ti.i32) -> vec3:
    """Uniform point inside the unit ball by rejection from ``[-1, 1]^3``."""
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if not found:
            p = vec3(
                random_range(stream, -1.0, 1.0),
                random_range(stream, -1.0, 1.0),
                random_range(stream, -1.0, 1.0),
            )
            if length_squared(p) <= 1.0:
                found = True
    return p


@ti.func
def random_unit_vector(stream: ti.i32) -> vec3:
    """Direction uniformly distributed on the unit sphere."""
    return safe_normalize(random_in_unit_ball(stream))
