"""Distribution module: importance sampling of bounce directions.

Components:
    cosine: Cosine-weighted hemisphere lobe
    light: Area sampling towards one primitive
    distributions: Host-side distribution tree and the device node table

The renderer draws every diffuse bounce from one scene-wide mixture:
    direction = sample_distribution(stream, point, normal)
    density = distribution_pdf(point, normal, direction)
"""

from .cosine import pdf_cosine, sample_cosine
from .distributions import (
    MAX_DISTRIBUTION_NODES,
    MAX_MIXTURE_DEPTH,
    CosineWeighted,
    Distribution,
    DistributionKind,
    LightSource,
    Mixture,
    build_scene_distribution,
    clear_distribution,
    distribution_pdf,
    load_distribution,
    sample_distribution,
)
from .light import pdf_light, sample_light

__all__ = [
    "CosineWeighted",
    "Distribution",
    "DistributionKind",
    "LightSource",
    "Mixture",
    "MAX_DISTRIBUTION_NODES",
    "MAX_MIXTURE_DEPTH",
    "build_scene_distribution",
    "clear_distribution",
    "distribution_pdf",
    "load_distribution",
    "pdf_cosine",
    "pdf_light",
    "sample_cosine",
    "sample_distribution",
    "sample_light",
]
