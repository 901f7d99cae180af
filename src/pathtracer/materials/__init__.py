"""Material module: scattering models attached to primitives.

Components:
    material: Host-side Material variants (Diffuse, Metallic, Dielectric)
    diffuse: Lambertian reflection sampled from the scene distribution
    metallic: Perfect mirror reflection
    dielectric: Schlick-weighted reflection or Snell refraction

Every scatter function returns the continuation direction and the weight
the radiance arriving along it is multiplied by.
"""

from .dielectric import scatter_dielectric
from .diffuse import eval_diffuse, scatter_diffuse
from .material import Material, MaterialKind
from .metallic import scatter_metallic

__all__ = [
    "Material",
    "MaterialKind",
    "eval_diffuse",
    "scatter_diffuse",
    "scatter_metallic",
    "scatter_dielectric",
]
