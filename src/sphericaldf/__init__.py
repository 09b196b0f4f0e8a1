from .gen import create_potential, create_df, spherical_model
from .phasevol import PhaseVolume
from .spherical import SphericalIsotropicModel, SphericalIsotropicModelLocal, sample_pos_vel
from .diffusion import dif_coef_energy, dif_coef_losscone
from .tools import compute_density, compute_projected_density, write_spherical_isotropic_model, load

__all__ = [
    "create_potential",
    "create_df",
    "spherical_model",
    "PhaseVolume",
    "SphericalIsotropicModel",
    "SphericalIsotropicModelLocal",
    "sample_pos_vel",
    "dif_coef_energy",
    "dif_coef_losscone",
    "compute_density",
    "compute_projected_density",
    "write_spherical_isotropic_model",
    "load",
]
