"""
run_dict.py
-----------
This is the main configuration file for the spherical isotropic DF modeling package.

Edit this file to define and customize the potential and distribution function of the model.

Instructions:
- Modify the `run_dictionary` below to set model parameters and options.
- If mass or scaleRadius are set to scalars, the run script will generate a single model.
- If mass or scaleRadius are set to lists or arrays, the run script will scan over all combinations of parameters.
- Define or import your custom potential and DF functions as needed.
- Uncomment and update lines as necessary to include your custom functions or settings.
- Save and run with 'python run.py' to generate the model table, plots and saved models.

Units are such that G = 1.
"""

from analytic_potentials import Phi_Plummer_BH, df_cusp  # Add any custom potential or DF functions here
import numpy as np


# fmt: off

###################### DICTIONARY CONFIGURATION ######################
# EXAMPLE RUN DICTIONARY. EDIT THIS TO SET PARAMETERS AND OPTIONS.
# SINGLE MODEL GENERATION IF ALL PARAMETERS ARE SCALARS.
run_dictionary = {
    "potential": "Plummer",  # Options: 'Plummer', 'Hernquist', 'NFW', 'Isochrone' or 'Kepler'. Ignored if Phi_custom is set.
    "mass": 1.0,  # Total mass of the potential (or of the central point mass for 'Kepler').
    "scaleRadius": 1.0,  # Scale radius of the potential.
    "Phi_custom": None,  # Custom potential. Must be a function of r accepting numpy arrays.
    "df": None,  # Distribution function f(h). None: self-consistent DF of 'Plummer' or 'Hernquist'. Otherwise a function of h.
    "local": True,  # If True, also tabulates position-dependent quantities (needed for sampling).
    "accuracy": 1e-6,  # Tolerance on the second derivative of log f(log h) for the interpolation grid.
    "num_particles": 10000,  # Number of particles in the N-body realization. Set to 0 to skip (requires local=True).
    "seed": 42,  # Seed of the random number generator used for sampling.
    "save_model": True,  # If True, saves the model object to a .pkl file.
    "save_dir": "data/",  # Relative path to save the table, plots, snapshot and model.
    "plot": True,  # If True, plots density and velocity dispersion profiles.
    "verbose": False,  # If True, prints progress and warnings.
}

# EXAMPLE SCAN DICTIONARY. ONE OR MULTIPLE PARAMETERS CAN BE SET TO A LIST OR ARRAY TO SCAN OVER.
# SCANABLE PARAMETERS: mass, scaleRadius
# LIST/ARRAY INPUTS WILL GENERATE A GRID OVER ALL COMBINATIONS OF THE INPUT VALUES.
# run_dictionary = {
#     "potential": "Hernquist",
#     "mass": 1.0,
#     "scaleRadius": [0.5, 1.0, 2.0],
#     "Phi_custom": None,
#     "df": None,
#     "local": False,
#     "accuracy": 1e-6,
#     "num_particles": 0,
#     "seed": 42,
#     "save_model": False,
#     "save_dir": "data/",
#     "plot": True,
#     "verbose": False,
# }

###################### FUNCTION CONFIGURATION ######################
# Custom potential: Plummer sphere with a central black hole
M = 1.0  # Mass of the Plummer sphere
b = 1.0  # Plummer scale radius
Mbh = 0.1  # Mass of the central black hole

Phi_custom = Phi_Plummer_BH(M, b, Mbh)

# ~~~~~~~~~~~~~~update the run dictionary~~~~~~~~~~~~~~ #
# run_dictionary["Phi_custom"] = Phi_custom # uncomment to include custom potential

# Custom DF; must fall off faster than 1/h at large h, and f * E must grow slower than 1/h at small h
df = df_cusp(norm=1.0, inner=0.25)

# ~~~~~~~~~~~~~~update the run dictionary~~~~~~~~~~~~~~ #
# run_dictionary["df"] = df # uncomment to include custom DF (required with a custom potential)
