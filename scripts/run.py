import os
import numpy as np
import pandas as pd
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import sphericaldf
from sphericaldf.potential import PotentialFromFunction
from sphericaldf.definitions import ModelError
import datetime as dt
import time as t
from itertools import product
import copy

from run_dict import run_dictionary as rd


def main(rd, filename=None):
    start = t.time()
    now_str = dt.datetime.now().strftime("%Y_%m_%d_%H_%M")

    # check is save directory exists, if not create it
    os.makedirs(rd["save_dir"], exist_ok=True)

    if rd["Phi_custom"] is not None:
        print("Using custom potential...")
        pot = PotentialFromFunction(rd["Phi_custom"])
        pot_str = "custom"
    else:
        print(f"Using {rd['potential']} potential...")
        pot = sphericaldf.create_potential(rd["potential"], mass=rd["mass"], scaleRadius=rd["scaleRadius"])
        pot_str = rd["potential"]

    if rd["num_particles"] > 0 and not rd["local"]:
        print("Warning: sampling requires local=True. No particles will be sampled.")

    try:
        model = sphericaldf.spherical_model(
            pot,
            df=rd["df"],
            local=rd["local"],
            accuracy=rd["accuracy"],
            verbose=rd["verbose"],
        )
    except ModelError as e:
        print(f"Model construction failed: {e}")
        return None

    print(f"Model generated successfully. Total mass: {model.cumul_mass():.6g}")

    file_identifier = f"{pot_str}_M_{rd['mass']:.3g}_a_{rd['scaleRadius']:.3g}_{now_str}"
    if filename is not None:
        file_identifier = f"{filename}_{file_identifier}"

    # diagnostic table
    table_path = os.path.join(rd["save_dir"], f"{file_identifier}.txt")
    table = sphericaldf.write_spherical_isotropic_model(
        table_path, model, pot, header=f"potential={pot_str}, mass={rd['mass']}, scaleRadius={rd['scaleRadius']}"
    )
    print(f"Table written to {table_path}")

    # N-body realization
    if rd["num_particles"] > 0 and rd["local"]:
        rng = np.random.default_rng(rd["seed"])
        posvel, masses = sphericaldf.sample_pos_vel(model, pot, rd["num_particles"], rng)
        snap = pd.DataFrame(posvel, columns=["x", "y", "z", "vx", "vy", "vz"])
        snap["m"] = masses
        snap_path = os.path.join(rd["save_dir"], f"{file_identifier}_snapshot.txt")
        snap.to_csv(snap_path, sep="\t", index=False, float_format="%.8g")
        print(f"Sampled {rd['num_particles']} particles, saved to {snap_path}")

    end = t.time()
    print(f"Time taken to generate model: {end - start:.2f} seconds")

    if rd["save_model"]:
        filepath = os.path.join(rd["save_dir"], f"{file_identifier}.pkl")
        model.save(filepath)
        print(f"Model saved to {filepath}")

    if rd["plot"]:
        plot_profiles(table, pot, os.path.join(rd["save_dir"], f"{file_identifier}.png"))

    return model


def plot_profiles(table, pot, filepath):

    fig, axes = plt.subplots(1, 2, figsize=(10, 4))

    r = table["r"]
    axes[0].loglog(r, table["rho(r)"], label="DF")
    axes[0].loglog(r, table["SurfaceDensity"], ls="--", label="projected")
    rho_true = np.asarray(pot.density(r.values))
    if np.all(np.isfinite(rho_true)) and np.any(rho_true > 0):
        axes[0].loglog(r, rho_true, ls=":", c="k", label="potential")
    axes[0].set_xlabel("r")
    axes[0].set_ylabel(r"$\rho$, $\Sigma$")
    axes[0].legend()

    axes[1].semilogx(r, table["VelDispersion"], label=r"$\sigma$")
    axes[1].semilogx(r, table["VelDispProj"], ls="--", label=r"$\sigma_{los}$")
    axes[1].set_xlabel("r")
    axes[1].set_ylabel("velocity dispersion")
    axes[1].legend()

    fig.tight_layout()
    fig.savefig(filepath)
    plt.close(fig)
    print(f"Plot saved to {filepath}")


def expand_over_keys(d, scan_keys):
    """
    If any of scan_keys is a np.ndarray or list this function generates the cartesian product
    of all list values while keeping other keys fixed, enabling parameter scans.
    """
    fixed = {k: v for k, v in d.items() if k not in scan_keys}
    vary = {k: d[k] for k in scan_keys if k in d}

    def to_list(x):
        if isinstance(x, np.ndarray):
            return x.tolist()
        if isinstance(x, (list, tuple)) and not isinstance(x, (str, bytes)):
            return list(x)
        return [x]

    keys_vary = list(vary.keys())
    vals_vary = [to_list(vary[k]) for k in keys_vary]

    for combo in product(*vals_vary):
        new_d = copy.copy(fixed)
        new_d.update(zip(keys_vary, combo))
        yield new_d


if __name__ == "__main__":
    filename = None
    # filename = "test"  # specify for a custom filename prefix

    # logic for scanning over parameters
    scan_keys = ["mass", "scaleRadius"]

    if np.any([isinstance(rd[key], (np.ndarray, list)) for key in scan_keys]):
        varied_dicts = list(expand_over_keys(rd, scan_keys))
        num_dicts = len(varied_dicts)
        if num_dicts > 10:
            print(f"Warning: attempting to run {num_dicts} models. Would you like to continue? (y/n)")
            ans = input()
            if ans.lower() != "y":
                print("Exiting.")
                raise SystemExit

        for rd_i in varied_dicts:
            main(rd_i, filename=filename)
    else:
        main(rd, filename=filename)
