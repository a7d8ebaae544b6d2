import json

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from gencap.parameters import ParameterStore, ScenarioConfig, StorageBoundary

N_HOURS = 24

ANNUITIES = {"wind": 1200.0, "pv": 600.0, "gas": 200.0, "gas_ccs": 600.0}  # currency/MW over the horizon
VOM = {"wind": 0.0, "pv": 0.0, "gas": 60.0, "gas_ccs": 75.0}
AVAILABILITY = {"wind": 1.0, "pv": 1.0, "gas": 0.9, "gas_ccs": 0.85}
EMISSION_FACTOR = {"wind": 0.0, "pv": 0.0, "gas": 0.37, "gas_ccs": 0.04}
STORAGE_ANNUITIES = {"battery": 10.0}


def synthetic_load_factors(n_hours=N_HOURS):
    """Constant wind, pv during daytime and dispatchable gas."""
    hours = range(n_hours)
    return pd.DataFrame({
        "wind": [0.5] * n_hours,
        "pv": [0.8 if 8 <= h % 24 < 16 else 0.0 for h in hours],
        "gas": [1.0] * n_hours,
        "gas_ccs": [1.0] * n_hours,
    }, index=pd.Index(hours, name="hour"))


def build_parameters(n_hours=N_HOURS, demand=100.0, emission_price=0.0, storage_boundary=StorageBoundary.CYCLIC,
                     initial_storage_level=0.0, load_factors=None, **coefficients):
    if np.isscalar(demand):
        demand = pd.Series(float(demand), index=range(n_hours))
    if load_factors is None:
        load_factors = synthetic_load_factors(n_hours)
    config = ScenarioConfig(name="test", emission_price=emission_price, storage_boundary=storage_boundary,
                            initial_storage_level=initial_storage_level, solver="scipy")
    return ParameterStore(
        demand=demand,
        load_factors=load_factors,
        annuities=pd.Series(coefficients.get("annuities", ANNUITIES)),
        vOM=pd.Series(coefficients.get("vOM", VOM)),
        availability=pd.Series(coefficients.get("availability", AVAILABILITY)),
        emission_factor=pd.Series(coefficients.get("emission_factor", EMISSION_FACTOR)),
        storage_annuities=pd.Series(coefficients.get("storage_annuities", STORAGE_ANNUITIES)),
        config=config,
    )


@pytest.fixture
def make_parameters():
    return build_parameters


@pytest.fixture
def parameters():
    return build_parameters()


@pytest.fixture
def small_config(tmp_path):
    """Configuration dictionary pointing to a 24 hours data set written in tmp_path."""
    folder = tmp_path / "inputs"
    folder.mkdir()
    demand = pd.Series(100.0, index=range(N_HOURS))
    demand.to_csv(folder / "demand.csv", header=False)
    load_factors = synthetic_load_factors().unstack()  # (technology, hour)
    load_factors.to_csv(folder / "load_factors.csv", header=False)

    series = {
        "capex": {"wind": 12000.0, "pv": 6000.0, "gas": 2000.0, "gas_ccs": 6000.0},
        "storage_capex": {"battery": 100.0},
        "fOM": {"wind": 0.0, "pv": 0.0, "gas": 0.0, "gas_ccs": 0.0},
        "vOM": VOM,
        "lifetime": {"wind": 10, "pv": 10, "gas": 10, "gas_ccs": 10, "battery": 10},
        "construction_time": {"wind": 0, "pv": 0, "gas": 0, "gas_ccs": 0, "battery": 0},
        "availability": AVAILABILITY,
        "emission_factor": EMISSION_FACTOR,
        "miscellaneous": {"discount_rate": 0.0},
    }
    config = {
        "name": "small",
        "emission_price": 0,
        "storage_boundary": "cyclic",
        "initial_storage_level": 0,
        "solver": "scipy",
        "timeout": None,
        "demand": str(folder / "demand.csv"),
        "load_factors": str(folder / "load_factors.csv"),
    }
    for key, values in series.items():
        path = folder / f"{key}.csv"
        pd.Series(values).to_csv(path, header=False)
        config[key] = str(path)

    with open(tmp_path / "config.json", "w") as file:
        json.dump(config, file)
    return config
