import json

import pandas as pd
import pytest

from gencap.errors import ConfigurationError
from gencap.model import load_parameters
from gencap.parameters import HOURS_PER_YEAR, StorageBoundary
from gencap.scenarios import run_emission_price_sweep, run_scenario
from gencap.utils import calculate_annuities_capex, get_config, read_series
from main import main


def test_default_configuration():
    config = get_config()
    parameters = load_parameters(config)
    assert len(parameters.hours) == HOURS_PER_YEAR
    assert parameters.technologies == ("wind", "pv", "gas", "gas_ccs")
    assert parameters.storage_boundary == StorageBoundary.CYCLIC
    assert parameters.emission_price == config["emission_price"]
    r = 0.045
    expected = r * 1.2e6 * (r * 1 + 1) / (1 - (1 + r) ** -25) + 30000
    assert parameters.annuity("wind") == pytest.approx(expected)


def test_fixed_initial_configuration():
    parameters = load_parameters(get_config(spec="fixed_initial"))
    assert parameters.storage_boundary == StorageBoundary.FIXED_INITIAL
    assert parameters.predecessor(parameters.first_hour) is None


def test_packaged_inputs_outside_of_the_repository(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert get_config()["storage_boundary"] == "cyclic"
    assert get_config(spec="fixed_initial")["name"] == "gencap_fixed_initial"
    lifetime = read_series("gencap/inputs/technology_characteristics/lifetime.csv")
    assert lifetime["gas"] == 30


def test_annuities_without_discounting():
    capex = pd.Series({"a": 100.0, "b": 50.0})
    lifetime = pd.Series({"a": 10, "b": 5, "c": 1})
    annuities = calculate_annuities_capex(0, capex, pd.Series({"a": 1, "b": 1}), lifetime)
    assert annuities.to_dict() == {"a": 10.0, "b": 10.0}


def test_load_parameters_from_files(small_config):
    parameters = load_parameters(small_config, emission_price=20)
    assert parameters.hours == tuple(range(24))
    assert parameters.emission_price == 20
    assert parameters.annuity("wind") == pytest.approx(1200)
    assert parameters.storage_annuity("battery") == pytest.approx(10)
    assert parameters.capacity_factor(9, "pv") == pytest.approx(0.8)


def test_load_parameters_missing_input(small_config):
    del small_config["lifetime"]
    with pytest.raises(ConfigurationError, match="lifetime"):
        load_parameters(small_config)


def test_load_parameters_invalid_boundary(small_config):
    with pytest.raises(ConfigurationError):
        load_parameters(small_config, storage_boundary="periodic")


def test_run_scenario(small_config, tmp_path):
    emission_price, summary = run_scenario(small_config, emission_price=0, solver_name="scipy",
                                           save_folder=tmp_path / "outputs")
    assert emission_price == 0
    assert summary["capacity_gas"] == pytest.approx(100 / 0.9, rel=1e-6)
    assert summary["renewable_share"] == pytest.approx(0, abs=1e-6)
    assert (tmp_path / "outputs" / "small_ep0" / "summary.csv").is_file()


def test_emission_price_sweep(small_config):
    sweep = run_emission_price_sweep(small_config, [500, 0], processes=1, solver_name="scipy")
    assert list(sweep.index) == [0, 500]
    assert sweep.loc[500, "renewable_share"] > sweep.loc[0, "renewable_share"]
    assert sweep.loc[500, "emissions_tot"] < sweep.loc[0, "emissions_tot"]


def test_cli(small_config, tmp_path):
    output = tmp_path / "cli"
    assert main(["--config", str(tmp_path / "config.json"), "--solver", "scipy", "--emission-price", "100",
                 "--output", str(output)]) == 0
    summary = pd.read_csv(output / "summary.csv", index_col=0).squeeze("columns")
    assert summary["demand_tot"] == pytest.approx(2400)


def test_cli_reports_infeasibility(small_config, tmp_path):
    load_factors = pd.read_csv(small_config["load_factors"], header=None)
    load_factors.loc[load_factors[1] == 0, 2] = 0.0
    load_factors.to_csv(small_config["load_factors"], header=False, index=False)
    small_config["storage_boundary"] = "fixed_initial"
    path = tmp_path / "infeasible.json"
    with open(path, "w") as file:
        json.dump(small_config, file)
    assert main(["--config", str(path), "--solver", "scipy", "--output", str(tmp_path / "cli")]) == 1
