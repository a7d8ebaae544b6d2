import numpy as np
import pandas as pd
import pytest

from gencap.errors import ConfigurationError
from gencap.parameters import ParameterStore, ScenarioConfig, StorageBoundary


def test_accessors_follow_input_order(parameters):
    assert parameters.hours == tuple(range(24))
    assert parameters.first_hour == 0
    assert parameters.last_hour == 23
    assert parameters.technologies == ("wind", "pv", "gas", "gas_ccs")
    assert parameters.storage_technologies == ("battery",)
    assert parameters.demand_at(5) == 100.0
    assert parameters.capacity_factor(10, "pv") == 0.8
    assert parameters.capacity_factor(2, "pv") == 0.0
    assert parameters.annuity("gas") == 200.0
    assert parameters.variable_cost("gas_ccs") == 75.0
    assert parameters.emission_factor("gas") == 0.37
    assert parameters.storage_annuity("battery") == 10.0
    assert parameters.max_generation(0, "gas") == pytest.approx(0.9)
    assert list(parameters.load_factors.columns) == list(parameters.technologies)


def test_accessors_return_copies(parameters):
    demand = parameters.demand
    demand.iloc[0] = -1
    assert parameters.demand_at(0) == 100.0


def test_predecessor_cyclic(make_parameters):
    parameters = make_parameters(storage_boundary=StorageBoundary.CYCLIC)
    assert parameters.predecessor(1) == 0
    assert parameters.predecessor(0) == 23


def test_predecessor_fixed_initial(make_parameters):
    parameters = make_parameters(storage_boundary="fixed_initial", initial_storage_level=5)
    assert parameters.storage_boundary == StorageBoundary.FIXED_INITIAL
    assert parameters.predecessor(0) is None
    assert parameters.predecessor(23) == 22
    assert parameters.initial_storage_level == 5


def test_predecessor_uses_label_order(make_parameters):
    demand = pd.Series(10.0, index=[100, 7, 42])
    load_factors = pd.DataFrame(0.5, index=[42, 100, 7], columns=["wind", "pv", "gas", "gas_ccs"])
    parameters = make_parameters(demand=demand, load_factors=load_factors)
    assert parameters.hours == (100, 7, 42)
    assert parameters.predecessor(42) == 7
    assert parameters.predecessor(100) == 42
    assert list(parameters.load_factors.index) == [100, 7, 42]


def test_load_factors_as_technology_hour_series(make_parameters):
    frame = make_parameters().load_factors
    parameters = make_parameters(load_factors=frame.unstack())
    pd.testing.assert_frame_equal(parameters.load_factors, frame, check_names=False)


def test_short_horizon_is_accepted_with_warning(make_parameters, caplog):
    with caplog.at_level("WARNING"):
        make_parameters(n_hours=3)
    assert "instead of a full year" in caplog.text


@pytest.mark.parametrize("demand", [
    pd.Series([1.0, np.nan, 1.0]),
    pd.Series([1.0, -2.0, 1.0]),
    pd.Series([1.0, np.inf, 1.0]),
    pd.Series([1.0, 1.0, 1.0], index=[0, 0, 1]),
    pd.Series([], dtype=float),
])
def test_invalid_demand(make_parameters, demand):
    with pytest.raises(ConfigurationError):
        make_parameters(n_hours=3, demand=demand)


def test_missing_hour_in_load_factors(make_parameters):
    with pytest.raises(ConfigurationError, match="missing for 1 hours"):
        make_parameters(load_factors=make_parameters().load_factors.drop(index=3))


def test_missing_technology_in_load_factors(make_parameters):
    with pytest.raises(ConfigurationError, match="gas_ccs"):
        make_parameters(load_factors=make_parameters().load_factors.drop(columns="gas_ccs"))


@pytest.mark.parametrize("value", [1.5, -0.1, np.nan])
def test_invalid_capacity_factor(make_parameters, value):
    load_factors = make_parameters().load_factors
    load_factors.loc[4, "wind"] = value
    with pytest.raises(ConfigurationError):
        make_parameters(load_factors=load_factors)


def test_infinite_annuity(make_parameters):
    with pytest.raises(ConfigurationError, match="annuities is infinite"):
        make_parameters(annuities={"wind": np.inf, "pv": 600.0, "gas": 200.0, "gas_ccs": 600.0})


def test_negative_coefficient(make_parameters):
    with pytest.raises(ConfigurationError, match="vOM is negative"):
        make_parameters(vOM={"wind": 0.0, "pv": 0.0, "gas": -1.0, "gas_ccs": 75.0})


def test_availability_above_one(make_parameters):
    with pytest.raises(ConfigurationError, match="availability is above 1"):
        make_parameters(availability={"wind": 1.0, "pv": 1.2, "gas": 0.9, "gas_ccs": 0.85})


def test_missing_coefficient(make_parameters):
    with pytest.raises(ConfigurationError, match="emission_factor is missing"):
        make_parameters(emission_factor={"wind": 0.0, "pv": 0.0, "gas": 0.37})


def test_missing_storage_annuity(make_parameters):
    with pytest.raises(ConfigurationError, match="storage_annuities"):
        make_parameters(storage_annuities={})


def test_empty_technology_set(parameters):
    with pytest.raises(ConfigurationError, match="empty"):
        ParameterStore(demand=parameters.demand, load_factors=parameters.load_factors,
                       annuities=parameters.annuities, vOM=parameters.vOM, availability=parameters.availabilities,
                       emission_factor=parameters.emission_factors, storage_annuities=parameters.storage_annuities,
                       technologies=())


@pytest.mark.parametrize("fields", [
    {"storage_boundary": "periodic"},
    {"emission_price": -1},
    {"emission_price": "abc"},
    {"emission_price": None},
    {"emission_price": np.inf},
    {"timeout": 0},
    {"timeout": "ten"},
    {"initial_storage_level": -5},
    {"initial_storage_level": None},
])
def test_scenario_config_validation(fields):
    with pytest.raises(ConfigurationError):
        ScenarioConfig(**fields)


def test_scenario_config_from_config_rejects_text():
    with pytest.raises(ConfigurationError, match="emission_price"):
        ScenarioConfig.from_config({"emission_price": "high"})


def test_scenario_config_coerces_numbers():
    scenario = ScenarioConfig.from_config({"emission_price": "50", "timeout": "10", "initial_storage_level": 2})
    assert scenario.emission_price == 50.0
    assert scenario.timeout == 10.0
    assert scenario.initial_storage_level == 2.0


def test_scenario_config_from_config():
    config = {"name": "x", "emission_price": 50, "storage_boundary": "fixed_initial", "solver": "scipy"}
    scenario = ScenarioConfig.from_config(config, emission_price=200, timeout=None)
    assert scenario.name == "x"
    assert scenario.emission_price == 200
    assert scenario.storage_boundary == StorageBoundary.FIXED_INITIAL
    assert scenario.solver == "scipy"
    assert scenario.timeout is None
