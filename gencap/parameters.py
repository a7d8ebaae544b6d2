"""
Input data of the capacity expansion model.

The ParameterStore holds every exogenous quantity the model needs: the ordered hourly time index, the technology
sets, hourly demand, hourly capacity factors and the per-technology coefficients. Scalars that define a scenario
(emission price, storage boundary policy) live in the immutable ScenarioConfig, so that several scenarios can be
built side by side.
"""

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np
import pandas as pd

from gencap.errors import ConfigurationError

logger = logging.getLogger(__name__)

HOURS_PER_YEAR = 8760
TECHNOLOGIES = ("wind", "pv", "gas", "gas_ccs")
STORAGE_TECHNOLOGIES = ("battery",)


class StorageBoundary(str, Enum):
    """What the storage level of the first hour refers to."""

    CYCLIC = "cyclic"  # the hour before the first one is the last hour of the year
    FIXED_INITIAL = "fixed_initial"  # the level before the first hour is a given constant


@dataclass(frozen=True)
class ScenarioConfig:
    """Scalar settings of one model instance.

    :param name: str
    :param emission_price: float
        Price applied to every tCO2 emitted, in currency/tCO2
    :param storage_boundary: StorageBoundary
    :param initial_storage_level: float
        Storage level before the first hour in MWh, only used with StorageBoundary.FIXED_INITIAL
    :param solver: str
        Name of the solver backend, "scipy" or any Pyomo SolverFactory name
    :param timeout: float
        Time limit of the solve in seconds, None for no limit
    """
    name: str = "gencap"
    emission_price: float = 0.0
    storage_boundary: StorageBoundary = StorageBoundary.CYCLIC
    initial_storage_level: float = 0.0
    solver: str = "appsi_highs"
    timeout: float = None

    def __post_init__(self):
        try:
            boundary = StorageBoundary(self.storage_boundary)
        except ValueError:
            raise ConfigurationError(f"Unknown storage boundary policy {self.storage_boundary!r}, expected one of "
                                     f"{[e.value for e in StorageBoundary]}")
        object.__setattr__(self, "storage_boundary", boundary)
        for key in ["emission_price", "initial_storage_level", "timeout"]:
            value = getattr(self, key)
            if key == "timeout" and value is None:
                continue
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"{key} must be a number, got {value!r}") from None
            if not np.isfinite(value):
                raise ConfigurationError(f"{key} must be finite, got {value}")
            object.__setattr__(self, key, value)
        if self.emission_price < 0:
            raise ConfigurationError(f"Emission price must be non-negative, got {self.emission_price}")
        if self.initial_storage_level < 0:
            raise ConfigurationError(f"Initial storage level must be non-negative, got {self.initial_storage_level}")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {self.timeout}")

    @classmethod
    def from_config(cls, config, **overrides):
        """Creates the scenario settings from a configuration dictionary, as returned by get_config."""
        fields = {
            "name": config.get("name", cls.name),
            "emission_price": config.get("emission_price", cls.emission_price),
            "storage_boundary": config.get("storage_boundary", cls.storage_boundary),
            "initial_storage_level": config.get("initial_storage_level", cls.initial_storage_level),
            "solver": config.get("solver", cls.solver),
            "timeout": config.get("timeout", cls.timeout),
        }
        fields.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**fields)


class ParameterStore:
    """Validated, read-only input data of one model instance.

    :param demand: pd.Series
        Hourly demand in MWh, indexed by hour. Its index defines the ordered time index of the model.
    :param load_factors: pd.DataFrame or pd.Series
        Capacity factors, either as a DataFrame indexed by hour with one column per technology, or as a Series
        indexed by (technology, hour)
    :param annuities: pd.Series
        Annuitized investment cost per technology, in currency/MW/year
    :param vOM: pd.Series
        Variable cost per technology, in currency/MWh
    :param availability: pd.Series
        Availability factor per technology, between 0 and 1
    :param emission_factor: pd.Series
        Emission factor per technology, in tCO2/MWh
    :param storage_annuities: pd.Series
        Annuitized storage cost per storage technology, in currency/MWh/year
    :param config: ScenarioConfig
    :param technologies: iterable of str
    :param storage_technologies: iterable of str
    """

    def __init__(self, demand, load_factors, annuities, vOM, availability, emission_factor, storage_annuities,
                 config=None, technologies=TECHNOLOGIES, storage_technologies=STORAGE_TECHNOLOGIES):
        self.config = config if config is not None else ScenarioConfig()
        self._technologies = tuple(technologies)
        self._storage_technologies = tuple(storage_technologies)
        if len(self._technologies) == 0:
            raise ConfigurationError("The set of technologies is empty")
        if len(self._storage_technologies) == 0:
            raise ConfigurationError("The set of storage technologies is empty")
        if len(set(self._technologies)) != len(self._technologies):
            raise ConfigurationError(f"Duplicated technologies in {self._technologies}")
        if len(set(self._storage_technologies)) != len(self._storage_technologies):
            raise ConfigurationError(f"Duplicated storage technologies in {self._storage_technologies}")

        self._demand = _validate_demand(demand)
        self._hours = tuple(self._demand.index)
        self._position = {hour: i for i, hour in enumerate(self._hours)}
        if len(self._hours) != HOURS_PER_YEAR:
            logger.warning("Time index has %d hours instead of a full year of %d hours", len(self._hours),
                           HOURS_PER_YEAR)

        self._load_factors = _validate_load_factors(load_factors, self._hours, self._technologies)
        self._annuities = _validate_coefficients(annuities, self._technologies, "annuities")
        self._vOM = _validate_coefficients(vOM, self._technologies, "vOM")
        self._availability = _validate_coefficients(availability, self._technologies, "availability", upper=1)
        self._emission_factor = _validate_coefficients(emission_factor, self._technologies, "emission_factor")
        self._storage_annuities = _validate_coefficients(storage_annuities, self._storage_technologies,
                                                         "storage_annuities")

    @property
    def name(self):
        return self.config.name

    @property
    def hours(self):
        return self._hours

    @property
    def first_hour(self):
        return self._hours[0]

    @property
    def last_hour(self):
        return self._hours[-1]

    @property
    def technologies(self):
        return self._technologies

    @property
    def storage_technologies(self):
        return self._storage_technologies

    @property
    def emission_price(self):
        return self.config.emission_price

    @property
    def storage_boundary(self):
        return self.config.storage_boundary

    @property
    def initial_storage_level(self):
        return self.config.initial_storage_level

    def predecessor(self, hour):
        """Returns the hour preceding `hour`. For the first hour, returns the last hour when the storage boundary is
        cyclic, and None when the level before the first hour is fixed."""
        position = self._position[hour]
        if position > 0:
            return self._hours[position - 1]
        if self.storage_boundary == StorageBoundary.CYCLIC:
            return self._hours[-1]
        return None

    @property
    def demand(self):
        return self._demand.copy()

    def demand_at(self, hour):
        return float(self._demand.at[hour])

    @property
    def load_factors(self):
        """Capacity factors, indexed by hour with one column per technology."""
        return self._load_factors.copy()

    def capacity_factor(self, hour, tec):
        return float(self._load_factors.at[hour, tec])

    @property
    def annuities(self):
        return self._annuities.copy()

    def annuity(self, tec):
        return float(self._annuities[tec])

    @property
    def vOM(self):
        return self._vOM.copy()

    def variable_cost(self, tec):
        return float(self._vOM[tec])

    @property
    def availabilities(self):
        return self._availability.copy()

    def availability(self, tec):
        return float(self._availability[tec])

    @property
    def emission_factors(self):
        return self._emission_factor.copy()

    def emission_factor(self, tec):
        return float(self._emission_factor[tec])

    @property
    def storage_annuities(self):
        return self._storage_annuities.copy()

    def storage_annuity(self, storage_tec):
        return float(self._storage_annuities[storage_tec])

    def max_generation(self, hour, tec):
        """Maximum output per MW installed of technology `tec` at `hour`."""
        return self.capacity_factor(hour, tec) * self.availability(tec)


def _validate_demand(demand):
    if isinstance(demand, pd.DataFrame):
        if demand.shape[1] != 1:
            raise ConfigurationError(f"Demand must have a single column, got {list(demand.columns)}")
        demand = demand.iloc[:, 0]
    try:
        demand = pd.Series(demand, dtype=float).copy()
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Demand contains non numeric values: {e}") from e
    if demand.empty:
        raise ConfigurationError("Demand is empty: the time index has no hour")
    duplicated = demand.index[demand.index.duplicated()]
    if len(duplicated) > 0:
        raise ConfigurationError(f"Demand has duplicated hours: {list(duplicated[:5])}")
    if demand.isna().any():
        raise ConfigurationError(f"Demand is missing for hours {list(demand.index[demand.isna()][:5])}")
    if np.isinf(demand).any():
        raise ConfigurationError(f"Demand is infinite for hours {list(demand.index[np.isinf(demand)][:5])}")
    if (demand < 0).any():
        raise ConfigurationError(f"Demand is negative for hours {list(demand.index[demand < 0][:5])}")
    return demand


def _validate_load_factors(load_factors, hours, technologies):
    if isinstance(load_factors, pd.Series):
        if load_factors.index.nlevels != 2:
            raise ConfigurationError("Capacity factors given as a Series must be indexed by (technology, hour)")
        if load_factors.index.duplicated().any():
            raise ConfigurationError("Capacity factors have duplicated (technology, hour) entries")
        load_factors = load_factors.unstack(level=0)
    elif isinstance(load_factors, pd.DataFrame):
        if load_factors.index.duplicated().any():
            raise ConfigurationError("Capacity factors have duplicated hours")
    else:
        raise ConfigurationError(f"Capacity factors must be a pandas DataFrame or Series, got {type(load_factors)}")

    missing_tec = [tec for tec in technologies if tec not in load_factors.columns]
    if missing_tec:
        raise ConfigurationError(f"Capacity factors are missing for technologies {missing_tec}")
    missing_hours = pd.Index(hours).difference(load_factors.index)
    if len(missing_hours) > 0:
        raise ConfigurationError(f"Capacity factors are missing for {len(missing_hours)} hours, "
                                 f"e.g. {list(missing_hours[:5])}")

    try:
        load_factors = load_factors.loc[list(hours), list(technologies)].astype(float)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Capacity factors contain non numeric values: {e}") from e
    if load_factors.isna().any().any():
        raise ConfigurationError(f"Capacity factors contain missing values for technologies "
                                 f"{list(load_factors.columns[load_factors.isna().any()])}")
    if (load_factors < 0).any().any() or (load_factors > 1).any().any():
        raise ConfigurationError("Capacity factors must lie between 0 and 1")
    return load_factors


def _validate_coefficients(coefficients, index, name, upper=None):
    coefficients = pd.Series(coefficients)
    missing = [i for i in index if i not in coefficients.index]
    if missing:
        raise ConfigurationError(f"{name} is missing for {missing}")
    if coefficients.index.duplicated().any():
        raise ConfigurationError(f"{name} has duplicated entries for "
                                 f"{list(coefficients.index[coefficients.index.duplicated()])}")
    try:
        coefficients = coefficients.loc[list(index)].astype(float)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} contains non numeric values: {e}") from e
    if coefficients.isna().any():
        raise ConfigurationError(f"{name} is not defined for {list(coefficients.index[coefficients.isna()])}")
    if np.isinf(coefficients).any():
        raise ConfigurationError(f"{name} is infinite for {list(coefficients.index[np.isinf(coefficients)])}")
    if (coefficients < 0).any():
        raise ConfigurationError(f"{name} is negative for {list(coefficients.index[coefficients < 0])}")
    if upper is not None and (coefficients > upper).any():
        raise ConfigurationError(f"{name} is above {upper} for {list(coefficients.index[coefficients > upper])}")
    return coefficients
