"""
Generation and storage capacity expansion model.
"""

import logging
import time
from itertools import product

import numpy as np
import pandas as pd

from gencap.errors import ConfigurationError, SolveError
from gencap.parameters import ParameterStore, ScenarioConfig, STORAGE_TECHNOLOGIES, TECHNOLOGIES
from gencap.problem import EQ, LE, LinearExpression, LinearProblem
from gencap.results import extract_results
from gencap.solver import get_solver
from gencap.utils import calculate_annuities_capex, calculate_annuities_storage_capex, get_pandas, read_series


class ModelGenCap():
    def __init__(self, parameters, logger=None, name=None):
        """

        :param parameters: ParameterStore
        :param logger: logging.Logger
        :param name: str
            Defaults to the name of the scenario
        """
        if not isinstance(parameters, ParameterStore):
            raise ConfigurationError(f"ModelGenCap expects a ParameterStore, got {type(parameters)}")
        self.parameters = parameters
        self.name = name if name is not None else parameters.name
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.problem = LinearProblem(self.name)
        self.solution = None
        self.results = None
        self.objective = np.nan

    def define_sets(self):
        # Range of hour
        self.h = list(self.parameters.hours)
        # Technologies
        self.tec = list(self.parameters.technologies)
        # Storage Technologies
        self.str = list(self.parameters.storage_technologies)

        if len(self.h) == 0 or len(self.tec) == 0 or len(self.str) == 0:
            raise ConfigurationError(f"Empty index set: {len(self.h)} hours, {len(self.tec)} technologies, "
                                     f"{len(self.str)} storage technologies")
        load_factors = self.parameters.load_factors
        if list(load_factors.index) != self.h or list(load_factors.columns) != self.tec:
            raise ConfigurationError("Capacity factors are not indexed by the hours and technologies of the model")

    def var(self, family, *index):
        return LinearExpression.of(self.problem.var(family, *index))

    def define_variables(self):
        problem = self.problem

        # Hourly energy generation in MWh
        for h, tec in product(self.h, self.tec):
            problem.add_variable("gene", (h, tec))

        # Overall yearly installed capacity in MW
        for tec in self.tec:
            problem.add_variable("capacity", (tec,))

        # Hourly electricity input of storage, in MWh
        for h, storage_tecs in product(self.h, self.str):
            problem.add_variable("charge", (h, storage_tecs))

        # Hourly electricity output of storage, in MWh
        for h, storage_tecs in product(self.h, self.str):
            problem.add_variable("discharge", (h, storage_tecs))

        # Energy stored in each storage technology in MWh = state of charge
        for h, storage_tecs in product(self.h, self.str):
            problem.add_variable("stored", (h, storage_tecs))

        # Energy volume of storage technology in MWh
        for storage_tecs in self.str:
            problem.add_variable("energy_capacity", (storage_tecs,))

        # Cost and emission accounting, per technology
        for tec in self.tec:
            problem.add_variable("investment_cost", (tec,))
            problem.add_variable("variable_cost", (tec,))
            problem.add_variable("emissions", (tec,))
            problem.add_variable("emission_cost", (tec,))
        for storage_tecs in self.str:
            problem.add_variable("storage_cost", (storage_tecs,))

        # Total system cost, free in sign
        problem.add_variable("system_cost", (), lower=None)

    def add_constraint_family(self, family, rule, *sets):
        """Adds one constraint per element of the product of `sets`. `rule` returns (lhs, sense, rhs)."""
        for index in product(*sets):
            lhs, sense, rhs = rule(*index)
            self.problem.add_constraint(family, index, lhs, sense, rhs)

    def define_constraints(self):
        p = self.parameters
        var = self.var

        def gene(h, tec):
            return var("gene", h, tec)

        def capacity(tec):
            return var("capacity", tec)

        def generation(tec):
            """Yearly generation of tec, in MWh."""
            return LinearExpression({self.problem.var("gene", h, tec): 1.0 for h in self.h})

        def investment_cost_definition_rule(tec):
            """Annuity of the installed capacity."""
            return var("investment_cost", tec), EQ, capacity(tec) * p.annuity(tec)

        def variable_cost_definition_rule(tec):
            """Variable cost of the yearly generation."""
            return var("variable_cost", tec), EQ, generation(tec) * p.variable_cost(tec)

        def generation_capacity_constraint_rule(h, tec):
            """Constraint on maximum power: installed capacity derated by the hourly capacity factor and by the
            availability of the technology."""
            return gene(h, tec), LE, capacity(tec) * p.max_generation(h, tec)

        def storage_cost_definition_rule(storage_tecs):
            """Annuity of the installed storage volume."""
            return var("storage_cost", storage_tecs), EQ, \
                var("energy_capacity", storage_tecs) * p.storage_annuity(storage_tecs)

        def electricity_adequacy_constraint_rule(h):
            """Constraint for supply/demand electricity relation. No curtailment nor unserved demand."""
            supply = sum((gene(h, tec) for tec in self.tec), LinearExpression())
            storage = sum((var("discharge", h, s) - var("charge", h, s) for s in self.str), LinearExpression())
            return supply + storage, EQ, p.demand_at(h)

        def emissions_definition_rule(tec):
            """Yearly emissions in tCO2."""
            return var("emissions", tec), EQ, generation(tec) * p.emission_factor(tec)

        def emission_cost_definition_rule(tec):
            """Cost of the yearly emissions at the emission price."""
            return var("emission_cost", tec), EQ, generation(tec) * (p.emission_price * p.emission_factor(tec))

        def storing_constraint_rule(h, storage_tecs):
            """Constraint on energy storage consistency, without losses."""
            previous_h = p.predecessor(h)
            if previous_h is None:  # fixed level before the first hour
                previous = LinearExpression(constant=p.initial_storage_level)
            else:
                previous = var("stored", previous_h, storage_tecs)
            flux = var("charge", h, storage_tecs) - var("discharge", h, storage_tecs)
            return var("stored", h, storage_tecs), EQ, previous + flux

        def stored_capacity_constraint_rule(h, storage_tecs):
            """Constraint on maximum energy that is stored in storage units"""
            return var("stored", h, storage_tecs), LE, var("energy_capacity", storage_tecs)

        self.add_constraint_family("investment_cost_definition", investment_cost_definition_rule, self.tec)
        self.add_constraint_family("variable_cost_definition", variable_cost_definition_rule, self.tec)
        self.add_constraint_family("generation_capacity_constraint", generation_capacity_constraint_rule, self.h,
                                   self.tec)
        self.add_constraint_family("storage_cost_definition", storage_cost_definition_rule, self.str)
        self.add_constraint_family("electricity_adequacy_constraint", electricity_adequacy_constraint_rule, self.h)
        self.add_constraint_family("emissions_definition", emissions_definition_rule, self.tec)
        self.add_constraint_family("emission_cost_definition", emission_cost_definition_rule, self.tec)
        self.add_constraint_family("storing_constraint", storing_constraint_rule, self.h, self.str)
        self.add_constraint_family("stored_capacity_constraint", stored_capacity_constraint_rule, self.h, self.str)

    def define_objective(self):
        var = self.var

        def objective_rule():
            """Total system cost, in currency/year"""
            return var("system_cost"), EQ, (
                sum((var("investment_cost", tec) for tec in self.tec), LinearExpression())
                + sum((var("variable_cost", tec) for tec in self.tec), LinearExpression())
                + sum((var("storage_cost", storage_tecs) for storage_tecs in self.str), LinearExpression())
                + sum((var("emission_cost", tec) for tec in self.tec), LinearExpression())
            )

        self.add_constraint_family("objective_definition", objective_rule)
        # Creation of the objective -> Cost
        self.problem.set_objective(var("system_cost"))

    def build_model(self):
        t1 = time.time()
        self.define_sets()
        self.define_variables()
        self.define_constraints()
        self.define_objective()
        self.problem.seal()
        self.logger.info("Built %s: %d variables, %d constraints in %.1fs", self.name, len(self.problem.variables),
                         len(self.problem.constraints), time.time() - t1)
        return self.problem

    def solve(self, solver_name=None, timeout=None, solver=None):
        """Solves the model and extracts the results.

        :param solver_name: str
            Backend name, defaults to the solver of the scenario configuration
        :param timeout: float
            Time limit in seconds, defaults to the timeout of the scenario configuration
        :param solver: object
            Backend instance exposing solve(problem), takes precedence over solver_name
        :return: OptimisationResults
        """
        if not self.problem.sealed:
            self.build_model()
        if solver is None:
            config = self.parameters.config
            solver = get_solver(solver_name if solver_name is not None else config.solver,
                                timeout=timeout if timeout is not None else config.timeout)
        self.logger.info("Solving %s model using %s", self.name, solver.name)

        try:
            self.solution = solver.solve(self.problem)
        except SolveError as e:
            self.logger.error("Optimisation failed with terminal condition %s: %s", e.termination_condition, e)
            self.objective = np.nan
            raise
        self.logger.info("Optimization successful in %.1fs", self.solution.solve_time)
        self.extract_optimisation_results()
        return self.results

    def extract_optimisation_results(self):
        """Reads the solution back into named series and dataframes."""
        self.results = extract_results(self.solution, self.parameters)
        self.objective = self.results.objective
        self.capacities = self.results.capacities
        self.energy_capacity = self.results.energy_capacity
        self.hourly_generation = self.results.hourly_generation
        self.emissions = self.results.emissions
        self.spot_price = self.results.spot_price
        self.summary = self.results.summary
        self.technical_cost = self.results.technical_cost
        return self.results


def read_input_variable(config):
    """Reads data defined at the hourly scale"""
    load_factors = get_pandas(config["load_factors"],
                              lambda x: pd.read_csv(x, index_col=[0, 1], header=None).squeeze("columns"))
    demand = get_pandas(config["demand"],
                        lambda x: pd.read_csv(x, index_col=0, header=None).squeeze("columns"))  # MWh
    o = dict()
    o["load_factors"] = load_factors
    o["demand"] = demand
    return o


def read_input_static(config):
    """Read static data"""
    o = dict()
    o["capex"] = read_series(config["capex"])  # currency/MW
    o["storage_capex"] = read_series(config["storage_capex"])  # currency/MWh
    o["fOM"] = read_series(config["fOM"])  # currency/MW/year
    o["vOM"] = read_series(config["vOM"])  # currency/MWh
    o["lifetime"] = read_series(config["lifetime"])  # years
    o["construction_time"] = read_series(config["construction_time"])  # years
    o["availability"] = read_series(config["availability"])
    o["emission_factor"] = read_series(config["emission_factor"])  # tCO2/MWh
    o["miscellaneous"] = read_series(config["miscellaneous"])
    return o


def load_parameters(config, **overrides):
    """Reads the input files listed in `config` and returns the corresponding ParameterStore.

    :param config: dict
        Configuration, as returned by get_config
    :param overrides:
        ScenarioConfig fields replacing the values of the configuration, e.g. emission_price=200
    """
    try:
        data_variable = read_input_variable(config)
        data_static = read_input_static(config)
    except KeyError as e:
        raise ConfigurationError(f"Missing input {e} in configuration") from e

    technologies = tuple(config.get("technologies", TECHNOLOGIES))
    storage_technologies = tuple(config.get("storage_technologies", STORAGE_TECHNOLOGIES))
    for key in ["lifetime", "construction_time"]:
        missing = [tec for tec in technologies + storage_technologies if tec not in data_static[key].index]
        if missing:
            raise ConfigurationError(f"{key} is missing for {missing}")
    for key in ["capex", "fOM"]:
        missing = [tec for tec in technologies if tec not in data_static[key].index]
        if missing:
            raise ConfigurationError(f"{key} is missing for {missing}")
    miscellaneous = data_static["miscellaneous"]
    if "discount_rate" not in miscellaneous.index:
        raise ConfigurationError("discount_rate is missing from miscellaneous")

    # calculate annuities, fixed O&M is part of the yearly cost of capacity
    capex = data_static["capex"].loc[list(technologies)]
    storage_capex = data_static["storage_capex"].reindex(list(storage_technologies))
    annuities = calculate_annuities_capex(miscellaneous["discount_rate"], capex, data_static["construction_time"],
                                          data_static["lifetime"]) + data_static["fOM"].loc[list(technologies)]
    storage_annuities = calculate_annuities_storage_capex(miscellaneous["discount_rate"], storage_capex,
                                                          data_static["construction_time"], data_static["lifetime"])

    scenario = ScenarioConfig.from_config(config, **overrides)
    return ParameterStore(demand=data_variable["demand"], load_factors=data_variable["load_factors"],
                          annuities=annuities, vOM=data_static["vOM"], availability=data_static["availability"],
                          emission_factor=data_static["emission_factor"], storage_annuities=storage_annuities,
                          config=scenario, technologies=technologies, storage_technologies=storage_technologies)
