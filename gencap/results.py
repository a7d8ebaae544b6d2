"""
Projection of a flat solution back into named series and dataframes.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd

from gencap.problem import VarKey


@dataclass
class OptimisationResults:
    """Results of a solved model. Hourly data keep the order of the time index, technology data the order of the
    technology sets.

    :param objective: float
        Total system cost, in currency/year
    :param capacities: pd.Series
        Installed capacity per technology, in MW
    :param energy_capacity: pd.Series
        Installed storage volume per storage technology, in MWh
    :param hourly_generation: pd.DataFrame
        Demand, generation per technology and charge, discharge and level per storage technology, in MWh
    :param costs: pd.DataFrame
        Investment, variable and emission cost per technology, in currency/year
    :param storage_costs: pd.Series
        Storage cost per storage technology, in currency/year
    :param emissions: pd.Series
        Emissions per technology, in tCO2
    :param spot_price: pd.Series
        Marginal cost of demand per hour, in currency/MWh. None when the solver does not return duals.
    :param summary: pd.Series
    """
    objective: float
    capacities: pd.Series
    energy_capacity: pd.Series
    hourly_generation: pd.DataFrame
    costs: pd.DataFrame
    storage_costs: pd.Series
    emissions: pd.Series
    spot_price: pd.Series
    summary: pd.Series

    @property
    def technical_cost(self):
        """System cost without the cost of emissions."""
        return self.objective - self.costs["emission_cost"].sum()

    @property
    def technologies(self):
        return list(self.capacities.index)

    @property
    def storage_technologies(self):
        return list(self.energy_capacity.index)

    def to_variable_values(self):
        """Rebuilds the value of every decision variable from the extracted results, keyed by VarKey."""
        values = {VarKey("system_cost"): self.objective}
        for tec in self.technologies:
            values[VarKey("capacity", (tec,))] = self.capacities[tec]
            values[VarKey("investment_cost", (tec,))] = self.costs.at[tec, "investment_cost"]
            values[VarKey("variable_cost", (tec,))] = self.costs.at[tec, "variable_cost"]
            values[VarKey("emission_cost", (tec,))] = self.costs.at[tec, "emission_cost"]
            values[VarKey("emissions", (tec,))] = self.emissions[tec]
        for storage_tecs in self.storage_technologies:
            values[VarKey("energy_capacity", (storage_tecs,))] = self.energy_capacity[storage_tecs]
            values[VarKey("storage_cost", (storage_tecs,))] = self.storage_costs[storage_tecs]
        columns = list(self.hourly_generation.columns)
        for h, row in zip(self.hourly_generation.index, self.hourly_generation.itertuples(index=False, name=None)):
            row = dict(zip(columns, row))
            for tec in self.technologies:
                values[VarKey("gene", (h, tec))] = row[tec]
            for storage_tecs in self.storage_technologies:
                values[VarKey("charge", (h, storage_tecs))] = row[f"{storage_tecs}_charge"]
                values[VarKey("discharge", (h, storage_tecs))] = row[f"{storage_tecs}_discharge"]
                values[VarKey("stored", (h, storage_tecs))] = row[f"{storage_tecs}_level"]
        return values

    def to_dict(self):
        """Flat mapping from variable name, e.g. gene[12,wind], to value. Used by result sinks."""
        return {str(key): float(val) for key, val in self.to_variable_values().items()}


def extract_capacities(solution, parameters):
    """Extracts capacities for all technology in MW"""
    return pd.Series([solution[VarKey("capacity", (tec,))] for tec in parameters.technologies],
                     index=pd.Index(parameters.technologies, name="technology"), dtype=float, name="capacity")


def extract_energy_capacity(solution, parameters):
    """Extracts energy capacity for all storage technology, in MWh"""
    return pd.Series([solution[VarKey("energy_capacity", (s,))] for s in parameters.storage_technologies],
                     index=pd.Index(parameters.storage_technologies, name="storage_technology"), dtype=float,
                     name="energy_capacity")


def extract_hourly_generation(solution, parameters):
    """Extracts hourly defined data, including demand, generation and storage"""
    hours = parameters.hours
    columns = {"demand": parameters.demand.loc[list(hours)].to_numpy()}
    for tec in parameters.technologies:
        columns[tec] = [solution[VarKey("gene", (h, tec))] for h in hours]
    for storage_tecs in parameters.storage_technologies:
        columns[f"{storage_tecs}_charge"] = [solution[VarKey("charge", (h, storage_tecs))] for h in hours]
        columns[f"{storage_tecs}_discharge"] = [solution[VarKey("discharge", (h, storage_tecs))] for h in hours]
        columns[f"{storage_tecs}_level"] = [solution[VarKey("stored", (h, storage_tecs))] for h in hours]
    return pd.DataFrame(columns, index=pd.Index(hours, name="hour"))  # MWh


def extract_costs(solution, parameters):
    """Extracts yearly costs per technology"""
    families = ["investment_cost", "variable_cost", "emission_cost"]
    costs = pd.DataFrame({family: [solution[VarKey(family, (tec,))] for tec in parameters.technologies]
                          for family in families},
                         index=pd.Index(parameters.technologies, name="technology"), dtype=float)
    return costs


def extract_storage_costs(solution, parameters):
    return pd.Series([solution[VarKey("storage_cost", (s,))] for s in parameters.storage_technologies],
                     index=pd.Index(parameters.storage_technologies, name="storage_technology"), dtype=float,
                     name="storage_cost")


def extract_emissions(solution, parameters):
    """Extracts yearly emissions per technology in tCO2"""
    return pd.Series([solution[VarKey("emissions", (tec,))] for tec in parameters.technologies],
                     index=pd.Index(parameters.technologies, name="technology"), dtype=float, name="emissions")


def extract_spot_price(solution, parameters):
    """Extracts spot price, the dual of the demand balance. Returns None when duals are not available."""
    prices = [solution.dual("electricity_adequacy_constraint", h) for h in parameters.hours]
    if any(price is None for price in prices):
        return None
    return pd.Series(prices, index=pd.Index(parameters.hours, name="hour"), dtype=float, name="spot_price")


def extract_summary(objective, hourly_generation, costs, storage_costs, emissions, technologies):
    summary = {}  # final dictionary for output
    demand_tot = hourly_generation["demand"].sum()  # MWh
    gene_per_tec = hourly_generation[list(technologies)].sum()  # MWh
    gene_tot = gene_per_tec.sum()

    summary["objective"] = objective
    summary["demand_tot"] = demand_tot
    summary["gene_tot"] = gene_tot
    for tec in technologies:
        summary[f"gene_{tec}"] = gene_per_tec[tec]
    summary["investment_cost"] = costs["investment_cost"].sum()
    summary["variable_cost"] = costs["variable_cost"].sum()
    summary["storage_cost"] = storage_costs.sum()
    summary["emission_cost"] = costs["emission_cost"].sum()
    summary["technical_cost"] = objective - summary["emission_cost"]
    summary["emissions_tot"] = emissions.sum()  # tCO2

    # Average cost of one MWh of demand
    summary["lcoe"] = objective / demand_tot if demand_tot > 0 else np.nan
    return pd.Series(summary)


def extract_results(solution, parameters):
    """Builds the OptimisationResults of a successful solve.

    :param solution: Solution
    :param parameters: ParameterStore
    :return: OptimisationResults
    """
    capacities = extract_capacities(solution, parameters)
    energy_capacity = extract_energy_capacity(solution, parameters)
    hourly_generation = extract_hourly_generation(solution, parameters)
    costs = extract_costs(solution, parameters)
    storage_costs = extract_storage_costs(solution, parameters)
    emissions = extract_emissions(solution, parameters)
    spot_price = extract_spot_price(solution, parameters)
    objective = float(solution[VarKey("system_cost")])
    summary = extract_summary(objective, hourly_generation, costs, storage_costs, emissions,
                              parameters.technologies)
    return OptimisationResults(objective=objective, capacities=capacities, energy_capacity=energy_capacity,
                               hourly_generation=hourly_generation, costs=costs, storage_costs=storage_costs,
                               emissions=emissions, spot_price=spot_price, summary=summary)
