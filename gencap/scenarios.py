"""
Runs of several scenarios of the model, e.g. an emission price sweep.
"""

import logging
from multiprocessing import Pool
from pathlib import Path

import pandas as pd

from gencap.model import ModelGenCap, load_parameters
from gencap.write_output import write_output

logger = logging.getLogger(__name__)

RENEWABLES = ["wind", "pv"]


def run_scenario(config, emission_price=None, solver_name=None, timeout=None, save_folder=None):
    """
    Builds and solves the model for one scenario.
    :param config: dict
        Configuration, as returned by get_config
    :param emission_price: float
        Replaces the emission price of the configuration when given
    :param save_folder: str
        When given, outputs are written to save_folder/<name of the scenario>
    :return: (float, pd.Series)
        Emission price and summary of the scenario, including installed capacities
    """
    parameters = load_parameters(config, emission_price=emission_price)
    name = f"{parameters.name}_ep{parameters.emission_price:g}"
    m = ModelGenCap(parameters, logger=logger, name=name)
    m.build_model()
    results = m.solve(solver_name=solver_name, timeout=timeout)

    if save_folder is not None:
        write_output(results, Path(save_folder) / name)

    summary = results.summary.copy()
    for tec, capa in results.capacities.items():
        summary[f"capacity_{tec}"] = capa
    for storage_tecs, capa in results.energy_capacity.items():
        summary[f"energy_capacity_{storage_tecs}"] = capa
    renewables = [f"gene_{tec}" for tec in RENEWABLES if f"gene_{tec}" in summary.index]
    summary["renewable_share"] = summary[renewables].sum() / summary["gene_tot"] if summary["gene_tot"] > 0 else 0.0
    return parameters.emission_price, summary


def run_emission_price_sweep(config, emission_prices, processes=1, solver_name=None, timeout=None, save_folder=None):
    """
    Solves one model per emission price, in parallel when processes > 1.
    :param config: dict
    :param emission_prices: list
        Emission prices in currency/tCO2
    :param processes: int
        Number of worker processes
    :return: pd.DataFrame
        One row per emission price, with the summary of the corresponding scenario
    """
    emission_prices = list(emission_prices)
    logger.info('Emission prices: {}'.format(', '.join(str(e) for e in emission_prices)))
    n = len(emission_prices)
    args = zip([config] * n, emission_prices, [solver_name] * n, [timeout] * n, [save_folder] * n)
    if processes > 1:
        logger.info('Launching processes')
        with Pool(processes) as pool:
            results = pool.starmap(run_scenario, args)
    else:
        results = [run_scenario(*arg) for arg in args]

    output = pd.DataFrame({emission_price: summary for emission_price, summary in results}).T
    output.index.name = "emission_price"
    return output.sort_index()
