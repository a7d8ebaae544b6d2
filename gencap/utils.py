import json
import logging
from importlib import resources
from pathlib import Path

import pandas as pd

LOG_FORMATTER = '%(asctime)s : %(name)s  : %(funcName)s : %(levelname)s : %(message)s'


def create_logger(name, level=logging.INFO):
    """Logger writing to the console, used by the entry points."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        # consoler handler
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMATTER))
        logger.addHandler(console_handler)
    return logger


def get_pandas(path, func=lambda x: pd.read_csv(x)):
    """Function used to read input data. `path` is either a file on disk or a file packaged in gencap, given as
    gencap/inputs/..."""
    path = Path(path)
    if path.is_file():
        return func(path)
    package = str(path.parent).replace('/', '.').replace('\\', '.')
    with resources.as_file(resources.files(package) / path.name) as df:
        return func(df)


def read_series(path):
    """Reads a two columns csv without header (index, value) into a pd.Series"""
    return get_pandas(path, lambda x: pd.read_csv(x, index_col=0, header=None).squeeze("columns"))


def get_config(spec=None) -> dict:
    """Reads config.json, or config_<spec>.json, packaged in gencap.inputs.config"""
    name = 'config.json' if spec is None else f'config_{spec}.json'
    return json.loads((resources.files('gencap.inputs.config') / name).read_text())


def read_config(path):
    """Reads a configuration file stored outside of the package."""
    with open(path) as file:
        return json.load(file)


def calculate_annuities_capex(discount_rate, capex, construction_time, lifetime):
    """Calculate annuities for energy technologies based on capex data."""
    if discount_rate == 0:
        return capex.astype(float) / lifetime.reindex(capex.index)
    annuities = capex.astype(float).copy()
    for i in annuities.index:
        annuities.at[i] = discount_rate * capex[i] * (
                discount_rate * construction_time[i] + 1) / (
                                  1 - (1 + discount_rate) ** (-lifetime[i]))
    return annuities


def calculate_annuities_storage_capex(discount_rate, storage_capex, construction_time, lifetime):
    """Calculate annuities for storage technologies based on capex data."""
    if discount_rate == 0:
        return storage_capex.astype(float) / lifetime.reindex(storage_capex.index)
    storage_annuities = storage_capex.astype(float).copy()
    for i in storage_annuities.index:
        storage_annuities.at[i] = discount_rate * storage_capex[i] * (
                discount_rate * construction_time[i] + 1) / (
                                          1 - (1 + discount_rate) ** (-lifetime[i]))
    return storage_annuities
