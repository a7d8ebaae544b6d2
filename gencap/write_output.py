import datetime
import os
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

sns.set_theme(context="talk", style="white")

COLORS_GENCAP = {
    "wind": "#72cdf4",
    "pv": "#ffba08",
    "gas": "#a0a0a0",
    "gas_ccs": "#5c5c5c",
    "battery": "#3a86ff",
    "battery charging": "#3a86ff",
    "battery discharging": "#8338ec",
}

DICT_TRANSFORM_LEGEND = {
    "wind": "Wind",
    "pv": "Solar PV",
    "gas": "Natural gas",
    "gas_ccs": "Natural gas CCS",
    "battery": "Battery",
    "battery charging": "Battery charging",
    "battery discharging": "Battery discharging",
    "demand": "Demand",
}

OUTPUTS = ["summary", "hourly_generation", "capacities", "energy_capacity", "costs", "emissions"]


def write_output(results, folder):
    """
    Saves the outputs of the model.
    :param results: OptimisationResults
    :param folder: str
        Folder where to save the output, created if needed
    :return: Path
    """
    folder = Path(folder)
    if not folder.is_dir():
        os.makedirs(folder)
    for variable in OUTPUTS:
        path_to_save = folder / f"{variable}.csv"
        df_to_save = getattr(results, variable)
        df_to_save.to_csv(path_to_save)
    if results.spot_price is not None:
        results.spot_price.to_csv(folder / "spot_price.csv")
    return folder


def read_output(folder):
    """Reads outputs saved by write_output."""
    o = dict()
    for variable in OUTPUTS:
        path_to_read = os.path.join(folder, f"{variable}.csv")
        df = pd.read_csv(path_to_read, index_col=0)
        if df.shape[1] == 1 and variable != "hourly_generation":
            df = df.squeeze("columns")
        o[variable] = df
    return o


def save_fig(fig, save=None):
    if save is None:
        plt.show()
    else:
        fig.savefig(save, bbox_inches='tight')
    plt.close(fig)


def format_legend(ax, dict_legend=None):
    box = ax.get_position()
    ax.set_position([box.x0, box.y0, box.width * 0.8, box.height])

    if dict_legend is not None:
        current_labels = ax.get_legend_handles_labels()[1]
        new_labels = [dict_legend[e] if e in dict_legend.keys() else e for e in current_labels]
        ax.legend(loc='center left', bbox_to_anchor=(1, 0.5), labels=new_labels, frameon=False)
    else:
        ax.legend(loc='center left', bbox_to_anchor=(1, 0.5), frameon=False)


def format_ax(ax, title=None, y_label=None, format_y=lambda y, _: y, y_min=None, y_max=None):
    ax.spines['top'].set_visible(False)
    ax.spines['right'].set_visible(False)
    ax.spines['bottom'].set_visible(True)
    ax.spines['left'].set_visible(True)
    ax.yaxis.set_major_formatter(plt.FuncFormatter(format_y))
    if y_label is not None:
        ax.set_ylabel(y_label)
    if title is not None:
        ax.set_title(title, loc='left', color='black')
    if y_min is not None:
        ax.set_ylim(ymin=y_min)
    if y_max is not None:
        ax.set_ylim(ymax=y_max)
    return ax


def plot_capacities(capacities, energy_capacity=None, save_path=None):
    """Bar plot of installed capacities in GW, and of storage volumes in GWh when given."""
    n = 1 if energy_capacity is None else 2
    fig, axes = plt.subplots(1, n, figsize=(6.4 * n, 4.8), squeeze=False)

    ax = axes[0, 0]
    (capacities / 1e3).plot.bar(ax=ax, color=[COLORS_GENCAP.get(tec, "grey") for tec in capacities.index])
    ax.set_xticklabels([DICT_TRANSFORM_LEGEND.get(tec, tec) for tec in capacities.index], rotation=45, ha='right')
    ax.set_xlabel('')
    format_ax(ax, title="Capacities (GW)", format_y=lambda y, _: '{:.0f}'.format(y), y_min=0)

    if energy_capacity is not None:
        ax = axes[0, 1]
        (energy_capacity / 1e3).plot.bar(ax=ax, color=[COLORS_GENCAP.get(s, "grey") for s in energy_capacity.index])
        ax.set_xticklabels([DICT_TRANSFORM_LEGEND.get(s, s) for s in energy_capacity.index], rotation=0)
        ax.set_xlabel('')
        format_ax(ax, title="Storage volume (GWh)", format_y=lambda y, _: '{:.0f}'.format(y), y_min=0)

    save_fig(fig, save=save_path)


def plot_typical_week(hourly_generation, date_start, date_end, technologies, storage_technologies, year=2006,
                      save_path=None, y_min=None, y_max=None):
    """Stacked hourly production, storage charging counted negatively, against demand, in GW.

    :param hourly_generation: pd.DataFrame
        As returned by the model, indexed by hour
    :param date_start: str
    :param date_end: str
    :param year: int
        Year used to date hours, the first hour being January 1st at midnight
    """
    hourly_generation_subset = hourly_generation.copy() / 1e3  # GW
    hourly_generation_subset.index = [datetime.datetime(year, 1, 1, 0) + datetime.timedelta(hours=int(i))
                                      for i in range(len(hourly_generation_subset))]
    hourly_generation_subset = hourly_generation_subset.loc[date_start: date_end, :]  # select week of interest

    sub = list(technologies)
    for storage_tecs in storage_technologies:
        charge = hourly_generation_subset[f"{storage_tecs}_charge"].clip(lower=0)
        discharge = hourly_generation_subset[f"{storage_tecs}_discharge"].clip(lower=0)
        hourly_generation_subset[f"{storage_tecs} charging"] = - charge
        hourly_generation_subset[f"{storage_tecs} discharging"] = discharge
        sub += [f"{storage_tecs} discharging", f"{storage_tecs} charging"]

    prod = hourly_generation_subset[sub]  # stacked areas need columns of constant sign
    prod = prod.where(prod.abs() > 1e-9, 0)
    demand = hourly_generation_subset["demand"]

    if save_path is None:
        fig, ax = plt.subplots(1, 1)
    else:  # we change figure size when saving figure
        fig, ax = plt.subplots(1, 1, figsize=(12.8, 9.6))

    prod.plot.area(color=[COLORS_GENCAP.get(k, "grey") for k in sub], ax=ax, linewidth=0)
    demand.plot(ax=ax, style='-', c='red')
    format_ax(ax, title="Hourly production and demand (GW)", y_min=y_min, y_max=y_max)
    ax.set_xlabel('')
    format_legend(ax, dict_legend=DICT_TRANSFORM_LEGEND)
    ax.axhline(y=0)

    save_fig(fig, save=save_path)
