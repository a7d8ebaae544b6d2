import argparse
import datetime
import logging
import sys
from pathlib import Path

from gencap.errors import GenCapError
from gencap.model import ModelGenCap, load_parameters
from gencap.scenarios import run_emission_price_sweep
from gencap.utils import create_logger, get_config, read_config
from gencap.write_output import plot_capacities, write_output

logger = create_logger(__name__, level=logging.INFO)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Least-cost generation and storage capacity expansion.')
    parser.add_argument("--config", type=str, default=None, help="config json file, default configuration if absent")
    parser.add_argument("--emission-price", type=float, default=None, help="Emission price in currency/tCO2")
    parser.add_argument("--solver", type=str, default=None, help="scipy or a Pyomo solver name, e.g. appsi_highs")
    parser.add_argument("--timeout", type=float, default=None, help="Solver time limit in seconds")
    parser.add_argument("--boundary", type=str, default=None, choices=["cyclic", "fixed_initial"],
                        help="Storage boundary policy")
    parser.add_argument("--output", type=str, default=None, help="Folder where outputs are saved")
    parser.add_argument("--sweep", nargs="+", type=float, default=None,
                        help="Emission prices to simulate, one model per price")
    parser.add_argument("--cpu", type=int, default=1, help="CPUs for multiprocessing")
    parser.add_argument("--plot", action="store_true", help="Plot installed capacities")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config = get_config() if args.config is None else read_config(args.config)
    if args.boundary is not None:
        config["storage_boundary"] = args.boundary
    output = args.output
    if output is None:
        output = Path("outputs") / datetime.datetime.now().strftime("%Y%m%d_%H%M%S")

    try:
        if args.sweep is not None:
            sweep = run_emission_price_sweep(config, args.sweep, processes=args.cpu, solver_name=args.solver,
                                             timeout=args.timeout, save_folder=output)
            Path(output).mkdir(parents=True, exist_ok=True)
            sweep.to_csv(Path(output) / "emission_price_sweep.csv")
            logger.info("Sweep saved in %s", output)
            return 0

        parameters = load_parameters(config, emission_price=args.emission_price)
        m = ModelGenCap(parameters, logger=logger)
        m.build_model()
        results = m.solve(solver_name=args.solver, timeout=args.timeout)
    except GenCapError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1

    logger.info("Total system cost: %.3e, technical cost: %.3e", results.objective, results.technical_cost)
    write_output(results, output)
    logger.info("Outputs saved in %s", output)
    if args.plot:
        plot_capacities(results.capacities, results.energy_capacity, save_path=Path(output) / "capacities.png")
    return 0


if __name__ == '__main__':
    sys.exit(main())
