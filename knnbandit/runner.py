import argparse
import logging
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

from tqdm import tqdm

from knnbandit.config import SimulationConfig, base_configs, build_recommenders, load_algorithm_grid
from knnbandit.data import load_graph, load_ratings
from knnbandit.metrics import default_metrics
from knnbandit.simulation import Simulation
from knnbandit.untie import TieBreaker, resolve_seed

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(threadName)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def run_simulation(name, factory, metrics, output_dir, config: SimulationConfig, users=None, position=0):
    """Runs one algorithm instance to completion. Returns its final metric values."""
    log_path = os.path.join(output_dir, f"{name}.txt")
    recommender = factory()
    simulation = Simulation(name, recommender, metrics, n_iter=config.n_iter, users=users,
                            user_seed=config.user_seed, flush_every=config.flush_every)

    total = config.n_iter if config.n_iter > 0 else None
    with tqdm(total=total, desc=name, position=position, leave=True) as progress:
        return simulation.run(log_path, recover=config.recover, progress=progress)


def run_algorithms(factories: dict, metrics: dict, output_dir, config: SimulationConfig, users=None) -> dict:
    """
    Simulates every algorithm in parallel.

    Each algorithm runs on its own recommender, metrics and log file, so a
    failure in one of them is reported and does not stop the others.

    Args:
        factories (dict): name -> function building a fresh recommender.
        metrics (dict): Ordered metric name -> factory.
        output_dir (str): Folder receiving one ``<name>.txt`` log per algorithm.
        config (SimulationConfig): Run settings.
        users (list): Users that can be sampled. Defaults to every user.

    Returns:
        dict: name -> final metric values, or the exception that stopped it.
    """
    results = {}
    with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
        futures = {
            executor.submit(run_simulation, name, factory, metrics, output_dir, config, users, position): name
            for position, (name, factory) in enumerate(factories.items())
        }
        for future in as_completed(futures):
            name = futures[future]
            try:
                results[name] = future.result()
                logger.info("%s: finished %s", name, results[name])
            except OSError as e:
                logger.error("Something failed while writing the log of %s: %s", name, e)
                results[name] = e
    return results


def simulate(prefs, num_relevant: int, grid: dict, output_dir, config: SimulationConfig, users=None,
             exclude_self: bool = False) -> dict:
    """Resolves the run seed, builds the algorithms of ``grid`` and runs them all."""
    os.makedirs(output_dir, exist_ok=True)
    seed = resolve_seed(output_dir, recover=config.recover)

    start = time.perf_counter()
    factories = build_recommenders(prefs, lambda: TieBreaker(seed), grid, config, exclude_self=exclude_self)
    logger.info("Recommenders prepared (%d ms)", int((time.perf_counter() - start) * 1000))

    metrics = default_metrics(prefs, num_relevant, config.relevance_threshold)
    return run_algorithms(factories, metrics, output_dir, config, users=users)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Simulate interactive recommendation over a rating dataset.")
    subparsers = parser.add_subparsers(dest="mode", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("input", help="Preference data")
    common.add_argument("output", help="Folder in which to store the logs")
    common.add_argument("--algorithms", default=None, help="JSON grid of algorithms (default: built-in grid)")
    common.add_argument("--iterations", type=int, default=0, help="Number of iterations, 0 to run until the end")
    common.add_argument("--recover", action="store_true", help="Continue the logs of a previous execution")
    common.add_argument("--workers", type=int, default=None, help="Number of algorithms run in parallel")
    common.add_argument("--log-level", default="INFO")

    general = subparsers.add_parser("generalrec", parents=[common], help="user::item::rating data")
    general.add_argument("--threshold", type=float, default=0.5, help="Relevance threshold")
    general.add_argument("--binary", action="store_true", help="Binarise ratings with the threshold")
    general.add_argument("--keep-unknown", action="store_true",
                         help="Learn a zero reward from unrated pairs instead of ignoring them")

    contact = subparsers.add_parser("contactrec", parents=[common], help="tab separated edge list")
    contact.add_argument("--undirected", action="store_true", help="The graph is undirected")
    contact.add_argument("--recommend-reciprocal", action="store_true",
                         help="Allow recommending v -> u after u -> v (directed graphs only)")

    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.log_level)

    config = SimulationConfig(n_iter=args.iterations, recover=args.recover, max_workers=args.workers,
                              log_level=args.log_level)
    grid = load_algorithm_grid(args.algorithms) if args.algorithms else base_configs

    if args.mode == "generalrec":
        config.threshold = args.threshold
        config.use_ratings = not args.binary
        config.ignore_unknown = not args.keep_unknown
        prefs, num_rel = load_ratings(args.input, config.threshold, config.use_ratings)
        results = simulate(prefs, num_rel, grid, args.output, config)
    else:
        config.directed = not args.undirected
        config.exclude_reciprocal = not config.directed or not args.recommend_reciprocal
        config.use_ratings = False
        prefs, num_rel = load_graph(args.input, config.directed, config.exclude_reciprocal)
        results = simulate(prefs, num_rel, grid, args.output, config, users=prefs.users_with_preferences(),
                           exclude_self=True)

    failed = [name for name, result in results.items() if isinstance(result, Exception)]
    if failed:
        logger.error("%d algorithms failed: %s", len(failed), ", ".join(sorted(failed)))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
