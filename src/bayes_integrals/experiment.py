import argparse
import json
import logging
import os
import pprint

import jax
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from . import plotting, studies
from .config_parser import ConfigParsingError, ParsedRunConfig, parse_run_config
from .studies import ApproximationSummary
from .target import PoissonGamma
from .utils import read_config


def _save_figure(fig: Figure, filename: str) -> None:
    fig.savefig(filename, dpi=120)
    plt.close(fig)
    logging.info(f"Saved figure {filename}")


def make_plots(
    target: PoissonGamma, run: ParsedRunConfig, summary: ApproximationSummary
) -> list[str]:
    methods = run.methods
    stem = run.output_stem
    desc = run.description
    written = []

    def save(fig: Figure, suffix: str) -> None:
        filename = f"{stem}_{suffix}.png"
        _save_figure(fig, filename)
        written.append(filename)

    rect = methods.rectangle
    save(
        plotting.plot_rectangle_rule(target, rect.lower, rect.upper, rect.step, desc),
        "rectangle",
    )

    samples = target.prior().sample(
        min(methods.monte_carlo.num_samples, 100_000),
        seed=jax.random.PRNGKey(methods.monte_carlo.seed),
    )
    save(plotting.plot_monte_carlo(target, samples, desc), "monte_carlo")

    logging.info("Running monte carlo sweep.")
    means, stds = studies.monte_carlo_sweep(
        target.likelihood,
        target.prior(),
        methods.monte_carlo.sample_sizes,
        num_repeats=methods.monte_carlo.num_repeats,
        seed=methods.monte_carlo.seed,
    )
    save(
        plotting.plot_monte_carlo_convergence(
            methods.monte_carlo.sample_sizes, means, stds, summary.exact, desc
        ),
        "monte_carlo_convergence",
    )

    approximations = [
        a for a in (summary.laplace_normal, summary.laplace_lognormal) if a is not None
    ]
    if approximations:
        save(plotting.plot_laplace(target, approximations, rect.upper, desc), "laplace")

    reference = summary.quadrature_reference
    if reference is not None:
        logging.info("Running gauss-hermite sweep.")
        estimates = studies.gauss_hermite_laplace_sweep(
            target.density, reference, methods.gauss_hermite.max_points
        )
        save(
            plotting.plot_gauss_hermite_convergence(estimates, summary.exact, desc),
            "gauss_hermite",
        )

    return written


def write_summary(run: ParsedRunConfig, summary: ApproximationSummary) -> str:
    filename = f"{run.output_stem}_summary.json"
    with open(filename, "w") as f:
        json.dump(
            dict(
                name=run.name,
                description=run.description,
                target=run.target._asdict(),
                estimates=summary.estimates(),
                errors=summary.errors(),
                monte_carlo_std_error=summary.monte_carlo.std_error,
            ),
            f,
            indent=2,
        )
    logging.info(f"Wrote summary {filename}")
    return filename


def log_summary(summary: ApproximationSummary) -> None:
    errors = summary.errors()
    lines = [f"{'method':<20}{'estimate':>14}{'abs error':>14}"]
    for name, value in summary.estimates().items():
        err = errors.get(name)
        err_str = f"{err:>14.3e}" if err is not None else f"{'':>14}"
        lines.append(f"{name:<20}{value:>14.8f}{err_str}")
    logging.info("\n" + "\n".join(lines))


def do_one_run(config: dict, idx: int, plots: bool = True) -> ApproximationSummary:
    run = parse_run_config(config)
    name = run.name or f"run-{idx}"
    logging.info(f"Running experiment with name: '{name}'")
    if run.description:
        logging.info(f"Description: {run.description}")

    target = PoissonGamma.new(**run.target._asdict())
    summary = studies.summarize(target, run)
    log_summary(summary)

    os.makedirs(run.output_dir, exist_ok=True)
    write_summary(run, summary)
    if plots:
        make_plots(target, run, summary)

    return summary


def main(args: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(
        prog="bayes-integrals",
        description=(
            "Approximates the Poisson-Gamma marginal with every method using a "
            "config.yaml file"
        ),
    )

    parser.add_argument("--config", type=str, help="path to config file to load")

    parser.add_argument(
        "--run",
        type=int,
        default=-1,
        help="run only one experiment with config corresponding to the given index.",
    )

    parser.add_argument(
        "--print-config",
        action="store_true",
        help="print the loaded configurations and exit",
    )

    parser.add_argument(
        "--no-plots", action="store_true", help="skip figures and sweeps"
    )

    parsed_args = parser.parse_args(args)

    if parsed_args.config is None:
        parser.print_help()
        return None

    configs = read_config(parsed_args.config)
    logging.info(f"Loaded {len(configs)} configurations from {parsed_args.config}")

    if parsed_args.run >= 0:
        configs = [configs[parsed_args.run]]
        logging.info(f"Running only one experiment with index {parsed_args.run}")

    if parsed_args.print_config:
        pprint.pprint(configs)
        return None

    logging.info(f"Running {len(configs)} experiments")
    for i, config in enumerate(configs):
        logging.info(f"Running experiment {i + 1} out of {len(configs)}.")
        try:
            do_one_run(config, i, plots=not parsed_args.no_plots)
        except ConfigParsingError as e:
            logging.error(f"Error in experiment {i}. Config file:\n{e}")
        logging.info(f"Finished run {i + 1} out of {len(configs)}.")

    return


if __name__ == "__main__":
    main()
