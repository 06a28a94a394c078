from __future__ import annotations

import argparse
import logging
import sys
import time

from ..config import DATASET_PATH
from ..config import TEMPLATE_PRESETS
from ..config import VERSION
from ..config import SearchConfig
from ..config import resolve_template
from ..errors import DataFormatError
from ..errors import FitError
from ..errors import ParseError
from ..logging_config import setup_logging
from ..symbolic_regression.fit_engine import FIT_ALGORITHMS
from ..symbolic_regression.fit_engine import fit
from ..symbolic_regression.params import Candidate
from ..symbolic_regression.residual import RESIDUAL_FUNCTIONS
from ..symbolic_regression.search_engine import FitSearch
from ..utils.data_loading import Dataset
from ..utils.data_loading import load_dataset
from ..utils.formatting import format_fit_report

_logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FIT_FAILED = 1
EXIT_USAGE = 2


def _param_assignment(text: str) -> tuple[str, float]:
    """argparse type for ``NAME=VALUE``."""
    name, sep, value = text.partition("=")
    name = name.strip()
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {text!r}")
    try:
        return name, float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid value for {name}: {value!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="datafitter",
        description="Search for a formula with free parameters that fits (x, y) data.",
    )
    parser.add_argument(
        "dataset",
        nargs="?",
        default=DATASET_PATH,
        help=f"Dataset file with one 'x y' pair per line (default: {DATASET_PATH})",
    )
    parser.add_argument("--seed", type=int, help="Seed for the random stream")
    parser.add_argument(
        "--max-generated", type=int, help="Stop after this many candidates were generated"
    )
    parser.add_argument(
        "--max-fitted", type=int, help="Stop after this many candidates were fitted"
    )
    parser.add_argument(
        "--max-duration", type=float, help="Stop after this many seconds"
    )
    parser.add_argument(
        "--max-params", type=int, help="Skip candidates with more parameters than this"
    )
    parser.add_argument(
        "--fit-algorithm",
        type=str,
        choices=sorted(FIT_ALGORITHMS),
        help="Parameter optimizer",
    )
    parser.add_argument(
        "--residual",
        type=str,
        choices=sorted(RESIDUAL_FUNCTIONS),
        help="Residual function",
    )
    parser.add_argument("--min-step", type=float, help="Pattern-search convergence step")
    parser.add_argument("--max-iters", type=int, help="Iteration cap per fit")
    parser.add_argument(
        "--template",
        type=str,
        help=(
            "Fit this expression instead of random ones; a preset name "
            f"({', '.join(TEMPLATE_PRESETS)}) or expression text"
        ),
    )
    parser.add_argument(
        "--param",
        type=_param_assignment,
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Initial value of a template parameter (repeatable)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--fit-once", action="store_true", help="Fit the template once and print it"
    )
    mode.add_argument(
        "--benchmark",
        type=int,
        metavar="N",
        help="Fit the template N times from the same start and print the elapsed time",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set logging level",
    )
    parser.add_argument("--log-file", type=str, help="Write logs to file")
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Do not print search progress"
    )
    parser.add_argument(
        "-v", "--version", action="store_true", help="Show program version"
    )
    return parser


def build_config(args: argparse.Namespace) -> SearchConfig:
    """SearchConfig from parsed arguments; unset flags keep the defaults."""
    changes = {"dataset_path": args.dataset, "verbose": not args.quiet}
    overrides = {
        "seed": args.seed,
        "max_generated": args.max_generated,
        "max_fitted": args.max_fitted,
        "max_duration": args.max_duration,
        "max_params": args.max_params,
        "fit_algorithm": args.fit_algorithm,
        "residual_function": args.residual,
        "min_step": args.min_step,
        "fit_max_iters": args.max_iters,
    }
    changes.update({key: value for key, value in overrides.items() if value is not None})
    if args.template:
        text, values = resolve_template(args.template, dict(args.param))
        changes["template"] = text
        changes["template_params"] = values
    return SearchConfig(**changes)


def _template_candidate(config: SearchConfig) -> Candidate:
    return Candidate.from_template(config.template, config, dict(config.template_params))


def fit_once(dataset: Dataset, config: SearchConfig) -> int:
    """Fit the configured template a single time and print the result."""
    candidate = _template_candidate(config)
    print(f"f = {candidate.to_string()}")
    try:
        result = fit(candidate, dataset, config)
    except FitError as exc:
        print(f"Unable to fit: {exc}")
        return EXIT_FIT_FAILED
    for line in format_fit_report(result.iterations, candidate.to_string_for_plot(), result.residue):
        print(line)
    return EXIT_OK


def benchmark(dataset: Dataset, config: SearchConfig, repeats: int) -> int:
    """Fit the template ``repeats`` times from the same start and time it."""
    start = _template_candidate(config)
    time_begin = time.perf_counter()
    for _ in range(repeats):
        candidate = start.copy()
        try:
            result = fit(candidate, dataset, config)
        except FitError as exc:
            print(f"fit failed: {exc}")
            continue
        print(f"fit_residue = {result.residue!r} (fit_iters: {result.iterations})")
    elapsed_ms = (time.perf_counter() - time_begin) * 1000
    print(f"finished in {elapsed_ms:.0f} ms.")
    return EXIT_OK


def main_entry(argv: list[str] | None = None) -> int:
    """
    Main entry point for the datafitter CLI.

    Args:
        argv: Optional command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for a failed single fit, 2 for data or
        usage errors)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"datafitter {VERSION}")
        return EXIT_OK

    setup_logging(level=args.log_level, log_file=args.log_file)

    if (args.fit_once or args.benchmark is not None) and not args.template:
        print("Error: --fit-once and --benchmark need --template", file=sys.stderr)
        return EXIT_USAGE
    if args.benchmark is not None and args.benchmark < 1:
        print("Error: --benchmark needs a positive count", file=sys.stderr)
        return EXIT_USAGE

    try:
        config = build_config(args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    try:
        dataset = load_dataset(config.dataset_path)
    except DataFormatError as exc:
        _logger.error("Failed to load dataset: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    try:
        if args.fit_once:
            return fit_once(dataset, config)
        if args.benchmark is not None:
            return benchmark(dataset, config, args.benchmark)
        search = FitSearch(dataset, config)
    except (ParseError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    result = search.run()
    if config.verbose:
        search.print_stats()
        if result.found:
            print(f"best: {result.best.candidate.to_string_for_plot()}")
            print(f"residue = {result.best.residue!r}")
        else:
            print("no candidate could be fitted")
    return EXIT_OK
