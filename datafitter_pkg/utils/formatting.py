from __future__ import annotations

REPORT_RULE = "-" * 42


def number_to_decimal_places(x: float) -> int:
    """Decimal places used when printing a rate of ``x`` per second."""
    if x > 1000:
        return 0
    if x > 100:
        return 1
    if x > 10:
        return 2
    if x > 0.1:
        return 3
    if x > 0.01:
        return 4
    if x > 0.001:
        return 5
    return 6


def format_with_decimal_places(x: float, decimal_places: int) -> str:
    if not 0 <= decimal_places <= 7:
        raise ValueError(f"unsupported number of decimal places: {decimal_places}")
    return f"{x:.{decimal_places}f}"


def format_rate(x: float) -> str:
    """Format a throughput value with magnitude-dependent precision."""
    return format_with_decimal_places(x, number_to_decimal_places(x))


def format_stats(generated: int, fitted: int, elapsed: float) -> list[str]:
    """Throughput lines for the console.

    Args:
        generated: Candidates generated so far
        fitted: Candidates whose fit completed without a fit error
        elapsed: Seconds since the search started

    Returns:
        The two report lines (without trailing newlines)
    """
    if elapsed > 0:
        generated_rate = generated / elapsed
        fitted_rate = fitted / elapsed
    else:
        generated_rate = fitted_rate = 0.0
    return [
        f"candidates generated: {generated}\t{format_rate(generated_rate)}/s",
        f"candidates fitted   : {fitted}\t{format_rate(fitted_rate)}/s",
    ]


def format_best_report(fit_iters: int, plot_form: str, pretty_form: str, residue: float) -> list[str]:
    """Lines of the block printed when a new best candidate is found."""
    return [
        "FOUND NEW BEST FUNCTION:",
        f"fit_iters: {fit_iters}",
        "FUNCTION:",
        plot_form,
        "SIMPLIFIED:",
        pretty_form,
        f"residue = {residue!r}",
        REPORT_RULE,
    ]


def format_fit_report(fit_iters: int, plot_form: str, residue: float) -> list[str]:
    """Lines printed after fitting a single template."""
    return [
        f"fit_iters: {fit_iters}",
        "FUNCTION:",
        plot_form,
        f"residue = {residue!r}",
        REPORT_RULE,
    ]
