"""Formatted ASCII table display for path-specific effect results.

The table mirrors the statsmodels summary style: a header panel with
the variable roles and bootstrap settings, then one row per estimand
(ATE first, then each path) with the point estimate and, when the
bootstrap was run, the percentile interval and bootstrap p-value.
"""

from __future__ import annotations

import textwrap
from typing import TYPE_CHECKING

from .pvalues import format_p_value

if TYPE_CHECKING:
    from ._results import PathEffectsResult


def _truncate(name: str, max_len: int) -> str:
    """Truncate *name* to *max_len*, appending ``'...'`` if needed."""
    if len(name) <= max_len:
        return name
    return name[: max_len - 3] + "..."


def _wrap(text: str, width: int = 80, indent: int = 2) -> str:
    """Word-wrap *text* to *width*, indenting continuation lines only."""
    return textwrap.fill(
        text,
        width=width,
        initial_indent="",
        subsequent_indent=" " * indent,
    )


def _fmt_opt(val: object) -> str:
    return "N/A" if val is None else str(val)


def print_path_effects_table(
    result: PathEffectsResult,
    *,
    title: str = "IPW Path-Specific Effects",
    precision: int = 4,
) -> None:
    """Print a path-effects result as a formatted ASCII table.

    Args:
        result: Result returned by :func:`~ipwpath.ipwpath`.
        title: Title for the output table.
        precision: Decimal places for estimates and interval bounds.
    """
    print("=" * 80)
    for line in textwrap.wrap(title, width=78):
        print(f"{line:^80}")
    print("=" * 80)

    col1 = 40
    col2 = 38
    conf = result.confidence_level
    conf_str = f"{conf:.0%}" if conf is not None else "N/A"
    print(
        f"{'Exposure:':<16}{_truncate(result.exposure, 22):<{col1 - 16}}"
        f"{'No. Observations:':>{col2 - 11}} {result.n_observations:>10}"
    )
    print(
        f"{'Outcome:':<16}{_truncate(result.outcome, 22):<{col1 - 16}}"
        f"{'Bootstrap reps:':>{col2 - 11}} {_fmt_opt(result.n_bootstrap):>10}"
    )
    print(
        f"{'Covariates:':<16}{len(result.covariates):<{col1 - 16}}"
        f"{'Conf. level:':>{col2 - 11}} {conf_str:>10}"
    )
    print(
        f"{'Base weights:':<16}{_truncate(_fmt_opt(result.base_weights), 22):<{col1 - 16}}"
        f"{'Mode:':>{col2 - 11}} {_fmt_opt(result.execution_mode):>10}"
    )
    print(_wrap(f"{'Mediators:':<16}" + " -> ".join(result.mediators), indent=16))

    print("-" * 80)

    # ── Table geometry (W = 80 chars) ─────────────────────────── #
    #
    #   Path (22, left) | Estimate (12) | Lower (13) | Upper (13)
    #   | P-value (20)
    #   Total: 22 + 12 + 13 + 13 + 20 = 80
    pc = 22
    bounds = ("Lower", "Upper")
    if result.ci_pse is not None:
        bounds = tuple(str(c) for c in result.ci_pse.columns)
    print(
        f"{'Path':<{pc}}{'Estimate':>12}{bounds[0]:>13}{bounds[1]:>13}"
        f"{'P-value (Boot)':>20}"
    )
    print("-" * 80)

    rows: list[tuple[str, float, tuple[float, float] | None, float | None]] = []
    ci_ate = result.ci_ate
    rows.append(
        (
            "ATE",
            result.ate,
            (float(ci_ate[0]), float(ci_ate[1])) if ci_ate is not None else None,
            result.pvalue_ate,
        )
    )
    for name, value in result.pse.items():
        ci = None
        p = None
        if result.ci_pse is not None and result.pvalue_pse is not None:
            lo, hi = result.ci_pse.loc[name]
            ci = (float(lo), float(hi))
            p = float(result.pvalue_pse[name])
        rows.append((str(name), float(value), ci, p))

    for i, (name, value, ci, p) in enumerate(rows):
        est_str = f"{value:>12.{precision}f}"
        if ci is not None:
            ci_str = f"{ci[0]:>13.{precision}f}{ci[1]:>13.{precision}f}"
        else:
            ci_str = f"{'':>13}{'':>13}"
        p_str = format_p_value(p) if p is not None else ""
        print(f"{_truncate(name, pc):<{pc}}{est_str}{ci_str}{p_str:>20}")
        # Rule under the ATE to set it apart from its decomposition.
        if i == 0:
            print("-" * 80)

    # ── Notes ──────────────────────────────────────────────────── #
    notes: list[str] = []
    if len(result.mediators) == 1:
        notes.append(
            "A single mediator was given: the decomposition reports the "
            "natural direct (NDE) and indirect (NIE) effects."
        )
    if result.bootstrapped and result.base_weights is not None:
        notes.append(
            "Bootstrap inference does not account for complex sample "
            "designs (weighting, stratification, clustering)."
        )
    if result.bootstrapped:
        notes.append(
            "Intervals are percentile bootstrap intervals; p-values test "
            "a zero effect from the sign of the replicates."
        )

    if notes:
        print("-" * 80)
        print("Notes:")
        for note in notes:
            print(_wrap(f"  [!] {note}", indent=6))
    print("=" * 80)


__all__ = ["print_path_effects_table"]
