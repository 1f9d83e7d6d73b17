"""
Totals reconciliation for Table 1.

Two arithmetic checks, each within an absolute tolerance:

    sum(supplying) - sum(absorbing)             == reserve balances
    total supplying - total absorbing (ex res.) == reserve balances

plus two pattern checks that catch rows matched under relabeled lines: all
three totals zero while items are not, and everything zero.
"""

import logging

from .config import ReconcileConfig
from .models import Integrity, LineItem, Number, Totals

logger = logging.getLogger(__name__)


def _sum(items: tuple[LineItem, ...] | list[LineItem]) -> Number:
    return sum(item.value for item in items)


def _value(item: LineItem | None) -> Number | None:
    return item.value if item is not None else None


def _round(value: Number) -> Number:
    return round(value, 6) if isinstance(value, float) else value


def reconcile(
    supplying: tuple[LineItem, ...] | list[LineItem],
    absorbing: tuple[LineItem, ...] | list[LineItem],
    totals: Totals,
    config: ReconcileConfig | None = None,
) -> Integrity:
    """
    Validate extracted items against the published totals.

    Args:
        supplying: Items supplying reserve funds
        absorbing: Items absorbing reserve funds
        totals: Independently parsed total rows
        config: Tolerance and which checks are fatal

    Returns:
        Integrity with ok=False and one message per failed check.
    """
    config = config or ReconcileConfig()
    failures: list[str] = []

    total_supplying = _value(totals.total_supplying)
    total_absorbing = _value(totals.total_absorbing_ex_reserves)
    reserves = _value(totals.reserve_balances)

    items_nonzero = any(item.value != 0 for item in (*supplying, *absorbing))
    official = [v for v in (total_supplying, total_absorbing, reserves) if v is not None]
    totals_zero = len(official) == 3 and all(v == 0 for v in official)

    if totals_zero and items_nonzero:
        message = "all three official totals are zero while item rows are non-zero"
        if config.zero_totals_fatal:
            failures.append(message)
        else:
            logger.warning("%s (not fatal by configuration)", message)

    if (supplying or absorbing) and not items_nonzero and (not official or all(v == 0 for v in official)):
        failures.append("every extracted value is zero")

    calculated = _round(_sum(supplying) - _sum(absorbing))
    delta = None

    if reserves is None:
        failures.append("reserve balances row is missing")
    else:
        delta = _round(calculated - reserves)
        if config.check_item_sums and abs(delta) > config.tolerance:
            failures.append(
                f"sum(supplying) - sum(absorbing) = {calculated} differs from "
                f"reserve balances {reserves} by {delta}"
            )

        if config.check_total_identity and total_supplying is not None and total_absorbing is not None:
            identity_delta = _round(total_supplying - total_absorbing - reserves)
            if abs(identity_delta) > config.tolerance:
                failures.append(
                    f"total supplying - total absorbing = {_round(total_supplying - total_absorbing)} "
                    f"differs from reserve balances {reserves} by {identity_delta}"
                )

    if failures:
        logger.warning("Reconciliation failed: %s", "; ".join(failures))

    return Integrity(
        ok=not failures,
        calculated_reserve_balances=calculated,
        reported_reserve_balances=reserves,
        delta=delta,
        failures=tuple(failures),
    )
