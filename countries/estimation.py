"""
GDP estimate for a cached country.

The multiplier is redrawn on every call, so two refreshes over identical
inputs store different ``estimated_gdp`` values. That is the intended
behaviour of the service today; it stands in for a real economic model and
should be revisited with the data owner rather than made deterministic here.
"""
import random
from typing import NamedTuple, Optional

MULTIPLIER_RANGE = (1000.0, 2000.0)


class Estimate(NamedTuple):
    exchange_rate: Optional[float]
    estimated_gdp: Optional[float]


def make_multiplier(rng=random):
    low, high = MULTIPLIER_RANGE
    return rng.uniform(low, high)


def estimate(population, currency_code, rates, rng=random):
    """Return ``Estimate(exchange_rate, estimated_gdp)`` for one country.

    - no currency code: ``(None, 0.0)``, zero rather than unknown
    - code missing from ``rates``: ``(None, None)``
    - rate not strictly positive: ``(None, None)``
    - otherwise ``(rate, population * multiplier / rate)``
    """
    if not currency_code:
        return Estimate(None, 0.0)

    rate = rates.get(currency_code)
    if rate is None or rate <= 0:
        return Estimate(None, None)

    rate = float(rate)
    multiplier = make_multiplier(rng)
    return Estimate(rate, (population * multiplier) / rate)
