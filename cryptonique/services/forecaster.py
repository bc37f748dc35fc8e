"""Short-horizon price extrapolation from a historical price series."""

import math

from cryptonique.models.market_data import PricePoint

MIN_HISTORY_POINTS = 3
DEFAULT_STEPS = 6
DEFAULT_INTERVAL_MS = 60_000

# Modulation and drift weights
PRIMARY_WAVE_WEIGHT = 0.2
SECONDARY_WAVE_WEIGHT = 0.1
MOMENTUM_WEIGHT = 0.4


def _linear_fit(ys: list[float]) -> tuple[float, float]:
    """Least-squares slope and intercept of ys against their indexes."""
    n = len(ys)
    xs = range(n)
    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_x2 = sum(x * x for x in xs)

    denom = n * sum_x2 - sum_x * sum_x or 1
    slope = (n * sum_xy - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


def _volatility(ys: list[float]) -> float:
    """Population standard deviation of consecutive price differences."""
    if len(ys) <= 4:
        return 0.0
    diffs = [ys[i] - ys[i - 1] for i in range(1, len(ys))]
    mean = sum(diffs) / len(diffs)
    variance = sum((d - mean) ** 2 for d in diffs) / len(diffs)
    return math.sqrt(variance)


def _momentum(history: list[PricePoint]) -> float:
    n = len(history)
    last_delta = history[-1].price - history[-2].price
    prev_delta = history[-2].price - history[-3].price if n >= 3 else last_delta
    return last_delta - prev_delta


def predict(history: list[PricePoint], steps: int = DEFAULT_STEPS) -> list[PricePoint]:
    """
    Extrapolate future prices from an ascending price history.

    The trend line from an ordinary least-squares fit is perturbed by two
    sine waves scaled by volatility and by a drift proportional to momentum.

    Args:
        history: Observed points ordered by ascending timestamp
        steps: Number of future points to produce

    Returns:
        `steps` predicted points spaced by the last observed interval, or an
        empty list when fewer than three points are available
    """
    if len(history) < MIN_HISTORY_POINTS or steps <= 0:
        return []

    n = len(history)
    ys = [p.price for p in history]
    slope, intercept = _linear_fit(ys)
    vol = _volatility(ys)
    momentum = _momentum(history)

    last = history[-1]
    interval_ms = last.timestamp - history[-2].timestamp or DEFAULT_INTERVAL_MS

    predictions = []
    for i in range(1, steps + 1):
        x = n - 1 + i
        base = slope * x + intercept
        sin_mod = (
            math.sin(i / 1.5) * vol * PRIMARY_WAVE_WEIGHT
            + math.sin(i / 3.2) * vol * SECONDARY_WAVE_WEIGHT
        )
        drift = momentum * MOMENTUM_WEIGHT * i
        predictions.append(
            PricePoint(
                timestamp=last.timestamp + interval_ms * i,
                price=max(0.0, base + sin_mod + drift),
                predicted=True,
            )
        )

    return predictions
