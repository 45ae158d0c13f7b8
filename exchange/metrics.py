"""
Season Metrics.

Summary statistics over the per-day results produced by SeasonRunner.
Every function takes the results DataFrame (columns day, symbol, open,
close, fundamental, futures_quote, breaker_tripped, flow_volume, ...).
"""

import numpy as np
import pandas as pd


def daily_returns(results: pd.DataFrame, column: str = "close") -> pd.Series:
    """Simple day-over-day returns per symbol (first day of each symbol is NaN)."""
    ordered = results.sort_values(["symbol", "day"])
    return ordered.groupby("symbol")[column].pct_change()


def realized_volatility(prices: pd.Series) -> float:
    """Standard deviation of daily log returns; 0 with fewer than two returns."""
    values = prices.to_numpy(dtype=float)
    if len(values) < 3:
        return 0.0
    log_returns = np.diff(np.log(values))
    return float(np.std(log_returns, ddof=1))


def max_drawdown(prices: pd.Series) -> float:
    """Largest peak-to-trough fall as a fraction of the peak."""
    values = prices.to_numpy(dtype=float)
    if len(values) == 0:
        return 0.0
    peaks = np.maximum.accumulate(values)
    drawdowns = (peaks - values) / peaks
    return float(drawdowns.max())


def tracking_error(results: pd.DataFrame) -> float:
    """Root mean square relative deviation of close from fundamental."""
    if results.empty:
        return 0.0
    relative = (results["close"] - results["fundamental"]) / results["fundamental"]
    return float(np.sqrt(np.mean(relative.to_numpy(dtype=float) ** 2)))


def basis_summary(results: pd.DataFrame) -> pd.DataFrame:
    """Mean and last basis (futures quote - close) per symbol."""
    basis = results.assign(basis=results["futures_quote"] - results["close"])
    ordered = basis.sort_values(["symbol", "day"])
    return ordered.groupby("symbol")["basis"].agg(["mean", "last"])


def summarize(results: pd.DataFrame) -> pd.DataFrame:
    """One row of headline statistics per symbol."""
    rows = []
    for symbol, group in results.sort_values("day").groupby("symbol"):
        rows.append({
            "symbol": symbol,
            "days": len(group),
            "first_open": float(group["open"].iloc[0]),
            "last_close": float(group["close"].iloc[-1]),
            "volatility": realized_volatility(group["close"]),
            "max_drawdown": max_drawdown(group["close"]),
            "tracking_error": tracking_error(group),
            "breaker_trips": int(group["breaker_tripped"].sum()),
            "flow_volume": int(group["flow_volume"].sum()),
        })
    return pd.DataFrame(rows).set_index("symbol")
