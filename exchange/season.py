"""
Season Runner.

Builds a market from a hydra/OmegaConf config and runs it day by day,
tick by tick, collecting one result row per (day, instrument).
"""

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any

import pandas as pd
from omegaconf import DictConfig

from exchange.clock import SimulationClock
from exchange.event_logger import EventLogger
from exchange.market import Market
from exchange.rules import MarketRules
from pricing.commodity import CommodityCatalog, Instrument, InstrumentKind, Season
from pricing.config_loader import build_catalog, build_news, load_commodities, load_news
from pricing.news import NewsTemplate


def parse_instruments(entries: Any, start_season: Season) -> list[Instrument]:
    """
    Instruments from config entries.

    Each entry is either a commodity name (spot) or a mapping with
    `commodity`, `kind` ("spot"/"futures") and, for futures, `delivery_day`.
    """
    instruments = []
    for entry in entries or []:
        if isinstance(entry, str):
            instruments.append(Instrument.spot(entry))
            continue
        kind = InstrumentKind(str(entry.get("kind", "spot")).lower())
        if kind is InstrumentKind.FUTURES:
            instruments.append(
                Instrument.futures(entry["commodity"], int(entry["delivery_day"]), start_season)
            )
        else:
            instruments.append(Instrument.spot(entry["commodity"]))
    return instruments


class SeasonRunner:
    """
    Runs a configured season.

    Commodities and news come either from inline `commodities` / `news`
    sections of the config or from the YAML files named in `data`.
    """

    def __init__(self, config: DictConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.market: Market | None = None
        self.ticks: pd.DataFrame | None = None

        # Event logging (optional)
        self.event_logger: EventLogger | None = None
        if config.experiment.get("log_events", False):
            log_dir = Path(config.experiment.get("log_dir", "logs"))
            event_log_path = log_dir / f"{config.experiment.name}_events.jsonl"
            self.event_logger = EventLogger(event_log_path)
            self.logger.info(f"Event logging enabled: {event_log_path}")

    def _catalog(self) -> CommodityCatalog:
        if self.config.get("commodities") is not None:
            return build_catalog(self.config)
        return load_commodities(self.config.data.commodities)

    def _news(self) -> list[NewsTemplate]:
        if self.config.get("news") is not None:
            return build_news(self.config)
        path = self.config.get("data", {}).get("news")
        if not path:
            self.logger.warning("No news file configured")
            return []
        return load_news(path)

    def build_market(self) -> Market:
        market_cfg = self.config.market
        start_season = Season.parse(market_cfg.get("start_season", "spring"))
        instruments = parse_instruments(market_cfg.instruments, start_season)
        rules = MarketRules.from_config(self.config.get("rules"))
        switch = market_cfg.get("regime_switch_probability")

        return Market(
            instruments,
            self._catalog(),
            self._news(),
            rules=rules,
            seed=self.config.experiment.seed,
            regime=market_cfg.get("regime", "quiet"),
            regime_switch_probability=None if switch is None else float(switch),
            start_season=start_season,
            event_logger=self.event_logger,
            opening_time=market_cfg.get("opening_time", 600),
        )

    def run(self) -> pd.DataFrame:
        """Run the season and return one row per (day, instrument)."""
        market = self.build_market()
        self.market = market
        market_cfg = self.config.market
        clock = SimulationClock(
            ticks_per_day=market_cfg.get("ticks_per_day", 120),
            opening_time=market_cfg.get("opening_time", 600),
            closing_time=market_cfg.get("closing_time", 2600),
        )
        record_ticks = self.config.experiment.get("record_ticks", False)
        num_days = self.config.experiment.num_days

        self.logger.info(
            f"Running {num_days} days over {len(market.instruments)} instruments "
            f"(seed {self.config.experiment.seed})"
        )

        records = []
        tick_rows = []
        for day in range(1, num_days + 1):
            clock.start_day(day)
            market.open_day(day)
            while clock.advance():
                market.tick(clock)
                if record_ticks:
                    for symbol, state in market.states.items():
                        tick_rows.append({
                            "day": day,
                            "tick": clock.tick,
                            "time": clock.time_of_day,
                            "symbol": symbol,
                            "price": state.current_price,
                            "model_price": state.model_price,
                            "impact": state.impact,
                            "mid": market.books[symbol].mid_price(),
                        })
            clock.close()
            records.extend(market.close_day())

            if day % 7 == 0 or day == num_days:
                self.logger.info(f"Completed day {day}/{num_days}")

        if self.event_logger:
            self.event_logger.flush()

        self.ticks = pd.DataFrame(tick_rows) if record_ticks else None
        return pd.DataFrame([asdict(r) for r in records])

    def close(self) -> None:
        if self.event_logger:
            self.event_logger.close()
