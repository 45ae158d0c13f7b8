"""
Market orchestrator for the simulated commodity-futures exchange.

Sequences every component once per simulated day and once per tick:

DAY OPEN (open_day)
    season rollover -> regime -> news schedule -> fundamental value ->
    opening price (breaker gap consumed) -> day-level target ->
    futures quote -> synthetic depth at the new target

TICK (tick, only while the market is open and not paused)
    circuit-breaker check -> bridge step -> fundamental refresh ->
    market impact -> displayed price -> virtual order flow

All randomness flows through one RandomProvider, so a seed fixes the
whole run. Readers get copies or immutable snapshots; only open_day, tick
and order submission mutate state.
"""

import logging
import math
from dataclasses import replace
from typing import Any, Callable, Sequence, TYPE_CHECKING

from agents.base import FlowAgent
from agents.fomo import FomoAgent
from agents.scenario import Regime, RegimeScheduler, ScenarioParameters, get_scenario
from agents.smart_money import SmartMoneyAgent
from agents.trend_follower import TrendFollowerAgent
from exchange.circuit_breaker import CircuitBreaker
from exchange.clock import TimeSource
from exchange.impact import MarketImpactModel
from exchange.orderbook import BalanceLookup, OrderBook
from exchange.orders import BookSnapshot, Fill, MarketExecution, Order
from exchange.rules import MarketRules
from exchange.state import DayRecord, PriceState
from pricing.bridge import IntradayPriceProcess
from pricing.commodity import (
    Commodity,
    CommodityCatalog,
    Instrument,
    Season,
    season_for_day,
)
from pricing.cost_of_carry import FuturesPricer
from pricing.fundamental import FundamentalValueEngine
from pricing.gbm import DailyPriceProcess
from pricing.news import NewsLedger, NewsScheduler, NewsTemplate
from pricing.random_provider import RandomProvider

if TYPE_CHECKING:
    from exchange.event_logger import EventLogger

logger = logging.getLogger(__name__)

FillListener = Callable[[Fill], None]


def build_agents(rules: MarketRules) -> list[FlowAgent]:
    """One agent of each kind, parameterised from the rules."""
    agents = rules.agents
    return [
        SmartMoneyAgent(agents.smart_money.base_strength, agents.smart_money.max_force),
        TrendFollowerAgent(
            agents.trend_follower.base_strength,
            agents.trend_follower.max_force,
            moving_average_period=agents.trend_follower.moving_average_period,
            min_history=agents.trend_follower.min_history,
        ),
        FomoAgent(agents.fomo.base_strength, agents.fomo.max_force),
    ]


class Market:
    """
    Day/tick driver for a set of instruments.

    Attributes:
        instruments: Traded instruments by symbol
        catalog: Commodity reference data
        ledger: Released news, written only by the scheduler
        rng: Shared random provider
        day: Last opened day (0 before the first open)
        season: Season of `day`

    Args:
        instruments: Instruments to simulate
        catalog: Commodity reference data (missing symbols fall back to a flat default)
        news_templates: Configured news
        rules: Market constants (defaults if None)
        seed: Seed for the shared RandomProvider
        regime: Fixed regime, used on day 1 and whenever no scheduler is set
        regime_switch_probability: If given, a RegimeScheduler switches regimes daily
        start_season: Season of day 1
        balance_lookup: trader_id -> available margin for player order admission
        agents: Synthetic flow agents (built from rules if None)
        event_logger: Optional JSONL event logger
        opening_time: Time of day (HHMM) at which news visibility is judged at the open

    Raises:
        ValueError: If no instruments are given or symbols repeat
    """

    def __init__(
        self,
        instruments: Sequence[Instrument],
        catalog: CommodityCatalog,
        news_templates: Sequence[NewsTemplate] = (),
        rules: MarketRules | None = None,
        seed: int | None = None,
        regime: Regime | str = Regime.QUIET,
        regime_switch_probability: float | None = None,
        start_season: Season | str = Season.SPRING,
        balance_lookup: BalanceLookup | None = None,
        agents: Sequence[FlowAgent] | None = None,
        event_logger: "EventLogger | None" = None,
        opening_time: int = 600,
    ) -> None:
        if not instruments:
            raise ValueError("Market needs at least one instrument")
        symbols = [i.symbol for i in instruments]
        if len(set(symbols)) != len(symbols):
            raise ValueError(f"Duplicate instrument symbols: {symbols}")

        self.rules = rules or MarketRules()
        self.rng = RandomProvider(seed)
        self.catalog = catalog
        self.start_season = Season.parse(start_season)
        self.event_logger = event_logger
        self.opening_time = opening_time

        self.instruments: dict[str, Instrument] = {i.symbol: i for i in instruments}
        self.commodities: dict[str, Commodity] = {
            i.symbol: catalog.get(i.commodity) for i in instruments
        }

        self.ledger = NewsLedger()
        self.scheduler = NewsScheduler(news_templates, self.rng)

        self.regime = Regime(regime)
        self.regime_scheduler: RegimeScheduler | None = None
        if regime_switch_probability is not None:
            self.regime_scheduler = RegimeScheduler(
                self.rng, self.regime, regime_switch_probability
            )

        r = self.rules
        self.fundamental_engine = FundamentalValueEngine(r.fundamental.min_quantity)
        self.pricer = FuturesPricer(
            risk_free_rate=r.carry.risk_free_rate,
            storage_cost=r.carry.storage_cost,
            base_convenience_yield=r.carry.base_convenience_yield,
        )
        self.bridge = IntradayPriceProcess(
            self.rng,
            opening_shock=r.bridge.opening_shock,
            shock_decay=r.bridge.shock_decay,
            epsilon=r.epsilon,
        )
        self.breaker = CircuitBreaker(
            enabled=r.circuit_breaker.enabled,
            time_threshold=r.circuit_breaker.time_threshold,
            max_move=r.circuit_breaker.max_move,
            gap_threshold=r.circuit_breaker.gap_threshold,
            epsilon=r.epsilon,
        )
        self.impact_model = MarketImpactModel(
            agents if agents is not None else build_agents(r),
            decay_rate=r.impact.decay_rate,
            max_impact=r.impact.max_impact,
            return_window=r.agents.trend_follower.moving_average_period,
            history_limit=r.impact.history_limit,
        )

        self.processes: dict[str, DailyPriceProcess] = {}
        self.books: dict[str, OrderBook] = {}
        self.states: dict[str, PriceState] = {}
        for symbol, commodity in self.commodities.items():
            self.processes[symbol] = DailyPriceProcess.for_commodity(
                commodity,
                self.rng,
                mean_reversion=r.daily.mean_reversion,
                total_days=r.daily.total_days,
                epsilon=r.epsilon,
            )
            book = OrderBook(
                symbol,
                balance_lookup=balance_lookup,
                initial_margin_ratio=r.order_admission.initial_margin_ratio,
                depth_levels=r.depth.levels,
                level_spacing=r.depth.level_spacing,
                level_decay=r.depth.level_decay,
                price_decimals=r.depth.price_decimals,
            )
            book.subscribe(self._on_fill)
            self.books[symbol] = book
            self.states[symbol] = PriceState(symbol=symbol)

        self.day = 0
        self.season = self.start_season
        self.days_opened = 0
        self._current_tick = 0
        self._fill_listeners: list[FillListener] = []
        self._flow: dict[str, list[float]] = {s: [0, 0.0] for s in self.instruments}
        self._convenience_yields: dict[str, float] = {}

    # =========================================================================
    # Regime
    # =========================================================================

    @property
    def scenario(self) -> ScenarioParameters:
        return get_scenario(self.regime)

    def set_regime(self, regime: Regime | str) -> None:
        """Override the regime (e.g. from an external regime source)."""
        self.regime = Regime(regime)
        if self.regime_scheduler is not None:
            self.regime_scheduler.current = self.regime

    # =========================================================================
    # Carry events
    # =========================================================================

    def set_carry_events(
        self,
        commodity: str,
        birthday: bool = False,
        bundle: bool = False,
        festival: bool = False,
    ) -> float:
        """
        Raise the convenience yield of a commodity for the events in play.

        The yield applies to every instrument on that commodity from the
        next price computation until cleared.

        Returns:
            The convenience yield now in force
        """
        key = commodity.lower()
        q = self.pricer.convenience_yield(birthday=birthday, bundle=bundle, festival=festival)
        self._convenience_yields[key] = q
        logger.info(
            f"Carry events for {key}: birthday={birthday} bundle={bundle} "
            f"festival={festival} -> convenience yield {q:.3f}"
        )
        return q

    def clear_carry_events(self, commodity: str | None = None) -> None:
        """Drop event boosts for one commodity, or for all when None."""
        if commodity is None:
            self._convenience_yields.clear()
        else:
            self._convenience_yields.pop(commodity.lower(), None)

    def convenience_yield(self, symbol: str) -> float:
        commodity = self.commodities[symbol]
        return self._convenience_yields.get(commodity.symbol, self.pricer.base_convenience_yield)

    def _yield_override(self, commodity: Commodity) -> float | None:
        return self._convenience_yields.get(commodity.symbol)

    # =========================================================================
    # Day open
    # =========================================================================

    def open_day(self, day: int) -> None:
        """
        Run the once-per-day sequence for `day`.

        Raises:
            ValueError: If `day` does not move forward
        """
        if day <= self.day:
            raise ValueError(f"Day must advance: last opened {self.day}, got {day}")

        season = season_for_day(day, self.start_season)
        if self.days_opened > 0 and season != self.season:
            logger.info(f"Season change {self.season.value} -> {season.value}: clearing news")
            self.ledger.clear()
            self.scheduler.reset()

        self.day = day
        self.season = season
        self._current_tick = 0

        if self.regime_scheduler is not None and self.days_opened > 0:
            self.regime = self.regime_scheduler.advance(day)
        self.days_opened += 1

        released = self.scheduler.advance(day, season, self.ledger)
        if self.event_logger:
            for event in released:
                self.event_logger.log_news(
                    day, event.news_id, event.title, event.severity.value,
                    event.trigger_time, event.demand_delta, event.supply_delta,
                )
        self.ledger.update_active(day)
        self.ledger.prune_expired(day)

        opening_time = self.opening_time
        scenario = self.scenario
        for symbol, instrument in self.instruments.items():
            commodity = self.commodities[symbol]
            state = self.states[symbol]
            anchor = self._anchor(instrument, commodity, opening_time)

            previous_close = state.target if state.target > 0 else anchor
            gap = state.gap
            open_price = self.breaker.open_price(state, previous_close)

            days = instrument.days_to_maturity(day)
            volatility_modifier = self.fundamental_engine.volatility_modifier(
                commodity, self.ledger, day
            )
            target = self.processes[symbol].next_target(
                open_price, anchor, days, volatility_modifier
            )

            state.previous_close = previous_close
            state.open_price = open_price
            state.model_price = open_price
            state.target = target
            state.fundamental = anchor
            state.futures_quote = self._futures_quote(instrument, commodity)
            state.impact = self.impact_model.impact(symbol)
            state.current_price = max(self.rules.epsilon, open_price + state.impact)
            self._flow[symbol] = [0, 0.0]

            self.books[symbol].generate_synthetic_depth(
                target, scenario, commodity.liquidity_sensitivity
            )

            logger.info(
                f"Day {day} {symbol}: open {open_price:.2f} target {target:.2f} "
                f"fundamental {anchor:.2f} (D={days}, regime {self.regime.value})"
            )
            if self.event_logger:
                applied = open_price - previous_close
                self.event_logger.log_day_open(
                    day, symbol, self.regime.value, open_price, target, anchor,
                    state.futures_quote, applied if gap else 0.0,
                )

    def _spot_fundamental(self, commodity: Commodity, time_of_day: int | None) -> float:
        return self.fundamental_engine.value(
            commodity, self.season, self.ledger, self.day, time_of_day
        )

    def _anchor(self, instrument: Instrument, commodity: Commodity, time_of_day: int | None) -> float:
        """Price the processes pull toward: spot fundamental, carried to maturity for futures."""
        spot = self._spot_fundamental(commodity, time_of_day)
        if instrument.has_carry_cost:
            return self.pricer.futures_price(
                spot, instrument.days_to_maturity(self.day), self._yield_override(commodity)
            )
        return spot

    def _futures_quote(self, instrument: Instrument, commodity: Commodity) -> float:
        spot = self._spot_fundamental(commodity, None)
        return self.pricer.futures_price(
            spot, instrument.days_to_maturity(self.day), self._yield_override(commodity)
        )

    # =========================================================================
    # Tick
    # =========================================================================

    def tick(self, clock: TimeSource) -> list[MarketExecution]:
        """
        Run one intraday step for every instrument.

        Does nothing while the market is closed or paused.

        Returns:
            Virtual-flow executions performed this tick

        Raises:
            RuntimeError: If the clock is on a day that has not been opened
        """
        if not clock.is_market_open or clock.is_paused:
            return []
        if clock.day != self.day:
            raise RuntimeError(f"tick for day {clock.day} before open_day (last opened {self.day})")

        self._current_tick = clock.tick
        scenario = self.scenario
        executions = []
        for symbol, instrument in self.instruments.items():
            commodity = self.commodities[symbol]
            state = self.states[symbol]

            if self.breaker.check(state, clock.elapsed_ratio) and self.event_logger:
                self.event_logger.log_circuit_breaker(
                    self.day, clock.tick, symbol, state.target, state.gap
                )

            sigma = commodity.intraday_volatility * state.open_price
            state.model_price = self.bridge.step(
                state.model_price,
                state.target,
                clock.ticks_remaining,
                clock.ticks_per_day,
                sigma,
            )

            state.fundamental = self._anchor(instrument, commodity, clock.time_of_day)
            self.impact_model.update(symbol, state.model_price, state.fundamental, scenario)
            state.impact = self.impact_model.impact(symbol)
            state.current_price = max(self.rules.epsilon, state.model_price + state.impact)

            execution = self._virtual_flow(symbol, commodity, state.current_price, scenario)
            if execution is not None:
                executions.append(execution)
        return executions

    def flow_quantity(self, gap: float) -> int:
        """Virtual order size for a price gap: ceil(base * |gap|^exponent), capped."""
        flow = self.rules.virtual_flow
        size = math.ceil(flow.flow_base * abs(gap) ** flow.flow_exponent)
        return int(min(flow.max_flow_per_tick, size))

    def _virtual_flow(
        self,
        symbol: str,
        commodity: Commodity,
        price: float,
        scenario: ScenarioParameters,
    ) -> MarketExecution | None:
        book = self.books[symbol]
        mid = book.mid_price()
        if mid == 0:
            book.generate_synthetic_depth(price, scenario, commodity.liquidity_sensitivity)
            return None

        gap = price - mid
        if abs(gap) < self.rules.virtual_flow.min_gap:
            return None

        quantity = self.flow_quantity(gap)
        if quantity <= 0:
            return None

        execution = book.execute_market(gap > 0, quantity)
        if execution.is_empty:
            return None

        flow = self._flow[symbol]
        flow[0] += execution.filled_quantity
        flow[1] += execution.filled_quantity * execution.vwap
        logger.debug(
            f"{symbol}: virtual {execution.side.value} {execution.filled_quantity} "
            f"@ {execution.vwap:.2f} (gap {gap:+.2f})"
        )
        return execution

    # =========================================================================
    # Day close
    # =========================================================================

    def close_day(self) -> list[DayRecord]:
        """Summaries of the day just traded, one per instrument."""
        records = []
        for symbol, state in self.states.items():
            volume, notional = self._flow[symbol]
            record = DayRecord(
                day=self.day,
                season=self.season.value,
                symbol=symbol,
                regime=self.regime.value,
                open=state.open_price,
                close=state.current_price,
                target=state.target,
                fundamental=state.fundamental,
                futures_quote=state.futures_quote,
                impact=state.impact,
                breaker_tripped=state.breaker_active,
                gap=state.gap,
                flow_volume=int(volume),
                flow_vwap=notional / volume if volume else 0.0,
            )
            records.append(record)
            if self.event_logger:
                self.event_logger.log_day_close(record)
        return records

    # =========================================================================
    # Player orders and fills
    # =========================================================================

    def submit_order(self, symbol: str, order: Order) -> MarketExecution:
        """Route a player order to the instrument's book (see OrderBook.submit)."""
        return self.books[symbol].submit(order)

    def cancel_order(self, symbol: str, order_id: str) -> bool:
        return self.books[symbol].cancel(order_id)

    def subscribe_fills(self, listener: FillListener) -> None:
        """Receive every fill involving a player order (for ledger settlement)."""
        self._fill_listeners.append(listener)

    def _on_fill(self, fill: Fill) -> None:
        commodity = self.commodities[fill.symbol]
        self.impact_model.record_fill(
            fill.symbol, fill.side, fill.quantity, commodity.liquidity_sensitivity, fill.passive
        )
        if self.event_logger:
            self.event_logger.log_fill(self.day, self._current_tick, fill)
        for listener in self._fill_listeners:
            listener(fill)

    # =========================================================================
    # Read-only queries
    # =========================================================================

    def price(self, symbol: str) -> float:
        return self.states[symbol].current_price

    def futures_quote(self, symbol: str) -> float:
        return self.states[symbol].futures_quote

    def open_price(self, symbol: str) -> float:
        return self.states[symbol].open_price

    def target(self, symbol: str) -> float:
        return self.states[symbol].target

    def fundamental(self, symbol: str) -> float:
        return self.states[symbol].fundamental

    def shadow_price(self, symbol: str) -> float:
        return self.impact_model.shadow_price(symbol)

    def implied_spot(self, symbol: str) -> float:
        """Spot price implied by the current price through cost of carry."""
        instrument = self.instruments[symbol]
        price = self.states[symbol].current_price
        if not instrument.has_carry_cost:
            return price
        return self.pricer.implied_spot(
            price,
            instrument.days_to_maturity(self.day),
            self._yield_override(self.commodities[symbol]),
        )

    def impact_history(self, symbol: str) -> tuple[float, ...]:
        return self.impact_model.impact_history(symbol)

    def snapshot(self, symbol: str, depth: int = 5) -> BookSnapshot:
        return self.books[symbol].snapshot(depth)

    def price_state(self, symbol: str) -> PriceState:
        return replace(self.states[symbol])

    # =========================================================================
    # Day-boundary save / restore
    # =========================================================================

    def export_state(self) -> dict[str, Any]:
        """
        Everything needed to resume bit-for-bit from the next open_day.

        Call between close_day and the next open_day. Synthetic depth is not
        saved; it is regenerated at the next open.
        """
        return {
            "day": self.day,
            "season": self.season.value,
            "days_opened": self.days_opened,
            "regime": self.regime.value,
            "rng": self.rng.get_state(),
            "news": self.ledger.to_list(),
            "scheduler": self.scheduler.get_state(),
            "impact": self.impact_model.get_state(),
            "convenience_yields": dict(self._convenience_yields),
            "instruments": {
                symbol: {
                    "price_state": self.states[symbol].to_dict(),
                    "daily_process": self.processes[symbol].get_state(),
                    "orders": self.books[symbol].export_orders(),
                    "next_sequence": self.books[symbol].next_sequence,
                }
                for symbol in self.instruments
            },
        }

    def import_state(self, state: dict[str, Any]) -> None:
        """
        Restore a state produced by export_state on an identically configured market.

        Raises:
            ValueError: If the saved instruments differ from this market's
        """
        saved = set(state["instruments"])
        if saved != set(self.instruments):
            raise ValueError(
                f"Saved instruments {sorted(saved)} do not match {sorted(self.instruments)}"
            )

        self.day = int(state["day"])
        self.season = Season.parse(state["season"])
        self.days_opened = int(state["days_opened"])
        self.set_regime(state["regime"])
        self.rng.set_state(state["rng"])
        self.ledger = NewsLedger.from_list(state["news"])
        self.scheduler.set_state(state["scheduler"])
        self.impact_model.set_state(state["impact"])
        self._convenience_yields = dict(state.get("convenience_yields", {}))
        for symbol, data in state["instruments"].items():
            self.states[symbol] = PriceState.from_dict(data["price_state"])
            self.processes[symbol].set_state(data["daily_process"])
            self.books[symbol].restore_orders(data["orders"], int(data["next_sequence"]))
            self._flow[symbol] = [0, 0.0]
