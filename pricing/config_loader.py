"""
Loading of commodity and news reference data from YAML.

Both files are read once at season start with OmegaConf. A missing file or
an empty section is not fatal: the simulation logs a warning and runs with
flat default commodities and no news.
"""

import logging
from pathlib import Path
from typing import Any, Mapping

from omegaconf import DictConfig, OmegaConf

from pricing.commodity import CommodityCatalog, Season, commodity_from_mapping
from pricing.news import FollowUp, NewsTemplate, Severity

logger = logging.getLogger(__name__)


def _load(path: str | Path) -> dict[str, Any] | None:
    path = Path(path)
    if not path.exists():
        logger.warning(f"Config file not found: {path}")
        return None
    data = OmegaConf.to_container(OmegaConf.load(path), resolve=True)
    if not isinstance(data, dict):
        logger.warning(f"Config file {path} is not a mapping, ignoring")
        return None
    return data


def _as_dict(cfg: DictConfig | Mapping | None) -> dict[str, Any]:
    if cfg is None:
        return {}
    if isinstance(cfg, DictConfig):
        return OmegaConf.to_container(cfg, resolve=True)
    return dict(cfg)


# =============================================================================
# Commodities
# =============================================================================


def build_catalog(data: DictConfig | Mapping | None) -> CommodityCatalog:
    """Build a catalog from a mapping with a `commodities` section."""
    data = _as_dict(data)
    catalog = CommodityCatalog(fallback_price=float(data.get("default_base_price", 100.0)))
    entries = data.get("commodities") or {}
    if not entries:
        logger.warning("No commodities configured; every symbol will use the flat default")
    for symbol, fields in entries.items():
        catalog.add(commodity_from_mapping(symbol, fields or {}))
    return catalog


def load_commodities(path: str | Path) -> CommodityCatalog:
    data = _load(path)
    catalog = build_catalog(data)
    logger.info(f"Loaded {len(catalog)} commodities from {path}")
    return catalog


# =============================================================================
# News
# =============================================================================


def template_from_mapping(
    entry: Mapping[str, Any],
    categories: Mapping[str, list[str]] | None = None,
) -> NewsTemplate:
    """
    Build a NewsTemplate from one YAML entry.

    Category scopes are expanded to item lists via `categories` so that
    events also match items whose commodity record uses another category.
    """
    impact = entry.get("impact") or {}
    scope = entry.get("scope") or {}
    timing = entry.get("timing") or {}
    conditions = entry.get("conditions") or {}
    follow = entry.get("follow_up")

    items = [str(i).lower() for i in scope.get("affected_items") or []]
    affected_categories = [str(c) for c in scope.get("affected_categories") or []]
    for category in affected_categories:
        for item in (categories or {}).get(category, []):
            if item.lower() not in items:
                items.append(item.lower())

    season = timing.get("trigger_season")
    if season is None or str(season).lower() == "any":
        trigger_season = None
    else:
        trigger_season = Season.parse(season)

    day_range = timing.get("trigger_day_range") or [1, 28]
    impact_range = conditions.get("random_impact_range") or [0.0, 0.0]

    follow_up = None
    if follow and follow.get("news_id"):
        follow_up = FollowUp(
            news_id=str(follow["news_id"]),
            delay_days=int(follow.get("delay_days", 1)),
            probability=float(follow.get("probability", 1.0)),
        )

    return NewsTemplate(
        news_id=str(entry["id"]),
        title=str(entry.get("title", entry["id"])),
        severity=Severity(str(entry.get("severity", "medium")).lower()),
        news_type=str(entry.get("news_type", "market")),
        demand_delta=float(impact.get("demand_delta", 0.0)),
        supply_delta=float(impact.get("supply_delta", 0.0)),
        volatility_delta=float(impact.get("volatility_delta", 0.0)),
        is_permanent=bool(impact.get("is_permanent", False)),
        affected_items=tuple(items),
        affected_categories=tuple(affected_categories),
        is_global=bool(scope.get("is_global", False)),
        trigger_season=trigger_season,
        trigger_day_range=(int(day_range[0]), int(day_range[1])),
        trigger_time=None if timing.get("trigger_time") is None else int(timing["trigger_time"]),
        duration_days=int(timing.get("duration_days", 7)),
        probability=float(conditions.get("probability", 1.0)),
        prerequisites=tuple(str(p) for p in conditions.get("prerequisites") or []),
        random_impact_range=(float(impact_range[0]), float(impact_range[1])),
        follow_up=follow_up,
    )


def build_news(data: DictConfig | Mapping | None) -> list[NewsTemplate]:
    data = _as_dict(data)
    entries = data.get("news") or []
    if not entries:
        logger.warning("No news configured; prices will follow fundamentals only")
        return []
    categories = data.get("categories") or {}
    templates = [template_from_mapping(entry, categories) for entry in entries]

    known = {t.news_id for t in templates}
    for template in templates:
        if template.follow_up is not None and template.follow_up.news_id not in known:
            logger.warning(
                f"News '{template.news_id}' has unknown follow-up '{template.follow_up.news_id}'"
            )
    return templates


def load_news(path: str | Path) -> list[NewsTemplate]:
    templates = build_news(_load(path))
    logger.info(f"Loaded {len(templates)} news templates from {path}")
    return templates
