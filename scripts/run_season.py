"""
Run Season Script.

Usage:
    python scripts/run_season.py
    python scripts/run_season.py experiment.seed=7 market.regime=panic experiment.num_days=56
"""

import logging
import os

import hydra
from hydra.utils import to_absolute_path
from omegaconf import DictConfig

from exchange.metrics import summarize
from exchange.season import SeasonRunner


@hydra.main(version_base=None, config_path="../conf", config_name="config")
def main(cfg: DictConfig):
    # Configure logging
    log_level = getattr(logging, cfg.experiment.log_level.upper())
    logging.getLogger().setLevel(log_level)
    logging.getLogger("exchange").setLevel(log_level)
    logging.getLogger("pricing").setLevel(log_level)
    logging.getLogger("agents").setLevel(log_level)

    if not logging.getLogger().handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(asctime)s][%(name)s][%(levelname)s] - %(message)s'))
        logging.getLogger().addHandler(handler)

    # Hydra may change the working directory; data paths are relative to the project
    cfg.data.commodities = to_absolute_path(cfg.data.commodities)
    cfg.data.news = to_absolute_path(cfg.data.news)
    cfg.experiment.log_dir = to_absolute_path(cfg.experiment.log_dir)

    logging.info(f"Running season: {cfg.experiment.name}")

    runner = SeasonRunner(cfg)
    try:
        results = runner.run()
    finally:
        runner.close()

    output_dir = to_absolute_path(cfg.experiment.output_dir)
    os.makedirs(output_dir, exist_ok=True)
    results.to_csv(os.path.join(output_dir, "results.csv"), index=False)
    if runner.ticks is not None:
        runner.ticks.to_csv(os.path.join(output_dir, "ticks.csv"), index=False)

    logging.info(f"Results saved to {output_dir}")
    print(summarize(results))


if __name__ == "__main__":
    main()
