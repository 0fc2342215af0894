from __future__ import annotations

import logging
import os

from sugar_sim.config.settings import AppSettings
from sugar_sim.experiments.runner import ExperimentRunner, build_specs, parse_seed_list


def main() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logger = logging.getLogger("sugar_sim.entrypoint")

    settings = AppSettings.from_env()

    modes_raw = os.getenv("EXPERIMENT_MODES", settings.simulation.decision_mode)
    seeds_raw = os.getenv("EXPERIMENT_SEEDS", str(settings.simulation.seed))
    modes = [m.strip() for m in modes_raw.split(",") if m.strip()]
    seeds = parse_seed_list(seeds_raw)
    logger.info(
        "Loaded experiment plan: modes=%s seeds=%s total_runs=%d",
        modes,
        seeds,
        len(modes) * len(seeds),
    )

    runner = ExperimentRunner(settings)
    runner.run_many(build_specs(modes, seeds))


if __name__ == "__main__":
    main()
