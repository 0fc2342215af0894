from __future__ import annotations

import dataclasses
import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Iterable

from sugar_sim.agents.decisions import build_decision_source
from sugar_sim.config.settings import AppSettings
from sugar_sim.world.simulator import WorldSimulator


@dataclass
class ExperimentSpec:
    mode: str
    seed: int


class ExperimentRunner:
    def __init__(self, settings: AppSettings) -> None:
        self.logger = logging.getLogger("sugar_sim.runner")
        self.settings = settings

    def run_many(self, specs: Iterable[ExperimentSpec]) -> list[dict]:
        rows: list[dict] = []
        specs_list = list(specs)
        self.logger.info("Starting batch execution: run_count=%d", len(specs_list))
        batch_start = time.perf_counter()
        for idx, spec in enumerate(specs_list, start=1):
            self.logger.info(
                "Run queued: index=%d/%d mode=%s seed=%d",
                idx,
                len(specs_list),
                spec.mode,
                spec.seed,
            )
            rows.append(self.run_one(spec.mode, spec.seed))
        self.logger.info(
            "Batch completed in %.2fs: runs=%d", time.perf_counter() - batch_start, len(rows)
        )
        return rows

    def run_one(self, mode: str, seed: int) -> dict:
        run_id = self._run_id(mode, seed)
        run_start = time.perf_counter()
        self.logger.info("Starting run: %s", run_id)
        settings = dataclasses.replace(
            self.settings,
            simulation=dataclasses.replace(
                self.settings.simulation, decision_mode=mode, seed=seed
            ),
        )
        sim = WorldSimulator(settings, decision_source=build_decision_source(settings))
        sim.run()
        summary = {
            "run_id": run_id,
            "mode": mode,
            "seed": seed,
            "ticks": sim.tick,
            "alive": len(sim.agents),
            "agent_sugar": round(sim.total_agent_sugar(), 3),
            "landscape_sugar": round(sim.landscape.total_sugar(), 3),
            **sim.tribe_counts(),
            **sim.stats.as_dict(),
        }
        self.logger.info("Run summary: %s", summary)
        self.logger.info(
            "Completed run: %s in %.2fs", run_id, time.perf_counter() - run_start
        )
        return summary

    def _run_id(self, mode: str, seed: int) -> str:
        ts = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        return f"{ts}_{mode}_seed{seed}"


def parse_seed_list(raw: str) -> list[int]:
    out: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        out.append(int(part))
    return out


def build_specs(modes: list[str], seeds: list[int]) -> list[ExperimentSpec]:
    specs: list[ExperimentSpec] = []
    for mode in modes:
        for seed in seeds:
            specs.append(ExperimentSpec(mode=mode, seed=seed))
    return specs
