"""sugar_sim tick engine: 2-phase execution model.

This package provides the per-tick scheduler:

  PHASE A: PLAN: the decision source collects every agent's decision up front.
  PHASE B: ACT:  rules apply those decisions in seeded per-category orders.
"""
from sugar_sim.engine.tick_engine import TickEngine, TickReport

__all__ = ["TickEngine", "TickReport"]
