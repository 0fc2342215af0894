"""Pytest configuration and fixtures for sugar_sim tests."""

import dataclasses
import random

import pytest

from sugar_sim.agents.decisions import Decision, DecisionSource
from sugar_sim.config.settings import AppSettings, LandscapeSettings, RuleSettings
from sugar_sim.world.landscape import SugarLandscape
from sugar_sim.world.simulator import WorldSimulator

CULTURE_LEN = 11


class ScriptedDecisionSource(DecisionSource):
    """Answers from a fixed ``{agent_id: Decision}`` map, like a prepared oracle batch."""

    name = "scripted"

    def __init__(self, decisions=None):
        self.decisions = dict(decisions or {})

    def decision_for(self, agent, category):
        return self.decisions.get(agent.id)


@pytest.fixture
def make_settings():
    """Build settings with rule overrides; growth is off so tests control every cell."""

    def _make(width=5, height=5, growth_rate=0.0, landscape_overrides=None, **rule_overrides):
        base = AppSettings.defaults()
        return dataclasses.replace(
            base,
            landscape=LandscapeSettings(
                width=width, height=height, growth_rate=growth_rate, **(landscape_overrides or {})
            ),
            rules=dataclasses.replace(RuleSettings(), **rule_overrides),
        )

    return _make


@pytest.fixture
def make_world(make_settings):
    """An empty, unpopulated world with zero sugar everywhere."""

    def _make(
        width=5,
        height=5,
        seed=42,
        decision_source=None,
        growth_rate=0.0,
        landscape_overrides=None,
        **rule_overrides,
    ):
        settings = make_settings(
            width=width,
            height=height,
            growth_rate=growth_rate,
            landscape_overrides=landscape_overrides,
            **rule_overrides,
        )
        return WorldSimulator(
            settings,
            decision_source=decision_source,
            seed=seed,
            landscape=SugarLandscape.empty(width, height),
            populate=False,
        )

    return _make


@pytest.fixture
def place():
    """Add an agent with an explicit culture tag (all-true = red, all-false = blue)."""

    def _place(world, pos, sugar, tribe="red", **kwargs):
        kwargs.setdefault("culture", [tribe == "red"] * CULTURE_LEN)
        kwargs.setdefault("immunity", [False] * 8)
        return world.create_agent(pos=pos, sugar=sugar, **kwargs)

    return _place


@pytest.fixture
def scripted():
    return ScriptedDecisionSource


@pytest.fixture
def decision():
    def _decision(**overrides):
        values = {"move": False, "combat": False, "credit": False, "reproduce": False}
        values.update(overrides)
        return Decision(**values)

    return _decision


@pytest.fixture
def seeded_rng():
    """Provide a deterministic RNG for tests."""
    return random.Random(42)
