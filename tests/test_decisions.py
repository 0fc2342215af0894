import pytest

from sugar_sim.agents.context import build_agent_context
from sugar_sim.agents.decisions import (
    Decision,
    DecisionCategory,
    OracleDecisionSource,
    RuleBasedDecisionSource,
    build_decision_source,
    parse_decision,
    parse_decision_batch,
)
from sugar_sim.utils.errors import (
    ConfigurationError,
    OracleSchemaError,
    OracleValidationError,
    format_oracle_error,
)

VALID = {
    "move": True,
    "move_coords": [1, 2],
    "combat": False,
    "combat_target": None,
    "credit": True,
    "credit_partner": 7,
    "reproduce": False,
    "reproduce_with": None,
}


class FakeAdapter:
    def __init__(self, payload):
        self.payload = payload
        self.calls = []

    def request_decisions(self, contexts):
        self.calls.append(contexts)
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


def test_valid_decision_is_parsed():
    decision = parse_decision(dict(VALID), agent_id=3)

    assert decision == Decision(
        move=True,
        combat=False,
        credit=True,
        reproduce=False,
        move_coords=(1, 2),
        credit_partner=7,
    )


def test_wrapped_decision_is_unwrapped():
    decision = parse_decision({"3": dict(VALID)}, agent_id=3)

    assert decision.credit_partner == 7


@pytest.mark.parametrize("field", ["move", "combat", "credit", "reproduce"])
def test_missing_flag_is_a_schema_error(field):
    raw = dict(VALID)
    del raw[field]

    with pytest.raises(OracleSchemaError) as info:
        parse_decision(raw, agent_id=3)

    assert info.value.agent_id == 3
    assert field in str(info.value)


def test_non_boolean_flag_is_a_validation_error():
    raw = dict(VALID, move="yes")

    with pytest.raises(OracleValidationError) as info:
        parse_decision(raw, agent_id=3)

    assert (info.value.field, info.value.value, info.value.agent_id) == ("move", "yes", 3)


@pytest.mark.parametrize(
    "field,value",
    [
        ("move_coords", [1]),
        ("move_coords", "1,2"),
        ("move_coords", [1.5, 2]),
        ("move_coords", [-1, 2]),
        ("credit_partner", "seven"),
        ("credit_partner", True),
        ("combat_target", 2.5),
    ],
)
def test_malformed_payload_is_a_validation_error(field, value):
    raw = dict(VALID, **{field: value})

    with pytest.raises(OracleValidationError) as info:
        parse_decision(raw, agent_id=3)

    assert info.value.field == field


@pytest.mark.parametrize(
    "flag,payload",
    [("combat", "combat_target"), ("credit", "credit_partner"), ("reproduce", "reproduce_with")],
)
def test_affirmative_flag_without_target_is_rejected(flag, payload):
    raw = dict(VALID, **{flag: True, payload: None})

    with pytest.raises(OracleValidationError) as info:
        parse_decision(raw, agent_id=3)

    assert info.value.field == payload


def test_move_without_coords_is_accepted():
    decision = parse_decision(dict(VALID, move_coords=None), agent_id=3)

    assert decision.move and decision.move_coords is None


def test_mismatched_agent_id_is_rejected():
    with pytest.raises(OracleValidationError) as info:
        parse_decision(dict(VALID, agent_id=4), agent_id=3)

    assert info.value.field == "agent_id"


def test_non_object_decision_is_a_schema_error():
    with pytest.raises(OracleSchemaError):
        parse_decision(["move", True], agent_id=1)


def test_batch_requires_envelope_and_matching_count():
    with pytest.raises(OracleSchemaError):
        parse_decision_batch([VALID], [1])
    with pytest.raises(OracleSchemaError):
        parse_decision_batch({"decisions": [VALID]}, [1, 2])

    decisions = parse_decision_batch({"decisions": [VALID, VALID]}, [1, 2])
    assert len(decisions) == 2


def test_error_formatting_names_agent_field_and_value():
    exc = OracleValidationError("bad coords", "move_coords", [9], agent_id=12)

    text = format_oracle_error(exc)

    assert "Agent ID: 12" in text
    assert "Field: move_coords" in text
    assert "[9]" in text
    assert "agent_id=12" in str(exc)


def test_rule_based_source_always_acts(make_world, place):
    world = make_world()
    agent = place(world, (0, 0), sugar=1)
    source = RuleBasedDecisionSource()

    for category in DecisionCategory:
        assert source.should_act(agent, category)
    assert source.decision_for(agent, DecisionCategory.MOVE).move_coords is None


def test_oracle_source_gates_per_category(make_world, place):
    world = make_world()
    a = place(world, (0, 0), sugar=1)
    b = place(world, (4, 4), sugar=1)
    adapter = FakeAdapter({"decisions": [dict(VALID), dict(VALID, credit=False)]})
    source = OracleDecisionSource(adapter)

    source.prepare(world)

    assert [ctx["agent_id"] for ctx in adapter.calls[0]] == [a.id, b.id]
    assert source.should_act(a, DecisionCategory.MOVE)
    assert source.should_act(a, DecisionCategory.CREDIT)
    assert not source.should_act(b, DecisionCategory.CREDIT)
    assert not source.should_act(a, DecisionCategory.COMBAT)


def test_agent_without_decision_does_not_act(make_world, place):
    world = make_world()
    a = place(world, (0, 0), sugar=1)
    source = OracleDecisionSource(FakeAdapter({"decisions": [dict(VALID)]}))
    source.prepare(world)
    newcomer = place(world, (4, 4), sugar=1)

    assert source.decision_for(newcomer, DecisionCategory.MOVE) is None
    assert not source.should_act(newcomer, DecisionCategory.MOVE)
    assert source.should_act(a, DecisionCategory.MOVE)


def test_failed_prepare_leaves_no_stale_decisions(make_world, place):
    world = make_world()
    a = place(world, (0, 0), sugar=1)
    adapter = FakeAdapter({"decisions": [dict(VALID)]})
    source = OracleDecisionSource(adapter)
    source.prepare(world)

    adapter.payload = {"decisions": []}
    with pytest.raises(OracleSchemaError):
        source.prepare(world)

    assert source.decision_for(a, DecisionCategory.MOVE) is None


def test_context_lists_visible_cells_and_neighbours(make_world, place):
    world = make_world(enable_credit=True)
    world.landscape.set_sugar((2, 4), 3)
    agent = place(world, (2, 2), sugar=8, vision=2, age=20)
    other = place(world, (3, 2), sugar=4, tribe="blue", sex="female")

    ctx = build_agent_context(agent, world)

    assert ctx["agent_id"] == agent.id
    assert ctx["fertile_age"] is True
    assert {"position": [2, 4], "sugar": 3.0, "distance": 2, "occupant": None} in ctx["visible_cells"]
    assert ctx["neighbours"] == [
        {
            "agent_id": other.id,
            "position": [3, 2],
            "distance": 1,
            "sugar": 4.0,
            "age": 0,
            "sex": "female",
            "tribe": "blue",
        }
    ]
    assert ctx["loans"]["owed_total"] == 0


def test_context_reports_cultural_distance_and_welfare(make_world, place):
    world = make_world(enable_culture=True, landscape_overrides={"enable_pollution": True})
    world.landscape.set_sugar((2, 3), 6)
    world.landscape.add_pollution((2, 3), 2)
    agent = place(world, (2, 2), sugar=8, culture=[True, True, False, False])
    other = place(world, (3, 2), sugar=4, culture=[True, False, True, False])

    ctx = build_agent_context(agent, world)

    (neighbour,) = ctx["neighbours"]
    assert neighbour["agent_id"] == other.id
    assert neighbour["cultural_distance"] == 2
    cell = next(c for c in ctx["visible_cells"] if c["position"] == [2, 3])
    assert cell["pollution"] == 2.0
    assert cell["welfare"] == 2.0


def test_unknown_decision_mode_is_a_configuration_error(make_settings):
    import dataclasses

    settings = make_settings()
    settings = dataclasses.replace(
        settings, simulation=dataclasses.replace(settings.simulation, decision_mode="psychic")
    )

    with pytest.raises(ConfigurationError):
        build_decision_source(settings)
