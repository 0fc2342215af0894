from sugar_sim.rules.lifecycle import death
from sugar_sim.rules.reproduction import can_mate, is_fertile, reproduction


def _fertile_pair(world, place, sugar=20, **kwargs):
    a = place(world, (2, 2), sugar=sugar, sex="male", age=20, **kwargs)
    b = place(world, (3, 2), sugar=sugar, sex="female", age=20, **kwargs)
    return a, b


def test_parents_each_give_half_and_child_gets_the_sum(make_world, place):
    world = make_world(enable_reproduction=True)
    a, b = _fertile_pair(world, place)

    reproduction(a, world, world.decision_source)

    assert world.stats.births == 1
    assert a.sugar == 10
    assert b.sugar == 10
    (child_id,) = a.children
    assert b.children == [child_id]
    child = world.get(child_id)
    assert child.sugar == 20
    assert child.initial_sugar == 20
    assert child.age == 0
    assert a.has_reproduced and b.has_reproduced
    assert child.culture == a.culture

    def _dist(p, q):
        return abs(p[0] - q[0]) + abs(p[1] - q[1])

    assert min(_dist(child.pos, a.pos), _dist(child.pos, b.pos)) == 1


def test_total_sugar_is_unchanged_by_birth(make_world, place):
    world = make_world(enable_reproduction=True)
    a, _ = _fertile_pair(world, place, sugar=17)
    before = world.total_agent_sugar()

    reproduction(a, world, world.decision_source)

    assert world.total_agent_sugar() == before


def test_poor_agents_do_not_mate(make_world, place):
    world = make_world(enable_reproduction=True)
    a, b = _fertile_pair(world, place, sugar=15, initial_sugar=20)

    assert not is_fertile(a, world.rules)
    reproduction(a, world, world.decision_source)

    assert world.stats.births == 0
    assert a.sugar == 15 and b.sugar == 15


def test_same_sex_or_out_of_age_range_never_mates(make_world, place):
    world = make_world(enable_reproduction=True)
    a = place(world, (2, 2), sugar=20, sex="male", age=20)
    b = place(world, (3, 2), sugar=20, sex="male", age=20)
    c = place(world, (1, 2), sugar=20, sex="female", age=60)

    assert not can_mate(a, b, world.rules)
    assert not can_mate(a, c, world.rules)
    reproduction(a, world, world.decision_source)

    assert world.stats.births == 0


def test_no_free_cell_means_no_child(make_world, place):
    world = make_world(width=2, height=1, enable_reproduction=True)
    a = place(world, (0, 0), sugar=20, sex="male", age=20)
    place(world, (1, 0), sugar=20, sex="female", age=20)

    reproduction(a, world, world.decision_source)

    assert world.stats.births == 0
    assert len(world.agents) == 2


def test_focal_agent_keeps_mating_while_eligible(make_world, place):
    world = make_world(enable_reproduction=True)
    a = place(world, (2, 2), sugar=40, initial_sugar=5, sex="male", age=20)
    place(world, (3, 2), sugar=20, initial_sugar=10, sex="female", age=20)
    place(world, (1, 2), sugar=20, initial_sugar=10, sex="female", age=20)

    reproduction(a, world, world.decision_source)

    assert world.stats.births == 2
    assert len(a.children) == 2
    assert a.sugar == 10


def test_pair_mates_once_per_tick_whichever_is_focal(make_world, place):
    world = make_world(enable_reproduction=True)
    a = place(world, (2, 2), sugar=100, initial_sugar=10, sex="male", age=20)
    b = place(world, (3, 2), sugar=100, initial_sugar=10, sex="female", age=20)

    reproduction(a, world, world.decision_source)
    reproduction(b, world, world.decision_source)

    assert world.stats.births == 1
    assert len(a.children) == 1
    assert a.sugar == 50 and b.sugar == 50
    assert a.last_partner_ids == {b.id}
    assert b.last_partner_ids == {a.id}


def test_partner_memory_resets_on_the_next_tick(make_world, place):
    world = make_world(enable_reproduction=True, enable_replacement=False)
    a = place(world, (2, 2), sugar=100, initial_sugar=10, sex="male", age=20,
              metabolism=0, max_age=1000)
    b = place(world, (2, 3), sugar=100, initial_sugar=10, sex="female", age=20,
              metabolism=0, max_age=1000)

    world.step()
    assert world.stats.births == 1

    world.step()
    assert world.stats.births == 2
    assert len(a.children) == 2
    assert b.children == a.children


def test_oracle_partner_restricts_mating(make_world, place, scripted, decision):
    world = make_world(enable_reproduction=True)
    a = place(world, (2, 2), sugar=40, initial_sugar=5, sex="male", age=20)
    place(world, (3, 2), sugar=20, initial_sugar=10, sex="female", age=20)
    chosen = place(world, (1, 2), sugar=20, initial_sugar=10, sex="female", age=20)
    source = scripted({a.id: decision(reproduce=True, reproduce_with=chosen.id)})

    reproduction(a, world, source)

    assert world.stats.births == 1
    assert chosen.children == a.children


def test_oracle_refusal_blocks_mating(make_world, place, scripted, decision):
    world = make_world(enable_reproduction=True)
    a, _ = _fertile_pair(world, place)
    source = scripted({a.id: decision(reproduce=False)})

    reproduction(a, world, source)

    assert world.stats.births == 0


def test_inheritance_splits_estate_between_living_children(make_world, place):
    world = make_world(enable_reproduction=True)
    parent = place(world, (0, 0), sugar=20, age=70)
    kids = [place(world, (4, 4), sugar=1), place(world, (4, 0), sugar=1)]
    parent.children.extend(k.id for k in kids)

    death(parent, world, "age")

    assert [k.sugar for k in kids] == [11, 11]
    assert [k.total_inheritance_received for k in kids] == [10, 10]
    assert world.stats.total_inheritances == 2
    assert world.stats.total_inheritance_value == 20
    assert world.stats.generational_wealth_transferred == 20
    assert world.stats.deaths_age == 1
    assert world.stats.total_lifespan_age == 70
    assert not world.has(parent.id)


def test_inheritance_floors_shares_and_skips_dead_children(make_world, place):
    world = make_world(enable_reproduction=True)
    parent = place(world, (0, 0), sugar=21)
    kids = [place(world, (4, 4), sugar=1), place(world, (4, 0), sugar=1)]
    parent.children.extend(k.id for k in kids)
    parent.children.append(999)

    death(parent, world, "starvation")

    assert [k.sugar for k in kids] == [11, 11]
    assert world.stats.total_inheritance_value == 20


def test_estate_without_heirs_is_discarded(make_world, place):
    world = make_world(enable_reproduction=True)
    parent = place(world, (0, 0), sugar=30)

    death(parent, world, "age")

    assert world.total_agent_sugar() == 0
    assert world.stats.total_inheritances == 0
