import pytest

from worldtick.engine.simulator import tick_week
from worldtick.server.state import DebtInstrument, RelationEdge
from worldtick.testing.builders import context_for, make_nation, make_world


def _run(world):
    return tick_week(world, context_for(world))


def test_instrument_counts_down_without_repaying():
    world = make_world(make_nation("A", debt=100_000))
    world.debt_instruments.append(DebtInstrument("loan", "A", principal=40_000, interest_rate_annual=0.1, remaining_weeks=3))

    result = _run(world)

    [loan] = result.next_state.debt_instruments
    assert loan.remaining_weeks == 2
    assert result.next_state.nations["A"].debt == 100_000
    assert [e for e in result.effects if e.effect_type == "nation.debt_matured"] == []


def test_maturity_repays_principal_from_treasury():
    world = make_world(make_nation("A", debt=100_000, treasury=10_000))
    world.debt_instruments.append(
        DebtInstrument("loan", "A", principal=40_000, interest_rate_annual=0.1, remaining_weeks=1, issued_turn=-20)
    )
    baseline = make_world(make_nation("A", debt=100_000, treasury=10_000))
    baseline.debt_instruments.append(
        DebtInstrument("loan", "A", principal=40_000, interest_rate_annual=0.1, remaining_weeks=2)
    )

    result = _run(world)
    not_yet = _run(baseline)

    assert result.next_state.debt_instruments == []
    assert result.next_state.nations["A"].debt == 60_000
    # Same ledger week in both worlds; only the repayment differs.
    assert result.next_state.nations["A"].treasury == not_yet.next_state.nations["A"].treasury - 40_000
    [matured] = [e for e in result.effects if e.effect_type == "nation.debt_matured"]
    assert matured.delta == {"nation_id": "A", "principal": 40_000, "instrument_id": "loan"}
    assert matured.audit["issued_turn"] == -20


def test_maturity_floors_debt_at_zero():
    world = make_world(make_nation("A", debt=5_000))
    world.debt_instruments.append(DebtInstrument("loan", "A", principal=40_000, interest_rate_annual=0.1, remaining_weeks=1))

    nation = _run(world).next_state.nations["A"]

    assert nation.debt == 0


def test_orphaned_instrument_is_dropped_silently():
    world = make_world(make_nation("A"))
    world.debt_instruments.append(DebtInstrument("loan", "gone", principal=1_000, interest_rate_annual=0.1, remaining_weeks=1))

    result = _run(world)

    assert result.next_state.debt_instruments == []
    assert [e for e in result.effects if e.effect_type == "nation.debt_matured"] == []


@pytest.mark.parametrize(
    "value, expected",
    [(100, 100), (-100, -99), (50, 50), (-50, -50), (0, 0), (99, 99), (-99, -99), (-50.6, -50)],
)
def test_relation_decay_rounds_half_up(value, expected):
    world = make_world(make_nation("A"), make_nation("B"))
    world.relations[("A", "B")] = RelationEdge("A", "B", value=value)

    edge = _run(world).next_state.relations[("A", "B")]

    assert edge.value == expected
    assert isinstance(edge.value, int)


def test_relations_drift_towards_neutral_and_never_cross_zero():
    world = make_world(make_nation("A"), make_nation("B"), make_nation("C"))
    world.relations[("A", "B")] = RelationEdge("A", "B", value=100)
    world.relations[("B", "C")] = RelationEdge("B", "C", value=-100)
    world.relations[("C", "A")] = RelationEdge("C", "A", value=37, treaties=["trade"])

    state = world
    previous = {key: edge.value for key, edge in state.relations.items()}
    for _ in range(30):
        state = _run(state).next_state
        for key, edge in state.relations.items():
            assert abs(edge.value) <= abs(previous[key])
            assert edge.value * previous[key] >= 0
            assert -100 <= edge.value <= 100
            previous[key] = edge.value

    assert state.relations[("C", "A")].treaties == ["trade"]


def test_relations_are_directed():
    world = make_world(make_nation("A"), make_nation("B"))
    world.relation("A", "B").value = 40

    assert world.relation("B", "A").value == 0
    assert world.relation("A", "B") is world.relations[("A", "B")]
    assert len(world.relations) == 2
