from collections import defaultdict
from typing import Dict, List, Optional

from worldtick.engine.interfaces import ISystem, TickContext
from worldtick.engine.mathutil import clamp, round_half_up
from worldtick.engine.rng import normal_approx
from worldtick.server.state import (
    TRAJECTORY_METRICS,
    NationState,
    NationTrajectory,
    TrajectoryModifier,
    WorldState,
)
from worldtick.shared.events import NATION_TRAJECTORY_DRIFT, NATION_WEEKLY_FINANCE
from modules.base.systems.operations_system import operation_weekly_spend

WEEKS_PER_YEAR = 52
WEEKS_PER_DECADE = 520

# Fallback debt service when a nation holds no instruments: 5% a year on 'debt'.
IMPLICIT_DEBT_RATE = 0.05
GDP_SHOCK_STDEV = 0.002


def decade_rate_to_weekly(rate: float) -> float:
    """Equivalent weekly compounding rate of a decade-scale growth rate."""
    safe_rate = clamp(rate, -0.95, 5)
    return (1 + safe_rate) ** (1 / WEEKS_PER_DECADE) - 1


def sum_trajectory_modifiers(modifiers: List[TrajectoryModifier], nation_id: str) -> NationTrajectory:
    """Active modifiers for a nation are summed per metric, not averaged."""
    totals = NationTrajectory()
    for mod in modifiers:
        if mod.nation_id != nation_id:
            continue
        setattr(totals, mod.metric, totals.get(mod.metric) + mod.delta)
    return totals


class LedgerSystem(ISystem):
    """
    Weekly public finance and macro drift for every nation.

    Responsibility:
    - Books revenue against fixed costs, debt service and operation spend into 'treasury'.
    - Drifts GDP, population, literacy, compliance and stability.
    - Applies long-run trajectories to non-player nations.
    - Emits 'nation.weekly_finance' (and 'nation.trajectory_drift' where applicable).

    Nations are processed in sorted id order. Each nation consumes exactly one
    normal sample from the tick RNG, so the order is part of the replay contract.
    """

    @property
    def id(self) -> str:
        return "base.ledger"

    def update(self, state: WorldState, tick: TickContext) -> None:
        # Read-only pre-computation over the pre-tick queues.
        op_weekly_by_nation: Dict[str, float] = defaultdict(float)
        for op in state.operations:
            op_weekly_by_nation[op.nation_id] += operation_weekly_spend(op)

        debt_service_by_nation: Dict[str, float] = {}
        for instrument in state.debt_instruments:
            if instrument.remaining_weeks <= 0:
                continue
            debt_service_by_nation[instrument.nation_id] = (
                debt_service_by_nation.get(instrument.nation_id, 0.0) + instrument.weekly_interest
            )

        for nation_id in state.sorted_nation_ids():
            nation = state.nations[nation_id]
            self._settle_nation(
                state,
                tick,
                nation_id,
                nation,
                op_weekly=op_weekly_by_nation.get(nation_id, 0.0),
                debt_service=debt_service_by_nation.get(nation_id),
            )

    def _settle_nation(
        self,
        state: WorldState,
        tick: TickContext,
        nation_id: str,
        n: NationState,
        op_weekly: float,
        debt_service: Optional[float],
    ):
        # 1. Ledger
        revenue = round_half_up((n.gdp / WEEKS_PER_YEAR) * n.tax_rate * n.tax_capacity * n.compliance)
        admin_cost = round_half_up(200 + 5 * n.admin_capacity)
        mil_cost = round_half_up(150 + 0.02 * n.force_size * 1000)
        if debt_service is None:
            debt_service = (n.debt * IMPLICIT_DEBT_RATE) / WEEKS_PER_YEAR
        debt_service = round_half_up(debt_service)
        op_weekly = round_half_up(op_weekly)

        spending = admin_cost + mil_cost + debt_service + op_weekly
        balance = revenue - spending

        # 2. Growth
        development = clamp(n.literacy, 0, 1)
        base_growth_annual = 0.004 + 0.012 * development
        unrest_penalty = 0.0002 * (100 - n.stability)
        shock = normal_approx(tick.rng, 0, GDP_SHOCK_STDEV)
        weekly_growth = (base_growth_annual - unrest_penalty) / WEEKS_PER_YEAR + shock
        gdp_next = max(1, n.gdp * (1 + weekly_growth))

        pop_growth_annual = 0.006 + 0.006 * (1 - development)
        stability_factor = clamp(n.stability / 100, 0.4, 1)
        weekly_pop_growth = (pop_growth_annual * stability_factor) / WEEKS_PER_YEAR
        population_next = max(1, n.population * (1 + weekly_pop_growth))

        literacy_annual = 0.001 + 0.003 * development
        literacy_next = clamp(n.literacy + literacy_annual / WEEKS_PER_YEAR, 0, 1)

        # 3. Politics of taxation
        compliance_next = clamp(n.compliance - 0.02 * max(0, n.tax_rate - 0.35), 0, 1)
        stability_next = clamp(n.stability + 0.01 * min(0, balance) - 0.5 * max(0, n.tax_rate - 0.5), 0, 100)

        # 4. Trajectory overrides (never for the player: player growth is purely mechanical)
        if nation_id != tick.player_nation_id:
            base = state.nation_trajectories.get(nation_id) or NationTrajectory()
            mods = sum_trajectory_modifiers(state.trajectory_modifiers, nation_id)
            if base.has_any() or mods.has_any():
                combined = {metric: base.get(metric) + mods.get(metric) for metric in TRAJECTORY_METRICS}

                gdp_next = max(1, gdp_next * (1 + decade_rate_to_weekly(combined["gdp_growth_decade"])))
                population_next = max(
                    1, population_next * (1 + decade_rate_to_weekly(combined["population_growth_decade"]))
                )
                stability_next = clamp(stability_next + combined["stability_drift_decade"] / WEEKS_PER_DECADE, 0, 100)
                literacy_next = clamp(literacy_next + combined["literacy_growth_decade"] / WEEKS_PER_DECADE, 0, 1)

                tick.emit(NATION_TRAJECTORY_DRIFT, {"nation_id": nation_id, **combined})

        n.gdp = gdp_next
        n.population = population_next
        n.literacy = literacy_next
        n.treasury = n.treasury + balance
        n.compliance = compliance_next
        n.stability = stability_next

        tick.emit(
            NATION_WEEKLY_FINANCE,
            {"nation_id": nation_id, "revenue": revenue, "spending": spending, "balance": balance},
            {
                "admin_cost": admin_cost,
                "mil_cost": mil_cost,
                "debt_service": debt_service,
                "op_weekly": op_weekly,
                "base_growth_annual": base_growth_annual,
                "unrest_penalty": unrest_penalty,
                "shock": shock,
                "weekly_growth": weekly_growth,
                "weekly_pop_growth": weekly_pop_growth,
                "literacy_growth": literacy_annual / WEEKS_PER_YEAR,
            },
        )
