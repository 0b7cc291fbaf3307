import dataclasses
import math
from collections import Counter
from typing import Dict, List, assert_never

from worldtick.engine.interfaces import ISystem, TickContext
from worldtick.engine.mathutil import clamp, round_half_up
from worldtick.server.state import Operation, TrajectoryModifier, WorldState
from worldtick.shared import events
from worldtick.shared.operations import (
    Committee,
    Counterintelligence,
    Crackdown,
    DiplomacyCampaign,
    Fortify,
    FundFaction,
    FundProject,
    ReorganizeArmy,
    SectorSubsidy,
    SpendingCut,
    SpyOperation,
    Ultimatum,
)

MAX_GARRISON = 1_000_000

# Exposure chance of a funded faction, keyed by secrecy. Anything unknown counts as 'medium'.
FACTION_EXPOSURE = {"low": 0.25, "medium": 0.15, "high": 0.08}
FACTION_MODIFIER_WEEKS = 12
FACTION_STABILITY_DRIFT = -0.6


def operation_weekly_spend(op: Operation) -> float:
    """
    What an operation costs its owner this week.

    - Spending cuts save money: they contribute -weekly_amount.
    - Budgeted operations amortize what is left evenly over the remaining weeks.
    - Otherwise a fixed 'budget_weekly', or nothing.
    """
    if isinstance(op.params, SpendingCut):
        return -max(0, op.params.weekly_amount)
    if op.remaining_budget is not None:
        if op.remaining_weeks <= 0:
            return 0
        return max(0, math.ceil(op.remaining_budget / max(1, op.remaining_weeks)))
    if op.budget_weekly is not None:
        return op.budget_weekly
    return 0


class OperationsSystem(ISystem):
    """
    Counts down every queued operation and resolves the ones that expire.

    Lifecycle:
        remaining_weeks is decremented exactly once per tick. While it stays above
        zero the operation is kept (with its remaining_budget reduced by this week's
        spend). When it reaches zero the operation leaves the queue and exactly one
        resolution handler runs for its kind.

    Queue order is processing order, and therefore RNG draw order.
    Handlers never fail: a missing nation or province only skips that mutation.
    """

    @property
    def id(self) -> str:
        return "base.operations"

    @property
    def dependencies(self) -> List[str]:
        # The ledger must read this week's spend before budgets are drawn down.
        return ["base.ledger"]

    def update(self, state: WorldState, tick: TickContext) -> None:
        # Snapshot before any countdown: resolutions see who was active at the start of the week.
        active_counterintel = Counter(
            op.nation_id
            for op in state.operations
            if isinstance(op.params, Counterintelligence) and op.remaining_weeks > 0
        )

        remaining: List[Operation] = []
        for op in state.operations:
            weekly_spend = operation_weekly_spend(op)
            if op.remaining_budget is not None and weekly_spend > 0:
                op.remaining_budget = max(0, op.remaining_budget - weekly_spend)

            op.remaining_weeks -= 1
            if op.remaining_weeks > 0:
                remaining.append(op)
                continue

            self._resolve(state, tick, op, active_counterintel)

        state.operations = remaining

    def _resolve(self, state: WorldState, tick: TickContext, op: Operation, active_counterintel: Dict[str, int]):
        """
        Routes an expired operation to its handler.
        Matching is exhaustive over the parameter variants; there is no fallthrough.
        """
        match op.params:
            case SpyOperation():
                self._resolve_spy(state, tick, op, op.params, active_counterintel)
            case Counterintelligence():
                self._resolve_counterintelligence(state, tick, op, op.params)
            case DiplomacyCampaign():
                self._resolve_diplomacy_campaign(state, tick, op)
            case FundProject():
                self._resolve_fund_project(state, tick, op, op.params)
            case Fortify():
                self._resolve_fortify(state, tick, op, op.params)
            case ReorganizeArmy():
                self._resolve_reorganize_army(state, tick, op, op.params)
            case SectorSubsidy():
                self._resolve_sector_subsidy(state, tick, op, op.params)
            case Committee():
                self._resolve_committee(state, tick, op, op.params)
            case FundFaction():
                self._resolve_fund_faction(state, tick, op, op.params)
            case Ultimatum():
                self._resolve_ultimatum(state, tick, op, op.params)
            case SpendingCut():
                self._resolve_spending_cut(state, tick, op, op.params)
            case Crackdown():
                self._resolve_crackdown(state, tick, op, op.params)
            case _:
                assert_never(op.params)

    # =========================================================================
    # SECTION: INTRIGUE
    # =========================================================================

    def _resolve_spy(self, state, tick, op: Operation, params: SpyOperation, active_counterintel: Dict[str, int]):
        target = op.target_nation_id
        counterintel = active_counterintel.get(target, 0) if target else 0
        chance = clamp(0.65 - 0.1 * min(counterintel, 2), 0.2, 0.8)
        roll = tick.rng()
        success = roll < chance

        tick.emit(
            events.SPY_RESOLVED,
            {
                "operation_id": op.operation_id,
                "success": success,
                "target_nation_id": target,
                "objective": params.objective,
            },
            {"risk_tolerance": params.risk_tolerance, "roll": roll, "chance": chance, "counterintel": counterintel},
        )

        # A caught spy sours the victim's view of the sender.
        if not success and target:
            rel = state.relation(target, op.nation_id)
            rel.value = clamp(rel.value - 3, -100, 100)

    def _resolve_counterintelligence(self, state, tick, op: Operation, params: Counterintelligence):
        nation = state.nations.get(op.nation_id)
        if nation is None:
            return

        budget = op.budget_total if op.budget_total is not None else 0
        chance = clamp(0.55 + min(0.2, budget / 5000), 0.4, 0.85)
        roll = tick.rng()
        success = roll < chance
        corruption_delta = -0.02 if success else 0.01
        compliance_delta = 0.02 if success else 0
        stability_delta = 1 if success else -0.5

        nation.corruption = clamp(nation.corruption + corruption_delta, 0, 1)
        nation.compliance = clamp(nation.compliance + compliance_delta, 0, 1)
        nation.stability = clamp(nation.stability + stability_delta, 0, 100)

        tick.emit(
            events.COUNTERINTELLIGENCE_RESOLVED,
            {
                "operation_id": op.operation_id,
                "success": success,
                "corruption_delta": corruption_delta,
                "compliance_delta": compliance_delta,
                "stability_delta": stability_delta,
            },
            {"roll": roll, "chance": chance, "focus": params.focus},
        )

    def _resolve_fund_faction(self, state, tick, op: Operation, params: FundFaction):
        target = op.target_nation_id
        exposure_chance = FACTION_EXPOSURE.get(params.secrecy, FACTION_EXPOSURE["medium"])
        roll = tick.rng()
        exposed = roll < exposure_chance

        target_nation = state.nations.get(target) if target else None
        if target_nation is not None:
            target_nation.stability = clamp(target_nation.stability - 2, 0, 100)
            target_nation.legitimacy = clamp(target_nation.legitimacy - 1, 0, 100)

            mod = TrajectoryModifier(
                modifier_id=f"traj_{op.operation_id}",
                nation_id=target,
                metric="stability_drift_decade",
                delta=FACTION_STABILITY_DRIFT,
                remaining_weeks=FACTION_MODIFIER_WEEKS,
                source="faction",
            )
            tick.staged_modifiers.append(mod)
            tick.emit(events.TRAJECTORY_MODIFIER_ADDED, {"modifier": dataclasses.asdict(mod)})

        if exposed and target:
            rel = state.relation(op.nation_id, target)
            rel.value = clamp(rel.value - 4, -100, 100)

        tick.emit(
            events.FACTION_RESOLVED,
            {"operation_id": op.operation_id, "target_nation_id": target, "exposed": exposed},
            {"roll": roll, "chance": exposure_chance, "secrecy": params.secrecy},
        )

    # =========================================================================
    # SECTION: DIPLOMACY
    # =========================================================================

    def _resolve_diplomacy_campaign(self, state, tick, op: Operation):
        target = op.target_nation_id
        if not target:
            return

        bump = 2
        rel = state.relation(op.nation_id, target)
        rel.value = clamp(rel.value + bump, -100, 100)
        tick.emit(
            events.CAMPAIGN_RESOLVED,
            {"operation_id": op.operation_id, "target_nation_id": target, "relation_delta": bump},
        )

    def _resolve_ultimatum(self, state, tick, op: Operation, params: Ultimatum):
        target = op.target_nation_id
        actor = state.nations.get(op.nation_id)
        target_nation = state.nations.get(target) if target else None
        if actor is None or target_nation is None:
            return

        rel = state.relation(op.nation_id, target)
        force_ratio = actor.force_size / max(1, target_nation.force_size)
        chance = clamp(0.45 + 0.15 * clamp(force_ratio - 1, -0.5, 0.5) + 0.1 * (rel.value / 100), 0.2, 0.8)
        roll = tick.rng()
        success = roll < chance

        if success:
            actor.legitimacy = clamp(actor.legitimacy + 1, 0, 100)
            target_nation.stability = clamp(target_nation.stability - 1, 0, 100)
            rel.value = clamp(rel.value - 3, -100, 100)
        else:
            actor.legitimacy = clamp(actor.legitimacy - params.backdown_cost_legitimacy, 0, 100)
            actor.stability = clamp(actor.stability - 1, 0, 100)
            rel.value = clamp(rel.value - 6, -100, 100)

        tick.emit(
            events.ULTIMATUM_RESOLVED,
            {"operation_id": op.operation_id, "target_nation_id": target, "success": success},
            {"roll": roll, "chance": chance, "force_ratio": force_ratio, "relation_value": rel.value},
        )

    # =========================================================================
    # SECTION: ECONOMY
    # =========================================================================

    def _resolve_fund_project(self, state, tick, op: Operation, params: FundProject):
        project_type = params.project_type
        province = state.provinces.get(params.province_id) if params.province_id else None
        nation = state.nations.get(op.nation_id)

        if province is not None:
            if project_type == "fortifications":
                infrastructure_delta = 0.8
            elif project_type == "shipyards":
                infrastructure_delta = 0.6
            else:
                infrastructure_delta = 1.0
            productivity_delta = 0.4 if project_type == "infrastructure" else 0.2
            province.infrastructure = clamp(province.infrastructure + infrastructure_delta, 0, 10)
            province.productivity = clamp(province.productivity + productivity_delta, 0, 10)

        if nation is not None:
            if project_type == "bureaucracy":
                nation.admin_capacity = clamp(nation.admin_capacity + 2, 0, 100)
                nation.corruption = clamp(nation.corruption - 0.02, 0, 1)
            elif project_type == "schools":
                nation.literacy = clamp(nation.literacy + 0.02, 0, 1)
                nation.stability = clamp(nation.stability + 1, 0, 100)
            elif project_type == "shipyards":
                nation.readiness = clamp(nation.readiness + 0.02, 0, 1)

        tick.emit(
            events.PROJECT_COMPLETED,
            {"operation_id": op.operation_id, "project_type": project_type, "province_id": params.province_id},
        )

    def _resolve_sector_subsidy(self, state, tick, op: Operation, params: SectorSubsidy):
        nation = state.nations.get(op.nation_id)
        if nation is None:
            return

        budget_total = op.budget_total if op.budget_total is not None else 0
        boost = min(nation.gdp * 0.008, budget_total * 2)
        nation.gdp = max(1, nation.gdp + boost)
        nation.stability = clamp(nation.stability + 1, 0, 100)
        tick.emit(
            events.SUBSIDY_COMPLETED,
            {"operation_id": op.operation_id, "sector": params.sector, "gdp_boost": round_half_up(boost)},
            {"budget_total": budget_total},
        )

    def _resolve_spending_cut(self, state, tick, op: Operation, params: SpendingCut):
        nation = state.nations.get(op.nation_id)
        category = params.category
        if nation is not None:
            match category:
                case "military":
                    nation.readiness = clamp(nation.readiness - 0.05, 0, 1)
                    nation.force_size = max(0, nation.force_size - 500)
                case "administration":
                    nation.admin_capacity = clamp(nation.admin_capacity - 2, 0, 100)
                case "court":
                    nation.legitimacy = clamp(nation.legitimacy - 2, 0, 100)
                case "infrastructure":
                    nation.stability = clamp(nation.stability - 1, 0, 100)
                case "subsidies":
                    nation.stability = clamp(nation.stability - 1, 0, 100)
                    nation.compliance = clamp(nation.compliance - 0.02, 0, 1)

        tick.emit(events.SPENDING_CUT_RESOLVED, {"operation_id": op.operation_id, "category": category})

    # =========================================================================
    # SECTION: MILITARY
    # =========================================================================

    def _resolve_fortify(self, state, tick, op: Operation, params: Fortify):
        level = params.level_increase
        province = state.provinces.get(params.province_id) if params.province_id else None
        if province is not None:
            province.infrastructure = clamp(province.infrastructure + level * 0.6, 0, 10)
            province.garrison = clamp(province.garrison + level * 500, 0, MAX_GARRISON)

        tick.emit(
            events.FORTIFICATIONS_COMPLETED,
            {"operation_id": op.operation_id, "province_id": params.province_id, "level_increase": level},
        )

    def _resolve_reorganize_army(self, state, tick, op: Operation, params: ReorganizeArmy):
        focus = params.focus
        nation = state.nations.get(op.nation_id)
        if nation is not None:
            if focus == "training":
                readiness_delta = 0.05
            elif focus == "officer_corps":
                readiness_delta = 0.03
            else:
                readiness_delta = 0.02
            supply_delta = 0.06 if focus == "logistics" else 0.02
            nation.readiness = clamp(nation.readiness + readiness_delta, 0, 1)
            nation.supply = clamp(nation.supply + supply_delta, 0, 1)

        tick.emit(events.REORGANIZATION_COMPLETED, {"operation_id": op.operation_id, "focus": focus})

    # =========================================================================
    # SECTION: INTERIOR & GOVERNANCE
    # =========================================================================

    def _resolve_committee(self, state, tick, op: Operation, params: Committee):
        nation = state.nations.get(op.nation_id)
        if nation is not None:
            nation.admin_capacity = clamp(nation.admin_capacity + 1, 0, 100)
            nation.compliance = clamp(nation.compliance + 0.01, 0, 1)
            nation.stability = clamp(nation.stability + 1, 0, 100)

        tick.emit(events.COMMITTEE_REPORTED, {"operation_id": op.operation_id, "topic": params.topic})

    def _resolve_crackdown(self, state, tick, op: Operation, params: Crackdown):
        intensity = params.intensity
        province = state.provinces.get(params.province_id) if params.province_id else None
        if province is not None:
            province.unrest = clamp(province.unrest + intensity * 2, 0, 100)

        nation = state.nations.get(op.nation_id)
        if nation is not None:
            nation.stability = clamp(nation.stability - 1, 0, 100)

        tick.emit(
            events.CRACKDOWN_RESOLVED,
            {"operation_id": op.operation_id, "province_id": params.province_id},
            {"intensity": intensity},
        )
