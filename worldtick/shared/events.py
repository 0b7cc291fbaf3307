from dataclasses import dataclass, field
from typing import Any, Dict

@dataclass
class ActionEffect:
    """
    Structured, append-only record of one mutation made during a tick.

    Architecture Note:
        Effects are distinct from Operations.
        - Operations: queued intents FROM the action layer TO the engine.
        - Effects: audit records FROM the engine TO downstream consumers.

        The engine never reads an effect back. 'effect_type' is a stable key,
        'delta' is the canonical payload, and 'audit' carries the intermediate
        terms (rolls, chances, costs) needed to replay the arithmetic. Consumers
        must not rely on the shape of 'audit'.
    """
    effect_type: str
    delta: Dict[str, Any] = field(default_factory=dict)
    audit: Dict[str, Any] = field(default_factory=dict)


# --- Nation ledger ---
NATION_WEEKLY_FINANCE = "nation.weekly_finance"
NATION_TRAJECTORY_DRIFT = "nation.trajectory_drift"
NATION_DEBT_MATURED = "nation.debt_matured"

# --- Operation resolutions ---
SPY_RESOLVED = "intrigue.spy_resolved"
COUNTERINTELLIGENCE_RESOLVED = "intrigue.counterintelligence_resolved"
FACTION_RESOLVED = "intrigue.faction_resolved"
CAMPAIGN_RESOLVED = "diplomacy.campaign_resolved"
ULTIMATUM_RESOLVED = "diplomacy.ultimatum_resolved"
PROJECT_COMPLETED = "economy.project_completed"
SUBSIDY_COMPLETED = "economy.subsidy_completed"
SPENDING_CUT_RESOLVED = "economy.spending_cut_resolved"
FORTIFICATIONS_COMPLETED = "military.fortifications_completed"
REORGANIZATION_COMPLETED = "military.reorganization_completed"
COMMITTEE_REPORTED = "governance.committee_reported"
CRACKDOWN_RESOLVED = "interior.crackdown_resolved"

# --- Trajectories ---
TRAJECTORY_MODIFIER_ADDED = "trajectory.modifier_added"
