from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict, Optional, Type, Union

# Per-kind operation parameters. Each class maps to exactly one 'type' tag.
@dataclass
class OperationKind:
    """
    Base class for the per-kind parameters of a queued Operation.

    Architecture Note:
        Upstream, operations carry a free-form 'meta' dictionary. Inside the engine
        each kind is a closed dataclass holding only the fields that kind reads.
        The resolver matches on the class, so a kind without a handler is a
        type error rather than a silent no-op.

    'kind' is the literal tag used on the wire and in effect payloads.
    """
    kind: ClassVar[str] = ""

    def to_meta(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    @classmethod
    def from_meta(cls, meta: Dict[str, Any]) -> "OperationKind":
        # Keys the kind does not declare are dropped; missing keys fall back to defaults.
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in meta.items() if k in known and v is not None})


# --- Intrigue ---

@dataclass
class SpyOperation(OperationKind):
    """Covert intelligence gathering against 'target_nation_id'."""
    kind: ClassVar[str] = "spy_operation"
    objective: Optional[str] = None
    risk_tolerance: Optional[str] = None


@dataclass
class Counterintelligence(OperationKind):
    """Internal security sweep. Its budget_total raises the success chance."""
    kind: ClassVar[str] = "counterintelligence"
    focus: Optional[str] = None


@dataclass
class FundFaction(OperationKind):
    """
    Bankrolls a faction inside the target nation.
    secrecy: 'low' | 'medium' | 'high' (exposure chance 0.25 / 0.15 / 0.08).
    """
    kind: ClassVar[str] = "fund_faction"
    faction: Optional[str] = None
    secrecy: str = "medium"
    weekly_amount: Optional[float] = None


# --- Diplomacy ---

@dataclass
class DiplomacyCampaign(OperationKind):
    kind: ClassVar[str] = "diplomacy_campaign"
    message_tone: Optional[str] = None


@dataclass
class Ultimatum(OperationKind):
    """
    A demand backed by force. On failure the actor pays 'backdown_cost_legitimacy'.
    """
    kind: ClassVar[str] = "ultimatum"
    demand: Optional[str] = None
    backdown_cost_legitimacy: float = 2


# --- Economy ---

@dataclass
class FundProject(OperationKind):
    """
    Public works in a province.
    project_type: infrastructure | fortifications | bureaucracy | schools | shipyards
    """
    kind: ClassVar[str] = "fund_project"
    project_type: str = "infrastructure"
    province_id: Optional[str] = None


@dataclass
class SectorSubsidy(OperationKind):
    kind: ClassVar[str] = "sector_subsidy"
    sector: str = "sector"
    weekly_amount: Optional[float] = None


@dataclass
class SpendingCut(OperationKind):
    """
    Trims a budget line. While active it contributes -weekly_amount to the
    nation's weekly spending (a saving, not a cost).
    category: military | administration | court | infrastructure | subsidies
    """
    kind: ClassVar[str] = "spending_cut"
    category: str = "administration"
    weekly_amount: float = 0


# --- Military ---

@dataclass
class Fortify(OperationKind):
    kind: ClassVar[str] = "fortify"
    province_id: Optional[str] = None
    level_increase: float = 1


@dataclass
class ReorganizeArmy(OperationKind):
    """focus: training | officer_corps | logistics (anything else gets the generic deltas)."""
    kind: ClassVar[str] = "reorganize_army"
    focus: str = "training"


# --- Interior / Governance ---

@dataclass
class Committee(OperationKind):
    kind: ClassVar[str] = "committee"
    topic: Optional[str] = None
    chair_character_id: Optional[str] = None


@dataclass
class Crackdown(OperationKind):
    kind: ClassVar[str] = "crackdown"
    province_id: Optional[str] = None
    intensity: float = 1


OperationParams = Union[
    SpyOperation,
    Counterintelligence,
    FundFaction,
    DiplomacyCampaign,
    Ultimatum,
    FundProject,
    SectorSubsidy,
    SpendingCut,
    Fortify,
    ReorganizeArmy,
    Committee,
    Crackdown,
]

OPERATION_KINDS: Dict[str, Type[OperationKind]] = {
    cls.kind: cls
    for cls in (
        SpyOperation,
        Counterintelligence,
        FundFaction,
        DiplomacyCampaign,
        Ultimatum,
        FundProject,
        SectorSubsidy,
        SpendingCut,
        Fortify,
        ReorganizeArmy,
        Committee,
        Crackdown,
    )
}


def params_from_meta(kind: str, meta: Optional[Dict[str, Any]] = None) -> OperationParams:
    """
    Builds the typed parameter variant for a literal operation tag.
    Raises ValueError for tags the engine has no handler for.
    """
    cls = OPERATION_KINDS.get(kind)
    if cls is None:
        raise ValueError(f"Unknown operation type '{kind}'. Known types: {sorted(OPERATION_KINDS)}")
    return cls.from_meta(meta or {})
