from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from worldtick.shared.operations import OperationParams

NationId = str
ProvinceId = str
RelationKey = Tuple[NationId, NationId]

TRAJECTORY_METRICS = (
    "gdp_growth_decade",
    "population_growth_decade",
    "stability_drift_decade",
    "literacy_growth_decade",
)


@dataclass
class NationState:
    """
    One sovereign actor in the simulation.

    Bounded fields (documented intervals):
        tax_rate [0, 0.9], tax_capacity / compliance / literacy / corruption /
        readiness / supply [0, 1], stability / legitimacy / admin_capacity /
        war_exhaustion / tech_level_mil [0, 100], debt >= 0.

    The engine clamps every bounded field after it mutates it; it never asserts.
    'treasury' is signed and deliberately unbounded.
    """
    nation_id: NationId

    # Economy
    gdp: float = 0.0
    tax_rate: float = 0.0
    tax_capacity: float = 0.0
    compliance: float = 0.0
    treasury: float = 0
    debt: float = 0

    # Politics
    stability: float = 50.0
    legitimacy: float = 50.0

    # Demographics
    population: float = 0.0
    literacy: float = 0.0

    # Administration
    admin_capacity: float = 0.0
    corruption: float = 0.0

    # Military
    manpower_pool: float = 0.0
    force_size: float = 0.0
    readiness: float = 0.0
    supply: float = 0.0
    war_exhaustion: float = 0.0
    tech_level_mil: float = 0.0

    laws: List[str] = field(default_factory=list)
    institutions: Dict[str, float] = field(default_factory=dict)
    culture_mix: Dict[str, float] = field(default_factory=dict)
    religion_mix: Dict[str, float] = field(default_factory=dict)


@dataclass
class ProvinceState:
    """
    A map region. Belongs to exactly one nation via 'nation_id'.
    productivity / infrastructure live in [0, 10], unrest in [0, 100],
    garrison in [0, 1_000_000].
    """
    province_id: ProvinceId
    nation_id: NationId
    population: float = 0.0
    productivity: float = 0.0
    infrastructure: float = 0.0
    unrest: float = 0.0
    compliance_local: float = 0.0
    garrison: float = 0.0
    region_key: Optional[str] = None
    resources: List[str] = field(default_factory=list)
    culture_mix: Dict[str, float] = field(default_factory=dict)
    religion_mix: Dict[str, float] = field(default_factory=dict)


@dataclass
class RelationEdge:
    """Directed diplomatic score from one nation towards another, value in [-100, 100]."""
    from_nation_id: NationId
    to_nation_id: NationId
    value: int = 0
    treaties: List[str] = field(default_factory=list)
    at_war: bool = False

    @property
    def key(self) -> RelationKey:
        return (self.from_nation_id, self.to_nation_id)


@dataclass
class Operation:
    """
    An in-flight multi-week action.

    The operation kind is not stored as a free string: it is carried by the
    type of 'params' (see shared/operations.py), so every kind has exactly the
    fields it uses. 'type' is exposed as a read-only tag for effect payloads
    and serialization.
    """
    operation_id: str
    nation_id: NationId
    remaining_weeks: int
    params: OperationParams
    target_nation_id: Optional[NationId] = None
    budget_weekly: Optional[float] = None
    budget_total: Optional[float] = None
    remaining_budget: Optional[float] = None

    @property
    def type(self) -> str:
        return self.params.kind


@dataclass
class NationTrajectory:
    """Decade-scale growth biases for a non-player nation. None means 'not set'."""
    gdp_growth_decade: Optional[float] = None
    population_growth_decade: Optional[float] = None
    stability_drift_decade: Optional[float] = None
    literacy_growth_decade: Optional[float] = None

    def get(self, metric: str) -> float:
        return getattr(self, metric) or 0.0

    def has_any(self) -> bool:
        return any(self.get(metric) != 0 for metric in TRAJECTORY_METRICS)


@dataclass
class TrajectoryModifier:
    """A timed additive delta to one metric of a nation's trajectory."""
    modifier_id: str
    nation_id: NationId
    metric: str
    delta: float
    remaining_weeks: int
    source: Optional[str] = None
    note: Optional[str] = None


@dataclass
class AppointmentState:
    office_id: str
    character_id: str
    start_turn: int = 0


@dataclass
class DebtInstrument:
    """
    A fixed-term loan. Accrues principal * rate / 52 per week in debt service
    until 'remaining_weeks' runs out, then the principal is repaid in one go.
    """
    instrument_id: str
    nation_id: NationId
    principal: float
    interest_rate_annual: float
    remaining_weeks: int
    issued_turn: int = 0

    @property
    def weekly_interest(self) -> float:
        return (self.principal * self.interest_rate_annual) / 52


@dataclass
class WorldState:
    """
    The single snapshot the engine advances one week at a time.

    Ownership:
        The caller owns the snapshot it passes to the engine. The engine works on
        a deep copy and hands back a new WorldState; the input is never touched.

    Relations are held in a dict keyed by the ordered (from, to) pair, so there
    is at most one edge per direction and lookups never scan. Insertion order
    is kept, which keeps serialized output stable.
    """
    turn_index: int = 0
    turn_seed: int = 0
    player_nation_id: NationId = ""
    nations: Dict[NationId, NationState] = field(default_factory=dict)
    provinces: Dict[ProvinceId, ProvinceState] = field(default_factory=dict)
    relations: Dict[RelationKey, RelationEdge] = field(default_factory=dict)
    operations: List[Operation] = field(default_factory=list)
    nation_trajectories: Dict[NationId, NationTrajectory] = field(default_factory=dict)
    trajectory_modifiers: List[TrajectoryModifier] = field(default_factory=list)
    appointments: List[AppointmentState] = field(default_factory=list)
    debt_instruments: List[DebtInstrument] = field(default_factory=list)

    def relation(self, from_nation_id: NationId, to_nation_id: NationId) -> RelationEdge:
        """
        Returns the edge for the ordered pair, creating a neutral one on first reference.
        Calling it twice for the same pair always yields the same object.
        """
        key = (from_nation_id, to_nation_id)
        edge = self.relations.get(key)
        if edge is None:
            edge = RelationEdge(from_nation_id=from_nation_id, to_nation_id=to_nation_id)
            self.relations[key] = edge
        return edge

    def sorted_nation_ids(self) -> List[NationId]:
        return sorted(self.nations.keys())
