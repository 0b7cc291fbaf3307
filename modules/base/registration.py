from typing import List
from worldtick.engine.interfaces import ISystem

# Import Systems
from modules.base.systems.ledger_system import LedgerSystem
from modules.base.systems.operations_system import OperationsSystem
from modules.base.systems.trajectory_system import TrajectorySystem
from modules.base.systems.debt_system import DebtSystem
from modules.base.systems.relations_system import RelationsSystem

def register() -> List[ISystem]:
    """
    The Engine calls this function to discover what logic
    this module contributes to the weekly tick.

    Order matters: it is the stage order of the tick and, with it,
    the order in which the stages draw from the tick's RNG.
    """
    return [
        LedgerSystem(),
        OperationsSystem(),
        TrajectorySystem(),
        DebtSystem(),
        RelationsSystem()
    ]
