from typing import List

from worldtick.engine.interfaces import ISystem, TickContext
from worldtick.server.state import DebtInstrument, WorldState
from worldtick.shared.events import NATION_DEBT_MATURED


class DebtSystem(ISystem):
    """
    Amortizes fixed-term debt instruments.

    Interest is booked by the ledger while an instrument is live. On maturity the
    principal is repaid from treasury in one go; treasury may go negative, which
    is how repayment stress shows up. 'debt' is floored at zero.
    """

    @property
    def id(self) -> str:
        return "base.debt"

    @property
    def dependencies(self) -> List[str]:
        return ["base.ledger"]

    def update(self, state: WorldState, tick: TickContext) -> None:
        outstanding: List[DebtInstrument] = []
        for instrument in state.debt_instruments:
            instrument.remaining_weeks -= 1
            if instrument.remaining_weeks > 0:
                outstanding.append(instrument)
                continue

            nation = state.nations.get(instrument.nation_id)
            if nation is None:
                # Orphaned loan: nothing left to repay it from.
                continue

            nation.debt = max(0, nation.debt - instrument.principal)
            nation.treasury = nation.treasury - instrument.principal
            tick.emit(
                NATION_DEBT_MATURED,
                {
                    "nation_id": instrument.nation_id,
                    "principal": instrument.principal,
                    "instrument_id": instrument.instrument_id,
                },
                {"issued_turn": instrument.issued_turn, "interest_rate_annual": instrument.interest_rate_annual},
            )

        state.debt_instruments = outstanding
