from sqlmodel import Field, Session, select

from h2_registry import utils
from h2_registry.credit.schemas import CreditBase, LedgerStateBase

LEDGER_STATE_ID = 1


class Credit(CreditBase, utils.ActiveRecord, table=True):
    # Ids are allocated by the ledger from LedgerState.last_token_id, never by
    # the database, so that a batch always occupies a contiguous range.
    id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})

    @classmethod
    def by_owner(cls, owner: str, session: Session) -> list["Credit"]:
        return list(
            session.exec(
                select(cls).where(cls.owner == owner).order_by(cls.id)  # type: ignore
            ).all()
        )


class LedgerState(LedgerStateBase, table=True):
    """Single-row table holding the ledger-wide counters and the circuit breaker."""

    id: int = Field(default=LEDGER_STATE_ID, primary_key=True)

    @classmethod
    def get(cls, session: Session) -> "LedgerState | None":
        return session.get(cls, LEDGER_STATE_ID)

    @classmethod
    def lock(cls, session: Session) -> "LedgerState | None":
        """Load the state row with a row lock held until the transaction ends.

        Every state-changing call takes this lock first, which orders calls
        across processes sharing one database.
        """
        return session.get(cls, LEDGER_STATE_ID, with_for_update=True)
