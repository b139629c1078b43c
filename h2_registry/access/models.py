from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Session, select

from h2_registry.access.schemas import RoleGrantBase
from h2_registry.core.models.base import Role
from h2_registry import utils

# A RoleGrant records that an account holds one capability. Grants are never
# updated or deleted, so the (account, role) pair is unique for the lifetime
# of the ledger and the jurisdiction stored with it is fixed at appointment.


class RoleGrant(RoleGrantBase, utils.ActiveRecord, table=True):
    __table_args__ = (UniqueConstraint("account", "role", name="uq_role_grant"),)

    id: int | None = Field(default=None, primary_key=True)

    @classmethod
    def by_account_and_role(
        cls, account: str, role: Role, session: Session
    ) -> "RoleGrant | None":
        return session.exec(
            select(cls).where(cls.account == account, cls.role == role)
        ).first()

    @classmethod
    def by_account(cls, account: str, session: Session) -> list["RoleGrant"]:
        return list(
            session.exec(
                select(cls).where(cls.account == account).order_by(cls.id)  # type: ignore
            ).all()
        )
