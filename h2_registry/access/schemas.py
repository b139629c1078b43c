import datetime

from pydantic import BaseModel
from sqlmodel import Field, SQLModel

from h2_registry.core.models.base import Role


class RoleGrantBase(SQLModel):
    account: str = Field(
        index=True,
        description="Checksummed address of the account holding the role.",
    )
    role: Role = Field(description="The capability held by the account.")
    jurisdiction_id: int = Field(
        default=0,
        description="""The country, state or city id the role is scoped to, fixed at
                       appointment time. Zero for roles without a jurisdiction.""",
    )
    parent_jurisdiction_id: int = Field(
        default=0,
        description="""The jurisdiction id held by the granting account at the time of
                       the grant. Recorded so that nesting can be audited; it is not
                       checked against jurisdiction_id.""",
    )
    granted_by: str = Field(
        description="Address of the account that issued the grant, or the account itself for self-registration.",
    )


class RoleGrantRead(RoleGrantBase):
    id: int
    created_at: datetime.datetime


class AppointmentRequest(BaseModel):
    account: str
    jurisdiction_id: int = Field(default=0, ge=0)


class AccountRoles(BaseModel):
    account: str
    roles: list[RoleGrantRead]
    primary_role: Role | None = None
