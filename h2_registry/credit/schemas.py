import datetime

from pydantic import BaseModel
from sqlmodel import Field, SQLModel


class CreditBase(SQLModel):
    """A Credit represents exactly one kilogram of certified green hydrogen.

    Credits are only created by minting against a certification and are never
    removed. Retirement freezes the owner permanently; the credit stays
    queryable for audit.
    """

    owner: str = Field(index=True, description="Checksummed address of the current owner.")
    retired: bool = Field(default=False)
    retired_by: str | None = Field(
        default=None, description="The owner that retired the credit. Set once."
    )
    retired_at: datetime.datetime | None = Field(
        default=None, description="UTC time of retirement. Set once."
    )


class CreditRead(CreditBase):
    id: int
    created_at: datetime.datetime


class LedgerStateBase(SQLModel):
    last_token_id: int = Field(
        default=0, description="High-water mark of allocated credit ids."
    )
    paused: bool = Field(default=False)
    main_admin: str | None = Field(default=None)


class MintRequest(BaseModel):
    to: str
    amount: int
    certification_hash: str
    signature: str
    metadata: dict | None = None


class MintResult(BaseModel):
    to: str
    amount: int
    first_id: int
    last_id: int
    certification_hash: str
    certifier: str

    @property
    def token_ids(self) -> list[int]:
        return list(range(self.first_id, self.last_id + 1))


class TransferRequest(BaseModel):
    from_account: str
    to_account: str


class OwnerTokens(BaseModel):
    owner: str
    token_ids: list[int]


class LedgerSummary(BaseModel):
    total_supply: int
    retired_supply: int
    holders: int
    consumed_certifications: int
    paused: bool
