import datetime

from pydantic import BaseModel
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from h2_registry.utils import ZERO_ADDRESS


class CertificationRecordBase(SQLModel):
    """Immutable evidence attached to a single credit at mint time.

    Every credit minted from one certification receives its own record; the
    records of a batch share the certification hash and certifier.
    """

    producer: str = Field(description="The producer the credit was minted to.")
    certifier: str = Field(
        description="The city admin whose signature certified the production claim."
    )
    certification_hash: str = Field(
        index=True,
        description="""0x-prefixed bytes32 digest of the off-chain production claim.
                       A hash can back only one mint.""",
    )
    certification_metadata: dict = Field(
        default_factory=dict,
        sa_column=Column(JSON),
        description="Free-form data supplied with the mint, e.g. the production request reference.",
    )


class CertificationRecordRead(CertificationRecordBase):
    token_id: int
    created_at: datetime.datetime


class VerificationResult(BaseModel):
    valid: bool
    signer: str = ZERO_ADDRESS


class ProductionClaim(BaseModel):
    """The off-chain production claim a certification hash commits to."""

    producer: str
    amount: int = Field(gt=0)
    production_date: datetime.date
    facility_location: str = Field(min_length=1)
    production_method: str = Field(min_length=1)
    energy_source: str = Field(min_length=1)
    notes: str | None = None
