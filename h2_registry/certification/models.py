from sqlmodel import Field

from h2_registry import utils
from h2_registry.certification.schemas import CertificationRecordBase


class CertificationRecord(CertificationRecordBase, utils.ActiveRecord, table=True):
    token_id: int = Field(primary_key=True, foreign_key="credit.id")


# Membership in this table is monotonic: rows are only ever inserted, and the
# primary key on the hash is what rejects a second mint of the same claim.


class ConsumedCertificationHash(utils.ActiveRecord, table=True):
    certification_hash: str = Field(primary_key=True)
    producer: str
    certifier: str
    amount: int
