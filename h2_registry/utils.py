import datetime
from typing import Any, Type, TypeVar

from eth_utils import is_address, to_checksum_address
from sqlmodel import Field, Session, SQLModel

from h2_registry.core.errors import InvalidAddress, InvalidCertificationHash
from h2_registry.core.models.base import utc_datetime_now

T = TypeVar("T", bound="ActiveRecord")

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class ActiveRecord(SQLModel):
    created_at: datetime.datetime = Field(
        default_factory=utc_datetime_now, nullable=False
    )

    @classmethod
    def by_id(cls: Type[T], id_: Any, session: Session) -> T | None:
        return session.get(cls, id_)

    @classmethod
    def exists(cls, id_: Any, session: Session) -> bool:
        return session.get(cls, id_) is not None


def normalise_address(address: str) -> str:
    """Return the EIP-55 checksummed form of a hex account address.

    Raises:
        InvalidAddress: If the value is not a 20-byte hex address.
    """
    if not isinstance(address, str) or not is_address(address.lower()):
        raise InvalidAddress(f"Not a valid account address: {address!r}")
    return to_checksum_address(address)


def is_zero_address(address: str) -> bool:
    return address.lower() == ZERO_ADDRESS


def normalise_certification_hash(certification_hash: str | bytes) -> str:
    """Return a certification hash as a lower-case, 0x-prefixed bytes32 hex string.

    Accepts raw 32-byte values and hex strings with or without the 0x prefix.
    """
    if isinstance(certification_hash, (bytes, bytearray)):
        if len(certification_hash) != 32:
            raise InvalidCertificationHash(
                "Certification hash must be exactly 32 bytes",
                length=len(certification_hash),
            )
        return "0x" + bytes(certification_hash).hex()

    if not isinstance(certification_hash, str):
        raise InvalidCertificationHash(
            f"Unsupported certification hash type: {type(certification_hash).__name__}"
        )

    digest = certification_hash.lower()
    if digest.startswith("0x"):
        digest = digest[2:]

    try:
        raw = bytes.fromhex(digest)
    except ValueError:
        raise InvalidCertificationHash(
            f"Certification hash is not hex encoded: {certification_hash!r}"
        )

    if len(raw) != 32:
        raise InvalidCertificationHash(
            "Certification hash must be exactly 32 bytes", length=len(raw)
        )

    return "0x" + digest
