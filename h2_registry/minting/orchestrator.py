from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from h2_registry.access.registry import RoleRegistry
from h2_registry.certification.models import ConsumedCertificationHash
from h2_registry.certification.verifier import CertificationVerifier
from h2_registry.core.errors import (
    HashReused,
    InvalidCertifierSignature,
    UnknownRecipient,
)
from h2_registry.core.models.base import Role
from h2_registry.core.observations import CreditsIssued, stage_observation
from h2_registry.credit.ledger import CreditLedger
from h2_registry.credit.schemas import MintResult
from h2_registry.logging_config import logger
from h2_registry.utils import normalise_address, normalise_certification_hash


class MintingOrchestrator:
    def __init__(
        self,
        role_registry: RoleRegistry,
        verifier: CertificationVerifier,
        ledger: CreditLedger,
    ):
        self.role_registry = role_registry
        self.verifier = verifier
        self.ledger = ledger

    def certification_hash_used(self, session: Session, certification_hash: str) -> bool:
        digest = normalise_certification_hash(certification_hash)
        return ConsumedCertificationHash.exists(digest, session)

    def _consume_certification_hash(
        self,
        session: Session,
        certification_hash: str,
        producer: str,
        certifier: str,
        amount: int,
    ) -> None:
        try:
            session.add(
                ConsumedCertificationHash(
                    certification_hash=certification_hash,
                    producer=producer,
                    certifier=certifier,
                    amount=amount,
                )
            )
            session.flush()
        except IntegrityError:
            err_msg = f"Certification hash {certification_hash} was consumed concurrently"
            logger.error(err_msg)
            raise HashReused(err_msg, certification_hash=certification_hash)

    def mint_with_certification(
        self,
        session: Session,
        to: str,
        amount: int,
        certification_hash: str | bytes,
        signature: str | bytes,
        metadata: dict | None = None,
    ) -> MintResult:
        """Mint a batch of credits backed by one signed certification using the following process.
        1. Check the recipient is a producer, the amount is in bounds and the hash is unused
        2. Verify the certifier signature over (producer, amount, hash)
        3. Consume the certification hash
        4. Mint the credits and stage a CreditsIssued observation

        All four steps run inside the caller's transaction, so the hash is never
        consumed without the credits existing, and vice versa.

        Args:
            session (Session): The session of the running ledger call
            to (str): The producer receiving the credits
            amount (int): Number of credits (kg of hydrogen) to mint
            certification_hash (str | bytes): bytes32 digest of the production claim
            signature (str | bytes): The city admin's signature over the certification
            metadata (dict | None): Free-form data stored on each certification record

        Returns:
            MintResult: The minted id range, certification hash and certifier
        """
        to = normalise_address(to)
        if not self.role_registry.has_role(session, to, Role.PRODUCER):
            err_msg = f"Recipient {to} is not a registered producer"
            logger.error(err_msg)
            raise UnknownRecipient(err_msg, account=to)

        self.ledger.validate_amount(amount)

        digest = normalise_certification_hash(certification_hash)
        if self.certification_hash_used(session, digest):
            err_msg = f"Certification hash {digest} has already been used"
            logger.error(err_msg)
            raise HashReused(err_msg, certification_hash=digest)

        verification = self.verifier.verify(session, to, amount, digest, signature)
        if not verification.valid:
            err_msg = f"Invalid certifier signature (recovered {verification.signer})"
            logger.error(err_msg)
            raise InvalidCertifierSignature(err_msg, signer=verification.signer)

        self._consume_certification_hash(
            session, digest, producer=to, certifier=verification.signer, amount=amount
        )

        first_id, last_id = self.ledger.mint(
            session,
            producer=to,
            amount=amount,
            certification_hash=digest,
            certifier=verification.signer,
            metadata=metadata,
        )

        mint_result = MintResult(
            to=to,
            amount=amount,
            first_id=first_id,
            last_id=last_id,
            certification_hash=digest,
            certifier=verification.signer,
        )
        stage_observation(session, CreditsIssued(**mint_result.model_dump()))
        logger.info(
            f"Issued credits {first_id}..{last_id} to {to} for certification {digest}"
        )

        return mint_result
