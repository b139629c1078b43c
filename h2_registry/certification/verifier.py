from eth_account import Account
from sqlmodel import Session

from h2_registry.access.registry import AccessController
from h2_registry.certification.schemas import VerificationResult
from h2_registry.certification.services import certification_signable_message
from h2_registry.core.models.base import Role
from h2_registry.logging_config import logger
from h2_registry.utils import ZERO_ADDRESS


class CertificationVerifier:
    """Checks that a certification was signed by a current city admin.

    An invalid certification is an expected outcome, so verification never
    raises: malformed producers, amounts, hashes or signatures all yield an
    invalid result with the zero address as signer.
    """

    def __init__(self, access_controller: AccessController):
        self.access_controller = access_controller

    def recover_signer(
        self,
        producer: str,
        amount: int,
        certification_hash: str | bytes,
        signature: str | bytes,
    ) -> str:
        signable = certification_signable_message(producer, amount, certification_hash)
        return Account.recover_message(signable, signature=signature)

    def verify(
        self,
        session: Session,
        producer: str,
        amount: int,
        certification_hash: str | bytes,
        signature: str | bytes,
    ) -> VerificationResult:
        try:
            signer = self.recover_signer(producer, amount, certification_hash, signature)
        except Exception as e:
            logger.warning(f"Could not recover certification signer: {str(e)}")
            return VerificationResult(valid=False, signer=ZERO_ADDRESS)

        if not self.access_controller.has_role(session, signer, Role.CITY_ADMIN):
            logger.warning(f"Certification signer {signer} does not hold {Role.CITY_ADMIN}")
            return VerificationResult(valid=False, signer=signer)

        return VerificationResult(valid=True, signer=signer)
