from fastapi import APIRouter, Depends
from pydantic import BaseModel

from h2_registry.certification.schemas import CertificationRecordRead, VerificationResult
from h2_registry.contract import HydrogenCreditContract
from h2_registry.core.dependencies import get_caller, get_contract
from h2_registry.credit.schemas import (
    CreditRead,
    LedgerSummary,
    MintRequest,
    MintResult,
    OwnerTokens,
    TransferRequest,
)

# Router initialisation
router = APIRouter(tags=["Credits"])
ledger_router = APIRouter(tags=["Ledger"])


class VerificationRequest(BaseModel):
    producer: str
    amount: int
    certification_hash: str
    signature: str


class CertificationHashStatus(BaseModel):
    certification_hash: str
    used: bool


@router.post("/mint", response_model=MintResult, status_code=201)
def mint_with_certification(
    mint_request: MintRequest,
    contract: HydrogenCreditContract = Depends(get_contract),
):
    """Mint credits to a producer against a city admin's signed certification.

    The signature is the authority for this call, so no caller header is needed.
    """
    return contract.mint_with_certification(
        to=mint_request.to,
        amount=mint_request.amount,
        certification_hash=mint_request.certification_hash,
        signature=mint_request.signature,
        metadata=mint_request.metadata,
    )


@router.post("/{token_id}/transfer", response_model=CreditRead)
def transfer_credit(
    token_id: int,
    transfer: TransferRequest,
    caller: str = Depends(get_caller),
    contract: HydrogenCreditContract = Depends(get_contract),
):
    return contract.transfer(caller, token_id, transfer.from_account, transfer.to_account)


@router.post("/{token_id}/retire", response_model=CreditRead)
def retire_credit(
    token_id: int,
    caller: str = Depends(get_caller),
    contract: HydrogenCreditContract = Depends(get_contract),
):
    """Retire a credit held by the caller. Retirement is permanent."""
    return contract.retire(caller, token_id)


@router.get("/owner/{owner}", response_model=OwnerTokens)
def read_tokens_of_owner(
    owner: str,
    contract: HydrogenCreditContract = Depends(get_contract),
):
    return OwnerTokens(owner=owner, token_ids=contract.tokens_of_owner(owner))


@router.get("/{token_id}", response_model=CreditRead)
def read_credit(
    token_id: int,
    contract: HydrogenCreditContract = Depends(get_contract),
):
    return contract.get_credit(token_id)


@router.get("/{token_id}/certification", response_model=CertificationRecordRead)
def read_certification_data(
    token_id: int,
    contract: HydrogenCreditContract = Depends(get_contract),
):
    return contract.get_certification_data(token_id)


@ledger_router.post("/pause", status_code=204)
def pause(
    caller: str = Depends(get_caller),
    contract: HydrogenCreditContract = Depends(get_contract),
):
    contract.pause(caller)


@ledger_router.post("/unpause", status_code=204)
def unpause(
    caller: str = Depends(get_caller),
    contract: HydrogenCreditContract = Depends(get_contract),
):
    contract.unpause(caller)


@ledger_router.get("/summary", response_model=LedgerSummary)
def read_summary(contract: HydrogenCreditContract = Depends(get_contract)):
    return contract.summary()


@ledger_router.post("/verify", response_model=VerificationResult)
def verify_certification(
    verification_request: VerificationRequest,
    contract: HydrogenCreditContract = Depends(get_contract),
):
    """Check a certification signature without minting anything."""
    return contract.verify_certification(
        verification_request.producer,
        verification_request.amount,
        verification_request.certification_hash,
        verification_request.signature,
    )


@ledger_router.get(
    "/certifications/{certification_hash}", response_model=CertificationHashStatus
)
def read_certification_hash_status(
    certification_hash: str,
    contract: HydrogenCreditContract = Depends(get_contract),
):
    return CertificationHashStatus(
        certification_hash=certification_hash,
        used=contract.certification_hash_used(certification_hash),
    )
