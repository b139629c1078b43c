from fastapi import APIRouter, Depends
from pydantic import BaseModel

from h2_registry.access.schemas import AccountRoles, AppointmentRequest, RoleGrantRead
from h2_registry.contract import HydrogenCreditContract
from h2_registry.core.dependencies import get_caller, get_contract
from h2_registry.core.models.base import Role

# Router initialisation
router = APIRouter(tags=["Roles"])


class RoleCheck(BaseModel):
    account: str
    role: Role
    has_role: bool
    jurisdiction_id: int | None = None


@router.post("/country_admin", response_model=RoleGrantRead, status_code=201)
def grant_country_admin(
    appointment: AppointmentRequest,
    caller: str = Depends(get_caller),
    contract: HydrogenCreditContract = Depends(get_contract),
):
    """Appoint a Country Admin. The caller must hold main_admin."""
    return contract.grant_country_admin(
        caller, appointment.account, appointment.jurisdiction_id
    )


@router.post("/state_admin", response_model=RoleGrantRead, status_code=201)
def grant_state_admin(
    appointment: AppointmentRequest,
    caller: str = Depends(get_caller),
    contract: HydrogenCreditContract = Depends(get_contract),
):
    """Appoint a State Admin. The caller must hold country_admin."""
    return contract.grant_state_admin(
        caller, appointment.account, appointment.jurisdiction_id
    )


@router.post("/city_admin", response_model=RoleGrantRead, status_code=201)
def grant_city_admin(
    appointment: AppointmentRequest,
    caller: str = Depends(get_caller),
    contract: HydrogenCreditContract = Depends(get_contract),
):
    """Appoint a City Admin. The caller must hold state_admin."""
    return contract.grant_city_admin(
        caller, appointment.account, appointment.jurisdiction_id
    )


@router.post("/producer", response_model=RoleGrantRead, status_code=201)
def grant_producer(
    appointment: AppointmentRequest,
    caller: str = Depends(get_caller),
    contract: HydrogenCreditContract = Depends(get_contract),
):
    """Approve a Producer. The caller must hold city_admin; the producer inherits its city."""
    return contract.grant_producer(caller, appointment.account)


@router.post("/auditor", response_model=RoleGrantRead, status_code=201)
def register_auditor(
    appointment: AppointmentRequest,
    caller: str = Depends(get_caller),
    contract: HydrogenCreditContract = Depends(get_contract),
):
    return contract.register_auditor(caller, appointment.account)


@router.post("/buyer", response_model=RoleGrantRead, status_code=201)
def register_buyer(
    caller: str = Depends(get_caller),
    contract: HydrogenCreditContract = Depends(get_contract),
):
    """Register the calling account as a buyer."""
    return contract.register_buyer(caller)


@router.get("/{account}", response_model=AccountRoles)
def read_roles(
    account: str,
    contract: HydrogenCreditContract = Depends(get_contract),
):
    return contract.roles_of(account)


@router.get("/{account}/{role}", response_model=RoleCheck)
def check_role(
    account: str,
    role: Role,
    contract: HydrogenCreditContract = Depends(get_contract),
):
    return RoleCheck(
        account=account,
        role=role,
        has_role=contract.has_role(account, role),
        jurisdiction_id=contract.jurisdiction_of(account, role),
    )
