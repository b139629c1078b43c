from sqlmodel import Session

from h2_registry.access.models import RoleGrant
from h2_registry.access.registry import RoleRegistry
from h2_registry.core.errors import InsufficientCapability
from h2_registry.core.models.base import Role
from h2_registry.core.observations import Appointed, stage_observation
from h2_registry.logging_config import logger
from h2_registry.utils import normalise_address

# The role an account must hold to grant each appointable role. Buyers
# register themselves and are therefore absent from this chain.
APPOINTER_ROLE: dict[Role, Role] = {
    Role.COUNTRY_ADMIN: Role.MAIN_ADMIN,
    Role.STATE_ADMIN: Role.COUNTRY_ADMIN,
    Role.CITY_ADMIN: Role.STATE_ADMIN,
    Role.PRODUCER: Role.CITY_ADMIN,
    Role.AUDITOR: Role.MAIN_ADMIN,
}


class AppointmentProtocol:
    """Enforces the Main -> Country -> State -> City -> Producer chain.

    Jurisdiction ids are taken as given: the protocol does not check that a
    state id belongs to the appointing country admin's country. The grantor's
    own jurisdiction is stored on the grant as ``parent_jurisdiction_id`` so
    that nesting can be audited by whoever needs it.
    """

    def __init__(self, role_registry: RoleRegistry):
        self.role_registry = role_registry

    def appoint(
        self,
        session: Session,
        caller: str,
        account: str,
        role: Role,
        jurisdiction_id: int = 0,
    ) -> RoleGrant:
        """Grant ``role`` to ``account`` on behalf of ``caller``.

        Args:
            session (Session): The session of the running ledger call
            caller (str): The appointing account
            account (str): The account receiving the role
            role (Role): One of the appointable roles in APPOINTER_ROLE
            jurisdiction_id (int): The country, state or city id the new admin owns.
                Ignored for producers, who inherit the appointing city admin's
                city, and for auditors.

        Returns:
            RoleGrant: The stored grant

        Raises:
            InsufficientCapability: If the caller lacks the appointer role, or the
                role cannot be appointed at all.
        """
        if role not in APPOINTER_ROLE:
            err_msg = f"The {role} role cannot be granted by appointment"
            logger.error(err_msg)
            raise InsufficientCapability(err_msg, role=role.value)

        caller = normalise_address(caller)
        appointer_role = APPOINTER_ROLE[role]

        appointer_grant = RoleGrant.by_account_and_role(caller, appointer_role, session)
        if appointer_grant is None:
            err_msg = f"Only a {appointer_role} may grant {role}; {caller} does not hold it"
            logger.error(err_msg)
            raise InsufficientCapability(
                err_msg, account=caller, role=role.value, required=appointer_role.value
            )

        if role == Role.PRODUCER:
            jurisdiction_id = appointer_grant.jurisdiction_id
        elif role == Role.AUDITOR:
            jurisdiction_id = 0

        role_grant = self.role_registry.grant(
            session,
            account=account,
            role=role,
            jurisdiction_id=jurisdiction_id,
            granted_by=caller,
            parent_jurisdiction_id=appointer_grant.jurisdiction_id,
        )

        stage_observation(
            session,
            Appointed(
                account=role_grant.account,
                role=role,
                jurisdiction_id=jurisdiction_id,
                appointed_by=caller,
            ),
        )

        return role_grant

    def register_buyer(self, session: Session, caller: str) -> RoleGrant:
        """Self-registration: any account may make itself a buyer, once."""
        caller = normalise_address(caller)
        return self.role_registry.grant(
            session,
            account=caller,
            role=Role.BUYER,
            jurisdiction_id=0,
            granted_by=caller,
        )
