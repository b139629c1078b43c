from typing import Protocol

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from h2_registry.access.models import RoleGrant
from h2_registry.core.errors import (
    AlreadyHeld,
    InvalidAddress,
    ZeroIdentity,
)
from h2_registry.core.models.base import ROLE_PRECEDENCE, Role
from h2_registry.core.observations import RoleGranted, stage_observation
from h2_registry.logging_config import logger
from h2_registry.utils import is_zero_address, normalise_address


class AccessController(Protocol):
    """Capability check consumed by components that gate on roles."""

    def has_role(self, session: Session, account: str, role: Role) -> bool: ...


class RoleRegistry:
    """Holds which account holds which role, and the jurisdiction of each grant.

    The registry itself does not decide who may grant what; that is the
    appointment protocol's job. It only guarantees that grants are unique
    per (account, role) and never issued to the zero address.
    """

    def has_role(self, session: Session, account: str, role: Role) -> bool:
        try:
            account = normalise_address(account)
        except InvalidAddress:
            return False
        return RoleGrant.by_account_and_role(account, role, session) is not None

    def grant(
        self,
        session: Session,
        account: str,
        role: Role,
        jurisdiction_id: int,
        granted_by: str,
        parent_jurisdiction_id: int = 0,
    ) -> RoleGrant:
        account = normalise_address(account)
        granted_by = normalise_address(granted_by)

        if is_zero_address(account):
            err_msg = f"Cannot grant {role} to the zero address"
            logger.error(err_msg)
            raise ZeroIdentity(err_msg, role=role.value)

        if RoleGrant.by_account_and_role(account, role, session) is not None:
            err_msg = f"Account {account} already holds the {role} role"
            logger.error(err_msg)
            raise AlreadyHeld(err_msg, account=account, role=role.value)

        role_grant = RoleGrant(
            account=account,
            role=role,
            jurisdiction_id=jurisdiction_id,
            parent_jurisdiction_id=parent_jurisdiction_id,
            granted_by=granted_by,
        )

        try:
            session.add(role_grant)
            session.flush()
        except IntegrityError:
            # Another writer committed the same grant first
            raise AlreadyHeld(
                f"Account {account} already holds the {role} role",
                account=account,
                role=role.value,
            )

        stage_observation(
            session,
            RoleGranted(
                account=account,
                role=role,
                jurisdiction_id=jurisdiction_id,
                granted_by=granted_by,
            ),
        )
        logger.info(
            f"Granted {role} to {account} (jurisdiction {jurisdiction_id}) by {granted_by}"
        )

        return role_grant

    def roles_of(self, session: Session, account: str) -> list[RoleGrant]:
        return RoleGrant.by_account(normalise_address(account), session)

    def primary_role(self, session: Session, account: str) -> Role | None:
        """Return the highest-ranking role the account holds, if any."""
        held = {grant.role for grant in self.roles_of(session, account)}
        for role in ROLE_PRECEDENCE:
            if role in held:
                return role
        return None

    def jurisdiction_of(self, session: Session, account: str, role: Role) -> int | None:
        try:
            account = normalise_address(account)
        except InvalidAddress:
            return None
        role_grant = RoleGrant.by_account_and_role(account, role, session)
        if role_grant is None:
            return None
        return role_grant.jurisdiction_id
