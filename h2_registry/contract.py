"""The hydrogen credit ledger contract.

``HydrogenCreditContract`` is the single entry point for every ledger
operation. Each state-changing method is applied as one database transaction,
and calls are totally ordered by a ledger-wide lock: a call either commits all
of its writes or raises a ``LedgerError`` and leaves nothing behind. Staged
observations are published to the ``ObservationBus`` only after commit.
"""

import threading
from contextlib import contextmanager
from typing import Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel

from h2_registry.access.appointment import AppointmentProtocol
from h2_registry.access.registry import RoleRegistry
from h2_registry.access.schemas import AccountRoles, RoleGrantRead
from h2_registry.certification.schemas import CertificationRecordRead, VerificationResult
from h2_registry.certification.verifier import CertificationVerifier
from h2_registry.core.models.base import Role
from h2_registry.core.observations import ObservationBus, staged_observations
from h2_registry.credit.ledger import CreditLedger
from h2_registry.credit.models import LedgerState
from h2_registry.credit.schemas import CreditRead, LedgerSummary, MintResult
from h2_registry.logging_config import logger
from h2_registry.minting.orchestrator import MintingOrchestrator
from h2_registry.settings import settings
from h2_registry.utils import ZERO_ADDRESS, normalise_address


class HydrogenCreditContract:
    def __init__(
        self,
        engine: Engine,
        main_admin: str,
        observation_bus: ObservationBus | None = None,
        max_mint_amount: int = settings.MAX_MINT_AMOUNT,
    ):
        self.engine = engine
        self.observation_bus = observation_bus or ObservationBus()

        self.role_registry = RoleRegistry()
        self.appointments = AppointmentProtocol(self.role_registry)
        self.verifier = CertificationVerifier(self.role_registry)
        self.ledger = CreditLedger(self.role_registry, max_mint_amount=max_mint_amount)
        self.minting = MintingOrchestrator(self.role_registry, self.verifier, self.ledger)

        self._serial = threading.RLock()
        self.main_admin = self._genesis(main_admin)

    ### Call handling ###

    @contextmanager
    def _call(self, require_unpaused: bool = True) -> Generator[Session, None, None]:
        """Run one state-changing call atomically and publish its observations."""
        with self._serial:
            with Session(self.engine, expire_on_commit=False) as session:
                with session.begin():
                    LedgerState.lock(session)
                    if require_unpaused:
                        self.ledger.require_not_paused(session)
                    yield session
                observations = list(staged_observations(session))

            # Subscribers receive calls in commit order
            self.observation_bus.publish(observations)

    @contextmanager
    def _query(self) -> Generator[Session, None, None]:
        with Session(self.engine) as session:
            yield session

    def _genesis(self, main_admin: str) -> str:
        """Create the ledger tables and grant main_admin on first start.

        Restarting against an existing database keeps the original main admin.
        """
        SQLModel.metadata.create_all(self.engine)

        with self._call(require_unpaused=False) as session:
            ledger_state, created = self.ledger.initialise(session, main_admin)
            if created:
                self.role_registry.grant(
                    session,
                    account=main_admin,
                    role=Role.MAIN_ADMIN,
                    jurisdiction_id=0,
                    granted_by=ZERO_ADDRESS,
                )
                logger.info(f"Ledger initialised with main admin {ledger_state.main_admin}")
            else:
                logger.info(f"Ledger resumed with main admin {ledger_state.main_admin}")
            return ledger_state.main_admin  # type: ignore

    ### Appointments ###

    def _appoint(
        self, caller: str, account: str, role: Role, jurisdiction_id: int = 0
    ) -> RoleGrantRead:
        with self._call() as session:
            role_grant = self.appointments.appoint(
                session, caller, account, role, jurisdiction_id
            )
            return RoleGrantRead.model_validate(role_grant)

    def grant_country_admin(self, caller: str, account: str, country_id: int) -> RoleGrantRead:
        return self._appoint(caller, account, Role.COUNTRY_ADMIN, country_id)

    def grant_state_admin(self, caller: str, account: str, state_id: int) -> RoleGrantRead:
        return self._appoint(caller, account, Role.STATE_ADMIN, state_id)

    def grant_city_admin(self, caller: str, account: str, city_id: int) -> RoleGrantRead:
        return self._appoint(caller, account, Role.CITY_ADMIN, city_id)

    def grant_producer(self, caller: str, account: str) -> RoleGrantRead:
        return self._appoint(caller, account, Role.PRODUCER)

    def register_auditor(self, caller: str, account: str) -> RoleGrantRead:
        return self._appoint(caller, account, Role.AUDITOR)

    def register_buyer(self, caller: str) -> RoleGrantRead:
        with self._call() as session:
            role_grant = self.appointments.register_buyer(session, caller)
            return RoleGrantRead.model_validate(role_grant)

    ### Credits ###

    def mint_with_certification(
        self,
        to: str,
        amount: int,
        certification_hash: str | bytes,
        signature: str | bytes,
        metadata: dict | None = None,
    ) -> MintResult:
        with self._call() as session:
            return self.minting.mint_with_certification(
                session, to, amount, certification_hash, signature, metadata
            )

    def transfer(
        self, caller: str, token_id: int, from_account: str, to_account: str
    ) -> CreditRead:
        with self._call() as session:
            credit = self.ledger.transfer(session, caller, token_id, from_account, to_account)
            return CreditRead.model_validate(credit)

    def retire(self, caller: str, token_id: int) -> CreditRead:
        with self._call() as session:
            credit = self.ledger.retire(session, caller, token_id)
            return CreditRead.model_validate(credit)

    def pause(self, caller: str) -> None:
        with self._call(require_unpaused=False) as session:
            self.ledger.pause(session, caller)

    def unpause(self, caller: str) -> None:
        with self._call(require_unpaused=False) as session:
            self.ledger.unpause(session, caller)

    ### Queries ###

    def has_role(self, account: str, role: Role) -> bool:
        with self._query() as session:
            return self.role_registry.has_role(session, account, role)

    def roles_of(self, account: str) -> AccountRoles:
        with self._query() as session:
            account = normalise_address(account)
            return AccountRoles(
                account=account,
                roles=[
                    RoleGrantRead.model_validate(role_grant)
                    for role_grant in self.role_registry.roles_of(session, account)
                ],
                primary_role=self.role_registry.primary_role(session, account),
            )

    def primary_role(self, account: str) -> Role | None:
        with self._query() as session:
            return self.role_registry.primary_role(session, account)

    def jurisdiction_of(self, account: str, role: Role) -> int | None:
        with self._query() as session:
            return self.role_registry.jurisdiction_of(session, account, role)

    def verify_certification(
        self,
        producer: str,
        amount: int,
        certification_hash: str | bytes,
        signature: str | bytes,
    ) -> VerificationResult:
        with self._query() as session:
            return self.verifier.verify(session, producer, amount, certification_hash, signature)

    def certification_hash_used(self, certification_hash: str | bytes) -> bool:
        with self._query() as session:
            return self.minting.certification_hash_used(session, certification_hash)  # type: ignore

    def tokens_of_owner(self, owner: str) -> list[int]:
        with self._query() as session:
            return self.ledger.tokens_of_owner(session, owner)

    def balance_of(self, owner: str) -> int:
        with self._query() as session:
            return self.ledger.balance_of(session, owner)

    def owner_of(self, token_id: int) -> str:
        with self._query() as session:
            return self.ledger.owner_of(session, token_id)

    def get_credit(self, token_id: int) -> CreditRead:
        with self._query() as session:
            return CreditRead.model_validate(self.ledger.get_credit(session, token_id))

    def get_certification_data(self, token_id: int) -> CertificationRecordRead:
        with self._query() as session:
            return CertificationRecordRead.model_validate(
                self.ledger.get_certification_data(session, token_id)
            )

    def total_supply(self) -> int:
        with self._query() as session:
            return self.ledger.total_supply(session)

    def is_paused(self) -> bool:
        with self._query() as session:
            return self.ledger.is_paused(session)

    def summary(self) -> LedgerSummary:
        with self._query() as session:
            return self.ledger.summary(session)
