from sqlalchemy import func
from sqlmodel import Session, select

from h2_registry.access.registry import AccessController
from h2_registry.certification.models import (
    CertificationRecord,
    ConsumedCertificationHash,
)
from h2_registry.core.errors import (
    AlreadyRetired,
    InsufficientCapability,
    InvalidAmount,
    NotOwner,
    NotPaused,
    Paused,
    RetiredCreditTransfer,
    UnknownCredit,
    ZeroIdentity,
)
from h2_registry.core.models.base import ObservationType, Role, utc_datetime_now
from h2_registry.core.observations import (
    CreditRetired,
    CreditTransferred,
    PauseChanged,
    stage_observation,
)
from h2_registry.credit.models import Credit, LedgerState
from h2_registry.credit.schemas import LedgerSummary
from h2_registry.logging_config import logger
from h2_registry.settings import settings
from h2_registry.utils import is_zero_address, normalise_address


class CreditLedger:
    """The non-fungible credit store.

    Each credit moves through ``minted -> retired`` at most once. Ids are
    allocated sequentially from the ledger's high-water mark, so the credits of
    one mint occupy a contiguous range.
    """

    def __init__(
        self,
        access_controller: AccessController,
        max_mint_amount: int = settings.MAX_MINT_AMOUNT,
    ):
        self.access_controller = access_controller
        self.max_mint_amount = max_mint_amount

    ### Ledger state ###

    def initialise(self, session: Session, main_admin: str) -> tuple[LedgerState, bool]:
        """Create the ledger state row if it does not exist yet.

        Returns:
            tuple[LedgerState, bool]: The state row and whether it was created by this call
        """
        ledger_state = LedgerState.get(session)
        if ledger_state is not None:
            return ledger_state, False

        ledger_state = LedgerState(main_admin=normalise_address(main_admin))
        session.add(ledger_state)
        session.flush()
        return ledger_state, True

    def state(self, session: Session) -> LedgerState:
        ledger_state = LedgerState.get(session)
        if ledger_state is None:
            raise RuntimeError("The credit ledger has not been initialised")
        return ledger_state

    def is_paused(self, session: Session) -> bool:
        return self.state(session).paused

    def require_not_paused(self, session: Session) -> None:
        if self.is_paused(session):
            err_msg = "The ledger is paused"
            logger.error(err_msg)
            raise Paused(err_msg)

    def _set_paused(self, session: Session, caller: str, paused: bool) -> None:
        caller = normalise_address(caller)
        if not self.access_controller.has_role(session, caller, Role.MAIN_ADMIN):
            err_msg = f"Only the {Role.MAIN_ADMIN} may pause or unpause the ledger"
            logger.error(err_msg)
            raise InsufficientCapability(err_msg, account=caller)

        ledger_state = self.state(session)
        if paused and ledger_state.paused:
            raise Paused("The ledger is already paused")
        if not paused and not ledger_state.paused:
            raise NotPaused("The ledger is not paused")

        ledger_state.paused = paused
        session.add(ledger_state)
        session.flush()

        stage_observation(
            session,
            PauseChanged(
                observation_type=ObservationType.PAUSED
                if paused
                else ObservationType.UNPAUSED,
                account=caller,
            ),
        )
        logger.info(f"Ledger {'paused' if paused else 'unpaused'} by {caller}")

    def pause(self, session: Session, caller: str) -> None:
        self._set_paused(session, caller, True)

    def unpause(self, session: Session, caller: str) -> None:
        self._set_paused(session, caller, False)

    ### Minting ###

    def validate_amount(self, amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidAmount(f"Amount must be an integer, got {amount!r}")
        if amount <= 0 or amount > self.max_mint_amount:
            err_msg = f"Amount must be between 1 and {self.max_mint_amount}, got {amount}"
            logger.error(err_msg)
            raise InvalidAmount(err_msg, amount=amount, ceiling=self.max_mint_amount)

    def mint(
        self,
        session: Session,
        producer: str,
        amount: int,
        certification_hash: str,
        certifier: str,
        metadata: dict | None = None,
    ) -> tuple[int, int]:
        """Create ``amount`` credits owned by ``producer``.

        Every credit gets its own certification record carrying the shared
        certification hash and certifier.

        Returns:
            tuple[int, int]: The first and last id of the minted range, inclusive
        """
        self.validate_amount(amount)
        producer = normalise_address(producer)
        if is_zero_address(producer):
            raise ZeroIdentity("Cannot mint credits to the zero address")

        ledger_state = self.state(session)
        first_id = ledger_state.last_token_id + 1
        last_id = ledger_state.last_token_id + amount

        now = utc_datetime_now()
        credits = [
            Credit(id=token_id, owner=producer, created_at=now)
            for token_id in range(first_id, last_id + 1)
        ]
        session.add_all(credits)
        session.flush()

        records = [
            CertificationRecord(
                token_id=token_id,
                producer=producer,
                certifier=certifier,
                certification_hash=certification_hash,
                certification_metadata=dict(metadata or {}),
                created_at=now,
            )
            for token_id in range(first_id, last_id + 1)
        ]
        session.add_all(records)

        ledger_state.last_token_id = last_id
        session.add(ledger_state)
        session.flush()

        return first_id, last_id

    ### Ownership ###

    def get_credit(self, session: Session, token_id: int) -> Credit:
        credit = Credit.by_id(token_id, session)
        if credit is None:
            err_msg = f"Credit {token_id} does not exist"
            logger.error(err_msg)
            raise UnknownCredit(err_msg, token_id=token_id)
        return credit

    def owner_of(self, session: Session, token_id: int) -> str:
        return self.get_credit(session, token_id).owner

    def transfer(
        self,
        session: Session,
        caller: str,
        token_id: int,
        from_account: str,
        to_account: str,
    ) -> Credit:
        credit = self.get_credit(session, token_id)

        if credit.retired:
            err_msg = f"Credit {token_id} is retired and cannot be transferred"
            logger.error(err_msg)
            raise RetiredCreditTransfer(err_msg, token_id=token_id)

        caller = normalise_address(caller)
        from_account = normalise_address(from_account)
        to_account = normalise_address(to_account)

        if credit.owner != from_account:
            err_msg = f"Credit {token_id} is not owned by {from_account}"
            logger.error(err_msg)
            raise NotOwner(err_msg, token_id=token_id, account=from_account)

        if caller != credit.owner:
            err_msg = f"{caller} is not the owner of credit {token_id}"
            logger.error(err_msg)
            raise NotOwner(err_msg, token_id=token_id, account=caller)

        if is_zero_address(to_account):
            err_msg = f"Cannot transfer credit {token_id} to the zero address"
            logger.error(err_msg)
            raise ZeroIdentity(err_msg, token_id=token_id)

        credit.owner = to_account
        session.add(credit)
        session.flush()

        stage_observation(
            session,
            CreditTransferred(
                token_id=token_id, from_account=from_account, to_account=to_account
            ),
        )
        logger.info(f"Transferred credit {token_id} from {from_account} to {to_account}")

        return credit

    def retire(self, session: Session, caller: str, token_id: int) -> Credit:
        credit = self.get_credit(session, token_id)
        caller = normalise_address(caller)

        if credit.owner != caller:
            err_msg = f"{caller} is not the owner of credit {token_id}"
            logger.error(err_msg)
            raise NotOwner(err_msg, token_id=token_id, account=caller)

        if credit.retired:
            err_msg = f"Credit {token_id} is already retired"
            logger.error(err_msg)
            raise AlreadyRetired(err_msg, token_id=token_id)

        credit.retired = True
        credit.retired_by = caller
        credit.retired_at = utc_datetime_now()
        session.add(credit)
        session.flush()

        stage_observation(
            session,
            CreditRetired(
                token_id=token_id, retired_by=caller, retired_at=credit.retired_at
            ),
        )
        logger.info(f"Credit {token_id} retired by {caller}")

        return credit

    ### Queries ###

    def tokens_of_owner(self, session: Session, owner: str) -> list[int]:
        return [credit.id for credit in Credit.by_owner(normalise_address(owner), session)]

    def balance_of(self, session: Session, owner: str) -> int:
        count = session.exec(
            select(func.count(Credit.id)).where(Credit.owner == normalise_address(owner))  # type: ignore
        ).one()
        return int(count)

    def total_supply(self, session: Session) -> int:
        return self.state(session).last_token_id

    def get_certification_data(self, session: Session, token_id: int) -> CertificationRecord:
        record = CertificationRecord.by_id(token_id, session)
        if record is None:
            err_msg = f"Credit {token_id} does not exist"
            logger.error(err_msg)
            raise UnknownCredit(err_msg, token_id=token_id)
        return record

    def summary(self, session: Session) -> LedgerSummary:
        """Summarise supply, retirements and holders across the whole ledger."""
        retired_supply = session.exec(
            select(func.count(Credit.id)).where(Credit.retired == True)  # noqa: E712
        ).one()
        holders = session.exec(select(func.count(func.distinct(Credit.owner)))).one()
        consumed = session.exec(
            select(func.count(ConsumedCertificationHash.certification_hash))
        ).one()
        ledger_state = self.state(session)

        return LedgerSummary(
            total_supply=ledger_state.last_token_id,
            retired_supply=int(retired_supply or 0),
            holders=int(holders or 0),
            consumed_certifications=int(consumed or 0),
            paused=ledger_state.paused,
        )
