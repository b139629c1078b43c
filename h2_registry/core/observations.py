"""Typed observations published by the ledger after each committed call.

Entry points stage observations on the SQLAlchemy session while the call is in
flight; the contract hands them to the ``ObservationBus`` only once the
transaction has committed, so subscribers never see effects of a rolled back
call. Delivery to a subscriber is at-least-once from its point of view: a
subscriber that fails does not stop the others, and collaborators mirroring
the ledger are expected to upsert idempotently.
"""

import datetime
from typing import Callable

from pydantic import BaseModel, Field
from sqlmodel import Session

from h2_registry.core.models.base import ObservationType, Role, utc_datetime_now
from h2_registry.logging_config import logger

STAGED_OBSERVATIONS_KEY = "staged_observations"


class Observation(BaseModel):
    observation_type: ObservationType
    timestamp: datetime.datetime = Field(default_factory=utc_datetime_now)


class RoleGranted(Observation):
    observation_type: ObservationType = ObservationType.ROLE_GRANTED
    account: str
    role: Role
    jurisdiction_id: int
    granted_by: str


class Appointed(Observation):
    observation_type: ObservationType = ObservationType.APPOINTED
    account: str
    role: Role
    jurisdiction_id: int
    appointed_by: str


class CreditsIssued(Observation):
    observation_type: ObservationType = ObservationType.CREDITS_ISSUED
    to: str
    amount: int
    first_id: int
    last_id: int
    certification_hash: str
    certifier: str


class CreditTransferred(Observation):
    observation_type: ObservationType = ObservationType.CREDIT_TRANSFERRED
    token_id: int
    from_account: str
    to_account: str


class CreditRetired(Observation):
    observation_type: ObservationType = ObservationType.CREDIT_RETIRED
    token_id: int
    retired_by: str
    retired_at: datetime.datetime


class PauseChanged(Observation):
    account: str


Subscriber = Callable[[Observation], None]


def stage_observation(session: Session, observation: Observation) -> None:
    """Attach an observation to the call running on this session."""
    session.info.setdefault(STAGED_OBSERVATIONS_KEY, []).append(observation)


def staged_observations(session: Session) -> list[Observation]:
    return session.info.setdefault(STAGED_OBSERVATIONS_KEY, [])


class ObservationBus:
    def __init__(self):
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a subscriber and return a callable that removes it."""
        self._subscribers.append(subscriber)

        def unsubscribe():
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def publish(self, observations: list[Observation]) -> None:
        for observation in observations:
            for subscriber in list(self._subscribers):
                try:
                    subscriber(observation)
                except Exception as e:
                    logger.error(
                        f"Subscriber {subscriber!r} failed on {observation.observation_type}: {str(e)}"
                    )
