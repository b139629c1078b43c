"""Failure conditions raised by ledger entry points.

Every ledger call either commits completely or raises one of these and leaves
no partial state behind. Each kind carries the HTTP status code the operations
API reports it with.
"""

from fastapi import status


class LedgerError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def kind(self) -> str:
        return self.__class__.__name__


class InvalidAddress(LedgerError):
    """The supplied value is not a hex account address."""


class ZeroIdentity(LedgerError):
    """The zero address was supplied where a real account is required."""


class AlreadyHeld(LedgerError):
    status_code = status.HTTP_409_CONFLICT


class InsufficientCapability(LedgerError):
    status_code = status.HTTP_403_FORBIDDEN


class InvalidAmount(LedgerError):
    pass


class UnknownRecipient(LedgerError):
    pass


class InvalidCertificationHash(LedgerError):
    pass


class HashReused(LedgerError):
    status_code = status.HTTP_409_CONFLICT


class InvalidCertifierSignature(LedgerError):
    status_code = status.HTTP_403_FORBIDDEN


class UnknownCredit(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND


class RetiredCreditTransfer(LedgerError):
    status_code = status.HTTP_409_CONFLICT


class AlreadyRetired(LedgerError):
    status_code = status.HTTP_409_CONFLICT


class NotOwner(LedgerError):
    status_code = status.HTTP_403_FORBIDDEN


class Paused(LedgerError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class NotPaused(LedgerError):
    status_code = status.HTTP_409_CONFLICT
