from fastapi import Header, Request

from h2_registry.contract import HydrogenCreditContract
from h2_registry.utils import normalise_address


def get_contract(request: Request) -> HydrogenCreditContract:
    """FastAPI dependency returning the contract created at application startup."""
    return request.app.state.contract


def get_caller(x_caller_address: str = Header(...)) -> str:
    """The account on whose behalf a request calls the ledger.

    Authenticating that the request really comes from this account is left to
    the gateway in front of this service.
    """
    return normalise_address(x_caller_address)
