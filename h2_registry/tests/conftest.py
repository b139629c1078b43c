import datetime
from typing import Callable, Generator

import pytest
from dotenv import load_dotenv
from eth_account import Account
from eth_account.signers.local import LocalAccount
from fastapi.testclient import TestClient
from sqlalchemy.engine.base import Engine

from h2_registry.certification.schemas import ProductionClaim
from h2_registry.certification.services import (
    create_certification_hash,
    sign_certification,
)
from h2_registry.contract import HydrogenCreditContract
from h2_registry.core.database.db import DButils
from h2_registry.core.observations import Observation, ObservationBus
from h2_registry.main import create_app

load_dotenv()


def account_from_seed(seed: int) -> LocalAccount:
    """Deterministic test key; any integer in [1, secp256k1 order) is a valid key."""
    return Account.from_key("0x" + f"{seed:064x}")


@pytest.fixture(scope="function")
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory ledger database for each test."""
    db_client = DButils(in_memory=True)
    yield db_client.engine
    db_client.engine.dispose()


@pytest.fixture()
def observations() -> list[Observation]:
    return []


@pytest.fixture()
def observation_bus(observations: list[Observation]) -> ObservationBus:
    bus = ObservationBus()
    bus.subscribe(observations.append)
    return bus


@pytest.fixture()
def main_admin() -> LocalAccount:
    return account_from_seed(1)


@pytest.fixture()
def country_admin() -> LocalAccount:
    return account_from_seed(2)


@pytest.fixture()
def state_admin() -> LocalAccount:
    return account_from_seed(3)


@pytest.fixture()
def city_admin() -> LocalAccount:
    return account_from_seed(4)


@pytest.fixture()
def producer() -> LocalAccount:
    return account_from_seed(5)


@pytest.fixture()
def buyer() -> LocalAccount:
    return account_from_seed(6)


@pytest.fixture()
def outsider() -> LocalAccount:
    return account_from_seed(7)


@pytest.fixture()
def contract(
    engine: Engine, main_admin: LocalAccount, observation_bus: ObservationBus
) -> HydrogenCreditContract:
    return HydrogenCreditContract(
        engine=engine,
        main_admin=main_admin.address,
        observation_bus=observation_bus,
    )


@pytest.fixture()
def appointed_contract(
    contract: HydrogenCreditContract,
    main_admin: LocalAccount,
    country_admin: LocalAccount,
    state_admin: LocalAccount,
    city_admin: LocalAccount,
    producer: LocalAccount,
    observations: list[Observation],
) -> HydrogenCreditContract:
    """Contract with a full Main -> Country -> State -> City -> Producer chain."""
    contract.grant_country_admin(main_admin.address, country_admin.address, 1)
    contract.grant_state_admin(country_admin.address, state_admin.address, 9)
    contract.grant_city_admin(state_admin.address, city_admin.address, 42)
    contract.grant_producer(city_admin.address, producer.address)
    observations.clear()
    return contract


@pytest.fixture()
def production_claim(producer: LocalAccount) -> ProductionClaim:
    return ProductionClaim(
        producer=producer.address,
        amount=50,
        production_date=datetime.date(2025, 3, 14),
        facility_location="Electrolyser Site 7, Rotterdam",
        production_method="PEM electrolysis",
        energy_source="offshore wind",
    )


@pytest.fixture()
def certification_hash(production_claim: ProductionClaim) -> str:
    return create_certification_hash(production_claim)


@pytest.fixture()
def certify(city_admin: LocalAccount) -> Callable[..., str]:
    """Sign a certification, by default as the fixture city admin."""

    def _certify(
        producer_address: str,
        amount: int,
        certification_hash: str,
        signer: LocalAccount | None = None,
    ) -> str:
        signer = signer or city_admin
        return sign_certification(
            producer_address, amount, certification_hash, "0x" + bytes(signer.key).hex()
        )

    return _certify


@pytest.fixture()
def claim_hash_factory(producer: LocalAccount) -> Callable[..., str]:
    """Build distinct certification hashes for repeated mints."""

    def _make(amount: int, notes: str = "", producer_address: str | None = None) -> str:
        claim = ProductionClaim(
            producer=producer_address or producer.address,
            amount=amount,
            production_date=datetime.date(2025, 3, 14),
            facility_location="Electrolyser Site 7, Rotterdam",
            production_method="PEM electrolysis",
            energy_source="offshore wind",
            notes=notes or None,
        )
        return create_certification_hash(claim)

    return _make


@pytest.fixture()
def minted_contract(
    appointed_contract: HydrogenCreditContract,
    producer: LocalAccount,
    certification_hash: str,
    certify: Callable[..., str],
    observations: list[Observation],
) -> HydrogenCreditContract:
    """Appointed contract where the producer holds credits 1..50."""
    signature = certify(producer.address, 50, certification_hash)
    appointed_contract.mint_with_certification(
        producer.address, 50, certification_hash, signature
    )
    observations.clear()
    return appointed_contract


@pytest.fixture()
def api_client(contract: HydrogenCreditContract) -> Generator[TestClient, None, None]:
    """API Client for testing routes"""
    app = create_app(contract)
    with TestClient(app) as client:
        yield client
