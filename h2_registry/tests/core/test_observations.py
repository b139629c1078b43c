import json
from unittest.mock import MagicMock

import pytest
from esdbclient import NewEvent, StreamState
from sqlmodel import Session

from h2_registry.core.database.events import EventStoreMirror, observation_to_event
from h2_registry.core.errors import NotOwner
from h2_registry.core.models.base import ObservationType
from h2_registry.core.observations import (
    CreditTransferred,
    ObservationBus,
    stage_observation,
    staged_observations,
)


class TestObservationBus:
    def test_publish_to_all_subscribers(self):
        bus = ObservationBus()
        first, second = [], []
        bus.subscribe(first.append)
        bus.subscribe(second.append)

        observation = CreditTransferred(token_id=1, from_account="a", to_account="b")
        bus.publish([observation])

        assert first == [observation]
        assert second == [observation]

    def test_failing_subscriber_does_not_block_others(self):
        bus = ObservationBus()
        received = []

        def broken(observation):
            raise ConnectionError("mirror unavailable")

        bus.subscribe(broken)
        bus.subscribe(received.append)

        bus.publish([CreditTransferred(token_id=1, from_account="a", to_account="b")])

        assert len(received) == 1

    def test_unsubscribe(self):
        bus = ObservationBus()
        received = []
        unsubscribe = bus.subscribe(received.append)

        unsubscribe()
        bus.publish([CreditTransferred(token_id=1, from_account="a", to_account="b")])

        assert received == []

    def test_staging_is_per_session(self, engine):
        observation = CreditTransferred(token_id=1, from_account="a", to_account="b")

        with Session(engine) as session:
            stage_observation(session, observation)
            assert staged_observations(session) == [observation]

        with Session(engine) as session:
            assert staged_observations(session) == []


class TestEventStoreMirror:
    def test_observation_to_event(self):
        observation = CreditTransferred(token_id=5, from_account="a", to_account="b")

        event = observation_to_event(observation)

        assert isinstance(event, NewEvent)
        assert event.type == ObservationType.CREDIT_TRANSFERRED.value
        assert event.content_type == "application/json"
        assert json.loads(event.data)["token_id"] == 5

        # The same observation always maps to the same event id
        assert observation_to_event(observation).id == event.id

    def test_mirror_appends_to_stream(self):
        esdb_client = MagicMock()
        mirror = EventStoreMirror(esdb_client, stream_name="test-stream")

        mirror(CreditTransferred(token_id=5, from_account="a", to_account="b"))

        esdb_client.append_to_stream.assert_called_once()
        args, kwargs = esdb_client.append_to_stream.call_args
        assert args == ("test-stream",)
        assert kwargs["current_version"] == StreamState.ANY
        assert [event.type for event in kwargs["events"]] == ["CreditTransferred"]

    def test_mirror_receives_committed_calls_only(
        self, appointed_contract, producer, certification_hash, certify, outsider
    ):
        esdb_client = MagicMock()
        appointed_contract.observation_bus.subscribe(
            EventStoreMirror(esdb_client, stream_name="test-stream")
        )

        signature = certify(producer.address, 50, certification_hash)
        appointed_contract.mint_with_certification(
            producer.address, 50, certification_hash, signature
        )
        assert esdb_client.append_to_stream.call_count == 1

        # A rejected call is rolled back and mirrors nothing
        with pytest.raises(NotOwner):
            appointed_contract.retire(outsider.address, 1)
        assert esdb_client.append_to_stream.call_count == 1

        event = esdb_client.append_to_stream.call_args.kwargs["events"][0]
        assert event.type == "CreditsIssued"
        data = json.loads(event.data)
        assert data["first_id"] == 1
        assert data["last_id"] == 50
        assert data["certification_hash"] == certification_hash
