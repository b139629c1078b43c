import uuid

from esdbclient import EventStoreDBClient, NewEvent, StreamState

from h2_registry.core.observations import Observation
from h2_registry.logging_config import logger
from h2_registry.settings import settings

_esdb_client: EventStoreDBClient | None = None


def get_esdb_client() -> EventStoreDBClient:
    global _esdb_client

    if _esdb_client is None:
        _esdb_client = EventStoreDBClient(uri=settings.esdb_url)

    return _esdb_client


def observation_to_event(observation: Observation) -> NewEvent:
    """Serialise an observation as a JSON EventStoreDB event.

    The event id is derived from the observation content so that a mirror
    replaying the same observation writes an identical event.
    """
    data = observation.model_dump_json().encode()
    return NewEvent(
        id=uuid.uuid5(uuid.NAMESPACE_OID, data.decode()),
        type=observation.observation_type.value,
        data=data,
        content_type="application/json",
    )


class EventStoreMirror:
    """Observation subscriber appending every observation to one stream."""

    def __init__(
        self,
        esdb_client: EventStoreDBClient,
        stream_name: str = settings.ESDB_STREAM_NAME,
    ):
        self.esdb_client = esdb_client
        self.stream_name = stream_name

    def __call__(self, observation: Observation) -> None:
        event = observation_to_event(observation)
        commit_position = self.esdb_client.append_to_stream(
            self.stream_name,
            current_version=StreamState.ANY,
            events=[event],
        )
        logger.debug(
            f"Mirrored {observation.observation_type.value} to {self.stream_name} at {commit_position}"
        )
