from typing import Any
from urllib.parse import urlparse

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from h2_registry.access import models as access_models
from h2_registry.certification import models as certification_models
from h2_registry.credit import models as credit_models
from h2_registry.logging_config import logger
from h2_registry.settings import settings

"""
Importing the model modules registers every ledger table on SQLModel.metadata
"""

__all__ = [
    "SQLModel",
    "access_models",
    "certification_models",
    "credit_models",
]


class DButils:
    def __init__(
        self,
        connection_str: str | None = None,
        db_test_fp: str = settings.DATABASE_TEST_FP,
        test: bool = False,
        in_memory: bool = False,
    ):
        self._db_test_fp = db_test_fp

        if in_memory:
            self.connection_str = "sqlite://"
            source = "in_memory"
        elif test:
            self.connection_str = f"sqlite:///{self._db_test_fp}"
            source = "test_file"
        elif connection_str:
            self.connection_str = connection_str
            source = "explicit"
        else:
            self.connection_str = settings.database_url
            source = "settings:DATABASE_URL"

        parsed = urlparse(self.connection_str)
        redacted = self.connection_str
        if parsed.password:
            redacted = self.connection_str.replace(parsed.password, "********")
        logger.info(f"Ledger database initialised from {source}: {redacted}")

        if self.connection_str.startswith("sqlite"):
            engine_kwargs: dict[str, Any] = {
                "connect_args": {"check_same_thread": False}
            }
            if in_memory:
                # A single shared connection keeps the in-memory database alive
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs = {
                "pool_pre_ping": True,
                "pool_size": 10,
                "max_overflow": 20,
                "pool_timeout": 30,
                "pool_recycle": 1800,
            }

        self.engine = create_engine(self.connection_str, echo=False, **engine_kwargs)


_db_client: DButils | None = None


def get_db_client() -> DButils:
    global _db_client

    if _db_client is None:
        _db_client = DButils()

    return _db_client
