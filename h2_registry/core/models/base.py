import datetime
import enum
from enum import Enum
from functools import partial

from pydantic import BaseModel

utc_datetime_now = partial(datetime.datetime.now, datetime.timezone.utc)


class Role(str, Enum):
    MAIN_ADMIN = "main_admin"
    COUNTRY_ADMIN = "country_admin"
    STATE_ADMIN = "state_admin"
    CITY_ADMIN = "city_admin"
    PRODUCER = "producer"
    BUYER = "buyer"
    AUDITOR = "auditor"

    def __str__(self):
        return self.value


# Order in which a held role is reported as an account's primary role
ROLE_PRECEDENCE = [
    Role.MAIN_ADMIN,
    Role.COUNTRY_ADMIN,
    Role.STATE_ADMIN,
    Role.CITY_ADMIN,
    Role.PRODUCER,
    Role.BUYER,
    Role.AUDITOR,
]


class ObservationType(str, Enum):
    ROLE_GRANTED = "RoleGranted"
    APPOINTED = "Appointed"
    CREDITS_ISSUED = "CreditsIssued"
    CREDIT_TRANSFERRED = "CreditTransferred"
    CREDIT_RETIRED = "CreditRetired"
    PAUSED = "Paused"
    UNPAUSED = "Unpaused"


class logging_levels(str, enum.Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingLevelRequest(BaseModel):
    level: logging_levels
