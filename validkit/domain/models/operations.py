"""The closed set of remote operations validkit knows how to call."""

import enum
from typing import Union

from .errors import UnknownOperationError


class Operation(enum.Enum):
    """Remote operations, valued by the method name the service documents."""
    DATA_VERIFICATION = "isValidData"
    DATA_VERIFICATION_RAW = "isValidDataRaw"
    EMAIL_CHECK = "isValidEmail"
    IP_CHECK = "isValidIP"
    PHONE_CHECK = "isValidPhone"
    WAF_CHECK = "protectReq"
    SEND_EMAIL = "sendEmail"
    RANDOM_NUMBER = "getRandom"
    TEXT_EXTRACTION = "extractWithTextly"
    PRAYER_TIMES = "getPrayerTimes"
    INPUT_SANITIZE = "satinize"
    PASSWORD_CHECK = "isValidPwd"

    @classmethod
    def parse(cls, value: Union["Operation", str]) -> "Operation":
        """Coerces an ``Operation`` or its string tag.

        Accepts the enum member name (``EMAIL_CHECK``) or the documented method
        name (``isValidEmail``). ``satinizer`` is accepted as an alias.

        Raises:
            UnknownOperationError: If the tag matches no operation.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            if value == "satinizer":
                return cls.INPUT_SANITIZE
            try:
                return cls(value)
            except ValueError:
                pass
            member = cls.__members__.get(value.upper())
            if member is not None:
                return member
        raise UnknownOperationError(value)

    @property
    def is_private(self) -> bool:
        """Private operations require an API key."""
        return self not in _PUBLIC_OPERATIONS


_PUBLIC_OPERATIONS = frozenset({
    Operation.PRAYER_TIMES,
    Operation.INPUT_SANITIZE,
    Operation.PASSWORD_CHECK,
})
