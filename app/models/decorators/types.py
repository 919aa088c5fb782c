import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TypeVar

from sqlalchemy import DateTime, String, Text
from sqlalchemy.types import TypeDecorator

from app.utils.crypto import TokenCipher

EnumT = TypeVar("EnumT", bound=Enum)


class EnumStringType(TypeDecorator[EnumT]):
    """Stores an enum by member name in a plain string column."""

    impl = String(50)
    cache_ok = True

    def __init__(self, enum_class: type[EnumT], *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._enum_class = enum_class
        self._logger = logging.getLogger(__name__)

    def process_bind_param(self, value: EnumT | str | None, dialect: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            try:
                value = self._enum_class[value]
            except KeyError:
                self._logger.error(f"Invalid enum value: {value} for {self._enum_class}")
                return None
        return value.name

    def process_result_value(self, name: str | None, dialect: Any) -> EnumT | None:
        if name is None:
            return None
        try:
            return self._enum_class[name]
        except KeyError:
            raise ValueError(f"Invalid enum value: {name} for {self._enum_class}")


class EncryptedText(TypeDecorator[str]):
    """Text column whose contents are Fernet-encrypted at rest and returned verbatim on load."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: str | None, dialect: Any) -> str | None:
        if value is None:
            return None
        return TokenCipher.encrypt(value)

    def process_result_value(self, value: str | None, dialect: Any) -> str | None:
        if value is None:
            return None
        return TokenCipher.decrypt(value)


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware datetime that always loads as UTC, including on backends that drop the offset."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
