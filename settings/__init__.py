import os
from typing import TYPE_CHECKING, cast

from pydantic_settings import BaseSettings

# Set to "test" to load the in-process test settings instead of reading the environment.
SETTINGS_MODE_VARIABLE = "MAILMIRROR_ENV"


def get_settings() -> BaseSettings:
    if os.getenv(SETTINGS_MODE_VARIABLE) == "test":
        from .test_settings import TestSettings

        return TestSettings()

    from .settings import Settings

    return Settings()


if TYPE_CHECKING:
    from .settings import Settings

    settings = cast(Settings, get_settings())
else:
    settings = get_settings()
