from enum import Enum


class EnvironmentName(Enum):
    TESTING = "test"
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @property
    def is_deployed(self) -> bool:
        """Staging and production report errors to Sentry; local runs and tests never do."""
        return self in (EnvironmentName.STAGING, EnvironmentName.PRODUCTION)
