"""Generator configuration: identity and timestamp stamped into the output header."""

from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError, version

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

GENERATOR_NAME = "openapi-tsgen"
ENV_PREFIX = "OPENAPI_TSGEN_"
# Reproducible builds: a fixed generation time in seconds since the epoch.
EPOCH_ENV = "SOURCE_DATE_EPOCH"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def installed_version() -> str:
    try:
        return version(GENERATOR_NAME)
    except PackageNotFoundError:
        return ""


class GeneratorConfig(BaseSettings):
    """Loaded from ``OPENAPI_TSGEN_*`` variables and ``SOURCE_DATE_EPOCH``.

    Keyword arguments take precedence over the environment.
    """

    generator: str = Field(default=GENERATOR_NAME, description="Generator name in the header")
    version: str = Field(default_factory=installed_version, description="Generator version in the header")
    generated_at: datetime = Field(
        default_factory=_utcnow,
        validation_alias=EPOCH_ENV,
        description="Generation time; SOURCE_DATE_EPOCH seconds when set",
    )

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, populate_by_name=True, extra="ignore")

    @property
    def label(self) -> str:
        """``openapi-tsgen@1.2.0``, or the bare name when no version is known."""
        return f"{self.generator}@{self.version}" if self.version else self.generator

    @property
    def timestamp(self) -> str:
        """RFC 3339 UTC, second precision."""
        at = self.generated_at
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        return at.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    @classmethod
    def from_env(cls) -> "GeneratorConfig":
        """Build a config from the environment and the installed package metadata."""
        return cls()
