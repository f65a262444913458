"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from steadfast.domain.config.backoff import BackoffSpec
from steadfast.domain.config.log import LoggingConfig


class AppConfig(BaseModel):
    """Main application configuration.

    Validation is performed at load time to fail fast on configuration errors.

    Attributes:
        backoff: Delay schedule used by the CLI retry commands
        logging: Log output configuration
    """

    backoff: BackoffSpec = Field(default_factory=BackoffSpec)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        json_schema_extra={
            "example": {
                "backoff": {
                    "count": 3,
                    "first_delay": 0.5,
                    "max_delay": 10.0,
                    "growth_factor": 2.0,
                    "jitter_fraction": 0.1,
                    "seed": None,
                },
                "logging": {
                    "level": "INFO",
                },
            }
        },
    )
