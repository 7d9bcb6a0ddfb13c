from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# Shown instead of the connection target on the control plane
REDACTED = "***** (hidden)"

DEFAULT_INTERVAL_SECONDS = 300
DEFAULT_MAX_RETRIES = 5

class ProcessingConfig(BaseModel):
    """
    Hot-reloadable processing tunables.
    Instances are immutable; a reload swaps the whole object.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    connection_target: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("connection_target", "ConnectionString"),
    )
    interval_seconds: int = Field(
        default=DEFAULT_INTERVAL_SECONDS,
        gt=0,
        strict=True,
        validation_alias=AliasChoices("interval_seconds", "ProcessingIntervalSeconds"),
    )
    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        strict=True,
        validation_alias=AliasChoices("max_retries", "MaxErrorRetries"),
    )

    def redacted(self) -> "RedactedProcessingConfig":
        return RedactedProcessingConfig(
            interval_seconds=self.interval_seconds,
            max_retries=self.max_retries,
        )

class RedactedProcessingConfig(BaseModel):
    connection_target: str = REDACTED
    interval_seconds: int
    max_retries: int

class CycleStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    last_claimed_count: int = 0
    last_success_count: int = 0
    last_error_count: int = 0
