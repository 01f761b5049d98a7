from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Dispatch settings loaded from FAULTROUTE_* environment variables.

    They shape the default fallback handler and the response returned when a
    raised error was dispatched but no handler wrote anything.
    """

    # Status and envelope code for errors no registered identity matches
    fallback_status_code: int = 500
    fallback_error_code: str = "internal_error"

    # Put str(exc) in the fallback message; turn off to hide internals from clients
    expose_error_messages: bool = True

    model_config = SettingsConfigDict(
        env_prefix="FAULTROUTE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )


settings = Settings()
