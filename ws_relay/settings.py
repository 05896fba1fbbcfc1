from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ws_relay.constants import BroadcastPolicy, EnvelopeName


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=True, env_file=".env", extra="ignore"
    )

    # Listener settings
    RELAY_HOST: str = "0.0.0.0"
    RELAY_PORT: int = 8080

    # Fan-out settings
    BROADCAST_POLICY: BroadcastPolicy = BroadcastPolicy.ALL
    ENVELOPE: EnvelopeName = EnvelopeName.RAW
    MESSAGE_EVENT: str = "message"
    ACK_EVENT: str = "ack"
    ACK_TEMPLATE: str = "Server received: {payload}"
    WELCOME_MESSAGE: str | None = None

    # Sessions that stay silent longer than this are closed (None disables)
    IDLE_TIMEOUT_SECONDS: float | None = None

    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    ENVIRONMENT: str = "development"

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str = "logs/relay_errors.log"
    # Paths to exclude from access logs (e.g., /metrics, /health)
    LOG_EXCLUDED_PATHS: list[str] = ["/metrics", "/health"]

    @field_validator("IDLE_TIMEOUT_SECONDS")
    @classmethod
    def validate_idle_timeout(cls, v: float | None) -> float | None:
        """Reject non-positive idle timeouts."""
        if v is not None and v <= 0:
            raise ValueError("IDLE_TIMEOUT_SECONDS must be positive")
        return v

    @field_validator("ACK_TEMPLATE")
    @classmethod
    def validate_ack_template(cls, v: str) -> str:
        """The acknowledgment template may only reference {payload}."""
        try:
            v.format(payload="")
        except (KeyError, IndexError, ValueError) as e:
            raise ValueError(f"Invalid ACK_TEMPLATE: {e}") from e
        return v


app_settings = Settings()
