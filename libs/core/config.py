"""Configuration management for the x402 claim service."""

from enum import Enum
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv()


class UnresolvedChallengePolicy(str, Enum):
    """What the agent does with a 402 it has no resolver for."""

    FAIL = "fail"
    ACKNOWLEDGE = "acknowledge"


class ClaimServerSettings(BaseSettings):
    """Claim server settings."""

    model_config = SettingsConfigDict(populate_by_name=True)

    host: str = Field(default="0.0.0.0", alias="CLAIM_SERVER_HOST")
    port: int = Field(default=5000, alias="CLAIM_SERVER_PORT")
    challenge_token: str = Field(default="monad-testnet-0x123", alias="CHALLENGE_TOKEN")
    reward_amount: str = Field(default="1.0", alias="REWARD_AMOUNT")
    reward_unit: str = Field(default="PRP", alias="REWARD_UNIT")
    cors_default_origin: str = Field(default="http://localhost:5173", alias="CORS_DEFAULT_ORIGIN")

    # Opt-in single-use challenge ledger (replay protection)
    ledger_enabled: bool = Field(default=False, alias="CHALLENGE_LEDGER_ENABLED")
    challenge_ttl_seconds: int = Field(default=300, alias="CHALLENGE_TTL_SECONDS")

    @property
    def reward_label(self) -> str:
        """Reward as shown on the wire, e.g. ``1.0 PRP``."""
        return f"{self.reward_amount} {self.reward_unit}"


class ClaimAgentSettings(BaseSettings):
    """Claim agent settings."""

    model_config = SettingsConfigDict(populate_by_name=True)

    claim_url: str = Field(default="http://127.0.0.1:5000/api/claim", alias="CLAIM_URL")
    request_timeout: float = Field(default=30.0, alias="CLAIM_REQUEST_TIMEOUT")
    resolution_marker: str = Field(default="shielded", alias="PAYMENT_RESOLUTION_MARKER")
    unresolved_policy: UnresolvedChallengePolicy = Field(
        default=UnresolvedChallengePolicy.FAIL, alias="UNRESOLVED_CHALLENGE_POLICY"
    )


class RewardTokenSettings(BaseSettings):
    """Reward token used by the shielded transfer fallback."""

    model_config = SettingsConfigDict(populate_by_name=True)

    token_address: str = Field(
        default="0x0000000000000000000000000000000000000000", alias="PRP_TOKEN_ADDRESS"
    )
    decimals: int = Field(default=18, alias="PRP_DECIMALS")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_to_file: bool = Field(default=True, alias="LOG_TO_FILE")

    # Sub-settings
    server: ClaimServerSettings = Field(default_factory=ClaimServerSettings)
    agent: ClaimAgentSettings = Field(default_factory=ClaimAgentSettings)
    reward_token: RewardTokenSettings = Field(default_factory=RewardTokenSettings)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
