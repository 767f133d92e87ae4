"""
Configuration for the SBit transaction builder.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sbitcore.constants import CONTRACT_CALL_DUST_THRESHOLD, PAYMENT_CHANGE_THRESHOLD
from sbitcore.models import NetworkType


class BuilderConfig(BaseModel):
    """Change-output policy, one threshold per transaction kind (in coins)."""

    model_config = ConfigDict(frozen=True)

    # A remainder strictly above the threshold becomes a change output;
    # anything at or below it is left to the miner.
    payment_change_threshold: Decimal = Field(default=PAYMENT_CHANGE_THRESHOLD, ge=0)
    contract_create_change_threshold: Decimal = Field(default=PAYMENT_CHANGE_THRESHOLD, ge=0)
    contract_call_dust_threshold: Decimal = Field(default=CONTRACT_CALL_DUST_THRESHOLD, ge=0)


DEFAULT_BUILDER_CONFIG = BuilderConfig()


class CliSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SBIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    network: NetworkType = NetworkType.MAINNET
    log_level: str = "INFO"

    payment_change_threshold: Decimal = Field(default=PAYMENT_CHANGE_THRESHOLD, ge=0)
    contract_create_change_threshold: Decimal = Field(default=PAYMENT_CHANGE_THRESHOLD, ge=0)
    contract_call_dust_threshold: Decimal = Field(default=CONTRACT_CALL_DUST_THRESHOLD, ge=0)

    def builder_config(self) -> BuilderConfig:
        return BuilderConfig(
            payment_change_threshold=self.payment_change_threshold,
            contract_create_change_threshold=self.contract_create_change_threshold,
            contract_call_dust_threshold=self.contract_call_dust_threshold,
        )


def get_settings() -> CliSettings:
    return CliSettings()
