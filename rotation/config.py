"""
Configuration models for ROTATION MOMENTUM.

Monthly top-N rate-of-change rotation configuration.
"""

import logging
import os
from datetime import date
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_EQUITY = 1_000_000.0


class StrategyConfig(BaseModel):
    """
    Rotation strategy parameters.

    Instruments are ranked by their `lookback`-bar rate of change once a
    month; the best `top_count` with a positive score are held long.
    """

    lookback: int = Field(default=42, ge=1, description="ROC window in bars")
    min_len: int = Field(default=300, ge=0, description="Bars required before a score is ranked")
    top_count: int = Field(default=4, ge=1, description="Long slots per rebalance")
    warmup_days: int = Field(default=5, ge=0, description="Day transitions skipped at start")
    trading_start: Optional[date] = Field(default=None, description="Trading starts after this date")
    trading_stop: Optional[date] = Field(default=None, description="Positions liquidated after this date")

    @model_validator(mode="after")
    def stop_after_start(self) -> "StrategyConfig":
        if (
            self.trading_start is not None
            and self.trading_stop is not None
            and self.trading_stop < self.trading_start
        ):
            raise ValueError("trading_stop must not be before trading_start")
        return self


class AccountConfig(BaseModel):
    """Paper account settings."""

    initial_equity: float = Field(default=DEFAULT_INITIAL_EQUITY, gt=0)

    @field_validator("initial_equity", mode="before")
    @classmethod
    def parse_equity(cls, v):
        # Unparsable or missing values fall back to the default
        if v is None or v == "":
            return DEFAULT_INITIAL_EQUITY
        try:
            return float(v)
        except (TypeError, ValueError):
            logger.warning(
                f"Unparsable initial_equity {v!r}, using {DEFAULT_INITIAL_EQUITY:,.0f}"
            )
            return DEFAULT_INITIAL_EQUITY


class UniverseConfig(BaseModel):
    """Subscription universe."""

    symbols: List[str] = Field(default_factory=list)
    venue: str = Field(default="ib", description="Venue used for instrument variations")

    @field_validator("symbols", mode="before")
    @classmethod
    def split_symbols(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        return [s.strip() for s in v if s and s.strip()]

    @field_validator("symbols")
    @classmethod
    def unique_symbols(cls, v: List[str]) -> List[str]:
        if len(set(v)) != len(v):
            raise ValueError("symbols must be unique")
        return v


class ReportConfig(BaseModel):
    """Report settings."""

    write_report: bool = Field(default=False)


class EmailConfig(BaseModel):
    """SMTP report delivery."""

    enabled: bool = Field(default=False)
    host: str = Field(default="smtp.sendgrid.net")
    port: int = Field(default=587, ge=1, le=65535)
    user: str = Field(default="")
    password: str = Field(default="")
    sender: str = Field(default="")
    recipients: str = Field(default="", description="Comma separated addresses")

    @property
    def recipient_list(self) -> List[str]:
        return [r.strip() for r in self.recipients.split(",") if r.strip()]


class PathsConfig(BaseModel):
    """File path settings."""

    data_dir: str = Field(default="data")
    log_dir: str = Field(default="logs")
    output_dir: str = Field(default="output")


class Config(BaseModel):
    """Main configuration model for ROTATION MOMENTUM."""

    strategy: StrategyConfig = Field(default_factory=StrategyConfig)
    account: AccountConfig = Field(default_factory=AccountConfig)
    universe: UniverseConfig = Field(default_factory=UniverseConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)

    model_config = {"frozen": True}


def load_config(config_path: str = "config.yaml") -> Config:
    """Load configuration from YAML file with environment variable override support.

    Environment variables take precedence over config file values:
    - ROTATION_EMAIL_USER: Override email.user
    - ROTATION_EMAIL_PASSWORD: Override email.password
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if "ROTATION_EMAIL_USER" in os.environ:
        data.setdefault("email", {})["user"] = os.environ["ROTATION_EMAIL_USER"]
    if "ROTATION_EMAIL_PASSWORD" in os.environ:
        data.setdefault("email", {})["password"] = os.environ["ROTATION_EMAIL_PASSWORD"]

    return Config(**data)


def get_default_config() -> Config:
    """Get configuration with all defaults."""
    return Config()
