"""Runtime configuration for the booking core.

All values are read from environment variables once per process via
``get_settings()``. Tests call ``reset_settings()`` after patching the
environment.
"""

import os
from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_QR_URL_TEMPLATE = (
    "https://qr.sepay.vn/img?acc={ACC}&bank={BANK}&amount={AMOUNT}&des={DES}"
)


class BankAccount(BaseModel):
    """Receiving bank account shown in transfer instructions."""

    model_config = ConfigDict(frozen=True)

    bank_name: str = Field(default="", description="Bank short name, e.g. MBBank")
    account_number: str = Field(default="", description="Receiving account number")
    account_name: str = Field(default="", description="Account holder name")
    bank_bin: str = Field(
        default="", description="Bank BIN, filled into {BIN} in the QR URL template"
    )


class BookingSettings(BaseModel):
    """Immutable settings for booking, pricing and payment behaviour."""

    model_config = ConfigDict(frozen=True)

    environment: str = Field(default="dev")
    order_prefix: str = Field(default="HS", description="Prefix of external order codes")
    lookup_code_prefix: str = Field(
        default="NVH", description="Prefix of public reservation lookup codes"
    )
    deposit_min_percent: int = Field(default=20, ge=0, le=100)
    deposit_max_percent: int = Field(default=30, ge=0, le=100)
    deposit_default_percent: int = Field(default=30, ge=0, le=100)
    reservation_ttl_seconds: int = Field(
        default=300, gt=0, description="Seconds a pending transfer booking is held"
    )
    checkin_cutoff_hour: int = Field(
        default=14, ge=0, le=23, description="Same-day overnight bookings close at this hour"
    )
    local_timezone: str = Field(default="Asia/Ho_Chi_Minh")
    create_max_attempts: int = Field(default=5, ge=1)
    contact_lookup_limit: int = Field(default=3, ge=1)
    bank: BankAccount = Field(default_factory=BankAccount)
    qr_url_template: str = Field(default=DEFAULT_QR_URL_TEMPLATE)

    @model_validator(mode="after")
    def _check_deposit_bounds(self) -> "BookingSettings":
        if self.deposit_min_percent > self.deposit_max_percent:
            raise ValueError("deposit_min_percent must not exceed deposit_max_percent")
        return self

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.local_timezone)

    @classmethod
    def from_env(cls) -> "BookingSettings":
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ
        values: dict[str, object] = {
            "environment": env.get("ENVIRONMENT", "dev"),
            "bank": BankAccount(
                bank_name=env.get("SEPAY_BANK_NAME", ""),
                account_number=env.get("SEPAY_BANK_ACCOUNT", ""),
                account_name=env.get("SEPAY_ACCOUNT_NAME", ""),
                bank_bin=env.get("SEPAY_BANK_BIN", ""),
            ),
        }
        for field_name, var in (
            ("order_prefix", "ORDER_PREFIX"),
            ("lookup_code_prefix", "BOOKING_CODE_PREFIX"),
            ("local_timezone", "LOCAL_TIMEZONE"),
            ("qr_url_template", "SEPAY_QR_URL_TEMPLATE"),
        ):
            if env.get(var):
                values[field_name] = env[var]
        for field_name, var in (
            ("deposit_min_percent", "DEPOSIT_MIN_PERCENT"),
            ("deposit_max_percent", "DEPOSIT_MAX_PERCENT"),
            ("deposit_default_percent", "DEPOSIT_DEFAULT_PERCENT"),
            ("reservation_ttl_seconds", "RESERVATION_TTL_SECONDS"),
            ("checkin_cutoff_hour", "CHECKIN_CUTOFF_HOUR"),
            ("create_max_attempts", "RESERVATION_CREATE_MAX_ATTEMPTS"),
        ):
            if env.get(var):
                values[field_name] = int(env[var])
        return cls(**values)


@lru_cache(maxsize=1)
def get_settings() -> BookingSettings:
    """Get the process-wide settings instance."""
    return BookingSettings.from_env()


def reset_settings() -> None:
    """Drop cached settings (for testing only)."""
    get_settings.cache_clear()
