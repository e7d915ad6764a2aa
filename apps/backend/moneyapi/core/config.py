from enum import Enum
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class AccountDeletePolicy(str, Enum):
    """What happens to transactions that still reference a deleted account."""

    BLOCK = "block"
    CASCADE = "cascade"


class Settings(BaseSettings):
    APP_NAME: str = "Money Ledger"
    ENV: str = "dev"

    # apps/backend/db.sqlite3 as an absolute path so the CWD does not matter
    _default_db_path = Path(__file__).resolve().parents[2] / "db.sqlite3"
    DATABASE_URL: str = f"sqlite:///{_default_db_path}"
    SQLITE_BUSY_TIMEOUT: float = 30.0

    # bounded retry for lost-update conflicts on account balances
    BALANCE_RETRY_ATTEMPTS: int = 5
    BALANCE_RETRY_MAX_WAIT: float = 0.25

    ACCOUNT_DELETE_POLICY: AccountDeletePolicy = AccountDeletePolicy.BLOCK

    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "Asia/Jakarta"

    model_config = SettingsConfigDict(env_file=(".env",), env_prefix="MONEYAPI_", case_sensitive=False)


settings = Settings()
