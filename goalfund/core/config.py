# goalfund/core/config.py

from pathlib import Path
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the project root directory (where .env should be located)
BASE_DIR = Path(__file__).resolve().parent.parent.parent

SUPPORTED_CURRENCIES: List[str] = [
    "USD", "INR", "EUR", "GBP", "JPY", "CAD", "AUD", "CHF", "CNY", "KRW",
    "SGD", "HKD", "MXN", "BRL", "ZAR", "RUB", "THB", "VND", "IDR", "MYR",
    "PHP", "TRY", "AED", "SAR", "EGP", "PKR", "BDT", "LKR", "NPR",
]

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra="ignore"
    )

    # App Configuration
    APP_NAME: str = "Goal Funding API"
    DEBUG: bool = False
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"

    # Database Configuration
    DATABASE_URL: str
    DB_MAX_RETRIES: int = 3
    DB_RETRY_DELAY: float = 0.5

    # JWT / Security Configuration
    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    # CORS Configuration
    FRONTEND_URL: str = "http://localhost:3000"

    # Budget defaults (50/30/20 rule)
    DEFAULT_EXPENSES_PERCENTAGE: float = 50.0
    DEFAULT_SAVINGS_PERCENTAGE: float = 30.0
    DEFAULT_GOALS_PERCENTAGE: float = 20.0
    DEFAULT_CURRENCY: str = "INR"
    PERCENTAGE_TOLERANCE: float = 0.01

    # Allocation engine
    SETTINGS_FETCH_TIMEOUT: float = 5.0
    ALLOCATION_CONFLICT_RETRIES: int = 1

    # Natural-language intent parser (OpenAI compatible chat completions)
    INTENT_PARSER_URL: str = "https://openrouter.ai/api/v1/chat/completions"
    INTENT_PARSER_API_KEY: str = ""
    INTENT_PARSER_MODEL: str = "meta-llama/llama-3.1-8b-instruct"
    INTENT_PARSER_TIMEOUT: float = 20.0

    @property
    def is_sqlite(self) -> bool:
        """SQLite (aiosqlite) is used for local runs and tests"""
        return self.DATABASE_URL.startswith("sqlite")

    @property
    def is_supabase(self) -> bool:
        """Check if we're using Supabase database"""
        return any(d in self.DATABASE_URL for d in [
            "supabase.co",
            "supabase.com",
            "pooler.supabase",
        ])

# Create a global settings instance
settings = Settings()
