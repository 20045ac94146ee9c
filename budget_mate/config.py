# budget_mate/config.py

from decimal import Decimal
from starlette.config import Config
from starlette.datastructures import Secret

# Values come from a local .env file when present, otherwise from the OS environment
config = Config(".env")

# Supabase connection string example:
# postgresql://[USER]:[PASSWORD]@[DB_HOST]:5432/[DB_NAME]
DATABASE_URL: str = config("DATABASE_URL", default="")
DB_POOL_SIZE: int = config("DB_POOL_SIZE", cast=int, default=10)
DB_MAX_OVERFLOW: int = config("DB_MAX_OVERFLOW", cast=int, default=5)
DB_ECHO: bool = config("DB_ECHO", cast=bool, default=False)

# Shared secret expected in the X-API-Key header
BUDGET_MATE_API_KEY: Secret = config("BUDGET_MATE_API_KEY", cast=Secret, default="")

# Income credits below this amount are never auto-allocated
AUTO_ALLOCATE_MIN_AMOUNT: Decimal = config("AUTO_ALLOCATE_MIN_AMOUNT", cast=Decimal, default="1000.00")

# Household pay cycle used when a profile has none recorded
DEFAULT_PAY_CYCLE: str = config("DEFAULT_PAY_CYCLE", default="fortnightly")

LOG_LEVEL: str = config("LOG_LEVEL", default="INFO")


def async_database_url(url: str) -> str:
    """Rewrites a plain postgres URL for the async psycopg driver."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url
