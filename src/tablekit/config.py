import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load the appropriate .env file on module import
env = os.environ.get("TABLEKIT_ENV", "development").lower()
env_file = f".env.{env}"
if os.path.exists(env_file):
    load_dotenv(env_file)
else:
    # Fall back to the default .env file
    load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    environment: str
    database_url: str
    autoload_fields: bool
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            environment=env,
            database_url=os.environ.get("DATABASE_URL", ""),
            autoload_fields=_as_bool(os.environ.get("TABLEKIT_AUTOLOAD", "true")),
            log_level=os.environ.get("TABLEKIT_LOG_LEVEL", "INFO").upper(),
        )


config = Config.from_env()
