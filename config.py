import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str]
    database_name: str
    firebase_credentials: Optional[str]
    cors_origins: List[str]
    log_level: str
    port: int


@lru_cache()
def get_settings() -> Settings:
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        database_url=os.getenv("DATABASE_URL"),
        database_name=os.getenv("DATABASE_NAME", "EliteClubDB"),
        firebase_credentials=os.getenv("FIREBASE_CREDENTIALS"),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=int(os.getenv("PORT", 8000)),
    )
