import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tournament.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEFAULT_MATCHDAY_HOURS = float(os.getenv("DEFAULT_MATCHDAY_HOURS", "24"))

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

CORS_ORIGINS = _cors_origins
