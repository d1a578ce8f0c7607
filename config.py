import logging
import os
import warnings

from dotenv import load_dotenv

load_dotenv()


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# MongoDB
MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "church-pickup")
# Multi-document transactions need a replica set
MONGODB_TRANSACTIONS = _get_bool("MONGODB_TRANSACTIONS")

# Security
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))  # 24 hours
APPEAL_TOKEN_EXPIRE_DAYS = int(os.getenv("APPEAL_TOKEN_EXPIRE_DAYS", "7"))

ALLOWED_ORIGINS = [
    o.strip()
    for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
    if o.strip()
]

# Scheduling rules
SERVICE_TIMEZONE = os.getenv("SERVICE_TIMEZONE", "America/Toronto")
REQUEST_CUTOFF_HOURS = float(os.getenv("REQUEST_CUTOFF_HOURS", "1"))
CANCEL_CUTOFF_HOURS = float(os.getenv("CANCEL_CUTOFF_HOURS", "2"))
MAX_RECURRING_MONTHS = int(os.getenv("MAX_RECURRING_MONTHS", "3"))
MIN_RECURRING_WEEKS = int(os.getenv("MIN_RECURRING_WEEKS", "2"))
SERVICE_RESTORE_HOURS = int(os.getenv("SERVICE_RESTORE_HOURS", "24"))

# Geocoding (Nominatim compatible)
GEOCODING_BASE_URL = os.getenv("GEOCODING_BASE_URL", "https://nominatim.openstreetmap.org").rstrip("/")
GEOCODING_USER_AGENT = os.getenv("GEOCODING_USER_AGENT", "ChurchPickup/1.0 (admin@example.org)")
GEOCODING_TIMEOUT_SECONDS = float(os.getenv("GEOCODING_TIMEOUT_SECONDS", "10"))

# Pagination
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging() -> None:
    """Configure the root logger once for the whole process."""
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(LOG_LEVEL)
        return
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
