import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# -------- STORE --------
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./halls.db")
STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", 5))

# -------- LOCKING --------
REDIS_URL = os.getenv("REDIS_URL")
HALL_LOCK_LEASE_SECONDS = float(os.getenv("HALL_LOCK_LEASE_SECONDS", 30))

# -------- POLICIES --------
HALL_DELETE_POLICY = os.getenv("HALL_DELETE_POLICY", "block")
ALLOW_COMPLETE_WITH_PARTIAL_PAYMENT = _flag("ALLOW_COMPLETE_WITH_PARTIAL_PAYMENT", True)
REQUIRE_IDEMPOTENCY_KEY = _flag("REQUIRE_IDEMPOTENCY_KEY", False)

# -------- LOGGING --------
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# -------- BLOB STORE --------
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")
CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "hall_images")
