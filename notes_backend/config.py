import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


# JWT settings
SECRET_KEY = os.getenv("SECRET_KEY", "temporary_dev_secret")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = _int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 30)  # 30 days
FLASH_EXPIRE_SECONDS = 60

# Password hashing (bcrypt cost factor)
BCRYPT_ROUNDS = _int_env("BCRYPT_ROUNDS", 10)

# Listing
PAGE_SIZE = 5

# Media uploads
MEDIA_DIR = Path(os.getenv("MEDIA_DIR", "uploads"))
MEDIA_URL_PREFIX = "/uploads"
ALLOWED_MEDIA_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}

TEMPLATES_DIR = BASE_DIR / "templates"

# Server
HOST = os.getenv("HOST", "127.0.0.1")
PORT = _int_env("PORT", 3000)
