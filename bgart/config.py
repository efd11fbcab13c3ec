import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


class Config:
    BASE_DIR = Path(__file__).resolve().parent.parent
    DATA_DIR = Path(os.getenv("BGART_DATA_DIR", BASE_DIR / "data"))
    SESSIONS_DIR = DATA_DIR / "sessions"
    GEMINI_IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "imagen-4.0-generate-001")
    ALLOWED_EXTS = {".png", ".jpg", ".jpeg", ".webp"}
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", str(200 * 1024 * 1024)))
    JPEG_QUALITY = 90
    PREVIEW_MAX_SIZE = (1280, 720)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


class DevConfig(Config):
    DEBUG = True


class ProdConfig(Config):
    DEBUG = False
