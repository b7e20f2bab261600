import os

APP_NAME = "QuizQuest"
APP_VERSION = "1.0.0"

# Prefer DATABASE_URL (e.g., Postgres in deployment). Fallback to local SQLite.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./quizquest.db")

# Empty REDIS_URL keeps budget/BYOK state in process memory
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TEMPERATURE = float(os.getenv("OPENAI_TEMPERATURE", "0.2"))
OPENAI_TIMEOUT = float(os.getenv("OPENAI_TIMEOUT", "60"))

PDF_PAGE_LIMIT = int(os.getenv("PDF_PAGE_LIMIT", "10"))
PDF_CHAR_LIMIT = int(os.getenv("PDF_CHAR_LIMIT", "40000"))
OCR_SCALE = float(os.getenv("OCR_SCALE", "2.0"))
OCR_LANG = os.getenv("OCR_LANG", "eng")
TESSERACT_CMD = os.getenv("TESSERACT_CMD")

MAX_QUESTIONS = int(os.getenv("MAX_QUESTIONS", "20"))

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "1") not in ("0", "false", "False", "")
RATE_LIMIT_AI = os.getenv("RATE_LIMIT_AI", "5/minute")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
