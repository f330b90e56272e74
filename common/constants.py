"""Project-wide constants (size limits, platform URLs)."""

MAX_FILE_SIZE_BYTES: int = 100 * 1024 * 1024  # 100 MiB upload ceiling

# Stored payloads are split so every chunk fits in one BSON document (16 MiB).
CHUNK_SIZE_BYTES: int = 4 * 1024 * 1024

# File ids are stored as BSON int64.
MAX_FILE_ID: int = 2 ** 63 - 1

TELEGRAM_FILE_URL_TEMPLATE: str = "https://api.telegram.org/file/bot{token}/{file_path}"

PLACEHOLDER_BOT_TOKEN: str = "YOUR_BOT_TOKEN_HERE"
