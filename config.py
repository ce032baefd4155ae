"""Application configuration for the Dropbox search service"""
from typing import List
from pydantic_settings import BaseSettings
from utils.common import get_log_file_path

class Settings(BaseSettings):
    """Application configuration"""

    # Logger configuration
    LOG_FILE_PATH: str = get_log_file_path()
    LOGGER_NAME: str = "dropbox_search"
    LOG_LEVEL: str = "INFO"
    LOG_MAX_BYTES: int = 5 * 1024 * 1024  # 5MB
    LOG_BACKUP_COUNT: int = 5

    # App metadata
    APP_TITLE: str = "Dropbox AI Search"
    APP_VERSION: str = "1.0.0"

    # API settings
    REQUEST_TIMEOUT: int = 60
    CORS_ORIGINS: List[str] = ["*"]
    DISCONNECT_POLL_SECONDS: float = 0.5

    # Dropbox HTTP API
    DROPBOX_API_URL: str = "https://api.dropboxapi.com/2"
    DROPBOX_CONTENT_URL: str = "https://content.dropboxapi.com/2"

    # Gemini (generative language) API
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    MAX_PROMPT_CHARS: int = 100_000

    # Content extraction
    MAX_CONTENT_CHARS: int = 100_000
    TRUNCATE_SENTENCE_LOOKBACK: int = 1000
    TRUNCATE_PARAGRAPH_LOOKBACK: int = 2000
    MIN_CONTENT_CHARS: int = 10
    DOCX_MIN_CHARS: int = 10

    # PDF strategies
    PDF_MIN_STRUCTURED_CHARS: int = 50
    PDF_MAX_PAGES_FALLBACK: int = 50
    PDF_OPERATOR_MIN_SCORE: int = 100
    PDF_OPERATOR_MAX_CHARS: int = 50_000
    PDF_SCAN_LIMIT: int = 50_000
    PDF_SCAN_MAX_CHARS: int = 30_000
    PDF_MIN_RUN_LENGTH: int = 10

    # Readability gate, tuned for Dutch educational documents
    QUALITY_MIN_CHARS: int = 20
    QUALITY_MIN_WORDS: int = 5
    QUALITY_MIN_WORD_RATIO: float = 0.3
    QUALITY_MIN_READABLE_RATIO: float = 0.7

    # File type categorization (by extension)
    TEXT_EXTENSIONS: List[str] = [
        "txt", "md", "csv", "json", "js", "ts", "html", "css", "py", "java",
        "cpp", "c", "php", "rb", "go", "rs", "swift", "kt", "scala", "sh",
        "bat", "ps1", "xml", "yaml", "yml", "ini", "cfg", "conf", "log",
    ]
    PDF_EXTENSIONS: List[str] = ["pdf"]
    DOCX_EXTENSIONS: List[str] = ["docx", "doc"]
    IMAGE_EXTENSIONS: List[str] = ["jpg", "jpeg", "png", "gif", "bmp", "webp", "svg"]

    # Relevance scoring
    SCORE_NORMALIZER: float = 100.0
    SHORT_DOCUMENT_CHARS: int = 5_000
    LONG_DOCUMENT_CHARS: int = 50_000
    SHORT_DOCUMENT_BONUS: float = 1.2
    LONG_DOCUMENT_PENALTY: float = 0.8
    MULTI_TERM_BONUS: float = 0.2

    # Search defaults
    DEFAULT_MAX_RESULTS: int = 10
    CONTEXT_WINDOW: int = 100
    CONTEXT_MAX_LENGTH: int = 1000
    CONTEXT_OCCURRENCES_PER_TERM: int = 2

    # Indexing (respect Dropbox rate limits)
    INDEX_BATCH_SIZE: int = 3
    INDEX_BATCH_DELAY_SECONDS: float = 0.3
    INDEX_MAX_FILE_BYTES: int = 10 * 1024 * 1024  # 10MB, larger files are indexed by name only

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
