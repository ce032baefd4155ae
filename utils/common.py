"""Common utilities: path management and file-kind detection"""
import os
from pathlib import PurePosixPath

# ⚠️ DO NOT import settings here - causes circular import with config.py
# Settings is imported lazily inside functions that need it

# ============= Path Management =============

def get_project_root() -> str:
    """Returns the absolute path to the project's root directory."""
    return os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))


def get_log_file_path() -> str:
    """Creates the log directory if it doesn't exist and returns the full log file path."""
    project_root = get_project_root()
    log_dir = os.path.join(project_root, 'log')

    if not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    return os.path.join(log_dir, 'dropbox_search.log')


# ============= File Utilities =============

def get_file_extension(filename: str) -> str:
    """Extracts and normalizes the file extension from a filename or Dropbox path."""
    return PurePosixPath(filename).suffix[1:].lower()


def get_file_name(path: str) -> str:
    """Base name of a Dropbox path ("/Docs/a.pdf" -> "a.pdf")."""
    return PurePosixPath(path).name


def detect_file_kind(filename: str):
    """Map a file name to its FileKind, purely by extension."""
    from config import settings  # Lazy import
    from core.domain import FileKind

    extension = get_file_extension(filename)
    if extension in settings.TEXT_EXTENSIONS:
        return FileKind.TEXT
    if extension in settings.PDF_EXTENSIONS:
        return FileKind.PDF
    if extension in settings.DOCX_EXTENSIONS:
        return FileKind.DOCX
    if extension in settings.IMAGE_EXTENSIONS:
        return FileKind.IMAGE
    return FileKind.OTHER


def format_kb(size: int) -> str:
    """Human readable kilobytes, e.g. 1536 -> "1.5 KB"."""
    return f"{size / 1024:.1f} KB"
