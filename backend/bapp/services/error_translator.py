"""
Raw storage / auth error -> user message (Bahasa Indonesia).
Patterns come from config/error_messages.yaml, checked in order; first match wins.
"""
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Pattern, Tuple

import yaml

from bapp.config import BASE_DIR, settings

GENERIC_MESSAGE = "Terjadi kesalahan. Silakan coba lagi atau hubungi administrator."

_PLACEHOLDER = re.compile(r"\$(\d+)")


@dataclass
class TranslatedError:
    message: str
    code: Optional[str]
    original_message: str


def _default_translations() -> list:
    """Built-in defaults, used when the YAML file is missing"""
    return [
        {
            "pattern": r"duplicate key value violates unique constraint|UNIQUE constraint failed",
            "message": "Data dengan nilai yang sama sudah ada. Silakan periksa dan gunakan nilai yang unik.",
            "code": "DUPLICATE_KEY",
        },
        {
            "pattern": r"violates foreign key constraint|FOREIGN KEY constraint failed",
            "message": "Referensi data tidak valid. Data yang direferensikan mungkin sudah dihapus.",
            "code": "INVALID_FOREIGN_KEY",
        },
        {
            "pattern": r"NOT NULL constraint failed: \w+\.(\w+)",
            "message": "Field $1 wajib diisi dan tidak boleh kosong.",
            "code": "REQUIRED_FIELD",
        },
    ]


def _load_translations(path: Optional[Path] = None) -> list:
    path = path or settings.error_messages_file
    if not path.is_absolute():
        path = BASE_DIR / path
    if not path.exists():
        return _default_translations()
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return data.get("translations") or _default_translations()


def compile_translations(entries: list) -> List[Tuple[Pattern, str, Optional[str]]]:
    return [(re.compile(e["pattern"], re.IGNORECASE), e["message"], e.get("code")) for e in entries]


@lru_cache(maxsize=1)
def _translations() -> List[Tuple[Pattern, str, Optional[str]]]:
    return compile_translations(_load_translations())


def _original_message(error: object) -> str:
    if isinstance(error, str):
        return error
    if isinstance(error, BaseException):
        # SQLAlchemy wraps the driver error; its text carries the constraint name
        orig = getattr(error, "orig", None)
        return str(orig) if orig is not None else str(error)
    if error is not None and getattr(error, "message", None) is not None:
        return str(error.message)
    return "Unknown error"


def translate_error(error: object, translations: Optional[List[Tuple[Pattern, str, Optional[str]]]] = None) -> TranslatedError:
    original = _original_message(error)
    for pattern, message, code in translations if translations is not None else _translations():
        match = pattern.search(original)
        if match:
            text = _PLACEHOLDER.sub(
                lambda m: (match.group(int(m.group(1))) or "") if int(m.group(1)) <= (pattern.groups or 0) else m.group(0),
                message,
            )
            return TranslatedError(message=text, code=code, original_message=original)
    return TranslatedError(message=GENERIC_MESSAGE, code=None, original_message=original)

