"""
Утилиты: атомарная запись JSON, время и разбор значений из env.
"""

import os
import json
from datetime import datetime
from typing import Any, Optional
from pathlib import Path


def atomic_write(file_path: str, data: Any) -> None:
    """
    Атомарная запись в JSON файл через временный файл.

    Args:
        file_path: Путь к целевому файлу
        data: Данные для записи
    """
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)
    tmp_path = file_path + '.tmp'
    try:
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, file_path)
    except Exception:
        # Не оставляем за собой полузаписанный файл
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def now_iso() -> str:
    """Текущее время в ISO-формате (для created_at / enqueued_at)."""
    return datetime.now().isoformat()


def parse_optional_int(value: Optional[str]) -> Optional[int]:
    """
    Парсит целое из строки env. Пустая строка или None -> None.

    Raises:
        ValueError: если строка не является целым числом
    """
    if value is None or not value.strip():
        return None
    return int(value.strip())
