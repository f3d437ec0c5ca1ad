"""
JSON-хранилище очередей с атомарной записью.

Обе очереди хранятся одним документом и пишутся только вместе:
{"leaders": [...], "members": [...]}.
"""

import json
import os
from threading import Lock

from ..types import QueueState, empty_state
from ..errors import PersistenceFailure
from .logger import get_logger, increment
from .util import atomic_write

logger = get_logger('storage')


def _is_user_id(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_leader_entry(entry) -> bool:
    """Запись лидера: user_id, additional_needed и список crew из ID."""
    return (
        isinstance(entry, dict)
        and _is_user_id(entry.get('user_id'))
        and _is_user_id(entry.get('additional_needed'))
        and isinstance(entry.get('crew'), list)
        and all(_is_user_id(uid) for uid in entry['crew'])
    )


def is_member_entry(entry) -> bool:
    return isinstance(entry, dict) and _is_user_id(entry.get('user_id'))


class QueueStorage:
    """Долговременное хранилище пары очередей (лидеры + участники)."""

    def __init__(self, file_path: str = 'data/queues.json'):
        self.file_path = file_path
        self._lock = Lock()

    def load(self) -> QueueState:
        """
        Загружает очереди из файла.

        Отсутствующий или повреждённый файл даёт пустое состояние:
        бот должен подняться в любом случае.
        Записи неверной формы отбрасываются по одной.
        """
        if not os.path.exists(self.file_path):
            logger.info(f"Файл очередей {self.file_path} не найден, начинаем с пустых очередей")
            return empty_state()

        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Не удалось прочитать {self.file_path}: {e}", exc_info=True)
            return empty_state()

        if not isinstance(data, dict):
            logger.error(f"Неожиданный формат {self.file_path}: {type(data).__name__}")
            return empty_state()

        state: QueueState = {
            'leaders': self._clean_entries(data.get('leaders'), is_leader_entry, 'leaders'),
            'members': self._clean_entries(data.get('members'), is_member_entry, 'members'),
        }
        logger.info(
            f"Загружены очереди: лидеров {len(state['leaders'])}, участников {len(state['members'])}"
        )
        return state

    def _clean_entries(self, raw, check, queue_name: str) -> list:
        """Оставляет только записи нужной формы, остальные пишет в лог и отбрасывает."""
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.error(f"Очередь {queue_name} в {self.file_path} не является списком, очередь сброшена")
            return []

        entries = []
        for entry in raw:
            if check(entry):
                entries.append(entry)
            else:
                logger.warning(f"Отброшена повреждённая запись {queue_name}: {entry!r}",
                               extra={'event': 'corrupt_entry_dropped'})
        return entries

    def write(self, state: QueueState) -> None:
        """
        Записывает снимок обеих очередей атомарно.

        Raises:
            PersistenceFailure: если запись не удалась
        """
        try:
            with self._lock:
                atomic_write(self.file_path, state)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceFailure(f"{self.file_path}: {e}") from e

    def save(self, state: QueueState) -> bool:
        """
        Сохраняет снимок. Ошибка записи логируется и не пробрасывается.

        Returns:
            True при успехе
        """
        try:
            self.write(state)
        except PersistenceFailure as e:
            increment('persistence_failures')
            logger.error(
                f"❌ Ошибка записи очередей: {e}",
                exc_info=True,
                extra={'event': 'persistence_failure', 'error_type': type(e).__name__}
            )
            return False

        logger.debug("Очереди сохранены")
        return True
