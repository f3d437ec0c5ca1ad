"""
Централизованная система логирования и счётчики событий комплектовщика.
"""

import logging
import logging.handlers
import json
import sys
import threading
import time
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from pathlib import Path

ROOT_LOGGER_NAME = 'teamfinder'

# Поля из extra, которые попадают в структурированный лог
EXTRA_FIELDS = (
    'user_id', 'chat_id', 'leader_id', 'crew_ids', 'event',
    'handler_name', 'duration_ms', 'error_type',
)


class JsonFormatter(logging.Formatter):
    """Форматтер для JSON логов."""

    def format(self, record: logging.LogRecord) -> str:
        """Форматирует запись лога в JSON."""
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info and record.exc_info[0] is not None:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_data, ensure_ascii=False, default=str)


class BotLogger:
    """Менеджер логирования: обработчики и счётчики событий."""

    def __init__(self):
        self._metrics: Dict[str, int] = {
            'events_processed': 0,
            'teams_formed': 0,
            'persistence_failures': 0,
            'notification_failures': 0,
            'errors_count': 0,
        }
        self._metrics_lock = threading.Lock()
        self._start_time = time.time()
        self._configured = False

    def setup(self, logs_dir: str = 'logs', level: int = logging.INFO) -> None:
        """Настраивает обработчики. Повторный вызов ничего не делает."""
        if self._configured:
            return

        logs_path = Path(logs_dir)
        logs_path.mkdir(parents=True, exist_ok=True)

        main_logger = logging.getLogger(ROOT_LOGGER_NAME)
        main_logger.setLevel(logging.DEBUG)
        main_logger.handlers.clear()

        console_formatter = logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(console_formatter)
        main_logger.addHandler(console_handler)

        # Ротация в полночь: общий текстовый лог, структурный JSONL и отдельно ошибки
        for filename, handler_level, formatter, backups in (
            ('bot_all.log', logging.DEBUG, console_formatter, 7),
            ('bot_structured.jsonl', logging.INFO, JsonFormatter(), 7),
            ('bot_errors.log', logging.ERROR, JsonFormatter(), 30),
        ):
            main_logger.addHandler(self._rotating_handler(logs_path / filename, handler_level, formatter, backups))

        logging.getLogger('aiogram').setLevel(logging.WARNING)
        logging.getLogger('aiohttp').setLevel(logging.WARNING)

        self._configured = True
        main_logger.info("🔧 Система логирования инициализирована")

    @staticmethod
    def _rotating_handler(path: Path, level: int, formatter: logging.Formatter,
                          backups: int) -> logging.Handler:
        handler = logging.handlers.TimedRotatingFileHandler(
            path, when='midnight', interval=1, backupCount=backups, encoding='utf-8'
        )
        handler.setLevel(level)
        handler.setFormatter(formatter)
        return handler

    def get_logger(self, name: str) -> logging.Logger:
        """Возвращает логгер с указанным именем."""
        return logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')

    def increment(self, counter: str, value: int = 1) -> None:
        """Увеличивает счётчик события."""
        with self._metrics_lock:
            self._metrics[counter] = self._metrics.get(counter, 0) + value

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None,
                  user_id: Optional[int] = None) -> None:
        """Логирует ошибку с контекстом."""
        self.increment('errors_count')

        extra_data: Dict[str, Any] = {'error_type': type(error).__name__}
        if user_id:
            extra_data['user_id'] = user_id
        if context:
            extra_data.update({k: v for k, v in context.items() if k in EXTRA_FIELDS})

        self.get_logger('errors').error(
            f"❌ Ошибка: {error} (контекст: {context or {}})",
            extra=extra_data,
            exc_info=error
        )

    def get_metrics(self) -> Dict[str, Any]:
        """Возвращает текущие счётчики."""
        with self._metrics_lock:
            metrics: Dict[str, Any] = dict(self._metrics)
        metrics['uptime_seconds'] = time.time() - self._start_time
        return metrics


# Глобальный экземпляр логгера
bot_logger = BotLogger()


def setup_logging(logs_dir: str = 'logs', level: int = logging.INFO) -> None:
    """Настраивает логирование приложения."""
    bot_logger.setup(logs_dir, level)


def get_logger(name: str) -> logging.Logger:
    """Возвращает логгер для указанного модуля."""
    return bot_logger.get_logger(name)


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None,
              user_id: Optional[int] = None) -> None:
    """Логирует ошибку."""
    bot_logger.log_error(error, context, user_id)


def increment(counter: str, value: int = 1) -> None:
    """Увеличивает счётчик события."""
    bot_logger.increment(counter, value)


def get_metrics() -> Dict[str, Any]:
    """Возвращает счётчики."""
    return bot_logger.get_metrics()
