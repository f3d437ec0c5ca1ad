"""
Настройки бота из переменных окружения (.env подхватывается через python-dotenv).
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .services.util import parse_optional_int

REQUIRED_VARS = ('BOT_TOKEN', 'LOBBY_CHAT_ID', 'ADMIN_USER_ID')


@dataclass(frozen=True)
class Settings:
    """Конфигурация одного развёртывания (один общий пул)."""
    bot_token: str
    lobby_chat_id: int
    admin_user_id: int
    logs_chat_id: Optional[int] = None
    data_file: str = 'data/queues.json'
    logs_dir: str = 'logs'
    resync_interval: int = 60
    use_webhook: bool = False
    webhook_url: Optional[str] = None
    port: int = 3000


def load_settings() -> Settings:
    """
    Читает настройки из окружения.

    Raises:
        ValueError: если не задана обязательная переменная или значение некорректно
    """
    load_dotenv()

    missing = [name for name in REQUIRED_VARS if not os.getenv(name)]
    if missing:
        raise ValueError(f"Не заданы переменные окружения: {', '.join(missing)}")

    use_webhook = os.getenv('USE_WEBHOOK', 'false').lower() == 'true'
    webhook_url = os.getenv('WEBHOOK_URL') or None
    if use_webhook and not webhook_url:
        raise ValueError("WEBHOOK_URL не найден в переменных окружения при USE_WEBHOOK=true")

    return Settings(
        bot_token=os.environ['BOT_TOKEN'],
        lobby_chat_id=int(os.environ['LOBBY_CHAT_ID']),
        admin_user_id=int(os.environ['ADMIN_USER_ID']),
        logs_chat_id=parse_optional_int(os.getenv('LOGS_CHAT_ID')),
        data_file=os.getenv('DATA_FILE', 'data/queues.json'),
        logs_dir=os.getenv('LOGS_DIR', 'logs'),
        resync_interval=int(os.getenv('RESYNC_INTERVAL', '60')),
        use_webhook=use_webhook,
        webhook_url=webhook_url,
        port=int(os.getenv('PORT', '3000')),
    )
