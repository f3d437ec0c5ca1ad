"""
Fallback обработчик для неизвестных сообщений в личке.
"""

from aiogram import Router, F
from aiogram.enums import ChatType
from aiogram.types import Message

from ..services.logger import get_logger

logger = get_logger('fallback')
router = Router()

HELP_TEXT = """Я понимаю только команды:

🚀 /start - Открыть меню поиска команды
📊 /status - Проверить, в какой ты очереди"""


@router.message(F.chat.type == ChatType.PRIVATE)
async def handle_unknown_message(message: Message):
    """Обработчик для всех неизвестных сообщений."""
    if not message.from_user:
        return

    logger.info(f"📝 Неизвестное сообщение от {message.from_user.id}: {message.text}")

    if not message.text or message.text.startswith('/'):
        return

    await message.reply(HELP_TEXT)
