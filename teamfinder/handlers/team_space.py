"""
Кнопки в топике команды: подтверждение состава и закрытие топика.
"""

from aiogram import Router, F
from aiogram.exceptions import TelegramAPIError
from aiogram.types import CallbackQuery

from ..services.keyboards import TEAM_CONFIRM, TEAM_CLOSE
from ..services.logger import get_logger

logger = get_logger('team_space')

router = Router()

TEAM_CONFIRMED_TEXT = "✅ <b>Команда подтверждена!</b> Удачи, и пусть код будет с вами."
NOT_A_TOPIC_TEXT = "Эта кнопка работает только в топике команды."
CLOSE_FAILED_TEXT = "Не удалось закрыть топик."


async def close_topic(callback: CallbackQuery, reason: str) -> bool:
    """Закрывает топик, в котором нажата кнопка."""
    message = callback.message
    try:
        await callback.bot.close_forum_topic(
            chat_id=message.chat.id,
            message_thread_id=message.message_thread_id
        )
    except TelegramAPIError as e:
        logger.error(f"Ошибка закрытия топика {message.message_thread_id}: {e}")
        return False

    logger.info(f"Топик {message.message_thread_id} закрыт ({reason}) пользователем {callback.from_user.id}",
                extra={'user_id': callback.from_user.id, 'event': 'topic_closed'})
    return True


def in_topic(callback: CallbackQuery) -> bool:
    message = callback.message
    return bool(message is not None and message.message_thread_id)


@router.callback_query(F.data == TEAM_CONFIRM)
async def callback_team_confirm(callback: CallbackQuery):
    """Подтверждение команды: объявление в топике и закрытие."""
    if not in_topic(callback):
        await callback.answer(NOT_A_TOPIC_TEXT, show_alert=True)
        return

    await callback.message.answer(TEAM_CONFIRMED_TEXT)
    await callback.answer()
    await close_topic(callback, 'команда подтверждена')


@router.callback_query(F.data == TEAM_CLOSE)
async def callback_team_close(callback: CallbackQuery):
    """Закрытие топика с панели."""
    if not in_topic(callback):
        await callback.answer(NOT_A_TOPIC_TEXT, show_alert=True)
        return

    if await close_topic(callback, 'закрыт с панели'):
        await callback.answer("Топик закрыт.")
    else:
        await callback.answer(CLOSE_FAILED_TEXT, show_alert=True)
