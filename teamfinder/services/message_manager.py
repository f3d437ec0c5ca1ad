"""
Ответы на нажатия кнопок: в личке редактируем экран, из группы пишем в личку.
"""

from typing import Optional
from aiogram.enums import ChatType
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError
from aiogram.types import CallbackQuery, InlineKeyboardMarkup

from .logger import get_logger

logger = get_logger('message_manager')

# Лимит текста во всплывающем окне callback.answer
ALERT_LIMIT = 200


class MessageManager:
    """Доставка ответов пользователю в зависимости от того, где нажата кнопка."""

    async def reply(self, callback: CallbackQuery, text: str,
                    reply_markup: Optional[InlineKeyboardMarkup] = None) -> None:
        """
        Отвечает на callback.

        В личном чате редактирует сообщение с кнопками. Если кнопка нажата
        в общем лобби, отправляет ответ пользователю в личку, а если бот
        не может ему написать, показывает всплывающее окно.
        """
        message = callback.message
        if message is not None and message.chat.type == ChatType.PRIVATE:
            try:
                await message.edit_text(text, reply_markup=reply_markup)
                await callback.answer()
                return
            except TelegramBadRequest as e:
                # Сообщение слишком старое или не изменилось: шлём новое
                logger.debug(f"Не удалось отредактировать сообщение: {e}")

        try:
            await callback.bot.send_message(
                chat_id=callback.from_user.id,
                text=text,
                reply_markup=reply_markup
            )
            await callback.answer()
        except (TelegramForbiddenError, TelegramBadRequest) as e:
            logger.info(f"Пользователь {callback.from_user.id} не открыл личку с ботом: {e}")
            await callback.answer(self.shorten(text), show_alert=True)

    @staticmethod
    def shorten(text: str, limit: int = ALERT_LIMIT) -> str:
        """Обрезает текст под лимит всплывающего окна, убирая HTML-разметку."""
        plain = text.replace('<b>', '').replace('</b>', '')
        if len(plain) <= limit:
            return plain
        return plain[:limit - 1] + '…'


# Глобальный экземпляр менеджера сообщений
message_manager = MessageManager()
