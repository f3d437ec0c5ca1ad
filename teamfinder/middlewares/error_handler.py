"""
Middleware для обработки ошибок и логирования событий.
"""

import time
from typing import Callable, Dict, Any, Awaitable
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Message, CallbackQuery

from ..services.logger import get_logger, log_error, increment

logger = get_logger('middleware')


class ErrorHandlerMiddleware(BaseMiddleware):
    """Глобальная обработка ошибок: лог с контекстом и ответ пользователю с кодом."""

    def __init__(self, slow_threshold_ms: float = 500):
        super().__init__()
        self.error_count = 0
        self.slow_threshold_ms = slow_threshold_ms

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        start_time = time.time()
        from_user = getattr(event, 'from_user', None)
        user_id = from_user.id if from_user else None
        handler_name = getattr(data.get('handler'), 'callback', None)
        handler_name = getattr(handler_name, '__name__', 'unknown_handler')

        if isinstance(event, Message):
            logger.debug(f"📩 Сообщение от {user_id}: {(event.text or 'non-text')[:100]}")
        elif isinstance(event, CallbackQuery):
            logger.debug(f"🔘 Callback от {user_id}: {event.data}")

        try:
            result = await handler(event, data)
        except Exception as e:
            self.error_count += 1
            duration_ms = (time.time() - start_time) * 1000
            log_error(e, {'handler_name': handler_name, 'duration_ms': duration_ms}, user_id)

            try:
                if isinstance(event, Message):
                    await event.reply(
                        "⚠️ Произошла ошибка при обработке сообщения. "
                        "Попробуйте ещё раз или обратитесь к оператору.\n\n"
                        f"🔍 Код ошибки: #{self.error_count}"
                    )
                elif isinstance(event, CallbackQuery):
                    await event.answer(
                        f"⚠️ Произошла ошибка (#{self.error_count}). Попробуйте ещё раз.",
                        show_alert=True
                    )
            except Exception as reply_error:
                logger.error(f"❌ Не удалось отправить сообщение об ошибке: {reply_error}")
            return None

        increment('events_processed')
        duration_ms = (time.time() - start_time) * 1000
        if duration_ms > self.slow_threshold_ms:
            logger.warning(
                f"⏱️ Медленная обработка: {handler_name} ({duration_ms:.2f}ms)",
                extra={'handler_name': handler_name, 'duration_ms': duration_ms, 'user_id': user_id}
            )
        return result
