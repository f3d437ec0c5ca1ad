"""
Тесты middleware обработки ошибок и ответа на нажатия кнопок.
"""

from unittest.mock import AsyncMock

import pytest
from aiogram.types import CallbackQuery, Message
from teamfinder.middlewares.error_handler import ErrorHandlerMiddleware
from teamfinder.services.logger import get_metrics
from teamfinder.services.message_manager import MessageManager


class TestErrorHandlerMiddleware:
    """Ошибка в хендлере не роняет обработку апдейтов."""

    @pytest.mark.asyncio
    async def test_passes_result_through(self):
        middleware = ErrorHandlerMiddleware()
        handler = AsyncMock(return_value='ok')
        event = AsyncMock(spec=Message)

        before = get_metrics().get('events_processed', 0)
        assert await middleware(handler, event, {}) == 'ok'
        assert get_metrics()['events_processed'] == before + 1

    @pytest.mark.asyncio
    async def test_message_error_is_reported(self):
        middleware = ErrorHandlerMiddleware()
        handler = AsyncMock(side_effect=RuntimeError('boom'))
        event = AsyncMock(spec=Message)
        event.text = '/start'
        event.reply = AsyncMock()

        assert await middleware(handler, event, {}) is None
        event.reply.assert_awaited_once()
        assert '#1' in event.reply.call_args.args[0]

    @pytest.mark.asyncio
    async def test_callback_error_shows_alert(self):
        middleware = ErrorHandlerMiddleware()
        handler = AsyncMock(side_effect=KeyError('x'))
        event = AsyncMock(spec=CallbackQuery)
        event.data = 'join_team'
        event.answer = AsyncMock()

        await middleware(handler, event, {})
        event.answer.assert_awaited_once()
        assert event.answer.call_args.kwargs['show_alert'] is True


class TestShorten:
    """Текст для всплывающего окна."""

    def test_short_text_unchanged(self):
        assert MessageManager.shorten('Нужно ещё: <b>2</b>') == 'Нужно ещё: 2'

    def test_long_text_truncated(self):
        text = MessageManager.shorten('а' * 500)
        assert len(text) == 200
        assert text.endswith('…')


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
