"""
Фоновая досинхронизация очередей после неудачной записи в хранилище.
"""

import asyncio
from typing import Optional

from .engine import TeamFinder
from .logger import get_logger

logger = get_logger('scheduler')


class ResyncScheduler:
    """Периодически повторяет запись снимка, пока хранилище отстаёт от памяти."""

    def __init__(self, finder: TeamFinder, interval: float = 60):
        self.finder = finder
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self._running = False

    def start(self):
        """Запускает планировщик."""
        if self._running:
            logger.warning("Планировщик уже запущен")
            return

        self._running = True
        self._task = asyncio.create_task(self._scheduler_loop())
        logger.info(f"Планировщик досинхронизации запущен (каждые {self.interval}с)")

    async def stop(self):
        """Останавливает планировщик и делает последнюю попытку записи."""
        if not self._running:
            return

        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        if not await self.finder.flush():
            logger.error("При остановке очереди так и не сохранены, последние изменения будут потеряны")
        logger.info("Планировщик досинхронизации остановлен")

    async def run_once(self) -> bool:
        """Одна попытка досинхронизации. True, если хранилище в порядке."""
        if not self.finder.pending_sync:
            return True
        logger.info("Повторяем запись очередей после сбоя")
        return await self.finder.flush()

    async def _scheduler_loop(self):
        """Основной цикл планировщика."""
        try:
            while self._running:
                await asyncio.sleep(self.interval)
                if not self._running:
                    break
                await self.run_once()
        except asyncio.CancelledError:
            logger.info("Планировщик был отменен")
            raise
        except Exception as e:
            logger.error(f"Ошибка в планировщике: {e}", exc_info=True)
