"""
Точка входа для запуска бота: python -m teamfinder
"""

import asyncio

from .bot import bot, dp, settings, logger


def webhook_main():
    """Запуск бота через webhook (aiohttp-сервер)."""
    from aiohttp import web
    from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application

    async def set_webhook():
        await bot.set_webhook(settings.webhook_url)

    dp.startup.register(set_webhook)

    app = web.Application()
    SimpleRequestHandler(dispatcher=dp, bot=bot).register(app, path="/webhook")

    async def health_check(request):
        return web.json_response({"status": "ok", "mode": "webhook"})

    app.router.add_get("/", health_check)
    app.router.add_get("/health", health_check)

    setup_application(app, dp, bot=bot)

    logger.info(f"🌐 Запуск webhook сервера на порту {settings.port}")
    web.run_app(app, host='0.0.0.0', port=settings.port)


async def polling_main():
    """Запуск бота через long polling."""
    logger.info("📡 Запуск в режиме long polling...")

    # Очищаем webhook если он был установлен
    webhook_info = await bot.get_webhook_info()
    if webhook_info.url:
        logger.info(f"Очищаем webhook: {webhook_info.url}")
        await bot.delete_webhook(drop_pending_updates=True)

    await dp.start_polling(bot)


def main():
    """Главная функция запуска."""
    logger.info(f"Режим работы: {'webhook' if settings.use_webhook else 'polling'}")

    try:
        if settings.use_webhook:
            webhook_main()
        else:
            asyncio.run(polling_main())
    except KeyboardInterrupt:
        logger.info("🔴 Получен сигнал прерывания")
    finally:
        logger.info("🔴 Бот остановлен")


if __name__ == '__main__':
    main()
