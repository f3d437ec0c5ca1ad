"""
Создание экземпляра бота, диспетчера, движка очередей и настройка middlewares.
"""

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError
from aiogram.types import BotCommand

from .config import load_settings
from .services.logger import setup_logging, get_logger

settings = load_settings()

# Инициализируем систему логирования
setup_logging(settings.logs_dir)
logger = get_logger('bot')

from .services.engine import TeamFinder
from .services.notify import TeamSpaceNotifier
from .services.scheduler import ResyncScheduler
from .services.storage import QueueStorage

# Создаем экземпляр бота
bot = Bot(
    token=settings.bot_token,
    default=DefaultBotProperties(parse_mode=ParseMode.HTML)
)

dp = Dispatcher()

# Единственный владелец очередей, передаётся в handlers как аргумент finder
notifier = TeamSpaceNotifier(bot, settings.lobby_chat_id, settings.logs_chat_id)
finder = TeamFinder(
    storage=QueueStorage(settings.data_file),
    operator_id=settings.admin_user_id,
    on_team=notifier.on_team_completed
)
dp['finder'] = finder

# Импортируем и регистрируем handlers
from .handlers import lobby, admin, team_space, fallback

dp.include_router(lobby.router)
dp.include_router(admin.router)
dp.include_router(team_space.router)
# Fallback хендлер должен быть последним
dp.include_router(fallback.router)

from .middlewares.error_handler import ErrorHandlerMiddleware
dp.message.middleware(ErrorHandlerMiddleware())
dp.callback_query.middleware(ErrorHandlerMiddleware())

logger.info("Handlers и middleware зарегистрированы")


async def post_lobby_message():
    """Публикует меню поиска команды в лобби-чате."""
    from .handlers.lobby import LOBBY_TEXT
    from .services.keyboards import kb

    try:
        await bot.send_message(chat_id=settings.lobby_chat_id, text=LOBBY_TEXT, reply_markup=kb.lobby())
        logger.info("Сообщение лобби опубликовано")
    except TelegramAPIError as e:
        logger.error(f"❌ Не удалось опубликовать сообщение лобби: {e}")


async def on_startup():
    """Выполняется при запуске бота."""
    logger.info("🚀 Запуск бота...")

    # Очереди поднимаются из хранилища один раз за жизнь процесса
    finder.load()

    me = await bot.get_me()
    logger.info(f"✅ Бот подключен: @{me.username} ({me.first_name})")

    try:
        await bot.set_my_commands([
            BotCommand(command="start", description="🚀 Меню поиска команды"),
            BotCommand(command="status", description="📊 Проверить статус"),
        ])
        logger.info("✅ Команды бота настроены")
    except TelegramAPIError as e:
        logger.warning(f"Не удалось настроить команды бота: {e}")

    await post_lobby_message()

    scheduler = ResyncScheduler(finder, interval=settings.resync_interval)
    scheduler.start()
    dp['scheduler'] = scheduler

    logger.info("🎉 Бот запущен и готов к работе!")


async def on_shutdown():
    """Выполняется при остановке бота."""
    scheduler = dp.workflow_data.get('scheduler')
    if scheduler:
        await scheduler.stop()
    else:
        await finder.flush()

    logger.info("Бот остановлен")


# Регистрируем startup/shutdown хуки
dp.startup.register(on_startup)
dp.shutdown.register(on_shutdown)
