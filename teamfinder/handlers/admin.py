"""
Команда оператора /admin panel|clear|list|match.
"""

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from ..errors import UnauthorizedAdminAction
from ..services.engine import TeamFinder
from ..services.keyboards import kb, TEAM_CLOSE
from ..services.logger import get_logger, get_metrics
from ..services.matcher import get_match_stats

logger = get_logger('admin')

router = Router()

# Константы для текстов
NOT_OPERATOR_TEXT = "Эта команда доступна только оператору."
USAGE_TEXT = "Использование: /admin panel | clear | list | match"
CLEARED_TEXT = "🧹 Очереди очищены (было лидеров: {leaders}, участников: {members})."
COUNTS_TEXT = """📋 <b>Очереди</b>

👑 Лидеров: {leaders}
🙋 Участников: {members}"""
MATCH_TEXT = "🔄 Матчинг выполнен, собрано команд: {teams}."

PANEL_TEXT = """🛠 <b>Панель оператора</b>

👑 Лидеров в очереди: {leaders}
🙋 Участников в очереди: {members}
🏆 Собрано команд: {teams_formed}
🔄 Готово к сборке без матчинга: {ready_teams}
💾 Хранилище: {storage_state}
⚠️ Сбоев записи: {persistence_failures}
📨 Сбоев оформления команд: {notification_failures}"""


def get_panel_text(finder: TeamFinder, counts: dict) -> str:
    """Текст панели оператора."""
    metrics = get_metrics()
    stats = get_match_stats(finder.queues.snapshot())
    return PANEL_TEXT.format(
        leaders=counts['leaders'],
        members=counts['members'],
        teams_formed=metrics.get('teams_formed', 0),
        ready_teams=stats['teams_count'],
        storage_state="⏳ ожидает досохранения" if finder.pending_sync else "✅ синхронизировано",
        persistence_failures=metrics.get('persistence_failures', 0),
        notification_failures=metrics.get('notification_failures', 0),
    )


@router.message(Command("admin"))
async def cmd_admin(message: Message, command: CommandObject, finder: TeamFinder):
    """Обработчик команды /admin <действие>."""
    if not message.from_user:
        return

    tg_id = message.from_user.id
    action = (command.args or 'panel').strip().lower()

    try:
        if action == 'panel':
            counts = await finder.admin_list_counts(tg_id)
            # Кнопка закрытия появляется, только если панель вызвана в топике
            keyboard = None
            if message.message_thread_id and message.is_topic_message:
                keyboard = kb.from_pairs([("🔒 Закрыть текущий топик", TEAM_CLOSE)])
            await message.reply(get_panel_text(finder, counts), reply_markup=keyboard)
        elif action == 'clear':
            before = await finder.admin_clear(tg_id)
            await message.reply(CLEARED_TEXT.format(**before))
        elif action == 'list':
            counts = await finder.admin_list_counts(tg_id)
            await message.reply(COUNTS_TEXT.format(**counts))
        elif action == 'match':
            teams = await finder.admin_force_match(tg_id)
            await message.reply(MATCH_TEXT.format(teams=len(teams)))
        else:
            await message.reply(USAGE_TEXT)
    except UnauthorizedAdminAction:
        await message.reply(NOT_OPERATOR_TEXT)
