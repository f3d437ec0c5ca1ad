"""
Обработчики лобби: вступление в команду, роль лидера, смена роли, /status.
"""

from aiogram import Router, F
from aiogram.filters import Command, CommandStart
from aiogram.types import Message, CallbackQuery

from ..errors import InvalidSelection
from ..services.engine import TeamFinder
from ..services.keyboards import (
    kb, JOIN_TEAM, CREATE_TEAM, NEED_PREFIX, SWITCH_TO_MEMBER, SWITCH_TO_LEADER,
    CANCEL_SWITCH, UPDATE_RECRUITMENT, UPDATE_NEED_PREFIX,
)
from ..services.logger import get_logger
from ..services.message_manager import message_manager
from ..types import Outcome, ParticipantStatus

logger = get_logger('lobby')

router = Router()

# Константы для текстов
LOBBY_TEXT = """<b>Поиск команды</b>

Выбери вариант:
• <b>Вступить в команду</b> — если хочешь присоединиться к уже существующей команде.
• <b>Собрать команду</b> — если хочешь быть лидером (в команде от 2 до 4 человек)."""

JOINED_TEXT = """Ты в очереди участников (позиция: {position}).

Как только лидеру понадобится человек, бот пришлёт ссылку на топик команды."""

MATCHED_TEXT = "Тебя сразу взяли в команду! Ссылка на топик команды придёт в личные сообщения."
ALREADY_MEMBER_TEXT = "Ты уже в очереди участников (позиция: {position})."
RECRUITED_TEXT = """Лидер уже взял тебя в команду, ждём, пока наберутся остальные.

Ссылка на топик команды придёт в личные сообщения."""

CONFIRM_SWITCH_TO_MEMBER_TEXT = """Ты сейчас лидер и тебе нужно ещё <b>{needed}</b>.

Если вступишь как участник, роль лидера и уже набранные участники будут потеряны. Продолжить?"""

CONFIRM_SWITCH_TO_LEADER_TEXT = """Ты сейчас в очереди участников.

Чтобы стать лидером, нужно покинуть эту очередь. Продолжить?"""

NEED_SELECT_TEXT = "Сколько ещё участников нужно твоей команде?"
NEED_SELECT_AFTER_SWITCH_TEXT = "Ты вышел из очереди участников. Сколько ещё участников нужно твоей команде?"
NEED_UPDATE_TEXT = "Выбери новое количество участников, которое нужно набрать."

LEADER_STATUS_TEXT = """Ты лидер.

Уже в команде: <b>{crew}</b>
Ещё нужно: <b>{needed}</b>"""

BECAME_LEADER_TEXT = "Ты теперь лидер. Нужно ещё участников: <b>{needed}</b>."
NEED_UPDATED_TEXT = "Набор обновлён. Нужно ещё участников: <b>{needed}</b>."
TEAM_READY_TEXT = "Команда собрана! Ссылка на топик команды придёт в личные сообщения."
SWITCHED_TO_MEMBER_TEXT = "Ты больше не лидер и стоишь в очереди участников (позиция: {position})."
NOT_A_LEADER_TEXT = "Ты сейчас не лидер. Нажми «Собрать команду», чтобы начать."
SWITCH_CANCELLED_TEXT = "Смена роли отменена, всё осталось как было."
INVALID_SELECTION_TEXT = "Недопустимый выбор."
UNAFFILIATED_STATUS_TEXT = "Ты пока не стоишь ни в одной очереди."


def member_text(finder: TeamFinder, user_id: int, template: str) -> str:
    """Текст для участника очереди, либо сообщение о мгновенном матче."""
    position = finder.position(user_id)
    if position == -1:
        return MATCHED_TEXT
    return template.format(position=position + 1)


def leader_text(finder: TeamFinder, user_id: int, template: str) -> str:
    """Текст для лидера, либо сообщение о собранной команде."""
    leader = finder.find_leader(user_id)
    if leader is None:
        return TEAM_READY_TEXT
    return template.format(needed=leader['additional_needed'], crew=len(leader['crew']))


@router.message(CommandStart())
async def cmd_start(message: Message):
    """Обработчик команды /start: главное меню."""
    if not message.from_user:
        return
    logger.info(f"🚀 Команда /start от пользователя {message.from_user.id}")
    await message.answer(LOBBY_TEXT, reply_markup=kb.lobby())


@router.message(Command("status"))
async def cmd_status(message: Message, finder: TeamFinder):
    """Показывает, в какой очереди стоит пользователь."""
    if not message.from_user:
        return

    tg_id = message.from_user.id
    status = finder.status(tg_id)
    if status == ParticipantStatus.LEADER:
        await message.answer(leader_text(finder, tg_id, LEADER_STATUS_TEXT), reply_markup=kb.leader_status())
    elif status == ParticipantStatus.MEMBER:
        await message.answer(member_text(finder, tg_id, ALREADY_MEMBER_TEXT))
    elif status == ParticipantStatus.RECRUITED:
        await message.answer(RECRUITED_TEXT)
    else:
        await message.answer(UNAFFILIATED_STATUS_TEXT, reply_markup=kb.lobby())


@router.callback_query(F.data == JOIN_TEAM)
async def callback_join_team(callback: CallbackQuery, finder: TeamFinder):
    """Кнопка "Вступить в команду"."""
    tg_id = callback.from_user.id
    outcome = await finder.request_join_team(tg_id)

    if outcome == Outcome.CONFIRM_SWITCH_TO_MEMBER:
        leader = finder.find_leader(tg_id)
        needed = leader['additional_needed'] if leader else 0
        await message_manager.reply(
            callback,
            CONFIRM_SWITCH_TO_MEMBER_TEXT.format(needed=needed),
            reply_markup=kb.confirm_switch_to_member()
        )
    elif outcome == Outcome.ALREADY_MEMBER:
        await message_manager.reply(callback, member_text(finder, tg_id, ALREADY_MEMBER_TEXT))
    elif outcome == Outcome.ALREADY_RECRUITED:
        await message_manager.reply(callback, RECRUITED_TEXT)
    else:
        await message_manager.reply(callback, member_text(finder, tg_id, JOINED_TEXT))


@router.callback_query(F.data == CREATE_TEAM)
async def callback_create_team(callback: CallbackQuery, finder: TeamFinder):
    """Кнопка "Собрать команду"."""
    tg_id = callback.from_user.id
    status = finder.status(tg_id)

    if status == ParticipantStatus.MEMBER:
        await message_manager.reply(callback, CONFIRM_SWITCH_TO_LEADER_TEXT,
                                    reply_markup=kb.confirm_switch_to_leader())
    elif status == ParticipantStatus.LEADER:
        await message_manager.reply(callback, leader_text(finder, tg_id, LEADER_STATUS_TEXT),
                                    reply_markup=kb.leader_status())
    elif status == ParticipantStatus.RECRUITED:
        await message_manager.reply(callback, RECRUITED_TEXT)
    else:
        await message_manager.reply(callback, NEED_SELECT_TEXT, reply_markup=kb.need_selector())


@router.callback_query(F.data.startswith(NEED_PREFIX))
async def callback_select_need(callback: CallbackQuery, finder: TeamFinder):
    """Выбор количества участников: регистрация лидера или обновление набора."""
    tg_id = callback.from_user.id
    value = callback.data[len(NEED_PREFIX):]

    try:
        outcome = await finder.request_become_leader(tg_id, value)
    except InvalidSelection as e:
        logger.warning(f"Недопустимый выбор от {tg_id}: {e.value!r}")
        await callback.answer(INVALID_SELECTION_TEXT, show_alert=True)
        return

    if outcome == Outcome.ALREADY_RECRUITED:
        await message_manager.reply(callback, RECRUITED_TEXT)
        return
    template = NEED_UPDATED_TEXT if outcome == Outcome.NEED_UPDATED else BECAME_LEADER_TEXT
    await message_manager.reply(callback, leader_text(finder, tg_id, template))


@router.callback_query(F.data == SWITCH_TO_MEMBER)
async def callback_switch_to_member(callback: CallbackQuery, finder: TeamFinder):
    """Подтверждение: лидер становится участником."""
    tg_id = callback.from_user.id
    outcome = await finder.switch_to_member(tg_id)
    if outcome == Outcome.ALREADY_RECRUITED:
        await message_manager.reply(callback, RECRUITED_TEXT)
        return
    templates = {
        Outcome.SWITCHED_TO_MEMBER: SWITCHED_TO_MEMBER_TEXT,
        Outcome.JOINED_AS_MEMBER: JOINED_TEXT,
    }
    template = templates.get(outcome, ALREADY_MEMBER_TEXT)
    await message_manager.reply(callback, member_text(finder, tg_id, template))


@router.callback_query(F.data == SWITCH_TO_LEADER)
async def callback_switch_to_leader(callback: CallbackQuery, finder: TeamFinder):
    """Подтверждение: участник уходит из очереди и выбирает размер набора."""
    await finder.switch_to_leader(callback.from_user.id)
    await message_manager.reply(callback, NEED_SELECT_AFTER_SWITCH_TEXT, reply_markup=kb.need_selector())


@router.callback_query(F.data == CANCEL_SWITCH)
async def callback_cancel_switch(callback: CallbackQuery, finder: TeamFinder):
    """Отмена смены роли."""
    await finder.cancel(callback.from_user.id)
    await message_manager.reply(callback, SWITCH_CANCELLED_TEXT)


@router.callback_query(F.data == UPDATE_RECRUITMENT)
async def callback_update_recruitment(callback: CallbackQuery, finder: TeamFinder):
    """Кнопка "Изменить набор" у лидера."""
    if finder.status(callback.from_user.id) != ParticipantStatus.LEADER:
        await message_manager.reply(callback, NOT_A_LEADER_TEXT, reply_markup=kb.lobby())
        return
    await message_manager.reply(callback, NEED_UPDATE_TEXT, reply_markup=kb.need_selector(UPDATE_NEED_PREFIX))


@router.callback_query(F.data.startswith(UPDATE_NEED_PREFIX))
async def callback_update_need(callback: CallbackQuery, finder: TeamFinder):
    """Новое количество участников для действующего лидера."""
    tg_id = callback.from_user.id
    value = callback.data[len(UPDATE_NEED_PREFIX):]

    try:
        outcome = await finder.update_recruitment_need(tg_id, value)
    except InvalidSelection as e:
        logger.warning(f"Недопустимый выбор от {tg_id}: {e.value!r}")
        await callback.answer(INVALID_SELECTION_TEXT, show_alert=True)
        return

    if outcome == Outcome.NOT_A_LEADER:
        await message_manager.reply(callback, NOT_A_LEADER_TEXT, reply_markup=kb.lobby())
        return
    await message_manager.reply(callback, leader_text(finder, tg_id, NEED_UPDATED_TEXT))
