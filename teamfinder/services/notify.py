"""
Оформление собранной команды: топик в лобби-чате, ростер и приглашения в личку.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.utils.markdown import hbold, hlink

from ..types import CompletedTeam
from ..errors import NotificationFailure
from .keyboards import kb
from .logger import get_logger

logger = get_logger('notify')

# Telegram ограничивает название топика 128 символами
TOPIC_NAME_LIMIT = 128


@dataclass
class TeamSpace:
    """Созданное пространство команды."""
    chat_id: int
    thread_id: int
    name: str
    link: str
    missing_user_ids: List[int] = field(default_factory=list)


def build_topic_name(names: List[str]) -> str:
    """Название топика "team: имя, имя, ..." в пределах лимита Telegram."""
    name = f"team: {', '.join(names)}"
    if len(name) > TOPIC_NAME_LIMIT:
        name = name[:TOPIC_NAME_LIMIT - 1] + '…'
    return name


def topic_link(chat_id: int, thread_id: int) -> str:
    """Ссылка на топик супергруппы: https://t.me/c/<internal_id>/<thread_id>."""
    raw = str(chat_id)
    internal_id = raw[4:] if raw.startswith('-100') else raw.lstrip('-')
    return f"https://t.me/c/{internal_id}/{thread_id}"


def mention(user_id: int, name: str) -> str:
    return hlink(name, f"tg://user?id={user_id}")


class TeamSpaceNotifier:
    """Создаёт пространство для каждой собранной команды."""

    def __init__(self, bot: Bot, lobby_chat_id: int, logs_chat_id: Optional[int] = None):
        self.bot = bot
        self.lobby_chat_id = lobby_chat_id
        self.logs_chat_id = logs_chat_id

    async def get_member_names(self, user_ids: List[int]) -> List[str]:
        """Отображаемые имена участников лобби. Если имя не получить, остаётся ID."""
        names = []
        for user_id in user_ids:
            try:
                member = await self.bot.get_chat_member(self.lobby_chat_id, user_id)
                names.append(member.user.full_name)
            except TelegramAPIError:
                names.append(str(user_id))
        return names

    def format_team_card(self, user_ids: List[int], names: List[str]) -> str:
        """
        Форматирует ростер команды.

        Args:
            user_ids: ID участников, первым идёт лидер
            names: Имена в том же порядке

        Returns:
            Текст карточки (HTML)
        """
        lines = [f"Лидер: {hbold(names[0])} ({mention(user_ids[0], names[0])})"]
        for i, (user_id, name) in enumerate(zip(user_ids[1:], names[1:]), start=1):
            lines.append(f"{i}. {mention(user_id, name)}")

        return (
            "🎉 <b>Команда собрана</b>\n\n"
            + "\n".join(lines)
            + "\n\nНажмите «Подтвердить команду», чтобы закрепить состав, или закройте топик."
        )

    async def on_team_completed(self, team: CompletedTeam) -> TeamSpace:
        """Обработчик собранных команд для TeamFinder."""
        return await self.form_team(team['leader_id'], team['crew_ids'])

    async def form_team(self, leader_id: int, crew_ids: List[int]) -> TeamSpace:
        """
        Создаёт топик команды и приглашает в него участников.

        Участники, которым не удалось написать, перечисляются в топике
        и передаются операторам для ручной обработки.

        Raises:
            NotificationFailure: топик создать не удалось
        """
        user_ids = [leader_id, *crew_ids]
        names = await self.get_member_names(user_ids)
        topic_name = build_topic_name(names)
        card = self.format_team_card(user_ids, names)

        try:
            topic = await self.bot.create_forum_topic(chat_id=self.lobby_chat_id, name=topic_name)
        except TelegramAPIError as e:
            await self.send_roster_directly(user_ids, card)
            await self.send_to_operators(
                f"⚠️ Не удалось создать топик для команды лидера {leader_id}: {e}\n"
                f"Состав: {', '.join(map(str, user_ids))}. Нужна ручная обработка."
            )
            raise NotificationFailure(
                f"Топик для команды лидера {leader_id} не создан: {e}",
                failed_user_ids=user_ids
            ) from e

        space = TeamSpace(
            chat_id=self.lobby_chat_id,
            thread_id=topic.message_thread_id,
            name=topic_name,
            link=topic_link(self.lobby_chat_id, topic.message_thread_id),
        )
        logger.info(f"Создан топик {space.thread_id} для команды лидера {leader_id}",
                    extra={'leader_id': leader_id, 'crew_ids': crew_ids, 'event': 'team_space_created'})

        await self._post(space, card, with_panel=True)

        invite = f"Твоя команда собрана! Переходи в топик команды: {space.link}\n\n{card}"
        for user_id, name in zip(user_ids, names):
            try:
                await self.bot.send_message(chat_id=user_id, text=invite)
            except TelegramAPIError as e:
                logger.warning(f"Не удалось пригласить {user_id} в топик {space.thread_id}: {e}",
                               extra={'user_id': user_id, 'leader_id': leader_id,
                                      'event': 'invite_failed'})
                space.missing_user_ids.append(user_id)

        if space.missing_user_ids:
            missing_names = [mention(uid, name) for uid, name in zip(user_ids, names)
                             if uid in space.missing_user_ids]
            await self._post(
                space,
                f"Не удалось пригласить: {', '.join(missing_names)}. Пожалуйста, зайдите в топик вручную."
            )
            await self.send_to_operators(
                f"⚠️ Команда лидера {leader_id}: не доставлены приглашения "
                f"{', '.join(map(str, space.missing_user_ids))} ({space.link})"
            )

        return space

    async def _post(self, space: TeamSpace, text: str, with_panel: bool = False) -> bool:
        try:
            await self.bot.send_message(
                chat_id=space.chat_id,
                message_thread_id=space.thread_id,
                text=text,
                reply_markup=kb.team_space() if with_panel else None
            )
            return True
        except TelegramAPIError as e:
            logger.error(f"Не удалось написать в топик {space.thread_id}: {e}")
            return False

    async def send_roster_directly(self, user_ids: List[int], card: str) -> int:
        """
        Отправляет ростер каждому участнику в личку.

        Returns:
            Количество успешно доставленных сообщений
        """
        sent_count = 0
        for user_id in user_ids:
            try:
                await self.bot.send_message(chat_id=user_id, text=card)
                sent_count += 1
            except TelegramAPIError as e:
                logger.warning(f"Ростер не доставлен пользователю {user_id}: {e}",
                               extra={'user_id': user_id, 'event': 'roster_failed'})
        return sent_count

    async def send_to_operators(self, text: str) -> bool:
        """
        Отправляет сообщение в чат операторов (LOGS_CHAT_ID).

        Returns:
            True, если сообщение отправлено успешно
        """
        if not self.logs_chat_id:
            return False

        try:
            await self.bot.send_message(chat_id=self.logs_chat_id, text=text, parse_mode=None)
            return True
        except TelegramAPIError as e:
            logger.error(f"Не удалось написать в чат операторов: {e}")
            return False
