"""
Переходы состояний участников и админские действия над очередями.

Каждое действие выполняется целиком под asyncio.Lock: изменение очередей,
проход матчинга и сохранение снимка. Собранные команды передаются
обработчику уже после того, как снимок записан и блокировка снята.
"""

import asyncio
import copy
from typing import Awaitable, Callable, Dict, List, Optional

from ..types import (
    ALLOWED_NEEDS, CompletedTeam, LeaderEntry, MemberEntry, Outcome, ParticipantStatus,
)
from ..errors import InvalidSelection, NotificationFailure, UnauthorizedAdminAction
from .logger import get_logger, increment, log_error
from .matcher import normalize_queue_state, try_match, validate_queue_state
from .queue import QueueModel
from .storage import QueueStorage

logger = get_logger('engine')

TeamHandler = Callable[[CompletedTeam], Awaitable[object]]


def parse_need(value) -> int:
    """
    Приводит выбор "сколько ещё нужно" к int и проверяет допустимость.

    Raises:
        InvalidSelection: значение не число или не входит в ALLOWED_NEEDS
    """
    if isinstance(value, bool):
        raise InvalidSelection(value)
    try:
        need = int(value)
    except (TypeError, ValueError):
        raise InvalidSelection(value) from None
    if need not in ALLOWED_NEEDS:
        raise InvalidSelection(value)
    return need


class TeamFinder:
    """Единственный владелец очередей: переходы участников, матчинг, сохранение."""

    def __init__(self, storage: QueueStorage, operator_id: int,
                 on_team: Optional[TeamHandler] = None):
        self.storage = storage
        self.operator_id = operator_id
        self.queues = QueueModel()
        self.pending_sync = False
        self._on_team = on_team
        self._lock: Optional[asyncio.Lock] = None

    @property
    def lock(self) -> asyncio.Lock:
        """Блокировка создаётся в работающем цикле событий, а не при импорте."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def load(self) -> None:
        """Загружает очереди из хранилища. Вызывается один раз при старте."""
        state = self.storage.load()
        if not validate_queue_state(state):
            state, dropped = normalize_queue_state(state)
            logger.warning(f"Загруженные очереди нарушали инварианты, отброшено записей: {dropped}",
                           extra={'event': 'state_normalized'})
        self.queues.replace(state)
        counts = self.queues.counts()
        logger.info(f"Очереди подняты: лидеров {counts['leaders']}, участников {counts['members']}")

    # --- Чтение -----------------------------------------------------------

    def find_leader(self, user_id: int) -> Optional[LeaderEntry]:
        entry = self.queues.find_leader(user_id)
        return copy.deepcopy(entry) if entry is not None else None

    def find_member(self, user_id: int) -> Optional[MemberEntry]:
        entry = self.queues.find_member(user_id)
        return copy.deepcopy(entry) if entry is not None else None

    def status(self, user_id: int) -> ParticipantStatus:
        if self.queues.find_leader(user_id) is not None:
            return ParticipantStatus.LEADER
        if self.queues.find_member(user_id) is not None:
            return ParticipantStatus.MEMBER
        if self.queues.find_recruiter(user_id) is not None:
            return ParticipantStatus.RECRUITED
        return ParticipantStatus.UNAFFILIATED

    def find_recruiter(self, user_id: int) -> Optional[LeaderEntry]:
        """Лидер, который уже набрал пользователя в свой состав."""
        entry = self.queues.find_recruiter(user_id)
        return copy.deepcopy(entry) if entry is not None else None

    def position(self, user_id: int) -> int:
        return self.queues.position(user_id)

    def counts(self) -> Dict[str, int]:
        return self.queues.counts()

    def is_operator(self, user_id: int) -> bool:
        return user_id == self.operator_id

    # --- Переходы участников ------------------------------------------------

    async def request_join_team(self, user_id: int) -> Outcome:
        """Кнопка "вступить в команду"."""
        async with self.lock:
            if self.queues.find_leader(user_id) is not None:
                # Лидера молча не понижаем, нужен явный switch_to_member
                return Outcome.CONFIRM_SWITCH_TO_MEMBER
            if self.queues.find_member(user_id) is not None:
                return Outcome.ALREADY_MEMBER
            if self.queues.find_recruiter(user_id) is not None:
                # Уже в составе лидера: повторно в очередь не ставим
                return Outcome.ALREADY_RECRUITED

            self.queues.enqueue_member(user_id)
            logger.info(f"Пользователь {user_id} встал в очередь участников",
                        extra={'user_id': user_id, 'event': 'member_joined'})
            teams = self._commit()

        await self._dispatch(teams)
        return Outcome.JOINED_AS_MEMBER

    async def request_become_leader(self, user_id: int, needed) -> Outcome:
        """
        Выбор "нужно ещё N участников".

        Для участника очереди его запись снимается до создания записи лидера.
        Для действующего лидера это обновление потребности.

        Raises:
            InvalidSelection: N вне допустимого набора
        """
        need = parse_need(needed)

        async with self.lock:
            if self.queues.find_recruiter(user_id) is not None:
                return Outcome.ALREADY_RECRUITED
            if self.queues.find_leader(user_id) is not None:
                self.queues.set_leader_need(user_id, need)
                outcome = Outcome.NEED_UPDATED
                logger.info(f"Лидер {user_id} обновил набор: нужно {need}",
                            extra={'leader_id': user_id, 'event': 'need_updated'})
            else:
                if self.queues.remove_member(user_id):
                    logger.info(f"Пользователь {user_id} покинул очередь участников ради роли лидера",
                                extra={'user_id': user_id, 'event': 'member_removed'})
                self.queues.enqueue_leader(user_id, need)
                outcome = Outcome.BECAME_LEADER
                logger.info(f"Пользователь {user_id} стал лидером, нужно {need}",
                            extra={'leader_id': user_id, 'event': 'leader_created'})
            teams = self._commit()

        await self._dispatch(teams)
        return outcome

    async def switch_to_member(self, user_id: int) -> Outcome:
        """
        Лидер уходит в участники.

        Запись лидера уничтожается вместе с уже набранным составом:
        набранные участники в очередь не возвращаются.
        """
        async with self.lock:
            leader = self.queues.remove_leader(user_id)
            if leader is None:
                if self.queues.find_member(user_id) is not None:
                    return Outcome.ALREADY_MEMBER
                if self.queues.find_recruiter(user_id) is not None:
                    return Outcome.ALREADY_RECRUITED
                outcome = Outcome.JOINED_AS_MEMBER
            else:
                if leader['crew']:
                    logger.warning(
                        f"Лидер {user_id} ушёл в участники, набранный состав {leader['crew']} выбывает из очередей",
                        extra={'leader_id': user_id, 'crew_ids': list(leader['crew']), 'event': 'crew_orphaned'}
                    )
                outcome = Outcome.SWITCHED_TO_MEMBER

            self.queues.enqueue_member(user_id)
            logger.info(f"Пользователь {user_id} перешёл в участники",
                        extra={'user_id': user_id, 'event': 'switched_to_member'})
            teams = self._commit()

        await self._dispatch(teams)
        return outcome

    async def switch_to_leader(self, user_id: int) -> Outcome:
        """Участник уходит из очереди и ждёт выбора количества (request_become_leader)."""
        async with self.lock:
            if not self.queues.remove_member(user_id):
                return Outcome.AWAITING_NEED
            logger.info(f"Пользователь {user_id} покинул очередь участников, ждём выбора количества",
                        extra={'user_id': user_id, 'event': 'switched_to_leader'})
            teams = self._commit()

        await self._dispatch(teams)
        return Outcome.AWAITING_NEED

    async def update_recruitment_need(self, user_id: int, n) -> Outcome:
        """
        Меняет потребность лидера на месте (состав и позиция сохраняются).

        Raises:
            InvalidSelection: n вне допустимого набора
        """
        need = parse_need(n)

        async with self.lock:
            if not self.queues.set_leader_need(user_id, need):
                return Outcome.NOT_A_LEADER
            logger.info(f"Лидер {user_id} обновил набор: нужно {need}",
                        extra={'leader_id': user_id, 'event': 'need_updated'})
            teams = self._commit()

        await self._dispatch(teams)
        return Outcome.NEED_UPDATED

    async def cancel(self, user_id: int) -> Outcome:
        """Отмена смены роли: состояние не меняется."""
        logger.debug(f"Пользователь {user_id} отменил смену роли")
        return Outcome.CANCELLED

    # --- Админские действия -------------------------------------------------

    def _require_operator(self, actor_id: int, action: str) -> None:
        if not self.is_operator(actor_id):
            logger.warning(f"Отклонено {action} от {actor_id}",
                           extra={'user_id': actor_id, 'event': 'unauthorized_admin_action'})
            raise UnauthorizedAdminAction(actor_id, action)

    async def admin_clear(self, actor_id: int) -> Dict[str, int]:
        """
        Очищает обе очереди.

        Returns:
            Размеры очередей до очистки
        """
        self._require_operator(actor_id, 'clear')
        async with self.lock:
            before = self.queues.counts()
            self.queues.clear()
            self._persist()
        logger.info(f"Оператор очистил очереди (было {before})", extra={'event': 'admin_clear'})
        return before

    async def admin_list_counts(self, actor_id: int) -> Dict[str, int]:
        """Количество лидеров и участников в очередях."""
        self._require_operator(actor_id, 'list')
        async with self.lock:
            return self.queues.counts()

    async def admin_force_match(self, actor_id: int) -> List[CompletedTeam]:
        """Принудительный проход матчинга."""
        self._require_operator(actor_id, 'match')
        async with self.lock:
            teams = self._commit()
        logger.info(f"Оператор запустил матчинг, собрано команд: {len(teams)}",
                    extra={'event': 'admin_match'})
        await self._dispatch(teams)
        return teams

    # --- Сохранение ---------------------------------------------------------

    async def flush(self) -> bool:
        """
        Повторяет запись снимка, если прошлая не удалась.

        Returns:
            True, если хранилище синхронизировано
        """
        async with self.lock:
            if self.pending_sync:
                self._persist()
                if not self.pending_sync:
                    logger.info("Очереди досохранены после сбоя записи")
            return not self.pending_sync

    def _commit(self) -> List[CompletedTeam]:
        """Проход матчинга и запись снимка. Вызывается только под блокировкой."""
        new_state, teams = try_match(self.queues.snapshot())
        self.queues.replace(new_state)
        self._persist()
        return teams

    def _persist(self) -> None:
        ok = self.storage.save(self.queues.snapshot())
        if not ok:
            logger.warning("Очереди не сохранены, продолжаем с состоянием в памяти",
                           extra={'event': 'persistence_degraded'})
        self.pending_sync = not ok

    async def _dispatch(self, teams: List[CompletedTeam]) -> None:
        """Передаёт каждую собранную команду обработчику ровно один раз."""
        for team in teams:
            increment('teams_formed')
            if self._on_team is None:
                logger.info(f"Команда лидера {team['leader_id']} собрана, обработчик не назначен")
                continue
            try:
                await self._on_team(team)
            except NotificationFailure as e:
                # Команда уже собрана, матч не откатываем
                increment('notification_failures')
                logger.error(
                    f"Не удалось оформить команду лидера {team['leader_id']}: {e}",
                    extra={'leader_id': team['leader_id'], 'crew_ids': team['crew_ids'],
                           'event': 'notification_failure', 'error_type': type(e).__name__}
                )
            except Exception as e:
                increment('notification_failures')
                log_error(e, {'leader_id': team['leader_id'], 'crew_ids': team['crew_ids'],
                              'event': 'notification_failure'})
