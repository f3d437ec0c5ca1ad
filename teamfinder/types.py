"""
Модели данных для бота-комплектовщика команд (лидеры и участники).
"""

from enum import Enum
from typing import TypedDict, List


class LeaderEntry(TypedDict):
    """Лидер в очереди: сколько ещё нужно участников и кто уже набран."""
    user_id: int
    additional_needed: int
    crew: List[int]  # порядок набора
    created_at: str


class MemberEntry(TypedDict):
    """Участник, ожидающий любую команду."""
    user_id: int
    enqueued_at: str


class QueueState(TypedDict):
    """Снимок обеих очередей. Сохраняется только целиком."""
    leaders: List[LeaderEntry]
    members: List[MemberEntry]  # FIFO: первый ждёт дольше всех


class CompletedTeam(TypedDict):
    """Собранная команда. Не сохраняется, сразу уходит в уведомления."""
    leader_id: int
    crew_ids: List[int]


class Outcome(str, Enum):
    """Результат пользовательского действия."""
    JOINED_AS_MEMBER = 'joined_as_member'
    ALREADY_MEMBER = 'already_member'
    ALREADY_RECRUITED = 'already_recruited'
    CONFIRM_SWITCH_TO_MEMBER = 'confirm_switch_to_member'
    BECAME_LEADER = 'became_leader'
    NEED_UPDATED = 'need_updated'
    NOT_A_LEADER = 'not_a_leader'
    SWITCHED_TO_MEMBER = 'switched_to_member'
    AWAITING_NEED = 'awaiting_need'
    CANCELLED = 'cancelled'


class ParticipantStatus(str, Enum):
    """Текущее положение пользователя в очередях."""
    UNAFFILIATED = 'unaffiliated'
    MEMBER = 'member'
    RECRUITED = 'recruited'  # уже в составе лидера, ждёт добора команды
    LEADER = 'leader'


# Допустимые варианты "сколько ещё нужно" (команды 2–4 человека)
ALLOWED_NEEDS = (1, 2)


def empty_state() -> QueueState:
    """Возвращает пустое состояние очередей."""
    return {'leaders': [], 'members': []}
