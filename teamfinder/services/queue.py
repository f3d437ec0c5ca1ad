"""
Очереди лидеров и участников в памяти.

Модель не переводит пользователя из одной очереди в другую сама:
вызывающий код сначала удаляет его из старой очереди.
"""

import copy
from typing import Dict, Optional

from ..types import QueueState, LeaderEntry, MemberEntry, empty_state
from ..errors import AffiliationConflict
from .util import now_iso


class QueueModel:
    """Очередь лидеров и очередь участников с порядком добавления."""

    def __init__(self, state: Optional[QueueState] = None):
        self._state: QueueState = state if state is not None else empty_state()

    @property
    def leaders(self):
        return self._state['leaders']

    @property
    def members(self):
        return self._state['members']

    def enqueue_member(self, user_id: int) -> MemberEntry:
        """Добавляет участника в конец очереди. Повторное добавление ничего не меняет."""
        existing = self.find_member(user_id)
        if existing is not None:
            return existing
        if self.find_leader(user_id) is not None or self.find_recruiter(user_id) is not None:
            raise AffiliationConflict(user_id)

        entry: MemberEntry = {'user_id': user_id, 'enqueued_at': now_iso()}
        self.members.append(entry)
        return entry

    def remove_member(self, user_id: int) -> bool:
        """Удаляет участника. Возвращает True, если он был в очереди."""
        for i, entry in enumerate(self.members):
            if entry['user_id'] == user_id:
                del self.members[i]
                return True
        return False

    def enqueue_leader(self, user_id: int, additional_needed: int) -> LeaderEntry:
        """Добавляет лидера в конец очереди лидеров."""
        existing = self.find_leader(user_id)
        if existing is not None:
            return existing
        if self.find_member(user_id) is not None or self.find_recruiter(user_id) is not None:
            raise AffiliationConflict(user_id)

        entry: LeaderEntry = {
            'user_id': user_id,
            'additional_needed': additional_needed,
            'crew': [],
            'created_at': now_iso(),
        }
        self.leaders.append(entry)
        return entry

    def remove_leader(self, user_id: int) -> Optional[LeaderEntry]:
        """Удаляет лидера вместе с набранным составом. Возвращает удалённую запись."""
        for i, entry in enumerate(self.leaders):
            if entry['user_id'] == user_id:
                return self.leaders.pop(i)
        return None

    def find_leader(self, user_id: int) -> Optional[LeaderEntry]:
        return next((e for e in self.leaders if e['user_id'] == user_id), None)

    def find_member(self, user_id: int) -> Optional[MemberEntry]:
        return next((e for e in self.members if e['user_id'] == user_id), None)

    def find_recruiter(self, user_id: int) -> Optional[LeaderEntry]:
        """Лидер, в составе которого уже числится пользователь."""
        return next((e for e in self.leaders if user_id in e['crew']), None)

    def set_leader_need(self, user_id: int, n: int) -> bool:
        """Меняет additional_needed на месте, состав и позиция не трогаются."""
        entry = self.find_leader(user_id)
        if entry is None:
            return False
        entry['additional_needed'] = n
        return True

    def position(self, user_id: int) -> int:
        """Позиция участника в очереди (0-based). -1 если не в очереди."""
        for i, entry in enumerate(self.members):
            if entry['user_id'] == user_id:
                return i
        return -1

    def counts(self) -> Dict[str, int]:
        return {'leaders': len(self.leaders), 'members': len(self.members)}

    def clear(self) -> None:
        """Очищает обе очереди."""
        self._state = empty_state()

    def snapshot(self) -> QueueState:
        """Глубокая копия состояния для сохранения и сверки."""
        return copy.deepcopy(self._state)

    def replace(self, state: QueueState) -> None:
        """Подменяет состояние результатом прохода матчинга."""
        self._state = state
