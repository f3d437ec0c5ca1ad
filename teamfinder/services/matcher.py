"""
Логика комплектования: лидеры по очереди забирают самых давних участников.
"""

import copy
from collections import deque
from typing import List, Tuple, Dict

from ..types import QueueState, CompletedTeam
from .logger import get_logger

logger = get_logger('matcher')


def try_match(state: QueueState, dry_run: bool = False) -> Tuple[QueueState, List[CompletedTeam]]:
    """
    Один жадный проход по очереди лидеров.

    Каждый лидер (от самого старого) забирает участников из головы очереди,
    пока ему кто-то нужен и очередь не пуста. Лидер с additional_needed == 0
    убирается из очереди и возвращается как собранная команда. Лидер, которому
    не хватило участников, остаётся в очереди с уменьшенной потребностью.

    Args:
        state: Текущее состояние очередей (не изменяется)
        dry_run: Не писать события в лог (для предпросмотра)

    Returns:
        Кортеж (новое_состояние, собранные_команды)
    """
    # Работаем с копией, исходное состояние не трогаем
    work = copy.deepcopy(state)
    members = deque(work['members'])
    remaining_leaders = []
    teams: List[CompletedTeam] = []

    for leader in work['leaders']:
        while leader['additional_needed'] > 0 and members:
            member = members.popleft()
            if member['user_id'] == leader['user_id']:
                # Сам себе не участник: запись выбывает из очереди
                if not dry_run:
                    logger.warning(
                        f"Лидер {leader['user_id']} вытянул сам себя из очереди участников, запись отброшена",
                        extra={'leader_id': leader['user_id'], 'event': 'self_match_dropped'}
                    )
                continue
            leader['crew'].append(member['user_id'])
            leader['additional_needed'] -= 1
            if not dry_run:
                logger.info(
                    f"Лидер {leader['user_id']} набрал участника {member['user_id']}",
                    extra={'leader_id': leader['user_id'], 'user_id': member['user_id'], 'event': 'recruited'}
                )

        if leader['additional_needed'] == 0:
            teams.append({'leader_id': leader['user_id'], 'crew_ids': list(leader['crew'])})
            if not dry_run:
                logger.info(
                    f"Команда лидера {leader['user_id']} собрана",
                    extra={'leader_id': leader['user_id'], 'crew_ids': list(leader['crew']), 'event': 'team_complete'}
                )
        else:
            remaining_leaders.append(leader)

    work['leaders'] = remaining_leaders
    work['members'] = list(members)
    return work, teams


def validate_queue_state(state: QueueState) -> bool:
    """
    Проверяет инварианты состояния очередей.

    Args:
        state: Состояние очередей

    Returns:
        True, если никто не стоит в двух очередях, нет дублей,
        у лидеров additional_needed > 0, никто не набран дважды
        и набранные участники больше не стоят в очередях
    """
    leader_ids = [e['user_id'] for e in state['leaders']]
    member_ids = [e['user_id'] for e in state['members']]

    if len(set(leader_ids)) != len(leader_ids) or len(set(member_ids)) != len(member_ids):
        return False
    if set(leader_ids) & set(member_ids):
        return False

    recruited: List[int] = []
    for leader in state['leaders']:
        if leader['additional_needed'] <= 0:
            return False
        recruited.extend(leader['crew'])
    if len(set(recruited)) != len(recruited):
        return False
    return not set(recruited) & (set(leader_ids) | set(member_ids))


def get_match_stats(state: QueueState) -> Dict[str, int]:
    """
    Статистика потенциального прохода без его выполнения.

    Args:
        state: Состояние очередей

    Returns:
        Словарь: teams_count, members_matched, members_remaining, leaders_remaining
    """
    new_state, teams = try_match(state, dry_run=True)
    return {
        'teams_count': len(teams),
        'members_matched': len(state['members']) - len(new_state['members']),
        'members_remaining': len(new_state['members']),
        'leaders_remaining': len(new_state['leaders']),
    }


def normalize_queue_state(state: QueueState) -> Tuple[QueueState, int]:
    """
    Приводит загруженные очереди к инвариантам.

    Повторные записи лидеров и участников отбрасываются (остаётся самая ранняя),
    из состава убираются сам лидер, другие лидеры и уже набранные кем-то ранее,
    из очереди участников убираются лидеры и набранные. Лидеры с нулевой
    потребностью остаются: их закроет ближайший проход матчинга.

    Returns:
        Кортеж (новое_состояние, число_отброшенных_записей)
    """
    work = copy.deepcopy(state)
    dropped = 0

    leaders = []
    leader_ids = set()
    for leader in work['leaders']:
        if leader['user_id'] in leader_ids:
            dropped += 1
            continue
        leader_ids.add(leader['user_id'])
        leaders.append(leader)

    recruited = set()
    for leader in leaders:
        crew = []
        for uid in leader['crew']:
            if uid in leader_ids or uid in recruited:
                dropped += 1
                continue
            recruited.add(uid)
            crew.append(uid)
        leader['crew'] = crew

    members = []
    seen = set()
    for entry in work['members']:
        uid = entry['user_id']
        if uid in leader_ids or uid in recruited or uid in seen:
            dropped += 1
            continue
        seen.add(uid)
        members.append(entry)

    work['leaders'] = leaders
    work['members'] = members
    return work, dropped
