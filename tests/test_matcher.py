"""
Unit-тесты для модуля matcher.
"""

import copy

import pytest
from teamfinder.services.matcher import try_match, validate_queue_state, get_match_stats, normalize_queue_state


def leader(user_id, needed, crew=None):
    return {'user_id': user_id, 'additional_needed': needed, 'crew': list(crew or []), 'created_at': 't'}


def member(user_id):
    return {'user_id': user_id, 'enqueued_at': 't'}


def state(leaders=(), members=()):
    return {'leaders': list(leaders), 'members': list(members)}


def member_ids(s):
    return [m['user_id'] for m in s['members']]


class TestTryMatch:
    """Тесты для функции try_match."""

    def test_empty_state(self):
        """Тест с пустыми очередями."""
        new_state, teams = try_match(state())
        assert new_state == state()
        assert teams == []

    def test_empty_member_queue_is_noop(self):
        """Без участников лидеры остаются как были."""
        original = state(leaders=[leader(1, 2), leader(2, 1, crew=[5])])
        new_state, teams = try_match(original)
        assert new_state == original
        assert teams == []

    def test_members_wait_without_leaders(self):
        """Участник без лидеров остаётся в очереди при повторных проходах."""
        s = state(members=[member(10)])
        for _ in range(3):
            s, teams = try_match(s)
            assert teams == []
        assert member_ids(s) == [10]

    def test_fifo_fairness(self):
        """Лидер, которому нужно 2, получает двух самых давних участников."""
        s = state(leaders=[leader(1, 2)], members=[member('A'), member('B'), member('C')])
        new_state, teams = try_match(s)
        assert teams == [{'leader_id': 1, 'crew_ids': ['A', 'B']}]
        assert new_state['leaders'] == []
        assert member_ids(new_state) == ['C']

    def test_partial_recruitment_keeps_leader(self):
        """Не хватило участников: лидер остаётся с уменьшенной потребностью."""
        s = state(leaders=[leader(1, 2)], members=[member(10)])
        new_state, teams = try_match(s)
        assert teams == []
        assert new_state['leaders'] == [leader(1, 1, crew=[10])]
        assert new_state['members'] == []

    def test_leaders_served_in_queue_order(self):
        """Старший лидер забирает участников первым."""
        s = state(
            leaders=[leader(1, 1), leader(2, 2)],
            members=[member(10), member(11)]
        )
        new_state, teams = try_match(s)
        assert teams == [{'leader_id': 1, 'crew_ids': [10]}]
        assert new_state['leaders'] == [leader(2, 1, crew=[11])]

    def test_multiple_teams_in_one_sweep(self):
        """Несколько лидеров закрываются за один проход."""
        s = state(
            leaders=[leader(1, 1), leader(2, 2), leader(3, 1)],
            members=[member(i) for i in range(10, 14)]
        )
        new_state, teams = try_match(s)
        assert teams == [
            {'leader_id': 1, 'crew_ids': [10]},
            {'leader_id': 2, 'crew_ids': [11, 12]},
            {'leader_id': 3, 'crew_ids': [13]},
        ]
        assert new_state == state()

    def test_completion_happens_once(self):
        """Собранная команда выдаётся ровно один раз."""
        s = state(leaders=[leader(1, 1)], members=[member(10), member(11)])
        s, teams = try_match(s)
        assert len(teams) == 1
        s, teams = try_match(s)
        assert teams == []
        assert member_ids(s) == [11]

    def test_self_match_is_dropped(self):
        """Лидер, вытянувший сам себя, не получает себя в состав, запись выбывает."""
        s = state(leaders=[leader(1, 1)], members=[member(1), member(2)])
        new_state, teams = try_match(s)
        assert teams == [{'leader_id': 1, 'crew_ids': [2]}]
        assert new_state['members'] == []

    def test_conservation(self):
        """Каждый набранный участник попадает ровно в один состав и уходит из очереди."""
        members = [member(i) for i in range(100, 107)]
        s = state(leaders=[leader(1, 2), leader(2, 1), leader(3, 2), leader(4, 2)], members=members)
        new_state, teams = try_match(s)

        recruited = [uid for team in teams for uid in team['crew_ids']]
        recruited += [uid for entry in new_state['leaders'] for uid in entry['crew']]
        assert sorted(recruited) == list(range(100, 107))
        assert new_state['members'] == []
        assert validate_queue_state(new_state)

    def test_input_not_mutated(self):
        """Исходное состояние не изменяется."""
        s = state(leaders=[leader(1, 2)], members=[member(10)])
        before = copy.deepcopy(s)
        try_match(s)
        assert s == before


class TestValidateQueueState:
    """Тесты для функции validate_queue_state."""

    def test_valid_state(self):
        assert validate_queue_state(state(leaders=[leader(1, 1, crew=[5])], members=[member(2)]))

    def test_user_in_both_queues(self):
        """Один пользователь в двух очередях."""
        assert not validate_queue_state(state(leaders=[leader(1, 1)], members=[member(1)]))

    def test_duplicate_member(self):
        assert not validate_queue_state(state(members=[member(2), member(2)]))

    def test_completed_leader_still_queued(self):
        """Лидер с нулевой потребностью не должен оставаться в очереди."""
        assert not validate_queue_state(state(leaders=[leader(1, 0, crew=[2])]))

    def test_member_recruited_twice(self):
        assert not validate_queue_state(state(leaders=[leader(1, 1, crew=[5]), leader(2, 1, crew=[5])]))

    def test_recruited_still_queued(self):
        """Набранный участник не может одновременно стоять в очереди."""
        assert not validate_queue_state(state(leaders=[leader(1, 1, crew=[5])], members=[member(5)]))
        assert not validate_queue_state(state(leaders=[leader(1, 1, crew=[2]), leader(2, 1)]))


class TestNormalizeQueueState:
    """Тесты для функции normalize_queue_state."""

    def test_valid_state_unchanged(self):
        s = state(leaders=[leader(1, 1, crew=[5])], members=[member(2)])
        assert normalize_queue_state(s) == (s, 0)

    def test_duplicates_and_overlaps_dropped(self):
        s = state(
            leaders=[leader(1, 2, crew=[1, 5]), leader(2, 1, crew=[5]), leader(1, 1)],
            members=[member(5), member(2), member(3), member(3)]
        )
        new_state, dropped = normalize_queue_state(s)
        assert new_state == state(
            leaders=[leader(1, 2, crew=[5]), leader(2, 1)],
            members=[member(3)]
        )
        assert dropped == 6
        assert validate_queue_state(new_state)


class TestGetMatchStats:
    """Тесты для функции get_match_stats."""

    def test_stats_empty(self):
        assert get_match_stats(state()) == {
            'teams_count': 0,
            'members_matched': 0,
            'members_remaining': 0,
            'leaders_remaining': 0,
        }

    def test_stats_with_leftover(self):
        s = state(leaders=[leader(1, 2), leader(2, 2)], members=[member(i) for i in range(10, 13)])
        stats = get_match_stats(s)
        assert stats['teams_count'] == 1
        assert stats['members_matched'] == 3
        assert stats['members_remaining'] == 0
        assert stats['leaders_remaining'] == 1

    def test_stats_do_not_mutate(self):
        s = state(leaders=[leader(1, 1)], members=[member(10)])
        get_match_stats(s)
        assert member_ids(s) == [10]


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
