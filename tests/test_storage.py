"""
Unit-тесты для JSON-хранилища очередей.
"""

import json

import pytest
from teamfinder.errors import PersistenceFailure
from teamfinder.services.storage import QueueStorage


SAMPLE = {
    'leaders': [{'user_id': 1, 'additional_needed': 1, 'crew': [3], 'created_at': '2025-01-01T00:00:00'}],
    'members': [{'user_id': 2, 'enqueued_at': '2025-01-01T00:00:01'}],
}


class TestQueueStorage:
    """Тесты для QueueStorage."""

    def test_missing_file_gives_empty_state(self, tmp_path):
        storage = QueueStorage(str(tmp_path / 'queues.json'))
        assert storage.load() == {'leaders': [], 'members': []}

    def test_save_and_load(self, tmp_path):
        """Обе очереди сохраняются и читаются одним снимком."""
        path = tmp_path / 'nested' / 'queues.json'
        storage = QueueStorage(str(path))
        assert storage.save(SAMPLE)
        assert path.exists()
        assert not (tmp_path / 'nested' / 'queues.json.tmp').exists()
        assert QueueStorage(str(path)).load() == SAMPLE

    def test_corrupted_file_gives_empty_state(self, tmp_path):
        path = tmp_path / 'queues.json'
        path.write_text('{not json', encoding='utf-8')
        assert QueueStorage(str(path)).load() == {'leaders': [], 'members': []}

    def test_partial_document_is_normalized(self, tmp_path):
        path = tmp_path / 'queues.json'
        path.write_text(json.dumps({'members': SAMPLE['members']}), encoding='utf-8')
        assert QueueStorage(str(path)).load() == {'leaders': [], 'members': SAMPLE['members']}

    def test_malformed_entries_are_dropped(self, tmp_path):
        """Записи неверной формы отбрасываются, остальные загружаются."""
        path = tmp_path / 'queues.json'
        path.write_text(json.dumps({
            'leaders': [5, {'user_id': 2}, {'user_id': 3, 'additional_needed': 1, 'crew': ['x']},
                        SAMPLE['leaders'][0]],
            'members': [{'enqueued_at': 't'}, None, {'user_id': True}, SAMPLE['members'][0]],
        }), encoding='utf-8')
        assert QueueStorage(str(path)).load() == SAMPLE

    def test_queue_of_wrong_type_is_reset(self, tmp_path):
        path = tmp_path / 'queues.json'
        path.write_text(json.dumps({'leaders': {'user_id': 1}, 'members': SAMPLE['members']}), encoding='utf-8')
        assert QueueStorage(str(path)).load() == {'leaders': [], 'members': SAMPLE['members']}

    def test_save_failure_returns_false(self, tmp_path):
        """Ошибка записи не пробрасывается, save возвращает False."""
        blocker = tmp_path / 'blocker'
        blocker.write_text('file, not a directory', encoding='utf-8')
        storage = QueueStorage(str(blocker / 'queues.json'))
        assert storage.save(SAMPLE) is False

    def test_write_raises_persistence_failure(self, tmp_path):
        blocker = tmp_path / 'blocker'
        blocker.write_text('file, not a directory', encoding='utf-8')
        storage = QueueStorage(str(blocker / 'queues.json'))
        with pytest.raises(PersistenceFailure):
            storage.write(SAMPLE)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
