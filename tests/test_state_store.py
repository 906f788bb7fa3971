"""
Tests for KeyedStateStore.

Run with: python -m pytest tests/test_state_store.py -v
"""

import threading

import pytest

from athlete_core.state_store import KeyedStateStore


class TestKeyedStateStore:

    def test_get_and_put(self):
        store = KeyedStateStore('test')
        assert store.get('a') is None
        assert store.get('a', 5) == 5

        store.put('a', 1)
        assert store.get('a') == 1
        assert 'a' in store
        assert len(store) == 1

    def test_update_sees_none_for_new_key(self):
        store = KeyedStateStore()
        seen = []

        def modify(current):
            seen.append(current)
            return 10

        assert store.update('k', modify) == 10
        assert seen == [None]

    def test_failed_update_writes_nothing(self):
        store = KeyedStateStore()
        store.put('k', {'count': 1})

        def modify(current):
            current = dict(current)
            current['count'] += 1
            raise ValueError("rejected")

        with pytest.raises(ValueError):
            store.update('k', modify)
        assert store.get('k') == {'count': 1}

    def test_snapshot_is_a_copy(self):
        store = KeyedStateStore()
        store.put('k', {'values': [1, 2]})

        snap = store.snapshot('k')
        snap['values'].append(3)
        assert store.get('k') == {'values': [1, 2]}
        assert store.snapshot('missing', {}) == {}

    def test_delete(self):
        store = KeyedStateStore()
        store.put('k', 1)
        assert store.delete('k') == 1
        assert store.delete('k') is None
        assert store.keys() == []

    def test_locked_is_reentrant(self):
        store = KeyedStateStore()
        with store.locked('k'):
            store.put('k', 1)
            store.update('k', lambda v: v + 1)
        assert store.get('k') == 2

    def test_concurrent_updates_lose_nothing(self):
        """Many threads incrementing one key end at the exact total."""
        store = KeyedStateStore()
        n_threads, n_increments = 8, 500

        def work():
            for _ in range(n_increments):
                store.update('athlete', lambda v: (v or 0) + 1)

        threads = [threading.Thread(target=work) for _ in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get('athlete') == n_threads * n_increments

    def test_independent_keys(self):
        store = KeyedStateStore()

        def work(key):
            for _ in range(200):
                store.update(key, lambda v: (v or 0) + 1)

        threads = [threading.Thread(target=work, args=(f"athlete_{i}",)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(store.keys()) == [f"athlete_{i}" for i in range(4)]
        assert all(v == 200 for _, v in store.items())
