import threading

import pytest

from vocab_srs.errors import ConcurrencyConflict
from vocab_srs.locks import KeyedLocks, queue_key, word_key


def test_hold_times_out_with_identifiers():
    locks = KeyedLocks()
    key = word_key("db", "u1", "cat")
    entered = threading.Event()
    release = threading.Event()

    def holder():
        with locks.hold(key, timeout=1):
            entered.set()
            release.wait(5)

    t = threading.Thread(target=holder)
    t.start()
    entered.wait(5)
    try:
        with pytest.raises(ConcurrencyConflict) as exc:
            with locks.hold(key, timeout=0.05):
                pass
        assert exc.value.user_id == "u1"
        assert exc.value.word_id == "cat"
        assert exc.value.retryable
        assert exc.value.http_status == 503
    finally:
        release.set()
        t.join()


def test_queue_conflict_has_no_word_id():
    locks = KeyedLocks()
    key = queue_key("db", "u1")
    with locks.hold(key, timeout=1):
        blocked = []

        def other():
            try:
                with locks.hold(key, timeout=0.05):
                    pass
            except ConcurrencyConflict as e:
                blocked.append(e)

        t = threading.Thread(target=other)
        t.start()
        t.join()
    assert blocked[0].word_id is None


def test_partial_acquisition_is_released_on_timeout():
    locks = KeyedLocks()
    a, b = word_key("db", "u", "a"), word_key("db", "u", "b")
    entered = threading.Event()
    release = threading.Event()

    def hold_b():
        with locks.hold(b, timeout=1):
            entered.set()
            release.wait(5)

    t = threading.Thread(target=hold_b)
    t.start()
    entered.wait(5)
    with pytest.raises(ConcurrencyConflict):
        with locks.hold(a, b, timeout=0.05):
            pass
    release.set()
    t.join()
    # "a" was taken first and must have been released
    with locks.hold(a, timeout=0.05):
        pass


def test_different_keys_do_not_block():
    locks = KeyedLocks()
    with locks.hold(word_key("db", "u", "a"), timeout=0.05):
        with locks.hold(word_key("db", "u", "b"), timeout=0.05):
            pass


def test_duplicate_keys_are_acquired_once():
    locks = KeyedLocks()
    key = word_key("db", "u", "a")
    with locks.hold(key, key, timeout=0.05):
        pass


def test_released_keys_leave_the_registry():
    locks = KeyedLocks()
    for i in range(50):
        with locks.hold(word_key("db", "u", f"w{i}"), queue_key("db", "u"), timeout=0.05):
            assert len(locks) == 2
    assert len(locks) == 0


def test_key_is_dropped_after_the_last_waiter_releases():
    locks = KeyedLocks()
    key = word_key("db", "u1", "cat")
    entered = threading.Event()
    release = threading.Event()
    done = []

    def waiter():
        entered.wait(5)
        with locks.hold(key, timeout=5):
            done.append(len(locks))

    t = threading.Thread(target=waiter)
    t.start()
    with locks.hold(key, timeout=1):
        entered.set()
        release.wait(0.1)
        assert len(locks) == 1
    t.join()
    assert done == [1]
    assert len(locks) == 0


def test_timed_out_waiter_is_not_counted():
    locks = KeyedLocks()
    key = word_key("db", "u1", "cat")
    with locks.hold(key, timeout=1):
        failed = []

        def other():
            try:
                with locks.hold(key, timeout=0.05):
                    pass
            except ConcurrencyConflict as e:
                failed.append(e)

        t = threading.Thread(target=other)
        t.start()
        t.join()
        assert failed
    assert len(locks) == 0
