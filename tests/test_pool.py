import threading

from fetchlib.pool import SessionPool


class FakeSession:
    def __init__(self, fail_on_quit=False):
        self.quit_calls = 0
        self.fail_on_quit = fail_on_quit

    def quit(self):
        self.quit_calls += 1
        if self.fail_on_quit:
            raise RuntimeError("chromedriver already gone")


def test_acquire_memoizes_per_worker():
    created = []
    pool = SessionPool(lambda: created.append(FakeSession()) or created[-1])

    a1 = pool.acquire("a")
    a2 = pool.acquire("a")
    b = pool.acquire("b")

    assert a1 is a2
    assert a1 is not b
    assert len(created) == 2
    assert len(pool) == 2


def test_default_worker_is_calling_thread():
    pool = SessionPool(FakeSession)
    main_session = pool.acquire()
    seen = []

    t = threading.Thread(target=lambda: seen.append(pool.acquire()))
    t.start()
    t.join()

    assert pool.acquire() is main_session
    assert seen[0] is not main_session
    assert pool.get(threading.get_ident()) is main_session


def test_abort_is_idempotent_and_not_terminal():
    pool = SessionPool(FakeSession)
    pool.abort("w")
    pool.abort("w")

    first = pool.acquire("w")
    pool.abort("w")
    pool.abort("w")
    second = pool.acquire("w")

    assert first.quit_calls == 1
    assert second is not first
    assert pool.get("w") is second


def test_abort_all_closes_every_session_despite_errors():
    sessions = iter([FakeSession(fail_on_quit=True), FakeSession()])
    pool = SessionPool(lambda: next(sessions))
    s1 = pool.acquire(1)
    s2 = pool.acquire(2)

    pool.abort_all()

    assert s1.quit_calls == 1
    assert s2.quit_calls == 1
    assert len(pool) == 0
