import threading

from app.services.cache import TTLCache


class Ticker:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


def test_put_get_and_invalidate():
    cache = TTLCache(60, clock=Ticker())
    assert cache.get("u1") is None
    cache.put("u1", "a")
    assert cache.get("u1") == "a"
    cache.put("u1", "b")
    assert cache.get("u1") == "b"
    assert cache.invalidate("u1") is True
    assert cache.get("u1") is None
    assert cache.invalidate("u1") is False


def test_entry_expires_and_is_dropped_on_read():
    clock = Ticker()
    cache = TTLCache(60, clock=clock)
    cache.put("u1", "a")
    cache.put("u2", "b", stored_at=clock.now + 30)

    clock.now += 59
    assert cache.get("u1") == "a"
    clock.now += 1
    assert cache.get("u1") is None
    assert cache.get("u2") == "b"
    assert len(cache) == 1


def test_put_skipped_after_invalidate_since_generation_read():
    cache = TTLCache(60, clock=Ticker())
    gen = cache.generation("u1")
    cache.invalidate("u1")
    assert cache.put("u1", "stale", generation=gen) is False
    assert cache.get("u1") is None

    fresh = cache.generation("u1")
    assert fresh == gen + 1
    assert cache.put("u1", "fresh", generation=fresh) is True
    assert cache.get("u1") == "fresh"
    # other keys keep their own generation
    assert cache.put("u2", "x", generation=cache.generation("u2")) is True


def test_same_key_writers_and_readers_see_whole_values():
    cache = TTLCache(60, clock=Ticker())
    errors = []

    def writer(n):
        for i in range(300):
            cache.put("u1", (n, i, n * i))

    def reader():
        for _ in range(300):
            value = cache.get("u1")
            if value is not None and value[2] != value[0] * value[1]:
                errors.append(value)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    threads += [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    cache.put("u1", ("last", 0, 0))
    assert cache.get("u1") == ("last", 0, 0)


def test_lock_for_one_user_does_not_block_another():
    cache = TTLCache(60, clock=Ticker())
    cache.put("u1", "a")
    other = next(k for k in range(100) if cache._lock_for(k) is not cache._lock_for("u1"))
    done = threading.Event()

    with cache._lock_for("u1"):
        t = threading.Thread(target=lambda: (cache.put(other, "b"), done.set()))
        t.start()
        assert done.wait(timeout=2)
    t.join()
    assert cache.get(other) == "b"
