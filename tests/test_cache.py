from data.cache import CacheFacade, MemoryCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_get_put_remove_clear():
    cache = MemoryCache()
    assert isinstance(cache, CacheFacade)
    cache.put("SU26227RMFS7", '{"kind": "number", "value": 97.3}', 300)
    assert cache.get("SU26227RMFS7") == '{"kind": "number", "value": 97.3}'
    cache.remove("SU26227RMFS7")
    cache.remove("SU26227RMFS7")
    assert cache.get("SU26227RMFS7") is None
    cache.put("A", "1", 300)
    cache.clear()
    assert len(cache) == 0


def test_each_entry_has_its_own_ttl():
    clock = FakeClock()
    cache = MemoryCache(clock=clock)
    cache.put("price", "1", 300)
    cache.put("name", "2", 86400)
    clock.now = 300
    assert cache.get("price") is None
    assert cache.get("name") == "2"


def test_expired_entries_are_dropped_on_next_put():
    clock = FakeClock()
    cache = MemoryCache(maxsize=20000, clock=clock)
    for i in range(10000):
        cache.put(f"T{i}", "x", 300)
    clock.now += 10 ** 6
    cache.put("fresh", "y", 300)
    assert len(cache) == 1
    assert cache.get("fresh") == "y"


def test_size_is_bounded():
    cache = MemoryCache(maxsize=3, clock=FakeClock())
    for i in range(10):
        cache.put(f"T{i}", "x", 300)
    assert len(cache) == 3
    assert cache.get("T9") == "x"
