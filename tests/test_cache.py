from newsagg.db.cache import MemoryCache


def test_put_get_and_expiry(cache, clock):
    cache.put("key", {"a": 1}, ttl=60)

    assert cache.get("key") == {"a": 1}

    clock.advance(61)
    assert cache.get("key") is None
    assert cache.get("key", "fallback") == "fallback"


def test_add_only_succeeds_when_absent_or_expired(cache, clock):
    assert cache.add("lock", "one", ttl=10)
    assert not cache.add("lock", "two", ttl=10)
    assert cache.get("lock") == "one"

    clock.advance(11)
    assert cache.add("lock", "three", ttl=10)
    assert cache.get("lock") == "three"


def test_delete_with_expected_value(cache):
    cache.put("lock", "mine", ttl=10)

    assert not cache.delete("lock", expected="theirs")
    assert cache.get("lock") == "mine"
    assert cache.delete("lock", expected="mine")
    assert cache.get("lock") is None
    assert not cache.delete("lock")


def test_default_clock_is_usable():
    cache = MemoryCache()
    cache.put("key", "value", ttl=60)

    assert cache.get("key") == "value"
