from userdesk.cache import QueryCache


def test_fetch_loads_once_until_invalidated() -> None:
    cache = QueryCache()
    calls = []

    def loader():
        calls.append(1)
        return ["value-%d" % len(calls)]

    assert cache.fetch(("users",), loader) == ["value-1"]
    assert cache.fetch(("users",), loader) == ["value-1"]
    assert len(calls) == 1

    assert cache.invalidate(("users",)) == 1
    assert cache.is_stale(("users",))
    assert cache.fetch(("users",), loader) == ["value-2"]
    assert len(calls) == 2
    assert not cache.is_stale(("users",))


def test_invalidate_matches_key_prefix() -> None:
    cache = QueryCache()
    cache.write(("users",), [])
    cache.write(("users", "u1"), {"id": "u1"})
    cache.write(("random",), {"value": 1})

    assert cache.invalidate(("users",)) == 2
    assert cache.read(("users", "u1")).stale
    assert not cache.read(("random",)).stale


def test_write_replaces_entry_and_clears_staleness() -> None:
    cache = QueryCache()
    cache.write(("random",), {"value": "old"})
    cache.invalidate(("random",))

    cache.write(("random",), {"value": "new"})

    entry = cache.read(("random",))
    assert entry.value == {"value": "new"}
    assert not entry.stale


def test_read_missing_key_returns_none() -> None:
    cache = QueryCache()
    assert cache.read(("users",)) is None
    assert cache.is_stale(("users",))
    assert cache.invalidate(("users",)) == 0


def test_load_superseded_by_invalidation_is_not_stored() -> None:
    cache = QueryCache()

    def loader():
        cache.invalidate(("users",))
        return ["outdated"]

    assert cache.fetch(("users",), loader) == ["outdated"]
    assert cache.read(("users",)) is None
    assert cache.fetch(("users",), lambda: ["fresh"]) == ["fresh"]
    assert cache.read(("users",)).value == ["fresh"]
