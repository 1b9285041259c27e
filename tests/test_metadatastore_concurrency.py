import threading
import time
from concurrent.futures import ThreadPoolExecutor

from sqlalchemy import event, func, select

from components.metadatastore.adapters.sql import SqlMetadataStore
from components.metadatastore.schema import metadata_table


def _count(engine, key):
    table = metadata_table()
    with engine.connect() as conn:
        return conn.execute(
            select(func.count()).select_from(table).where(table.c.metadata_key == key)
        ).scalar()


def _race(n, fn):
    barrier = threading.Barrier(n)

    def run(i):
        barrier.wait()
        return fn(i)

    with ThreadPoolExecutor(max_workers=n) as pool:
        return list(pool.map(run, range(n)))


def test_two_put_if_absent_callers_one_wins(engine):
    # separate store instances stand in for separate processes sharing the table
    stores = [SqlMetadataStore(engine), SqlMetadataStore(engine)]
    values = ["a", "b"]

    results = _race(2, lambda i: stores[i].put_if_absent("x", values[i]))

    assert results.count(None) == 1
    winner = values[results.index(None)]
    loser_result = [r for r in results if r is not None][0]
    assert loser_result == winner
    assert stores[0].get("x") == winner
    assert _count(engine, "x") == 1


def test_many_put_if_absent_callers_create_exactly_once(store, engine):
    n = 8
    results = _race(n, lambda i: store.put_if_absent("dedup", f"v{i}"))

    created = [i for i, r in enumerate(results) if r is None]
    assert len(created) == 1
    stored = store.get("dedup")
    assert stored == f"v{created[0]}"
    assert all(r == stored for r in results if r is not None)
    assert _count(engine, "dedup") == 1


def test_concurrent_puts_converge_to_one_row(store, engine):
    n = 8
    _race(n, lambda i: store.put("last-processed", f"offset-{i}"))

    assert _count(engine, "last-processed") == 1
    assert store.get("last-processed") in {f"offset-{i}" for i in range(n)}


def test_cas_increments_are_not_lost(store):
    store.put("counter", "0")
    workers, increments = 6, 10

    def bump(_):
        for _ in range(increments):
            while True:
                current = store.get("counter")
                if store.replace("counter", current, str(int(current) + 1)):
                    break

    _race(workers, bump)
    assert store.get("counter") == str(workers * increments)


def test_mixed_put_and_remove_keep_at_most_one_row(store, engine):
    n = 8

    def churn(i):
        for j in range(10):
            if (i + j) % 3 == 0:
                store.remove("k")
            else:
                store.put("k", f"{i}-{j}")

    _race(n, churn)
    assert _count(engine, "k") in (0, 1)


def test_remove_lock_delays_concurrent_put(engine):
    store = SqlMetadataStore(engine)
    store.put("k", "v1")

    locked = threading.Event()
    release = threading.Event()
    done_at = {}

    @event.listens_for(engine, "after_cursor_execute")
    def hold_lock(conn, cursor, statement, params, context, executemany):
        if threading.current_thread().name == "remover" and statement.startswith("SELECT METADATA_VALUE"):
            locked.set()
            release.wait(10)

    removed = {}

    def do_remove():
        removed["value"] = store.remove("k")
        done_at["remove"] = time.monotonic()

    def do_put():
        store.put("k", "v2")
        done_at["put"] = time.monotonic()

    remover = threading.Thread(target=do_remove, name="remover")
    putter = threading.Thread(target=do_put, name="putter")
    remover.start()
    assert locked.wait(10)

    putter.start()
    time.sleep(0.3)
    assert putter.is_alive()  # blocked behind the remove transaction
    assert done_at == {}

    released_at = time.monotonic()
    release.set()
    remover.join(10)
    putter.join(10)

    event.remove(engine, "after_cursor_execute", hold_lock)
    assert not putter.is_alive()
    assert done_at["put"] >= released_at
    assert removed["value"] == "v1"
    assert store.get("k") == "v2"
    assert _count(engine, "k") == 1


def test_reads_do_not_wait_for_remove_lock(engine, monkeypatch):
    store = SqlMetadataStore(engine)
    reader = SqlMetadataStore(engine)  # another caller sharing the table
    store.put("k", "v1")

    locked = threading.Event()
    release = threading.Event()

    @event.listens_for(engine, "after_cursor_execute")
    def hold_lock(conn, cursor, statement, params, context, executemany):
        if threading.current_thread().name == "remover" and statement.startswith("SELECT METADATA_VALUE"):
            locked.set()
            release.wait(10)

    removed = {}
    remover = threading.Thread(target=lambda: removed.update(value=store.remove("k")), name="remover")
    remover.start()
    try:
        assert locked.wait(10)

        t0 = time.monotonic()
        assert reader.get("k") == "v1"
        assert store.get("k") == "v1"

        # the read step of put_if_absent after its insert found the row
        monkeypatch.setattr(reader, "_insert_if_absent", lambda key, value: False)
        assert reader.put_if_absent("k", "other") == "v1"
        assert time.monotonic() - t0 < 2.0
        assert remover.is_alive()
    finally:
        release.set()
        remover.join(10)
        event.remove(engine, "after_cursor_execute", hold_lock)

    assert removed["value"] == "v1"
    assert store.get("k") is None
