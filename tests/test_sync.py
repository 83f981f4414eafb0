import threading

from chatwire.sync import Synced


def test_run_returns_result():
    synced = Synced([1, 2, 3])
    assert synced.run(sum) == 6


def test_run_mutates_value():
    synced = Synced([])
    synced.run(lambda items: items.append("a"))
    assert synced.get() == ["a"]


def test_locked_yields_value():
    synced = Synced({"k": 1})
    with synced.locked() as value:
        value["k"] = 2
    assert synced.get() == {"k": 2}


def test_lock_is_released_after_exception():
    synced = Synced([])
    try:
        with synced.locked():
            raise ValueError("boom")
    except ValueError:
        pass
    assert synced.run(len) == 0


def test_concurrent_increments_are_exact():
    synced = Synced({"n": 0})

    def bump(d):
        current = d["n"]
        d["n"] = current + 1

    def work():
        for _ in range(1000):
            synced.run(bump)

    threads = [threading.Thread(target=work) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert synced.get()["n"] == 8000