import threading
from dataclasses import dataclass, field

import pytest

from easeprobe import manager
from easeprobe.channel import Status, is_dry_notify, set_dry_notify


@dataclass
class DummyProber:
    kind: str
    tag: str
    name: str
    channels: list


@dataclass
class Result:
    name: str
    endpoint: str
    pre_status: Status
    status: Status


@dataclass
class DummyNotify:
    kind: str
    name: str
    channels: list
    calls: list = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def notify(self, result):
        with self.lock:
            self.calls.append(("notify", result.name))

    def dry_notify(self, result):
        with self.lock:
            self.calls.append(("dry", result.name))


@pytest.fixture(autouse=True)
def clean_registry():
    manager.get_all_channels().clear()
    set_dry_notify(False)
    yield
    manager.get_all_channels().clear()
    set_dry_notify(False)


def test_get_notifiers():
    manager.set_notify("test", DummyNotify("email", "dummy", ["test"]))
    assert len(manager.get_notifiers(["nil-channel"])) == 0
    found = manager.get_notifiers(["test"])
    assert len(found) == 1
    assert found["dummy"].name == "dummy"


def test_manager():
    manager.set_notify("test", DummyNotify("email", "dummy", ["test"]))
    manager.set_prober("test", DummyProber("http", "", "dummy", ["test"]))
    test = manager.get_channel("test")
    assert test.name == "test"

    manager.set_probers([
        DummyProber("http", "XY", "dummy-XY", ["X", "Y"]),
        DummyProber("http", "X", "dummy-X", ["X"]),
        DummyProber("http", "Y", "dummy-Y", ["Y"]),
        DummyProber("http", "ALL", "dummy-ALL", ["X", "Y", "test"]),
    ])
    x = manager.get_channel("X")
    assert x.get_prober("dummy-X").name == "dummy-X"
    assert x.get_prober("dummy-XY").name == "dummy-XY"
    assert x.get_prober("dummy-ALL").name == "dummy-ALL"

    y = manager.get_channel("Y")
    assert y.get_prober("dummy-X") is None
    assert y.get_prober("dummy-Y").name == "dummy-Y"
    assert y.get_prober("dummy-XY").name == "dummy-XY"
    assert y.get_prober("dummy-ALL").name == "dummy-ALL"
    assert test.get_prober("dummy-ALL").name == "dummy-ALL"

    manager.set_notifiers([
        DummyNotify("email", "dummy-XY", ["X", "Y"]),
        DummyNotify("email", "dummy-X", ["X"]),
    ])
    assert x.get_notify("dummy-XY").name == "dummy-XY"
    assert x.get_notify("dummy-X").name == "dummy-X"
    assert y.get_notify("dummy-X") is None
    assert y.get_notify("dummy-XY").name == "dummy-XY"

    chs = manager.get_all_channels()
    assert sorted(chs) == ["X", "Y", "test"]

    assert all(not ch.configured for ch in chs.values())
    manager.config_all_channels()
    assert all(ch.configured for ch in chs.values())

    for ch in chs.values():
        for prober in ch.probers.values():
            ch.send(Result(prober.name, "endpoint", Status.UP, Status.UP))

    manager.watch_for_all_events()
    set_dry_notify(True)
    assert is_dry_notify() is True
    manager.all_done()
    assert all(not ch.watching for ch in chs.values())


def test_watchers_deliver_changes_then_stop():
    notifier = DummyNotify("email", "n", ["A"])
    manager.set_prober("A", DummyProber("http", "", "p", ["A"]))
    manager.set_notify("A", notifier)
    manager.config_all_channels()
    set_dry_notify(True)

    manager.get_channel("A").send(Result("p", "endpoint", Status.UP, Status.DOWN))
    manager.watch_for_all_events()
    for _ in range(250):
        with notifier.lock:
            if notifier.calls:
                break
        threading.Event().wait(0.02)
    manager.all_done()

    assert notifier.calls == [("dry", "p")]
    assert manager.get_channel("A").watching is False


def test_set_channel_keeps_existing():
    manager.set_prober("keep", DummyProber("http", "", "p", ["keep"]))
    before = manager.get_channel("keep")
    manager.set_channel("keep")
    assert manager.get_channel("keep") is before
    assert before.get_prober("p").name == "p"


def test_all_done_on_unconfigured_channel_raises():
    manager.set_channel("raw")
    with pytest.raises(RuntimeError):
        manager.all_done()