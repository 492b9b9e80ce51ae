"""Channels route probe results to the notifiers attached to them."""

from __future__ import annotations

import logging
import queue
import threading
from enum import Enum
from typing import Any, Iterable

log = logging.getLogger(__name__)

KIND = "channel"
_POLL_SECONDS = 0.05

_dry_notify = threading.Event()


def set_dry_notify(dry: bool) -> None:
    """Set the process-wide dry notification flag."""
    if dry:
        _dry_notify.set()
    else:
        _dry_notify.clear()


def is_dry_notify() -> bool:
    """Return the process-wide dry notification flag."""
    return _dry_notify.is_set()


class Status(Enum):
    """The health status reported by a probe."""

    UP = "up"
    DOWN = "down"
    UNKNOWN = "unknown"
    INIT = "init"
    BAD = "bad"

    def __str__(self) -> str:
        return self.value


class Channel:
    """A named group of probers whose status changes go to a set of notifiers.

    Probers and notifiers are any objects with ``name`` and ``kind``
    attributes; notifiers also provide ``notify(result)`` and
    ``dry_notify(result)``. Results carry ``name``, ``endpoint``,
    ``pre_status`` and ``status``.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.probers: dict[str, Any] = {}
        self.notifiers: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._watching = False
        self._queue: queue.Queue | None = None
        self._done: threading.Event | None = None

    def __repr__(self) -> str:
        return f"Channel({self.name!r})"

    @property
    def configured(self) -> bool:
        """True once :meth:`config` has created the result queue."""
        return self._queue is not None and self._done is not None

    @property
    def watching(self) -> bool:
        """True while a watcher is processing this channel's results."""
        with self._lock:
            return self._watching

    def config(self) -> None:
        """Create the result queue, sized for the probers set so far."""
        self._done = threading.Event()
        self._queue = queue.Queue(maxsize=len(self.probers))

    def _require_config(self) -> None:
        if not self.configured:
            raise RuntimeError(f"[{KIND} / {self.name}]: channel is not configured")

    def send(self, result: Any) -> None:
        """Queue a probe result for the watcher."""
        self._require_config()
        self._queue.put(result)

    def done(self) -> None:
        """Tell the watcher to stop."""
        self._require_config()
        self._done.set()

    def get_prober(self, name: str) -> Any:
        return self.probers.get(name)

    def set_probers(self, probers: Iterable[Any]) -> None:
        for prober in probers:
            self.set_prober(prober)

    def set_prober(self, prober: Any) -> None:
        """Add a prober; a second prober with the same name is ignored."""
        if prober is None:
            return
        if prober.name in self.probers:
            log.error("Prober [%s - %s] name is duplicated, ignored!", prober.kind, prober.name)
            return
        self.probers[prober.name] = prober

    def get_notify(self, name: str) -> Any:
        return self.notifiers.get(name)

    def set_notifiers(self, notifiers: Iterable[Any]) -> None:
        for notifier in notifiers:
            self.set_notify(notifier)

    def set_notify(self, notifier: Any) -> None:
        """Add a notifier; a second notifier with the same name is ignored."""
        if notifier is None:
            return
        if notifier.name in self.notifiers:
            log.error(
                "Notifier [%s - %s] name is duplicated, ignored!", notifier.kind, notifier.name
            )
            return
        self.notifiers[notifier.name] = notifier

    def watch_event(self) -> bool:
        """Dispatch queued results to the notifiers until :meth:`done` is called.

        Returns False at once if another watcher is already running,
        True when stopped by :meth:`done`.
        """
        self._require_config()
        with self._lock:
            if self._watching:
                log.warning("[%s / %s]: Channel is already watching!", KIND, self.name)
                return False
            self._watching = True
        done, results = self._done, self._queue
        try:
            while not done.is_set():
                try:
                    result = results.get(timeout=_POLL_SECONDS)
                except queue.Empty:
                    continue
                self._dispatch(result)
            log.info("[%s / %s]: Received the done signal, channel exiting...", KIND, self.name)
            return True
        finally:
            with self._lock:
                self._watching = False

    def _dispatch(self, result: Any) -> None:
        if result.pre_status == result.status:
            log.debug(
                "[%s / %s]: %s (%s) - Status no change [%s] == [%s], no notification.",
                KIND, self.name, result.name, result.endpoint, result.pre_status, result.status,
            )
            return
        if result.pre_status == Status.INIT and result.status == Status.UP:
            log.debug(
                "[%s / %s]: %s (%s) - Initial Status [%s] == [%s], no notification.",
                KIND, self.name, result.name, result.endpoint, result.pre_status, result.status,
            )
            return
        log.info(
            "[%s / %s]: %s (%s) - Status changed [%s] ==> [%s]",
            KIND, self.name, result.name, result.endpoint, result.pre_status, result.status,
        )
        for notifier in list(self.notifiers.values()):
            if is_dry_notify():
                notifier.dry_notify(result)
            else:
                threading.Thread(target=notifier.notify, args=(result,), daemon=True).start()