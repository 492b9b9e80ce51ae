"""The process-wide registry of channels."""

from __future__ import annotations

import threading
from typing import Any, Iterable

from .channel import Channel

_channels: dict[str, Channel] = {}
_watchers: list[threading.Thread] = []


def get_all_channels() -> dict[str, Channel]:
    """Return the registry mapping channel names to channels."""
    return _channels


def get_channel(name: str) -> Channel | None:
    return _channels.get(name)


def set_channel(name: str) -> None:
    """Create an empty channel with this name unless it exists."""
    if get_channel(name) is None:
        _channels[name] = Channel(name)


def _ensure(name: str) -> Channel:
    set_channel(name)
    return _channels[name]


def set_probers(probers: Iterable[Any]) -> None:
    """Add each prober to every channel it names."""
    for prober in probers:
        for name in prober.channels:
            set_prober(name, prober)


def set_prober(channel: str, prober: Any) -> None:
    """Add a prober to a channel, creating the channel if needed."""
    _ensure(channel).set_prober(prober)


def set_notifiers(notifiers: Iterable[Any]) -> None:
    """Add each notifier to every channel it names."""
    for notifier in notifiers:
        for name in notifier.channels:
            set_notify(name, notifier)


def set_notify(channel: str, notifier: Any) -> None:
    """Add a notifier to a channel, creating the channel if needed."""
    _ensure(channel).set_notify(notifier)


def get_notifiers(channels: Iterable[str]) -> dict[str, Any]:
    """Return the notifiers of the named channels, keyed by notifier name."""
    notifiers: dict[str, Any] = {}
    for name in channels:
        ch = get_channel(name)
        if ch is None:
            continue
        for notifier in ch.notifiers.values():
            notifiers[notifier.name] = notifier
    return notifiers


def config_all_channels() -> None:
    for ch in _channels.values():
        ch.config()


def watch_for_all_events() -> None:
    """Start a watcher thread for every channel."""
    for ch in _channels.values():
        thread = threading.Thread(target=ch.watch_event, name=f"channel-{ch.name}", daemon=True)
        thread.start()
        _watchers.append(thread)


def all_done() -> None:
    """Stop every channel's watcher and wait for the watchers to finish."""
    for ch in _channels.values():
        ch.done()
    while _watchers:
        _watchers.pop().join()