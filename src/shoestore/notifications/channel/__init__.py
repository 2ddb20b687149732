"""Channel adapter registry.

Provides singleton access to the email and push adapters and to the realtime
connection registry. In-memory adapters are used by default; real providers
are plugged in with set_channel() at application start-up.
"""

from shoestore.notifications.channel.email import FakeEmail
from shoestore.notifications.channel.push import FakePush
from shoestore.notifications.channel.realtime import ConnectionRegistry

_channel_instances: dict[str, object] = {}

_DEFAULTS = {
    "email": FakeEmail,
    "push": FakePush,
    "realtime": ConnectionRegistry,
}


def get_channel(channel_type: str):
    """Return the adapter for ``channel_type`` ("email", "push" or "realtime")."""
    if channel_type not in _channel_instances:
        if channel_type not in _DEFAULTS:
            raise ValueError(f"No adapter for channel: {channel_type}")
        _channel_instances[channel_type] = _DEFAULTS[channel_type]()
    return _channel_instances[channel_type]


def set_channel(channel_type: str, adapter) -> None:
    _channel_instances[channel_type] = adapter


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    _channel_instances.clear()
