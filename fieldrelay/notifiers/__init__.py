"""fieldrelay notifiers."""

from fieldrelay.notifiers.base import Notifier
from fieldrelay.notifiers.dispatch import DispatchNotifier
from fieldrelay.notifiers.slack import SlackNotifier

__all__ = [
    "Notifier",
    "DispatchNotifier",
    "SlackNotifier",
]
