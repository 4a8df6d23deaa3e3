"""Abstract notifier base class."""

from __future__ import annotations

from abc import ABC, abstractmethod

from fieldrelay.webhooks.models import NotificationRequest


class Notifier(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    async def notify(self, request: NotificationRequest) -> str:
        """Send one notification and return the success message for the caller."""
        ...
