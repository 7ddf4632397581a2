"""
Abstract Base Adapter for outbound mail providers.
The notification hook only ever talks to this interface.
"""
from abc import ABC, abstractmethod
from typing import Optional


class Mailer(ABC):
    """
    Abstract mail transport.

    Implementations must never raise for delivery problems; they report
    them through the returned dict so a failed send stays contained.
    """

    provider: str = "none"

    @abstractmethod
    def send(self, to: str, subject: str, html: str, text: Optional[str] = None) -> dict:
        """
        Deliver a single message.

        Args:
            to: Recipient email address.
            subject: Subject line.
            html: HTML body.
            text: Optional plain-text alternative.

        Returns:
            Dict with at minimum: {"success": bool, "message": "..."}
        """
        ...
