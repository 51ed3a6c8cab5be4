"""Domain models for the order notification dispatcher."""

from .models import NotificationJob, OrderLine, OrderPlaced, SendResult

__all__ = ["OrderPlaced", "OrderLine", "NotificationJob", "SendResult"]
