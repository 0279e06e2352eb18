"""Notification domain exceptions."""


class NotificationNotFound(Exception):
    """The notification does not exist or belongs to another recipient."""
