from django.db import models


class ComplaintPriority(models.TextChoices):
    LOW = "Low", "Low"
    MEDIUM = "Medium", "Medium"
    HIGH = "High", "High"


class ComplaintStatus(models.TextChoices):
    OPEN = "Open", "Open"
    IN_PROGRESS = "In Progress", "In Progress"
    RESOLVED = "Resolved", "Resolved"
    CLOSED = "Closed", "Closed"


class ReaderSide(models.TextChoices):
    ADMIN = "admin", "Admin"
    CLIENT = "client", "Client"
