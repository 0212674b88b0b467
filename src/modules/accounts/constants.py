"""Account domain constants."""

from django.db import models


class UserRole(models.TextChoices):
    USER = "user", "User"
    OWNER = "owner", "Owner"
    ADMIN = "admin", "Admin"
