from django.contrib.auth.models import AbstractUser
from django.db import models


class CustomUser(AbstractUser):
    """Platform user with an application role.

    Roles gate catalogue management (categories, questions, display order)
    and the admin dashboard. Everything else is available to any
    authenticated user on their own data.
    """

    class Role(models.TextChoices):
        USER = "user", "User"
        ADMIN = "admin", "Admin"
        SUPERADMIN = "superadmin", "Super admin"

    role = models.CharField(
        max_length=12,
        choices=Role.choices,
        default=Role.USER,
        db_index=True,
    )

    @property
    def display_name(self) -> str:
        """Name shown next to user content (full name, falling back to username)."""
        return self.get_full_name() or self.username

    @property
    def is_catalogue_admin(self) -> bool:
        return self.role in (self.Role.ADMIN, self.Role.SUPERADMIN)
