from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class User(AbstractUser):
    class Roles(models.TextChoices):
        SUPERADMIN = "superadmin", _("Superadministrador")
        ADMIN = "admin", _("Administrador")
        RECEPTIONIST = "receptionist", _("Recepcionista")

    role = models.CharField(
        max_length=20,
        choices=Roles.choices,
        default=Roles.RECEPTIONIST,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username

    def soft_delete(self, *, now=None) -> bool:
        if self.deleted_at is not None:
            return False
        self.deleted_at = now or timezone.now()
        self.is_active = False
        self.save(update_fields=["deleted_at", "is_active", "updated_at"])
        return True
