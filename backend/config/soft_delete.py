from django.db import models
from django.utils import timezone


class SoftDeleteQuerySet(models.QuerySet):
    def live(self):
        return self.filter(deleted_at__isnull=True)

    def deleted(self):
        return self.filter(deleted_at__isnull=False)


class SoftDeleteModel(models.Model):
    """Rows are never removed; ``deleted_at`` hides them from every live query."""

    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        abstract = True

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, *, now=None) -> bool:
        if self.deleted_at is not None:
            return False
        self.deleted_at = now or timezone.now()
        update_fields = ["deleted_at"]
        if any(field.name == "updated_at" for field in self._meta.concrete_fields):
            update_fields.append("updated_at")
        self.save(update_fields=update_fields)
        return True
