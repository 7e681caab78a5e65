"""Data model for the course portal.

Admins edit modules and lessons through the /admin pages.
Students only read them.

Table names match the persisted layout (`users`, `modules`, `lessons`) so the
database stays readable outside Django.
"""

from django.contrib.auth.hashers import check_password, make_password
from django.db import models


class Role(models.TextChoices):
    """Closed set of portal roles.

    Views never compare raw role strings; they ask the role what it may do.
    """

    ADMIN = "admin", "Admin"
    STUDENT = "student", "Student"

    def can_administer(self) -> bool:
        return self is Role.ADMIN

    @classmethod
    def parse(cls, raw) -> "Role | None":
        # Exact values only; stored roles are always written from the enum.
        if not isinstance(raw, str):
            return None
        try:
            return cls(raw)
        except ValueError:
            return None


TITLE_MAX_LENGTH = 200


def normalize_email(raw: str) -> str:
    return (raw or "").strip().lower()


class User(models.Model):
    """A portal account (admin or student).

    Created by `manage.py seed_portal`; request handlers never write to it.
    """

    email = models.EmailField(max_length=254, unique=True)
    password_hash = models.CharField(max_length=255)
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.STUDENT)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "users"
        ordering = ["id"]

    def save(self, *args, **kwargs):
        self.email = normalize_email(self.email)
        super().save(*args, **kwargs)

    def set_password(self, raw_password: str) -> None:
        self.password_hash = make_password(raw_password)

    def check_password(self, raw_password: str) -> bool:
        return check_password(raw_password, self.password_hash)

    @property
    def role_enum(self) -> "Role | None":
        return Role.parse(self.role)

    def __str__(self) -> str:
        return f"{self.email} ({self.role})"


class Module(models.Model):
    """A top-level course unit containing ordered lessons."""

    title = models.CharField(max_length=TITLE_MAX_LENGTH)
    description = models.TextField(blank=True, default="")
    sort_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "modules"
        ordering = ["sort_order", "id"]

    def __str__(self) -> str:
        return self.title


class Lesson(models.Model):
    """A single content unit: markdown text and/or one YouTube video.

    `youtube_url` keeps whatever the admin pasted; the lesson page resolves
    it to an embeddable id at render time.
    """

    # Lessons go away with their module (ON DELETE CASCADE).
    module = models.ForeignKey(Module, on_delete=models.CASCADE, related_name="lessons")
    title = models.CharField(max_length=TITLE_MAX_LENGTH)
    content_md = models.TextField(blank=True, default="")
    youtube_url = models.TextField(blank=True, default="")
    sort_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "lessons"
        ordering = ["sort_order", "id"]
        indexes = [
            models.Index(fields=["module", "sort_order"], name="lessons_module_sort_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.module.title}: {self.title}"
