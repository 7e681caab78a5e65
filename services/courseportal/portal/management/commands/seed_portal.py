"""Seed starter content and the admin/student accounts.

Usage (after `python manage.py migrate`):
  python manage.py seed_portal
  python manage.py seed_portal --content-pack /path/to/pack.yaml
  python manage.py seed_portal --skip-content

Notes:
- Content is only inserted when the modules table is empty, so re-running the
  command never duplicates or overwrites admin edits.
- Accounts are upserted: an existing email gets its password re-hashed and
  its role reset from the environment (ADMIN_SEED_* / STUDENT_SEED_*).
"""

from __future__ import annotations

from pathlib import Path

import yaml
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import connection, transaction

from portal.models import TITLE_MAX_LENGTH, Lesson, Module, Role, User, normalize_email


def _load_pack(path: Path) -> dict:
    if not path.exists():
        raise CommandError(f"Content pack not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise CommandError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise CommandError(f"Content pack must be a mapping: {path}")
    return data


def _as_int(raw, default: int = 0) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    low, high = connection.ops.integer_field_range("IntegerField")
    if (low is not None and value < low) or (high is not None and value > high):
        return default
    return value


class Command(BaseCommand):
    help = "Seed starter modules/lessons (empty DB only) and upsert the seed accounts."

    def add_arguments(self, parser):
        parser.add_argument(
            "--content-pack",
            default=str(getattr(settings, "PORTAL_SEED_CONTENT_PATH", "")),
            help="YAML file with a top-level `modules` list.",
        )
        parser.add_argument("--skip-content", action="store_true", help="Do not touch modules/lessons.")
        parser.add_argument("--skip-users", action="store_true", help="Do not touch user accounts.")

    def handle(self, *args, **opts):
        if not opts["skip_content"]:
            self._seed_content(Path(opts["content_pack"]))
        if not opts["skip_users"]:
            self._seed_users()
        self.stdout.write(self.style.SUCCESS("Seed complete."))

    def _seed_content(self, pack_path: Path) -> None:
        if Module.objects.exists():
            self.stdout.write("Modules already exist; skipping content seed.")
            return

        pack = _load_pack(pack_path)
        modules = pack.get("modules") or []
        if not isinstance(modules, list):
            raise CommandError("`modules` must be a list")

        module_count = 0
        lesson_count = 0
        with transaction.atomic():
            for idx, row in enumerate(modules, start=1):
                if not isinstance(row, dict):
                    continue
                title = str(row.get("title") or "").strip()
                if not title:
                    raise CommandError(f"Module #{idx} is missing a title")
                module = Module.objects.create(
                    title=title[:TITLE_MAX_LENGTH],
                    description=str(row.get("description") or "").strip(),
                    sort_order=_as_int(row.get("sort_order")),
                )
                module_count += 1
                for lesson_row in row.get("lessons") or []:
                    if not isinstance(lesson_row, dict):
                        continue
                    lesson_title = str(lesson_row.get("title") or "").strip()
                    if not lesson_title:
                        raise CommandError(f"Module '{title}' has a lesson without a title")
                    Lesson.objects.create(
                        module=module,
                        title=lesson_title[:TITLE_MAX_LENGTH],
                        content_md=str(lesson_row.get("content_md") or "").strip(),
                        youtube_url=str(lesson_row.get("youtube_url") or "").strip(),
                        sort_order=_as_int(lesson_row.get("sort_order")),
                    )
                    lesson_count += 1

        self.stdout.write(f"Seeded modules: {module_count}")
        self.stdout.write(f"Seeded lessons: {lesson_count}")

    def _seed_users(self) -> None:
        seeds = getattr(settings, "PORTAL_SEED_USERS", {}) or {}
        for role in (Role.ADMIN, Role.STUDENT):
            row = seeds.get(role.value) or {}
            email = normalize_email(row.get("email"))
            password = row.get("password") or ""
            if not email or not password:
                self.stdout.write(self.style.WARNING(f"No seed credentials for {role.value}; skipping."))
                continue

            user = User.objects.filter(email=email).first()
            created = user is None
            if created:
                user = User(email=email)
            user.role = role.value
            user.set_password(password)
            user.save()
            verb = "Created" if created else "Updated"
            self.stdout.write(self.style.SUCCESS(f"{verb} {role.value} account {email}"))
