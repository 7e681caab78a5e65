"""Admin endpoint callables under /admin/*.

Every write follows the same shape: trim the form, re-render the form with an
inline error when the title is blank or too long, otherwise make exactly one change and
redirect back to /admin.
"""

from django.db import connection
from django.http import HttpResponse
from django.shortcuts import redirect, render
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from ..guards import admin_required
from ..models import TITLE_MAX_LENGTH, Lesson, Module
from ..services.audit import log_admin_action

ADMIN_HOME = "/admin"
_TITLE_REQUIRED = "Title is required."
_TITLE_TOO_LONG = f"Title must be at most {TITLE_MAX_LENGTH} characters."


def _form_text(request, name: str) -> str:
    return (request.POST.get(name) or "").strip()


def _parse_sort_order(raw: str | None) -> int:
    # Blank, non-numeric or out-of-range input means "no preference", not a form error.
    try:
        value = int((raw or "").strip() or 0)
    except ValueError:
        return 0
    low, high = connection.ops.integer_field_range("IntegerField")
    if (low is not None and value < low) or (high is not None and value > high):
        return 0
    return value


def _title_error(title: str) -> str:
    if not title:
        return _TITLE_REQUIRED
    if len(title) > TITLE_MAX_LENGTH:
        return _TITLE_TOO_LONG
    return ""


def _module_form_values(request) -> dict:
    return {
        "title": _form_text(request, "title"),
        "description": _form_text(request, "description"),
        "sort_order": _parse_sort_order(request.POST.get("sort_order")),
    }


def _lesson_form_values(request) -> dict:
    return {
        "title": _form_text(request, "title"),
        "youtube_url": _form_text(request, "youtube_url"),
        "sort_order": _parse_sort_order(request.POST.get("sort_order")),
        "content_md": _form_text(request, "content_md"),
    }


def _render_module_form(request, *, mode: str, module: dict, error: str = ""):
    return render(
        request,
        "admin_module_form.html",
        {
            "page_title": "New Module" if mode == "new" else "Edit Module",
            "mode": mode,
            "module": module,
            "error": error,
        },
    )


def _render_lesson_form(request, *, mode: str, module: Module, lesson: dict, error: str = ""):
    return render(
        request,
        "admin_lesson_form.html",
        {
            "page_title": "New Lesson" if mode == "new" else "Edit Lesson",
            "mode": mode,
            "module": module,
            "lesson": lesson,
            "error": error,
        },
    )


@require_GET
@admin_required
def admin_home(request):
    modules = Module.objects.prefetch_related("lessons")
    return render(request, "admin_home.html", {"page_title": "Admin", "modules": modules})


@require_http_methods(["GET", "POST"])
@admin_required
def admin_module_new(request):
    if request.method == "GET":
        return _render_module_form(
            request,
            mode="new",
            module={"title": "", "description": "", "sort_order": 0},
        )

    values = _module_form_values(request)
    error = _title_error(values["title"])
    if error:
        return _render_module_form(request, mode="new", module=values, error=error)

    module = Module.objects.create(**values)
    log_admin_action(
        request,
        action="module.create",
        target_type="Module",
        target_id=str(module.id),
        summary=f"Created module {module.title}",
        metadata={"sort_order": module.sort_order},
    )
    return redirect(ADMIN_HOME)


@require_http_methods(["GET", "POST"])
@admin_required
def admin_module_edit(request, module_id: int):
    module = Module.objects.filter(id=module_id).first()
    if not module:
        return HttpResponse("Module not found", status=404)

    if request.method == "GET":
        return _render_module_form(
            request,
            mode="edit",
            module={
                "id": module.id,
                "title": module.title,
                "description": module.description,
                "sort_order": module.sort_order,
            },
        )

    values = _module_form_values(request)
    error = _title_error(values["title"])
    if error:
        return _render_module_form(
            request,
            mode="edit",
            module={"id": module.id, **values},
            error=error,
        )

    Module.objects.filter(id=module.id).update(**values)
    log_admin_action(
        request,
        action="module.update",
        target_type="Module",
        target_id=str(module.id),
        summary=f"Updated module {values['title']}",
    )
    return redirect(ADMIN_HOME)


@require_POST
@admin_required
def admin_module_delete(request, module_id: int):
    # Lessons are removed by the FK cascade. Unknown ids are a no-op.
    deleted, _details = Module.objects.filter(id=module_id).delete()
    if deleted:
        log_admin_action(
            request,
            action="module.delete",
            target_type="Module",
            target_id=str(module_id),
            summary=f"Deleted module {module_id}",
            metadata={"rows": deleted},
        )
    return redirect(ADMIN_HOME)


@require_http_methods(["GET", "POST"])
@admin_required
def admin_lesson_new(request, module_id: int):
    module = Module.objects.filter(id=module_id).first()
    if not module:
        return HttpResponse("Module not found", status=404)

    if request.method == "GET":
        return _render_lesson_form(
            request,
            mode="new",
            module=module,
            lesson={"title": "", "youtube_url": "", "sort_order": 0, "content_md": ""},
        )

    values = _lesson_form_values(request)
    error = _title_error(values["title"])
    if error:
        return _render_lesson_form(request, mode="new", module=module, lesson=values, error=error)

    lesson = Lesson.objects.create(module=module, **values)
    log_admin_action(
        request,
        action="lesson.create",
        target_type="Lesson",
        target_id=str(lesson.id),
        summary=f"Created lesson {lesson.title}",
        metadata={"module_id": module.id},
    )
    return redirect(ADMIN_HOME)


@require_http_methods(["GET", "POST"])
@admin_required
def admin_lesson_edit(request, lesson_id: int):
    lesson = Lesson.objects.select_related("module").filter(id=lesson_id).first()
    if not lesson:
        return HttpResponse("Lesson not found", status=404)

    if request.method == "GET":
        return _render_lesson_form(
            request,
            mode="edit",
            module=lesson.module,
            lesson={
                "id": lesson.id,
                "title": lesson.title,
                "youtube_url": lesson.youtube_url,
                "sort_order": lesson.sort_order,
                "content_md": lesson.content_md,
            },
        )

    values = _lesson_form_values(request)
    error = _title_error(values["title"])
    if error:
        return _render_lesson_form(
            request,
            mode="edit",
            module=lesson.module,
            lesson={"id": lesson.id, **values},
            error=error,
        )

    Lesson.objects.filter(id=lesson.id).update(**values)
    log_admin_action(
        request,
        action="lesson.update",
        target_type="Lesson",
        target_id=str(lesson.id),
        summary=f"Updated lesson {values['title']}",
        metadata={"module_id": lesson.module_id},
    )
    return redirect(ADMIN_HOME)


@require_POST
@admin_required
def admin_lesson_delete(request, lesson_id: int):
    deleted, _details = Lesson.objects.filter(id=lesson_id).delete()
    if deleted:
        log_admin_action(
            request,
            action="lesson.delete",
            target_type="Lesson",
            target_id=str(lesson_id),
            summary=f"Deleted lesson {lesson_id}",
        )
    return redirect(ADMIN_HOME)


__all__ = [
    "admin_home",
    "admin_module_new",
    "admin_module_edit",
    "admin_module_delete",
    "admin_lesson_new",
    "admin_lesson_edit",
    "admin_lesson_delete",
]
