"""Student-facing read-only pages."""

from django.http import HttpResponse
from django.shortcuts import redirect, render
from django.utils.safestring import mark_safe
from django.views.decorators.http import require_GET

from ..guards import login_required
from ..models import Lesson, Module
from ..services.content_links import extract_youtube_id, youtube_embed_url
from ..services.markdown_content import render_markdown
from ..services.static_pages import load_qas, load_syllabus


@require_GET
def index(request):
    """Home page.

    Anonymous browsers always land on the login form.
    """
    if request.portal_user is None:
        return redirect("/login")
    return render(
        request,
        "index.html",
        {"page_title": "Home", "modules": Module.objects.all()},
    )


@require_GET
@login_required
def module_list(request):
    return render(
        request,
        "modules.html",
        {"page_title": "Modules", "modules": Module.objects.all()},
    )


@require_GET
@login_required
def module_detail(request, module_id: int):
    module = Module.objects.filter(id=module_id).first()
    if not module:
        return HttpResponse("Module not found", status=404)

    return render(
        request,
        "module.html",
        {
            "page_title": module.title,
            "module": module,
            "lessons": module.lessons.all(),
        },
    )


@require_GET
@login_required
def lesson_detail(request, lesson_id: int):
    lesson = Lesson.objects.select_related("module").filter(id=lesson_id).first()
    if not lesson:
        return HttpResponse("Lesson not found", status=404)

    video_id = extract_youtube_id(lesson.youtube_url)
    return render(
        request,
        "lesson.html",
        {
            "page_title": lesson.title,
            "lesson": lesson,
            "module": lesson.module,
            "video_id": video_id,
            "video_embed_url": youtube_embed_url(video_id),
            "content_html": mark_safe(render_markdown(lesson.content_md)),
        },
    )


@require_GET
@login_required
def syllabus(request):
    return render(
        request,
        "syllabus.html",
        {"page_title": "Syllabus", "syllabus": load_syllabus()},
    )


@require_GET
@login_required
def qas(request):
    return render(
        request,
        "qas.html",
        {"page_title": "Q&A", "qas": load_qas()},
    )


__all__ = [
    "index",
    "module_list",
    "module_detail",
    "lesson_detail",
    "syllabus",
    "qas",
]
