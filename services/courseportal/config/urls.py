from django.urls import path
from portal import views

urlpatterns = [
    path("healthz", views.healthz),

    # Sign-in
    path("login", views.login_view),
    path("logout", views.logout_view),

    # Student flow
    path("", views.index),
    path("modules", views.module_list),
    path("modules/<int:module_id>", views.module_detail),
    path("lessons/<int:lesson_id>", views.lesson_detail),
    path("syllabus", views.syllabus),
    path("qas", views.qas),

    # Admin CRUD (admin role only)
    path("admin", views.admin_home),
    path("admin/modules/new", views.admin_module_new),
    path("admin/modules/<int:module_id>/edit", views.admin_module_edit),
    path("admin/modules/<int:module_id>/delete", views.admin_module_delete),
    path("admin/modules/<int:module_id>/lessons/new", views.admin_lesson_new),
    path("admin/lessons/<int:lesson_id>/edit", views.admin_lesson_edit),
    path("admin/lessons/<int:lesson_id>/delete", views.admin_lesson_delete),
]
