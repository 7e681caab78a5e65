import tempfile
from io import StringIO
from pathlib import Path

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings

from .middleware import SESSION_USER_KEY
from .models import Lesson, Module, Role, User

VIDEO_ID = "dQw4w9WgXcQ"


def _create_user(email: str, password: str, role: Role) -> User:
    user = User(email=email, role=role.value)
    user.set_password(password)
    user.save()
    return user


def _sign_in(client, user: User) -> None:
    """Put a signed-in payload into the test client's session."""
    session = client.session
    session[SESSION_USER_KEY] = {"id": user.id, "email": user.email, "role": user.role}
    session.save()


class PortalTestCase(TestCase):
    def setUp(self):
        self.admin = _create_user("admin@course.com", "Admin123!", Role.ADMIN)
        self.student = _create_user("student@course.com", "Student123!", Role.STUDENT)


class LoginFlowTests(PortalTestCase):
    def test_login_page_renders_for_anonymous(self):
        resp = self.client.get("/login")
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, 'name="email"')

    def test_login_page_redirects_signed_in_user_home(self):
        _sign_in(self.client, self.student)
        resp = self.client.get("/login")
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(resp["Location"], "/")

    def test_login_normalizes_email_and_stores_session_identity(self):
        resp = self.client.post("/login", {"email": "  Student@Course.COM ", "password": "Student123!"})
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(resp["Location"], "/")
        self.assertEqual(
            self.client.session[SESSION_USER_KEY],
            {"id": self.student.id, "email": "student@course.com", "role": "student"},
        )

    def test_login_rejects_wrong_password_with_401(self):
        resp = self.client.post("/login", {"email": "student@course.com", "password": "nope"})
        self.assertEqual(resp.status_code, 401)
        self.assertContains(resp, "Invalid email or password.", status_code=401)
        self.assertNotIn(SESSION_USER_KEY, self.client.session)

    def test_login_rejects_unknown_email_with_401(self):
        resp = self.client.post("/login", {"email": "ghost@course.com", "password": "Student123!"})
        self.assertEqual(resp.status_code, 401)

    def test_logout_flushes_session_and_redirects_to_login(self):
        _sign_in(self.client, self.student)
        resp = self.client.post("/logout")
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(resp["Location"], "/login")
        self.assertNotIn(SESSION_USER_KEY, self.client.session)
        self.assertEqual(self.client.get("/modules")["Location"], "/login")

    def test_logout_requires_session(self):
        resp = self.client.post("/logout")
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(resp["Location"], "/login")

    def test_healthz_is_public(self):
        resp = self.client.get("/healthz")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.content, b"ok")


class SessionGuardTests(PortalTestCase):
    def setUp(self):
        super().setUp()
        self.module = Module.objects.create(title="Module 4", description="Theories")

    def test_anonymous_requests_redirect_to_login(self):
        for path in ["/", "/modules", f"/modules/{self.module.id}", "/lessons/1", "/syllabus", "/qas", "/admin"]:
            with self.subTest(path=path):
                resp = self.client.get(path)
                self.assertEqual(resp.status_code, 302)
                self.assertEqual(resp["Location"], "/login")
                self.assertEqual(resp.content, b"")

    def test_student_sees_module_page(self):
        _sign_in(self.client, self.student)
        resp = self.client.get(f"/modules/{self.module.id}")
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Module 4")

    def test_unknown_module_is_404_for_signed_in_user(self):
        _sign_in(self.client, self.student)
        resp = self.client.get("/modules/9999")
        self.assertEqual(resp.status_code, 404)

    def test_student_is_forbidden_from_admin_routes(self):
        _sign_in(self.client, self.student)
        for method, path in [
            ("get", "/admin"),
            ("post", "/admin/modules/new"),
            ("post", f"/admin/modules/{self.module.id}/delete"),
        ]:
            with self.subTest(path=path):
                resp = getattr(self.client, method)(path, {"title": "Sneaky"})
                self.assertEqual(resp.status_code, 403)
        self.assertEqual(Module.objects.count(), 1)

    def test_tampered_role_in_session_is_treated_as_anonymous(self):
        session = self.client.session
        session[SESSION_USER_KEY] = {"id": self.student.id, "email": self.student.email, "role": "Admin"}
        session.save()
        resp = self.client.get("/admin")
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(resp["Location"], "/login")
        self.assertNotIn(SESSION_USER_KEY, self.client.session)

    def test_security_headers_allow_youtube_frames(self):
        _sign_in(self.client, self.student)
        resp = self.client.get("/modules")
        self.assertIn("https://www.youtube-nocookie.com", resp["Content-Security-Policy"])


class StudentContentTests(PortalTestCase):
    def setUp(self):
        super().setUp()
        _sign_in(self.client, self.student)
        self.module = Module.objects.create(title="Module 4", sort_order=1)

    def test_home_and_module_list_are_ordered_by_sort_order_then_id(self):
        later = Module.objects.create(title="Zeta first", sort_order=0)
        tie = Module.objects.create(title="Module 4 tie", sort_order=1)
        resp = self.client.get("/modules")
        self.assertEqual([m.id for m in resp.context["modules"]], [later.id, self.module.id, tie.id])
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Zeta first")

    def test_module_page_lists_lessons_in_order(self):
        second = Lesson.objects.create(module=self.module, title="Second", sort_order=2)
        first = Lesson.objects.create(module=self.module, title="First", sort_order=1)
        resp = self.client.get(f"/modules/{self.module.id}")
        self.assertEqual([l.id for l in resp.context["lessons"]], [first.id, second.id])

    def test_lesson_page_renders_markdown_and_video(self):
        lesson = Lesson.objects.create(
            module=self.module,
            title="MI + OARS",
            content_md="# OARS\n\n- Open questions",
            youtube_url=f"https://www.youtube.com/watch?v={VIDEO_ID}",
        )
        resp = self.client.get(f"/lessons/{lesson.id}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.context["video_id"], VIDEO_ID)
        self.assertContains(resp, f"https://www.youtube-nocookie.com/embed/{VIDEO_ID}")
        self.assertContains(resp, '<h1 id="oars">OARS</h1>', html=False)
        self.assertContains(resp, "<li>Open questions</li>", html=False)

    def test_lesson_with_unparseable_video_url_renders_without_embed(self):
        lesson = Lesson.objects.create(module=self.module, title="No video", youtube_url="https://vimeo.com/123")
        resp = self.client.get(f"/lessons/{lesson.id}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.context["video_id"], "")
        self.assertNotContains(resp, "<iframe")

    def test_unknown_lesson_is_404(self):
        resp = self.client.get("/lessons/9999")
        self.assertEqual(resp.status_code, 404)

    def test_syllabus_and_qas_survive_missing_data_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            with override_settings(PORTAL_STATIC_DATA_DIR=Path(tmp)):
                resp = self.client.get("/syllabus")
                self.assertEqual(resp.status_code, 200)
                self.assertEqual(resp.context["syllabus"], {"title": "Syllabus", "items": []})
                resp = self.client.get("/qas")
                self.assertEqual(resp.status_code, 200)
                self.assertEqual(resp.context["qas"], {"title": "Q&A", "sections": []})

    def test_syllabus_renders_shipped_data(self):
        resp = self.client.get("/syllabus")
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Motivational Interviewing (MI)")


class AdminModuleTests(PortalTestCase):
    def setUp(self):
        super().setUp()
        _sign_in(self.client, self.admin)

    def test_admin_home_lists_modules(self):
        Module.objects.create(title="Module 4")
        resp = self.client.get("/admin")
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Module 4")

    def test_new_module_form_renders(self):
        resp = self.client.get("/admin/modules/new")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.context["mode"], "new")

    def test_empty_title_rerenders_form_without_insert(self):
        resp = self.client.post(
            "/admin/modules/new",
            {"title": "   ", "description": " Kept ", "sort_order": "3"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Title is required.")
        self.assertEqual(resp.context["module"], {"title": "", "description": "Kept", "sort_order": 3})
        self.assertEqual(Module.objects.count(), 0)

    def test_create_module_inserts_one_row_and_redirects(self):
        resp = self.client.post(
            "/admin/modules/new",
            {"title": "  Module 5 ", "description": "CBT", "sort_order": "2"},
        )
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(resp["Location"], "/admin")
        module = Module.objects.get()
        self.assertEqual((module.title, module.description, module.sort_order), ("Module 5", "CBT", 2))

    def test_non_numeric_sort_order_collapses_to_zero(self):
        for raw in ["abc", "", "2.5"]:
            with self.subTest(raw=raw):
                self.client.post("/admin/modules/new", {"title": f"M {raw}", "sort_order": raw})
                self.assertEqual(Module.objects.get(title=f"M {raw}").sort_order, 0)

    def test_out_of_range_sort_order_collapses_to_zero(self):
        for raw in ["99999999999999999999", "-99999999999999999999"]:
            with self.subTest(raw=raw):
                resp = self.client.post("/admin/modules/new", {"title": f"Huge {raw}", "sort_order": raw})
                self.assertEqual(resp.status_code, 302)
                self.assertEqual(Module.objects.get(title=f"Huge {raw}").sort_order, 0)

    def test_over_long_title_rerenders_form_without_write(self):
        resp = self.client.post("/admin/modules/new", {"title": "x" * 201})
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Title must be at most 200 characters.")
        self.assertEqual(Module.objects.count(), 0)

        module = Module.objects.create(title="Short")
        resp = self.client.post(f"/admin/modules/{module.id}/edit", {"title": "y" * 201})
        self.assertEqual(resp.status_code, 200)
        module.refresh_from_db()
        self.assertEqual(module.title, "Short")

    def test_title_at_the_limit_is_accepted(self):
        resp = self.client.post("/admin/modules/new", {"title": "z" * 200})
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(len(Module.objects.get().title), 200)

    def test_create_module_logs_admin_action(self):
        with self.assertLogs("portal.services.audit", level="INFO") as logs:
            self.client.post("/admin/modules/new", {"title": "Logged"})
        self.assertIn("action=module.create", logs.output[0])
        self.assertIn("actor=admin@course.com", logs.output[0])

    def test_edit_module_updates_and_redirects(self):
        module = Module.objects.create(title="Old", description="d", sort_order=1)
        resp = self.client.post(
            f"/admin/modules/{module.id}/edit",
            {"title": "New", "description": "", "sort_order": "5"},
        )
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(resp["Location"], "/admin")
        module.refresh_from_db()
        self.assertEqual((module.title, module.description, module.sort_order), ("New", "", 5))

    def test_edit_module_with_empty_title_keeps_row(self):
        module = Module.objects.create(title="Old")
        resp = self.client.post(f"/admin/modules/{module.id}/edit", {"title": ""})
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Title is required.")
        self.assertEqual(resp.context["module"]["id"], module.id)
        module.refresh_from_db()
        self.assertEqual(module.title, "Old")

    def test_edit_unknown_module_is_404(self):
        self.assertEqual(self.client.get("/admin/modules/9999/edit").status_code, 404)
        self.assertEqual(self.client.post("/admin/modules/9999/edit", {"title": "x"}).status_code, 404)

    def test_delete_module_cascades_to_lessons(self):
        module = Module.objects.create(title="Doomed")
        Lesson.objects.create(module=module, title="L1")
        Lesson.objects.create(module=module, title="L2")
        keep = Module.objects.create(title="Keep")
        Lesson.objects.create(module=keep, title="Stays")

        resp = self.client.post(f"/admin/modules/{module.id}/delete")
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(resp["Location"], "/admin")
        self.assertFalse(Module.objects.filter(id=module.id).exists())
        self.assertEqual(list(Lesson.objects.values_list("title", flat=True)), ["Stays"])

    def test_delete_unknown_module_redirects_without_error(self):
        resp = self.client.post("/admin/modules/9999/delete")
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(resp["Location"], "/admin")

    def test_delete_requires_post(self):
        module = Module.objects.create(title="Safe")
        resp = self.client.get(f"/admin/modules/{module.id}/delete")
        self.assertEqual(resp.status_code, 405)
        self.assertTrue(Module.objects.filter(id=module.id).exists())


class AdminLessonTests(PortalTestCase):
    def setUp(self):
        super().setUp()
        _sign_in(self.client, self.admin)
        self.module = Module.objects.create(title="Module 4")

    def test_new_lesson_form_for_unknown_module_is_404(self):
        self.assertEqual(self.client.get("/admin/modules/9999/lessons/new").status_code, 404)
        resp = self.client.post("/admin/modules/9999/lessons/new", {"title": "Orphan"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(Lesson.objects.count(), 0)

    def test_create_lesson_trims_fields_and_redirects(self):
        resp = self.client.post(
            f"/admin/modules/{self.module.id}/lessons/new",
            {
                "title": " Week 5 ",
                "youtube_url": f" https://youtu.be/{VIDEO_ID} ",
                "sort_order": "1",
                "content_md": "\n# Hello\n",
            },
        )
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(resp["Location"], "/admin")
        lesson = Lesson.objects.get()
        self.assertEqual(lesson.module_id, self.module.id)
        self.assertEqual(lesson.title, "Week 5")
        self.assertEqual(lesson.youtube_url, f"https://youtu.be/{VIDEO_ID}")
        self.assertEqual(lesson.content_md, "# Hello")
        self.assertEqual(lesson.sort_order, 1)

    def test_create_lesson_with_empty_title_rerenders(self):
        resp = self.client.post(
            f"/admin/modules/{self.module.id}/lessons/new",
            {"title": "", "content_md": "draft"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Title is required.")
        self.assertEqual(resp.context["lesson"]["content_md"], "draft")
        self.assertEqual(Lesson.objects.count(), 0)

    def test_long_youtube_url_is_stored_in_full(self):
        url = f"https://www.youtube.com/watch?v={VIDEO_ID}&" + "utm_source=newsletter&" * 30
        self.assertGreater(len(url), 500)
        resp = self.client.post(
            f"/admin/modules/{self.module.id}/lessons/new",
            {"title": "Tracked link", "youtube_url": url},
        )
        self.assertEqual(resp.status_code, 302)
        lesson = Lesson.objects.get()
        self.assertEqual(lesson.youtube_url, url.strip())

        _sign_in(self.client, self.student)
        resp = self.client.get(f"/lessons/{lesson.id}")
        self.assertEqual(resp.context["video_id"], VIDEO_ID)

    def test_over_long_lesson_title_rerenders_form(self):
        resp = self.client.post(
            f"/admin/modules/{self.module.id}/lessons/new",
            {"title": "t" * 201, "content_md": "kept"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Title must be at most 200 characters.")
        self.assertEqual(resp.context["lesson"]["content_md"], "kept")
        self.assertEqual(Lesson.objects.count(), 0)

    def test_edit_lesson_updates_row(self):
        lesson = Lesson.objects.create(module=self.module, title="Old", content_md="x")
        resp = self.client.post(
            f"/admin/lessons/{lesson.id}/edit",
            {"title": "New", "content_md": "y", "youtube_url": "", "sort_order": "nope"},
        )
        self.assertEqual(resp.status_code, 302)
        lesson.refresh_from_db()
        self.assertEqual((lesson.title, lesson.content_md, lesson.sort_order), ("New", "y", 0))

    def test_edit_lesson_empty_title_rerenders_with_values(self):
        lesson = Lesson.objects.create(module=self.module, title="Old")
        resp = self.client.post(f"/admin/lessons/{lesson.id}/edit", {"title": " ", "youtube_url": "abc"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.context["lesson"]["id"], lesson.id)
        self.assertEqual(resp.context["lesson"]["youtube_url"], "abc")
        lesson.refresh_from_db()
        self.assertEqual(lesson.title, "Old")

    def test_edit_unknown_lesson_is_404(self):
        self.assertEqual(self.client.get("/admin/lessons/9999/edit").status_code, 404)

    def test_delete_lesson_and_unknown_lesson_both_redirect(self):
        lesson = Lesson.objects.create(module=self.module, title="Gone")
        resp = self.client.post(f"/admin/lessons/{lesson.id}/delete")
        self.assertEqual(resp["Location"], "/admin")
        self.assertFalse(Lesson.objects.exists())
        resp = self.client.post(f"/admin/lessons/{lesson.id}/delete")
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(resp["Location"], "/admin")


class SeedPortalCommandTests(TestCase):
    def _pack(self, body: str) -> Path:
        tmp = tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False, encoding="utf-8")
        tmp.write(body)
        tmp.close()
        self.addCleanup(Path(tmp.name).unlink)
        return Path(tmp.name)

    def test_seeds_shipped_content_and_accounts(self):
        out = StringIO()
        call_command("seed_portal", stdout=out)
        self.assertEqual(Module.objects.count(), 1)
        self.assertEqual(Lesson.objects.count(), 2)
        admin = User.objects.get(email="admin@course.com")
        self.assertEqual(admin.role, "admin")
        self.assertTrue(admin.check_password("Admin123!"))
        self.assertTrue(User.objects.get(email="student@course.com").check_password("Student123!"))
        self.assertIn("Seed complete.", out.getvalue())

    def test_content_is_not_reseeded_when_modules_exist(self):
        Module.objects.create(title="Existing")
        call_command("seed_portal", "--skip-users", stdout=StringIO())
        self.assertEqual(list(Module.objects.values_list("title", flat=True)), ["Existing"])

    @override_settings(
        PORTAL_SEED_USERS={
            "admin": {"email": " Boss@Course.com ", "password": "new-pass"},
            "student": {"email": "", "password": ""},
        }
    )
    def test_users_are_upserted_with_lowercase_email(self):
        _create_user("boss@course.com", "old-pass", Role.STUDENT)
        call_command("seed_portal", "--skip-content", stdout=StringIO())
        boss = User.objects.get(email="boss@course.com")
        self.assertEqual(boss.role, "admin")
        self.assertTrue(boss.check_password("new-pass"))
        self.assertEqual(User.objects.count(), 1)

    def test_custom_pack_is_loaded(self):
        pack = self._pack(
            "modules:\n"
            "  - title: Intro\n"
            "    sort_order: 3\n"
            "    lessons:\n"
            "      - title: Hello\n"
            f"        youtube_url: https://youtu.be/{VIDEO_ID}\n"
        )
        call_command("seed_portal", "--skip-users", "--content-pack", str(pack), stdout=StringIO())
        module = Module.objects.get()
        self.assertEqual((module.title, module.sort_order), ("Intro", 3))
        self.assertEqual(module.lessons.get().youtube_url, f"https://youtu.be/{VIDEO_ID}")

    def test_pack_with_out_of_range_sort_order_falls_back_to_zero(self):
        pack = self._pack(
            "modules:\n"
            "  - title: Intro\n"
            "    sort_order: 99999999999999999999\n"
            "    lessons:\n"
            "      - title: Hello\n"
            "        sort_order: -99999999999999999999\n"
        )
        call_command("seed_portal", "--skip-users", "--content-pack", str(pack), stdout=StringIO())
        module = Module.objects.get()
        self.assertEqual(module.sort_order, 0)
        self.assertEqual(module.lessons.get().sort_order, 0)

    def test_pack_that_is_not_a_mapping_is_rejected(self):
        pack = self._pack("- just\n- a list\n")
        with self.assertRaises(CommandError):
            call_command("seed_portal", "--skip-users", "--content-pack", str(pack), stdout=StringIO())

    def test_missing_pack_is_rejected(self):
        with self.assertRaises(CommandError):
            call_command("seed_portal", "--skip-users", "--content-pack", "/nonexistent/pack.yaml", stdout=StringIO())
