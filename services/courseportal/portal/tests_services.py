import json
import tempfile
from pathlib import Path

from django.test import SimpleTestCase, override_settings

from .middleware import SessionUser
from .models import Role
from .services.content_links import extract_youtube_id, youtube_embed_url
from .services.markdown_content import render_markdown
from .services.static_pages import _load_json_cached, load_qas, load_syllabus

VIDEO_ID = "dQw4w9WgXcQ"


class YouTubeIdTests(SimpleTestCase):
    def test_known_url_shapes_resolve_to_id(self):
        for url in [
            f"https://www.youtube.com/watch?v={VIDEO_ID}",
            f"https://youtu.be/{VIDEO_ID}",
            f"https://youtube.com/embed/{VIDEO_ID}",
            f"https://youtube.com/shorts/{VIDEO_ID}",
            f"https://www.youtube.com/live/{VIDEO_ID}",
            f"https://m.youtube.com/watch?v={VIDEO_ID}&t=42s",
            f"https://www.youtu.be/{VIDEO_ID}?si=abc",
            f"  https://YOUTUBE.com:443/embed/{VIDEO_ID}  ",
            VIDEO_ID,
            f"  {VIDEO_ID}\n",
        ]:
            with self.subTest(url=url):
                self.assertEqual(extract_youtube_id(url), VIDEO_ID)

    def test_no_match_inputs(self):
        for url in [
            "",
            "   ",
            None,
            42,
            "https://vimeo.com/123",
            "https://youtube.com/",
            "https://youtube.com/embed/",
            "https://youtube.com/watch?v=short",
            "https://notyoutube.com/watch?v=" + VIDEO_ID,
            "not a video id",
            "http://[broken",
        ]:
            with self.subTest(url=url):
                self.assertEqual(extract_youtube_id(url), "")

    def test_v_param_wins_over_path_markers(self):
        url = f"https://www.youtube.com/embed/AAAAAAAAAAA?v={VIDEO_ID}"
        self.assertEqual(extract_youtube_id(url), VIDEO_ID)

    def test_marker_priority_is_embed_then_shorts_then_live(self):
        url = "https://youtube.com/live/LLLLLLLLLLL/shorts/SSSSSSSSSSS/embed/EEEEEEEEEEE"
        self.assertEqual(extract_youtube_id(url), "EEEEEEEEEEE")
        url = "https://youtube.com/live/LLLLLLLLLLL/shorts/SSSSSSSSSSS"
        self.assertEqual(extract_youtube_id(url), "SSSSSSSSSSS")

    def test_marker_without_following_segment_falls_through(self):
        url = f"https://youtube.com/shorts/{VIDEO_ID}/embed"
        self.assertEqual(extract_youtube_id(url), VIDEO_ID)

    def test_embed_url_only_for_valid_ids(self):
        self.assertEqual(
            youtube_embed_url(VIDEO_ID),
            f"https://www.youtube-nocookie.com/embed/{VIDEO_ID}",
        )
        self.assertEqual(youtube_embed_url(""), "")


class MarkdownRenderTests(SimpleTestCase):
    def test_empty_input_renders_empty_document(self):
        self.assertEqual(render_markdown(""), "")
        self.assertEqual(render_markdown(None), "")

    def test_render_of_empty_render_is_stable(self):
        self.assertEqual(render_markdown(render_markdown("")), render_markdown(""))

    def test_renders_headings_lists_and_fenced_code(self):
        html = render_markdown("# Week 5\n\n- MI\n- CBT\n\n```\nprint('x')\n```\n")
        self.assertIn('<h1 id="week-5">Week 5</h1>', html)
        self.assertIn("<li>MI</li>", html)
        self.assertIn("<pre><code>", html)

    def test_raw_html_passes_through_by_default(self):
        html = render_markdown("<em>trusted</em> author")
        self.assertIn("<em>trusted</em>", html)

    @override_settings(PORTAL_MARKDOWN_SANITIZE=True)
    def test_sanitize_setting_strips_scripts(self):
        html = render_markdown("Hello <script>alert(1)</script>")
        self.assertNotIn("<script>", html)
        self.assertIn("Hello", html)


class StaticPagesTests(SimpleTestCase):
    def setUp(self):
        _load_json_cached.cache_clear()
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.data_dir = Path(self._tmp.name)

    def test_missing_files_fall_back_to_defaults(self):
        with override_settings(PORTAL_STATIC_DATA_DIR=self.data_dir):
            self.assertEqual(load_syllabus(), {"title": "Syllabus", "items": []})
            self.assertEqual(load_qas(), {"title": "Q&A", "sections": []})

    def test_invalid_json_falls_back_to_default(self):
        (self.data_dir / "syllabus.json").write_text("{not json", encoding="utf-8")
        with override_settings(PORTAL_STATIC_DATA_DIR=self.data_dir):
            with self.assertLogs("portal.services.static_pages", level="WARNING"):
                self.assertEqual(load_syllabus(), {"title": "Syllabus", "items": []})

    def test_non_mapping_json_falls_back_to_default(self):
        (self.data_dir / "qas.json").write_text("[1, 2, 3]", encoding="utf-8")
        with override_settings(PORTAL_STATIC_DATA_DIR=self.data_dir):
            self.assertEqual(load_qas(), {"title": "Q&A", "sections": []})

    def test_valid_file_is_loaded_and_missing_keys_filled(self):
        (self.data_dir / "syllabus.json").write_text(
            json.dumps({"title": "Spring Term"}),
            encoding="utf-8",
        )
        with override_settings(PORTAL_STATIC_DATA_DIR=self.data_dir):
            page = load_syllabus()
        self.assertEqual(page["title"], "Spring Term")
        self.assertEqual(page["items"], [])

    def test_returned_page_is_a_copy(self):
        (self.data_dir / "qas.json").write_text(
            json.dumps({"title": "FAQ", "sections": [{"title": "A", "questions": []}]}),
            encoding="utf-8",
        )
        with override_settings(PORTAL_STATIC_DATA_DIR=self.data_dir):
            first = load_qas()
            first["sections"].clear()
            second = load_qas()
        self.assertEqual(len(second["sections"]), 1)


class SessionUserTests(SimpleTestCase):
    def test_payload_round_trip_keeps_role_enum(self):
        user = SessionUser(id=3, email="a@b.com", role=Role.ADMIN)
        parsed = SessionUser.from_payload(user.to_payload())
        self.assertEqual(parsed, user)
        self.assertTrue(parsed.is_admin)

    def test_unknown_role_is_rejected(self):
        self.assertIsNone(SessionUser.from_payload({"id": 1, "email": "a@b.com", "role": "Admin "}))
        self.assertIsNone(SessionUser.from_payload({"id": 1, "email": "a@b.com", "role": "superuser"}))

    def test_malformed_payloads_are_rejected(self):
        for payload in [None, "admin", {"id": "x", "email": "a@b.com", "role": "admin"}, {"id": 1, "role": "admin"}]:
            with self.subTest(payload=payload):
                self.assertIsNone(SessionUser.from_payload(payload))

    def test_only_admin_role_can_administer(self):
        self.assertTrue(Role.ADMIN.can_administer())
        self.assertFalse(Role.STUDENT.can_administer())
        self.assertIsNone(Role.parse("teacher"))
        self.assertIs(Role.parse("student"), Role.STUDENT)

    def test_role_parsing_is_exact(self):
        for raw in [" student ", "admin ", "ADMIN", "", None, 1]:
            with self.subTest(raw=raw):
                self.assertIsNone(Role.parse(raw))
        self.assertIsNone(SessionUser.from_payload({"id": 1, "email": "a@b.com", "role": " admin "}))
