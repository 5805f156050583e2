#!/usr/bin/env python
"""
Page Rendering Tests

Checks the server-rendered pages and their role guards through TestClient.
"""

import os
import sys
import unittest
from unittest.mock import patch

from bson import ObjectId
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
import env
from main import app
from models.users import Session
from mongo_test_case import MongoTestCase
from services.users_services import register_user
from util.security_utils import create_session_token
from views.pages import category_path, excerpt


def login_as(client, role, user_id=None):
    session = Session(id=user_id or str(ObjectId()), name=f"{role.title()} Tester",
                      email=f"{role}@example.com", role=role)
    client.cookies.set(env.SESSION_COOKIE_NAME, create_session_token(session))
    return session


class PageTestCase(MongoTestCase):

    def setUp(self):
        super().setUp()
        self.http = TestClient(app)

    def tearDown(self):
        self.http.close()
        super().tearDown()


class TestPageHelpers(unittest.TestCase):

    def test_category_paths(self):
        self.assertEqual(category_path("tech"), "/tech")
        self.assertEqual(category_path("islam"), "/lifestyle/islam")
        self.assertEqual(category_path("entertainment"), "/lifestyle/entertainment")

    def test_excerpt(self):
        self.assertEqual(excerpt("short text"), "short text")
        self.assertEqual(excerpt("word " * 100, 20), "word word word word…")
        self.assertEqual(excerpt(None), "")


class TestPublicPages(PageTestCase):

    def test_home_lists_latest_posts(self):
        self.insert_post("Headline of the day")
        response = self.http.get("/")

        self.assertEqual(response.status_code, 200)
        self.assertIn("Headline of the day", response.text)

    def test_category_pages_filter_by_category(self):
        self.insert_post("Prayer timings announced", category="islam")
        self.insert_post("Budget debate", category="business")

        response = self.http.get("/lifestyle/islam")

        self.assertEqual(response.status_code, 200)
        self.assertIn("Prayer timings announced", response.text)
        self.assertNotIn("Budget debate", response.text)

    def test_post_detail_counts_views_and_shows_related(self):
        post_id = self.insert_post("Main story", category="tech")
        self.insert_post("Related story", category="tech")
        self.insert_post("Unrelated story", category="sports")

        response = self.http.get(f"/post/{post_id}")

        self.assertEqual(response.status_code, 200)
        self.assertIn("Main story", response.text)
        self.assertIn("Related story", response.text)
        self.assertNotIn("Unrelated story", response.text)
        self.assertEqual(self.db["posts"].find_one({"_id": post_id})["views"], 1)

    def test_post_detail_not_found(self):
        self.assertEqual(self.http.get(f"/post/{ObjectId()}").status_code, 404)
        self.assertEqual(self.http.get("/post/not-an-id").status_code, 404)

    def test_comment_form(self):
        post_id = self.insert_post("Commented story")

        response = self.http.post(f"/post/{post_id}/comments",
                                  data={"userName": "Sana", "content": "Well written"},
                                  follow_redirects=False)
        invalid = self.http.post(f"/post/{post_id}/comments", data={"userName": "Sana", "content": ""})

        self.assertEqual(response.status_code, 303)
        self.assertEqual(self.db["comments"].count_documents({"postId": post_id}), 1)
        self.assertEqual(invalid.status_code, 400)
        self.assertIn("Missing required fields", invalid.text)

    def test_search_page(self):
        self.insert_post("Cricket World Cup final", category="sports")
        self.insert_post("Rain in Lahore", category="weather")

        response = self.http.get("/search", params={"q": "cricket"})

        self.assertIn("Cricket World Cup final", response.text)
        self.assertNotIn("Rain in Lahore", response.text)


class TestGuardedPages(PageTestCase):

    def test_admin_pages_redirect_anonymous_visitors_to_login(self):
        response = self.http.get("/admin/dashboard", follow_redirects=False)

        self.assertEqual(response.status_code, 303)
        self.assertTrue(response.headers["location"].startswith("/auth/login"))

    def test_admin_pages_redirect_regular_users(self):
        login_as(self.http, "user")
        response = self.http.get("/admin/dashboard", follow_redirects=False)
        self.assertEqual(response.status_code, 303)

    def test_admin_dashboard_for_admins(self):
        login_as(self.http, "admin")
        self.insert_post("Dashboard post")

        response = self.http.get("/admin/dashboard")

        self.assertEqual(response.status_code, 200)
        self.assertIn("Dashboard post", response.text)
        self.assertIn("Posts by Category", response.text)

    def test_admin_creates_post_through_the_form(self):
        login_as(self.http, "admin")

        response = self.http.post("/admin/posts/create",
                                  data={"title": "Form post", "content": "Body", "category": "global"},
                                  follow_redirects=False)
        missing = self.http.post("/admin/posts/create", data={"content": "Body", "category": "global"})

        self.assertEqual(response.status_code, 303)
        self.assertEqual(self.db["posts"].count_documents({"title": "Form post"}), 1)
        self.assertEqual(missing.status_code, 400)

    def test_admin_deletes_post_through_the_form(self):
        login_as(self.http, "admin")
        post_id = self.insert_post()

        response = self.http.post(f"/admin/posts/{post_id}/delete", follow_redirects=False)

        self.assertEqual(response.status_code, 303)
        self.assertEqual(self.db["posts"].count_documents({}), 0)

    def test_user_pages_need_any_session(self):
        self.assertEqual(self.http.get("/user/dashboard", follow_redirects=False).status_code, 303)

        login_as(self.http, "user")
        self.assertEqual(self.http.get("/user/dashboard").status_code, 200)
        self.assertEqual(self.http.get("/user/posts").status_code, 200)


class TestAuthPages(PageTestCase):

    def test_login_redirects_by_role_and_sets_cookie(self):
        register_user("Ayesha", "ayesha@example.com", "pass-1")  # first account, admin
        register_user("Bilal", "bilal@example.com", "pass-2")

        admin = self.http.post("/auth/login", data={"email": "ayesha@example.com", "password": "pass-1"},
                               follow_redirects=False)
        user = TestClient(app).post("/auth/login", data={"email": "bilal@example.com", "password": "pass-2"},
                                    follow_redirects=False)

        self.assertEqual(admin.headers["location"], "/admin/dashboard")
        self.assertIn(env.SESSION_COOKIE_NAME, admin.cookies)
        self.assertEqual(user.headers["location"], "/user/dashboard")

    def test_login_failure_rerenders_form(self):
        response = self.http.post("/auth/login", data={"email": "nobody@example.com", "password": "x"})

        self.assertEqual(response.status_code, 401)
        self.assertIn("Invalid email or password", response.text)

    def test_signup_form(self):
        response = self.http.post("/auth/signup",
                                  data={"name": "Ayesha", "email": "ayesha@example.com", "password": "pass-1"},
                                  follow_redirects=False)
        duplicate = self.http.post("/auth/signup",
                                   data={"name": "Ayesha", "email": "ayesha@example.com", "password": "pass-1"})

        self.assertEqual(response.status_code, 303)
        self.assertEqual(duplicate.status_code, 409)

    def test_signup_form_errors_rerender_with_submitted_values(self):
        missing_name = self.http.post("/auth/signup", data={"email": "sana@example.com", "password": "pass-1"})
        register_user("Sana", "sana@example.com", "pass-1")
        duplicate = self.http.post("/auth/signup",
                                   data={"name": "Sana K", "email": "sana@example.com", "password": "pass-1"})

        self.assertEqual(missing_name.status_code, 400)
        self.assertIn("Please provide all required fields", missing_name.text)
        self.assertIn("sana@example.com", missing_name.text)
        self.assertEqual(duplicate.status_code, 409)
        self.assertIn("Email already registered", duplicate.text)
        self.assertIn("Sana K", duplicate.text)

    def test_logout_clears_cookie(self):
        login_as(self.http, "user")
        response = self.http.get("/auth/logout", follow_redirects=False)

        self.assertEqual(response.status_code, 303)
        self.assertIn(env.SESSION_COOKIE_NAME, response.headers.get("set-cookie", ""))


if __name__ == "__main__":
    unittest.main()
