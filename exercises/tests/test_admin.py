from django.contrib.admin.sites import AdminSite
from django.contrib.auth import get_user_model
from django.test import RequestFactory, TestCase
from django.urls import reverse

from exercises.admin import ExerciseAdmin
from exercises.models import Exercise

from .utils import create_exercise


class ExerciseAdminTests(TestCase):
    def setUp(self):
        self.site = AdminSite()
        self.admin = ExerciseAdmin(Exercise, self.site)
        self.request = RequestFactory().get("/admin/exercises/exercise/")
        self.superuser = get_user_model().objects.create_superuser(
            username="admin",
            email="admin@example.com",
            password="adminpass",  # nosec
        )

    def test_imported_fields_are_read_only(self):
        exercise = create_exercise()
        readonly = self.admin.get_readonly_fields(self.request, exercise)
        for field in Exercise.IMPORTED_FIELDS:
            self.assertIn(field, readonly)
        self.assertIn("external_id", readonly)
        self.assertNotIn("notes", readonly)

    def test_new_exercises_are_editable(self):
        readonly = self.admin.get_readonly_fields(self.request)
        self.assertNotIn("name", readonly)

    def test_change_view_updates_notes(self):
        exercise = create_exercise()
        self.client.force_login(self.superuser)
        url = reverse("admin:exercises_exercise_change", args=[exercise.pk])

        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)

        response = self.client.post(url, {"notes": "Keep the back flat"})
        self.assertEqual(response.status_code, 302)
        exercise.refresh_from_db()
        self.assertEqual(exercise.notes, "Keep the back flat")
        self.assertEqual(exercise.name, "Air Bike")
