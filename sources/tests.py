import shutil
import tempfile

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.urls import reverse

from quizzes.exceptions import Forbidden, NotFound

from . import storage
from .models import SourceFile


class SourceFileTests(TestCase):
    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.override = override_settings(MEDIA_ROOT=self.media_root)
        self.override.enable()
        User = get_user_model()
        self.owner = User.objects.create_user(username="owner", password="pass")
        self.other = User.objects.create_user(username="other", password="pass")

    def tearDown(self):
        self.override.disable()
        shutil.rmtree(self.media_root, ignore_errors=True)

    def _upload(self, name="notes.txt", data=b"Some notes", content_type="text/plain"):
        return SimpleUploadedFile(name, data, content_type=content_type)

    def test_upload_and_read_back(self):
        source = storage.save_upload(self.owner, self._upload(), name="  Week 1  ")
        self.assertEqual(source.name, "Week 1")
        self.assertEqual(source.size, 10)
        self.assertEqual(storage.read_content(source), (b"Some notes", "text/plain"))

    def test_ownership(self):
        source = storage.save_upload(self.owner, self._upload())
        with self.assertRaises(Forbidden):
            storage.get_owned_file(self.other, source.pk)
        with self.assertRaises(Forbidden):
            storage.delete_file(self.other, source.pk)
        with self.assertRaises(NotFound):
            storage.get_owned_file(self.owner, 999999)

    def test_delete_removes_stored_bytes(self):
        source = storage.save_upload(self.owner, self._upload())
        path = source.file.name
        storage.delete_file(self.owner, source.pk)
        self.assertFalse(SourceFile.objects.filter(pk=source.pk).exists())
        self.assertFalse(source.file.storage.exists(path))

    def test_upload_endpoint(self):
        self.client.force_login(self.owner)
        resp = self.client.post(reverse("source_files"), {"file": self._upload(), "name": "Week 1"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["file"]["type"], "text/plain")

        listed = self.client.get(reverse("source_files")).json()["files"]
        self.assertEqual([f["name"] for f in listed], ["Week 1"])

    @override_settings(QUIZFORGE_MAX_UPLOAD_BYTES=4)
    def test_upload_size_limit(self):
        self.client.force_login(self.owner)
        resp = self.client.post(reverse("source_files"), {"file": self._upload()})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("file", resp.json()["fields"])
        self.assertFalse(SourceFile.objects.exists())
