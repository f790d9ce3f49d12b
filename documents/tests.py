import shutil
import tempfile

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.urls import reverse
from rest_framework.test import APITestCase

from cases import ledger
from cases.tests import make_case
from users.models import User
from users.tests import make_user

from .models import Document

MEDIA_ROOT = tempfile.mkdtemp()


@override_settings(MEDIA_ROOT=MEDIA_ROOT, MAX_UPLOAD_SIZE=1024)
class DocumentApiTests(APITestCase):
    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.citizen = make_user("citizen")
        self.lawyer = make_user("lawyer", User.ROLE_LAWYER, verified=True)
        self.outsider = make_user("outsider")
        self.case = make_case(self.citizen)
        offer = ledger.create_offer(self.case.pk, self.lawyer)
        ledger.respond(offer.pk, self.citizen, ledger.ACCEPT)

    def _upload(self, user, name="contract.pdf", content=b"%PDF-1.4 test", **extra):
        self.client.force_authenticate(user)
        data = {"file": SimpleUploadedFile(name, content), **extra}
        return self.client.post(reverse("document-upload"), data, format="multipart")

    def test_upload_to_case_visible_to_assigned_lawyer(self):
        resp = self._upload(self.citizen, case=self.case.pk, document_type="contract", title="Employment contract")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["mime_type"], "application/pdf")
        self.assertEqual(resp.data["size"], len(b"%PDF-1.4 test"))
        document_id = resp.data["id"]

        self.client.force_authenticate(self.lawyer)
        resp = self.client.get(reverse("document-list"), {"case": self.case.pk})
        self.assertEqual([d["id"] for d in resp.data["results"]], [document_id])
        self.assertEqual(self.client.get(reverse("document-detail", args=[document_id])).status_code, 200)

        resp = self.client.get(reverse("document-download", args=[document_id]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(b"".join(resp.streaming_content), b"%PDF-1.4 test")

    def test_outsider_has_no_access(self):
        document_id = self._upload(self.citizen, case=self.case.pk).data["id"]

        self.client.force_authenticate(self.outsider)
        self.assertEqual(self.client.get(reverse("document-list")).data["count"], 0)
        resp = self.client.get(reverse("document-detail", args=[document_id]))
        self.assertEqual(resp.status_code, 403)

    def test_rejects_unsupported_type(self):
        resp = self._upload(self.citizen, name="script.exe", content=b"MZ")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("file", resp.data["errors"])

    def test_rejects_oversized_file(self):
        resp = self._upload(self.citizen, name="big.txt", content=b"x" * 2048)
        self.assertEqual(resp.status_code, 400)

    def test_cannot_attach_to_foreign_case(self):
        resp = self._upload(self.outsider, case=self.case.pk)
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(Document.objects.exists())

    def test_only_uploader_deletes(self):
        document_id = self._upload(self.citizen, case=self.case.pk).data["id"]

        self.client.force_authenticate(self.lawyer)
        resp = self.client.delete(reverse("document-delete", args=[document_id]))
        self.assertEqual(resp.status_code, 403)

        self.client.force_authenticate(self.citizen)
        resp = self.client.delete(reverse("document-delete", args=[document_id]))
        self.assertEqual(resp.status_code, 204)
        self.assertFalse(Document.objects.exists())

    def test_missing_document(self):
        self.client.force_authenticate(self.citizen)
        resp = self.client.get(reverse("document-detail", args=[999999]))
        self.assertEqual(resp.status_code, 404)
