import io
import unittest

import support
from docx import Document
from fastapi.testclient import TestClient

from app.main import app
from app.services import export_service
from app.services.keyword_service import keyword_match


class ResumeApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        support.reset_state()
        self.owner = support.user_headers("user_owner")

    def _create(self, headers=None, payload=None):
        return self.client.post("/v1/resumes", json=payload or support.SAMPLE_RESUME, headers=headers or self.owner)

    def test_requires_user_header(self):
        response = self.client.get("/v1/resumes")
        self.assertEqual(response.status_code, 401)

    def test_create_charges_one_credit_and_scores(self):
        response = self._create()
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertTrue(body["resumeId"])
        self.assertEqual(body["atsScore"], 84)

        credits = self.client.get("/v1/user/credits", headers=self.owner)
        self.assertEqual(credits.json(), {"credits": 0})

    def test_create_without_credits_returns_402(self):
        self.assertEqual(self._create().status_code, 201)
        response = self._create()
        self.assertEqual(response.status_code, 402)
        self.assertEqual(len(self.client.get("/v1/resumes", headers=self.owner).json()), 1)

    def test_create_requires_personal_info_name(self):
        payload = {**support.SAMPLE_RESUME, "personalInfo": {"name": ""}}
        response = self._create(payload=payload)
        self.assertEqual(response.status_code, 422)

    def test_get_enforces_ownership(self):
        resume_id = self._create().json()["resumeId"]

        own = self.client.get(f"/v1/resumes/{resume_id}", headers=self.owner)
        self.assertEqual(own.status_code, 200)
        self.assertEqual(own.json()["content"]["personalInfo"]["name"], "Priya Sharma")

        other = self.client.get(f"/v1/resumes/{resume_id}", headers=support.user_headers("user_other"))
        self.assertEqual(other.status_code, 403)

        missing = self.client.get("/v1/resumes/does-not-exist", headers=self.owner)
        self.assertEqual(missing.status_code, 404)

    def test_update_and_delete(self):
        resume_id = self._create().json()["resumeId"]

        updated = self.client.put(
            f"/v1/resumes/{resume_id}",
            json={"title": "Platform Engineer Resume", "colorPaletteIndex": 2},
            headers=self.owner,
        )
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["resume"]["title"], "Platform Engineer Resume")
        self.assertEqual(updated.json()["resume"]["colorPaletteIndex"], 2)

        forbidden = self.client.delete(f"/v1/resumes/{resume_id}", headers=support.user_headers("user_other"))
        self.assertEqual(forbidden.status_code, 403)

        deleted = self.client.delete(f"/v1/resumes/{resume_id}", headers=self.owner)
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(self.client.get(f"/v1/resumes/{resume_id}", headers=self.owner).status_code, 404)

    def test_update_rejects_malformed_content(self):
        resume_id = self._create().json()["resumeId"]
        content = {
            "personalInfo": {"name": "Priya Sharma"},
            "experience": [{"position": "Engineer", "responsibilities": 5}],
        }
        response = self.client.put(f"/v1/resumes/{resume_id}", json={"content": content}, headers=self.owner)
        self.assertEqual(response.status_code, 422)

        missing_name = self.client.put(
            f"/v1/resumes/{resume_id}", json={"content": {"summary": "No name"}}, headers=self.owner
        )
        self.assertEqual(missing_name.status_code, 422)

    def test_update_content_keeps_entry_keys_as_sent(self):
        resume_id = self._create().json()["resumeId"]
        content = {
            "personalInfo": {"name": "Priya Sharma"},
            "experience": [{"position": "Staff Engineer", "team": "Payments", "responsibilities": ["Owned sql tuning"]}],
            "skills": ["SQL"],
        }
        response = self.client.put(f"/v1/resumes/{resume_id}", json={"content": content}, headers=self.owner)
        self.assertEqual(response.status_code, 200)
        stored = response.json()["resume"]["content"]
        self.assertEqual(
            stored["experience"],
            [{"position": "Staff Engineer", "team": "Payments", "responsibilities": ["Owned sql tuning"]}],
        )
        self.assertEqual(stored["personalInfo"]["email"], "")

        text = self.client.get(f"/v1/resumes/{resume_id}/download?format=text", headers=self.owner)
        self.assertIn("• Owned sql tuning", text.text)

    def test_docx_download_drops_control_characters(self):
        payload = {**support.SAMPLE_RESUME, "summary": "Backend engineer\x0bpayments\x00 platforms"}
        resume_id = self._create(payload=payload).json()["resumeId"]

        response = self.client.get(f"/v1/resumes/{resume_id}/download?format=docx", headers=self.owner)
        self.assertEqual(response.status_code, 200)
        texts = [paragraph.text for paragraph in Document(io.BytesIO(response.content)).paragraphs]
        self.assertIn("Backend engineer payments  platforms", texts)

    def test_keyword_match_is_deterministic(self):
        resume_id = self._create().json()["resumeId"]

        first = self.client.get(f"/v1/resumes/{resume_id}/keyword-match", headers=self.owner).json()
        second = self.client.get(f"/v1/resumes/{resume_id}/keyword-match", headers=self.owner).json()
        self.assertEqual(first, second)
        self.assertEqual(first["matched"], ["python", "aws", "sql"])
        self.assertEqual(first["missing"], ["kubernetes", "leadership"])
        self.assertEqual(first["matchPercentage"], 60)

    def test_download_text_and_docx(self):
        resume_id = self._create().json()["resumeId"]

        text = self.client.get(f"/v1/resumes/{resume_id}/download?format=text", headers=self.owner)
        self.assertEqual(text.status_code, 200)
        self.assertIn("PRIYA SHARMA", text.text.upper())
        self.assertIn("EXPERIENCE", text.text)
        self.assertIn("attachment", text.headers["content-disposition"])

        docx = self.client.get(f"/v1/resumes/{resume_id}/download?format=docx", headers=self.owner)
        self.assertEqual(docx.status_code, 200)
        self.assertTrue(docx.content.startswith(b"PK"))

    def test_download_rejects_unknown_format(self):
        resume_id = self._create().json()["resumeId"]
        response = self.client.get(f"/v1/resumes/{resume_id}/download?format=odt", headers=self.owner)
        self.assertEqual(response.status_code, 400)

    def test_pdf_download_requires_unlock(self):
        resume_id = self._create().json()["resumeId"]
        response = self.client.get(f"/v1/resumes/{resume_id}/download?format=pdf", headers=self.owner)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["detail"], "Feature not unlocked")


class StoredContentRenderingTests(unittest.TestCase):
    malformed = {
        "personalInfo": "Priya Sharma",
        "summary": "Python engineer",
        "experience": [{"position": "Engineer", "responsibilities": 5}, "not an entry"],
        "education": {"institution": "IIT"},
        "skills": "python",
        "projects": None,
    }

    def test_exports_skip_values_of_the_wrong_shape(self):
        text = export_service.resume_to_text(self.malformed)
        self.assertIn("Engineer", text)
        self.assertNotIn("EDUCATION", text)
        self.assertNotIn("SKILLS", text)
        self.assertTrue(export_service.resume_to_docx(self.malformed).startswith(b"PK"))
        self.assertTrue(export_service.resume_to_pdf(self.malformed).startswith(b"%PDF"))

    def test_keyword_match_skips_values_of_the_wrong_shape(self):
        result = keyword_match(self.malformed, "python and docker")
        self.assertEqual(result["matched"], ["python"])
        self.assertEqual(result["missing"], ["docker"])

    def test_html_to_docx_drops_control_characters(self):
        exported = export_service.html_to_docx("<p>Line\x0bbreak</p>", title="Cover\x0cLetter")
        document = Document(io.BytesIO(exported.content))
        self.assertEqual([paragraph.text for paragraph in document.paragraphs if paragraph.text], ["Line break"])
        self.assertEqual(document.core_properties.title, "Cover Letter")


if __name__ == "__main__":
    unittest.main()
