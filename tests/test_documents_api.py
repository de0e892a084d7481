import io
import unittest

import support
from docx import Document
from fastapi.testclient import TestClient

from app.main import app


def _docx_bytes(*paragraphs: str) -> bytes:
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


class DocumentsApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        support.reset_state()
        self.headers = support.user_headers("user_documents")

    def test_parse_docx_upload(self):
        content = _docx_bytes("Priya Sharma", "Senior Backend Engineer")
        response = self.client.post(
            "/v1/documents/parse",
            files={"file": ("resume.docx", content, "application/octet-stream")},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["text"], "Priya Sharma\nSenior Backend Engineer")
        self.assertEqual(body["fileName"], "resume.docx")
        self.assertEqual(body["fileSize"], len(content))

    def test_parse_empty_text_is_unprocessable(self):
        response = self.client.post(
            "/v1/documents/parse",
            files={"file": ("empty.txt", b"\n\n", "text/plain")},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 422)

    def test_parse_rejects_oversized_upload(self):
        content = b"a" * (10 * 1024 * 1024 + 1)
        response = self.client.post(
            "/v1/documents/parse",
            files={"file": ("huge.txt", content, "text/plain")},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 413)

    def test_convert_html_to_docx(self):
        response = self.client.post(
            "/v1/documents/convert-to-docx",
            json={"html": "<h1>Priya Sharma</h1><p>Backend engineer</p><ul><li>Python</li></ul>", "title": "Resume"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        document = Document(io.BytesIO(response.content))
        texts = [paragraph.text for paragraph in document.paragraphs if paragraph.text]
        self.assertEqual(texts, ["Priya Sharma", "Backend engineer", "Python"])

    def test_convert_requires_html(self):
        response = self.client.post("/v1/documents/convert-to-docx", json={"html": "  "}, headers=self.headers)
        self.assertEqual(response.status_code, 400)


class KeywordsApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        support.reset_state()
        self.headers = support.user_headers("user_keywords")

    def test_industry_keywords_for_title(self):
        response = self.client.get("/v1/keywords/industry?jobTitle=Digital Marketing Manager", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["industry"], "marketing")
        self.assertEqual(len(body["keywords"]), 10)
        self.assertEqual(body["keywords"][0], "a/b testing")

    def test_industry_keywords_requires_title(self):
        response = self.client.get("/v1/keywords/industry", headers=self.headers)
        self.assertEqual(response.status_code, 400)

    def test_suggestions_require_unlock(self):
        response = self.client.post(
            "/v1/keywords/suggestions",
            json={"jobTitle": "Software Engineer", "missingKeywords": ["react"]},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 403)


class SystemApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def test_health(self):
        response = self.client.get("/v1/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "healthy"})

    def test_ai_runs_requires_admin_key(self):
        self.assertEqual(self.client.get("/v1/analytics/ai-runs").status_code, 401)

        response = self.client.get("/v1/analytics/ai-runs", headers={"X-API-Key": support.ADMIN_API_KEY})
        self.assertEqual(response.status_code, 200)
        self.assertIn("summary", response.json())
        self.assertIn("latest", response.json())


if __name__ == "__main__":
    unittest.main()
