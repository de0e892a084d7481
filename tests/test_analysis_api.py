import unittest
from unittest.mock import patch

import support
from fastapi.testclient import TestClient

from app.main import app
from app.services import analysis_service
from app.store import subscriptions as subscriptions_store

RESUME_TEXT = (
    "Priya Sharma\nSenior Backend Engineer with 8 years of experience.\n"
    "- Built Python microservices on AWS handling 1.2M payments per day.\n"
    "- Led a team of five engineers and ran agile ceremonies.\n"
    "Skills: Python, SQL, Docker, Kubernetes, REST APIs\n"
)
JD_TEXT = (
    "We are hiring a Senior Backend Engineer with 5+ years of experience in Python, Kubernetes, "
    "PostgreSQL and AWS. You will design distributed systems and mentor engineers."
)


class AnalysisApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        support.reset_state()
        self.headers = support.user_headers("user_analysis")

    def test_analyze_fallback_does_not_charge(self):
        response = self.client.post(
            "/v1/resumes/analyze",
            data={"jobDescription": JD_TEXT, "companyName": "Acme"},
            files={"resume": ("resume.txt", RESUME_TEXT.encode("utf-8"), "text/plain")},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["fallback"])
        self.assertEqual(body["creditsCharged"], 0)
        self.assertEqual(body["atsScore"], 50)
        self.assertIn("Priya Sharma", body["extractedText"])
        self.assertEqual(self.client.get("/v1/user/credits", headers=self.headers).json()["credits"], 1)

    def test_analyze_with_ai_charges_and_counts_scan(self):
        payload = {
            "atsScore": 81,
            "matchScore": "74",
            "missingKeywords": ["PostgreSQL", " ", "distributed systems"],
            "recommendations": ["Quantify the Kubernetes work"],
            "strengths": ["Payments scale"],
        }
        with patch.object(analysis_service, "json_completion", return_value=payload) as completion:
            response = self.client.post(
                "/v1/resumes/analyze",
                data={"jobDescription": JD_TEXT, "companyName": "Acme"},
                files={"resume": ("resume.txt", RESUME_TEXT.encode("utf-8"), "text/plain")},
                headers=self.headers,
            )
        self.assertEqual(response.status_code, 200)
        self.assertIn("Acme", completion.call_args.kwargs["user_prompt"])
        body = response.json()
        self.assertFalse(body["fallback"])
        self.assertEqual(body["atsScore"], 81)
        self.assertEqual(body["matchScore"], 74)
        self.assertEqual(body["missingKeywords"], ["PostgreSQL", "distributed systems"])
        self.assertEqual(body["creditsCharged"], 1)
        self.assertEqual(body["remainingCredits"], 0)
        self.assertEqual(self.client.get("/v1/user/credits", headers=self.headers).json()["credits"], 0)

        user_id = self.client.get("/v1/user/me", headers=self.headers).json()["id"]
        self.assertEqual(subscriptions_store.get_subscription(user_id)["monthly_scans_used"], 1)

    def test_analyze_empty_file_returns_guidance(self):
        response = self.client.post(
            "/v1/resumes/analyze",
            data={"jobDescription": JD_TEXT},
            files={"resume": ("blank.txt", b"   ", "text/plain")},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["missingKeywords"], ["No readable text found in resume"])

    def test_analyze_requires_fields(self):
        response = self.client.post("/v1/resumes/analyze", data={"companyName": "Acme"}, headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertIn("resume", response.json()["detail"])
        self.assertIn("jobDescription", response.json()["detail"])

    def test_analyze_rejects_unsupported_extension(self):
        response = self.client.post(
            "/v1/resumes/analyze",
            data={"jobDescription": JD_TEXT},
            files={"resume": ("resume.exe", b"MZ", "application/octet-stream")},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)

    def test_analyze_without_credits_returns_402(self):
        self.client.post("/v1/resumes", json=support.SAMPLE_RESUME, headers=self.headers)
        response = self.client.post(
            "/v1/resumes/analyze",
            data={"jobDescription": JD_TEXT},
            files={"resume": ("resume.txt", RESUME_TEXT.encode("utf-8"), "text/plain")},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 402)

    def test_generate_needs_llm(self):
        response = self.client.post(
            "/v1/resumes/generate",
            data={
                "resumeText": RESUME_TEXT,
                "jobDescription": JD_TEXT,
                "companyName": "Acme",
                "templateId": "modern",
            },
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 503)

    def test_extract_keywords_falls_back_to_catalog(self):
        response = self.client.post("/v1/extract-keywords", json={"jobDescription": JD_TEXT}, headers=self.headers)
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["source"], "catalog")
        self.assertIn("python", body["keywords"])
        self.assertIn("kubernetes", body["keywords"])
        self.assertLessEqual(len(body["keywords"]), 15)

    def test_extract_keywords_requires_description(self):
        response = self.client.post("/v1/extract-keywords", json={}, headers=self.headers)
        self.assertEqual(response.status_code, 400)

    def test_ats_compatibility_defaults(self):
        response = self.client.post(
            "/v1/resumes/ats-compatibility",
            json={"resumeText": RESUME_TEXT, "atsSystem": "Workday"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["compatibilityScore"], 50)
        self.assertEqual(body["specificIssues"], [])

    def test_interview_questions_without_llm(self):
        response = self.client.post(
            "/v1/resumes/interview-questions",
            json={"resumeText": RESUME_TEXT, "jobDescription": JD_TEXT, "country": "india"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True, "questions": []})

    def test_salary_prediction_requires_description(self):
        response = self.client.post("/v1/resumes/salary-prediction", json={"location": "Pune"}, headers=self.headers)
        self.assertEqual(response.status_code, 400)

        ok = self.client.post("/v1/resumes/salary-prediction", json={"jobDescription": JD_TEXT}, headers=self.headers)
        self.assertEqual(ok.status_code, 200)
        self.assertIsNone(ok.json()["salaryData"])

    def test_cover_letter_requires_unlock(self):
        response = self.client.post(
            "/v1/resumes/cover-letter",
            data={"resumeText": RESUME_TEXT, "jobDescription": JD_TEXT},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 403)


if __name__ == "__main__":
    unittest.main()
