import json
import unittest
from unittest.mock import patch

import support
from fastapi.testclient import TestClient

from app.main import app
from app.services import recruiter_service


class RecruiterApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        support.reset_state()
        self.headers = support.user_headers("recruiter_user")
        self.resume_text = (
            "Senior Backend Engineer with 6 years of experience\n"
            "- Built Python microservices for payments used by 1.2M users.\n"
            "- Reduced API latency by 38% on AWS and cut infra costs by $42,000 per year.\n"
            "- Led migration from monolith to event-driven architecture with Kafka.\n"
        )
        self.jd_text = (
            "We need a Senior Backend Engineer with 5+ years of Python, distributed systems, and AWS cloud "
            "architecture experience. Must collaborate with product and improve reliability metrics."
        )

    def test_resume_match_keyword_overlap_fallback(self):
        response = self.client.post(
            "/v1/recruiter/resume-match",
            data={"jobDescription": self.jd_text, "resumeText": self.resume_text},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["source"], "keyword_overlap")
        self.assertGreaterEqual(body["overallScore"], 0)
        self.assertLessEqual(body["overallScore"], 100)
        self.assertIn("python", body["skillsMatch"])
        self.assertIn("aws", body["skillsMatch"])
        self.assertTrue(body["experienceMatch"])
        self.assertIn("technicalSkills", body["detailedAnalysis"])
        self.assertIsNone(body["fileName"])

    def test_resume_match_accepts_file_upload(self):
        response = self.client.post(
            "/v1/recruiter/resume-match",
            data={"jobDescription": self.jd_text},
            files={"resume": ("candidate.txt", self.resume_text.encode("utf-8"), "text/plain")},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["fileName"], "candidate.txt")
        self.assertEqual(response.json()["fileSize"], len(self.resume_text.encode("utf-8")))

    def test_resume_match_validates_lengths(self):
        short_jd = self.client.post(
            "/v1/recruiter/resume-match",
            data={"jobDescription": "Python dev", "resumeText": self.resume_text},
            headers=self.headers,
        )
        self.assertEqual(short_jd.status_code, 400)

        short_resume = self.client.post(
            "/v1/recruiter/resume-match",
            data={"jobDescription": self.jd_text, "resumeText": "Python"},
            headers=self.headers,
        )
        self.assertEqual(short_resume.status_code, 422)

    def test_bulk_match_rejects_bad_filters(self):
        response = self.client.post(
            "/v1/recruiter/bulk-resume-match",
            data={"jobDescription": self.jd_text, "filters": json.dumps({"maxCandidates": 500})},
            files=[("resumes", ("a.txt", self.resume_text.encode("utf-8"), "text/plain"))],
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)

    def test_bulk_match_requires_files(self):
        response = self.client.post(
            "/v1/recruiter/bulk-resume-match",
            data={"jobDescription": self.jd_text},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)

    def test_bulk_match_needs_llm(self):
        response = self.client.post(
            "/v1/recruiter/bulk-resume-match",
            data={"jobDescription": self.jd_text},
            files=[
                ("resumes", ("a.txt", self.resume_text.encode("utf-8"), "text/plain")),
                ("resumes", ("b.txt", self.resume_text.encode("utf-8"), "text/plain")),
            ],
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 503)

    def test_route_limit_is_per_user(self):
        for _ in range(5):
            self.assertEqual(
                self.client.post("/v1/recruiter/bulk-resume-match", data={"jobDescription": self.jd_text}, headers=self.headers).status_code,
                400,
            )
        limited = self.client.post("/v1/recruiter/bulk-resume-match", data={"jobDescription": self.jd_text}, headers=self.headers)
        self.assertEqual(limited.status_code, 429)

        other = self.client.post(
            "/v1/recruiter/bulk-resume-match",
            data={"jobDescription": self.jd_text},
            headers=support.user_headers("recruiter_colleague"),
        )
        self.assertEqual(other.status_code, 400)

    def _bulk_payload(self, *, user_prompt, **kwargs):
        if "Alice" in user_prompt:
            return {
                "candidateName": "Alice Rao",
                "location": "Pune",
                "experience": "7 years",
                "skills": ["Python", "AWS"],
                "overallScore": 91,
                "recommendation": "HIRE",
            }
        return {
            "candidateName": "Bob Iyer",
            "location": "Chennai",
            "experience": "2 years",
            "skills": ["Java"],
            "overallScore": 64,
            "recommendation": "REJECT",
        }

    def _bulk_post(self, files, filters=None):
        data = {"jobDescription": self.jd_text}
        if filters is not None:
            data["filters"] = json.dumps(filters)
        with patch.object(recruiter_service, "llm_enabled", return_value=True), patch.object(
            recruiter_service, "json_completion", side_effect=self._bulk_payload
        ):
            return self.client.post("/v1/recruiter/bulk-resume-match", data=data, files=files, headers=self.headers)

    def test_bulk_match_keeps_going_past_rejected_uploads(self):
        response = self._bulk_post(
            [
                ("resumes", ("good.txt", ("Alice Rao\n" + self.resume_text).encode("utf-8"), "text/plain")),
                ("resumes", ("photo.png", b"\x89PNG", "image/png")),
            ],
            filters={"minScore": 0},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["totalProcessed"], 2)
        self.assertEqual([item["fileName"] for item in body["results"]], ["good.txt"])
        self.assertEqual(len(body["errors"]), 1)
        self.assertTrue(body["errors"][0].startswith("Failed to process photo.png: Unsupported file type: png"))

    def test_bulk_match_applies_filters_and_summarises(self):
        files = [
            ("resumes", ("alice.txt", ("Alice Rao\n" + self.resume_text).encode("utf-8"), "text/plain")),
            ("resumes", ("bob.txt", ("Bob Iyer\n" + self.resume_text).encode("utf-8"), "text/plain")),
        ]
        everyone = self._bulk_post(files, filters={"minScore": 0}).json()
        self.assertEqual([item["candidateName"] for item in everyone["results"]], ["Alice Rao", "Bob Iyer"])
        self.assertEqual(
            everyone["summary"],
            {"hireRecommended": 1, "maybeRecommended": 0, "rejected": 1, "averageScore": 78},
        )

        filtered = self._bulk_post(files, filters={"minScore": 50, "minExperience": 5, "location": "pune"}).json()
        self.assertEqual(filtered["totalProcessed"], 2)
        self.assertEqual(filtered["totalMatched"], 1)
        self.assertEqual(filtered["results"][0]["candidateName"], "Alice Rao")
        self.assertEqual(filtered["summary"]["averageScore"], 91)
        self.assertEqual(filtered["errors"], [])

    def test_recruiter_upload_creates_template(self):
        response = self.client.post(
            "/v1/ai/recruiter-upload",
            json={"resumeContent": self.resume_text, "companyName": "Acme", "jobTitle": "Backend Engineer"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 201)
        upload = response.json()["upload"]
        self.assertEqual(upload["companyName"], "Acme")

        listed = self.client.get("/v1/templates", headers=self.headers).json()
        self.assertEqual([item["id"] for item in listed], [upload["id"]])

        missing = self.client.post("/v1/ai/recruiter-upload", json={"companyName": "Acme"}, headers=self.headers)
        self.assertEqual(missing.status_code, 400)


if __name__ == "__main__":
    unittest.main()
