import unittest

import support
from fastapi.testclient import TestClient

from app.main import app


class TemplatesApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        support.reset_state()
        self.owner = support.user_headers("recruiter_owner")
        self.other = support.user_headers("recruiter_other")

    def _create(self, **overrides):
        payload = {
            "companyName": "Acme Payments",
            "jobTitle": "Senior Backend Engineer",
            "seniorityLevel": "senior",
            "industry": "technology",
            "companySize": "large",
            "successRate": 82,
            "atsScore": 88,
            "keySkills": ["python", "postgresql"],
            "resumeContent": "Priya Sharma - Senior Backend Engineer with 8 years of Python.",
            "recruiterVerified": True,
            **overrides,
        }
        return self.client.post("/v1/templates", json=payload, headers=self.owner)

    def test_create_requires_core_fields(self):
        response = self.client.post("/v1/templates", json={"companyName": "Acme"}, headers=self.owner)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Missing required fields: jobTitle, resumeContent")

    def test_create_rejects_unknown_seniority(self):
        response = self._create(seniorityLevel="wizard")
        self.assertEqual(response.status_code, 400)

    def test_private_templates_are_hidden_from_others(self):
        public_id = self._create().json()["template"]["id"]
        private_id = self._create(companyName="Stealth Co", isPublic=False).json()["template"]["id"]

        anonymous = self.client.get("/v1/templates").json()
        self.assertEqual([item["id"] for item in anonymous], [public_id])

        own = self.client.get("/v1/templates", headers=self.owner).json()
        self.assertEqual({item["id"] for item in own}, {public_id, private_id})

        self.assertEqual(self.client.get(f"/v1/templates/{private_id}", headers=self.other).status_code, 403)
        self.assertEqual(self.client.get(f"/v1/templates/{private_id}").status_code, 401)
        self.assertEqual(self.client.get("/v1/templates/missing-id").status_code, 404)

    def test_list_filters(self):
        self._create()
        self._create(companyName="Globex", jobTitle="Data Analyst", seniorityLevel="junior", atsScore=60)

        by_company = self.client.get("/v1/templates?companies=globex").json()
        self.assertEqual([item["companyName"] for item in by_company], ["Globex"])

        by_seniority = self.client.get("/v1/templates?seniority=senior,lead").json()
        self.assertEqual([item["seniorityLevel"] for item in by_seniority], ["senior"])

        by_score = self.client.get("/v1/templates?minAtsScore=70").json()
        self.assertEqual(len(by_score), 1)

        bad_range = self.client.get("/v1/templates?dateRange=decade")
        self.assertEqual(bad_range.status_code, 400)

    def test_view_and_download_counters(self):
        template_id = self._create().json()["template"]["id"]

        viewed = self.client.get(f"/v1/templates/{template_id}")
        self.assertEqual(viewed.status_code, 200)
        self.assertEqual(viewed.json()["views"], 1)

        downloaded = self.client.post(f"/v1/templates/{template_id}/download")
        self.assertEqual(downloaded.status_code, 200)
        self.assertEqual(downloaded.json()["downloads"], 1)
        self.assertIn("Priya Sharma", downloaded.json()["resumeContent"])

        stats = self.client.get("/v1/templates/stats", headers=self.owner).json()
        self.assertEqual(stats["totalTemplates"], 1)
        self.assertEqual(stats["totalDownloads"], 1)
        self.assertEqual(stats["avgSuccessRate"], 82)

    def test_update_and_delete_require_owner(self):
        template_id = self._create().json()["template"]["id"]

        forbidden = self.client.put(f"/v1/templates/{template_id}", json={"jobTitle": "CTO"}, headers=self.other)
        self.assertEqual(forbidden.status_code, 403)

        updated = self.client.put(f"/v1/templates/{template_id}", json={"jobTitle": "Staff Engineer"}, headers=self.owner)
        self.assertEqual(updated.status_code, 200)

        deleted = self.client.delete(f"/v1/templates/{template_id}", headers=self.owner)
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(self.client.get(f"/v1/templates/{template_id}").status_code, 404)

    def test_analytics_timeframes(self):
        template_id = self._create().json()["template"]["id"]
        self.client.get(f"/v1/templates/{template_id}")
        self.client.get(f"/v1/templates/{template_id}")
        self.client.post(f"/v1/templates/{template_id}/download")

        analytics = self.client.get("/v1/templates/analytics?timeframe=week", headers=self.owner)
        self.assertEqual(analytics.status_code, 200)
        body = analytics.json()
        self.assertEqual(body["totalViews"], 2)
        self.assertEqual(body["totalDownloads"], 1)
        self.assertEqual(body["conversionRate"], 50)
        self.assertEqual(len(body["templatePerformance"]), 1)

        invalid = self.client.get("/v1/templates/analytics?timeframe=decade", headers=self.owner)
        self.assertEqual(invalid.status_code, 400)

    def test_recent_lists_public_templates(self):
        self._create()
        self._create(isPublic=False)
        recent = self.client.get("/v1/templates/recent")
        self.assertEqual(recent.status_code, 200)
        self.assertEqual(len(recent.json()), 1)


if __name__ == "__main__":
    unittest.main()
