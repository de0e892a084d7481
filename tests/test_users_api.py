import unittest

import support
from fastapi.testclient import TestClient

from app.main import app


class UserCreditsApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        support.reset_state()
        self.headers = support.user_headers("user_credits", **{"X-User-Email": "asha@example.com"})

    def test_first_request_creates_user_with_signup_credit(self):
        response = self.client.get("/v1/user/me", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["credits"], 1)
        self.assertEqual(body["email"], "asha@example.com")
        self.assertEqual(body["role"], "user")

    def test_onboard_sets_name(self):
        response = self.client.post("/v1/users/onboard", json={"name": "  Asha Rao "}, headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["name"], "Asha Rao")

        blank = self.client.post("/v1/users/update", json={"name": "   "}, headers=self.headers)
        self.assertEqual(blank.status_code, 400)

    def test_check_credits_reports_shortfall(self):
        response = self.client.post(
            "/v1/user/check-credits",
            json={"action": "resume_analysis", "requiredCredits": 3},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertFalse(body["hasEnoughCredits"])
        self.assertEqual(body["userCredits"], 1)
        self.assertEqual(body["requiredCredits"], 3)

    def test_check_credits_requires_action(self):
        response = self.client.post("/v1/user/check-credits", json={}, headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Action type is required")

    def test_deduct_then_daily_limit(self):
        added = self.client.post("/v1/debug/add-credits", headers=self.headers)
        self.assertEqual(added.status_code, 200)
        self.assertEqual(added.json()["newBalance"], 6)

        first = self.client.post(
            "/v1/user/deduct-credits",
            json={"service": "resume_analysis", "credits": 1},
            headers=self.headers,
        )
        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json()["remainingCredits"], 5)
        self.assertEqual(first.json()["usage"]["service"], "resume_analysis")

        second = self.client.post(
            "/v1/user/deduct-credits",
            json={"service": "resume_analysis", "credits": 1},
            headers=self.headers,
        )
        self.assertEqual(second.status_code, 429)
        self.assertTrue(second.json()["rateLimited"])
        self.assertIn("resetTime", second.json())

        check = self.client.post("/v1/user/check-credits", json={"action": "resume_analysis"}, headers=self.headers)
        self.assertTrue(check.json()["rateLimited"])
        self.assertEqual(self.client.get("/v1/user/credits", headers=self.headers).json()["credits"], 5)

    def test_deduct_more_than_balance(self):
        response = self.client.post(
            "/v1/user/deduct-credits",
            json={"service": "resume_analysis", "credits": 4},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body["detail"], "Insufficient credits")
        self.assertEqual(body["creditsNeeded"], 4)
        self.assertEqual(body["creditsAvailable"], 1)

    def test_deduct_rejects_non_positive_amount(self):
        response = self.client.post(
            "/v1/user/deduct-credits",
            json={"service": "resume_analysis", "credits": 0},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)


class FeatureAccessApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        support.reset_state()
        self.headers = support.user_headers("user_features")

    def test_feature_check_requires_id(self):
        response = self.client.get("/v1/features/check", headers=self.headers)
        self.assertEqual(response.status_code, 400)

    def test_free_user_has_no_unlocks(self):
        check = self.client.get("/v1/features/check?featureId=pdf_export", headers=self.headers)
        self.assertEqual(check.status_code, 200)
        self.assertFalse(check.json()["isUnlocked"])
        self.assertEqual(check.json()["subscription"]["plan"], "FREE")

        access = self.client.get("/v1/user/features/pdf_export/access", headers=self.headers)
        self.assertFalse(access.json()["canAccess"])
        self.assertEqual(access.json()["reason"], "Feature not unlocked")

        subscription = self.client.get("/v1/user/subscription", headers=self.headers).json()
        self.assertEqual(subscription["unlockedFeatures"], [])
        self.assertEqual(subscription["credits"], 1)


if __name__ == "__main__":
    unittest.main()
