import json
import unittest
from datetime import timedelta

import support
from fastapi.testclient import TestClient

from app.main import app
from app.services import subscription_service
from app.services.user_service import get_or_create_user
from app.store import subscriptions as subscriptions_store
from app.store.db import utc_now


class SubscriptionServiceTests(unittest.TestCase):
    def setUp(self):
        support.reset_state()
        self.user_id = get_or_create_user("user_subscriber")["id"]

    def _activate_pro(self, *, days_left: int, sub_id: str = "sub_test_001") -> None:
        start = utc_now() - timedelta(days=10)
        subscriptions_store.activate_pro(
            user_id=self.user_id,
            start_date=start.isoformat(),
            end_date=(utc_now() + timedelta(days=days_left)).isoformat(),
            razorpay_sub_id=sub_id,
        )

    def test_free_plan_allows_three_scans_a_month(self):
        results = [subscription_service.increment_monthly_scans(self.user_id) for _ in range(4)]
        self.assertEqual(results, [True, True, True, False])
        self.assertEqual(subscription_service.get_remaining_scans(self.user_id), 0)
        self.assertEqual(subscriptions_store.get_subscription(self.user_id)["monthly_scans_used"], 3)

    def test_new_month_resets_scan_counter(self):
        for _ in range(3):
            subscription_service.increment_monthly_scans(self.user_id)
        last_month = (utc_now().replace(day=1) - timedelta(days=1)).isoformat()
        subscriptions_store.set_subscription_fields(self.user_id, {"last_scan_reset": last_month})

        self.assertTrue(subscription_service.increment_monthly_scans(self.user_id))
        stored = subscriptions_store.get_subscription(self.user_id)
        self.assertEqual(stored["monthly_scans_used"], 1)
        self.assertEqual(subscription_service.get_remaining_scans(self.user_id), 2)

    def test_expired_subscription_is_persisted_inactive(self):
        self._activate_pro(days_left=-1)

        subscription = subscription_service.get_user_subscription(self.user_id)
        self.assertEqual(subscription["status"], "EXPIRED")
        self.assertEqual(subscriptions_store.get_subscription(self.user_id)["status"], "INACTIVE")
        self.assertFalse(subscription_service.is_feature_unlocked(self.user_id, "pdf_export"))

    def test_access_reasons(self):
        self._activate_pro(days_left=20)
        self.assertTrue(subscription_service.can_user_access_feature(self.user_id, "pdf_export")["canAccess"])

        subscriptions_store.set_subscription_fields(self.user_id, {"status": "CANCELLED"})
        cancelled = subscription_service.can_user_access_feature(self.user_id, "pdf_export")
        self.assertFalse(cancelled["canAccess"])
        self.assertEqual(cancelled["reason"], "Subscription cancelled")

        subscriptions_store.set_subscription_fields(
            self.user_id, {"status": "ACTIVE", "end_date": (utc_now() - timedelta(hours=1)).isoformat()}
        )
        expired = subscription_service.can_user_access_feature(self.user_id, "pdf_export")
        self.assertEqual(expired["reason"], "Subscription expired")
        self.assertEqual(expired["subscription"]["status"], "EXPIRED")

    def test_feature_unlock_grants_single_feature(self):
        subscriptions_store.create_feature_unlock(
            user_id=self.user_id, feature="cover_letter", resume_id=None, razorpay_payment_id="pay_1"
        )
        self.assertTrue(subscription_service.can_user_access_feature(self.user_id, "cover_letter")["canAccess"])
        denied = subscription_service.can_user_access_feature(self.user_id, "pdf_export")
        self.assertEqual(denied["reason"], "Feature not unlocked")
        self.assertEqual(subscription_service.get_unlocked_features(self.user_id), ["cover_letter"])


class SubscriptionWebhookTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        support.reset_state()
        self.user_id = get_or_create_user("user_webhook")["id"]
        self.end_date = utc_now() + timedelta(days=5)
        subscriptions_store.activate_pro(
            user_id=self.user_id,
            start_date=utc_now().isoformat(),
            end_date=self.end_date.isoformat(),
            razorpay_sub_id="sub_hook_001",
        )

    def _post(self, event):
        raw = json.dumps({"event": event, "payload": {"subscription": {"entity": {"id": "sub_hook_001"}}}}).encode("utf-8")
        headers = {"Content-Type": "application/json", "X-Razorpay-Signature": support.sign(support.WEBHOOK_SECRET, raw)}
        response = self.client.post("/v1/webhooks/razorpay", content=raw, headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"received": True})
        return subscriptions_store.get_subscription(self.user_id)

    def test_charged_extends_from_current_end(self):
        subscriptions_store.set_subscription_fields(self.user_id, {"status": "INACTIVE"})
        stored = self._post("subscription.charged")
        self.assertEqual(stored["status"], "ACTIVE")
        self.assertEqual(stored["end_date"], (self.end_date + timedelta(days=30)).isoformat())

    def test_cancelled_records_timestamp(self):
        stored = self._post("subscription.cancelled")
        self.assertEqual(stored["status"], "CANCELLED")
        self.assertIsNotNone(stored["canceled_at"])

    def test_completed_goes_inactive(self):
        stored = self._post("subscription.completed")
        self.assertEqual(stored["status"], "INACTIVE")
        self.assertEqual(stored["plan"], "PRO")


if __name__ == "__main__":
    unittest.main()
