import hashlib
import hmac
import os
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

_DATA_DIR = tempfile.mkdtemp(prefix="resume-api-tests-")

# Settings are read once at import time, so the environment must be in place first.
os.environ.update(
    {
        "DATABASE_PATH": os.path.join(_DATA_DIR, "resumes.db"),
        "ANALYTICS_DB_PATH": os.path.join(_DATA_DIR, "analytics.db"),
        "LLM_ENABLED": "0",
        "OPENAI_API_KEY": "",
        "RATE_LIMIT_ENABLED": "0",
        "AUTH_HEADER_MODE": "trusted",
        "ADMIN_API_KEY": "test-admin-key",
        "DEBUG_ROUTES_ENABLED": "1",
        "SIGNUP_CREDITS": "1",
        "FREE_DAILY_ACTION_LIMIT": "1",
        "RAZORPAY_KEY_ID": "rzp_test_key",
        "RAZORPAY_KEY_SECRET": "rzp_test_secret",
        "RAZORPAY_WEBHOOK_SECRET": "rzp_webhook_secret",
    }
)

ADMIN_API_KEY = os.environ["ADMIN_API_KEY"]
KEY_SECRET = os.environ["RAZORPAY_KEY_SECRET"]
WEBHOOK_SECRET = os.environ["RAZORPAY_WEBHOOK_SECRET"]

from app.analytics.db import clear_ai_runs  # noqa: E402
from app.store.db import clear_store  # noqa: E402


def reset_state() -> None:
    clear_store()
    clear_ai_runs()


def user_headers(user_id: str, **extra: str) -> dict[str, str]:
    return {"X-User-Id": user_id, **extra}


def sign(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def payment_signature(order_id: str, payment_id: str) -> str:
    return sign(KEY_SECRET, f"{order_id}|{payment_id}".encode("utf-8"))


SAMPLE_RESUME = {
    "title": "Backend Engineer Resume",
    "personalInfo": {"name": "Priya Sharma", "email": "priya@example.com", "location": "Bengaluru"},
    "summary": "Backend engineer building Python services and REST APIs for payment platforms at scale.",
    "experience": [
        {
            "company": "Finlytics",
            "position": "Senior Backend Engineer",
            "startDate": "2021-04-01",
            "current": True,
            "responsibilities": ["Built python microservices on aws", "Led agile delivery for the payments team"],
        },
        {
            "company": "Shopwise",
            "position": "Software Engineer",
            "startDate": "2018-06-01",
            "endDate": "2021-03-01",
            "responsibilities": ["Maintained sql reporting pipelines"],
        },
    ],
    "education": [{"institution": "IIT Madras", "degree": "B.Tech", "field": "Computer Science", "graduationDate": "2018"}],
    "skills": ["Python", "SQL", "AWS", "Docker", "REST"],
    "jobTitle": "Senior Backend Engineer",
    "jobDescription": "We need python, kubernetes, sql and aws experience with strong leadership.",
}
