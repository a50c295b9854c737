"""
CLI helper to trigger a notification job on a running service.

Stands in for the external hourly scheduler: POSTs the job endpoint with the
cron secret as a bearer token and prints the JSON response.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import requests

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fittrack.config import get_settings

REQUEST_TIMEOUT = 300

JOB_PATHS = {
    "good-morning": "/notifications/good-morning",
    "good-night": "/notifications/good-night",
    "water-reminder": "/notifications/water-reminder",
    "meal-reminders": "/notifications/meal-reminders",
    "weekly-measurement-reminder": "/notifications/weekly-measurement-reminder",
    "weekly-weight-reminder": "/notifications/weekly-weight-reminder",
    "all": "/cron/notifications",
}

logger = logging.getLogger("trigger_job")


def main() -> int:
    parser = argparse.ArgumentParser(description="Trigger a notification job")
    parser.add_argument("job", choices=sorted(JOB_PATHS), help="Job to run")
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000",
        help="Service base URL (without the API prefix)",
    )
    parser.add_argument(
        "--secret",
        default=None,
        help="Cron secret; defaults to CRON_SECRET from the environment",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )

    settings = get_settings()
    secret = args.secret or settings.cron_secret
    if not secret:
        logger.error("No cron secret given and CRON_SECRET is not set")
        return 2

    url = args.base_url.rstrip("/") + settings.api_prefix + JOB_PATHS[args.job]
    logger.info("POST %s", url)
    try:
        response = requests.post(
            url,
            headers={"Authorization": f"Bearer {secret}"},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as exc:
        logger.error("Request failed: %s", exc)
        return 1

    try:
        payload = response.json()
    except ValueError:
        payload = {"status_code": response.status_code, "text": response.text}
    print(json.dumps(payload, indent=2))
    if not response.ok or not payload.get("success", False):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
