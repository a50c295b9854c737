# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

DEFAULT_TIMEZONE = "Asia/Kolkata"

# Local hours (0-23) at which the scheduled kinds fire.
GOOD_MORNING_HOUR = 7
GOOD_NIGHT_MIN_HOUR = 20
GOOD_NIGHT_MAX_HOUR = 23
GOOD_NIGHT_OFFSET_MINUTES = 60
WATER_REMINDER_FIRST_HOUR = 8
WATER_REMINDER_LAST_HOUR = 22
WEEKLY_MEASUREMENT_HOUR = 10
WEEKLY_WEIGHT_HOUR = 9

# datetime.weekday() numbering.
SUNDAY = 6

BROWSER_QUEUE_MAX_ITEMS = 10
MEASUREMENT_LOOKBACK_DAYS = 7

# FCM caps multicast sends at 500 registration tokens per request.
FCM_MULTICAST_LIMIT = 500
FCM_TTL_SECONDS = 7200

INVALID_TOKEN_ERROR_CODES = frozenset(
    {
        "registration-token-not-registered",
        "invalid-registration-token",
        "invalid-argument",
    }
)

MAX_TITLE_LENGTH = 200
MAX_BODY_LENGTH = 1000
