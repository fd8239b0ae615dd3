# Copyright 2025 ReqSeal Project Contributors
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

"""Prometheus counters for token issuance and verification."""

from prometheus_client import Counter

TOKENS_ISSUED = Counter("reqseal_tokens_issued_total", "Tokens generated by this process")

VERIFICATIONS = Counter(
    "reqseal_verifications_total",
    "Token verification outcomes",
    ["outcome"],
)

REPLAY_REJECTS = Counter("reqseal_replay_reject_total", "Tokens rejected because they were already used")


def record_verification(outcome: str) -> None:
    VERIFICATIONS.labels(outcome=outcome).inc()
    if outcome == "replay":
        REPLAY_REJECTS.inc()
