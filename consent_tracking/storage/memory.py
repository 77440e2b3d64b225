# -*- coding: utf-8 -*-
# Copyright 2021 The Matrix.org Foundation C.I.C.
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

import logging
from typing import Dict, Iterable, List, Optional

from consent_tracking.storage.consent import ConsentRecord, ConsentStateStore

logger = logging.getLogger(__name__)


class InMemoryConsentStore(ConsentStateStore):
    """A ConsentStateStore backed by a dict.

    Suitable for tests and for single-process deployments that do not need
    consent state to survive a restart. Writes are last-write-wins.

    Args:
        users: user IDs of the known accounts. Accounts which have never
            accepted any version are reported as outdated.
    """

    def __init__(self, users: Iterable[str] = ()):
        self._records = {}  # type: Dict[str, ConsentRecord]
        for user_id in users:
            self.add_user(user_id)

    def add_user(self, user_id: str, accepted_version: Optional[str] = None) -> None:
        self._records[user_id] = ConsentRecord(user_id, accepted_version)

    def get_record(self, user_id: str) -> Optional[ConsentRecord]:
        return self._records.get(user_id)

    async def query_accepted_version(self, user_id: str) -> Optional[str]:
        record = self._records.get(user_id)
        if record is None:
            return None
        return record.accepted_version

    async def update_accepted_version(
        self, user_id: str, version: str, notice_triggered: bool = False
    ) -> None:
        record = self._records.get(user_id) or ConsentRecord(user_id)
        if notice_triggered:
            record = record._replace(
                accepted_version=version, last_notice_version=version
            )
        else:
            record = record._replace(accepted_version=version)
        self._records[user_id] = record
        logger.debug(
            "Set consent version for %s to %s (notice: %s)",
            user_id,
            version,
            notice_triggered,
        )

    async def list_outdated(self, current_version: str) -> List[str]:
        return sorted(
            user_id
            for user_id, record in self._records.items()
            if record.accepted_version != current_version
        )
