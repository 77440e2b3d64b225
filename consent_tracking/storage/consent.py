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

"""The consent state store interface.

The account database that holds consent state lives outside this package. It
is reached only through the three operations below, all of which may be
called concurrently.
"""

import abc
from typing import List, NamedTuple, Optional


class ConsentRecord(NamedTuple):
    """A user's consent state.

    Attributes:
        user_id: the full user ID
        accepted_version: the last policy version the user accepted, if any
        last_notice_version: the version most recently accepted on the user's
            behalf after a consent notice was delivered, if any
    """

    user_id: str
    accepted_version: Optional[str] = None
    last_notice_version: Optional[str] = None


class ConsentStateStore(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    async def query_accepted_version(self, user_id: str) -> Optional[str]:
        """Get the policy version the user last accepted.

        Returns:
            the version, or None if the user has never accepted one
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def update_accepted_version(
        self, user_id: str, version: str, notice_triggered: bool = False
    ) -> None:
        """Record that the user accepted the given version.

        The record is created if it does not exist yet.

        Args:
            user_id: the full user ID
            version: the policy version
            notice_triggered: True if the update follows the delivery of a
                consent notice rather than the user accepting the policy
                themselves
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def list_outdated(self, current_version: str) -> List[str]:
        """Get the users whose accepted version is not the current version.

        Returns:
            list of full user IDs
        """
        raise NotImplementedError()
