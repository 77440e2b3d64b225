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

import abc
from typing import Any, Dict


class ServerNoticeSender(metaclass=abc.ABCMeta):
    """Delivers a server notice to a single user.

    The transport (a server notices room, email, ...) is up to the
    implementation.
    """

    @abc.abstractmethod
    async def send_notice(self, user_id: str, event_content: Dict[str, Any]) -> None:
        """Send a notice to the given user.

        Args:
            user_id: the full user ID of the recipient
            event_content: content of the message, with at least "msgtype" and
                "body" keys

        Raises:
            Exception on any delivery failure
        """
        raise NotImplementedError()
