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
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, NamedTuple, Optional

from consent_tracking.api.errors import AuthError, Codes, StorageError, ValidationError
from consent_tracking.config import ConfigError
from consent_tracking.crypto.link_token import verify
from consent_tracking.types import UserID

if TYPE_CHECKING:
    from consent_tracking.server import ConsentServer


class ConsentView(Enum):
    # no identity proven: just show the policy
    PUBLIC = "public"
    # identity proven, current version not accepted yet
    PROMPT = "prompt"
    # identity proven, current version accepted
    CONFIRMED = "confirmed"


class ConsentPage(NamedTuple):
    """The outcome of a consent request: which view to show, and the request
    parameters to show it with.
    """

    view: ConsentView
    user: str = ""
    version: str = ""
    userhmac: str = ""

    def template_data(self) -> Dict[str, Any]:
        return {
            "user": self.user,
            "version": self.version,
            "userhmac": self.userhmac,
            "has_consented": self.view == ConsentView.CONFIRMED,
            "public_version": self.view == ConsentView.PUBLIC,
        }


class ConsentHandler:
    """Decides what a user following a consent link should see, and records
    their acceptance of the policy.

    Requests are authenticated by the signed link alone: `u` is the user ID,
    `h` the hex HMAC of it under the form secret, and `v` the policy version
    the link was minted for.
    """

    def __init__(self, hs: "ConsentServer", logger: Optional[logging.Logger] = None):
        self._store = hs.get_datastore()
        self._logger = logger or logging.getLogger(__name__)

        config = hs.config
        if not config.consent_enabled:
            raise ConfigError(
                "Consent resource is enabled but user_consent section is "
                "missing in config file."
            )
        self._current_version = config.consent.user_consent_version
        self._form_secret = config.form_secret

    async def get_consent_page(
        self, user: Optional[str], version: Optional[str], userhmac: Optional[str]
    ) -> ConsentPage:
        """Work out the view for a GET on the consent resource.

        Without all three parameters the policy is shown without a form, and
        the store is not consulted.

        Raises:
            ValidationError if the user ID cannot be parsed
            AuthError if the signature does not match the user ID
            StorageError if the user's consent state cannot be read
        """
        if not (user and version and userhmac):
            return ConsentPage(
                ConsentView.PUBLIC, user or "", version or "", userhmac or ""
            )

        user_id = UserID.from_string(user)
        self._check_hash(user, userhmac)

        try:
            accepted_version = await self._store.query_accepted_version(
                user_id.to_string()
            )
        except Exception as e:
            self._logger.error("Unable to fetch consent version for %s: %s", user, e)
            raise StorageError("Unable to fetch consent version") from e

        # `version` came off the query string: only the stored version counts
        if accepted_version == self._current_version:
            view = ConsentView.CONFIRMED
        else:
            view = ConsentView.PROMPT

        return ConsentPage(view, user, version, userhmac)

    async def accept_consent(
        self, user: Optional[str], version: Optional[str], userhmac: Optional[str]
    ) -> ConsentPage:
        """Record that a user accepted the policy, for a POST on the consent
        resource.

        Nothing is written unless the signature checks out.

        Raises:
            ValidationError if a parameter is missing or the user ID cannot be
                parsed
            AuthError if the signature does not match the user ID
            StorageError if the update fails
        """
        if not (user and version and userhmac):
            raise ValidationError(
                "u, v and h are all required", errcode=Codes.MISSING_PARAM
            )

        user_id = UserID.from_string(user)
        self._check_hash(user, userhmac)

        try:
            await self._store.update_accepted_version(
                user_id.to_string(), version, notice_triggered=False
            )
        except Exception as e:
            self._logger.error("Unable to update consent version for %s: %s", user, e)
            raise StorageError("unable to update database") from e

        self._logger.info("User %s accepted policy version %s", user, version)
        return ConsentPage(ConsentView.CONFIRMED, user, version, userhmac)

    def _check_hash(self, user: str, userhmac: str) -> None:
        """
        Args:
            user: the user ID exactly as given in the request
            userhmac: the hex signature from the request

        Raises:
            AuthError if the signature is malformed or does not match
        """
        try:
            valid = verify(user, userhmac, self._form_secret)
        except AuthError:
            self._logger.info("Malformed HMAC for %s", user)
            raise

        if not valid:
            self._logger.info("Invalid HMAC for %s", user)
            raise AuthError(errcode=Codes.INVALID_SIGNATURE)
