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

from consent_tracking.config._base import Config, ConfigError


class ServerNoticesConfig(Config):
    """Configuration for the server notices room.

    Attributes:
        server_notices_mxid_localpart: the localpart of the user that sends
            server notices. Consent notices are never sent to this user.

        server_notices_mxid: the full user ID of the same user, once the
            server name is known.
    """

    def __init__(self):
        self.server_notices_mxid_localpart = "notices"
        self.server_notices_mxid = None

    def read_config(self, config: dict, server_name: str = None, **kwargs):
        c = config.get("server_notices")
        if c is None:
            c = {}
        if not isinstance(c, dict):
            raise ConfigError("must be a dictionary", ("server_notices",))

        localpart = self.read_string(c, "system_mxid_localpart", "notices")
        if not localpart or ":" in localpart or localpart.startswith("@"):
            raise ConfigError(
                "Invalid localpart %r" % (localpart,),
                ("server_notices", "system_mxid_localpart"),
            )
        self.server_notices_mxid_localpart = localpart
        if server_name:
            self.server_notices_mxid = "@%s:%s" % (localpart, server_name)
