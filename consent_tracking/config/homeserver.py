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

from urllib.parse import urlparse

from consent_tracking.config._base import Config, ConfigError
from consent_tracking.config.consent import ConsentConfig
from consent_tracking.config.server_notices import ServerNoticesConfig


class ConsentServerConfig(Config):
    """The root configuration object.

    Holds the server-wide settings (server name, public base URL and the form
    secret used to sign consent links) plus one object per config section.
    """

    def __init__(self):
        self.server_name = None
        self.public_baseurl = None
        self.form_secret = None
        self.server_notices = ServerNoticesConfig()
        self.consent = ConsentConfig()

    @classmethod
    def from_dict(cls, config: dict) -> "ConsentServerConfig":
        obj = cls()
        obj.read_config(config)
        return obj

    def read_config(self, config: dict, **kwargs):
        if not isinstance(config, dict):
            raise ConfigError("config must be a dictionary")

        self.server_name = self.read_string(config, "server_name", required=True)

        self.public_baseurl = self.read_string(config, "public_baseurl")
        self.form_secret = self.read_string(config, "form_secret")

        self.server_notices.read_config(config, server_name=self.server_name)
        self.consent.read_config(config)

        if self.consent.user_consent_version is not None:
            if not self.form_secret:
                raise ConfigError(
                    "user_consent configuration requires a form_secret",
                    ("form_secret",),
                )
            if not self.public_baseurl:
                raise ConfigError(
                    "user_consent configuration requires a public_baseurl",
                    ("public_baseurl",),
                )
            parsed = urlparse(self.public_baseurl)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ConfigError(
                    "public_baseurl must be an http(s) URL", ("public_baseurl",)
                )

    @property
    def consent_enabled(self) -> bool:
        return self.consent.user_consent_version is not None
