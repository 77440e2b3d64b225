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

"""Reads the user_consent section, for example:

    user_consent:
      template_dir: res/templates
      version: 1.0
      default_language: en
      server_notice_template: server_notice.txt
      server_notice_msgtype: m.text
      notice_concurrency: 1
      notice_timeout: 30s
      notice_interval: 1h

'template_dir' gives the location of the templates. It should contain one
subdirectory per language (eg, 'en', 'fr'), and each language directory should
contain the policy document, named as '<version>.html'. The top level should
contain 'server_notice.txt', the text of the notice sent to users who have not
accepted the current version; it may use the 'consent_uri', 'user' and
'version' variables.

'version' is the current version of the policy document.

'notice_concurrency' is how many users are sent a notice at once, and
'notice_timeout' bounds every individual send and update call.
'notice_interval' is how often the outdated users are looked for.
"""

from os import path

from consent_tracking.config._base import Config, ConfigError


def default_template_dir() -> str:
    return path.join(
        path.dirname(path.dirname(path.abspath(__file__))), "res", "templates"
    )


class ConsentConfig(Config):

    def __init__(self):
        self.user_consent_version = None
        self.user_consent_template_dir = None
        self.user_consent_default_language = "en"
        self.user_consent_server_notice_template = "server_notice.txt"
        self.user_consent_server_notice_msgtype = "m.text"
        self.user_consent_notice_concurrency = 1
        self.user_consent_notice_timeout_ms = 30 * 1000
        self.user_consent_notice_interval_ms = 60 * 60 * 1000

    def read_config(self, config: dict, **kwargs):
        consent_config = config.get("user_consent")
        if consent_config is None:
            return
        if not isinstance(consent_config, dict):
            raise ConfigError("must be a dictionary", ("user_consent",))

        self.user_consent_version = self.read_string(
            consent_config, "version", required=True
        )
        if not self.user_consent_version:
            raise ConfigError("must not be empty", ("user_consent", "version"))

        template_dir = consent_config.get("template_dir") or default_template_dir()
        self.user_consent_template_dir = path.abspath(template_dir)
        if not path.isdir(self.user_consent_template_dir):
            raise ConfigError(
                "Could not find template directory '%s'" % (template_dir,),
                ("user_consent", "template_dir"),
            )

        self.user_consent_default_language = self.read_string(
            consent_config, "default_language", "en"
        )
        self.user_consent_server_notice_template = self.read_string(
            consent_config, "server_notice_template", "server_notice.txt"
        )
        self.user_consent_server_notice_msgtype = self.read_string(
            consent_config, "server_notice_msgtype", "m.text"
        )

        concurrency = consent_config.get("notice_concurrency", 1)
        if (
            not isinstance(concurrency, int)
            or isinstance(concurrency, bool)
            or concurrency < 1
        ):
            raise ConfigError(
                "must be a positive integer", ("user_consent", "notice_concurrency")
            )
        self.user_consent_notice_concurrency = concurrency

        try:
            self.user_consent_notice_timeout_ms = self.parse_duration(
                consent_config.get("notice_timeout", "30s")
            )
            self.user_consent_notice_interval_ms = self.parse_duration(
                consent_config.get("notice_interval", "1h")
            )
        except ConfigError as e:
            raise ConfigError(e.msg, ("user_consent",))
