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

import os
from typing import Optional
from unittest.mock import AsyncMock, Mock

from twisted.internet.task import Clock

from consent_tracking.config.homeserver import ConsentServerConfig
from consent_tracking.server import ConsentServer
from consent_tracking.server_notices.sender import ServerNoticeSender
from consent_tracking.storage.consent import ConsentStateStore

FORM_SECRET = "s3cr3t"

# renders just the view, so that tests can check which one was picked
TEST_POLICY_TEMPLATE = (
    "{% if has_consented %}CONFIRMED{% elif public_version %}PUBLIC"
    "{% else %}PROMPT{% endif %} user={{ user }} version={{ version }}"
)


def default_config(name: str = "example.org", **overrides) -> dict:
    """Create a reasonable test config dict."""
    config = {
        "server_name": name,
        "public_baseurl": "https://%s/" % (name,),
        "form_secret": FORM_SECRET,
        "server_notices": {"system_mxid_localpart": "notices"},
        "user_consent": {"version": "2"},
    }
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(config.get(key), dict):
            config[key] = dict(config[key], **value)
        else:
            config[key] = value
    return config


def write_policy_templates(
    template_dir: str,
    version: str = "2",
    language: str = "en",
    notice_template: str = "Please accept version {{ version }}: {{ consent_uri }}",
) -> str:
    """Write a policy template and a server notice template under
    template_dir, returning template_dir.
    """
    os.makedirs(os.path.join(template_dir, language))
    with open(os.path.join(template_dir, language, "%s.html" % (version,)), "w") as f:
        f.write(TEST_POLICY_TEMPLATE)
    with open(os.path.join(template_dir, "server_notice.txt"), "w") as f:
        f.write(notice_template)
    return template_dir


def mock_store() -> Mock:
    """A ConsentStateStore whose methods are AsyncMocks."""
    store = Mock(spec=ConsentStateStore)
    store.query_accepted_version = AsyncMock(return_value=None)
    store.update_accepted_version = AsyncMock(return_value=None)
    store.list_outdated = AsyncMock(return_value=[])
    return store


def mock_sender() -> Mock:
    sender = Mock(spec=ServerNoticeSender)
    sender.send_notice = AsyncMock(return_value=None)
    return sender


def setup_test_server(
    config: Optional[dict] = None,
    datastore=None,
    server_notice_sender=None,
    reactor=None,
) -> ConsentServer:
    """Build a ConsentServer from a config dict, with mocks for anything not
    given.
    """
    if config is None:
        config = default_config()
    if datastore is None:
        datastore = mock_store()
    if server_notice_sender is None:
        server_notice_sender = mock_sender()
    if reactor is None:
        reactor = Clock()

    return ConsentServer(
        ConsentServerConfig.from_dict(config),
        datastore,
        server_notice_sender,
        reactor=reactor,
    )
