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

from typing import TYPE_CHECKING

from twisted.web.server import Request

from consent_tracking.handlers.consent import ConsentPage
from consent_tracking.http.server import (
    DirectServeHtmlResource,
    respond_with_html_bytes,
)
from consent_tracking.http.servlet import parse_string

if TYPE_CHECKING:
    from consent_tracking.server import ConsentServer


class ConsentResource(DirectServeHtmlResource):
    """A twisted Resource to display a privacy policy and gather consent to it

    When accessed via GET, returns the privacy policy via a template.

    When accessed via POST, records the user's consent in the database and
    shows the policy again, as accepted.

    The config should include a template_dir setting which contains templates
    for the HTML. The directory should contain one subdirectory per language
    (eg, 'en', 'fr'), and each language directory should contain the policy
    document (named as '<version>.html').

    The template is passed the following variables:

    * user: the user ID from the `u` parameter.
    * version: the version from the `v` parameter.
    * userhmac: the HMAC from the `h` parameter.
    * has_consented: whether the user has accepted the current version.
    * public_version: true if the page is being shown without a user, in
      which case there should be no form for accepting the policy.

    Both methods take the same query (or form) parameters:

    u: the user ID of the user viewing the policy.

    v: the version of the policy the link was minted for.

    h: hex-encoded HMAC-SHA256 of u, using the form_secret from the config.
    """

    def __init__(self, hs: "ConsentServer"):
        super().__init__()

        self._consent_handler = hs.get_consent_handler()
        self._templater = hs.get_templater()
        self._current_version = hs.config.consent.user_consent_version

    async def _async_render_GET(self, request: Request) -> None:
        page = await self._consent_handler.get_consent_page(
            parse_string(request, "u", default=""),
            parse_string(request, "v", default=""),
            parse_string(request, "h", default=""),
        )
        self._render_page(request, page)

    async def _async_render_POST(self, request: Request) -> None:
        page = await self._consent_handler.accept_consent(
            parse_string(request, "u", default=""),
            parse_string(request, "v", default=""),
            parse_string(request, "h", default=""),
        )
        self._render_page(request, page)

    def _render_page(self, request: Request, page: ConsentPage) -> None:
        html = self._templater.render(
            "%s.html" % (self._current_version,), page.template_data()
        )
        respond_with_html_bytes(request, 200, html)
