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

from twisted.trial import unittest
from twisted.web.resource import getChildForRequest
from twisted.web.test.requesthelper import DummyRequest

from consent_tracking.crypto.link_token import sign
from consent_tracking.rest import build_consent_resource_tree, create_resource_tree
from consent_tracking.rest.consent import ConsentResource
from consent_tracking.storage import InMemoryConsentStore

from tests.utils import (
    FORM_SECRET,
    default_config,
    mock_store,
    setup_test_server,
    write_policy_templates,
)

BOB = "@bob:example.org"


def make_request(method: bytes = b"GET", **params) -> DummyRequest:
    request = DummyRequest([b""])
    request.method = method
    request.args = {
        name.encode("ascii"): [value.encode("utf-8")] for name, value in params.items()
    }
    return request


class ConsentResourceTestCase(unittest.TestCase):
    def setUp(self):
        template_dir = write_policy_templates(self.mktemp())
        self.config = default_config(user_consent={"template_dir": template_dir})
        self.store = InMemoryConsentStore()
        self.store.add_user(BOB, accepted_version="1")
        self.hs = setup_test_server(config=self.config, datastore=self.store)
        self.resource = ConsentResource(self.hs)
        self.bob_hmac = sign(BOB, FORM_SECRET)

    def render(self, request: DummyRequest) -> str:
        self.resource.render(request)
        self.assertEqual(request.finished, 1)
        return b"".join(request.written).decode("utf-8")

    def test_get_public(self):
        request = make_request()
        body = self.render(request)

        self.assertEqual(request.responseCode, 200)
        self.assertTrue(body.startswith("PUBLIC"), body)

    def test_get_prompt(self):
        request = make_request(u=BOB, v="2", h=self.bob_hmac)
        body = self.render(request)

        self.assertEqual(request.responseCode, 200)
        self.assertEqual(body, "PROMPT user=%s version=2" % (BOB,))
        self.assertEqual(
            request.responseHeaders.getRawHeaders(b"Content-Type"),
            [b"text/html; charset=utf-8"],
        )
        self.assertEqual(
            request.responseHeaders.getRawHeaders(b"X-Frame-Options"), [b"DENY"]
        )

    def test_get_escapes_params(self):
        user = "@<b>bob</b>:example.org"
        request = make_request(u=user, v="2", h=sign(user, FORM_SECRET))
        body = self.render(request)

        self.assertEqual(request.responseCode, 200)
        self.assertNotIn("<b>", body)

    def test_get_invalid_user_id(self):
        request = make_request(u="bob", v="2", h=self.bob_hmac)
        self.render(request)

        self.assertEqual(request.responseCode, 500)

    def test_get_user_id_not_utf8(self):
        request = make_request(v="2", h=self.bob_hmac)
        request.args[b"u"] = [b"\xff@bob:example.org"]
        self.render(request)

        self.assertEqual(request.responseCode, 500)
        self.assertEqual(self.store.get_record(BOB).accepted_version, "1")

    def test_get_store_failure(self):
        store = mock_store()
        store.query_accepted_version.side_effect = Exception("db down")
        resource = ConsentResource(
            setup_test_server(config=self.config, datastore=store)
        )
        request = make_request(u=BOB, v="2", h=self.bob_hmac)
        resource.render(request)

        self.assertEqual(request.responseCode, 500)
        self.assertNotIn(b"PROMPT", b"".join(request.written))

    def test_post_accepts(self):
        request = make_request(b"POST", u=BOB, v="2", h=self.bob_hmac)
        body = self.render(request)

        self.assertEqual(request.responseCode, 200)
        self.assertTrue(body.startswith("CONFIRMED"), body)
        self.assertEqual(self.store.get_record(BOB).accepted_version, "2")

        request = make_request(u=BOB, v="2", h=self.bob_hmac)
        body = self.render(request)
        self.assertTrue(body.startswith("CONFIRMED"), body)

    def test_post_invalid_hmac(self):
        tampered = self.bob_hmac[:-1] + ("0" if self.bob_hmac[-1] != "0" else "1")
        request = make_request(b"POST", u=BOB, v="2", h=tampered)
        body = self.render(request)

        self.assertEqual(request.responseCode, 403)
        self.assertIn("invalid HMAC provided", body)
        self.assertEqual(self.store.get_record(BOB).accepted_version, "1")

        request = make_request(u=BOB, v="2", h=self.bob_hmac)
        self.assertTrue(self.render(request).startswith("PROMPT"))

    def test_post_missing_params(self):
        request = make_request(b"POST", u=BOB)
        self.render(request)

        self.assertEqual(request.responseCode, 500)
        self.assertEqual(self.store.get_record(BOB).accepted_version, "1")

    def test_unsupported_method(self):
        request = make_request(b"PUT")
        self.render(request)

        self.assertEqual(request.responseCode, 405)

    def test_missing_policy_template(self):
        config = default_config(
            user_consent={"template_dir": self.config["user_consent"]["template_dir"]}
        )
        config["user_consent"]["version"] = "3"
        resource = ConsentResource(setup_test_server(config=config))
        request = make_request()
        resource.render(request)

        self.assertEqual(request.responseCode, 500)


class ConsentResourceTreeTestCase(unittest.TestCase):
    def test_tree(self):
        hs = setup_test_server()
        tree = build_consent_resource_tree(hs)

        self.assertEqual(list(tree), ["/_matrix/client/consent"])
        self.assertIsInstance(tree["/_matrix/client/consent"], ConsentResource)

    def test_tree_without_consent(self):
        config = default_config()
        del config["user_consent"]

        self.assertEqual(build_consent_resource_tree(setup_test_server(config)), {})

    def test_root_resource(self):
        root = create_resource_tree(setup_test_server())

        request = DummyRequest([b"_matrix", b"client", b"consent"])
        self.assertIsInstance(getChildForRequest(root, request), ConsentResource)
