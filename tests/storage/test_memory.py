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

from twisted.internet import defer
from twisted.trial import unittest

from consent_tracking.storage import ConsentRecord, InMemoryConsentStore


class InMemoryConsentStoreTestCase(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryConsentStore(["@u1:test", "@u2:test"])
        self.store.add_user("@u3:test", accepted_version="1")

    def get_success(self, coro):
        return self.successResultOf(defer.ensureDeferred(coro))

    def test_query_unknown_user(self):
        self.assertIsNone(
            self.get_success(self.store.query_accepted_version("@nobody:test"))
        )

    def test_query(self):
        self.assertEqual(
            self.get_success(self.store.query_accepted_version("@u3:test")), "1"
        )
        self.assertIsNone(
            self.get_success(self.store.query_accepted_version("@u1:test"))
        )

    def test_update_by_user(self):
        self.get_success(self.store.update_accepted_version("@u3:test", "2"))

        self.assertEqual(
            self.store.get_record("@u3:test"), ConsentRecord("@u3:test", "2", None)
        )

    def test_update_by_notice(self):
        self.get_success(
            self.store.update_accepted_version("@u1:test", "2", notice_triggered=True)
        )

        self.assertEqual(
            self.store.get_record("@u1:test"), ConsentRecord("@u1:test", "2", "2")
        )

    def test_update_creates_record(self):
        self.get_success(self.store.update_accepted_version("@new:test", "2"))

        self.assertEqual(
            self.get_success(self.store.query_accepted_version("@new:test")), "2"
        )

    def test_list_outdated(self):
        self.assertEqual(
            self.get_success(self.store.list_outdated("1")), ["@u1:test", "@u2:test"]
        )
        self.assertEqual(
            self.get_success(self.store.list_outdated("2")),
            ["@u1:test", "@u2:test", "@u3:test"],
        )

        self.get_success(self.store.update_accepted_version("@u2:test", "2"))

        self.assertEqual(
            self.get_success(self.store.list_outdated("2")), ["@u1:test", "@u3:test"]
        )
