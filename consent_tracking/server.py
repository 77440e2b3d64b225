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

# This file provides some classes for setting up (partially-populated)
# consent servers; either as a full server or as a test harness.

import functools
from os import path
from typing import TYPE_CHECKING, Callable, Optional, TypeVar

from consent_tracking.config.homeserver import ConsentServerConfig
from consent_tracking.handlers.consent import ConsentHandler
from consent_tracking.server_notices.consent_notices import ConsentNoticeDispatcher
from consent_tracking.server_notices.sender import ServerNoticeSender
from consent_tracking.storage.consent import ConsentStateStore
from consent_tracking.util.templates import Templater, build_jinja_env

if TYPE_CHECKING:
    from twisted.internet.interfaces import IReactorTime

T = TypeVar("T", bound=Callable[..., object])


def cache_in_self(builder: T) -> T:
    """Wraps a function called e.g. `get_foo`, checking if `self.foo` exists and
    returning if so. If not, calls the given function and sets `self.foo` to it.

    Also ensures that dependency cycles throw an exception correctly, rather
    than overflowing the stack.
    """

    if not builder.__name__.startswith("get_"):
        raise Exception(
            "@cache_in_self can only be used on functions starting with `get_`"
        )

    depname = builder.__name__[len("get_") :]

    building = [False]

    @functools.wraps(builder)
    def _get(self):
        try:
            return getattr(self, depname)
        except AttributeError:
            pass

        # Prevent cyclic dependencies from deadlocking
        if building[0]:
            raise ValueError("Cyclic dependency while building %s" % (depname,))

        building[0] = True
        try:
            dep = builder(self)
            setattr(self, depname, dep)
        finally:
            building[0] = False

        return dep

    # We cast here as we need to tell mypy that `_get` has the same signature as
    # `builder`.
    return _get  # type: ignore


class ConsentServer:
    """A basic consent server object.

    Holds the configuration and the external collaborators, and builds the
    consent handler, the notice dispatcher and the templater on first use.

    Attributes:
        config: The parsed configuration.
    """

    def __init__(
        self,
        config: ConsentServerConfig,
        datastore: ConsentStateStore,
        server_notice_sender: ServerNoticeSender,
        reactor: Optional["IReactorTime"] = None,
    ):
        if not reactor:
            from twisted.internet import reactor as _reactor

            reactor = _reactor

        self.config = config
        self.hostname = config.server_name
        self._reactor = reactor
        self._datastore = datastore
        self._server_notice_sender = server_notice_sender

    def get_reactor(self) -> "IReactorTime":
        return self._reactor

    def get_datastore(self) -> ConsentStateStore:
        return self._datastore

    def get_server_notice_sender(self) -> ServerNoticeSender:
        return self._server_notice_sender

    @cache_in_self
    def get_templater(self) -> Templater:
        consent_config = self.config.consent
        template_dir = consent_config.user_consent_template_dir
        env = build_jinja_env(
            [
                path.join(template_dir, consent_config.user_consent_default_language),
                template_dir,
            ],
            self.hostname,
        )
        env.globals.update({"current_version": consent_config.user_consent_version})
        return Templater(env)

    @cache_in_self
    def get_consent_handler(self) -> ConsentHandler:
        return ConsentHandler(self)

    @cache_in_self
    def get_consent_notice_dispatcher(self) -> ConsentNoticeDispatcher:
        return ConsentNoticeDispatcher(self)
