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
from typing import TYPE_CHECKING, List, Optional

from twisted.internet import defer, task

from consent_tracking.api.errors import DispatchError, StorageError, ValidationError
from consent_tracking.config import ConfigError
from consent_tracking.crypto.link_token import build_consent_uri
from consent_tracking.types import UserID
from consent_tracking.util.async_helpers import (
    concurrently_execute,
    observe_cancellation,
    timeout_deferred,
    with_timeout,
)

if TYPE_CHECKING:
    from consent_tracking.server import ConsentServer


class NoticeDispatchResult:
    """The outcome of a dispatch pass.

    Attributes:
        notified: users who were sent a notice and had their consent state
            updated
        skipped: users who were deliberately not sent a notice
        failures: one DispatchError per user that could not be notified
        cancelled: whether the pass was stopped before it got to every user
    """

    def __init__(self):
        self.notified = 0
        self.skipped = 0
        self.failures = []  # type: List[DispatchError]
        self.cancelled = False

    def __repr__(self):
        return "NoticeDispatchResult(notified=%d, skipped=%d, failures=%d%s)" % (
            self.notified,
            self.skipped,
            len(self.failures),
            ", cancelled" if self.cancelled else "",
        )


class ConsentNoticeDispatcher:
    """Sends a server notice, carrying a signed consent link, to each user who
    has not accepted the current version of the policy.

    A user is recorded as being on the current version once the notice has
    been delivered to them. If that update fails after a successful delivery,
    the user will get the notice again on the next pass.
    """

    def __init__(self, hs: "ConsentServer", logger: Optional[logging.Logger] = None):
        self._store = hs.get_datastore()
        self._sender = hs.get_server_notice_sender()
        self._templater = hs.get_templater()
        self._reactor = hs.get_reactor()
        self._logger = logger or logging.getLogger(__name__)

        config = hs.config
        if not config.consent_enabled:
            raise ConfigError(
                "Consent notices are enabled but user_consent section is "
                "missing in config file."
            )
        consent_config = config.consent

        self._current_version = consent_config.user_consent_version
        self._form_secret = config.form_secret
        self._public_baseurl = config.public_baseurl
        self._server_notices_mxid = config.server_notices.server_notices_mxid
        self._template_name = consent_config.user_consent_server_notice_template
        self._msgtype = consent_config.user_consent_server_notice_msgtype
        self._concurrency = consent_config.user_consent_notice_concurrency
        self._timeout = consent_config.user_consent_notice_timeout_ms / 1000.0
        self._interval = consent_config.user_consent_notice_interval_ms / 1000.0

        self._is_processing = False
        self._stopping = False
        self._looping_call = None  # type: Optional[task.LoopingCall]

    def start(self) -> None:
        """Run a dispatch pass every `notice_interval`, starting one interval
        from now.
        """
        if self._looping_call is not None:
            return

        self._looping_call = task.LoopingCall(self._run_scheduled_pass)
        self._looping_call.clock = self._reactor
        self._looping_call.start(self._interval, now=False)

    def stop(self) -> None:
        """Stop scheduling passes, and make any running pass stop issuing new
        per-user work.
        """
        if self._looping_call is not None:
            if self._looping_call.running:
                self._looping_call.stop()
            self._looping_call = None
        if self._is_processing:
            self._stopping = True

    def _run_scheduled_pass(self) -> defer.Deferred:
        return defer.ensureDeferred(self._scheduled_pass())

    async def _scheduled_pass(self) -> None:
        try:
            await self.dispatch_notices()
        except Exception:
            # keep the loop going; the next pass will retry
            self._logger.exception("Consent notice pass failed")

    async def dispatch_notices(self) -> Optional[NoticeDispatchResult]:
        """Send consent notices to every user on an outdated policy version.

        Cancelling the returned Deferred cancels the sends in flight and stops
        the pass from starting any more; the pass then returns its partial
        result, with `cancelled` set.

        Returns:
            the outcome of the pass, or None if a pass was already running

        Raises:
            StorageError if the outdated users could not be listed. Failures
            for individual users never abort the pass.
        """
        if self._is_processing:
            self._logger.info("Consent notice pass already in progress")
            return None

        self._is_processing = True
        self._stopping = False
        try:
            return await self._dispatch_notices()
        finally:
            self._is_processing = False
            self._stopping = False

    async def _dispatch_notices(self) -> NoticeDispatchResult:
        result = NoticeDispatchResult()

        def _on_cancel() -> None:
            # the caller gave up on the pass: start nothing new
            result.cancelled = True
            self._stopping = True

        try:
            outdated_users = await observe_cancellation(
                timeout_deferred(
                    defer.ensureDeferred(
                        self._store.list_outdated(self._current_version)
                    ),
                    self._timeout,
                    self._reactor,
                ),
                _on_cancel,
            )
        except Exception as e:
            if result.cancelled:
                self._logger.info("Consent notice pass cancelled before it started")
                return result
            self._logger.error(
                "Unable to fetch users with outdated consent policy: %s", e
            )
            raise StorageError("Unable to fetch users with outdated consent") from e

        if outdated_users:
            self._logger.info(
                "Sending server notice to %d users who have not yet accepted "
                "the policy",
                len(outdated_users),
            )

        async def _notify(user_id: str) -> None:
            if self._stopping:
                result.cancelled = True
                return

            try:
                sent = await self._notify_user(user_id)
            except Exception as e:
                if not isinstance(e, DispatchError):
                    e = DispatchError(user_id, "unexpected error", e)
                self._logger.error(
                    "Failed to send consent notice to %s: %s",
                    e.user_id,
                    e.msg,
                    exc_info=e.cause,
                )
                result.failures.append(e)
                return

            if sent:
                result.notified += 1
            else:
                result.skipped += 1

        work = defer.ensureDeferred(
            concurrently_execute(_notify, outdated_users, self._concurrency)
        )
        try:
            await observe_cancellation(work, _on_cancel)
        except defer.CancelledError:
            # the in-flight users did not finish straight away on cancellation
            await work

        if result.notified:
            self._logger.info("Sent consent notices to %d users", result.notified)
        if result.cancelled:
            self._logger.info("Consent notice pass stopped early: %r", result)

        return result

    async def _notify_user(self, user: str) -> bool:
        """Send the consent notice to a single user and record it.

        Returns:
            True if the user was notified, False if they were skipped.

        Raises:
            DispatchError on any failure
        """
        try:
            user_id = UserID.from_string(user)
        except ValidationError as e:
            raise DispatchError(user, "invalid user ID", e)

        if user_id.to_string() == self._server_notices_mxid:
            return False

        try:
            consent_uri = build_consent_uri(
                self._public_baseurl,
                user_id.to_string(),
                self._current_version,
                self._form_secret,
            )
        except Exception as e:
            raise DispatchError(user, "unable to construct consent URI", e)

        try:
            body = self._templater.render(
                self._template_name,
                {
                    "consent_uri": consent_uri,
                    "user": user_id.to_string(),
                    "version": self._current_version,
                },
            ).decode("utf-8")
        except Exception as e:
            raise DispatchError(user, "unable to render server notice", e)

        content = {"msgtype": self._msgtype, "body": body}

        try:
            await with_timeout(
                self._sender.send_notice(user_id.to_string(), content),
                self._timeout,
                self._reactor,
            )
        except Exception as e:
            raise DispatchError(user, "failed to send server notice", e)

        try:
            await with_timeout(
                self._store.update_accepted_version(
                    user_id.to_string(), self._current_version, notice_triggered=True
                ),
                self._timeout,
                self._reactor,
            )
        except Exception as e:
            raise DispatchError(user, "failed to update policy version", e)

        return True
