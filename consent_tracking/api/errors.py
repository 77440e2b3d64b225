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

"""Contains exceptions and error codes."""

from enum import Enum
from typing import Optional


class Codes:
    UNKNOWN = "M_UNKNOWN"
    FORBIDDEN = "M_FORBIDDEN"
    MISSING_PARAM = "M_MISSING_PARAM"
    INVALID_PARAM = "M_INVALID_PARAM"
    INVALID_USERNAME = "M_INVALID_USERNAME"
    UNRECOGNIZED = "M_UNRECOGNIZED"
    MALFORMED_SIGNATURE = "M_MALFORMED_SIGNATURE"
    INVALID_SIGNATURE = "M_INVALID_SIGNATURE"


class ErrorKind(Enum):
    """The broad class of a failure, so that callers can branch on it."""

    VALIDATION = "validation"
    AUTH = "auth"
    STORAGE = "storage"
    RENDER = "render"
    DISPATCH = "dispatch"


class ConsentError(Exception):
    """A base exception type for consent tracking errors which have an HTTP
    status code and an errcode.

    Attributes:
        code: The HTTP error code to use for this error.
        msg: The string message which should be shown to the client.
        errcode: The Matrix error code e.g 'M_FORBIDDEN'.
    """

    kind = ErrorKind.VALIDATION
    default_code = 500

    def __init__(
        self, msg: str, code: Optional[int] = None, errcode: str = Codes.UNKNOWN
    ):
        if code is None:
            code = self.default_code
        super().__init__("%d: %s" % (code, msg))
        self.code = code
        self.msg = msg
        self.errcode = errcode


class ValidationError(ConsentError):
    """A request carried a malformed identity or an incomplete set of
    parameters.
    """

    kind = ErrorKind.VALIDATION


class AuthError(ConsentError):
    """A signature was supplied but did not verify."""

    kind = ErrorKind.AUTH
    default_code = 403

    def __init__(
        self,
        msg: str = "invalid HMAC provided",
        code: Optional[int] = None,
        errcode: str = Codes.FORBIDDEN,
    ):
        super().__init__(msg, code, errcode)


class StorageError(ConsentError):
    """Reading or writing consent state failed."""

    kind = ErrorKind.STORAGE


class RenderError(ConsentError):
    """A template could not be rendered, or a message could not be built."""

    kind = ErrorKind.RENDER


class DispatchError(ConsentError):
    """Sending a consent notice to a single user failed.

    These are never fatal to a dispatch pass; they are logged and collected.

    Attributes:
        user_id: the user the notice was for
        cause: the underlying exception, if any
    """

    kind = ErrorKind.DISPATCH

    def __init__(self, user_id: str, msg: str, cause: Optional[Exception] = None):
        super().__init__(msg)
        self.user_id = user_id
        self.cause = cause

    def __str__(self):
        if self.cause is not None:
            return "%s: %s (%s)" % (self.user_id, self.msg, self.cause)
        return "%s: %s" % (self.user_id, self.msg)
