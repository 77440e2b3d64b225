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

"""Helpers for reading parameters out of requests."""

from typing import Optional

from twisted.web.server import Request

from consent_tracking.api.errors import Codes, ValidationError


def parse_string(
    request: Request,
    name: str,
    default: Optional[str] = None,
    required: bool = False,
    encoding: str = "utf-8",
) -> Optional[str]:
    """
    Parse a string parameter from the request query string or form body.

    Twisted puts the parameters of an application/x-www-form-urlencoded POST
    body into request.args alongside the query string ones.

    Args:
        request: the twisted HTTP request.
        name: the name of the query parameter.
        default: value to use if the parameter is absent.
        required: whether to raise a 400 ValidationError if the parameter is
            absent.
        encoding: The encoding to decode the string content with.

    Returns:
        A string value or the default.

    Raises:
        ValidationError if the parameter is absent and required, or (with a
            500) if the parameter is not valid for the encoding.
    """
    args = getattr(request, "args", None) or {}
    name_bytes = name.encode("ascii")

    if name_bytes not in args:
        if required:
            message = "Missing string query parameter %r" % (name,)
            raise ValidationError(message, 400, errcode=Codes.MISSING_PARAM)
        return default

    value = args[name_bytes][0]
    try:
        return value.decode(encoding)
    except UnicodeDecodeError:
        raise ValidationError(
            "Query parameter %r must be %s" % (name, encoding),
            errcode=Codes.INVALID_PARAM,
        )
