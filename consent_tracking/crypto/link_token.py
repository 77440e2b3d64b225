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

"""Signed consent links.

A consent link identifies a user without a session: it carries the user ID,
the policy version and an HMAC-SHA256 of the user ID keyed with the server's
form secret. Only the user ID is signed; the version is untrusted input.
"""

import binascii
import hashlib
import hmac
from typing import Union
from urllib.parse import urlparse

from consent_tracking.api.errors import AuthError, Codes, ValidationError

CONSENT_PATH = "/_matrix/client/consent"


def _as_bytes(secret: Union[str, bytes]) -> bytes:
    if isinstance(secret, str):
        return secret.encode("utf-8")
    return secret


def _mac(user_id: str, secret: Union[str, bytes]) -> bytes:
    return hmac.new(
        key=_as_bytes(secret), msg=user_id.encode("utf-8"), digestmod=hashlib.sha256
    ).digest()


def sign(user_id: str, secret: Union[str, bytes]) -> str:
    """Compute the hex signature of a user ID."""
    return _mac(user_id, secret).hex()


def verify(user_id: str, signature: str, secret: Union[str, bytes]) -> bool:
    """Check a hex signature against a user ID.

    Args:
        user_id: the user ID exactly as it appeared in the link
        signature: hex-encoded signature from the link
        secret: the form secret

    Returns:
        True if the signature matches, False otherwise.

    Raises:
        AuthError if the signature is not valid hex
    """
    try:
        decoded = binascii.unhexlify(signature)
    except (binascii.Error, ValueError, TypeError) as e:
        raise AuthError(
            "invalid HMAC provided: %s" % (e,), errcode=Codes.MALFORMED_SIGNATURE
        )
    return hmac.compare_digest(decoded, _mac(user_id, secret))


def build_consent_uri(
    base_url: str, user_id: str, version: str, secret: Union[str, bytes]
) -> str:
    """Build the link a user follows to review and accept the policy.

    Returns:
        <base_url>/_matrix/client/consent?u=<user_id>&h=<signature>&v=<version>

    Raises:
        ValidationError if base_url is not an absolute http(s) URL
    """
    parsed = urlparse(base_url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Invalid base URL %r" % (base_url,))
    if base_url.endswith("/"):
        base_url = base_url[:-1]

    return "%s%s?u=%s&h=%s&v=%s" % (
        base_url,
        CONSENT_PATH,
        user_id,
        sign(user_id, secret),
        version,
    )
