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

import html
import logging
import types
from http import HTTPStatus
from inspect import isawaitable
from typing import Optional, Tuple

from twisted.internet import defer
from twisted.python import failure
from twisted.web import resource
from twisted.web.server import NOT_DONE_YET, Request

from consent_tracking.api.errors import Codes, ConsentError

logger = logging.getLogger(__name__)

HTML_ERROR_TEMPLATE = """<!DOCTYPE html>
<html lang=en>
  <head>
    <meta charset="utf-8">
    <title>Error {code}</title>
  </head>
  <body>
     <p>{msg}</p>
  </body>
</html>
"""


class UnrecognizedRequestError(ConsentError):
    """An error indicating we don't understand the request you're trying to make"""

    def __init__(self, msg: str = "Unrecognized request", code: int = 405):
        super().__init__(msg, code, Codes.UNRECOGNIZED)


def return_html_error(f: failure.Failure, request: Request) -> None:
    """Sends an HTML error page corresponding to the given failure.

    ConsentErrors are reported to the client with their code and message;
    anything else is logged and turned into a generic 500.
    """
    if f.check(ConsentError):
        exc = f.value
        code = exc.code
        msg = exc.msg
        if code >= 500:
            logger.error(
                "Error handling request %r: %s",
                request,
                exc,
                exc_info=(f.type, f.value, f.getTracebackObject()),
            )
        else:
            logger.info("%s handling request %r: %s", code, request, msg)
    else:
        code = HTTPStatus.INTERNAL_SERVER_ERROR
        msg = "Internal server error"

        logger.error(
            "Failed handle request %r",
            request,
            exc_info=(f.type, f.value, f.getTracebackObject()),
        )

    body = HTML_ERROR_TEMPLATE.format(code=int(code), msg=html.escape(msg))
    respond_with_html(request, code, body)


class DirectServeHtmlResource(resource.Resource):
    """A resource that will call `self._async_on_<METHOD>` on new requests,
    formatting responses and errors as HTML.

    The handler may return None, in which case it is assumed to have written
    the response itself, or a tuple of (code, html) which is sent to the
    client.
    """

    isLeaf = True

    def render(self, request: Request):
        """This gets called by twisted every time someone sends us a request."""
        defer.ensureDeferred(self._async_render_wrapper(request))
        return NOT_DONE_YET

    async def _async_render_wrapper(self, request: Request):
        try:
            callback_return = await self._async_render(request)

            if callback_return is not None:
                code, response = callback_return
                respond_with_html(request, code, response)
        except Exception:
            # failure.Failure() fishes the original Failure out
            # of our stack, and thus gives us a sensible stack
            # trace.
            f = failure.Failure()
            return_html_error(f, request)

    async def _async_render(self, request: Request) -> Optional[Tuple[int, str]]:
        """Delegates to `_async_render_<METHOD>` methods, or returns a 405 if
        no appropriate method exists.
        """
        method_handler = getattr(
            self, "_async_render_%s" % (request.method.decode("ascii"),), None
        )
        if not method_handler:
            raise UnrecognizedRequestError()

        raw_callback_return = method_handler(request)

        # Is it synchronous? We'll allow this for now.
        if isinstance(raw_callback_return, types.GeneratorType) or isawaitable(
            raw_callback_return
        ):
            callback_return = await raw_callback_return
        else:
            callback_return = raw_callback_return

        return callback_return


def respond_with_html(request: Request, code: int, html: str) -> None:
    """
    Wraps `respond_with_html_bytes` by first encoding HTML from a str to UTF-8 bytes.
    """
    respond_with_html_bytes(request, code, html.encode("utf-8"))


def respond_with_html_bytes(request: Request, code: int, html_bytes: bytes) -> None:
    """
    Sends HTML (encoded as UTF-8 bytes) as the response to the given request.

    Note that this adds clickjacking protection headers and finishes the request.

    Args:
        request: The http request to respond to.
        code: The HTTP response code.
        html_bytes: The HTML bytes to use as the response body.
    """
    if getattr(request, "_disconnected", False):
        logger.warning(
            "Not sending response to request %s, already disconnected.", request
        )
        return None

    request.setResponseCode(int(code))
    request.setHeader(b"Content-Type", b"text/html; charset=utf-8")
    request.setHeader(b"Content-Length", b"%d" % (len(html_bytes),))

    # Ensure this content cannot be embedded.
    set_clickjacking_protection_headers(request)

    request.write(html_bytes)
    finish_request(request)


def set_clickjacking_protection_headers(request: Request):
    """
    Set headers to guard against clickjacking of embedded content.

    This sets the X-Frame-Options and Content-Security-Policy headers which instructs
    browsers to not allow the HTML of the response to be embedded onto another
    page.

    Args:
        request: The http request to add the headers to.
    """
    request.setHeader(b"X-Frame-Options", b"DENY")
    request.setHeader(b"Content-Security-Policy", b"frame-ancestors 'none';")


def finish_request(request: Request):
    """Finish writing the response to the request.

    Twisted throws a RuntimeException if the connection closed before the
    response was written but doesn't provide a convenient or reliable way to
    determine if the connection was closed. So we catch and log the RuntimeException

    You might think that ``request.notifyFinish`` could be used to tell if the
    request was finished. However the deferred it returns won't fire if the
    connection was already closed, meaning we'd have to have called the method
    right at the start of the request. By the time we want to write the response
    it will already be too late.
    """
    try:
        request.finish()
    except RuntimeError as e:
        logger.info("Connection disconnected before response was written: %r", e)

