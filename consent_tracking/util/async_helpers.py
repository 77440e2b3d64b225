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

import itertools
from typing import Any, Awaitable, Callable, Iterable, TypeVar

from twisted.internet import defer
from twisted.internet.interfaces import IReactorTime
from twisted.python.failure import Failure

T = TypeVar("T")


async def concurrently_execute(
    func: Callable[[T], Awaitable[Any]], args: Iterable[T], limit: int
) -> None:
    """Executes the function with each argument concurrently while limiting
    the number of concurrent executions.

    Args:
        func: Function to execute, should return a deferred or coroutine.
        args: List of arguments to pass to func, each invocation of func
            gets a single argument.
        limit: Maximum number of concurrent executions.

    Returns:
        None, when all function invocations have finished. The first failure
        of any invocation is re-raised.
    """
    it = iter(args)

    async def _concurrently_execute_inner(value: T) -> None:
        try:
            while True:
                await func(value)
                value = next(it)
        except StopIteration:
            pass

    # We use `itertools.islice` to handle the case where the number of args is
    # less than the limit, avoiding needlessly spawning unnecessary background
    # tasks.
    deferreds = [
        defer.ensureDeferred(_concurrently_execute_inner(value))
        for value in itertools.islice(it, limit)
    ]
    try:
        await defer.gatherResults(deferreds, consumeErrors=True)
    except defer.FirstError as e:
        e.subFailure.raiseException()


def timeout_deferred(
    deferred: "defer.Deferred[T]", timeout: float, reactor: IReactorTime
) -> "defer.Deferred[T]":
    """Cancels the deferred if it has not fired within `timeout` seconds.

    The returned deferred fails with `defer.TimeoutError` on timeout. A
    timeout of zero or less disables the limit.
    """
    if timeout <= 0:
        return deferred
    return deferred.addTimeout(timeout, reactor)


async def with_timeout(
    awaitable: Awaitable[T], timeout: float, reactor: IReactorTime
) -> T:
    """Awaits a coroutine, giving up after `timeout` seconds."""
    return await timeout_deferred(
        defer.ensureDeferred(awaitable), timeout, reactor
    )


def observe_cancellation(
    deferred: "defer.Deferred[T]", on_cancel: Callable[[], None]
) -> "defer.Deferred[T]":
    """Returns a Deferred which follows `deferred`. Cancelling it calls
    `on_cancel` first, and then cancels `deferred`.

    If `deferred` completes as a result of the cancellation, the returned
    Deferred gets its result rather than a CancelledError.
    """

    def _cancel(_: "defer.Deferred[T]") -> None:
        on_cancel()
        deferred.cancel()

    wrapper = defer.Deferred(_cancel)  # type: defer.Deferred[T]

    def _forward(res):
        if wrapper.called:
            # the wrapper already failed with CancelledError
            return None
        if isinstance(res, Failure):
            wrapper.errback(res)
        else:
            wrapper.callback(res)
        return None

    deferred.addBoth(_forward)
    return wrapper
