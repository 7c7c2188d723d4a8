# /*
# Copyright 2026 The Testclusters Authors.
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
# */

"""Bounded polling until a precondition holds."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from kubernetes.client.exceptions import ApiException
from tenacity import RetryError, Retrying, retry_if_exception, stop_after_attempt, wait_fixed, wait_random
from urllib3.exceptions import HTTPError

from testclusters import logger
from testclusters.errors import ReadinessTimeoutError

RETRIABLE_API_STATUSES = frozenset({404, 409, 429})


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-interval retry budget.

    Attributes:
        steps: Maximum number of attempts, including the first one.
        interval: Seconds to sleep between two attempts.
        jitter: Random extra sleep as a fraction of ``interval``.
    """

    steps: int
    interval: float
    jitter: float = 0.0


def is_transient_api_error(err: BaseException) -> bool:
    """Tell whether an error from a Kubernetes API call is worth retrying.

    Connection failures, missing objects, conflicts, throttling and server
    errors are transient while the control plane comes up. Client errors
    such as bad requests or denied access will not heal by waiting.
    """
    if isinstance(err, ApiException):
        return err.status in RETRIABLE_API_STATUSES or (err.status or 0) >= 500
    return isinstance(err, (HTTPError, OSError))


def wait_until(
    predicate: Callable[[], object],
    policy: RetryPolicy,
    is_retriable: Callable[[BaseException], bool] = is_transient_api_error,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Call ``predicate`` until it returns without raising.

    Args:
        predicate: Check that raises while the precondition does not hold.
        policy: Attempt budget and pause between attempts.
        is_retriable: Classifier for errors raised by ``predicate``; errors
            it rejects are re-raised immediately.
        sleep: Sleep function, replaceable in tests.

    Raises:
        ReadinessTimeoutError: If the budget ran out; chained to the last error.
    """
    retrying = Retrying(
        stop=stop_after_attempt(policy.steps),
        wait=wait_fixed(policy.interval) + wait_random(0, policy.interval * policy.jitter),
        retry=retry_if_exception(is_retriable),
        sleep=sleep,
        before_sleep=lambda state: logger.debug(
            "Precondition not met (attempt %d/%d): %s",
            state.attempt_number, policy.steps, state.outcome.exception(),
        ),
    )
    try:
        retrying(predicate)
    except RetryError as err:
        last = err.last_attempt.exception()
        raise ReadinessTimeoutError(
            f"precondition still failing after {policy.steps} attempts: {last}"
        ) from last
