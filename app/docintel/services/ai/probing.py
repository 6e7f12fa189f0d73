"""
Deployment/API version probing for AI Foundry.

The endpoint's deployment name and API version are often unknown, so
candidate pairs are tried one at a time until one answers. Authentication
failures stop the search immediately; anything else moves on to the next
pair.
"""

import itertools
import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from openai import APIStatusError

from .exceptions import AuthenticationFailure, ProbeExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DEPLOYMENTS: tuple[str, ...] = (
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4",
    "gpt-4-turbo",
    "gpt-35-turbo",
    "gpt-35-turbo-16k",
    "text-davinci-003",
)

DEFAULT_API_VERSIONS: tuple[str, ...] = (
    "2024-08-01-preview",
    "2024-02-15-preview",
    "2023-12-01-preview",
    "2023-05-15",
)

FATAL_STATUS_CODES = frozenset({401, 403})


class ProbeOutcome(str, Enum):
    """Result of a single probe."""

    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass(frozen=True)
class ProbeTarget:
    """A deployment name paired with an API version."""

    deployment: str
    api_version: str


@dataclass(frozen=True)
class ProbeAttempt:
    """Record of one probe and how it ended."""

    target: ProbeTarget
    outcome: ProbeOutcome
    error: str | None = None


@dataclass
class ProbeResult(Generic[T]):
    """The value returned by the first successful probe."""

    value: T
    target: ProbeTarget
    attempts: list[ProbeAttempt] = field(default_factory=list)


def candidate_targets(
    deployment: str | None = None,
    api_version: str | None = None,
) -> Iterator[ProbeTarget]:
    """
    Yield deployment/API version pairs in the order they should be tried.

    A configured deployment or version replaces the corresponding default
    list, so configuring both yields exactly one pair.

    Args:
        deployment: Configured deployment name, if any.
        api_version: Configured API version, if any.

    Yields:
        ProbeTarget pairs, deployment-major.
    """
    deployments = (deployment,) if deployment else DEFAULT_DEPLOYMENTS
    versions = (api_version,) if api_version else DEFAULT_API_VERSIONS
    for name, version in itertools.product(deployments, versions):
        yield ProbeTarget(deployment=name, api_version=version)


def describe_error(exc: BaseException) -> str:
    """Short description of a probe failure, e.g. "404 Not Found"."""
    if isinstance(exc, APIStatusError):
        return f"{exc.status_code} {exc.response.reason_phrase}".strip()
    return str(exc) or exc.__class__.__name__


def classify_probe_error(exc: BaseException) -> ProbeOutcome:
    """Decide whether a failed probe should stop the search."""
    if isinstance(exc, APIStatusError) and exc.status_code in FATAL_STATUS_CODES:
        return ProbeOutcome.FATAL
    return ProbeOutcome.RETRYABLE


def run_probes(
    targets: Iterable[ProbeTarget],
    call: Callable[[ProbeTarget], T],
    classify: Callable[[BaseException], ProbeOutcome] = classify_probe_error,
) -> ProbeResult[T]:
    """
    Call each target in order until one succeeds.

    Probes run strictly one after another so a fatal failure is never
    hidden behind a later success. Any failure other than a fatal one,
    including an unexpected exception from the call, moves on to the next
    target.

    Args:
        targets: Ordered candidate pairs.
        call: Performs one probe; raises on failure.
        classify: Maps a probe failure to RETRYABLE or FATAL.

    Returns:
        ProbeResult with the first successful value.

    Raises:
        AuthenticationFailure: On a fatal (401/403) failure.
        ProbeExhausted: When every target failed.
    """
    attempts: list[ProbeAttempt] = []
    last_error: str | None = None

    for target in targets:
        logger.info(
            "Attempt %d: %s + %s",
            len(attempts) + 1,
            target.deployment,
            target.api_version,
        )
        try:
            value = call(target)
        except Exception as e:
            last_error = describe_error(e)
            outcome = classify(e)
            attempts.append(ProbeAttempt(target, outcome, last_error))
            logger.warning(
                "Failed with deployment: %s, API version: %s (%s)",
                target.deployment,
                target.api_version,
                last_error,
            )
            if outcome is ProbeOutcome.FATAL:
                status_code = getattr(e, "status_code", 0)
                reason = e.response.reason_phrase if isinstance(e, APIStatusError) else ""
                raise AuthenticationFailure(status_code, reason) from e
            continue

        attempts.append(ProbeAttempt(target, ProbeOutcome.SUCCESS))
        logger.info(
            "Success with deployment: %s, API version: %s",
            target.deployment,
            target.api_version,
        )
        return ProbeResult(value=value, target=target, attempts=attempts)

    raise ProbeExhausted(len(attempts), last_error)
