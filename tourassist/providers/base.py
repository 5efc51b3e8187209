"""
Provider chain primitives shared by the translation, assistant and places
orchestrators.

A provider is one class per external service. `attempt(request)` either returns
the provider's answer or raises `ProviderFailure` carrying a `FailureKind`; the
chain never sees raw httpx errors. `ProviderChain` walks an ordered list of
providers, skipping the ones that are unconfigured, cooling down, or whose
precondition on the previous failure is not met, and stops at the first
success. Every step is recorded as a `ProviderAttempt`.
"""

from enum import Enum
from typing import Any, FrozenSet, Generic, List, Optional, TypeVar

import httpx
import structlog
from pydantic import BaseModel

from tourassist.services.cooldown import CooldownTracker

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class FailureKind(str, Enum):
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    MALFORMED = "malformed"
    NETWORK_ERROR = "network_error"


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    MALFORMED = "malformed"
    NETWORK_ERROR = "network_error"
    SKIPPED = "skipped"


class ProviderFailure(Exception):
    def __init__(self, kind: FailureKind, message: str = "", status_code: Optional[int] = None):
        super().__init__(message or kind.value)
        self.kind = kind
        self.status_code = status_code


class ProviderAttempt(BaseModel):
    provider: str
    position: int
    outcome: AttemptOutcome
    status_code: Optional[int] = None
    reason: Optional[str] = None


def classify_status(status_code: int) -> FailureKind:
    if status_code == 429:
        return FailureKind.RATE_LIMITED
    if status_code >= 500:
        return FailureKind.SERVER_ERROR
    return FailureKind.CLIENT_ERROR


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    timeout: float,
    **kwargs: Any,
) -> Any:
    """
    Performs one HTTP call and returns the decoded JSON body.

    Every transport or protocol problem is converted into a ProviderFailure so
    callers only ever handle one exception type:
      - httpx timeouts            -> TIMEOUT
      - 429                       -> RATE_LIMITED
      - 5xx                       -> SERVER_ERROR
      - other 4xx                 -> CLIENT_ERROR
      - connection/DNS failures   -> NETWORK_ERROR
      - 2xx with a non-JSON body  -> MALFORMED
    """
    try:
        response = await client.request(method, url, timeout=timeout, **kwargs)
        response.raise_for_status()
    except httpx.TimeoutException as e:
        raise ProviderFailure(FailureKind.TIMEOUT, str(e) or "timed out") from e
    except httpx.HTTPStatusError as e:
        code = e.response.status_code
        raise ProviderFailure(classify_status(code), f"HTTP {code}", status_code=code) from e
    except httpx.HTTPError as e:
        raise ProviderFailure(FailureKind.NETWORK_ERROR, str(e) or type(e).__name__) from e

    try:
        return response.json()
    except ValueError as e:
        raise ProviderFailure(FailureKind.MALFORMED, "response body is not JSON",
                              status_code=response.status_code) from e


def dig(data: Any, *path: Any) -> Any:
    """Walks nested dicts/lists, returning None as soon as a step is missing."""
    current = data
    for step in path:
        try:
            current = current[step]
        except (KeyError, IndexError, TypeError):
            return None
    return current


def require_text(value: Any, what: str) -> str:
    """Accepts only a non-empty string, trimmed. Anything else is MALFORMED."""
    if not isinstance(value, str) or not value.strip():
        raise ProviderFailure(FailureKind.MALFORMED, f"missing {what}")
    return value.strip()


class BaseProvider(Generic[T]):
    """
    One external service able to fulfil a capability.

    Subclasses set `name` and implement `attempt`. `cooldown_seconds` is how long
    the provider is skipped after it answers 429 (0 disables the cooldown).
    `attempt_after`, when set, limits the provider to requests whose previous
    attempt failed with one of those kinds.
    """

    name: str = "provider"
    attempt_after: Optional[FrozenSet[FailureKind]] = None

    def __init__(self, client: httpx.AsyncClient, timeout: float = 15.0, cooldown_seconds: float = 1.0):
        self.client = client
        self.timeout = timeout
        self.cooldown_seconds = cooldown_seconds

    def is_configured(self) -> bool:
        return True

    async def attempt(self, request: Any) -> T:
        raise NotImplementedError


class ChainOutcome(BaseModel):
    value: Any = None
    provider: Optional[str] = None
    attempts: List[ProviderAttempt] = []

    @property
    def succeeded(self) -> bool:
        return self.provider is not None

    def saw(self, outcome: AttemptOutcome) -> bool:
        return any(a.outcome == outcome for a in self.attempts)


class ProviderChain(Generic[T]):
    """Runs providers strictly in order until one succeeds."""

    def __init__(self, capability: str, providers: List[BaseProvider[T]], cooldowns: CooldownTracker):
        self.capability = capability
        self.providers = list(providers)
        self.cooldowns = cooldowns

    async def run(self, request: Any) -> ChainOutcome:
        attempts: List[ProviderAttempt] = []
        # Failure of the immediately preceding link, used by `attempt_after`
        previous_failure: Optional[FailureKind] = None

        for position, provider in enumerate(self.providers, start=1):
            skip_reason = self._skip_reason(provider, previous_failure)
            if skip_reason:
                attempts.append(ProviderAttempt(
                    provider=provider.name, position=position,
                    outcome=AttemptOutcome.SKIPPED, reason=skip_reason,
                ))
                logger.debug("provider_skipped", capability=self.capability,
                             provider=provider.name, reason=skip_reason)
                # A provider skipped for cooling down is still known to be overloaded
                previous_failure = FailureKind.RATE_LIMITED if skip_reason == "cooling_down" else None
                continue

            try:
                value = await provider.attempt(request)
            except ProviderFailure as e:
                previous_failure = e.kind
                attempts.append(ProviderAttempt(
                    provider=provider.name, position=position,
                    outcome=AttemptOutcome(e.kind.value),
                    status_code=e.status_code, reason=str(e),
                ))
                logger.warning("provider_attempt_failed", capability=self.capability,
                               provider=provider.name, position=position,
                               kind=e.kind.value, status_code=e.status_code, error=str(e))
                if e.kind == FailureKind.RATE_LIMITED and provider.cooldown_seconds > 0:
                    self.cooldowns.trigger(provider.name, provider.cooldown_seconds)
                continue

            attempts.append(ProviderAttempt(
                provider=provider.name, position=position, outcome=AttemptOutcome.SUCCESS,
            ))
            logger.info("provider_attempt_succeeded", capability=self.capability,
                        provider=provider.name, position=position)
            return ChainOutcome(value=value, provider=provider.name, attempts=attempts)

        logger.warning("provider_chain_exhausted", capability=self.capability,
                       outcomes=[a.outcome.value for a in attempts])
        return ChainOutcome(attempts=attempts)

    def _skip_reason(self, provider: BaseProvider[T], previous_failure: Optional[FailureKind]) -> Optional[str]:
        if not provider.is_configured():
            return "not_configured"
        if provider.attempt_after is not None and previous_failure not in provider.attempt_after:
            return "precondition_not_met"
        if self.cooldowns.is_cooling_down(provider.name):
            return "cooling_down"
        return None
