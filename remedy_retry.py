"""Bounded, cooperative polling around :func:`remedy_resolver.resolve`.

A consumer may start before its catalog store has any data, or after the
store it expected was replaced. ``resolve_with_retry`` turns that wait into a
fixed number of attempts separated by ``asyncio.sleep`` and returns a
:class:`ResolutionFailure` instead of waiting forever.

Cancelling the task that awaits ``resolve_with_retry`` stops further attempts.
The ``CancelledError`` is re-raised so only the cancelled task sees it.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from remedy_api import CatalogStore, LoadError, Remedy
from remedy_resolver import resolve

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_RETRY_DELAY = 0.5

Sleep = Callable[[float], Awaitable[object]]


@dataclass(frozen=True)
class ResolutionFailure:
    last_query: str
    attempts_tried: int
    reason: str = "not_found"

    @property
    def message(self) -> str:
        return f"Could not find remedy for '{self.last_query}'"


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    delay: float = DEFAULT_RETRY_DELAY
    initial_delay: float = 0.0

    def validate(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be a positive integer")
        if self.delay < 0 or self.initial_delay < 0:
            raise ValueError("retry delays cannot be negative")


ResolutionResult = Union[Remedy, ResolutionFailure]


async def resolve_with_retry(
    store: CatalogStore,
    query: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delay: float = DEFAULT_RETRY_DELAY,
    *,
    initial_delay: float = 0.0,
    sleep: Optional[Sleep] = None,
) -> ResolutionResult:
    """Resolve ``query`` against ``store``, reloading and polling as needed."""

    RetryPolicy(max_attempts, delay, initial_delay).validate()
    sleep = sleep or asyncio.sleep

    attempts = 0
    saw_catalog = False
    try:
        if initial_delay:
            await sleep(initial_delay)

        while attempts < max_attempts:
            attempts += 1
            catalog = store.current()
            if catalog is None or len(catalog) == 0:
                logger.debug(
                    "Attempt %d/%d: catalog empty, reloading '%s'",
                    attempts,
                    max_attempts,
                    store.source_name,
                )
                try:
                    catalog = store.load()
                except LoadError as exc:
                    logger.debug("Reload failed on attempt %d: %s", attempts, exc)
                    catalog = None

            if catalog is not None and len(catalog) > 0:
                saw_catalog = True
                remedy = resolve(catalog, query)
                if remedy is not None:
                    logger.info(
                        "Resolved %r to %r after %d attempt(s)", query, remedy.name, attempts
                    )
                    return remedy
                logger.debug("Attempt %d/%d: %r not in catalog", attempts, max_attempts, query)

            if attempts < max_attempts:
                await sleep(delay)
    except asyncio.CancelledError:
        logger.debug("Resolution of %r cancelled after %d attempt(s)", query, attempts)
        raise

    reason = "not_found" if saw_catalog else "catalog_empty"
    logger.warning("Giving up on %r after %d attempt(s) (%s)", query, attempts, reason)
    return ResolutionFailure(last_query=query, attempts_tried=attempts, reason=reason)


async def resolve_with_policy(
    store: CatalogStore,
    query: str,
    policy: RetryPolicy,
    *,
    sleep: Optional[Sleep] = None,
) -> ResolutionResult:
    return await resolve_with_retry(
        store,
        query,
        policy.max_attempts,
        policy.delay,
        initial_delay=policy.initial_delay,
        sleep=sleep,
    )


__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_RETRY_DELAY",
    "ResolutionFailure",
    "ResolutionResult",
    "RetryPolicy",
    "resolve_with_policy",
    "resolve_with_retry",
]
