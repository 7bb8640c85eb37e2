"""Completion orchestrator - cache lookup, fallback placeholder, background fetch.

A request first checks the cache. A hit is returned straight away. On a miss
the fallback suggestions are returned immediately as a placeholder and the
remote fetch is submitted to a worker pool; its result (or the fallback again,
if anything went wrong) is delivered later through the returned future and the
caller's ``on_update`` callback. Concurrent requests for the same fingerprint
share one in-flight fetch.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable

from .cache import SuggestionCache
from .client import FetchError, RemoteCompletionClient
from .config import Config
from .context import CompletionContext, fingerprint
from .fallback import FallbackGenerator
from .response_parser import (
    EmptyResultError,
    ParseError,
    Suggestion,
    to_suggestions,
)

logger = logging.getLogger(__name__)

SOURCE_CACHE = "cache"
SOURCE_FALLBACK = "fallback"

UpdateCallback = Callable[[list[Suggestion]], None]


@dataclass
class CompletionResult:
    """What a caller gets back synchronously from ``request``.

    ``future`` is None on a cache hit. Otherwise it resolves to the final
    suggestions: the remote ones on success, the fallback on failure.
    """

    suggestions: list[Suggestion]
    source: str
    fingerprint: str
    future: Future | None = None

    @property
    def texts(self) -> list[str]:
        return [s.text for s in self.suggestions]


@dataclass
class _Flight:
    """One running fetch and the callers waiting on it."""

    placeholder: list[Suggestion]
    callbacks: list[UpdateCallback] = field(default_factory=list)
    future: Future | None = None


class CompletionOrchestrator:
    def __init__(
        self,
        config: Config | None = None,
        cache: SuggestionCache | None = None,
        client: RemoteCompletionClient | None = None,
        fallback: FallbackGenerator | None = None,
        executor: ThreadPoolExecutor | None = None,
    ):
        self.config = config or Config()
        if cache is None:
            cache = SuggestionCache(
                max_entries=self.config.cache_max_entries,
                ttl_seconds=self.config.cache_ttl_seconds,
                max_suggestions=self.config.num_suggestions,
            )
        self.cache = cache
        self._owns_client = client is None
        self.client = client if client is not None else RemoteCompletionClient(self.config)
        self.fallback = fallback if fallback is not None else FallbackGenerator()
        if executor is None:
            executor = ThreadPoolExecutor(
                max_workers=self.config.max_workers,
                thread_name_prefix="completion-fetch",
            )
        self._executor = executor
        # fingerprint -> the single fetch currently running for it
        self._inflight: dict[str, _Flight] = {}
        # Reentrant: a done-callback may run on the submitting thread.
        self._inflight_lock = threading.RLock()

    def request(
        self,
        context: CompletionContext | str,
        on_update: UpdateCallback | None = None,
    ) -> CompletionResult:
        """Return suggestions for ``context`` without waiting on the network.

        Args:
            context: The completion context, or its already-rendered text.
            on_update: Called from a worker thread with the final suggestions
                once the background fetch has finished, before the returned
                future resolves. Not called on a cache hit.
        """
        text = context.text if isinstance(context, CompletionContext) else context
        key = fingerprint(text)

        cached = self.cache.lookup(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return CompletionResult(
                suggestions=list(cached), source=SOURCE_CACHE, fingerprint=key
            )

        placeholder = to_suggestions(self.fallback.generate(text))
        future = self._join_or_start(key, text, placeholder, on_update)
        return CompletionResult(
            suggestions=placeholder,
            source=SOURCE_FALLBACK,
            fingerprint=key,
            future=future,
        )

    def _join_or_start(
        self,
        key: str,
        text: str,
        placeholder: list[Suggestion],
        on_update: UpdateCallback | None,
    ) -> Future:
        with self._inflight_lock:
            flight = self._inflight.get(key)
            if flight is not None and not flight.future.done():
                logger.debug(f"Joining in-flight fetch for {key}")
            else:
                flight = _Flight(placeholder=placeholder)
                try:
                    flight.future = self._executor.submit(self._run, key, text, flight)
                except RuntimeError as e:
                    logger.warning(f"Cannot start fetch for {key}: {e}")
                    return self._resolved(placeholder, on_update)
                self._inflight[key] = flight
                flight.future.add_done_callback(
                    lambda f: self._abandon(key, flight, f)
                )
            if on_update is not None:
                flight.callbacks.append(on_update)
            return flight.future

    def _resolved(
        self, placeholder: list[Suggestion], on_update: UpdateCallback | None
    ) -> Future:
        """A future already holding the fallback, for when no fetch can run."""
        future: Future = Future()
        if on_update is not None:
            self._notify([on_update], placeholder)
        future.set_result(list(placeholder))
        return future

    def _run(self, key: str, text: str, flight: _Flight) -> list[Suggestion]:
        suggestions = list(flight.placeholder)
        try:
            suggestions = self._fetch(key, text, flight.placeholder)
        finally:
            # Key released and callers notified before the future resolves.
            callbacks = self._release(key, flight)
            self._notify(callbacks, suggestions)
        return suggestions

    def _release(self, key: str, flight: _Flight) -> list[UpdateCallback]:
        with self._inflight_lock:
            if self._inflight.get(key) is flight:
                del self._inflight[key]
            return list(flight.callbacks)

    def _abandon(self, key: str, flight: _Flight, future: Future) -> None:
        if not future.cancelled():
            return
        logger.debug(f"Fetch for {key} was cancelled before it started")
        self._notify(self._release(key, flight), flight.placeholder)

    def _fetch(
        self, key: str, text: str, placeholder: list[Suggestion]
    ) -> list[Suggestion]:
        """Run one remote attempt. Never raises; failures yield the fallback."""
        t0 = time.time()
        try:
            suggestions = self.client.fetch(text)
            if not suggestions:
                raise EmptyResultError("Remote returned no suggestions")
        except FetchError as e:
            logger.warning(f"Remote fetch failed for {key}: {e}")
            return list(placeholder)
        except ParseError as e:
            logger.warning(f"Could not parse remote response for {key}: {e}")
            return list(placeholder)
        except Exception:
            logger.exception(f"Unexpected error fetching completions for {key}")
            return list(placeholder)

        try:
            self.cache.store(key, suggestions)
        except Exception:
            logger.exception(f"Could not cache suggestions for {key}")
        elapsed = time.time() - t0
        logger.info(
            f"Remote fetch took {elapsed:.2f}s, got {len(suggestions)} suggestions"
        )
        return suggestions

    @staticmethod
    def _notify(
        callbacks: list[UpdateCallback], suggestions: list[Suggestion]
    ) -> None:
        for callback in callbacks:
            try:
                callback(list(suggestions))
            except Exception:
                logger.exception("Error in completion update callback")

    def in_flight(self) -> int:
        with self._inflight_lock:
            return len(self._inflight)

    def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> CompletionOrchestrator:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
