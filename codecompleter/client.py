"""Remote completion client - asks the Gemini generateContent endpoint for completions.

Builds a prompt around the completion context, POSTs it with the API key as a
query parameter, and hands the body to the response parser. Transport and
status problems are mapped onto the ``FetchError`` family so the caller can
recover from all of them in one place.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

import httpx

from .config import Config
from .response_parser import Suggestion, parse_response

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """\
You are a code completion assistant. Given the following code context, \
provide {num_suggestions} relevant code completions.
The completions should be syntactically correct and contextually appropriate.

Context:
{context}

Rules:
1. Provide exactly {num_suggestions} completions
2. Each completion should be on a separate line
3. Focus on the most likely next code that would be written
4. Consider the programming language and context
5. Keep completions concise and practical
6. Do not include explanations, only the code suggestions

Format your response as:
{format_lines}\
"""


class FetchError(Exception):
    """Base class for failures while talking to the remote endpoint."""


class FetchTimeout(FetchError):
    """Connecting to or reading from the endpoint took too long."""


class RemoteStatusError(FetchError):
    """The endpoint answered with a non-success status code."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Remote returned status {status_code}: {body[:200]}")


class TransportError(FetchError):
    """Any other network or serialization fault."""


def build_prompt(context: str, num_suggestions: int = 3) -> str:
    format_lines = "\n".join(
        f"COMPLETION{i}" for i in range(1, num_suggestions + 1)
    )
    return PROMPT_TEMPLATE.format(
        context=context,
        num_suggestions=num_suggestions,
        format_lines=format_lines,
    )


class RemoteCompletionClient:
    def __init__(self, config: Config, http_client: httpx.Client | None = None):
        self.config = config
        self._http_client = http_client
        self._owns_client = http_client is None
        self._client_lock = threading.Lock()
        self.timeout = httpx.Timeout(
            config.request_timeout, connect=config.connect_timeout
        )

    def _get_http_client(self) -> httpx.Client:
        with self._client_lock:
            if self._http_client is None:
                self._http_client = httpx.Client(timeout=self.timeout)
            return self._http_client

    def build_request(self, prompt: str) -> dict[str, Any]:
        """Build the JSON request body, with generationConfig only when set."""
        body: dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        generation_config = {
            key: value
            for key, value in (
                ("maxOutputTokens", self.config.max_output_tokens),
                ("temperature", self.config.temperature),
                ("topP", self.config.top_p),
                ("topK", self.config.top_k),
            )
            if value is not None
        }
        if generation_config:
            body["generationConfig"] = generation_config
        return body

    def fetch(self, context: str) -> list[Suggestion]:
        """Request completions for ``context``.

        httpx timeouts only bound each connect or read, so a body trickling in
        slowly is also cut off once ``request_timeout`` has passed in total.

        Returns:
            Up to ``num_suggestions`` parsed suggestions.

        Raises:
            FetchTimeout: connect or total request timeout exceeded.
            RemoteStatusError: non-2xx response.
            TransportError: any other network or encoding failure.
            ParseError: the body could not be parsed into suggestions.
        """
        prompt = build_prompt(context, self.config.num_suggestions)
        body = self.build_request(prompt)
        deadline = time.monotonic() + self.config.request_timeout

        try:
            with self._get_http_client().stream(
                "POST",
                self.config.api_url,
                params={"key": self.config.api_key},
                json=body,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            ) as response:
                chunks = []
                for chunk in response.iter_bytes():
                    chunks.append(chunk)
                    if time.monotonic() > deadline:
                        raise FetchTimeout(
                            f"Request exceeded {self.config.request_timeout}s"
                        )
        except httpx.TimeoutException as e:
            raise FetchTimeout(f"Request timed out: {e}") from e
        except (httpx.HTTPError, httpx.InvalidURL, TypeError, ValueError) as e:
            raise TransportError(f"Request failed: {e}") from e

        content = b"".join(chunks)
        if not response.is_success:
            text = content.decode(response.charset_encoding or "utf-8", errors="replace")
            raise RemoteStatusError(response.status_code, text)

        logger.debug(f"Remote responded with {len(content)} bytes")
        return parse_response(content, limit=self.config.num_suggestions)

    def close(self) -> None:
        with self._client_lock:
            if self._http_client is not None and self._owns_client:
                self._http_client.close()
                self._http_client = None

    def __enter__(self) -> RemoteCompletionClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
