"""Streaming chat proxy for Anthropic-style and OpenAI-compatible providers."""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import aclosing
from typing import AsyncIterator

import httpx

from termrelay.server.services.event_hub import EventHub, RelayEvent
from termrelay.util.errors import (
    MissingCredential,
    ProviderHTTPError,
    ProviderRequestError,
    StreamReadFailure,
)
from termrelay.util.provider_config import ConfigCell
from termrelay.util.providers import Message, ProviderFamily, build_request
from termrelay.util.sse import SseDeltaParser

logger = logging.getLogger(__name__)


def default_timeout() -> httpx.Timeout:
    """Connect/write/pool limits from TERMRELAY_CHAT_TIMEOUT; reads never time out."""
    seconds = float(os.environ.get("TERMRELAY_CHAT_TIMEOUT", "30"))
    return httpx.Timeout(seconds, read=None)


class ChatRelay:
    """Issues chat requests and streams their deltas to the event hub.

    Each request token gets its own background task. Tokens are trusted
    caller input: a token is expected to identify one in-flight stream.
    """

    def __init__(
        self,
        config: ConfigCell,
        hub: EventHub,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: httpx.Timeout | None = None,
    ):
        self._config = config
        self._hub = hub
        self._transport = transport
        self._timeout = timeout or default_timeout()
        self._tasks: dict[str, asyncio.Task] = {}

    def active_tokens(self) -> list[str]:
        return list(self._tasks)

    async def chat(self, messages: list[Message], request_token: str) -> None:
        """Start streaming a reply for ``messages``.

        Returns once the provider has accepted the request and streaming has
        begun; deltas and the final end event arrive through the hub.

        Raises:
            MissingCredential: no API key configured (nothing is sent).
            ProviderRequestError: the provider could not be reached.
            ProviderHTTPError: the provider returned a non-success status.
        """
        # Later config changes must not affect this request
        config = self._config.get()
        if not config.api_key:
            raise MissingCredential()

        request = build_request(config, messages)
        logger.info("Chat %s -> %s (%s)", request_token, request.url, config.provider.value)

        client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        try:
            http_request = client.build_request(
                "POST", request.url, headers=request.headers, json=request.body
            )
            response = await client.send(http_request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            raise ProviderRequestError(f"Request to {request.url} failed: {e}") from e

        if not response.is_success:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            except httpx.HTTPError:
                body = ""
            finally:
                await response.aclose()
                await client.aclose()
            logger.warning("Chat %s rejected with HTTP %s", request_token, response.status_code)
            raise ProviderHTTPError(response.status_code, body)

        task = asyncio.create_task(
            self._pump(client, response, config.provider, request_token),
            name=f"chat-{request_token}",
        )
        self._tasks[request_token] = task
        task.add_done_callback(lambda t: self._forget(request_token, t))

    def cancel(self, request_token: str) -> bool:
        """Stop consuming a stream. Its end event is still emitted once."""
        task = self._tasks.get(request_token)
        if task is None or task.done():
            return False
        # Deferred through the loop so the pump has entered its try block;
        # a task cancelled before its first step would never emit chat_end
        task.get_loop().call_soon(task.cancel)
        return True

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        for token in list(self._tasks):
            self.cancel(token)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _forget(self, request_token: str, task: asyncio.Task) -> None:
        if self._tasks.get(request_token) is task:
            del self._tasks[request_token]

    async def _pump(
        self,
        client: httpx.AsyncClient,
        response: httpx.Response,
        family: ProviderFamily,
        request_token: str,
    ) -> None:
        parser = SseDeltaParser(family)
        deltas = 0
        try:
            async with aclosing(_read_body(response)) as chunks:
                async for chunk in chunks:
                    for delta in parser.feed(chunk):
                        deltas += 1
                        self._emit_delta(request_token, delta)
                    if parser.done:
                        break
                else:
                    for delta in parser.finish():
                        deltas += 1
                        self._emit_delta(request_token, delta)
        except StreamReadFailure as e:
            logger.warning("Chat %s stream ended early: %s", request_token, e)
        except asyncio.CancelledError:
            logger.info("Chat %s cancelled", request_token)
            raise
        except Exception:
            # Nothing awaits this task, so report here instead of raising
            logger.exception("Chat %s stream failed", request_token)
        finally:
            self._hub.publish(RelayEvent(type="chat_end", key=request_token))
            try:
                try:
                    await response.aclose()
                finally:
                    await client.aclose()
            except Exception as e:
                logger.debug("Chat %s close failed: %s", request_token, e)
            logger.info(
                "Chat %s finished: %d deltas, %d skipped frames",
                request_token,
                deltas,
                parser.skipped,
            )

    def _emit_delta(self, request_token: str, text: str) -> None:
        self._hub.publish(RelayEvent(type="chat_delta", key=request_token, text=text))


async def _read_body(response: httpx.Response) -> AsyncIterator[bytes]:
    try:
        async for chunk in response.aiter_bytes():
            yield chunk
    except httpx.HTTPError as e:
        raise StreamReadFailure(str(e)) from e
