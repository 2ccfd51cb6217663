"""Nostr client factories and the insecure WebSocket transport.

Each [RelayClient][emfguardian.client.RelayClient] owns exactly one
``nostr_sdk.Client`` built here; nothing is shared between instances, so two
clients never see each other's keys, sockets or subscriptions.

Attributes:
    create_client: Client factory with optional SOCKS5 proxy for overlay relays.
    create_insecure_client: Client factory with SSL verification disabled.
    connect_relay: Connect one relay with SSL fallback for clearnet relays.

Note:
    Clearnet relays are first tried with fully verified TLS. Only when that
    fails with an SSL error and ``allow_insecure=True`` does
    [connect_relay()][emfguardian.utils.transport.connect_relay] retry through
    [InsecureWebSocketTransport][emfguardian.utils.transport.InsecureWebSocketTransport].
    Overlay relays (Tor, I2P, Lokinet) always go through
    ``nostr_sdk.ConnectionMode.PROXY`` and never fall back.

Examples:
    ```python
    client = await connect_relay(RelayEndpoint("wss://relay.damus.io"), keys=keys, timeout=10.0)
    await client.send_event(signed.nostr_event)
    await client.shutdown()
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
import ssl
from datetime import timedelta
from datetime import timedelta as Duration  # noqa: N812
from ipaddress import AddressValueError, IPv4Address, IPv6Address
from typing import TYPE_CHECKING, Final
from urllib.parse import urlparse

import aiohttp
from nostr_sdk import (
    Client,
    ClientBuilder,
    ClientOptions,
    Connection,
    ConnectionMode,
    ConnectionTarget,
    CustomWebSocketTransport,
    NostrSigner,
    RelayUrl,
    WebSocketAdapter,
    WebSocketAdapterWrapper,
    WebSocketMessage,
    uniffi_set_event_loop,
)

from emfguardian.models.constants import NetworkType


if TYPE_CHECKING:
    from nostr_sdk import Keys

    from emfguardian.models.relay import RelayEndpoint


DEFAULT_CLOSE_TIMEOUT: Final[float] = 5.0

# nostr-sdk always bounds the handshake; this stands in for "no timeout"
_UNBOUNDED_CONNECT: Final = timedelta(days=1)

_OVERLAY_NETWORKS: Final = frozenset({NetworkType.TOR, NetworkType.I2P, NetworkType.LOKI})


logger = logging.getLogger(__name__)

# Silence nostr-sdk UniFFI callback stack traces (handled by our code)
logging.getLogger("nostr_sdk").setLevel(logging.CRITICAL)


# Multi-word patterns for SSL/TLS certificate errors in nostr-sdk messages.
# Single keywords like "verify" or "handshake" are avoided to prevent false
# positives from unrelated errors (e.g. DNS "cannot verify hostname").
_SSL_ERROR_PATTERNS: tuple[str, ...] = (
    "ssl certificate",
    "certificate verify",
    "certificate has expired",
    "self signed certificate",
    "self-signed certificate",
    "unable to get local issuer",
    "x509",
    "tlsv1 alert",
    "ssl handshake",
    "tls handshake failed",
    "certificate_unknown",
    "certificate_expired",
    "ssl error",
    "tls error",
    "cert verify failed",
)


def is_ssl_error(error_message: str) -> bool:
    """Check if an error message indicates an SSL/TLS certificate error."""
    error_lower = error_message.lower()
    return any(pattern in error_lower for pattern in _SSL_ERROR_PATTERNS)


def create_insecure_ssl_context() -> ssl.SSLContext:
    """Return an SSL context that accepts any certificate.

    Warning:
        Disables hostname checking and chain validation. Only use for relays
        the host explicitly trusts.
    """
    ssl_context = ssl.create_default_context()
    ssl_context.check_hostname = False
    ssl_context.verify_mode = ssl.CERT_NONE
    return ssl_context


_WS_RECV_TIMEOUT = 60.0


class InsecureWebSocketAdapter(WebSocketAdapter):
    """aiohttp-based WebSocket adapter with SSL verification disabled.

    Implements the ``nostr_sdk.WebSocketAdapter`` interface for one socket.
    When the relay closes the socket,
    [recv()][emfguardian.utils.transport.InsecureWebSocketAdapter.recv]
    releases the aiohttp session itself and returns ``None``.
    """

    def __init__(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        session: aiohttp.ClientSession,
        recv_timeout: float = _WS_RECV_TIMEOUT,
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
    ) -> None:
        self._ws = ws
        self._session = session
        self._recv_timeout = recv_timeout
        self._close_timeout = close_timeout

    async def send(self, msg: WebSocketMessage) -> None:
        """Send a WebSocket message (text, binary, ping, or pong)."""
        if msg.is_text():
            await self._ws.send_str(msg.text)
        elif msg.is_binary():
            await self._ws.send_bytes(msg.bytes)
        elif msg.is_ping():
            await self._ws.ping(msg.bytes)
        elif msg.is_pong():
            await self._ws.pong(msg.bytes)

    async def recv(self) -> WebSocketMessage | None:
        """Receive the next WebSocket message.

        Returns:
            The message in nostr-sdk format, or ``None`` once the socket
            closed, errored, or stayed silent past the receive timeout.
        """
        try:
            msg = await asyncio.wait_for(self._ws.receive(), timeout=self._recv_timeout)
        except TimeoutError:
            await self.close_connection()
            return None

        if msg.type == aiohttp.WSMsgType.TEXT:
            return WebSocketMessage.TEXT(msg.data)
        if msg.type == aiohttp.WSMsgType.BINARY:
            return WebSocketMessage.BINARY(msg.data)
        if msg.type == aiohttp.WSMsgType.PING:
            return WebSocketMessage.PING(msg.data)
        if msg.type == aiohttp.WSMsgType.PONG:
            return WebSocketMessage.PONG(msg.data)
        # CLOSE, CLOSING, CLOSED, ERROR -> connection terminated
        logger.debug("insecure_ws_closed type=%s", msg.type)
        await self.close_connection()
        return None

    async def close_connection(self) -> None:
        """Close the WebSocket and session with timeouts. Never raises."""
        # aiohttp raises ClientError, ServerDisconnectedError and similar during teardown
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._ws.close(), timeout=self._close_timeout)
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._session.close(), timeout=self._close_timeout)


class InsecureWebSocketTransport(CustomWebSocketTransport):
    """Custom WebSocket transport with SSL verification disabled.

    Injected into a ``nostr_sdk.Client`` through
    ``ClientBuilder.websocket_transport()`` for private relays with
    self-signed or expired certificates.

    Warning:
        Disables **all** certificate verification, including hostname
        checking. ``uniffi_set_event_loop()`` must be called before the
        client uses this transport.
    """

    def __init__(
        self,
        recv_timeout: float = _WS_RECV_TIMEOUT,
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
    ) -> None:
        self._recv_timeout = recv_timeout
        self._close_timeout = close_timeout

    async def connect(
        self,
        url: str,
        _mode: ConnectionMode,
        timeout: Duration,  # noqa: ASYNC109
    ) -> WebSocketAdapterWrapper:
        """Connect to *url* without SSL certificate verification.

        Raises:
            OSError: On connection failure (network, timeout, DNS, etc.).
            asyncio.CancelledError: If cancelled.
        """
        connector = aiohttp.TCPConnector(ssl=create_insecure_ssl_context())
        client_timeout = aiohttp.ClientTimeout(total=timeout.total_seconds())
        session = aiohttp.ClientSession(connector=connector, timeout=client_timeout)

        try:
            ws = await session.ws_connect(url)
        except aiohttp.ClientError as e:
            await session.close()
            logger.debug("insecure_ws_connect_failed url=%s error=%s", url, str(e))
            raise OSError(f"Connection failed: {e}") from e
        except TimeoutError:
            await session.close()
            logger.debug("insecure_ws_timeout url=%s", url)
            raise OSError(f"Connection timeout: {url}") from None
        except asyncio.CancelledError:
            await session.close()
            raise
        except (ssl.SSLError, OSError) as e:
            await session.close()
            logger.debug("insecure_ws_error url=%s error=%s", url, str(e))
            raise OSError(f"Connection failed: {e}") from e

        adapter = InsecureWebSocketAdapter(
            ws,
            session,
            recv_timeout=self._recv_timeout,
            close_timeout=self._close_timeout,
        )
        return WebSocketAdapterWrapper(adapter)

    def support_ping(self) -> bool:
        """Return True (aiohttp answers pings itself)."""
        return True


async def _resolve_proxy_host(proxy_host: str) -> str:
    # nostr-sdk requires an IP address, not a hostname
    bare_host = proxy_host.strip("[]")
    try:
        IPv4Address(bare_host)
    except (AddressValueError, ValueError):
        try:
            IPv6Address(bare_host)
        except (AddressValueError, ValueError):
            return await asyncio.to_thread(socket.gethostbyname, proxy_host)
    return bare_host


async def create_client(keys: Keys | None = None, proxy_url: str | None = None) -> Client:
    """Create a ``nostr_sdk.Client`` with an optional SOCKS5 proxy.

    Args:
        keys: Signing keys (``None`` = read-only client).
        proxy_url: SOCKS5 proxy URL for overlay relays (e.g. ``socks5://tor:9050``).
            A hostname is resolved to an IP address first.

    Returns:
        A client with no relays yet.
    """
    builder = ClientBuilder()

    if keys is not None:
        builder = builder.signer(NostrSigner.keys(keys))

    if proxy_url is not None:
        parsed = urlparse(proxy_url)
        proxy_host = await _resolve_proxy_host(parsed.hostname or "127.0.0.1")
        proxy_mode = ConnectionMode.PROXY(proxy_host, parsed.port or 9050)
        conn = Connection().mode(proxy_mode).target(ConnectionTarget.ONION)
        builder = builder.opts(ClientOptions().connection(conn))

    return builder.build()


def create_insecure_client(keys: Keys | None = None) -> Client:
    """Create a ``nostr_sdk.Client`` that skips certificate verification.

    Warning:
        The returned client bypasses all TLS certificate checks. It is only
        used after verified TLS has already failed.
    """
    builder = ClientBuilder()

    if keys is not None:
        builder = builder.signer(NostrSigner.keys(keys))

    builder = builder.websocket_transport(InsecureWebSocketTransport())
    return builder.build()


def _as_duration(timeout: float | None) -> timedelta:
    return _UNBOUNDED_CONNECT if timeout is None else timedelta(seconds=timeout)


async def connect_relay(
    endpoint: RelayEndpoint,
    keys: Keys | None = None,
    proxy_url: str | None = None,
    timeout: float | None = None,  # noqa: ASYNC109
    *,
    allow_insecure: bool = False,
) -> Client:
    """Connect a fresh ``nostr_sdk.Client`` to *endpoint*.

    Args:
        endpoint: Relay to connect to.
        keys: Signing keys for the client.
        proxy_url: SOCKS5 proxy URL, required for overlay relays.
        timeout: Handshake timeout in seconds (``None`` = unbounded).
        allow_insecure: Retry without certificate verification when verified
            TLS fails with an SSL error.

    Returns:
        A connected client.

    Raises:
        ValueError: If an overlay relay is requested without ``proxy_url``.
        TimeoutError: If an overlay relay does not connect within *timeout*.
        ssl.SSLCertVerificationError: If TLS fails and ``allow_insecure`` is ``False``.
        OSError: On any other connection failure, including an unreachable proxy.
    """
    relay_url = RelayUrl.parse(endpoint.url)

    if endpoint.network in _OVERLAY_NETWORKS:
        if proxy_url is None:
            raise ValueError(f"proxy_url required for {endpoint.network} relay: {endpoint.url}")

        client = await create_client(keys, proxy_url)
        await client.add_relay(relay_url)
        await client.connect()
        await client.wait_for_connection(_as_duration(timeout))

        relay_obj = await client.relay(relay_url)
        if not relay_obj.is_connected():
            await client.disconnect()
            raise TimeoutError(f"Connection timeout: {endpoint.url} (via {proxy_url})")

        return client

    logger.debug("ssl_connecting relay=%s", endpoint.url)

    client = await create_client(keys)
    await client.add_relay(relay_url)
    output = await client.try_connect(_as_duration(timeout))

    if relay_url in output.success:
        logger.debug("ssl_connected relay=%s", endpoint.url)
        return client

    await client.disconnect()
    error_message = output.failed.get(relay_url, "Unknown error")
    logger.debug("connect_failed relay=%s error=%s", endpoint.url, error_message)

    if not is_ssl_error(error_message):
        if "timeout" in error_message.lower() and timeout is not None:
            raise TimeoutError(f"Connection timeout: {endpoint.url} ({error_message})")
        raise OSError(f"Connection failed: {endpoint.url} ({error_message})")

    if not allow_insecure:
        raise ssl.SSLCertVerificationError(
            f"SSL certificate verification failed for {endpoint.url}: {error_message}"
        )

    logger.debug("ssl_fallback_insecure relay=%s error=%s", endpoint.url, error_message)

    # Required for custom WebSocket transport UniFFI callbacks
    uniffi_set_event_loop(asyncio.get_running_loop())

    client = create_insecure_client(keys)
    await client.add_relay(relay_url)
    output = await client.try_connect(_as_duration(timeout))

    if relay_url not in output.success:
        error_message = output.failed.get(relay_url, "Unknown error")
        await client.disconnect()
        raise OSError(f"Connection failed (insecure): {endpoint.url} ({error_message})")

    logger.debug("insecure_connected relay=%s", endpoint.url)
    return client
