"""Async Nostr relay client: identity, publishing and subscriptions.

[RelayClient][emfguardian.client.relay_client.RelayClient] is the only
networking surface the host application talks to. It owns one signing
identity, one ``nostr_sdk.Client`` connected to a single relay, and the map
of active subscriptions.

Relay messages arrive through a ``nostr_sdk.HandleNotification`` handler
that only routes them. Each subscription has its own delivery queue and
task, so callbacks run in relay order per subscription and may freely call
``publish``, ``subscribe``, ``unsubscribe`` or ``disconnect``.

State machine::

    UNCONNECTED --connect()--> CONNECTED --disconnect()--> DISCONNECTED

``DISCONNECTED`` is terminal: build a new client to reconnect.

Note:
    There are no built-in timeouts on connect or publish. Bounds come only
    from [RelayTimeoutsConfig][emfguardian.client.configs.RelayTimeoutsConfig];
    otherwise wrap calls in ``asyncio.timeout()``.

Examples:
    ```python
    async with RelayClient("wss://relay.example") as client:
        signed = await client.publish(build_task_completion_event("wifi", 85))
        sub_id = await client.subscribe([build_community_filter()], on_event=print)
        ...
        await client.unsubscribe(sub_id)
    ```

See Also:
    [RelayClientConfig][emfguardian.client.configs.RelayClientConfig]:
        Configuration model for this class.
    [connect_relay()][emfguardian.utils.transport.connect_relay]: Builds and
        connects the ``nostr_sdk.Client`` owned by each instance.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import itertools
import secrets
import ssl
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, NamedTuple

from nostr_sdk import (
    ClientMessage,
    HandleNotification,
    NostrSdkError,
    RelayMessageEnum,
    RelayUrl,
    uniffi_set_event_loop,
)
from pydantic import ValidationError

from emfguardian.core.exceptions import (
    ConfigurationError,
    PublishError,
    RelayConnectionError,
    RelaySSLError,
    RelayTimeoutError,
    SubscriptionError,
)
from emfguardian.core.logger import Logger
from emfguardian.core.yaml import load_yaml
from emfguardian.models.constants import ClientState, NetworkType
from emfguardian.models.event import SignedEvent, UnsignedEvent
from emfguardian.models.filter import Filter
from emfguardian.models.relay import RelayEndpoint
from emfguardian.models.subscription import Subscription, relay_subscription_ids
from emfguardian.utils.keys import generate_keys, public_key_hex, sign_event
from emfguardian.utils.transport import connect_relay

from .configs import RelayClientConfig


if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine
    from types import TracebackType

    from nostr_sdk import (
        Client,
        Event,
        Keys,
        Output,
        Relay,
        RelayMessage,
        SendEventOutput,
    )

    from emfguardian.models.subscription import ClosedCallback, EoseCallback, EventCallback


_OVERLAY_NETWORKS = frozenset({NetworkType.TOR, NetworkType.I2P, NetworkType.LOKI})

# Queue marker that ends a delivery task
_STOP = object()


def machine_readable_prefix(message: str) -> str | None:
    """Return the ``prefix`` of a ``"prefix: text"`` relay message, if present.

    Relays prefix ``OK`` and ``CLOSED`` messages with codes such as
    ``blocked``, ``rate-limited``, ``invalid``, ``pow``, ``duplicate``,
    ``restricted``, ``auth-required`` or ``error``.
    """
    head, sep, _ = message.partition(":")
    if not sep or not head or " " in head:
        return None
    return head


class _Delivery(NamedTuple):
    """One queued callback invocation."""

    callback: Callable[..., Any]
    args: tuple[Any, ...]
    # Run even though the subscription is already gone (on_closed)
    final: bool = False


class _NotificationHandler(HandleNotification):
    """Hands raw relay messages to the owning client without waiting on it."""

    def __init__(self, route: Callable[[RelayMessage], None]) -> None:
        self._route = route

    async def handle_msg(self, relay_url: RelayUrl, msg: RelayMessage) -> None:
        self._route(msg)

    async def handle(self, relay_url: RelayUrl, subscription_id: str, event: Event) -> None:
        # Events are routed from handle_msg, which carries the raw subscription id
        return


class RelayClient:
    """Client for a single Nostr relay.

    Each instance generates its own throwaway key pair unless *keys* is
    passed or the configuration carries an ``identity``. Nothing is shared
    between instances: two clients never see each other's keys, sockets or
    subscriptions.

    Args:
        relay_url: Relay to talk to. Overrides ``config.relay_url`` when given.
        config: Client configuration. Defaults to
            [RelayClientConfig()][emfguardian.client.configs.RelayClientConfig].
        keys: Identity to sign with, injected by the host.

    Raises:
        ConfigurationError: If the relay URL is not a valid ws:// or wss:// URL,
            or points at a tor, i2p or loki relay without a ``proxy_url``.
    """

    def __init__(
        self,
        relay_url: str | None = None,
        *,
        config: RelayClientConfig | None = None,
        keys: Keys | None = None,
    ) -> None:
        config = config or RelayClientConfig()
        url = relay_url if relay_url is not None else config.relay_url
        try:
            self._endpoint = RelayEndpoint(url)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid relay URL {url!r}: {e}") from e
        if config.relay_url != self._endpoint.url:
            config = config.model_copy(update={"relay_url": self._endpoint.url})
        if self._endpoint.network in _OVERLAY_NETWORKS and not config.proxy_url:
            raise ConfigurationError(
                f"{self._endpoint.network.value} relay {self._endpoint} requires proxy_url"
            )
        self._config = config

        if keys is None:
            keys = config.identity.keys if config.identity is not None else generate_keys()
        self._keys = keys
        self._public_key = public_key_hex(keys)

        self._state = ClientState.UNCONNECTED
        self._client: Client | None = None
        self._relay: Relay | None = None
        self._relay_url: RelayUrl | None = None
        self._notifications_task: asyncio.Task[None] | None = None
        self._subscriptions: dict[str, Subscription] = {}
        # relay-side subscription id -> subscription id
        self._routes: dict[str, str] = {}
        self._queues: dict[str, asyncio.Queue[Any]] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._pending: set[asyncio.Future[SendEventOutput]] = set()
        self._subscription_counter = itertools.count(1)
        self._lifecycle_lock = asyncio.Lock()
        self._logger = Logger("relay_client", json_output=config.log_json)

    @classmethod
    def from_yaml(cls, config_path: str) -> RelayClient:
        """Create a client from a YAML configuration file.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ConfigurationError: If the file or its values are invalid.
        """
        return cls.from_dict(load_yaml(config_path))

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> RelayClient:
        """Create a client from a configuration dictionary.

        Args:
            config_dict: Settings matching
                [RelayClientConfig][emfguardian.client.configs.RelayClientConfig]
                field names.

        Raises:
            ConfigurationError: If validation fails.
        """
        try:
            config = RelayClientConfig(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid relay client configuration: {e}") from e
        return cls(config=config)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> RelayClientConfig:
        return self._config

    @property
    def endpoint(self) -> RelayEndpoint:
        return self._endpoint

    @property
    def public_key(self) -> str:
        """Hex public key events are published under."""
        return self._public_key

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def is_connected(self) -> bool:
        """Whether the client is connected and the relay socket is currently open."""
        return self._state is ClientState.CONNECTED and self._relay_is_up()

    @property
    def subscriptions(self) -> tuple[str, ...]:
        """Identifiers of the active subscriptions."""
        return tuple(self._subscriptions)

    def subscription(self, subscription_id: str) -> Subscription | None:
        """Return the active subscription with *subscription_id*, if any."""
        return self._subscriptions.get(subscription_id)

    def _relay_is_up(self) -> bool:
        if self._relay is None:
            return False
        try:
            return bool(self._relay.is_connected())
        except NostrSdkError:
            return False

    # -------------------------------------------------------------------------
    # Connection Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Connect to the relay and start routing its messages.

        Idempotent while connected. Sends no events or subscriptions.

        Raises:
            RelaySSLError: On TLS certificate or handshake failure.
            RelayTimeoutError: If the configured connect timeout elapses.
            RelayConnectionError: If the relay or proxy is unreachable, the
                handshake fails, or the client has already been disconnected.
        """
        async with self._lifecycle_lock:
            if self._state is ClientState.CONNECTED:
                return
            if self._state is ClientState.DISCONNECTED:
                raise RelayConnectionError(
                    f"Client for {self._endpoint} is disconnected; create a new client"
                )

            url = self._endpoint.url
            self._logger.info("connection_starting", relay=url)

            # Required for the async UniFFI notification callbacks
            uniffi_set_event_loop(asyncio.get_running_loop())

            try:
                client = await connect_relay(
                    self._endpoint,
                    keys=self._keys,
                    proxy_url=self._config.proxy_url,
                    timeout=self._config.timeouts.connect,
                    allow_insecure=self._config.allow_insecure,
                )
            except ssl.SSLError as e:
                self._logger.error("connection_failed", relay=url, error=str(e))
                raise RelaySSLError(f"TLS failure connecting to {url}: {e}") from e
            except TimeoutError as e:
                self._logger.error("connection_timeout", relay=url)
                raise RelayTimeoutError(f"Timed out connecting to {url}") from e
            except (OSError, NostrSdkError) as e:
                self._logger.error("connection_failed", relay=url, error=str(e))
                raise RelayConnectionError(f"Failed to connect to {url}: {e}") from e
            except ValueError as e:
                raise ConfigurationError(str(e)) from e

            relay_url = RelayUrl.parse(url)
            try:
                relay = await client.relay(relay_url)
            except NostrSdkError as e:
                # nostr-sdk can raise arbitrary FFI errors during shutdown
                with contextlib.suppress(Exception):
                    await client.shutdown()
                raise RelayConnectionError(f"Failed to connect to {url}: {e}") from e

            self._client = client
            self._relay = relay
            self._relay_url = relay_url
            self._state = ClientState.CONNECTED
            self._notifications_task = asyncio.create_task(
                client.handle_notifications(_NotificationHandler(self._route_message)),
                name=f"relay-notifications:{url}",
            )
            # Let the handler subscribe to notifications before any REQ goes out
            await asyncio.sleep(0)
            self._logger.info("connection_established", relay=url, pubkey=self._public_key)

    async def disconnect(self) -> None:
        """Close every subscription, fail pending publishes and close the socket.

        Safe from any state, from inside a callback, and idempotent. Errors
        during teardown are logged, never raised. The client cannot be
        reconnected afterwards.
        """
        async with self._lifecycle_lock:
            if self._state is ClientState.DISCONNECTED:
                return
            was_connected = self._state is ClientState.CONNECTED
            self._state = ClientState.DISCONNECTED

            client, self._client = self._client, None
            self._relay = None
            subscriptions = list(self._subscriptions.values())
            self._subscriptions.clear()
            self._routes.clear()

            close_timeout = self._config.timeouts.close
            if client is not None:
                for subscription in subscriptions:
                    for relay_id in subscription.relay_ids:
                        try:
                            await asyncio.wait_for(
                                client.unsubscribe(relay_id), timeout=close_timeout
                            )
                        except (TimeoutError, NostrSdkError) as e:
                            self._logger.debug(
                                "close_send_failed", subscription_id=relay_id, error=str(e)
                            )

            self._fail_pending(f"Client disconnected from {self._endpoint}")
            await self._stop_tasks()

            if client is not None:
                # nostr-sdk can raise arbitrary FFI errors during shutdown
                with contextlib.suppress(Exception):
                    await asyncio.wait_for(client.shutdown(), timeout=close_timeout)

            task, self._notifications_task = self._notifications_task, None
            if task is not None:
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

            if was_connected:
                self._logger.info(
                    "disconnected",
                    relay=self._endpoint.url,
                    closed_subscriptions=len(subscriptions),
                )

    async def __aenter__(self) -> RelayClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    def _require_connection(self) -> Client:
        if self._state is not ClientState.CONNECTED or self._client is None:
            raise RelayConnectionError(
                f"Not connected to {self._endpoint} (state={self._state.value})"
            )
        if not self._relay_is_up():
            raise RelayConnectionError(f"Connection to {self._endpoint} was lost")
        return self._client

    def _fail_pending(self, reason: str) -> None:
        pending, self._pending = self._pending, set()
        for waiter in pending:
            if not waiter.done():
                waiter.set_exception(PublishError(reason))

    async def _stop_tasks(self) -> None:
        for queue in self._queues.values():
            queue.put_nowait(_STOP)
        self._queues.clear()

        # A callback that called disconnect() finishes on its own after the stop marker
        current = asyncio.current_task()
        others = [task for task in self._tasks if task is not current]
        for task in others:
            task.cancel()
        if others:
            await asyncio.gather(*others, return_exceptions=True)

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    async def publish(self, event: UnsignedEvent | Mapping[str, Any]) -> SignedEvent:
        """Sign *event* with the client's identity and send it to the relay.

        The caller's event is never mutated; identifier, public key and
        signature are stamped onto a new
        [SignedEvent][emfguardian.models.event.SignedEvent]. The call returns
        once the relay accepts the event with ``OK``, or as soon as the
        ``EVENT`` message is written when ``wait_for_ok`` is disabled.

        Args:
            event: An [UnsignedEvent][emfguardian.models.event.UnsignedEvent]
                or a mapping with ``kind``, ``content``, ``tags`` and
                ``created_at`` keys.

        Returns:
            The signed event as sent.

        Raises:
            RelayConnectionError: If the client is not connected.
            PublishError: If the event is invalid or cannot be signed, the
                send fails, the relay rejects it or never answers, the client
                disconnects first, or the publish timeout elapses.
        """
        client = self._require_connection()

        if not isinstance(event, UnsignedEvent):
            try:
                event = UnsignedEvent.from_dict(event)
            except (TypeError, ValueError) as e:
                raise PublishError(f"Invalid event: {e}") from e
        try:
            signed = sign_event(event, self._keys)
        except ValueError as e:
            raise PublishError(str(e)) from e

        event_id = signed.id
        waiter: asyncio.Future[SendEventOutput | Output] = (
            asyncio.get_running_loop().create_future()
        )
        self._pending.add(waiter)
        sender = asyncio.create_task(self._send(client, signed, waiter))

        try:
            async with asyncio.timeout(self._config.timeouts.publish):
                output = await waiter
        except TimeoutError:
            self._logger.warning("publish_timeout", event_id=event_id)
            raise PublishError(
                f"Timed out waiting for OK for event {event_id}", event_id=event_id
            ) from None
        except PublishError as e:
            raise PublishError(str(e), event_id=event_id) from e
        finally:
            self._pending.discard(waiter)
            sender.cancel()

        if not self._config.wait_for_ok:
            if self._relay_url not in output.success:
                reason = output.failed.get(self._relay_url) or "not sent"
                self._logger.error("publish_send_failed", event_id=event_id, error=reason)
                raise PublishError(f"Failed to send event {event_id}: {reason}", event_id=event_id)
            self._logger.info("event_sent", event_id=event_id, kind=signed.kind)
            return signed

        if self._relay_url in output.failed:
            message = str(output.failed.get(self._relay_url) or "")
            self._logger.warning(
                "event_rejected",
                event_id=event_id,
                reason=machine_readable_prefix(message),
                relay_message=message,
            )
            raise PublishError(
                f"Relay rejected event {event_id}: {message}",
                event_id=event_id,
                relay_message=message,
            )
        if self._relay_url not in output.success:
            self._logger.warning("publish_unanswered", event_id=event_id)
            raise PublishError(f"No response from relay for event {event_id}", event_id=event_id)

        self._logger.info("event_published", event_id=event_id, kind=signed.kind)
        return signed

    async def _send(
        self,
        client: Client,
        signed: SignedEvent,
        waiter: asyncio.Future[SendEventOutput | Output],
    ) -> None:
        output: SendEventOutput | Output
        try:
            if self._config.wait_for_ok:
                output = await client.send_event(signed.nostr_event)
            else:
                output = await client.send_msg_to(
                    [self._relay_url], ClientMessage.event(signed.nostr_event)
                )
        except (OSError, NostrSdkError) as e:
            self._logger.error("publish_send_failed", event_id=signed.id, error=str(e))
            if not waiter.done():
                waiter.set_exception(PublishError(f"Failed to send event {signed.id}: {e}"))
            return
        if not waiter.done():
            waiter.set_result(output)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    async def subscribe(
        self,
        filters: Filter | Mapping[str, Any] | Sequence[Filter | Mapping[str, Any]],
        on_event: EventCallback | None = None,
        *,
        on_eose: EoseCallback | None = None,
        on_closed: ClosedCallback | None = None,
    ) -> str:
        """Open a subscription and return its identifier.

        Events matching any of *filters* are delivered to *on_event* in relay
        order. ``EOSE`` marks the subscription but leaves it open for live
        events. Callbacks may be plain functions or coroutine functions. They
        run in the subscription's own delivery task, and exceptions they
        raise are logged without ending the subscription.

        Args:
            filters: One filter or a list of filters, as
                [Filter][emfguardian.models.filter.Filter] objects or NIP-01
                filter dicts. Filters are ORed; fields within one filter are
                ANDed.
            on_event: Called with each verified
                [SignedEvent][emfguardian.models.event.SignedEvent].
            on_eose: Called with the subscription id once every filter has
                reached end of stored events.
            on_closed: Called with the id and relay message when the relay
                closes the subscription.

        Raises:
            RelayConnectionError: If the client is not connected or the
                request cannot be sent.
            SubscriptionError: If *filters* is empty or malformed.
        """
        client = self._require_connection()
        parsed = self._parse_filters(filters)
        nostr_filters = []
        for i, item in enumerate(parsed):
            try:
                nostr_filters.append(item.to_nostr_filter())
            except ValueError as e:
                raise SubscriptionError(f"Invalid filter at index {i}: {e}") from e

        subscription_id = f"{next(self._subscription_counter):x}-{secrets.token_hex(6)}"
        subscription = Subscription(
            id=subscription_id,
            filters=parsed,
            on_event=on_event,
            on_eose=on_eose,
            on_closed=on_closed,
            relay_ids=relay_subscription_ids(subscription_id, len(parsed)),
        )
        self._subscriptions[subscription_id] = subscription
        for relay_id in subscription.relay_ids:
            self._routes[relay_id] = subscription_id
        self._start_delivery(subscription_id)

        for relay_id, nostr_filter in zip(subscription.relay_ids, nostr_filters, strict=True):
            try:
                output = await client.subscribe_with_id(relay_id, nostr_filter)
            except NostrSdkError as e:
                await self._abort_subscription(client, subscription)
                raise RelayConnectionError(
                    f"Failed to send REQ for subscription {subscription_id}: {e}"
                ) from e
            if self._relay_url not in output.success:
                await self._abort_subscription(client, subscription)
                reason = output.failed.get(self._relay_url, "not sent")
                raise RelayConnectionError(
                    f"Failed to send REQ for subscription {subscription_id}: {reason}"
                )

        self._logger.info(
            "subscription_opened", subscription_id=subscription_id, filters=len(parsed)
        )
        return subscription_id

    async def unsubscribe(self, subscription_id: str) -> None:
        """Close a subscription. Unknown identifiers are a no-op.

        The subscription is removed before ``CLOSE`` is sent, so no callback
        fires for it afterwards. A failure to send ``CLOSE`` is logged only.
        """
        subscription = self._forget(subscription_id)
        if subscription is None:
            self._logger.debug("unsubscribe_unknown", subscription_id=subscription_id)
            return

        client = self._client
        if client is not None:
            await self._close_relay_ids(client, subscription.relay_ids)

        self._logger.info(
            "subscription_closed",
            subscription_id=subscription_id,
            events=subscription.events_received,
        )

    async def _close_relay_ids(self, client: Client, relay_ids: Sequence[str]) -> None:
        for relay_id in relay_ids:
            try:
                await client.unsubscribe(relay_id)
            except NostrSdkError as e:
                self._logger.warning("close_send_failed", subscription_id=relay_id, error=str(e))

    async def _abort_subscription(self, client: Client, subscription: Subscription) -> None:
        self._forget(subscription.id)
        with contextlib.suppress(NostrSdkError):
            for relay_id in subscription.relay_ids:
                await client.unsubscribe(relay_id)

    def _forget(
        self, subscription_id: str, final: _Delivery | None = None
    ) -> Subscription | None:
        subscription = self._subscriptions.pop(subscription_id, None)
        if subscription is None:
            return None
        for relay_id in subscription.relay_ids:
            self._routes.pop(relay_id, None)
        queue = self._queues.pop(subscription_id, None)
        if queue is not None:
            if final is not None:
                queue.put_nowait(final)
            queue.put_nowait(_STOP)
        return subscription

    @staticmethod
    def _parse_filters(filters: Any) -> tuple[Filter, ...]:
        if isinstance(filters, (Filter, Mapping)):
            filters = [filters]
        if isinstance(filters, (str, bytes)) or not isinstance(filters, Sequence):
            raise SubscriptionError(
                f"filters must be a Filter, a mapping, or a list of them, "
                f"got {type(filters).__name__}"
            )
        if not filters:
            raise SubscriptionError("At least one filter is required")

        parsed: list[Filter] = []
        for i, item in enumerate(filters):
            if isinstance(item, Filter):
                parsed.append(item)
            elif isinstance(item, Mapping):
                try:
                    parsed.append(Filter.from_dict(item))
                except (TypeError, ValueError) as e:
                    raise SubscriptionError(f"Invalid filter at index {i}: {e}") from e
            else:
                raise SubscriptionError(
                    f"Filter at index {i} must be a Filter or mapping, got {type(item).__name__}"
                )
        return tuple(parsed)

    # -------------------------------------------------------------------------
    # Message Routing
    # -------------------------------------------------------------------------

    def _route_message(self, msg: RelayMessage) -> None:
        if self._state is not ClientState.CONNECTED:
            return
        try:
            message = msg.as_enum()
            if isinstance(message, RelayMessageEnum.EVENT_MSG):
                self._on_event_message(message.subscription_id, message.event)
            elif isinstance(message, RelayMessageEnum.END_OF_STORED_EVENTS):
                self._on_eose_message(message.subscription_id)
            elif isinstance(message, RelayMessageEnum.CLOSED):
                self._on_closed_message(message.subscription_id, message.message)
            elif isinstance(message, RelayMessageEnum.NOTICE):
                self._logger.info(
                    "relay_notice", relay=self._endpoint.url, relay_message=message.message
                )
            elif isinstance(message, RelayMessageEnum.AUTH):
                # NIP-42 authentication is not supported
                self._logger.debug("auth_challenge_ignored", relay=self._endpoint.url)
        except Exception as e:
            # Errors raised back into nostr-sdk are only printed by UniFFI
            self._logger.exception("message_routing_failed", error=str(e))

    def _on_event_message(self, relay_id: str, nostr_event: Event) -> None:
        subscription = self._subscriptions.get(self._routes.get(relay_id, ""))
        if subscription is None:
            self._logger.debug("event_for_unknown_subscription", subscription_id=relay_id)
            return

        try:
            event = SignedEvent(nostr_event)
        except (TypeError, ValueError) as e:
            self._logger.warning("invalid_event", subscription_id=subscription.id, error=str(e))
            return
        if self._config.verify_events and not event.verify():
            self._logger.warning(
                "invalid_event_signature", subscription_id=subscription.id, event_id=event.id
            )
            return
        if not any(f.matches(event) for f in subscription.filters):
            self._logger.debug(
                "event_outside_filters", subscription_id=subscription.id, event_id=event.id
            )
            return

        subscription.events_received += 1
        self._enqueue(subscription.id, subscription.on_event, event)

    def _on_eose_message(self, relay_id: str) -> None:
        subscription = self._subscriptions.get(self._routes.get(relay_id, ""))
        if subscription is None or not subscription.mark_eose(relay_id):
            return
        self._logger.info(
            "eose_received",
            subscription_id=subscription.id,
            events=subscription.events_received,
        )
        self._enqueue(subscription.id, subscription.on_eose, subscription.id)

    def _on_closed_message(self, relay_id: str, message: str) -> None:
        subscription = self._subscriptions.get(self._routes.get(relay_id, ""))
        if subscription is None:
            return
        final = None
        if subscription.on_closed is not None:
            final = _Delivery(subscription.on_closed, (subscription.id, message), final=True)
        self._forget(subscription.id, final)
        self._logger.warning(
            "subscription_closed_by_relay",
            subscription_id=subscription.id,
            reason=machine_readable_prefix(message),
            relay_message=message,
        )

        others = [rid for rid in subscription.relay_ids if rid != relay_id]
        if others and self._client is not None:
            self._spawn(self._close_relay_ids(self._client, others))

    # -------------------------------------------------------------------------
    # Callback Delivery
    # -------------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str | None = None) -> None:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _start_delivery(self, subscription_id: str) -> None:
        queue: asyncio.Queue[Any] = asyncio.Queue()
        self._queues[subscription_id] = queue
        self._spawn(
            self._deliver(subscription_id, queue), name=f"relay-delivery:{subscription_id}"
        )

    def _enqueue(
        self, subscription_id: str, callback: Callable[..., Any] | None, *args: Any
    ) -> None:
        queue = self._queues.get(subscription_id)
        if callback is not None and queue is not None:
            queue.put_nowait(_Delivery(callback, args))

    async def _deliver(self, subscription_id: str, queue: asyncio.Queue[Any]) -> None:
        while True:
            item = await queue.get()
            if item is _STOP:
                return
            # Skip what was queued before unsubscribe() or disconnect()
            if not item.final and subscription_id not in self._subscriptions:
                continue
            await self._invoke(item.callback, *item.args, subscription_id=subscription_id)

    async def _invoke(
        self, callback: Callable[..., Any], *args: Any, subscription_id: str
    ) -> None:
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self._logger.exception(
                "callback_failed",
                subscription_id=subscription_id,
                callback=getattr(callback, "__name__", repr(callback)),
                error=str(e),
            )

    def __repr__(self) -> str:
        return (
            f"RelayClient(url={self._endpoint.url!r}, state={self._state.value}, "
            f"subscriptions={len(self._subscriptions)})"
        )
