"""Channel gateways and channel capability sets.

A ChannelGateway performs the actual send of a PreparedMessage through an
injected GatewayTransport and reports an OperationResult. Every gateway
call is guarded by payload validation, a circuit breaker and a timeout;
a timed out call is reported as a retryable CONNECTION_ERROR.

A NotificationChannel bundles what the orchestrator needs per channel:
recipient and option validation, a message processor, preparation of the
gateway message and delivery through the gateway.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import structlog

from notifier.notifications.errors import ErrorCode
from notifier.notifications.models import (
    Channel,
    NotificationOptions,
    NotificationPriority,
    NotificationRequest,
)
from notifier.notifications.processing import MessageProcessor, ProcessedMessage
from notifier.operations import OperationResult, classify_transport_error
from notifier.resilience import CircuitBreaker, CircuitBreakerOpenError

logger = structlog.get_logger()

# Gateway priority per request priority
PRIORITY_MAP = {
    NotificationPriority.CRITICAL: "high",
    NotificationPriority.URGENT: "high",
    NotificationPriority.HIGH: "normal",
    NotificationPriority.NORMAL: "low",
    NotificationPriority.LOW: "low",
}


@dataclass
class PreparedMessage:
    """Message handed to a gateway transport.

    Attributes:
        request_id: Originating request
        channel: Delivery channel
        recipient: Channel contact (address, number, token, URL, handle)
        body: Processed body
        subject: Processed subject or push title
        priority: Gateway priority ("high", "normal", "low")
        options: Channel knobs relevant to the transport
        metadata: Processing metadata
        assets: Opaque extras (HTML body, attachments)
    """

    request_id: str
    channel: Channel
    recipient: str
    body: str
    subject: Optional[str] = None
    priority: str = "low"
    options: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    assets: Dict[str, Any] = field(default_factory=dict)


class GatewayTransport(Protocol):
    """External collaborator that delivers prepared messages.

    send() returns the provider message id, or raises: TransportError
    with a gateway error code, ConnectionError/OSError for network
    failures, anything else is treated as a GATEWAY_ERROR.
    """

    async def send(self, message: PreparedMessage) -> str: ...

    async def ping(self) -> bool: ...


class ChannelGateway(ABC):
    """Base gateway: validation, circuit breaker and timeout around a transport.

    Args:
        transport: Transport performing the delivery
        timeout_seconds: Timeout for each transport call
        circuit_breaker: Optional circuit breaker; a default one is created
    """

    endpoint: str = "unknown"

    def __init__(
        self,
        transport: GatewayTransport,
        timeout_seconds: float = 10.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.transport = transport
        self.timeout_seconds = timeout_seconds
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            name=f"{self.channel.value}_gateway",
            failure_threshold=5,
            timeout_seconds=60,
        )

    @property
    @abstractmethod
    def channel(self) -> Channel:
        """Channel served by this gateway."""

    @abstractmethod
    def validate_payload(self, message: PreparedMessage) -> OperationResult:
        """Enforce channel payload constraints before sending."""

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def send(self, message: PreparedMessage) -> OperationResult:
        """Send a prepared message.

        Returns:
            OperationResult with {"message_id": ...} on success, or an
            error carrying a gateway error code
        """
        check = self.validate_payload(message)
        if not check.is_success:
            logger.warning(
                "gateway_payload_rejected",
                channel=self.channel.value,
                request_id=message.request_id,
                error_code=check.error_code,
                error=check.message,
            )
            return check

        try:
            return await self._circuit_breaker.call(self._send_via_transport, message)
        except CircuitBreakerOpenError as e:
            return OperationResult.transient_error(str(e), error_code=ErrorCode.SERVICE_ERROR)

    async def test_connection(self) -> bool:
        """Check transport connectivity; never raises."""
        try:
            return bool(
                await asyncio.wait_for(self.transport.ping(), timeout=self.timeout_seconds)
            )
        except Exception as e:
            logger.warning(
                "gateway_connection_test_failed", channel=self.channel.value, error=str(e)
            )
            return False

    async def _send_via_transport(self, message: PreparedMessage) -> OperationResult:
        try:
            message_id = await asyncio.wait_for(
                self.transport.send(message), timeout=self.timeout_seconds
            )
        except Exception as e:
            result = classify_transport_error(e)
            logger.warning(
                "gateway_send_failed",
                channel=self.channel.value,
                request_id=message.request_id,
                error_code=result.error_code,
                error=result.message,
            )
            return result

        logger.debug(
            "gateway_send_succeeded",
            channel=self.channel.value,
            request_id=message.request_id,
            message_id=message_id,
        )
        return OperationResult.success(
            data={"message_id": message_id}, message="Message accepted by gateway"
        )

    @staticmethod
    def reject(message: str, error_code: str = ErrorCode.VALIDATION_ERROR) -> OperationResult:
        return OperationResult.permanent_error(message, error_code=error_code)


class NotificationChannel(ABC):
    """Per-channel capability set used by the orchestrator.

    Args:
        gateway: Gateway delivering prepared messages
        processor: Message processor for the channel
    """

    def __init__(self, gateway: ChannelGateway, processor: Optional[MessageProcessor] = None):
        if gateway.channel != self.channel:
            raise ValueError(
                f"{type(self).__name__} needs a {self.channel.value} gateway, "
                f"got {gateway.channel.value}"
            )
        self.gateway = gateway
        self.processor = processor or MessageProcessor()

    @property
    @abstractmethod
    def channel(self) -> Channel:
        """Channel identifier."""

    @property
    def endpoint(self) -> str:
        return self.gateway.endpoint

    @abstractmethod
    def validate_options(self, options: NotificationOptions) -> OperationResult:
        """Validate the channel knobs present in options."""

    def process(self, request: NotificationRequest) -> ProcessedMessage:
        """Run the channel's processing pipeline.

        Raises:
            ProcessingError: If a stage rejects the content
        """
        return self.processor.process(request)

    def prepare(
        self, request: NotificationRequest, processed: ProcessedMessage
    ) -> PreparedMessage:
        return PreparedMessage(
            request_id=request.id,
            channel=self.channel,
            recipient=request.recipient.contact,
            body=processed.body,
            subject=processed.subject,
            priority=PRIORITY_MAP[request.priority],
            options=self.transport_options(request.options),
            metadata=dict(processed.metadata),
            assets=dict(processed.assets),
        )

    def transport_options(self, options: NotificationOptions) -> Dict[str, Any]:
        """Channel knobs forwarded to the transport."""
        return {}

    async def deliver(
        self, request: NotificationRequest, processed: ProcessedMessage
    ) -> OperationResult:
        return await self.gateway.send(self.prepare(request, processed))

    async def health_check(self) -> OperationResult:
        """Check processor health and gateway connectivity."""
        if not self.processor.is_healthy():
            return OperationResult.transient_error(
                f"{self.channel.value} processor unhealthy", error_code="PROCESSOR_UNHEALTHY"
            )
        if not await self.gateway.test_connection():
            return OperationResult.transient_error(
                f"{self.channel.value} gateway unreachable",
                error_code=ErrorCode.CONNECTION_ERROR,
            )
        return OperationResult.success(
            data={"endpoint": self.endpoint, "circuit": self.gateway.circuit_breaker.get_stats()},
            message=f"{self.channel.value} channel healthy",
        )


def option_error(message: str) -> OperationResult:
    return OperationResult.permanent_error(message, error_code=ErrorCode.VALIDATION_ERROR)


def pick(options: NotificationOptions, *keys: str) -> Dict[str, Any]:
    """Subset of channel knobs that are present."""
    return {k: options.get(k) for k in keys if options.get(k) is not None}
