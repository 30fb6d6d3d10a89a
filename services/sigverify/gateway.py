"""
Verification Gateway
====================

Turns one HTTP request into one verification outcome and one response.

Request lifecycle:
    Received -> BodyRead -> Deserialized -> Verified -> Responded

Every step can short-circuit into a rejection. Each path ends in exactly
one response and nothing propagates out of the handler. All verification
failures share one 400 response so callers cannot tell which check failed.

Version: 0.1.0
"""

import json
import uuid
from typing import Any

from starlette.requests import ClientDisconnect, Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from shared.logging import bind_context, clear_context, get_logger
from shared.trust import (
    AttributeList,
    MessageFormatError,
    OutcomeKind,
    TrustStore,
    TrustStoreNotReadyError,
    VerificationOutcome,
)

logger = get_logger(__name__)


class RequestBodyTooLarge(Exception):
    """Request body exceeds the configured limit."""


class GatewayResponse(Response):
    """Response that logs write failures instead of raising them."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except (OSError, ClientDisconnect) as e:
            logger.error(
                "response_write_failed",
                error=str(e) or type(e).__name__,
                status_code=self.status_code,
            )


def flatten_attributes(attributes: AttributeList) -> dict[str, str]:
    """
    Flatten disclosure groups into identifier -> raw value.

    Attributes disclosed without a raw value are left out entirely.
    """
    return {
        attribute.identifier: attribute.raw_value
        for group in attributes
        for attribute in group
        if attribute.raw_value is not None
    }


class VerificationGateway:
    """
    HTTP adapter around the trust store.

    Holds no per-request state; one instance may serve any number of
    concurrent requests.
    """

    def __init__(self, store: TrustStore, max_body_bytes: int) -> None:
        self.store = store
        self.max_body_bytes = max_body_bytes

    async def handle(self, request: Request) -> Response:
        """Handle one POST /api/verify request."""
        bind_context(request_id=uuid.uuid4().hex[:16])
        try:
            try:
                body = await self.read_body(request)
            except RequestBodyTooLarge as e:
                logger.warning("request_body_too_large", error=str(e))
                return GatewayResponse(status_code=413)
            except Exception as e:
                logger.error(
                    "request_body_read_failed",
                    error=str(e) or type(e).__name__,
                )
                return GatewayResponse(status_code=500)

            return await self.process(body)
        finally:
            clear_context()

    async def read_body(self, request: Request) -> bytes:
        """
        Read the full request body, enforcing the size limit.

        Raises:
            RequestBodyTooLarge: If the body exceeds max_body_bytes
        """
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self.max_body_bytes:
            raise RequestBodyTooLarge(f"Declared length {declared} > {self.max_body_bytes}")

        chunks: list[bytes] = []
        received = 0
        async for chunk in request.stream():
            received += len(chunk)
            if received > self.max_body_bytes:
                raise RequestBodyTooLarge(f"Body exceeds {self.max_body_bytes} bytes")
            chunks.append(chunk)
        return b"".join(chunks)

    async def process(self, body: bytes) -> Response:
        """Deserialize, verify and encode the result for a request body."""
        provider = self.store.provider

        try:
            message = provider.parse_message(body)
        except MessageFormatError as e:
            logger.debug("signed_message_malformed", error=str(e))
            return GatewayResponse(status_code=400)

        try:
            configuration = self.store.current_configuration()
        except TrustStoreNotReadyError as e:
            logger.error("trust_configuration_unavailable", error=str(e))
            return GatewayResponse(status_code=500)

        try:
            outcome = await provider.verify(message, configuration, policy=None)
        except Exception as e:
            outcome = VerificationOutcome.error(str(e) or type(e).__name__)

        if outcome.kind == OutcomeKind.ERROR:
            logger.warning(
                "signature_verification_error",
                cause=outcome.cause,
                generation=configuration.generation,
            )
            return GatewayResponse(status_code=400)

        if not outcome.is_valid:
            logger.info(
                "signature_rejected",
                proof_status=outcome.status.value if outcome.status else None,
                generation=configuration.generation,
            )
            return GatewayResponse(status_code=400)

        disclosed = flatten_attributes(outcome.attributes or [])

        try:
            content = self.encode(disclosed)
        except (TypeError, ValueError) as e:
            logger.error("response_serialization_failed", error=str(e))
            return GatewayResponse(status_code=500)

        logger.info(
            "signature_verified",
            attribute_count=len(disclosed),
            generation=configuration.generation,
        )
        return GatewayResponse(
            content=content,
            status_code=200,
            media_type="application/json",
        )

    @staticmethod
    def encode(disclosed: dict[str, Any]) -> bytes:
        return json.dumps(disclosed, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
