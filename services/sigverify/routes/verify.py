"""
Signature Verification Routes
=============================

API endpoint for verifying IRMA attribute-based signatures.
"""

from fastapi import APIRouter, Depends, Request, Response

from services.sigverify.dependencies import get_gateway
from services.sigverify.gateway import VerificationGateway


router = APIRouter()


@router.post(
    "/verify",
    response_class=Response,
    responses={
        200: {
            "description": "Disclosed attributes by identifier",
            "content": {"application/json": {"example": {"irma-demo.MijnOverheid.ageLimits.over18": "yes"}}},
        },
        400: {"description": "Malformed message or failed verification"},
        413: {"description": "Request body too large"},
        500: {"description": "Request body unreadable or response encoding failed"},
    },
)
async def verify_signature(
    request: Request,
    gateway: VerificationGateway = Depends(get_gateway),
) -> Response:
    """
    Verify a signed attribute-disclosure message.

    The request body is the JSON-encoded signed message. On success the
    response maps each disclosed attribute identifier to its value;
    attributes disclosed without a value are omitted. Every failed
    verification answers 400 with an empty body.
    """
    return await gateway.handle(request)
