"""Azure Functions entry point for the listing draft generator."""
import json

import azure.functions as func
import structlog

from src.api.dependencies import bearer_token
from src.api.routes.health import collect_health
from src.application.use_cases.generate_listing_draft import GenerateListingDraft
from src.config import settings
from src.domain.errors.generation_errors import SessionInvalidatedError
from src.domain.errors.provider_error import GenerationConfigError, ProviderError
from src.infrastructure.auth.jwt_verifier import SupabaseTokenVerifier
from src.infrastructure.external_services.gemini_client import GeminiClient
from src.infrastructure.external_services.image_fetcher import HttpImageFetcher
from src.infrastructure.messaging.rabbitmq_publisher import RabbitMQPublisher
from src.logging_setup import configure_logging

configure_logging(settings.log_level)
logger = structlog.get_logger(__name__)

# Anonymous at the platform level; the bearer credential is checked below
app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def _json_response(body: dict, status_code: int) -> func.HttpResponse:  # type: ignore[type-arg]
    return func.HttpResponse(
        json.dumps(body),
        status_code=status_code,
        mimetype="application/json",
        headers=CORS_HEADERS,
    )


# ============================================================================
# Listing generation
# ============================================================================

@app.route(route="generate-listing", methods=["POST", "OPTIONS"])
async def generate_listing(req: func.HttpRequest) -> func.HttpResponse:
    if req.method == "OPTIONS":
        return func.HttpResponse("ok", headers=CORS_HEADERS)

    try:
        claims = SupabaseTokenVerifier().verify(bearer_token(req.headers.get("authorization")))
        use_case = GenerateListingDraft(GeminiClient(), HttpImageFetcher(), RabbitMQPublisher())
    except SessionInvalidatedError as exc:
        return _json_response({"error": "Invalid or expired session.", "details": exc.reason.value}, 401)
    except GenerationConfigError as exc:
        logger.error("service_misconfigured", error=str(exc))
        return _json_response({"error": str(exc)}, 500)

    try:
        body = req.get_json()
    except ValueError:
        return _json_response({"error": "Invalid JSON body."}, 400)

    try:
        result = await use_case.execute(body)
    except ProviderError as exc:
        logger.warning(
            "generate_listing_failed",
            user_id=claims.subject,
            code=exc.code.value,
            http_status=exc.http_status,
        )
        return _json_response(exc.to_response_body(), exc.http_status)

    return _json_response({"draft": result.draft.to_dict()}, 200)


# ============================================================================
# Health Check
# ============================================================================

@app.route(route="health", methods=["GET"])
async def health(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint."""
    return func.HttpResponse(json.dumps(await collect_health()), mimetype="application/json")
