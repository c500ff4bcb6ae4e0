"""HTTP proxy endpoint for chat completions.

POST /api/chat  → forwards {model, messages} upstream via ProxyGateway
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.config import settings
from src.models import CompletionSuccess
from src.services.gateway import GatewayConfig, ProxyGateway

log = logging.getLogger(__name__)

# CORS is unconditionally permissive; scoping it is left to the deployment.
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

# Every method is routed here so non-POST requests get the JSON 405 body.
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


def create_app(
    config: Optional[GatewayConfig] = None,
    gateway: Optional[ProxyGateway] = None,
) -> FastAPI:
    if gateway is None:
        gateway = ProxyGateway(config or GatewayConfig.from_settings(settings))
    if not gateway.config.api_key:
        log.critical("OPENAI_API_KEY is not set; every proxied request will fail")

    app = FastAPI(title="Growth Quiz Chat Proxy")

    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
        return response

    @app.api_route("/api/chat", methods=ALL_METHODS)
    async def chat(request: Request):
        if request.method != "POST":
            log.info(f"Invalid HTTP method {request.method} on /api/chat")
            return JSONResponse({"error": "Method Not Allowed"}, status_code=405)

        try:
            payload = await request.json()
        except ValueError:
            payload = None  # Rejected by the gateway as an invalid request

        result = await gateway.complete(payload)
        headers = {"X-Request-Id": result.request_id}
        if isinstance(result, CompletionSuccess):
            return JSONResponse(result.body, headers=headers)
        return JSONResponse(result.to_payload(), status_code=result.status_code, headers=headers)

    return app
