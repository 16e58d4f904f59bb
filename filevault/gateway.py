"""API gateway: one origin in front of the users and files services.

``/users/<path>`` is forwarded to USERS_SERVICE_URL and ``/files/<path>`` to
FILES_SERVICE_URL with the prefix stripped. Authorization is not checked
here; the Authorization header is passed through for each service's gate.
"""

import logging
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

import httpx
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from filevault.core.config import Settings, get_settings
from filevault.core.errors import error_response

logger = logging.getLogger(__name__)

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

# RFC 7230 hop-by-hop headers plus the ones httpx recomputes.
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
        "host",
        "content-length",
        "content-encoding",
    }
)


def _forwardable(headers) -> dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() not in HOP_BY_HOP_HEADERS}


def upstream_path(path: str) -> str:
    """Path below the service prefix; an empty remainder becomes "/"."""
    return "/" + path.lstrip("/")


def create_gateway_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    targets = {
        "users": settings.USERS_SERVICE_URL,
        "files": settings.FILES_SERVICE_URL,
    }

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(settings.UPSTREAM_TIMEOUT_SEC),
            transport=transport,
        ) as client:
            app.state.client = client
            yield

    app = FastAPI(title="FileVault Gateway", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.APP_ENV == "dev" else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict[str, str]:
        return {
            "status": "ok",
            "usersServiceUrl": targets["users"],
            "filesServiceUrl": targets["files"],
        }

    async def _forward(service: str, path: str, request: Request) -> Response:
        url = targets[service] + upstream_path(path)
        start = time.perf_counter()
        try:
            upstream = await request.app.state.client.request(
                request.method,
                url,
                params=request.query_params.multi_items(),
                headers=_forwardable(request.headers),
                content=await request.body(),
            )
        except httpx.HTTPError as e:
            logger.warning(
                "Upstream request failed",
                extra={
                    "service": service,
                    "method": request.method,
                    "latency_seconds": time.perf_counter() - start,
                    "error": type(e).__name__,
                },
            )
            return error_response(status.HTTP_502_BAD_GATEWAY, "Bad gateway")

        logger.info(
            "Proxied request",
            extra={
                "service": service,
                "method": request.method,
                "status_code": upstream.status_code,
                "latency_seconds": time.perf_counter() - start,
            },
        )
        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            headers=_forwardable(upstream.headers),
        )

    @app.api_route("/users", methods=PROXY_METHODS, include_in_schema=False)
    @app.api_route("/users/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
    async def proxy_users(request: Request, path: str = "") -> Response:
        return await _forward("users", path, request)

    @app.api_route("/files", methods=PROXY_METHODS, include_in_schema=False)
    @app.api_route("/files/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
    async def proxy_files(request: Request, path: str = "") -> Response:
        return await _forward("files", path, request)

    @app.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
    def not_found(path: str) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "API route not found"},
        )

    return app


app = create_gateway_app()
