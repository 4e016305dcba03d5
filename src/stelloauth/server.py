"""HTTP front end for the OAuth helper.

Endpoints:
  - ``GET /`` (and ``/index.html``): bundled web UI
  - ``GET /configs``: brand/country configuration JSON
  - ``POST /oauth``: run a login; JSON result, or Server-Sent Events when the
    client sends ``Accept: text/event-stream``
"""

from __future__ import annotations

import asyncio
import functools
import logging
from importlib import resources

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response, StreamingResponse

from stelloauth import __version__
from stelloauth.brands import BrandConfigProvider
from stelloauth.config import Settings, get_settings
from stelloauth.errors import StellOAuthError
from stelloauth.progress import ProgressStream, format_sse
from stelloauth.rate_limiter import RateLimiter, limiter_from_settings
from stelloauth.service import LoginPlan, OAuthRequest, OAuthResponse, OAuthService

logger = logging.getLogger(__name__)

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@functools.lru_cache(maxsize=1)
def _index_html() -> bytes:
    return resources.files("stelloauth").joinpath("web", "index.html").read_bytes()


def _error(message: str, status_code: int, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        OAuthResponse.error(message).model_dump(exclude_none=True),
        status_code=status_code,
        headers=headers,
    )


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _stream_login(service: OAuthService, plan: LoginPlan, oauth_request: OAuthRequest):
    """Run the login in a task and relay its progress as SSE frames."""
    stream = ProgressStream()

    async def _run() -> None:
        try:
            code = await service.execute(plan, oauth_request, stream.reporter())
        except StellOAuthError as e:
            logger.warning("OAuth flow for %s/%s failed: %s", plan.brand, plan.country, e)
            stream.fail(e.message)
        except Exception:
            logger.exception("OAuth flow for %s/%s crashed", plan.brand, plan.country)
            stream.fail("authentication failed - internal error")
        else:
            stream.succeed(code)

    async def _event_generator():
        task = asyncio.create_task(_run())
        try:
            async for event in stream:
                yield format_sse(event)
        finally:
            # Client went away: cancelling the run closes its browser
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

    return StreamingResponse(
        _event_generator(), media_type="text/event-stream", headers=_SSE_HEADERS
    )


def create_app(
    settings: Settings | None = None,
    service: OAuthService | None = None,
    limiter: RateLimiter | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Defaults to :func:`get_settings`.
        service: Defaults to an :class:`OAuthService` over the configured
            brand source and login mode.
        limiter: Defaults to the limiter described by ``settings`` (if any).
    """
    settings = settings or get_settings()
    if service is None:
        provider = BrandConfigProvider(
            url=settings.configs_url, cache_ttl=settings.configs_cache_ttl
        )
        service = OAuthService(settings, provider)
    if limiter is None:
        limiter = limiter_from_settings(settings)

    app = FastAPI(
        title="Stellantis OAuth Helper",
        description="Retrieve OAuth2 authorization codes from Stellantis brand portals.",
        version=__version__,
    )
    app.state.service = service
    app.state.limiter = limiter

    @app.get("/", response_class=HTMLResponse)
    @app.get("/index.html", response_class=HTMLResponse, include_in_schema=False)
    async def index():
        """Serve the web UI."""
        return HTMLResponse(_index_html())

    @app.get("/configs")
    async def configs():
        """Brand/country configuration consumed by the UI."""
        try:
            raw = await service.provider.raw()
        except StellOAuthError as e:
            logger.error("Configuration unavailable: %s", e)
            return _error(e.message, e.status_code)
        return Response(content=raw, media_type="application/json")

    @app.post("/oauth")
    async def oauth(request: Request):
        """Log in to the brand portal and return the authorization code."""
        if limiter is not None:
            info = limiter.check(_client_key(request))
            if not info.allowed:
                return _error(
                    "Too many requests - please wait before trying again",
                    429,
                    headers=info.headers(),
                )

        try:
            oauth_request = OAuthRequest.model_validate(await request.json())
        except ValueError:
            return _error("Invalid request body", 400)

        try:
            plan = await service.prepare(oauth_request)
        except StellOAuthError as e:
            return _error(e.message, e.status_code)

        if "text/event-stream" in request.headers.get("accept", ""):
            return _stream_login(service, plan, oauth_request)

        try:
            code = await service.execute(plan, oauth_request)
        except StellOAuthError as e:
            logger.warning("OAuth flow for %s/%s failed: %s", plan.brand, plan.country, e)
            return _error(e.message, e.status_code)
        except Exception:
            logger.exception("OAuth flow for %s/%s crashed", plan.brand, plan.country)
            return _error("authentication failed - internal error", 500)
        return JSONResponse(OAuthResponse.success(code).model_dump(exclude_none=True))

    @app.api_route(
        "/oauth",
        methods=["GET", "HEAD", "OPTIONS", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    async def oauth_method_not_allowed():
        return _error("Method not allowed", 405)

    return app


def run_server(settings: Settings, dev: bool = False) -> None:
    """Start uvicorn on ``settings.host``/``settings.port``.

    ``dev`` enables auto-reload; the reloaded worker rebuilds its settings
    from the environment.
    """
    import uvicorn

    logger.info(
        "Starting server on %s:%d (%s login mode)", settings.host, settings.port, settings.login_mode
    )
    if dev:
        import pathlib

        src_dir = str(pathlib.Path(__file__).resolve().parent)
        uvicorn.run(
            "stelloauth.server:create_app",
            factory=True,
            host=settings.host,
            port=settings.port,
            reload=True,
            reload_dirs=[src_dir],
            log_level="debug",
        )
    else:
        uvicorn.run(
            create_app(settings),
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
        )


__all__ = ["create_app", "run_server"]
