"""
Request protection middleware
Ordered admission handlers: block gate, size guard, brute force,
enumeration throttling, attack-pattern detection, timing jitter
"""
import asyncio
import random
from typing import Optional

from fastapi import FastAPI, Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..core.structured_logging import log_security_event
from ..security.block_registry import BlockReason
from ..security.classifier import build_scan_url
from ..security.errors import (
    BlockedSource,
    ClassificationError,
    OversizedRequest,
    ThresholdExceeded,
)
from ..security.signatures import is_id_lookup
from ..security.state import ProtectionState

BLOCKED_MESSAGE = "Too many failed attempts. IP blocked temporarily."
ENUMERATION_MESSAGE = "Too many requests"
SUSPICIOUS_MESSAGE = "Access denied due to suspicious activity"
TOO_LARGE_MESSAGE = "Request entity too large"

PROXY_HEADERS = (
    "x-forwarded-for",
    "x-real-ip",
    "x-originating-ip",
    "x-remote-ip",
    "x-client-ip",
)


def get_client_ip(request: Request, trust_proxy_headers: bool = False) -> str:
    """Socket peer IP, or the proxy-supplied client IP when proxy headers are trusted"""
    if trust_proxy_headers:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()

    # Direct connection IP
    return getattr(request.client, "host", None) or "unknown"


def reject(status_code: int, error: str, retry_after: Optional[int] = None) -> JSONResponse:
    content = {"success": False, "error": error}
    headers = None
    if retry_after is not None:
        content["retryAfter"] = retry_after
        headers = {"Retry-After": str(retry_after)}
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def blocked_response(exc: BlockedSource) -> JSONResponse:
    return reject(status.HTTP_429_TOO_MANY_REQUESTS, BLOCKED_MESSAGE, exc.retry_after)


class ProtectionMiddleware(BaseHTTPMiddleware):
    """
    Base handler: `admit` either returns a rejection response or None to let
    the request continue down the pipeline.

    Unexpected errors while admitting are logged and the request continues.
    """

    name = "protection"

    def __init__(self, app, state: ProtectionState):
        super().__init__(app)
        self.state = state

    @property
    def logger(self):
        return self.state.logger

    def client_ip(self, request: Request) -> str:
        return get_client_ip(request, self.state.settings.trust_proxy_headers)

    def admit(self, request: Request) -> Optional[Response]:
        return None

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            rejection = self.admit(request)
        except Exception as e:
            log_security_event(
                self.logger, f"{self.name}_error", "error",
                source=self.client_ip(request), endpoint=request.url.path, pattern=str(e),
            )
            rejection = None

        if rejection is not None:
            return rejection
        return await call_next(request)


class BlockGateMiddleware(ProtectionMiddleware):
    """Admission gate: rejects blocked sources before any other processing"""

    name = "block_gate"

    def admit(self, request: Request) -> Optional[Response]:
        source = self.client_ip(request)
        now = self.state.now()
        entry = self.state.registry.get(source, now)
        if entry is None:
            return None

        exc = BlockedSource(source, entry.reason.value, self.state.registry.retry_after(source, now))
        log_security_event(
            self.logger, "blocked_ip_access", "warning",
            source=source, endpoint=request.url.path, reason=exc.reason,
            retry_after=exc.retry_after,
        )
        return blocked_response(exc)


class RequestSizeGuardMiddleware(ProtectionMiddleware):
    """Rejects requests whose declared Content-Length is over the cap"""

    name = "request_integrity"

    def admit(self, request: Request) -> Optional[Response]:
        source = self.client_ip(request)

        present = [h for h in PROXY_HEADERS if request.headers.get(h)]
        if len(present) > 2:
            log_security_event(
                self.logger, "multiple_proxy_headers", "warning",
                source=source, endpoint=request.url.path, pattern=",".join(present),
            )

        try:
            content_length = int(request.headers.get("content-length", "0"))
        except ValueError:
            content_length = 0

        limit = self.state.settings.max_content_length
        if content_length <= limit:
            return None

        exc = OversizedRequest(content_length, limit)
        log_security_event(
            self.logger, "request_too_large", "warning",
            source=source, endpoint=request.url.path, count=exc.content_length,
        )
        return reject(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, TOO_LARGE_MESSAGE)


class BruteForceMiddleware(ProtectionMiddleware):
    """Counts attempts on sensitive endpoints and blocks sources that overrun them"""

    name = "brute_force"

    def is_protected(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.state.settings.protected_endpoint_prefixes)

    def admit(self, request: Request) -> Optional[Response]:
        endpoint = request.url.path
        if not self.is_protected(endpoint):
            return None

        source = self.client_ip(request)
        key = f"{source}:{endpoint}"
        now = self.state.now()
        tracker = self.state.brute_force

        try:
            record = tracker.check(key, now)
        except ThresholdExceeded as exc:
            self.state.registry.block(
                source,
                BlockReason.BRUTE_FORCE,
                self.state.settings.block_duration_seconds,
                now,
                on_unblock=lambda: tracker.reset(key),
            )
            retry_after = self.state.registry.retry_after(source, now)
            log_security_event(
                self.logger, "brute_force_blocked", "error",
                source=source, endpoint=endpoint, count=exc.count, retry_after=retry_after,
            )
            return blocked_response(BlockedSource(source, BlockReason.BRUTE_FORCE.value, retry_after))

        request.state.rate_limit_info = {
            "attempts": record.count,
            "remaining": tracker.remaining(record),
            "reset_time": record.reset_at(tracker.window_seconds),
        }
        return None


class EnumerationMiddleware(ProtectionMiddleware):
    """Throttles sweeps over ID-lookup paths"""

    name = "enumeration"

    def admit(self, request: Request) -> Optional[Response]:
        endpoint = request.url.path
        if not is_id_lookup(endpoint):
            return None

        source = self.client_ip(request)
        try:
            self.state.enumeration.check(f"enum:{source}", self.state.now())
        except ThresholdExceeded as exc:
            log_security_event(
                self.logger, "enumeration_detected", "warning",
                source=source, endpoint=endpoint, count=exc.count, retry_after=exc.retry_after,
            )
            return reject(status.HTTP_429_TOO_MANY_REQUESTS, ENUMERATION_MESSAGE, exc.retry_after)
        return None


class AttackPatternMiddleware(ProtectionMiddleware):
    """Classifies URL and User-Agent; escalates repeat offenders to a block"""

    name = "attack_pattern"

    def admit(self, request: Request) -> Optional[Response]:
        source = self.client_ip(request)
        url = build_scan_url(request.url.path, request.url.query)
        user_agent = request.headers.get("user-agent", "")

        try:
            signature = self.state.classifier.classify(url, user_agent)
        except ClassificationError as e:
            fail_open = self.state.settings.fail_open
            log_security_event(
                self.logger, "classification_error", "error",
                source=source, endpoint=request.url.path, pattern=str(e),
                reason="fail_open" if fail_open else "fail_closed",
            )
            if fail_open:
                return None
            return reject(status.HTTP_403_FORBIDDEN, SUSPICIOUS_MESSAGE)

        if signature is None:
            return None

        _, escalated = self.state.ledger.record_match(
            source, signature.category, self.state.now(), pattern=signature.pattern.pattern
        )
        if escalated:
            return reject(status.HTTP_403_FORBIDDEN, SUSPICIOUS_MESSAGE)
        return None


class TimingJitterMiddleware(ProtectionMiddleware):
    """Adds a small random delay to blunt response-timing analysis"""

    name = "timing_jitter"

    async def dispatch(self, request: Request, call_next) -> Response:
        settings = self.state.settings
        low = min(settings.timing_jitter_min_ms, settings.timing_jitter_max_ms)
        high = max(settings.timing_jitter_min_ms, settings.timing_jitter_max_ms)
        await asyncio.sleep(random.randint(low, high) / 1000)
        return await call_next(request)


def install_protection(app: FastAPI, state: ProtectionState) -> ProtectionState:
    """
    Register the protection handlers on app.

    Starlette runs the last-added middleware first, so handlers are added
    innermost first; the block gate ends up outermost.
    """
    if state.settings.timing_jitter_enabled:
        app.add_middleware(TimingJitterMiddleware, state=state)
    app.add_middleware(AttackPatternMiddleware, state=state)
    app.add_middleware(EnumerationMiddleware, state=state)
    app.add_middleware(BruteForceMiddleware, state=state)
    app.add_middleware(RequestSizeGuardMiddleware, state=state)
    app.add_middleware(BlockGateMiddleware, state=state)
    app.state.protection = state
    return state
