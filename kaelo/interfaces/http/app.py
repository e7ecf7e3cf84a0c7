"""FastAPI application - chat ingress and session endpoints.

``POST /chat`` is the single entry point of the tutor: it validates the
request, enforces quotas and runs the coordinator pipeline.
"""

import logging
import math
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import redis.asyncio as redis
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ... import __version__
from ...capabilities.registry import CapabilityRegistry, build_default_registry
from ...core.config import Settings, settings as default_settings
from ...core.domain.capabilities import CapabilityResponse
from ...core.domain.messages import utc_now
from ...core.llm.base import ModelProvider
from ...core.llm.provider_factory import get_model_provider
from ...core.workflow.base import WorkflowError
from ...core.workflow.coordinator import CoordinatorAgent, PersistenceResult, SessionContext
from ...governor.routing.engine import RoutingEngine
from ...memory.base import LongTermMemory, StoreError
from ...memory.progress import ProgressTracker
from ...memory.tiers.long_term import InMemoryLongTermMemory, RedisLongTermMemory
from ...safety.engine import SafetyEngine, default_rules
from .quota_store import InMemoryQuotaStore, QuotaStore, RedisQuotaStore
from .rate_limiter import RateLimiter, RateLimitResult, RateLimitScope

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    """Inbound chat message."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1, max_length=2000)
    session_id: str | None = Field(None, alias="sessionId")
    user_id: str | None = Field(None, alias="userId")
    exercise: dict[str, Any] | None = None

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value


@dataclass
class AppServices:
    """Long-lived collaborators shared by every request."""

    settings: Settings
    long_term: LongTermMemory
    quota_store: QuotaStore
    rate_limiter: RateLimiter
    registry: CapabilityRegistry
    routing_engine: RoutingEngine
    safety_engine: SafetyEngine
    provider: ModelProvider | None = None

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "AppServices":
        """Wire services for the configured storage backend."""
        config = config or default_settings

        if config.storage_backend == "redis":
            client = redis.from_url(
                config.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            long_term: LongTermMemory = RedisLongTermMemory(
                client,
                max_recent_messages=config.short_term_message_count,
                ttl_seconds=config.session_ttl_days * 24 * 3600,
            )
            quota_store: QuotaStore = RedisQuotaStore(client)
        else:
            long_term = InMemoryLongTermMemory(config.short_term_message_count)
            quota_store = InMemoryQuotaStore()

        provider = get_model_provider(config)

        return cls(
            settings=config,
            long_term=long_term,
            quota_store=quota_store,
            rate_limiter=RateLimiter(
                quota_store,
                per_minute=config.rate_limit_per_minute,
                per_hour=config.rate_limit_per_hour,
                per_day=config.rate_limit_per_day,
            ),
            registry=build_default_registry(provider),
            routing_engine=RoutingEngine(),
            safety_engine=SafetyEngine(default_rules(config)),
            provider=provider,
        )

    async def close(self) -> None:
        await self.long_term.close()
        if self.provider is not None:
            await self.provider.close()


def get_client_ip(request: Request) -> str:
    """Client address, honouring common reverse-proxy headers."""
    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip:
        return cf_ip.strip()

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in case of multiple proxies
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at),
    }


def serialize_response(response: CapabilityResponse, session_id: str) -> dict[str, Any]:
    """Wire format of a chat response."""
    metadata: dict[str, Any] = {
        "capability": response.capability.value,
        "task": response.task.value,
        "timestamp": response.metadata.timestamp.isoformat(),
        "requestId": getattr(response.metadata, "request_id", None),
        "persisted": bool(getattr(response.metadata, "persisted", False)),
    }
    if response.metadata.synthesized_from is not None:
        metadata["synthesizedFrom"] = response.metadata.synthesized_from.value

    return {
        "message": response.text,
        "sessionId": session_id,
        "metadata": metadata,
    }


def create_app(services: AppServices | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        services: Pre-wired services, built from settings if omitted
    """
    services = services or AppServices.from_settings()
    config = services.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Kaelo orchestrator starting")
        logger.info(f"Environment: {config.environment}")
        logger.info(f"Storage backend: {config.storage_backend}")
        logger.info(f"Capabilities: {[tag.value for tag in services.registry.list_capabilities()]}")

        yield

        logger.info("Kaelo orchestrator shutting down")
        await services.close()

    app = FastAPI(
        title="Kaelo Tutor Orchestrator",
        description="Conversational tutoring backend",
        version=__version__,
        debug=config.debug,
        lifespan=lifespan,
    )
    app.state.services = services

    if config.is_development():
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": details},
        )

    async def report_persistence_failure(session_id: str, result: PersistenceResult) -> None:
        logger.error(f"Session {session_id} not fully persisted: {result.error}")

    @app.post("/chat")
    async def chat(body: ChatRequest, request: Request) -> JSONResponse:
        """Process one learner message through the tutor pipeline."""
        request_id = str(uuid.uuid4())[:8]

        if len(body.message) > config.max_message_length:
            return JSONResponse(
                status_code=400,
                content={
                    "error": "Invalid request",
                    "details": [{
                        "loc": ["body", "message"],
                        "msg": f"message exceeds {config.max_message_length} characters",
                        "type": "string_too_long",
                    }],
                },
            )

        if body.user_id:
            identifier, scope = body.user_id, RateLimitScope.USER
        else:
            identifier, scope = get_client_ip(request), RateLimitScope.IP

        quota = await services.rate_limiter.check_limit(identifier, scope)
        headers = rate_limit_headers(quota)

        if not quota.allowed:
            retry_after = max(0, math.ceil(quota.reset_at - services.rate_limiter.clock()))
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Rate limit exceeded",
                    "resetAt": quota.reset_at,
                    "limit": quota.limit,
                    "remaining": quota.remaining,
                },
                headers={**headers, "Retry-After": str(retry_after)},
            )

        session_id = body.session_id or str(uuid.uuid4())
        user_id = body.user_id or "anonymous"
        logger.info(f"[REQ-{request_id}] Chat request for session={session_id}, user={user_id}")

        coordinator = CoordinatorAgent(
            SessionContext(
                session_id=session_id,
                user_id=user_id,
                long_term=services.long_term,
                registry=services.registry,
                settings=config,
            ),
            routing_engine=services.routing_engine,
            safety_engine=services.safety_engine,
            on_persistence_failure=report_persistence_failure,
        )

        metadata: dict[str, Any] = {"request_id": request_id}
        if body.exercise is not None:
            metadata["exercise"] = body.exercise

        try:
            response = await coordinator.process(body.message, metadata)
        except WorkflowError as e:
            logger.error(f"[REQ-{request_id}] Pipeline failed: {e}")
            return JSONResponse(
                status_code=500,
                content={"error": "Unable to process message", "requestId": request_id},
                headers=headers,
            )

        return JSONResponse(
            content=serialize_response(response, session_id),
            headers=headers,
        )

    @app.get("/sessions/{session_id}/history")
    async def session_history(
        session_id: str,
        limit: int | None = Query(None, ge=0)
    ) -> dict[str, Any]:
        """Recent conversation history of a session, oldest first."""
        try:
            messages = await services.long_term.get_history(session_id, limit)
        except StoreError as e:
            logger.error(f"History lookup failed for session {session_id}: {e}")
            raise HTTPException(status_code=503, detail="Session store unavailable") from e

        return {
            "sessionId": session_id,
            "messages": [message.model_dump(mode="json") for message in messages],
        }

    @app.get("/sessions/{session_id}/progress")
    async def session_progress(session_id: str) -> dict[str, Any]:
        """Accuracy, streak and trend statistics for a session."""
        try:
            memory = await services.long_term.load(session_id)
        except StoreError as e:
            logger.error(f"Progress lookup failed for session {session_id}: {e}")
            raise HTTPException(status_code=503, detail="Session store unavailable") from e

        tracker = ProgressTracker(memory.progress_history if memory else ())
        return {
            "sessionId": session_id,
            "currentTopic": memory.current_topic if memory else None,
            "currentDifficulty": (
                memory.current_difficulty.value
                if memory and memory.current_difficulty else None
            ),
            "stats": tracker.get_stats().model_dump(mode="json"),
            "topics": [
                {"topic": t.topic, "correct": t.correct, "total": t.total, "accuracy": t.accuracy}
                for t in tracker.topic_breakdown()
            ],
        }

    @app.delete("/sessions/{session_id}")
    async def clear_session(session_id: str) -> dict[str, Any]:
        """Clear a session's memory, including its fact ledger."""
        try:
            await services.long_term.clear(session_id)
        except StoreError as e:
            logger.error(f"Failed to clear session {session_id}: {e}")
            raise HTTPException(status_code=503, detail="Session store unavailable") from e

        return {"sessionId": session_id, "cleared": True}

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint for health checks."""
        return {
            "message": "Kaelo Tutor Orchestrator",
            "status": "operational",
            "version": __version__,
            "environment": config.environment,
        }

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": utc_now().isoformat(),
            "environment": config.environment,
            "version": __version__,
            "storage_backend": config.storage_backend,
            "capabilities": [tag.value for tag in services.registry.list_capabilities()],
        }

    @app.get("/config")
    async def config_info() -> dict[str, Any]:
        """Configuration info endpoint (development only)."""
        if not config.is_development():
            return {"message": "Configuration info not available in production"}

        return {
            "storage_backend": config.storage_backend,
            "redis_url": config.redis_url,
            "model_base_url": config.model_base_url,
            "model_name": config.model_name,
            "rate_limits": {
                "per_minute": config.rate_limit_per_minute,
                "per_hour": config.rate_limit_per_hour,
                "per_day": config.rate_limit_per_day,
            },
            "log_level": config.log_level,
        }

    return app
