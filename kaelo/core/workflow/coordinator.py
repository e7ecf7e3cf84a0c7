"""Coordinator pipeline implemented as a LangGraph workflow.

Every inbound learner message runs through the same sequence of nodes:

1. route          - classify intent and pick a capability
2. load_memory    - read the session's long-term memory
3. build_request  - assemble the canonical capability request
4. dispatch       - call the capability, falling back to the tutor on failure
5. validate       - run the safety engine
6. repair         - one corrective pass when validation failed
7. enforce        - apply local identity/formatting rules
8. synthesize     - restate specialist output in the tutor's voice
9. persist        - write both memory tiers (best effort)

Repair and synthesize are skipped through conditional edges when they are
not needed; nothing else branches.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, TypedDict

from langgraph.graph import END, StateGraph
from pydantic import BaseModel

from ...capabilities.registry import CapabilityRegistry
from ...governor.routing.engine import RoutingEngine
from ...memory.base import LongTermMemory
from ...memory.tiers.short_term import ShortTermMemory
from ...safety.engine import SafetyCheckResult, SafetyEngine, default_rules
from ...safety.facts import SessionFactLedger
from ...safety.identity import enforce_identity
from ..config import Settings, settings as default_settings
from ..domain.capabilities import (
    DEFAULT_CAPABILITY,
    CapabilityInput,
    CapabilityRequest,
    CapabilityResponse,
    CapabilityTag,
    RequestMetadata,
    TaskType,
)
from ..domain.memory import DifficultyLevel, MemoryData, ProgressEntry
from ..domain.messages import Message, MessageRole, utc_now
from ..domain.routing import Intent, RoutingDecision
from .base import WorkflowBase, WorkflowError

logger = logging.getLogger(__name__)

FALLBACK_TEMPLATE = "I encountered an issue. Let me help you with: {message}"
REPAIR_TEMPLATE = "Please reformat this response to be safe and follow our identity rules: {text}"
SYNTHESIS_TEMPLATE = "Format this agent response for the student: {text}"

# Request metadata keys forwarded to capabilities
FORWARDED_HINTS = ("trigger", "plan_type")

LEVEL_TO_DIFFICULTY = {
    "beginner": DifficultyLevel.EASY,
    "easy": DifficultyLevel.EASY,
    "intermediate": DifficultyLevel.MEDIUM,
    "medium": DifficultyLevel.MEDIUM,
    "advanced": DifficultyLevel.HARD,
    "hard": DifficultyLevel.HARD,
    "challenge": DifficultyLevel.CHALLENGE,
}


class CoordinatorError(WorkflowError):
    """Exception raised when the pipeline cannot produce any response."""
    pass


class PipelineNode(str, Enum):
    """Node names of the coordinator graph."""

    ROUTE = "route"
    LOAD_MEMORY = "load_memory"
    BUILD_REQUEST = "build_request"
    DISPATCH = "dispatch"
    VALIDATE = "validate"
    REPAIR = "repair"
    ENFORCE = "enforce"
    SYNTHESIZE = "synthesize"
    PERSIST = "persist"


class PersistenceResult(BaseModel):
    """Outcome of the memory write at the end of a pipeline run."""

    short_term: bool = False
    long_term: bool = False
    progress_recorded: bool = False
    facts_recorded: int = 0
    error: str | None = None

    @property
    def persisted(self) -> bool:
        return self.short_term and self.long_term


class PipelineState(TypedDict, total=False):
    """State carried between coordinator nodes."""

    request_id: str
    user_message: str
    user_timestamp: datetime
    metadata: dict[str, Any]
    decision: RoutingDecision
    memory: MemoryData
    request: CapabilityRequest
    response: CapabilityResponse
    specialist: CapabilityResponse
    fallback_used: bool
    safety: SafetyCheckResult
    persistence: PersistenceResult


PersistenceHook = Callable[[str, PersistenceResult], Awaitable[None] | None]


@dataclass
class SessionContext:
    """Per-session collaborators owned by the coordinator.

    Short-term memory and the fact ledger are hydrated from long-term memory
    the first time the session is processed.
    """

    session_id: str
    user_id: str
    long_term: LongTermMemory
    registry: CapabilityRegistry
    short_term: ShortTermMemory | None = None
    ledger: SessionFactLedger | None = None
    settings: Settings = field(default_factory=lambda: default_settings)
    hydrated: bool = False

    def __post_init__(self) -> None:
        if self.short_term is None:
            self.short_term = ShortTermMemory(self.settings.short_term_message_count)
        if self.ledger is None:
            self.ledger = SessionFactLedger(self.session_id)

    def hydrate(self, memory: MemoryData) -> None:
        """Rebuild short-term memory and the fact ledger from stored memory."""
        if self.hydrated:
            return
        if self.short_term.get_count() == 0:
            self.short_term = ShortTermMemory.from_history(
                memory.recent_messages, self.short_term.max_messages
            )
        if len(self.ledger) == 0:
            self.ledger = SessionFactLedger(self.session_id, memory.session_facts)
        self.hydrated = True

    async def clear(self) -> None:
        """Clear both memory tiers and the fact ledger."""
        self.short_term.clear()
        self.ledger.clear()
        await self.long_term.clear(self.session_id)


class CoordinatorAgent(WorkflowBase[PipelineState]):
    """Single entry point that turns a learner message into a tutor response."""

    def __init__(
        self,
        context: SessionContext,
        routing_engine: RoutingEngine | None = None,
        safety_engine: SafetyEngine | None = None,
        on_persistence_failure: PersistenceHook | None = None
    ):
        """Initialize the coordinator.

        Args:
            context: Session collaborators
            routing_engine: Intent classifier, pattern-based by default
            safety_engine: Response validator, default rules if omitted
            on_persistence_failure: Called when the memory write fails
        """
        super().__init__()
        self.context = context
        self.routing_engine = routing_engine or RoutingEngine()
        self.safety_engine = safety_engine or SafetyEngine(default_rules(context.settings))
        self.on_persistence_failure = on_persistence_failure

    @property
    def settings(self) -> Settings:
        return self.context.settings

    def build_graph(self) -> StateGraph:
        """Build the coordinator pipeline graph."""
        workflow = StateGraph(PipelineState)

        workflow.add_node(PipelineNode.ROUTE.value, self.route)
        workflow.add_node(PipelineNode.LOAD_MEMORY.value, self.load_memory)
        workflow.add_node(PipelineNode.BUILD_REQUEST.value, self.build_request)
        workflow.add_node(PipelineNode.DISPATCH.value, self.dispatch)
        workflow.add_node(PipelineNode.VALIDATE.value, self.validate)
        workflow.add_node(PipelineNode.REPAIR.value, self.repair)
        workflow.add_node(PipelineNode.ENFORCE.value, self.enforce)
        workflow.add_node(PipelineNode.SYNTHESIZE.value, self.synthesize)
        workflow.add_node(PipelineNode.PERSIST.value, self.persist)

        workflow.set_entry_point(PipelineNode.ROUTE.value)

        workflow.add_edge(PipelineNode.ROUTE.value, PipelineNode.LOAD_MEMORY.value)
        workflow.add_edge(PipelineNode.LOAD_MEMORY.value, PipelineNode.BUILD_REQUEST.value)
        workflow.add_edge(PipelineNode.BUILD_REQUEST.value, PipelineNode.DISPATCH.value)
        workflow.add_edge(PipelineNode.DISPATCH.value, PipelineNode.VALIDATE.value)

        workflow.add_conditional_edges(
            PipelineNode.VALIDATE.value,
            self._after_validate,
            {
                PipelineNode.REPAIR.value: PipelineNode.REPAIR.value,
                PipelineNode.ENFORCE.value: PipelineNode.ENFORCE.value,
            }
        )
        workflow.add_edge(PipelineNode.REPAIR.value, PipelineNode.ENFORCE.value)

        workflow.add_conditional_edges(
            PipelineNode.ENFORCE.value,
            self._after_enforce,
            {
                PipelineNode.SYNTHESIZE.value: PipelineNode.SYNTHESIZE.value,
                PipelineNode.PERSIST.value: PipelineNode.PERSIST.value,
            }
        )
        workflow.add_edge(PipelineNode.SYNTHESIZE.value, PipelineNode.PERSIST.value)
        workflow.add_edge(PipelineNode.PERSIST.value, END)

        return workflow

    async def process(
        self,
        user_message: str,
        metadata: dict[str, Any] | None = None
    ) -> CapabilityResponse:
        """Run the full pipeline for one learner message.

        Args:
            user_message: Raw learner message
            metadata: Optional hints such as the current ``exercise``

        Returns:
            Final response, already persisted on a best-effort basis

        Raises:
            CoordinatorError: If neither the capability nor the fallback responded
        """
        metadata = dict(metadata or {})
        request_id = metadata.get("request_id") or RequestMetadata().request_id
        logger.info(
            f"[REQ-{request_id}] Processing message for session {self.context.session_id}"
        )

        initial_state: PipelineState = {
            "request_id": request_id,
            "user_message": user_message,
            "user_timestamp": utc_now(),
            "metadata": metadata,
            "fallback_used": False,
        }

        final_state = await self.aexecute(initial_state)
        response = final_state["response"]

        logger.info(
            f"[REQ-{request_id}] Responded with {response.capability.value} "
            f"(persisted={getattr(response.metadata, 'persisted', False)})"
        )
        return response

    async def route(self, state: PipelineState) -> PipelineState:
        decision = self.routing_engine.route(
            state["user_message"],
            {"session_id": self.context.session_id, "user_id": self.context.user_id},
        )
        logger.info(
            f"[REQ-{state['request_id']}] Routed to {decision.capability.value} "
            f"({decision.intent.value}, confidence {decision.confidence})"
        )
        return {"decision": decision}

    async def load_memory(self, state: PipelineState) -> PipelineState:
        try:
            memory = await self.context.long_term.load(self.context.session_id)
        except Exception as e:
            logger.warning(
                f"[REQ-{state['request_id']}] Could not load long-term memory, "
                f"continuing with an empty profile: {e}"
            )
            memory = None

        if memory is None:
            memory = MemoryData()

        self.context.hydrate(memory)
        return {"memory": memory}

    async def build_request(self, state: PipelineState) -> PipelineState:
        decision = state["decision"]
        memory = state["memory"]
        metadata = state["metadata"]
        entities = decision.entities

        user_answer = metadata.get("user_answer")
        if decision.intent == Intent.SUBMIT_ANSWER and not user_answer:
            user_answer = state["user_message"]

        request = CapabilityRequest(
            capability=decision.capability,
            task=decision.task,
            input=CapabilityInput(
                message=state["user_message"],
                session_id=self.context.session_id,
                user_id=self.context.user_id,
                topic=entities.get("topic") or memory.current_topic,
                level=entities.get("level") or (
                    memory.current_difficulty.value if memory.current_difficulty else None
                ),
                exercise=metadata.get("exercise"),
                user_answer=user_answer,
                performance_history=memory.progress_history,
                student_profile=memory.to_profile(),
                conversation_history=self.context.short_term.get_messages(),
            ),
            metadata=RequestMetadata(
                request_id=state["request_id"],
                intent=decision.intent.value,
                **{key: metadata[key] for key in FORWARDED_HINTS if key in metadata},
            ),
        )
        return {"request": request}

    async def dispatch(self, state: PipelineState) -> PipelineState:
        request = state["request"]
        request_id = state["request_id"]

        try:
            handler = self.context.registry.get(request.capability)
            response = await self._invoke(handler.handle(request))
            return {"response": response, "specialist": response}
        except Exception as e:
            logger.warning(
                f"[REQ-{request_id}] Capability {request.capability.value} failed, "
                f"falling back to {DEFAULT_CAPABILITY.value}: {e!r}"
            )

        fallback_request = self._default_request(
            request,
            FALLBACK_TEMPLATE.format(message=state["user_message"]),
            fallback_from=request.capability.value,
        )
        try:
            response = await self._invoke(self.context.registry.default.handle(fallback_request))
        except Exception as e:
            logger.error(f"[REQ-{request_id}] Fallback capability failed: {e!r}")
            raise CoordinatorError(
                f"No capability could handle the message for session {self.context.session_id}"
            ) from e

        return {"response": response, "specialist": response, "fallback_used": True}

    async def validate(self, state: PipelineState) -> PipelineState:
        result = self.safety_engine.check_response(state["response"], self.context.ledger)
        if result.warnings:
            logger.info(f"[REQ-{state['request_id']}] Safety warnings: {result.warnings}")
        return {"safety": result}

    async def repair(self, state: PipelineState) -> PipelineState:
        """Ask the tutor to rewrite an unsafe response, once."""
        request_id = state["request_id"]
        original = state["response"]
        issues = state["safety"].issues

        repair_request = self._default_request(
            state["request"],
            REPAIR_TEMPLATE.format(text=original.text),
            safety_issues=issues,
        )
        try:
            repaired = await self._invoke(self.context.registry.default.handle(repair_request))
        except Exception as e:
            logger.warning(f"[REQ-{request_id}] Repair failed, keeping original response: {e!r}")
            return {}

        recheck = self.safety_engine.check_response(repaired, self.context.ledger)
        if not recheck.safe:
            logger.warning(
                f"[REQ-{request_id}] Response still unsafe after repair: {recheck.issues}"
            )
        return {"response": repaired, "safety": recheck}

    async def enforce(self, state: PipelineState) -> PipelineState:
        return {"response": self._enforced(state["response"])}

    async def synthesize(self, state: PipelineState) -> PipelineState:
        """Restate specialist output in the tutor's voice."""
        specialist = state["response"]
        synthesis_request = self._default_request(
            state["request"],
            SYNTHESIS_TEMPLATE.format(text=specialist.text),
            synthesis_of=specialist.capability.value,
        )
        try:
            synthesized = await self._invoke(
                self.context.registry.default.handle(synthesis_request)
            )
        except Exception as e:
            logger.warning(
                f"[REQ-{state['request_id']}] Synthesis failed, keeping "
                f"{specialist.capability.value} response: {e!r}"
            )
            return {}

        response = self._enforced(synthesized)
        response = response.model_copy(update={
            "metadata": response.metadata.model_copy(
                update={"synthesized_from": specialist.capability}
            )
        })
        return {"response": response}

    async def persist(self, state: PipelineState) -> PipelineState:
        """Append the exchange to both memory tiers and update the profile."""
        response = state["response"]
        result = await self._persist_exchange(state)

        if not result.persisted:
            await self._report_persistence_failure(result)

        metadata = response.metadata.model_copy(update={
            "request_id": state["request_id"],
            "persisted": result.persisted,
        })
        return {
            "response": response.model_copy(update={"metadata": metadata}),
            "persistence": result,
        }

    async def _persist_exchange(self, state: PipelineState) -> PersistenceResult:
        session_id = self.context.session_id
        response = state["response"]
        user_timestamp = state["user_timestamp"]

        user_message = Message(
            role=MessageRole.USER,
            content=state["user_message"],
            timestamp=user_timestamp,
        )
        assistant_message = Message(
            role=MessageRole.ASSISTANT,
            content=response.text,
            timestamp=max(utc_now(), user_timestamp),
        )

        self.context.short_term.add_message(user_message)
        self.context.short_term.add_message(assistant_message)
        result = PersistenceResult(short_term=True)

        recorded = self.context.ledger.record_statements(response.text)
        result.facts_recorded = len(recorded)

        try:
            entry = self._progress_entry(state)
            await self.context.long_term.record_exchange(
                session_id,
                [user_message, assistant_message],
                self._profile_updates(state),
                entry,
            )
            result.progress_recorded = entry is not None
            result.long_term = True
        except Exception as e:
            logger.error(
                f"[REQ-{state['request_id']}] Failed to persist long-term memory "
                f"for session {session_id}: {e}"
            )
            result.error = str(e)

        return result

    def _profile_updates(self, state: PipelineState) -> dict[str, Any]:
        request = state["request"]
        specialist = state.get("specialist")
        updates: dict[str, Any] = {"session_facts": self.context.ledger.facts}

        if request.input.topic:
            updates["current_topic"] = request.input.topic

        difficulty = None
        if specialist is not None and specialist.capability == CapabilityTag.DIFFICULTY_ADVISOR:
            difficulty = LEVEL_TO_DIFFICULTY.get(getattr(specialist.output, "new_level", None) or "")
        if difficulty is None:
            difficulty = LEVEL_TO_DIFFICULTY.get(state["decision"].entities.get("level", ""))
        if difficulty is not None:
            updates["current_difficulty"] = difficulty

        exercise = request.input.exercise or {}
        if exercise.get("id"):
            updates["current_exercise_id"] = str(exercise["id"])

        return updates

    def _progress_entry(self, state: PipelineState) -> ProgressEntry | None:
        """Progress entry for an evaluated answer, None when correctness is unknown."""
        specialist = state.get("specialist")
        if specialist is None or specialist.capability != CapabilityTag.EVALUATOR:
            return None

        is_correct = getattr(specialist.output, "is_correct", None)
        if not isinstance(is_correct, bool):
            return None

        request = state["request"]
        memory = state["memory"]
        diagnosis = getattr(specialist.output, "diagnosis", None)
        return ProgressEntry(
            topic=getattr(specialist.output, "topic", None) or request.input.topic or "general",
            exercise_id=getattr(specialist.output, "exercise_id", None),
            correct=is_correct,
            difficulty=memory.current_difficulty or DifficultyLevel.MEDIUM,
            errors=[] if is_correct or not diagnosis else [diagnosis],
        )

    async def _report_persistence_failure(self, result: PersistenceResult) -> None:
        if self.on_persistence_failure is None:
            return
        try:
            outcome = self.on_persistence_failure(self.context.session_id, result)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(f"Persistence failure hook raised: {e}")

    def _default_request(
        self,
        request: CapabilityRequest,
        message: str,
        **hints: Any
    ) -> CapabilityRequest:
        """Request for the default tutor, derived from the current one."""
        return request.model_copy(update={
            "capability": DEFAULT_CAPABILITY,
            "task": TaskType.TEACH,
            "input": request.input.model_copy(update={"message": message}),
            "metadata": RequestMetadata(
                request_id=request.metadata.request_id,
                phase="general",
                **hints,
            ),
        })

    def _enforced(self, response: CapabilityResponse) -> CapabilityResponse:
        return response.with_text(
            enforce_identity(
                response.text,
                max_length=self.settings.max_response_length,
                forbidden_phrases=self.settings.forbidden_phrases,
            )
        )

    async def _invoke(self, call: Awaitable[CapabilityResponse]) -> CapabilityResponse:
        return await asyncio.wait_for(call, timeout=self.settings.capability_timeout_seconds)

    @staticmethod
    def _after_validate(state: PipelineState) -> str:
        if state["safety"].safe:
            return PipelineNode.ENFORCE.value
        return PipelineNode.REPAIR.value

    @staticmethod
    def _after_enforce(state: PipelineState) -> str:
        if state["response"].capability == DEFAULT_CAPABILITY:
            return PipelineNode.PERSIST.value
        return PipelineNode.SYNTHESIZE.value
