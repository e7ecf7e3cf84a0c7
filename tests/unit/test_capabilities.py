"""Unit tests for the capability handlers and registry."""

import pytest

from conftest import ScriptedCapability, StubModelProvider, make_request
from kaelo.capabilities.analyzer import AnalyzerCapability
from kaelo.capabilities.base import CapabilityError
from kaelo.capabilities.content import ContentExpertCapability
from kaelo.capabilities.conversational import (
    DIAGNOSTIC_INSTRUCTION,
    PRACTICE_INSTRUCTION,
    REEXPLANATION_INSTRUCTION,
    ConversationalCapability,
    detect_confusion,
    extract_steps,
)
from kaelo.capabilities.difficulty import DifficultyAdvisorCapability, shift_level
from kaelo.capabilities.evaluator import EvaluatorCapability, check_correctness
from kaelo.capabilities.motivator import TRIGGER_PROMPTS, MotivatorCapability
from kaelo.capabilities.planner import PlannerCapability
from kaelo.capabilities.registry import CapabilityRegistry, build_default_registry
from kaelo.core.domain.capabilities import CapabilityTag, RequestMetadata, TaskType
from kaelo.core.domain.memory import DifficultyLevel, ProgressEntry, StudentProfile
from kaelo.core.domain.messages import Message, MessageRole
from kaelo.core.llm.base import ModelOverloadedError
from kaelo.safety.identity import SYSTEM_INSTRUCTION


def history(*contents: str) -> list[Message]:
    roles = [MessageRole.USER, MessageRole.ASSISTANT]
    return [Message(role=roles[i % 2], content=c) for i, c in enumerate(contents)]


def progress(*results: bool, topic: str = "algebra") -> list[ProgressEntry]:
    return [ProgressEntry(topic=topic, correct=r) for r in results]


class TestConversationalCapability:
    """Phase selection and teaching behaviour."""

    def setup_method(self):
        self.provider = StubModelProvider()
        self.capability = ConversationalCapability(self.provider)

    @pytest.mark.asyncio
    async def test_new_learner_gets_diagnostic(self):
        response = await self.capability.handle(make_request(message="hi"))

        assert response.metadata.phase == "diagnostic"
        assert self.provider.requests[0].system_instruction.endswith(DIAGNOSTIC_INSTRUCTION)
        assert self.provider.requests[0].system_instruction.startswith(SYSTEM_INSTRUCTION)

    @pytest.mark.asyncio
    async def test_short_history_stays_diagnostic(self):
        request = make_request(
            student_profile=StudentProfile(level="easy"),
            conversation_history=history("hi", "hello"),
        )

        response = await self.capability.handle(request)

        assert response.metadata.phase == "diagnostic"

    @pytest.mark.asyncio
    async def test_teaching_extracts_steps(self):
        self.provider.replies = ["1. Light hits the leaf\n2. Sugar is made\nReady?"]
        request = make_request(
            message="tell me more",
            student_profile=StudentProfile(level="medium"),
            conversation_history=history("a", "b", "c"),
        )

        response = await self.capability.handle(request)

        assert response.metadata.phase == "teaching"
        assert response.output.steps == ["Light hits the leaf", "Sugar is made"]
        # History first, then the current message
        sent = self.provider.requests[0].messages
        assert [m["content"] for m in sent] == ["a", "b", "c", "tell me more"]

    @pytest.mark.asyncio
    async def test_confusion_triggers_reexplanation(self):
        request = make_request(
            message="I don't get it",
            student_profile=StudentProfile(level="medium"),
            conversation_history=history("a", "b", "c"),
        )

        response = await self.capability.handle(request)

        assert response.metadata.phase == "re-explanation"
        assert response.metadata.confusion_detected is True
        assert self.provider.requests[0].system_instruction.endswith(REEXPLANATION_INSTRUCTION)

    @pytest.mark.asyncio
    async def test_practice_answer_feedback(self):
        request = make_request(
            message="it is 42",
            student_profile=StudentProfile(level="medium"),
            conversation_history=history("a", "Here is a question: 6 x 7?", "c"),
        )

        response = await self.capability.handle(request)

        assert response.metadata.phase == "practice"
        assert self.provider.requests[0].messages[-1]["content"] == "My answer: it is 42"
        assert self.provider.requests[0].system_instruction.endswith(PRACTICE_INSTRUCTION)

    @pytest.mark.asyncio
    async def test_phase_hint_wins(self):
        request = make_request().model_copy(
            update={"metadata": RequestMetadata(phase="general")}
        )

        response = await self.capability.handle(request)

        assert response.metadata.phase == "general"
        assert self.provider.requests[0].system_instruction == SYSTEM_INSTRUCTION

    @pytest.mark.asyncio
    async def test_model_failure_raises_capability_error(self):
        self.provider.replies = [ModelOverloadedError("busy")]

        with pytest.raises(CapabilityError):
            await self.capability.handle(make_request())

    def test_repeated_errors_count_as_confusion(self):
        assert detect_confusion("ok", history("That's wrong", "x", "still incorrect"))
        assert not detect_confusion("ok", history("That's wrong", "x", "fine"))

    def test_extract_steps_formats(self):
        text = "Step 1: Read\n- Think\n3. Answer"

        assert sorted(extract_steps(text)) == ["Answer", "Read", "Think"]


class TestContentExpertCapability:
    @pytest.mark.asyncio
    async def test_exercise_generation(self):
        provider = StubModelProvider(["Question: 2 + 3?\n\nHint: count up"])
        capability = ContentExpertCapability(provider)

        response = await capability.handle(
            make_request(CapabilityTag.CONTENT_EXPERT, TaskType.GENERATE, topic="addition")
        )

        assert "Create one practice exercise" in provider.requests[0].messages[0]["content"]
        assert response.output.key_points == ["Question: 2 + 3?", "Hint: count up"]
        assert response.output.topic == "addition"
        assert response.metadata.model_used == "stub-model"

    @pytest.mark.asyncio
    async def test_explanation_content(self):
        provider = StubModelProvider()
        capability = ContentExpertCapability(provider)

        await capability.handle(make_request(CapabilityTag.CONTENT_EXPERT, TaskType.EXPLAIN))

        assert provider.requests[0].messages[0]["content"].startswith("Generate content for:")


class TestEvaluatorCapability:
    """Correctness is only decided against an expected answer."""

    @pytest.mark.asyncio
    async def test_correct_answer(self):
        capability = EvaluatorCapability(StubModelProvider(["Well done!"]))
        request = make_request(
            CapabilityTag.EVALUATOR,
            TaskType.EVALUATE,
            message="I think the answer is mitochondria",
            exercise={"id": "ex1", "answer": "mitochondria", "topic": "biology"},
        )

        response = await capability.handle(request)

        assert response.output.is_correct is True
        assert response.output.diagnosis == "fully_understood"
        assert response.output.confidence_score == 0.9
        assert response.output.exercise_id == "ex1"
        assert response.output.topic == "biology"
        assert response.output.feedback == "Well done!"

    @pytest.mark.asyncio
    async def test_incorrect_answer(self):
        capability = EvaluatorCapability(StubModelProvider())
        request = make_request(
            CapabilityTag.EVALUATOR,
            TaskType.EVALUATE,
            user_answer="ribosome",
            exercise={"id": "ex1", "answer": "mitochondria"},
        )

        response = await capability.handle(request)

        assert response.output.is_correct is False
        assert response.output.diagnosis == "partially_understood"

    @pytest.mark.asyncio
    async def test_no_exercise_leaves_correctness_unknown(self):
        capability = EvaluatorCapability(StubModelProvider())

        response = await capability.handle(
            make_request(CapabilityTag.EVALUATOR, TaskType.EVALUATE, message="It is 4")
        )

        assert response.output.is_correct is None
        assert response.output.diagnosis is None

    def test_check_correctness(self):
        assert check_correctness({"answer": "Paris"}, "paris")
        assert check_correctness({"answer": "Paris"}, "I believe it's Paris")
        assert not check_correctness({"answer": "Paris"}, "London")
        assert check_correctness({}, "anything") is None

    def test_check_correctness_matches_whole_words(self):
        assert check_correctness({"answer": "a"}, "the answer is b") is False
        assert check_correctness({"answer": "a"}, "I pick a") is True
        assert check_correctness({"answer": "3.14"}, "pi is about 3.14!") is True
        assert check_correctness({"answer": "cat"}, "concatenate") is False

    @pytest.mark.asyncio
    async def test_exercise_without_answer_leaves_correctness_unknown(self):
        capability = EvaluatorCapability(StubModelProvider())
        request = make_request(
            CapabilityTag.EVALUATOR,
            TaskType.EVALUATE,
            user_answer="ribosome",
            exercise={"id": "ex1", "topic": "biology"},
        )

        response = await capability.handle(request)

        assert response.output.is_correct is None
        assert response.output.diagnosis is None


class TestDifficultyAdvisorCapability:
    """Recommendations from the last five attempts."""

    def setup_method(self):
        self.capability = DifficultyAdvisorCapability()

    async def advise(self, history_entries, **fields):
        request = make_request(
            CapabilityTag.DIFFICULTY_ADVISOR,
            TaskType.ADJUST,
            performance_history=history_entries,
            **fields,
        )
        return await self.capability.handle(request)

    @pytest.mark.asyncio
    async def test_increase(self):
        response = await self.advise(progress(True, True, True), level="easy")

        assert response.output.recommendation == "increase"
        assert response.output.new_level == "medium"

    @pytest.mark.asyncio
    async def test_decrease(self):
        response = await self.advise(progress(False, False), level="hard")

        assert response.output.recommendation == "decrease"
        assert response.output.new_level == "medium"

    @pytest.mark.asyncio
    async def test_only_recent_window_counts(self):
        # Five recent correct answers outweigh older mistakes
        response = await self.advise(progress(False, False, False, True, True, True, True, True))

        assert response.output.recommendation == "increase"
        assert response.metadata.recent_count == 5
        assert response.metadata.accuracy == 1.0

    @pytest.mark.asyncio
    async def test_maintain_with_two_correct(self):
        response = await self.advise(progress(True, True))

        assert response.output.recommendation == "maintain"
        assert response.output.new_level == "medium"

    @pytest.mark.asyncio
    async def test_profile_difficulty_used_when_level_missing(self):
        response = await self.advise(
            progress(True, True, True),
            student_profile=StudentProfile(current_difficulty=DifficultyLevel.HARD),
        )

        assert response.output.new_level == "challenge"

    @pytest.mark.asyncio
    async def test_no_history(self):
        response = await self.advise([])

        assert response.output.success is False
        assert response.output.recommendation == "maintain"
        assert response.text.endswith("Ready for a question?")

    def test_ladder_is_clamped(self):
        assert shift_level(DifficultyLevel.CHALLENGE, "increase") == DifficultyLevel.CHALLENGE
        assert shift_level(DifficultyLevel.EASY, "decrease") == DifficultyLevel.EASY


class TestMotivatorCapability:
    @pytest.mark.asyncio
    async def test_trigger_hint_selects_prompt(self):
        provider = StubModelProvider()
        request = make_request(CapabilityTag.MOTIVATOR, TaskType.MOTIVATE).model_copy(
            update={"metadata": RequestMetadata(trigger="streak_milestone")}
        )

        response = await MotivatorCapability(provider).handle(request)

        assert provider.requests[0].messages[0]["content"].startswith(
            TRIGGER_PROMPTS["streak_milestone"]
        )
        assert response.metadata.trigger == "streak_milestone"

    @pytest.mark.asyncio
    async def test_unknown_trigger_uses_default(self):
        provider = StubModelProvider()

        response = await MotivatorCapability(provider).handle(
            make_request(CapabilityTag.MOTIVATOR, TaskType.MOTIVATE)
        )

        assert response.metadata.trigger == "default"


class TestAnalyzerCapability:
    @pytest.mark.asyncio
    async def test_strengths_and_weaknesses(self):
        entries = progress(True, True, True, True, topic="algebra") + progress(
            False, False, True, topic="geometry"
        )
        request = make_request(
            CapabilityTag.ANALYZER, TaskType.ANALYZE, performance_history=entries
        )

        response = await AnalyzerCapability().handle(request)

        assert response.output.strengths == ["algebra"]
        assert response.output.weaknesses == ["geometry"]
        assert response.output.trend == "stable"
        assert response.output.stats["total_exercises"] == 7
        assert "71% accuracy" in response.text
        assert response.text.endswith("?")

    @pytest.mark.asyncio
    async def test_no_history(self):
        response = await AnalyzerCapability().handle(
            make_request(CapabilityTag.ANALYZER, TaskType.ANALYZE)
        )

        assert response.output.trend == "insufficient_data"
        assert response.output.strengths == []


class TestPlannerCapability:
    @pytest.mark.asyncio
    async def test_exam_plan_inferred(self):
        provider = StubModelProvider()

        response = await PlannerCapability(provider).handle(
            make_request(CapabilityTag.PLANNER, TaskType.PLAN, message="Plan for my exam")
        )

        assert response.metadata.plan_type == "exam_prep"
        assert response.output.action == "plan_created"

    @pytest.mark.asyncio
    async def test_plan_type_hint(self):
        provider = StubModelProvider()
        request = make_request(CapabilityTag.PLANNER, TaskType.PLAN).model_copy(
            update={"metadata": RequestMetadata(plan_type="daily")}
        )

        response = await PlannerCapability(provider).handle(request)

        assert response.metadata.plan_type == "daily"
        assert "Create a daily learning plan" in provider.requests[0].messages[0]["content"]

    @pytest.mark.asyncio
    async def test_defaults_to_weekly(self):
        response = await PlannerCapability(StubModelProvider()).handle(
            make_request(CapabilityTag.PLANNER, TaskType.PLAN, message="Plan my studies")
        )

        assert response.metadata.plan_type == "weekly"


class TestCapabilityRegistry:
    def test_default_registry_has_every_capability(self):
        registry = build_default_registry(StubModelProvider())

        assert set(registry.list_capabilities()) == set(CapabilityTag)
        assert registry.default.tag == CapabilityTag.CONVERSATIONAL

    def test_requires_default_capability(self):
        with pytest.raises(ValueError):
            CapabilityRegistry([ScriptedCapability(CapabilityTag.PLANNER)])

    def test_unknown_tag(self):
        registry = CapabilityRegistry([ScriptedCapability(CapabilityTag.CONVERSATIONAL)])

        assert CapabilityTag.PLANNER not in registry
        with pytest.raises(CapabilityError):
            registry.get(CapabilityTag.PLANNER)

    def test_reregistering_replaces_handler(self):
        first = ScriptedCapability(CapabilityTag.CONVERSATIONAL)
        second = ScriptedCapability(CapabilityTag.CONVERSATIONAL)
        registry = CapabilityRegistry([first])

        registry.register(second)

        assert registry.get(CapabilityTag.CONVERSATIONAL) is second
