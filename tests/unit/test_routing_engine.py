"""Unit tests for the routing engine."""

import pytest

from kaelo.core.domain.capabilities import CapabilityTag, TaskType
from kaelo.core.domain.routing import Intent, RoutingDecision
from kaelo.governor.routing.classifier import Classifier, EntityExtractor
from kaelo.governor.routing.engine import RoutingEngine


class TestRoutingEngine:
    """Intent detection and capability selection."""

    def setup_method(self):
        self.engine = RoutingEngine()

    @pytest.mark.parametrize("message,intent,capability", [
        ("I think the answer is mitochondria", Intent.SUBMIT_ANSWER, CapabilityTag.EVALUATOR),
        ("b) 42", Intent.SUBMIT_ANSWER, CapabilityTag.EVALUATOR),
        ("I don't understand this at all", Intent.SIGNAL_CONFUSION, CapabilityTag.CONVERSATIONAL),
        ("Give me an exercise on fractions", Intent.REQUEST_EXERCISE, CapabilityTag.CONTENT_EXPERT),
        ("Quiz me on my understanding", Intent.REQUEST_EXERCISE, CapabilityTag.CONTENT_EXPERT),
        ("Make a study plan for next week", Intent.REQUEST_PLAN, CapabilityTag.PLANNER),
        ("Why was that wrong?", Intent.REVIEW_MISTAKE, CapabilityTag.CONVERSATIONAL),
        ("How am I doing so far", Intent.CHECK_PROGRESS, CapabilityTag.ANALYZER),
        ("This is too easy", Intent.ADJUST_DIFFICULTY, CapabilityTag.DIFFICULTY_ADVISOR),
        ("I want to give up", Intent.NEED_MOTIVATION, CapabilityTag.MOTIVATOR),
        ("I want to learn about algebra", Intent.DIAGNOSTIC, CapabilityTag.CONVERSATIONAL),
        ("What is photosynthesis", Intent.ASK_QUESTION, CapabilityTag.CONVERSATIONAL),
    ])
    def test_intents(self, message, intent, capability):
        decision = self.engine.route(message)

        assert decision.intent == intent
        assert decision.capability == capability
        assert decision.confidence == 0.8

    def test_answer_takes_priority_over_question(self):
        """Submitting an answer wins over the trailing question mark."""
        decision = self.engine.route("It is 12?")

        assert decision.intent == Intent.SUBMIT_ANSWER
        assert decision.task == TaskType.EVALUATE

    def test_confusion_takes_priority_over_exercise_request(self):
        decision = self.engine.route("I'm confused, give me an easier question")

        assert decision.intent == Intent.SIGNAL_CONFUSION

    def test_unmatched_message_is_general_chat(self):
        decision = self.engine.route("hello there")

        assert decision.intent == Intent.GENERAL_CHAT
        assert decision.capability == CapabilityTag.CONVERSATIONAL
        assert decision.task == TaskType.TEACH
        assert decision.confidence == 0.5

    def test_empty_message_still_routes(self):
        decision = self.engine.route("")

        assert decision.intent == Intent.GENERAL_CHAT

    def test_routing_is_deterministic(self):
        first = self.engine.route("Give me a practice problem about the water cycle")
        second = self.engine.route("Give me a practice problem about the water cycle")

        assert first == second

    def test_capability_for_task(self):
        assert self.engine.capability_for_task(TaskType.PLAN) == CapabilityTag.PLANNER
        assert self.engine.capability_for_task(TaskType.EXPLAIN) == CapabilityTag.CONTENT_EXPERT

    def test_custom_classifier(self):
        class AlwaysMotivate(Classifier):
            def classify(self, message, context=None):
                return RoutingDecision(
                    intent=Intent.NEED_MOTIVATION,
                    capability=CapabilityTag.MOTIVATOR,
                    task=TaskType.MOTIVATE,
                    confidence=1.0,
                )

        engine = RoutingEngine(AlwaysMotivate())

        assert engine.route("anything").capability == CapabilityTag.MOTIVATOR


class TestEntityExtractor:
    """Topic and level extraction."""

    def setup_method(self):
        self.extractor = EntityExtractor()

    def test_topic_after_about(self):
        entities = self.extractor.extract("Give me an exercise about photosynthesis")

        assert entities["topic"] == "photosynthesis"

    def test_trailing_filler_words_dropped(self):
        entities = self.extractor.extract("Teach me fractions please")

        assert entities["topic"] == "fractions"

    def test_level(self):
        entities = self.extractor.extract("I'm a Beginner in chemistry")

        assert entities["level"] == "beginner"

    def test_nothing_extracted(self):
        assert self.extractor.extract("hello there") == {}
