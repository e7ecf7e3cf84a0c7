"""Long-term memory models: the per-session profile and progress history."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .messages import Message, utc_now


class DifficultyLevel(str, Enum):
    """Exercise difficulty ladder, easiest first."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    CHALLENGE = "challenge"


class ProgressEntry(BaseModel):
    """One graded attempt. Progress history is append-only."""

    timestamp: datetime = Field(default_factory=utc_now)
    topic: str = Field(..., description="Topic the attempt belongs to")
    exercise_id: str | None = None
    correct: bool = Field(..., description="Whether the attempt was correct")
    difficulty: DifficultyLevel = DifficultyLevel.MEDIUM
    time_spent: float | None = Field(None, description="Seconds spent")
    errors: list[str] = Field(default_factory=list)


class StudentProfile(BaseModel):
    """Learner profile handed to capabilities."""

    level: str | None = None
    goals: list[str] = Field(default_factory=list)
    exam_date: str | None = None
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    learning_style: str | None = None
    current_topic: str | None = None
    current_difficulty: DifficultyLevel | None = None


class MemoryData(BaseModel):
    """Durable per-session memory.

    Created on the first message of a session, updated after every pipeline
    run and only removed by an explicit session clear.
    """

    recent_messages: list[Message] = Field(default_factory=list)

    # Current state
    current_topic: str | None = None
    current_difficulty: DifficultyLevel | None = None
    current_exercise_id: str | None = None

    # Long-term profile
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    progress_history: list[ProgressEntry] = Field(default_factory=list)
    learning_style: str | None = None
    goals: list[str] = Field(default_factory=list)
    exam_date: str | None = None

    # Statements the tutor has asserted, used for contradiction checks
    session_facts: list[str] = Field(default_factory=list)

    # Metadata
    last_updated: datetime = Field(default_factory=utc_now)
    created_at: datetime = Field(default_factory=utc_now)

    def to_profile(self) -> StudentProfile:
        """Project the stored memory onto the profile capabilities consume."""
        return StudentProfile(
            level=self.current_difficulty.value if self.current_difficulty else None,
            goals=list(self.goals),
            exam_date=self.exam_date,
            strengths=list(self.strengths),
            weaknesses=list(self.weaknesses),
            learning_style=self.learning_style,
            current_topic=self.current_topic,
            current_difficulty=self.current_difficulty,
        )
