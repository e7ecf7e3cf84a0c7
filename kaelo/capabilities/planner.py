"""Study plan generation."""

from ..core.domain.capabilities import CapabilityRequest, CapabilityResponse, CapabilityTag
from ..core.domain.memory import StudentProfile
from .base import ModelBackedCapability

PLAN_TYPES = (
    "daily",
    "weekly",
    "monthly",
    "exam_prep",
    "quick_revision",
    "weakness_remediation",
    "crash_course",
)


class PlannerCapability(ModelBackedCapability):
    """Builds personalised learning plans from the student profile."""

    instruction = """You are the Planner. Your role is to create personalized learning plans.
- Build realistic, achievable plans
- Consider student's goals, timeline, and available time
- Sequence topics logically
- Include exercises and checkpoints
- Adapt difficulty based on student level"""

    @property
    def tag(self) -> CapabilityTag:
        return CapabilityTag.PLANNER

    async def handle(self, request: CapabilityRequest) -> CapabilityResponse:
        plan_type = getattr(request.metadata, "plan_type", None)
        if plan_type not in PLAN_TYPES:
            plan_type = "exam_prep" if "exam" in request.input.message.lower() else "weekly"

        profile = request.input.student_profile or StudentProfile()
        prompt = (
            f"Create a {plan_type} learning plan for:\n"
            f"{profile.model_dump_json(exclude_none=True)}\n\n"
            f"The student asked: {request.input.message}\n\n"
            f"Provide a structured plan with clear goals and timeline."
        )

        result = await self.prompt(prompt)
        return self.respond(
            request,
            result.text,
            model_used=result.model,
            action="plan_created",
            metadata={"plan_type": plan_type},
        )
