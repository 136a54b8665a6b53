"""
Moderation and summarization collaborators.
"""

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from shared.errors import ServiceUnavailableError, ValidationError
from .client import FlowClient


class ModerationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_appropriate: bool = Field(..., alias="isAppropriate")
    moderated_text: str = Field(..., alias="moderatedText")


class ModerationClient(FlowClient):
    """Judges whether a chat message is fit for a professional setting.

    Inappropriate messages come back with offending words masked as
    ``****``. Empty or whitespace-only text is appropriate by definition and
    never reaches the flow server.
    """

    flow_name = "moderateChatFlow"

    async def moderate(self, text: str) -> ModerationResult:
        if not text.strip():
            self._record("skipped")
            return ModerationResult(is_appropriate=True, moderated_text="")

        result = await self.run_flow({"text": text})
        try:
            moderation = ModerationResult.model_validate(result)
        except PydanticValidationError as e:
            self.logger.error("Moderation result did not match the contract", error=str(e))
            raise ServiceUnavailableError(self.flow_name, "malformed moderation result") from e

        if not moderation.is_appropriate:
            self.logger.info("Message censored", original_length=len(text))
        return moderation


class SummarizationClient(FlowClient):
    """Condenses free-form user feedback into a short summary."""

    flow_name = "summarizeFeedbackFlow"

    async def summarize(self, feedback_text: str) -> str:
        if not feedback_text.strip():
            raise ValidationError("Feedback text must not be empty")

        result = await self.run_flow({"feedbackText": feedback_text})
        summary = result.get("summary")
        if not isinstance(summary, str):
            self.logger.error("Summary missing from flow result", keys=sorted(result))
            raise ServiceUnavailableError(self.flow_name, "malformed summarization result")
        return summary
