"""
Tutor agent: one chat turn from message history to a TutorResponse.

prompt (build_prompt) -> completion (CompletionClient) -> next steps
(extract_next_steps) -> response envelope. `process` never raises; any
failure becomes a `success=False` response with a fixed apology.
"""

from __future__ import annotations

import logging
import time

from tutor.errors import ValidationError
from tutor.gemini_client import CompletionClient
from tutor.next_steps import extract_next_steps
from tutor.prompts import build_prompt
from tutor.schemas import TutorMetadata, TutorRequest, TutorResponse

logger = logging.getLogger(__name__)

APOLOGY = "I apologize, but I encountered an error. Could you please rephrase your question?"

# Fixed value reported on success. Nothing is estimated.
PLACEHOLDER_CONFIDENCE = 0.9


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.perf_counter() - start) * 1000))


def validate_request(request: TutorRequest) -> None:
    if not request.messages:
        raise ValidationError("No messages provided")
    if not request.messages[-1].content.strip():
        raise ValidationError("Invalid message format")


class TutorAgent:
    def __init__(self, client: CompletionClient) -> None:
        self.client = client

    async def generate(self, request: TutorRequest) -> str:
        prompt = build_prompt(request.messages, request.context)
        return await self.client.complete(prompt)

    async def process(self, request: TutorRequest) -> TutorResponse:
        start = time.perf_counter()
        try:
            validate_request(request)
            text = await self.generate(request)
            steps = extract_next_steps(text)
            return TutorResponse(
                success=True,
                responseText=text,
                metadata=TutorMetadata(
                    processingTimeMs=_elapsed_ms(start),
                    confidenceScore=PLACEHOLDER_CONFIDENCE,
                    suggestedNextSteps=steps,
                    topic=request.context.topic,
                ),
            )
        except Exception:
            logger.exception("Tutor agent failed")
            return TutorResponse(
                success=False,
                responseText=APOLOGY,
                metadata=TutorMetadata(
                    processingTimeMs=_elapsed_ms(start),
                    confidenceScore=0.0,
                    topic=request.context.topic,
                ),
            )
