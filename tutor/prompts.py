from __future__ import annotations

from collections.abc import Sequence

from tutor.errors import ValidationError
from tutor.schemas import Message, TutorContext

# Number of earlier messages shown to the model as short-term context.
CONTEXT_WINDOW = 3


TUTOR_TEMPLATE = """Act as a knowledgeable and supportive AI tutor.

Learner profile:
- Learning style: {learning_style}
- Difficulty level: {difficulty}
- Interests: {interests}
- Topic: {topic}

Previous context:
{history}

Current question:
{question}

Provide a response that:
1. Directly answers the question
2. Explains concepts clearly with examples when needed
3. Uses a supportive and encouraging tone
4. Checks for understanding
5. Suggests next steps or related topics to explore, each on its own line starting with "- "
"""


def _format_history(messages: Sequence[Message]) -> str:
    if not messages:
        return "(none)"
    return "\n".join(f"{m.role.value}: {m.content}" for m in messages)


def build_prompt(messages: Sequence[Message], context: TutorContext | None = None) -> str:
    """
    Render the tutoring prompt for the latest message.

    The last message is the question; up to CONTEXT_WINDOW messages before it
    are included as "<role>: <content>" lines.
    """
    if not messages:
        raise ValidationError("No messages provided")

    ctx = context or TutorContext()
    *earlier, current = messages
    history = earlier[-CONTEXT_WINDOW:]

    return TUTOR_TEMPLATE.format(
        learning_style=ctx.learningStyle or "general",
        difficulty=ctx.difficulty.value,
        interests=", ".join(ctx.interests) or "general topics",
        topic=ctx.topic or "not specified",
        history=_format_history(history),
        question=current.content,
    )
