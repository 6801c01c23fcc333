from __future__ import annotations

BULLET_MARKERS = ("- ", "* ")
MAX_NEXT_STEPS = 3


def extract_next_steps(text: str, limit: int = MAX_NEXT_STEPS) -> list[str]:
    """Pull up to `limit` bullet lines ("- foo" / "* foo") out of a model reply, in order."""
    steps: list[str] = []
    for raw in (text or "").splitlines():
        if len(steps) >= limit:
            break
        line = raw.strip()
        for marker in BULLET_MARKERS:
            if line.startswith(marker):
                step = line[len(marker) :].strip()
                if step:
                    steps.append(step)
                break
    return steps
