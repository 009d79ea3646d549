from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from assistant.core.media import CapturedFrame


SYSTEM_PROMPT = (
    "You are TalkToPic, a friendly visual assistant. "
    "Answer questions about the image or live video frame the user shares. "
    "Describe only what is visible, say so when something is unclear, "
    "and keep answers concise enough to be read aloud."
)

# (value, label) pairs shown in the quick prompt selector.
PREDEFINED_PROMPTS: List[Tuple[str, str]] = [
    ("describe", "What do you see in this image/video?"),
    ("detailed", "Describe the scene in detail"),
    ("actions", "What actions are taking place?"),
    ("identify", "Identify objects and people in the scene"),
    ("mood", "What's the mood or atmosphere?"),
    ("stepbystep", "Explain what's happening step by step"),
    ("colors", "Describe the colors and lighting"),
    ("setting", "What kind of setting or location is this?"),
]


def frame_context(current: CapturedFrame, previous: Iterable[CapturedFrame]) -> Optional[str]:
    """Timestamp context for a live video turn.

    ``previous`` is the frame buffer as it was before ``current`` was captured.
    Only the two frames preceding the newest buffered one are named.
    """
    frames = list(previous)
    if len(frames) <= 1:
        return None
    earlier = ", ".join(f.timestamp for f in frames[-3:-1])
    return (
        "This is a live video feed. I'm showing you the current frame "
        f"captured at {current.timestamp}. Previous frames were captured at: {earlier}."
    )
