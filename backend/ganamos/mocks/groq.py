"""Mock GROQ vision — heuristic fix verification without calling the model.

Invariants:
    - Confidence from the relative size difference of the two image data URLs:
      under 5% -> 6, under 15% -> 7, otherwise 8
    - A fix keyword in the description lifts a confidence of 7 or more to 9
    - Confidence never drops below 5
    - Verification ids are sequential: groq-verify-1, groq-verify-2, ...
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

FIX_KEYWORDS = ("clean", "repair", "fix", "remove", "paint", "restore", "replace")
PREVIEW_LIMIT = 100

_SIMILAR = (
    "The before and after images appear very similar in content. While some "
    "work may have been done, the change is not clearly visible. Consider "
    "providing images with more distinct differences."
)
_SOME_CHANGE = (
    "The images show some differences, suggesting work was performed. The fix "
    "appears to address the reported issue, though the improvement could be "
    "more pronounced."
)
_CLEAR_CHANGE = (
    "The before and after images show clear differences. The reported issue "
    "appears to have been addressed effectively. The fix demonstrates visible "
    "improvement to the community space."
)
_KEYWORD_MATCH = (
    "The before and after images show substantial improvement. The description "
    "aligns well with the visual changes, indicating the issue was properly "
    "addressed. This fix makes a clear positive impact."
)


@dataclass
class MockVerification:
    verification_id: str
    before_image: str
    after_image: str
    title: str
    description: str
    confidence: int
    reasoning: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _preview(data_url: str) -> str:
    if len(data_url) <= PREVIEW_LIMIT:
        return data_url
    return data_url[:PREVIEW_LIMIT] + "...[truncated]"


def assess_fix(before_image: str, after_image: str, description: str) -> tuple[int, str]:
    """Confidence (1-10) and reasoning for a before/after pair."""
    largest = max(len(before_image), len(after_image))
    diff_percent = (
        abs(len(before_image) - len(after_image)) / largest * 100 if largest else 0
    )
    if diff_percent < 5:
        confidence, reasoning = 6, _SIMILAR
    elif diff_percent < 15:
        confidence, reasoning = 7, _SOME_CHANGE
    else:
        confidence, reasoning = 8, _CLEAR_CHANGE

    lowered = description.lower()
    if confidence >= 7 and any(keyword in lowered for keyword in FIX_KEYWORDS):
        confidence, reasoning = 9, _KEYWORD_MATCH
    return max(confidence, 5), reasoning


class MockGroqStore:
    def __init__(self):
        self._verifications: dict[str, MockVerification] = {}
        self._counter = 1

    def verify_fix(
        self, before_image: str, after_image: str, description: str, title: str,
    ) -> MockVerification:
        confidence, reasoning = assess_fix(before_image, after_image, description)
        verification = MockVerification(
            verification_id=f"groq-verify-{self._counter}",
            before_image=_preview(before_image),
            after_image=_preview(after_image),
            title=title,
            description=description,
            confidence=confidence,
            reasoning=reasoning,
        )
        self._counter += 1
        self._verifications[verification.verification_id] = verification
        return verification

    def all(self) -> list[MockVerification]:
        return list(self._verifications.values())

    def reset(self) -> None:
        self._verifications.clear()
        self._counter = 1


mock_groq_store = MockGroqStore()
