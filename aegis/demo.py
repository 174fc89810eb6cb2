"""Placeholder content for degraded mode (no credentials or unreachable backends)."""

from aegis.models import Metric, ModelResponse

DEMO_BACKEND = "demo"

# Used for placeholder reports and whenever a judge response cannot be parsed.
PLACEHOLDER_SCORES: dict[Metric, float] = {
    Metric.CLARITY: 0.85,
    Metric.HALLUCINATION: 0.25,
    Metric.BIAS: 0.15,
    Metric.TOXICITY: 0.05,
    Metric.INTENT_ALIGNMENT: 0.88,
}

PLACEHOLDER_EXPLANATION = "Intent alignment could not be determined from the judge response."


def demo_answer(prompt: str) -> ModelResponse:
    """Answer shown when no consensus backends are configured."""
    return ModelResponse(
        content=(
            "Demo mode: no model backends are configured, so this is not a live answer.\n\n"
            f"Your question was: \"{prompt}\"\n\n"
            "Add API keys for the consensus backends to your .env file to get real answers."
        ),
        backend=DEMO_BACKEND,
        model=DEMO_BACKEND,
    )


def apology_answer(reason: str) -> ModelResponse:
    """Answer shown when every backend and its fallback failed."""
    return ModelResponse(
        content=(
            "Sorry, I couldn't get an answer from the language models right now. "
            "Please try again in a moment.\n\n"
            f"Details: {reason}"
        ),
        backend=DEMO_BACKEND,
        model=DEMO_BACKEND,
    )
