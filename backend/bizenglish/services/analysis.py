"""
Conversation Analysis

analyze() is a pure summary of a transcript (counts, word totals, a
qualitative length bucket). analyze_conversation() optionally asks the
chat completion model for coaching notes and falls back to analyze() on
any provider problem.
"""
import logging
from typing import Sequence
from ..config import settings
from ..core.errors import ConfigurationError, ProviderUnavailableError
from ..schemas.conversation import Turn
from .text_generation import chat_completion

logger = logging.getLogger("uvicorn.error")

BRIEF_MAX_TURNS = 4      # fewer turns than this -> "brief"
MODERATE_MAX_TURNS = 10  # fewer turns than this -> "moderate", otherwise "extended"


def exchange_bucket(turn_count: int) -> str:
    if turn_count < BRIEF_MAX_TURNS:
        return "brief"
    if turn_count < MODERATE_MAX_TURNS:
        return "moderate"
    return "extended"


def _word_count(text: str) -> int:
    return len(text.split())


def analyze(turns: Sequence[Turn]) -> str:
    """Deterministic plain-text summary of a transcript."""
    total = len(turns)
    user_turns = [t for t in turns if t.role == "user"]
    assistant_turns = total - len(user_turns)
    total_words = sum(_word_count(t.content) for t in turns)
    user_words = sum(_word_count(t.content) for t in user_turns)
    average = round(total_words / total) if total else 0
    bucket = exchange_bucket(total)

    key_points = []
    if not total:
        key_points.append("No dialogue was captured in this session")
    elif bucket == "brief":
        key_points.append("This was a brief exchange; try to keep the conversation going for longer")
    elif bucket == "moderate":
        key_points.append("A solid exchange with several turns on each side")
    else:
        key_points.append("An extended conversation, great sustained practice")
    if user_turns:
        user_average = round(user_words / len(user_turns))
        if user_average < 6:
            key_points.append("Your answers were short; practise giving fuller, more detailed responses")
        else:
            key_points.append(f"Your answers averaged {user_average} words, showing good elaboration")
    elif total:
        key_points.append("None of your own speech was captured; check your microphone")

    lines = [
        "Conversation Summary:",
        f"- Exchange length: {bucket}",
        f"- Total exchanges: {total}",
        f"- User messages: {len(user_turns)}",
        f"- AI responses: {assistant_turns}",
        f"- Total words: {total_words}",
        f"- Average message length: {average} words",
        "",
        "Key Points:",
    ]
    lines.extend(f"- {point}" for point in key_points)
    return "\n".join(lines)


ANALYSIS_PROMPT = """You are a business English coach. Review the transcript of a practice conversation between a learner ("User") and an AI business persona ("AI").

Write a short analysis for the learner in plain text (no markdown headings), under 200 words:
- two or three things they did well
- two or three concrete language improvements, quoting what they said and a better alternative
- one suggestion for their next practice session"""


async def analyze_conversation(turns: Sequence[Turn]) -> str:
    """Analysis for a finished session; uses the provider when enabled, never fails."""
    local = analyze(turns)
    if not settings.enable_ai_analysis or not turns:
        return local
    transcript = "\n".join(
        f"{'AI' if t.role == 'assistant' else 'User'}: {t.content}" for t in turns
    )
    try:
        coaching = await chat_completion.complete(
            ANALYSIS_PROMPT,
            [{"role": "user", "content": transcript}],
            temperature=0.4,
            max_tokens=400,
        )
    except (ConfigurationError, ProviderUnavailableError) as e:
        logger.warning("[analysis] provider analysis failed (%s), using local summary", e)
        return local
    if not coaching.strip():
        return local
    return f"{local}\n\nCoach's Notes:\n{coaching.strip()}"
