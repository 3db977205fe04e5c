"""
Flashcard Generation Service

Two strategies, chosen by FLASHCARD_STRATEGY (never by the caller):
1. keyword  - scan the transcript for entries of a fixed business vocabulary
2. provider - ask the chat completion model for cards, decode defensively,
              fall back to keyword matching on any failure

Both strategies return at least MIN_FLASHCARDS cards so the study view
always has something to show.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import List, Sequence, Tuple
from ..config import settings
from ..core.errors import ConfigurationError, ParseError, ProviderUnavailableError
from ..schemas.conversation import FlashCard, Turn
from .flashcard_decoder import decode_flashcards
from .text_generation import chat_completion

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class VocabularyEntry:
    card: FlashCard
    keywords: Tuple[str, ...]  # Lower-case surface forms matched on word boundaries

    def matches(self, text: str) -> bool:
        return any(
            re.search(r"\b" + re.escape(k) + r"(s|es)?\b", text) for k in self.keywords
        )


def _entry(term, definition, example, translation, mistake, correction, level, tag, *keywords) -> VocabularyEntry:
    card = FlashCard(
        term=term,
        definition=definition,
        example_sentence=example,
        translation=translation,
        common_mistake=mistake,
        correction=correction,
        proficiencyLevel=level,
        topicTag=tag,
    )
    return VocabularyEntry(card=card, keywords=tuple(k.lower() for k in (term, *keywords)))


# Order matters: the first entries double as the default set used for padding
VOCABULARY: Tuple[VocabularyEntry, ...] = (
    _entry(
        "synergy",
        "The interaction of two or more agents or forces so that their combined effect is greater than the sum of their individual effects.",
        "The merger created synergy between the two companies' operations.",
        "Synergie",
        "Using it to mean simple cooperation",
        "Use it when referring to combined efforts producing greater results",
        "C1", "business_general",
        "synergies",
    ),
    _entry(
        "stakeholder",
        "A person with an interest or concern in something, especially a business.",
        "We need to consider all stakeholders before making this decision.",
        "Interessenvertreter",
        "Confusing with shareholder",
        "Stakeholder includes anyone affected, not just owners",
        "B2", "business_general",
    ),
    _entry(
        "quarterly review",
        "A formal assessment of performance or progress conducted every three months.",
        "The quarterly review showed significant improvement in sales.",
        "Quartalsüberprüfung",
        "Saying 'quarter review'",
        "Always use 'quarterly' as the adjective",
        "B2", "meetings",
    ),
    _entry(
        "KPI",
        "Key Performance Indicator: a metric used to evaluate how successfully an objective is being met.",
        "Customer retention is our most important KPI this year.",
        "Leistungskennzahl",
        "Saying 'a KPIs' or 'KPI's' for the plural",
        "Write the plural as 'KPIs' without an apostrophe",
        "B2", "performance",
        "key performance indicator",
    ),
    _entry(
        "ROI",
        "Return on Investment: a measure of the profitability of an investment.",
        "The campaign delivered an ROI of 150 percent.",
        "Kapitalrendite",
        "Saying 'return of investment'",
        "The preposition is 'on': return on investment",
        "B2", "finance",
        "return on investment",
    ),
    _entry(
        "deadline",
        "The latest time or date by which something should be completed.",
        "Can we push the deadline back to Friday?",
        "Frist",
        "Saying 'the deadline is until Friday'",
        "Say 'the deadline is Friday' or 'we have until Friday'",
        "A2", "project_management",
    ),
    _entry(
        "negotiate",
        "To try to reach an agreement through formal discussion.",
        "We negotiated a 10 percent discount with the supplier.",
        "verhandeln",
        "Saying 'negotiate about the price'",
        "Negotiate takes a direct object: 'negotiate the price'",
        "B1", "negotiation",
        "negotiation", "negotiating", "negotiated",
    ),
    _entry(
        "leverage",
        "To use something to maximum advantage.",
        "We can leverage our existing customer base to launch the new product.",
        "nutzen, einsetzen",
        "Overusing it where 'use' is clearer",
        "Reserve 'leverage' for gaining extra advantage from a resource",
        "C1", "strategy",
    ),
    _entry(
        "benchmark",
        "A standard or point of reference against which things may be compared.",
        "Our response times are well below the industry benchmark.",
        "Maßstab",
        "Using it only as a verb",
        "It works as both noun and verb: 'a benchmark', 'to benchmark'",
        "B2", "performance",
    ),
    _entry(
        "follow up",
        "To take further action or contact someone again about an earlier matter.",
        "I'll follow up with the client after the meeting.",
        "nachfassen",
        "Writing the verb with a hyphen: 'I will follow-up'",
        "Verb: 'follow up'; noun or adjective: 'a follow-up'",
        "B1", "communication",
        "follow-up", "following up",
    ),
    _entry(
        "agenda",
        "A list of items to be discussed at a formal meeting.",
        "Let's move on to the next item on the agenda.",
        "Tagesordnung",
        "Using 'agenda' to mean a personal diary",
        "A diary or calendar is a 'schedule'; an agenda lists meeting topics",
        "A2", "meetings",
    ),
    _entry(
        "deliverable",
        "A tangible or intangible product produced as a result of a project.",
        "The first deliverable is due at the end of the month.",
        "Liefergegenstand",
        "Using it as an adjective: 'a deliverable report'",
        "Use it as a noun: 'the report is a deliverable'",
        "B2", "project_management",
    ),
    _entry(
        "budget",
        "An estimate of income and expenditure for a set period of time.",
        "We are still within budget for this quarter.",
        "Budget, Haushalt",
        "Saying 'in the budget' to mean not overspending",
        "Say 'within budget' or 'on budget'",
        "A2", "finance",
    ),
    _entry(
        "revenue",
        "Income that a business receives from its normal business activities.",
        "Revenue grew by 12 percent year on year.",
        "Umsatz",
        "Confusing revenue with profit",
        "Revenue is total income; profit is what remains after costs",
        "B1", "finance",
    ),
    _entry(
        "onboarding",
        "The process of integrating a new employee or customer into an organization.",
        "Our onboarding programme takes two weeks.",
        "Einarbeitung",
        "Saying 'onboard process'",
        "Use the noun 'onboarding process'",
        "B2", "hr",
        "onboard",
    ),
    _entry(
        "feedback",
        "Information about reactions to a product or a person's performance, used as a basis for improvement.",
        "Thanks for the feedback on my presentation.",
        "Rückmeldung",
        "Saying 'a feedback' or 'feedbacks'",
        "Feedback is uncountable: 'some feedback', 'a piece of feedback'",
        "A2", "communication",
    ),
)


def _conversation_text(turns: Sequence[Turn]) -> str:
    return "\n".join(t.content for t in turns).lower()


def pad_flashcards(cards: List[FlashCard], minimum: int) -> List[FlashCard]:
    """Append default vocabulary entries (in table order) until `minimum` cards exist."""
    padded = list(cards)
    seen = {c.term.lower() for c in padded}
    for entry in VOCABULARY:
        if len(padded) >= minimum:
            break
        if entry.card.term.lower() not in seen:
            padded.append(entry.card.model_copy())
            seen.add(entry.card.term.lower())
    return padded


def default_flashcards(minimum: int | None = None) -> List[FlashCard]:
    """The fixed demonstration set returned when there is nothing to analyze."""
    return pad_flashcards([], minimum or settings.min_flashcards)


def keyword_flashcards(turns: Sequence[Turn], minimum: int | None = None) -> List[FlashCard]:
    """
    Match the transcript against the vocabulary table (case-insensitive).

    Matched entries come first, in table order; the result is padded with the
    first table entries when fewer than `minimum` matched.
    """
    minimum = settings.min_flashcards if minimum is None else minimum
    text = _conversation_text(turns)
    matched = [entry.card.model_copy() for entry in VOCABULARY if text and entry.matches(text)]
    return pad_flashcards(matched, minimum)


FLASHCARD_PROMPT = """You are a business English teacher. Read the conversation transcript between a learner ("user") and an AI business persona ("assistant") and create vocabulary flashcards for the learner.

Pick 3 to 8 useful business terms or phrases that appear in the conversation or that the learner clearly needed.

Return ONLY a JSON array, no prose, where each element has exactly these keys:
{
  "term": "the word or phrase",
  "definition": "plain English definition",
  "example_sentence": "a business example sentence",
  "translation": "German translation",
  "common_mistake": "a typical learner mistake with this term",
  "correction": "how to fix that mistake",
  "proficiencyLevel": "one of A1, A2, B1, B2, C1, C2",
  "topicTag": "short snake_case topic such as meetings or finance"
}"""


def _transcript_for_prompt(turns: Sequence[Turn]) -> str:
    return json.dumps([{"role": t.role, "content": t.content} for t in turns], ensure_ascii=False)


async def provider_flashcards(turns: Sequence[Turn], minimum: int | None = None) -> List[FlashCard]:
    """
    Ask the text generation provider for flashcards.

    Raises:
        ConfigurationError, ProviderUnavailableError, ParseError
    """
    minimum = settings.min_flashcards if minimum is None else minimum
    raw = await chat_completion.complete(
        FLASHCARD_PROMPT,
        [{"role": "user", "content": f"Transcript:\n{_transcript_for_prompt(turns)}"}],
        temperature=0.3,
    )
    cards = decode_flashcards(raw)
    return pad_flashcards(cards, minimum)


async def make_flashcards(turns: Sequence[Turn]) -> List[FlashCard]:
    """Generate flashcards with the configured strategy; never fails."""
    if settings.flashcard_strategy == "provider" and turns:
        try:
            cards = await provider_flashcards(turns)
            logger.info("[flashcards] provider generated %d cards", len(cards))
            return cards
        except (ConfigurationError, ProviderUnavailableError, ParseError) as e:
            logger.warning("[flashcards] provider strategy failed (%s), using keyword match", e)
    return keyword_flashcards(turns)
