"""
Provider Response Decoder

Turns free-form model output into validated FlashCards. Models wrap JSON in
prose or code fences often enough that json.loads on the whole text is not
an option, so the first well-formed JSON array is located and decoded.

Contract: raw string in, List[FlashCard] out, ParseError when nothing usable.
"""
import json
from typing import Any, Iterator, List, Optional
from ..core.errors import ParseError
from ..schemas.conversation import CEFR_LEVELS, FlashCard

DEFAULT_LEVEL = "B1"
DEFAULT_TOPIC_TAG = "business_general"

# Alternative spellings models (and older client builds) use for our fields
_ALIASES = {
    "example_sentence": ("example_sentence", "exampleSentence", "example"),
    "translation": ("translation", "german_translation", "germanTranslation"),
    "common_mistake": ("common_mistake", "commonMistake"),
    "correction": ("correction",),
    "proficiencyLevel": ("proficiencyLevel", "proficiency_level", "cefr_level", "cefrLevel", "level"),
    "topicTag": ("topicTag", "topic_tag", "topic"),
}


def iter_json_arrays(raw: str) -> Iterator[list]:
    """Yield every JSON array that decodes cleanly from a '[' in `raw`, in order."""
    decoder = json.JSONDecoder()
    idx = raw.find("[")
    while idx != -1:
        try:
            value, _ = decoder.raw_decode(raw, idx)
        except ValueError:
            value = None
        if isinstance(value, list):
            yield value
        idx = raw.find("[", idx + 1)


def extract_first_json_array(raw: str) -> Optional[list]:
    return next(iter_json_arrays(raw), None)


def normalize_level(value: Any) -> str:
    """Map a provider-supplied level onto the CEFR set, defaulting to B1."""
    if isinstance(value, str):
        level = value.strip().upper()
        if level in CEFR_LEVELS:
            return level
    return DEFAULT_LEVEL


def _pick(item: dict, field: str) -> str:
    for key in _ALIASES[field]:
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _to_card(item: Any) -> Optional[FlashCard]:
    if not isinstance(item, dict):
        return None
    term = item.get("term") or item.get("front")
    definition = item.get("definition") or item.get("back")
    if not isinstance(term, str) or not isinstance(definition, str):
        return None
    if not term.strip() or not definition.strip():
        return None
    return FlashCard(
        term=term.strip(),
        definition=definition.strip(),
        example_sentence=_pick(item, "example_sentence"),
        translation=_pick(item, "translation"),
        common_mistake=_pick(item, "common_mistake"),
        correction=_pick(item, "correction"),
        proficiencyLevel=normalize_level(_pick(item, "proficiencyLevel")),
        topicTag=_pick(item, "topicTag") or DEFAULT_TOPIC_TAG,
    )


def decode_flashcards(raw: str) -> List[FlashCard]:
    """
    Decode model output into flashcards.

    - Uses the first well-formed JSON array holding at least one valid card
      (an array nested inside an object such as {"flashcards": [...]} counts)
    - Drops entries that are not objects or lack term/definition
    - Unknown proficiency levels become B1 rather than being persisted verbatim

    Raises:
        ParseError: no array found, or no entry survived validation
    """
    if not raw or not raw.strip():
        raise ParseError("Empty provider response")

    found_array = False
    for items in iter_json_arrays(raw):
        found_array = True
        cards = [card for card in (_to_card(item) for item in items) if card is not None]
        if cards:
            return cards

    if not found_array:
        raise ParseError("No JSON array found in provider response")
    raise ParseError("Provider response contained no valid flashcards")
