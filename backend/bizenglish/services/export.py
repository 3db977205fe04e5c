"""
Flashcard export formats for the study view's download buttons.
"""
from typing import Sequence
from ..schemas.conversation import FlashCard

CSV_HEADERS = (
    "Term", "Definition", "Example", "Translation",
    "Common Mistake", "Correction", "CEFR Level", "Topic",
)


def _quote(value: str) -> str:
    return '"' + (value or "").replace('"', '""') + '"'


def flashcards_to_csv(cards: Sequence[FlashCard]) -> str:
    """CSV with every field quoted and inner quotes doubled."""
    rows = [",".join(CSV_HEADERS)]
    for c in cards:
        rows.append(",".join(_quote(v) for v in (
            c.term, c.definition, c.example_sentence, c.translation,
            c.common_mistake, c.correction, c.proficiencyLevel, c.topicTag,
        )))
    return "\n".join(rows)


def _tsv_field(value: str) -> str:
    # Tabs and newlines would break the Anki import columns
    return (value or "").replace("\t", " ").replace("\r", " ").replace("\n", " ")


def flashcards_to_anki(cards: Sequence[FlashCard]) -> str:
    """Tab-separated Anki import: front, HTML back, mistake, correction, tag."""
    lines = []
    for c in cards:
        back = (
            f"{c.definition}<br><br><b>Example:</b> {c.example_sentence}"
            f"<br><b>Translation:</b> {c.translation}<br><b>Level:</b> {c.proficiencyLevel}"
        )
        lines.append("\t".join(_tsv_field(v) for v in (
            c.term, back, c.common_mistake, c.correction, c.topicTag,
        )))
    return "\n".join(lines)
