"""Sentence-packing text splitter with character overlap."""
import re

DEFAULT_MAX_SIZE = 1000
DEFAULT_OVERLAP = 200

_WHITESPACE = re.compile(r"\s+")
# A unit ends at a run of terminators followed by a space or end of text.
# Terminators inside a token ("1.2", "e.g.x") stay in the unit.
_SENTENCE = re.compile(r".*?[.!?]+(?:\s|$)|.+$")


def normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", text or "").strip()


def split_sentences(text: str) -> list[str]:
    """Sentence units of already-normalized text, trailing space included."""
    return _SENTENCE.findall(text)


def smart_split(text: str, max_size: int = DEFAULT_MAX_SIZE, overlap: int = DEFAULT_OVERLAP) -> list[str]:
    """
    Greedily pack sentences into chunks of at most `max_size` characters.
    Each new chunk starts with the last `overlap` characters of the previous one.
    A sentence longer than `max_size` is kept whole, so the bound is soft.
    """
    chunks: list[str] = []
    current = ""
    for sentence in split_sentences(normalize(text)):
        if len(current + sentence) <= max_size:
            current += sentence
            continue
        if current.strip():
            chunks.append(current.strip())
        tail = current[-overlap:] if overlap > 0 else ""
        current = tail + sentence
    if current.strip():
        chunks.append(current.strip())
    return chunks


def drop_short_chunks(chunks: list[str], min_length: int) -> list[str]:
    """Filter out running headers, page numbers and similar layout noise."""
    return [c for c in chunks if len(c.strip()) >= min_length]
