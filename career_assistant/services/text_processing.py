"""
Resume text processing: cleaning, section detection and chunking.

Sections are detected before chunking so a chunk never straddles two resume
sections, and every chunk can carry its section name into the index.
"""

import re
import unicodedata

# A header is a short line that is only the section name, optionally followed by ":"
SECTION_HEADERS: tuple[tuple[str, re.Pattern], ...] = tuple(
    (section, re.compile(rf"^(?:{pattern})\s*:?\s*$", re.IGNORECASE))
    for section, pattern in (
        ("skills", r"skills?|technical\s+skills?|core\s+competenc(?:y|ies)"),
        ("experience", r"experience|work\s+history|employment\s+history|professional\s+experience"),
        ("education", r"education|academic\s+background|degrees?|university|college"),
        ("projects", r"projects?|portfolio|key\s+projects?|notable\s+projects?"),
        ("summary", r"summary|objective|profile|about\s+me|professional\s+summary"),
        ("contact", r"contact|contact\s+information|reach\s+out"),
        ("languages", r"languages?|language\s+proficiency"),
        ("awards", r"awards?|honou?rs?|recognitions?|certifications?|certificates?"),
    )
)
MAX_HEADER_LENGTH = 100
DEFAULT_SECTION = "other"


def clean_text(text: str) -> str:
    """
    Normalize raw resume text.

    NFKC-normalizes, strips each line, drops consecutive duplicate lines and
    collapses runs of blank lines to one.
    """
    if not text or not text.strip():
        return ""
    text = unicodedata.normalize("NFKC", text)
    result: list[str] = []
    previous = None
    for line in (raw.strip() for raw in text.splitlines()):
        if line == previous:
            continue
        previous = line
        if line == "" and (not result or result[-1] == ""):
            continue
        result.append(line)
    return "\n".join(result).strip()


def _section_for(line: str) -> str | None:
    if not line or len(line) >= MAX_HEADER_LENGTH:
        return None
    for section, pattern in SECTION_HEADERS:
        if pattern.match(line):
            return section
    return None


def detect_sections(text: str) -> list[tuple[str, str]]:
    """
    Split resume text into (section, text) pairs in document order.

    Text before the first recognised header belongs to "other". Header lines
    themselves are not part of any section's text. Empty sections are dropped.
    """
    if not text or not text.strip():
        return []
    sections: list[tuple[str, str]] = []
    current = DEFAULT_SECTION
    buffer: list[str] = []
    for line in text.splitlines():
        header = _section_for(line.strip())
        if header is None:
            buffer.append(line)
            continue
        body = "\n".join(buffer).strip()
        if body:
            sections.append((current, body))
        current, buffer = header, []
    body = "\n".join(buffer).strip()
    if body:
        sections.append((current, body))
    return sections


def _overlap_tail(parts: list[str], overlap: int) -> list[str]:
    """Trailing parts of a finished chunk that fit in `overlap` characters."""
    tail: list[str] = []
    size = 0
    for part in reversed(parts):
        if size + len(part) + 1 > overlap:
            break
        tail.append(part)
        size += len(part) + 1
    tail.reverse()
    return tail


def _pack(units: list[str], chunk_size: int, overlap: int, chunks: list[str], current: list[str]) -> list[str]:
    """Greedily pack units into chunks; returns the unfinished trailing parts."""
    for unit in units:
        length = sum(len(p) for p in current) + len(current)  # joined length + separator for unit
        if current and length + len(unit) > chunk_size:
            chunks.append(" ".join(current))
            current = _overlap_tail(current, overlap)
        if len(unit) > chunk_size:
            # Oversized sentence: fall back to word boundaries
            current = _pack(unit.split(), chunk_size, overlap, chunks, current)
        else:
            current.append(unit)
    return current


def chunk_text(text: str, chunk_size: int = 500, overlap: int = 50) -> list[str]:
    """
    Split text into chunks of at most ~chunk_size characters on sentence
    boundaries, carrying up to `overlap` characters of trailing sentences into
    the next chunk. Sentences longer than chunk_size are split on words.
    """
    if not text or not text.strip():
        return []
    text = text.strip()
    if len(text) <= chunk_size:
        return [text]

    sentences = [s.strip() for s in re.split(r"(?<=[.!?])\s+|\n+", text) if s.strip()]
    chunks: list[str] = []
    rest = _pack(sentences, chunk_size, overlap, chunks, [])
    if rest:
        chunks.append(" ".join(rest))
    return chunks
