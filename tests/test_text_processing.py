"""
Unit tests for resume text processing: clean_text, detect_sections and chunk_text.
"""

from career_assistant.services.text_processing import chunk_text, clean_text, detect_sections

RESUME = """Jane Doe
jane@example.com

Summary
Backend engineer with eight years of Python experience.

EXPERIENCE:
Acme Corp, Senior Engineer, 2019-2023.
Built data pipelines.

Technical Skills
Python, Django, PostgreSQL

Certifications
AWS Solutions Architect
"""


class TestCleanText:
    """Tests for clean_text()."""

    def test_empty_returns_empty(self) -> None:
        assert clean_text("") == ""
        assert clean_text("   ") == ""
        assert clean_text("\n\n") == ""

    def test_strips_lines_and_dedupes(self) -> None:
        assert clean_text("  Python   \n\n  Django  ") == "Python\n\nDjango"
        assert clean_text("Skills\n  Skills  \nPython") == "Skills\nPython"

    def test_collapses_blank_runs(self) -> None:
        assert clean_text("Summary\n\n\n\nEngineer.") == "Summary\n\nEngineer."

    def test_nfkc_normalization(self) -> None:
        assert clean_text("Ｐｙｔｈｏｎ") == "Python"  # fullwidth letters


class TestDetectSections:
    """Tests for detect_sections()."""

    def test_splits_on_headers_in_order(self) -> None:
        sections = detect_sections(clean_text(RESUME))
        assert [name for name, _ in sections] == ["other", "summary", "experience", "skills", "awards"]
        assert sections[0][1] == "Jane Doe\njane@example.com"
        assert "Acme Corp" in sections[2][1]
        assert sections[3][1] == "Python, Django, PostgreSQL"

    def test_header_lines_are_not_content(self) -> None:
        for _, body in detect_sections(RESUME):
            assert not body.lower().startswith(("summary", "experience", "technical skills"))

    def test_inline_mentions_are_not_headers(self) -> None:
        text = "Experience with Python and Go.\nSkills: Python, Go"
        assert detect_sections(text) == [("other", text)]

    def test_no_headers_is_all_other(self) -> None:
        assert detect_sections("Just some text.") == [("other", "Just some text.")]

    def test_empty_sections_dropped(self) -> None:
        assert detect_sections("Education\n\nProjects\nCompiler in Rust") == [("projects", "Compiler in Rust")]
        assert detect_sections("") == []


class TestChunkText:
    """Tests for chunk_text()."""

    def test_empty_returns_empty_list(self) -> None:
        assert chunk_text("") == []
        assert chunk_text("   ") == []

    def test_short_text_returns_single_chunk(self) -> None:
        short = "This is a short paragraph."
        assert chunk_text(short, chunk_size=500, overlap=50) == [short]

    def test_long_text_produces_multiple_chunks(self) -> None:
        text = " ".join(f"Sentence number {i} here." for i in range(25))
        chunks = chunk_text(text, chunk_size=80, overlap=15)
        assert len(chunks) >= 2
        for c in chunks:
            assert len(c) <= 80 + 20  # chunk_size + overlap slack

    def test_overlap_carries_trailing_sentence(self) -> None:
        text = "Alpha one. Beta two. Gamma three. Delta four. Epsilon five."
        chunks = chunk_text(text, chunk_size=25, overlap=12)
        assert len(chunks) >= 2
        assert chunks[1].startswith(chunks[0].split(". ")[-1])

    def test_oversized_sentence_splits_on_words(self) -> None:
        text = " ".join(["word"] * 60) + "."
        chunks = chunk_text(text, chunk_size=50, overlap=0)
        assert len(chunks) > 1
        assert all(len(c) <= 50 for c in chunks)
        assert " ".join(chunks).split() == text.split()

    def test_chunks_are_stripped_and_non_empty(self) -> None:
        text = "First sentence. Second sentence. Third sentence. Fourth. Fifth."
        for c in chunk_text(text, chunk_size=40, overlap=10):
            assert c.strip() == c and len(c) > 0
