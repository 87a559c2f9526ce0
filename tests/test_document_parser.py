"""Tests for shared.helper.document_parser"""

from shared.helper.document_parser import parse_document


class TestParseDocument:

    def test_metadata_block_and_body(self):
        doc = parse_document("title: Sky\nsource: test\n---\nThe sky is blue.\n")
        assert doc.metadata == {"title": "Sky", "source": "test"}
        assert doc.text == "The sky is blue."

    def test_no_separator_means_all_body(self):
        doc = parse_document("  Just a plain document.\n\n")
        assert doc.metadata == {}
        assert doc.text == "Just a plain document."

    def test_splits_at_first_separator_only(self):
        doc = parse_document("a: 1\n---\nfirst\n---\nsecond")
        assert doc.metadata == {"a": "1"}
        assert doc.text == "first\n---\nsecond"

    def test_value_keeps_colons_after_the_first(self):
        doc = parse_document("url: http://example.com:8080/x\n---\nbody")
        assert doc.metadata == {"url": "http://example.com:8080/x"}

    def test_blank_and_colonless_lines_ignored(self):
        doc = parse_document("\nauthor: Ada\nnot metadata\n: no key\n---\nbody")
        assert doc.metadata == {"author": "Ada"}

    def test_empty_value_kept(self):
        doc = parse_document("draft:\n---\nbody")
        assert doc.metadata == {"draft": ""}

    def test_separator_at_start_is_not_metadata(self):
        # a leading "---" has no preceding newline, so there is no metadata block
        doc = parse_document("---\nbody only")
        assert doc.metadata == {}
        assert doc.text == "---\nbody only"

    def test_empty_body(self):
        doc = parse_document("title: empty\n---\n   ")
        assert doc.text == ""
