"""Tests for query and filter functions."""

from xml_sibling_indexer import index_text
from xml_sibling_indexer.index import all_disambiguated, annotation_label, at_line, in_range

DOCUMENT = "\n".join([
    "<list>",           # line 0
    "  <item/>",        # line 1
    "  <item/>",        # line 2
    "  <title/>",       # line 3
    "  <item/><item/>",  # line 4
    "</list>",
])


class TestAllDisambiguated:
    """Test selection of ambiguous occurrences."""

    def test_only_repeated_siblings(self):
        result = all_disambiguated(index_text(DOCUMENT))
        assert [occ.tag for occ in result] == ["item"] * 4

    def test_document_order(self):
        result = all_disambiguated(index_text(DOCUMENT))
        assert [occ.order_in_group for occ in result] == [1, 2, 3, 4]

    def test_nothing_ambiguous(self):
        assert all_disambiguated(index_text("<a><b/><c/></a>")) == []


class TestInRange:
    """Test visible range filtering."""

    def test_single_range(self):
        occurrences = index_text(DOCUMENT).occurrences
        assert [occ.line for occ in in_range(occurrences, [(1, 2)])] == [1, 2]

    def test_multiple_ranges_inclusive(self):
        occurrences = all_disambiguated(index_text(DOCUMENT))
        assert [occ.line for occ in in_range(occurrences, [(1, 1), (4, 9)])] == [1, 4, 4]

    def test_empty_ranges(self):
        assert in_range(index_text(DOCUMENT).occurrences, []) == []

    def test_inverted_range_ignored(self):
        occurrences = index_text(DOCUMENT).occurrences
        assert in_range(occurrences, [(3, 1)]) == []
        assert [occ.line for occ in in_range(occurrences, [(3, 1), (3, 3)])] == [3]


class TestAtLine:
    """Test cursor line lookup."""

    def test_ambiguous_on_line(self):
        occ = at_line(index_text(DOCUMENT).occurrences, 2)
        assert occ.tag == "item"
        assert occ.order_in_group == 2

    def test_first_on_line_wins(self):
        occ = at_line(index_text(DOCUMENT).occurrences, 4)
        assert occ.order_in_group == 3

    def test_unambiguous_line(self):
        assert at_line(index_text(DOCUMENT).occurrences, 3) is None

    def test_line_without_tags(self):
        assert at_line(index_text(DOCUMENT).occurrences, 42) is None


class TestAnnotationLabel:
    """Test annotation label rendering."""

    def test_tag_mode(self):
        occ = at_line(index_text(DOCUMENT).occurrences, 2)
        assert annotation_label(occ) == "[item #2]"

    def test_number_mode(self):
        occ = at_line(index_text(DOCUMENT).occurrences, 2)
        assert annotation_label(occ, number_mode=True) == f"#{occ.id}"
        assert occ.id == 3
