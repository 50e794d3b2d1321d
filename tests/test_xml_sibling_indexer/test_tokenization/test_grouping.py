"""Tests for sibling grouping."""

from xml_sibling_indexer.tokenization import (
    ROOT_ID,
    SiblingGrouper,
    TagOccurrence,
    group_siblings,
    groups_of,
    tokenize,
)


def grouped(text):
    return group_siblings(tokenize(text))


class TestSiblingGrouper:
    """Test ordinal and size assignment."""

    def test_repeated_siblings(self):
        """Test the classic <a><b/><b/><c/></a> example."""
        result = grouped("<a><b/><b/><c/></a>")
        assert [(occ.tag, occ.order_in_group, occ.group_size) for occ in result] == [
            ("a", 1, 1), ("b", 1, 2), ("b", 2, 2), ("c", 1, 1),
        ]

    def test_same_tag_under_different_parents(self):
        """Test groups are scoped by parent."""
        result = grouped("<r><p><i/><i/></p><p><i/></p></r>")
        items = [occ for occ in result if occ.tag == "i"]

        assert [(occ.order_in_group, occ.group_size) for occ in items] == [
            (1, 2), (2, 2), (1, 1),
        ]
        paragraphs = [occ for occ in result if occ.tag == "p"]
        assert [(occ.order_in_group, occ.group_size) for occ in paragraphs] == [(1, 2), (2, 2)]

    def test_interleaved_siblings(self):
        result = grouped("<r><x/><y/><x/><y/><x/></r>")
        xs = [occ.order_in_group for occ in result if occ.tag == "x"]
        ys = [occ.order_in_group for occ in result if occ.tag == "y"]
        assert xs == [1, 2, 3]
        assert ys == [1, 2]

    def test_ordinals_cover_each_group(self):
        """Test ordinals in each group are exactly 1..size in document order."""
        result = grouped("<r>" + "<e/><f><e/><e/></f>" * 3 + "</r>")
        for members in groups_of(result).values():
            assert [occ.order_in_group for occ in members] == list(range(1, len(members) + 1))
            assert {occ.group_size for occ in members} == {len(members)}

    def test_order_and_identity_preserved(self):
        occurrences = tokenize("<a><b/><b/></a>")
        result = SiblingGrouper("cid").group(occurrences)

        assert [occ.id for occ in result] == [occ.id for occ in occurrences]
        assert [occ.offset for occ in result] == [occ.offset for occ in occurrences]
        # Input occurrences are left untouched
        assert all(occ.group_size == 0 for occ in occurrences)

    def test_empty_input(self):
        assert group_siblings([]) == []

    def test_accepts_iterators(self):
        result = SiblingGrouper().group(iter(tokenize("<a/><a/>")))
        assert [occ.group_size for occ in result] == [2, 2]


class TestGroupsOf:
    """Test group collection."""

    def test_groups_keyed_by_parent_and_tag(self):
        occurrences = [
            TagOccurrence(1, "a", 0, 0),
            TagOccurrence(2, "b", 3, 0, parent_id=1),
            TagOccurrence(3, "b", 7, 0, parent_id=1),
        ]
        groups = groups_of(occurrences)

        assert set(groups) == {(ROOT_ID, "a"), (1, "b")}
        assert [occ.id for occ in groups[(1, "b")]] == [2, 3]
