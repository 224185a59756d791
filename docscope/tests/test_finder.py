"""Integration tests for scoped finders over the in-memory store."""

import unittest

from docscope.core import connection
from docscope.core.conditions import field
from docscope.core.memory_store import MemoryDocumentStore
from docscope.core.store import ASCENDING, DESCENDING
from docscope.models.document import Document
from docscope.models.exceptions import DocumentNotFoundError, InvalidOptionsError
from docscope.models.finder import ALL, FIRST, LAST, parse_order, parse_select


class Entry(Document):
    title: str = ""
    rank: int = 0
    published: bool = False


Entry.named_scope("visible", conditions={"published": True})
Entry.named_scope("top", lambda num: {"order": "rank DESC", "limit": num})


class FinderTests(unittest.TestCase):
    """Exercise finders end to end against a fresh store."""

    def setUp(self) -> None:
        """Pin a fresh memory store and seed eleven entries, eight published."""
        self.store = Entry.use_store(MemoryDocumentStore())
        self.entries = [
            Entry.create(id="e{0:02d}".format(index), title="Entry {0}".format(index), rank=index, published=index < 8)
            for index in range(11)
        ]

    def tearDown(self) -> None:
        """Forget pinned stores."""
        connection.reset()

    def test_counts_respect_scopes(self) -> None:
        """Scoped counts only see matching documents."""
        self.assertEqual(Entry.count(), 11)
        self.assertEqual(Entry.named("visible").count(), 8)
        with Entry.with_scope(find={"conditions": {"published": False}}):
            self.assertEqual(Entry.count(), 3)

    def test_find_by_id_through_scope(self) -> None:
        """Id lookups are filtered by the active scope."""
        published = self.entries[0]
        unpublished = self.entries[10]

        self.assertEqual(Entry.named("visible").find(published.id).title, "Entry 0")
        with self.assertRaises(DocumentNotFoundError) as raised:
            Entry.named("visible").find(unpublished.id)
        self.assertIn("Couldn't find Entry with id=e10", str(raised.exception))
        self.assertEqual(Entry.find(unpublished.id).id, "e10")

    def test_scoped_id_is_not_replaced_by_requested_id(self) -> None:
        """A scope pinned to one id cannot find another."""
        pinned = Entry.scoped(conditions={"id": "e01"})
        self.assertEqual(pinned.find("e01").id, "e01")
        with self.assertRaises(DocumentNotFoundError):
            pinned.find("e02")
        with self.assertRaises(DocumentNotFoundError):
            Entry.scoped(conditions={field("id").eq: "e01"}).find("e02")

    def test_find_many_ids(self) -> None:
        """A list of ids returns every match or raises for missing ones."""
        found = Entry.find(["e01", "e03"], order="rank ASC")
        self.assertEqual([entry.id for entry in found], ["e01", "e03"])
        self.assertEqual(Entry.find([]), [])
        with self.assertRaises(DocumentNotFoundError):
            Entry.find(["e01", "missing"])

    def test_order_limit_and_offset(self) -> None:
        """Apply paging after sorting."""
        found = Entry.all(order="rank DESC", limit=3, offset=1)
        self.assertEqual([entry.rank for entry in found], [9, 8, 7])

    def test_named_builder_scope(self) -> None:
        """Parameterized scopes feed their options to the store."""
        found = Entry.named("visible").top(2).all()
        self.assertEqual([entry.rank for entry in found], [7, 6])

    def test_first_and_last(self) -> None:
        """LAST reverses the effective order."""
        self.assertEqual(Entry.first(order="rank ASC").rank, 0)
        self.assertEqual(Entry.last(order="rank ASC").rank, 10)
        self.assertEqual(Entry.named("visible").last(order="rank ASC").rank, 7)
        self.assertEqual(Entry.find(LAST).id, "e10")
        self.assertIsNone(Entry.first(conditions={"title": "Nope"}))

    def test_comparator_conditions(self) -> None:
        """Comparator keys reach the store untouched."""
        found = Entry.find(ALL, conditions={field("rank").gte: 9})
        self.assertEqual(sorted(entry.rank for entry in found), [9, 10])
        self.assertEqual(Entry.count(conditions={field("rank").in_: [1, 2, 99]}), 2)

    def test_select_returns_partial_documents(self) -> None:
        """Projected documents keep the id and the selected fields."""
        entry = Entry.find(FIRST, select="title", order="rank ASC")
        self.assertEqual(entry.id, "e00")
        self.assertEqual(entry.title, "Entry 0")
        self.assertTrue(entry.persisted)

    def test_unknown_find_option_is_rejected(self) -> None:
        """Misspelled options fail instead of being ignored."""
        with self.assertRaises(InvalidOptionsError):
            Entry.all(limt=3)

    def test_save_reload_and_delete(self) -> None:
        """Persist changes and reload ignoring scopes."""
        entry = self.entries[10]
        entry.title = "Renamed"
        entry.save()

        with Entry.with_scope(find={"conditions": {"published": True}}):
            reloaded = Entry(id=entry.id).reload()
        self.assertEqual(reloaded.title, "Renamed")

        entry.delete()
        self.assertFalse(entry.persisted)
        self.assertEqual(Entry.count(), 10)

    def test_exists(self) -> None:
        """exists is true when a scoped count is positive."""
        self.assertTrue(Entry.named("visible").exists())
        self.assertFalse(Entry.exists(conditions={"title": "Nope"}))


class ParseOrderTests(unittest.TestCase):
    """Validate order and select normalization."""

    def test_string_clauses(self) -> None:
        """Parse comma-separated clauses with optional directions."""
        self.assertEqual(
            parse_order("title ASC, created_at desc, rank"),
            [("title", ASCENDING), ("created_at", DESCENDING), ("rank", ASCENDING)],
        )

    def test_tuples_and_lists(self) -> None:
        """Accept tuples and lists mixing both forms."""
        self.assertEqual(parse_order(("rank", -1)), [("rank", DESCENDING)])
        self.assertEqual(parse_order([("rank", -1), "title"]), [("rank", DESCENDING), ("title", ASCENDING)])
        self.assertEqual(parse_order(None), [])

    def test_invalid_order(self) -> None:
        """Reject unknown directions and value types."""
        with self.assertRaises(InvalidOptionsError):
            parse_order("title SIDEWAYS")
        with self.assertRaises(InvalidOptionsError):
            parse_order(("rank", 2))
        with self.assertRaises(InvalidOptionsError):
            parse_order(42)

    def test_select(self) -> None:
        """Split select strings and pass sequences through."""
        self.assertEqual(parse_select("title, rank"), ["title", "rank"])
        self.assertEqual(parse_select(["title"]), ["title"])
        self.assertIsNone(parse_select(None))


if __name__ == "__main__":
    unittest.main()
