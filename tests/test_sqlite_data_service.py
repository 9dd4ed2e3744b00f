import tempfile
import unittest
from pathlib import Path

from datasync.domain import Filter
from datasync.infrastructure.sqlite import SQLiteDatabase, SQLiteDataService
from datasync.infrastructure.sqlite.data_service import compile_filter


class SQLiteDataServiceTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.db_path = Path(self.tmpdir.name) / "nested" / "test.db"
        self.db = SQLiteDatabase(str(self.db_path))
        await self.db.init()
        self.service = SQLiteDataService(self.db)

    async def asyncTearDown(self):
        self.tmpdir.cleanup()

    async def _seed(self):
        for record in (
            {"id": "a", "title": "Alpha", "score": 5, "kind": "x"},
            {"id": "b", "title": "Beta", "score": 2, "kind": "y"},
            {"id": "c", "title": "Gamma", "score": 9, "kind": "x", "note": None},
        ):
            result = await self.service.insert("items", record)
            self.assertTrue(result.is_success)

    async def test_init_creates_parent_directory(self):
        self.assertTrue(self.db_path.exists())

    async def test_insert_generates_id_when_missing(self):
        result = await self.service.insert("items", {"title": "Untitled"})

        self.assertTrue(result.is_success)
        created = result.data[0]
        self.assertTrue(created["id"])
        self.assertEqual(created["title"], "Untitled")

        stored = await self.service.select("items", filters={"id": created["id"]})
        self.assertEqual(stored.data, [created])

    async def test_duplicate_insert_fails(self):
        await self.service.insert("items", {"id": "a"})

        result = await self.service.insert("items", {"id": "a"})

        self.assertFalse(result.is_success)
        self.assertTrue(result.error.startswith("Failed to insert record"))

    async def test_select_keeps_insertion_order_and_pages(self):
        await self._seed()

        everything = await self.service.select("items")
        page = await self.service.select("items", limit=1, offset=1)
        tail = await self.service.select("items", offset=2)

        self.assertEqual([record["id"] for record in everything.data], ["a", "b", "c"])
        self.assertEqual([record["id"] for record in page.data], ["b"])
        self.assertEqual([record["id"] for record in tail.data], ["c"])

    async def test_select_orders_and_filters(self):
        await self._seed()

        result = await self.service.select("items", filters={"kind": "x"}, order_by="score", ascending=False)

        self.assertEqual([record["id"] for record in result.data], ["c", "a"])

    async def test_collections_are_isolated(self):
        await self._seed()
        await self.service.insert("other", {"id": "a", "title": "Elsewhere"})

        result = await self.service.select("other")

        self.assertEqual(result.data, [{"id": "a", "title": "Elsewhere"}])

    async def test_select_with_filters(self):
        await self._seed()

        cases = [
            ([Filter.greater_than("score", 4)], ["a", "c"]),
            ([Filter.greater_than_or_equal("score", 5), Filter.less_than("score", 9)], ["a"]),
            ([Filter.less_than_or_equal("score", 2)], ["b"]),
            ([Filter.not_equals("kind", "x")], ["b"]),
            ([Filter.contains("title", "MM")], ["c"]),
            ([Filter.in_list("id", ["a", "c"])], ["a", "c"]),
            ([Filter.not_in_list("id", ["a"])], ["b", "c"]),
            ([Filter.in_list("id", [])], []),
            ([Filter.equals("note", None)], ["a", "b", "c"]),
        ]
        for filters, expected in cases:
            with self.subTest(filters=filters):
                result = await self.service.select_with_filters("items", filters)
                self.assertTrue(result.is_success, result.error)
                self.assertEqual([record["id"] for record in result.data], expected)

    async def test_object_and_list_values_match(self):
        await self.service.insert("items", {"id": "1", "meta": {"a": 1, "b": 2, "name": "\u00e9t\u00e9"}, "tags": ["x", "y"]})
        await self.service.insert("items", {"id": "2", "meta": {"a": 1}, "tags": ["y"]})

        by_object = await self.service.select("items", filters={"meta": {"name": "\u00e9t\u00e9", "b": 2, "a": 1}})
        by_list = await self.service.select_with_filters("items", [Filter.equals("tags", ["x", "y"])])
        excluded = await self.service.select_with_filters("items", [Filter.not_equals("tags", ["x", "y"])])
        in_list = await self.service.select_with_filters("items", [Filter.in_list("meta", [{"a": 1}, {"a": 3}])])

        self.assertEqual([record["id"] for record in by_object.data], ["1"])
        self.assertEqual([record["id"] for record in by_list.data], ["1"])
        self.assertEqual([record["id"] for record in excluded.data], ["2"])
        self.assertEqual([record["id"] for record in in_list.data], ["2"])

    async def test_invalid_field_name_is_reported(self):
        result = await self.service.select_with_filters("items", [Filter.equals("title; DROP", 1)])

        self.assertFalse(result.is_success)
        self.assertIn("Invalid field name", result.error)

    async def test_update_merges_fields(self):
        await self._seed()

        result = await self.service.update("items", "a", {"title": "Alpha 2", "id": "zzz"})

        self.assertTrue(result.is_success)
        self.assertEqual(result.data, [{"id": "a", "title": "Alpha 2", "score": 5, "kind": "x"}])
        stored = await self.service.select("items", filters={"id": "a"})
        self.assertEqual(stored.data, result.data)

    async def test_update_missing_record_fails(self):
        result = await self.service.update("items", "nope", {"title": "x"})

        self.assertFalse(result.is_success)
        self.assertEqual(result.error, "Record nope not found in items")

    async def test_delete_is_idempotent(self):
        await self._seed()

        first = await self.service.delete("items", "b")
        second = await self.service.delete("items", "b")

        self.assertTrue(first.is_success)
        self.assertTrue(second.is_success)
        self.assertEqual((await self.service.count("items")).total, 2)

    async def test_select_random_respects_exclusions(self):
        await self._seed()

        result = await self.service.select_random("items", filters={"kind": "x"}, exclude_ids=["a"], limit=5)

        self.assertEqual([record["id"] for record in result.data], ["c"])

    async def test_select_random_limits_results(self):
        await self._seed()

        result = await self.service.select_random("items", limit=2)

        self.assertEqual(len(result.data), 2)
        self.assertLessEqual({record["id"] for record in result.data}, {"a", "b", "c"})

    async def test_select_by_id_and_exists(self):
        await self._seed()

        found = await self.service.select_by_id("items", "b")
        missing = await self.service.select_by_id("items", "zzz")

        self.assertEqual(found.data, [{"id": "b", "title": "Beta", "score": 2, "kind": "y"}])
        self.assertTrue(missing.is_success)
        self.assertEqual(missing.data, [])
        self.assertTrue(await self.service.exists("items", "a"))
        self.assertFalse(await self.service.exists("other", "a"))

    async def test_count_reports_bad_filters(self):
        result = await self.service.count("items", filters={"bad field": 1})

        self.assertFalse(result.is_success)
        self.assertIn("Failed to count records", result.error)

    async def test_count_with_filters(self):
        await self._seed()

        self.assertEqual((await self.service.count("items", filters={"kind": "x"})).total, 2)
        self.assertEqual((await self.service.count("empty")).total, 0)


class CompileFilterTests(unittest.TestCase):
    def test_id_values_are_compared_as_text(self):
        clause, params = compile_filter(Filter.equals("id", 7))

        self.assertEqual(clause, "id = ?")
        self.assertEqual(params, ["7"])

    def test_contains_escapes_wildcards(self):
        clause, params = compile_filter(Filter.contains("title", "50%_off"))

        self.assertEqual(clause, "json_extract(data, ?) LIKE ? ESCAPE '\\'")
        self.assertEqual(params, ["$.title", "%50\\%\\_off%"])

    def test_not_equals_none(self):
        clause, params = compile_filter(Filter.not_equals("note", None))

        self.assertEqual(clause, "json_extract(data, ?) IS NOT NULL")
        self.assertEqual(params, ["$.note"])


if __name__ == "__main__":
    unittest.main()
