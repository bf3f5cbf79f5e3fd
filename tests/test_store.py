import json
import tempfile
import unittest
from pathlib import Path

from budgetbook.errors import StoreError
from budgetbook.store import JsonFileStore, MemoryStore


class StoreContract:
    """Shared checks; mixed into one TestCase per backend."""

    def make_store(self):
        raise NotImplementedError

    def setUp(self):
        self.store = self.make_store()
        self.store.insert_user({"id": "u1", "name": "Alice"})
        self.store.insert_user({"id": "u2", "name": "Bob"})

    def test_user_lookup(self):
        self.assertEqual(self.store.get_user("u1")["name"], "Alice")
        self.assertEqual(self.store.get_user_by_name("  alice ")["id"], "u1")
        self.assertIsNone(self.store.get_user("nobody"))
        self.assertTrue(self.store.user_exists("u2"))
        self.assertEqual(len(self.store.get_all_users()), 2)

    def test_update_user(self):
        updated = self.store.update_user("u1", {"name": "Alicia"})
        self.assertEqual(updated["name"], "Alicia")
        self.assertIn("updatedAt", updated)
        self.assertIsNone(self.store.update_user("nobody", {"name": "x"}))

    def test_insert_and_read_back(self):
        self.store.insert("transactions", {"id": "t1", "amount": 5.0}, "u1")
        rec = self.store.get_by_id("transactions", "t1", "u1")
        self.assertEqual(rec["userId"], "u1")
        self.assertEqual(rec["amount"], 5.0)

    def test_records_are_invisible_to_other_users(self):
        self.store.insert("transactions", {"id": "t1", "amount": 5.0}, "u1")
        self.assertIsNone(self.store.get_by_id("transactions", "t1", "u2"))
        self.assertEqual(self.store.get_all("transactions", "u2"), [])
        self.assertIsNone(self.store.update("transactions", "t1", {"amount": 1}, "u2"))
        self.assertFalse(self.store.delete("transactions", "t1", "u2"))
        self.assertEqual(self.store.get_by_id("transactions", "t1", "u1")["amount"], 5.0)

    def test_update_merges_and_stamps(self):
        self.store.insert("recurring", {"id": "r1", "name": "Rent", "nextDueDate": "2024-01-01"}, "u1")
        rec = self.store.update("recurring", "r1", {"nextDueDate": "2024-02-01", "userId": "u2"}, "u1")
        self.assertEqual(rec["name"], "Rent")
        self.assertEqual(rec["nextDueDate"], "2024-02-01")
        self.assertEqual(rec["userId"], "u1")
        self.assertIn("updatedAt", rec)

    def test_reads_are_copies(self):
        self.store.insert("categories", {"id": "c1", "name": "Food"}, "u1")
        self.store.get_by_id("categories", "c1", "u1")["name"] = "changed"
        self.assertEqual(self.store.get_by_id("categories", "c1", "u1")["name"], "Food")

    def test_delete_and_delete_all(self):
        self.store.insert_many("transactions", [{"id": "t1"}, {"id": "t2"}, {"id": "t3"}], "u1")
        self.assertTrue(self.store.delete("transactions", "t1", "u1"))
        self.assertFalse(self.store.delete("transactions", "t1", "u1"))
        self.assertEqual(self.store.delete_all("transactions", "u1"), 2)
        self.assertEqual(self.store.get_all("transactions", "u1"), [])

    def test_insert_requires_id(self):
        with self.assertRaises(ValueError):
            self.store.insert("transactions", {"amount": 1}, "u1")

    def test_unknown_collection(self):
        with self.assertRaises(ValueError):
            self.store.get_all("budgets", "u1")

    def test_delete_user_drops_their_data(self):
        self.store.insert("transactions", {"id": "t1"}, "u1")
        self.assertTrue(self.store.delete_user("u1"))
        self.assertFalse(self.store.delete_user("u1"))
        self.assertIsNone(self.store.get_user("u1"))
        self.assertEqual(self.store.get_all("transactions", "u1"), [])


class TestMemoryStore(StoreContract, unittest.TestCase):
    def make_store(self):
        return MemoryStore()


class TestJsonFileStore(StoreContract, unittest.TestCase):
    def make_store(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.base = Path(self._tmp.name)
        return JsonFileStore(self.base)

    def test_layout_on_disk(self):
        self.store.insert("recurring", {"id": "r1"}, "u1")
        users = json.loads((self.base / "users.json").read_text(encoding="utf-8"))
        self.assertEqual([u["id"] for u in users], ["u1", "u2"])
        rows = json.loads((self.base / "users" / "u1" / "recurring.json").read_text(encoding="utf-8"))
        self.assertEqual(rows, [{"id": "r1", "userId": "u1"}])
        self.assertFalse((self.base / "users" / "u1" / "recurring.tmp").exists())

    def test_survives_reopen(self):
        self.store.insert("categories", {"id": "c1", "name": "Food"}, "u1")
        again = JsonFileStore(self.base)
        self.assertEqual(again.get_by_id("categories", "c1", "u1")["name"], "Food")

    def test_delete_user_removes_directory(self):
        self.store.insert("transactions", {"id": "t1"}, "u1")
        self.store.delete_user("u1")
        self.assertFalse((self.base / "users" / "u1").exists())

    def test_corrupt_file_raises(self):
        path = self.base / "users" / "u1" / "transactions.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(StoreError):
            self.store.get_all("transactions", "u1")

        path.write_text('{"id": "t1"}', encoding="utf-8")
        with self.assertRaises(StoreError):
            self.store.get_all("transactions", "u1")

    def test_rejects_path_like_user_ids(self):
        with self.assertRaises(ValueError):
            self.store.get_all("transactions", "../u1")


if __name__ == "__main__":
    unittest.main()
