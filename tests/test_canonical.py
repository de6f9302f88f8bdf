import unittest
from datetime import datetime, timedelta, timezone

from minutebuf.metrics.canonical import canonicalize, quantize


class CanonicalizeTests(unittest.TestCase):
    def test_mapping_order_does_not_matter(self):
        self.assertEqual(canonicalize({"a": 1, "b": 2}), canonicalize({"b": 2, "a": 1}))
        self.assertEqual(canonicalize({"b": 2, "a": 1}), '{"a":1,"b":2}')

    def test_sequence_order_matters(self):
        self.assertNotEqual(canonicalize([1, 2]), canonicalize([2, 1]))
        self.assertEqual(canonicalize([1, 2]), "[1,2]")

    def test_scalars_render_as_literals(self):
        self.assertEqual(canonicalize("x"), '"x"')
        self.assertEqual(canonicalize(True), "true")
        self.assertEqual(canonicalize(False), "false")
        self.assertEqual(canonicalize(None), "null")
        self.assertEqual(canonicalize(3), "3")
        self.assertEqual(canonicalize(1.5), "1.5")

    def test_quoted_strings_do_not_collide_with_sequences(self):
        self.assertNotEqual(canonicalize(["a,b"]), canonicalize(["a", "b"]))
        self.assertNotEqual(canonicalize("1"), canonicalize(1))

    def test_nested_structures_sort_every_mapping(self):
        left = {"z": [{"b": 1, "a": 2}], "a": None}
        right = {"a": None, "z": [{"a": 2, "b": 1}]}
        self.assertEqual(canonicalize(left), canonicalize(right))
        self.assertEqual(canonicalize(left), '{"a":null,"z":[{"a":2,"b":1}]}')

    def test_tuples_behave_like_lists(self):
        self.assertEqual(canonicalize(("a", 1)), canonicalize(["a", 1]))

    def test_keys_with_separators_stay_unambiguous(self):
        self.assertNotEqual(canonicalize({"a:1": 2}), canonicalize({"a": "1:2"}))

    def test_rejects_unsupported_values(self):
        with self.assertRaises(TypeError):
            canonicalize(object())
        with self.assertRaises(TypeError):
            canonicalize({1: "x"})


class QuantizeTests(unittest.TestCase):
    def test_truncates_to_minute(self):
        ts = datetime(2024, 5, 1, 13, 37, 12, 345000, tzinfo=timezone.utc)
        self.assertEqual(quantize(ts), "2024-05-01T13:37:00.000Z")

    def test_same_minute_collapses(self):
        first = datetime(2024, 5, 1, 13, 37, 0, tzinfo=timezone.utc)
        last = datetime(2024, 5, 1, 13, 37, 59, 999999, tzinfo=timezone.utc)
        self.assertEqual(quantize(first), quantize(last))

    def test_adjacent_minutes_stay_apart(self):
        before = datetime(2024, 5, 1, 13, 37, 59, 999999, tzinfo=timezone.utc)
        after = datetime(2024, 5, 1, 13, 38, 0, tzinfo=timezone.utc)
        self.assertNotEqual(quantize(before), quantize(after))

    def test_converts_to_utc(self):
        ts = datetime(2024, 5, 1, 15, 37, 5, tzinfo=timezone(timedelta(hours=2)))
        self.assertEqual(quantize(ts), "2024-05-01T13:37:00.000Z")

    def test_naive_datetime_is_read_as_utc(self):
        self.assertEqual(quantize(datetime(2024, 5, 1, 13, 37, 30)), "2024-05-01T13:37:00.000Z")

    def test_epoch_seconds(self):
        self.assertEqual(quantize(0), "1970-01-01T00:00:00.000Z")
        self.assertEqual(quantize(59.9), "1970-01-01T00:00:00.000Z")
        self.assertEqual(quantize(60), "1970-01-01T00:01:00.000Z")

    def test_rejects_other_types(self):
        with self.assertRaises(TypeError):
            quantize(True)
        with self.assertRaises(TypeError):
            quantize("2024-05-01")


if __name__ == "__main__":
    unittest.main()
