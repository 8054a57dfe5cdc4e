"""
Unit-тесты tier vocabulary: порядок, нормализация, отделение preview tier.
"""
import unittest

from studio.access.tiers import (
    TIER_ORDER,
    AccessTier,
    PreviewTier,
    at_least,
    max_tier,
    min_tier,
    normalize_tier,
    rank,
)


class TestTierOrder(unittest.TestCase):
    def test_total_order(self):
        ranks = [rank(t) for t in TIER_ORDER]
        self.assertEqual(ranks, sorted(ranks))
        self.assertEqual(len(set(ranks)), 4)
        self.assertEqual(TIER_ORDER[0], AccessTier.PUBLIC)
        self.assertEqual(TIER_ORDER[-1], AccessTier.PACKAGING)

    def test_at_least_is_reflexive_and_monotone(self):
        for a in TIER_ORDER:
            self.assertTrue(at_least(a, a))
            for b in TIER_ORDER:
                self.assertEqual(at_least(a, b), rank(a) >= rank(b))

    def test_comparison_is_by_rank_not_string(self):
        # лексикографически "priority" > "packaging", по rank: наоборот
        self.assertTrue(at_least("packaging", "priority"))
        self.assertFalse(at_least("priority", "packaging"))

    def test_max_and_min(self):
        self.assertEqual(max_tier([]), AccessTier.PUBLIC)
        self.assertEqual(max_tier(["priority", AccessTier.PRODUCER, "bogus"]), AccessTier.PRODUCER)
        self.assertEqual(min_tier("packaging", "priority"), AccessTier.PRIORITY)
        self.assertEqual(min_tier(AccessTier.PUBLIC, "producer"), AccessTier.PUBLIC)


class TestNormalizeTier(unittest.TestCase):
    def test_known_values_case_and_whitespace(self):
        self.assertEqual(normalize_tier(" Producer "), AccessTier.PRODUCER)
        self.assertEqual(normalize_tier("PACKAGING"), AccessTier.PACKAGING)
        self.assertEqual(normalize_tier(AccessTier.PRIORITY), AccessTier.PRIORITY)

    def test_unknown_fails_closed_to_public(self):
        for raw in (None, "", "   ", "admin", "vip", 42):
            self.assertEqual(normalize_tier(raw), AccessTier.PUBLIC, raw)

    def test_str_is_wire_value(self):
        self.assertEqual(str(AccessTier.PRODUCER), "producer")


class TestPreviewTier(unittest.TestCase):
    def test_from_query_known_value(self):
        preview = PreviewTier.from_query("Packaging", default=AccessTier.PUBLIC)
        self.assertEqual(preview.tier, AccessTier.PACKAGING)
        self.assertEqual(preview.value, "packaging")

    def test_from_query_falls_back_to_default(self):
        self.assertEqual(PreviewTier.from_query(None, default=AccessTier.PRIORITY).tier, AccessTier.PRIORITY)
        self.assertEqual(PreviewTier.from_query("bogus", default=AccessTier.PRIORITY).tier, AccessTier.PRIORITY)

    def test_preview_cannot_enter_access_math(self):
        preview = PreviewTier(AccessTier.PACKAGING)
        with self.assertRaises(TypeError):
            normalize_tier(preview)
        with self.assertRaises(TypeError):
            rank(preview)
        with self.assertRaises(TypeError):
            at_least(preview, AccessTier.PUBLIC)
