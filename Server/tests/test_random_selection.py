"""
Random selection primitives: Fisher-Yates shuffle, rejection sampling of
distinct indices and draws with replacement.
"""

import random
import unittest
from collections import Counter

from memomu.services.random_selection import choice_with_replacement, sample_distinct, shuffle
from memomu.utils.errors import InvalidConfiguration


class TestShuffle(unittest.TestCase):

    def test_returns_permutation_and_leaves_input_alone(self):
        items = list(range(20))
        shuffled = shuffle(items, random.Random(1))
        self.assertEqual(sorted(shuffled), items)
        self.assertEqual(items, list(range(20)))

    def test_every_ordering_of_three_items_occurs(self):
        rng = random.Random(5)
        seen = {tuple(shuffle("abc", rng)) for _ in range(600)}
        self.assertEqual(len(seen), 6)

    def test_each_position_is_filled_uniformly(self):
        rng = random.Random(17)
        trials = 6000
        counts = [Counter() for _ in range(3)]
        for _ in range(trials):
            for position, item in enumerate(shuffle("abc", rng)):
                counts[position][item] += 1

        expected = trials / 3
        for position, counter in enumerate(counts):
            self.assertEqual(set(counter), {"a", "b", "c"})
            # Chi-square with 2 degrees of freedom, p = 0.001
            chi_square = sum((counter[item] - expected) ** 2 / expected for item in "abc")
            self.assertLess(chi_square, 13.82, f"position {position}: {dict(counter)}")

    def test_empty_and_single(self):
        self.assertEqual(shuffle([], random.Random(0)), [])
        self.assertEqual(shuffle(["x"], random.Random(0)), ["x"])


class TestSampleDistinct(unittest.TestCase):

    def test_indices_are_unique_and_in_range(self):
        rng = random.Random(3)
        for k in range(0, 31):
            picked = sample_distinct(30, k, rng)
            self.assertEqual(len(picked), k)
            self.assertEqual(len(set(picked)), k)
            self.assertTrue(all(0 <= idx < 30 for idx in picked))

    def test_full_pool_is_a_permutation(self):
        picked = sample_distinct(12, 12, random.Random(9))
        self.assertEqual(sorted(picked), list(range(12)))

    def test_k_above_pool_size_raises(self):
        with self.assertRaises(InvalidConfiguration):
            sample_distinct(12, 13)

    def test_negative_k_raises(self):
        with self.assertRaises(InvalidConfiguration):
            sample_distinct(12, -1)

    def test_invalid_configuration_is_a_value_error(self):
        with self.assertRaises(ValueError):
            sample_distinct(4, 5)


class TestChoiceWithReplacement(unittest.TestCase):

    def test_draws_from_pool(self):
        pool = ["a", "b"]
        drawn = choice_with_replacement(pool, 50, random.Random(2))
        self.assertEqual(len(drawn), 50)
        self.assertTrue(set(drawn) <= set(pool))

    def test_empty_pool(self):
        self.assertEqual(choice_with_replacement([], 0), [])
        with self.assertRaises(InvalidConfiguration):
            choice_with_replacement([], 1)


if __name__ == "__main__":
    unittest.main()
