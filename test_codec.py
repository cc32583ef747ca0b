#!/usr/bin/env python
"""
Tests for the fixed action space mapping turns to indices.
"""
import random
import unittest

from alpha_tak.core.codec import (
    MoveCodec, action_space_size, compositions, decode_turn, drop_patterns, encode_turn
)
from alpha_tak.core.constants import Direction, Shape
from alpha_tak.core.errors import EncodingMismatchError
from alpha_tak.core.game import GameState
from alpha_tak.core.turn import PlaceTurn, SpreadTurn, Square, Turn


class TestActionSpace(unittest.TestCase):
    """Test the size and layout of the action space."""

    def test_known_sizes(self):
        self.assertEqual(action_space_size(3), 243)
        self.assertEqual(action_space_size(5), 3075)

    def test_formula(self):
        for size in range(3, 9):
            expected = 3 * size ** 2 + 4 * size ** 2 * (2 ** size - 2)
            self.assertEqual(action_space_size(size), expected)
            self.assertEqual(len(drop_patterns(size)), 2 ** size - 2)

    def test_pattern_order(self):
        self.assertEqual(
            drop_patterns(3),
            ((1,), (1, 1), (2,), (1, 2), (2, 1), (3,)),
        )

    def test_compositions(self):
        self.assertEqual(compositions(3, 2), [(1, 2), (2, 1), (3,)])
        self.assertEqual(compositions(0, 0), [()])
        self.assertEqual(compositions(2, 0), [])

    def test_placements_come_first(self):
        self.assertEqual(encode_turn(PlaceTurn(Square(0, 0), Shape.FLAT), 5), 0)
        self.assertEqual(encode_turn(PlaceTurn(Square(1, 0), Shape.CAPSTONE), 5), 5)
        first_spread = SpreadTurn(Square(0, 0), Direction.UP, (1,))
        self.assertEqual(encode_turn(first_spread, 5), 75)

    def test_unsupported_size(self):
        with self.assertRaises(EncodingMismatchError):
            MoveCodec(9)
        with self.assertRaises(EncodingMismatchError):
            action_space_size(2)


class TestBijection(unittest.TestCase):
    """Test that encoding and decoding are inverse."""

    def test_every_index_decodes(self):
        for size in (3, 4):
            codec = MoveCodec(size)
            turns = [codec.decode(i) for i in range(len(codec))]
            self.assertEqual(len(set(turns)), len(codec))
            for index, turn in enumerate(turns):
                self.assertEqual(codec.encode(turn), index)

    def test_legal_turns_have_distinct_indices(self):
        rng = random.Random(0)
        for size in range(3, 9):
            state = GameState(size=size)
            for _ in range(30):
                turns = state.legal_turns()
                if not turns:
                    break
                indices = [encode_turn(turn, size) for turn in turns]
                self.assertEqual(len(set(indices)), len(turns))
                self.assertEqual(indices, sorted(indices))
                for turn, index in zip(turns, indices):
                    self.assertLess(index, action_space_size(size))
                    self.assertEqual(decode_turn(index, size), turn)
                state.play(rng.choice(turns))

    def test_notation_survives(self):
        codec = MoveCodec(5)
        for index in range(0, len(codec), 97):
            turn = codec.decode(index)
            self.assertEqual(Turn.from_ptn(turn.to_ptn()), turn)


class TestMismatch(unittest.TestCase):
    """Test turns and indices outside the action space."""

    def test_index_out_of_range(self):
        codec = MoveCodec(3)
        for index in (-1, len(codec), len(codec) + 10):
            with self.assertRaises(EncodingMismatchError):
                codec.decode(index)

    def test_square_off_board(self):
        with self.assertRaises(EncodingMismatchError):
            encode_turn(PlaceTurn(Square(3, 0)), 3)

    def test_too_many_drops(self):
        # Three drops need four squares in a row
        with self.assertRaises(EncodingMismatchError):
            encode_turn(SpreadTurn(Square(0, 0), Direction.RIGHT, (1, 1, 1)), 3)

    def test_carry_above_size(self):
        with self.assertRaises(EncodingMismatchError):
            encode_turn(SpreadTurn(Square(0, 0), Direction.UP, (4,)), 3)

    def test_index_depends_on_size(self):
        turn = SpreadTurn(Square(1, 1), Direction.LEFT, (2,))
        self.assertNotEqual(encode_turn(turn, 4), encode_turn(turn, 5))


if __name__ == "__main__":
    unittest.main()
