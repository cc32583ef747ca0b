#!/usr/bin/env python
"""
Tests for the tree search player.

The player keeps a game and its search tree in lockstep, so these tests
check that committing turns, pondering and recording examples and analysis
never let the two drift apart.
"""
import threading
import unittest

import numpy as np

from alpha_tak.core.codec import action_space_size
from alpha_tak.core.constants import Colour
from alpha_tak.core.errors import IllegalMoveError
from alpha_tak.core.game import GameResult, WinReason
from alpha_tak.core.ptn import game_from_ptn
from alpha_tak.core.turn import Turn
from alpha_tak.mcts.agent import AnalysisEntry, Player
from alpha_tak.mcts.config import MCTSConfig
from alpha_tak.rl.agents import UniformEvaluator
from alpha_tak.rl.training import set_seed


def turns(*texts):
    return [Turn.from_ptn(text) for text in texts]


class TestPlayer(unittest.TestCase):
    """Test the Player class."""

    def setUp(self):
        set_seed(42)
        self.config = MCTSConfig(rollouts_per_move=60, rollout_batch=10)
        self.player = Player(
            UniformEvaluator(5), turns("a1", "e5"), size=5,
            config=self.config, rng=np.random.default_rng(0)
        )

    def test_opening_is_played(self):
        self.assertEqual(self.player.game.ply, 2)
        self.assertIs(self.player.game.to_move, Colour.WHITE)
        self.assertEqual(self.player.root.visits, 0)

    def test_illegal_turn_changes_nothing(self):
        self.player.rollout(30)
        root, game = self.player.root, self.player.game
        visits = root.visits
        children = dict(root.children)
        with self.assertRaises(IllegalMoveError):
            self.player.play_move(Turn.from_ptn("a1"))
        self.assertIs(self.player.root, root)
        self.assertIs(self.player.game, game)
        self.assertEqual(root.visits, visits)
        self.assertEqual(root.children, children)
        self.assertEqual(game.ply, 2)
        self.assertEqual(self.player.get_examples(GameResult.draw()), [])
        self.assertEqual(self.player.get_analysis().entries, [])

    def test_play_move_reuses_subtree(self):
        self.player.think()
        turn = self.player.pick_move()
        child = self.player.root.children[turn]
        self.player.play_move(turn)
        self.assertIs(self.player.root, child)
        self.assertEqual(self.player.game.ply, 3)
        self.assertIs(self.player.game.to_move, Colour.BLACK)

    def test_opponent_turn_outside_tree(self):
        self.player.play_move(Turn.from_ptn("c3"))
        self.assertEqual(self.player.root.visits, 0)
        self.assertEqual(self.player.game.ply, 3)

    def test_pick_move_expands_root(self):
        turn = self.player.pick_move()
        self.assertTrue(self.player.root.is_expanded())
        self.assertIn(turn, self.player.game.legal_turns())

    def test_pick_move_after_game_end(self):
        player = Player(UniformEvaluator(3), turns("c3", "a1", "a2", "c2", "a3"), size=3)
        self.assertFalse(player.is_ongoing)
        with self.assertRaises(ValueError):
            player.pick_move()

    def test_examples(self):
        # Not searched, so no example
        self.player.play_move(Turn.from_ptn("c3"))
        for _ in range(2):
            self.player.think()
            self.player.play_move(self.player.pick_move())

        result = GameResult.winner(Colour.WHITE, WinReason.ROAD)
        examples = self.player.get_examples(result)
        self.assertEqual(len(examples), 2)
        self.assertEqual([e.value for e in examples], [-1.0, 1.0])
        for example in examples:
            self.assertEqual(example.policy.shape, (action_space_size(5),))
            self.assertAlmostEqual(float(example.policy.sum()), 1.0, places=5)
            self.assertEqual(example.state.shape[1:], (5, 5))

    def test_example_values_follow_mover(self):
        player = Player(UniformEvaluator(3), turns("a1", "c3"), size=3, config=self.config)
        for _ in range(2):
            player.rollout(20)
            player.play_move(player.pick_move())
        examples = player.get_examples(GameResult.winner(Colour.BLACK, WinReason.FLATS))
        self.assertEqual([e.value for e in examples], [-1.0, 1.0])

    def test_analysis(self):
        self.player.think()
        self.player.play_move(self.player.pick_move())
        analysis = self.player.get_analysis()
        self.assertEqual(len(analysis.entries), 1)
        entry = analysis.entries[0]
        self.assertEqual(entry.visits, 60)
        self.assertTrue(entry.comment().startswith("eval "))

        text = analysis.to_ptn()
        self.assertIn('[Size "5"]', text)
        self.assertIn("{eval", text)
        replayed = game_from_ptn(text)
        self.assertEqual(replayed.board, self.player.game.board)

    def test_analysis_comment(self):
        entry = AnalysisEntry(Turn.from_ptn("a1"), 10, 0.25, turns("b2", "c3"))
        self.assertEqual(entry.comment(), "eval +0.250 pv b2 c3")
        self.assertEqual(AnalysisEntry(Turn.from_ptn("a1"), 0, -0.5).comment(), "eval -0.500")

    def test_ponder_with_callable(self):
        checks = iter([False, False, False, True])
        performed = self.player.ponder(lambda: next(checks))
        self.assertEqual(performed, 30)
        self.assertEqual(self.player.root.visits, 30)

    def test_ponder_with_event(self):
        stop = threading.Event()
        timer = threading.Timer(0.05, stop.set)
        timer.start()
        try:
            performed = self.player.ponder(stop)
        finally:
            timer.cancel()
        self.assertEqual(self.player.root.visits, performed)
        self.assertEqual(performed % self.config.rollout_batch, 0)

    def test_rollout_for(self):
        performed = self.player.rollout_for(0.05)
        self.assertGreater(performed, 0)
        self.assertEqual(self.player.root.visits, performed)

    def test_time_limit(self):
        config = MCTSConfig(time_limit=0.05, rollout_batch=5)
        player = Player(UniformEvaluator(5), turns("a1", "e5"), size=5, config=config)
        player.think()
        self.assertGreater(player.root.visits, 0)

    def test_apply_dirichlet_expands_root(self):
        self.player.apply_dirichlet()
        self.assertTrue(self.player.root.is_expanded())
        priors = [child.policy for child in self.player.root.children.values()]
        self.assertAlmostEqual(sum(priors), 1.0)

    def test_debug(self):
        self.player.think()
        report = self.player.debug(5)
        self.assertEqual(len(report.splitlines()), 6)
        self.assertGreater(self.player.tree_size(), 1)

    def test_full_game(self):
        config = MCTSConfig(rollouts_per_move=20, rollout_batch=5)
        player = Player(UniformEvaluator(3), turns("a1", "c3"), size=3, config=config,
                        rng=np.random.default_rng(1))
        while player.is_ongoing and player.game.ply < 100:
            player.think()
            player.play_move(player.pick_move(explore=True))
        analysis = player.get_analysis()
        self.assertEqual(len(analysis.turns), player.game.ply)
        self.assertEqual(analysis.result, player.game.result)
        self.assertLessEqual(len(player.get_examples(GameResult.draw())), player.game.ply - 2)


if __name__ == "__main__":
    unittest.main()
