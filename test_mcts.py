#!/usr/bin/env python
"""
Tests for the Monte Carlo Tree Search.

These tests cover the search tree statistics, tree reuse, root noise,
move selection, search reports and the search helpers.
"""
import unittest

import numpy as np

from alpha_tak.core.codec import action_space_size, encode_turn
from alpha_tak.core.game import GameState
from alpha_tak.core.turn import Turn
from alpha_tak.mcts.config import MCTSConfig
from alpha_tak.mcts.node import MCTSNode
from alpha_tak.mcts.search import (
    count_nodes, get_action_statistics, get_principal_variation, rollout_until,
    run_rollouts, visit_distribution
)
from alpha_tak.rl.agents import UniformEvaluator
from alpha_tak.rl.training import set_seed


def white_to_win() -> GameState:
    """3x3 position where White completes the a-file with a3."""
    state = GameState(size=3)
    for text in ["c3", "a1", "a2", "c2"]:
        state.play(Turn.from_ptn(text))
    return state


def walk(node: MCTSNode):
    yield node
    for child in node.children.values():
        yield from walk(child)


class TestRollouts(unittest.TestCase):
    """Test the statistics gathered by rollouts."""

    def setUp(self):
        set_seed(42)
        self.evaluator = UniformEvaluator(5)
        self.state = GameState(size=5)
        self.state.opening(0)

    def test_root_counts_every_rollout(self):
        root = MCTSNode()
        run_rollouts(root, self.state, self.evaluator, 50)
        self.assertEqual(root.visits, 50)
        # The first rollout only expands the root
        self.assertEqual(sum(child.visits for child in root.children.values()), 49)

    def test_state_is_left_untouched(self):
        root = MCTSNode()
        before = self.state.clone()
        run_rollouts(root, self.state, self.evaluator, 20)
        self.assertEqual(self.state, before)

    def test_children_only_below_visited_nodes(self):
        root = MCTSNode()
        run_rollouts(root, self.state, self.evaluator, 100)
        for node in walk(root):
            if node.visits == 0:
                self.assertFalse(node.children)
            self.assertGreaterEqual(node.visits, sum(c.visits for c in node.children.values()))

    def test_priors_are_normalized(self):
        root = MCTSNode()
        run_rollouts(root, self.state, self.evaluator, 1)
        self.assertEqual(len(root.children), len(self.state.legal_turns()))
        self.assertAlmostEqual(sum(c.policy for c in root.children.values()), 1.0)

    def test_rewards_stay_in_range(self):
        root = MCTSNode()
        run_rollouts(root, white_to_win(), UniformEvaluator(3), 200)
        for node in walk(root):
            self.assertLessEqual(abs(node.expected_reward), 1.0 + 1e-9)

    def test_rollout_until(self):
        root = MCTSNode()
        checks = iter([False, False, True])
        performed = rollout_until(root, self.state, self.evaluator, lambda: next(checks), batch=5)
        self.assertEqual(performed, 10)
        self.assertEqual(root.visits, 10)


class TestTerminalPositions(unittest.TestCase):
    """Test search around finished games."""

    def test_finds_winning_turn(self):
        set_seed(0)
        state = white_to_win()
        root = MCTSNode()
        run_rollouts(root, state, UniformEvaluator(3), 200)
        self.assertEqual(root.pick_move(), Turn.from_ptn("a3"))

    def test_winning_child_value(self):
        state = white_to_win()
        root = MCTSNode()
        run_rollouts(root, state, UniformEvaluator(3), 50)
        child = root.children[Turn.from_ptn("a3")]
        self.assertTrue(child.is_terminal())
        self.assertEqual(child.expected_reward, -1.0)
        self.assertEqual(MCTSNode.q_value(child), 1.0)

    def test_rollout_on_finished_game(self):
        state = white_to_win()
        state.play(Turn.from_ptn("a3"))
        root = MCTSNode()
        run_rollouts(root, state, UniformEvaluator(3), 3)
        self.assertEqual(root.visits, 3)
        self.assertFalse(root.children)
        self.assertEqual(root.expected_reward, -1.0)


class TestTreeReuse(unittest.TestCase):
    """Test committing moves on the tree."""

    def setUp(self):
        set_seed(42)
        self.state = GameState(size=4)
        self.state.opening(3)
        self.root = MCTSNode()
        run_rollouts(self.root, self.state, UniformEvaluator(4), 120)

    def test_child_keeps_its_statistics(self):
        turn = self.root.pick_move()
        child = self.root.children[turn]
        visits, reward = child.visits, child.expected_reward
        new_root = self.root.play(turn)
        self.assertIs(new_root, child)
        self.assertEqual(new_root.visits, visits)
        self.assertEqual(new_root.expected_reward, reward)
        self.assertFalse(self.root.children)

    def test_unseen_turn_gives_fresh_node(self):
        turn = self.state.legal_turns()[0]
        self.root.children.pop(turn)
        new_root = self.root.play(turn)
        self.assertEqual(new_root.visits, 0)
        self.assertFalse(new_root.children)

    def test_continuation_depth(self):
        for depth in (0, 1, 3):
            self.assertLessEqual(len(self.root.continuation(0, depth)), depth)
        self.assertEqual(self.root.continuation(self.root.visits + 1, 5), [])

    def test_continuation_stops_at_terminal_node(self):
        state = white_to_win()
        root = MCTSNode()
        run_rollouts(root, state, UniformEvaluator(3), 150)
        self.assertEqual(root.continuation(0, 10), [Turn.from_ptn("a3")])

    def test_continuation_stops_at_unexpanded_node(self):
        root = MCTSNode()
        run_rollouts(root, self.state, UniformEvaluator(4), 1)
        line = root.continuation(0, 10)
        self.assertEqual(len(line), 1)
        self.assertFalse(root.children[line[0]].is_expanded())

    def test_continuation_is_playable(self):
        state = self.state.clone()
        for turn in self.root.continuation(1, 6):
            state.play(turn)


class TestSelection(unittest.TestCase):
    """Test choosing moves and mixing in noise."""

    def setUp(self):
        set_seed(42)
        self.state = GameState(size=5)
        self.state.opening(1)
        self.root = MCTSNode()
        run_rollouts(self.root, self.state, UniformEvaluator(5), 1)

    def test_ties_go_to_first_turn(self):
        first = next(iter(self.root.children))
        self.assertEqual(self.root.pick_move(), first)
        self.assertEqual(self.root.select(), first)

    def test_deterministic_pick_is_stable(self):
        run_rollouts(self.root, self.state, UniformEvaluator(5), 60)
        picks = {self.root.pick_move() for _ in range(5)}
        self.assertEqual(len(picks), 1)
        best = picks.pop()
        self.assertEqual(self.root.children[best].visits, max(c.visits for c in self.root.children.values()))

    def test_explore_only_picks_visited(self):
        run_rollouts(self.root, self.state, UniformEvaluator(5), 30)
        rng = np.random.default_rng(0)
        for _ in range(20):
            turn = self.root.pick_move(explore=True, rng=rng)
            self.assertGreater(self.root.children[turn].visits, 0)

    def test_explore_without_visits_uses_priors(self):
        rng = np.random.default_rng(0)
        turn = self.root.pick_move(explore=True, rng=rng)
        self.assertIn(turn, self.root.children)

    def test_pick_needs_children(self):
        with self.assertRaises(ValueError):
            MCTSNode().pick_move()

    def test_dirichlet_keeps_distribution(self):
        self.root.apply_dirichlet(1.0, 0.3, np.random.default_rng(0))
        priors = [c.policy for c in self.root.children.values()]
        self.assertAlmostEqual(sum(priors), 1.0)
        self.assertTrue(all(p >= 0 for p in priors))
        self.assertGreater(len(set(priors)), 1)

    def test_zero_epsilon_keeps_priors(self):
        before = [c.policy for c in self.root.children.values()]
        self.root.apply_dirichlet(1.0, 0.0, np.random.default_rng(0))
        self.assertEqual([c.policy for c in self.root.children.values()], before)


class TestReports(unittest.TestCase):
    """Test search reports and tree statistics."""

    def setUp(self):
        set_seed(42)
        self.state = white_to_win()
        self.root = MCTSNode()
        run_rollouts(self.root, self.state, UniformEvaluator(3), 150)

    def test_debug_format(self):
        report = self.root.debug(3)
        lines = report.splitlines()
        self.assertEqual(lines[0], "turn      visited   reward   policy | continuation")
        self.assertEqual(len(lines), 4)
        self.assertTrue(report.endswith("\n"))
        self.assertTrue(lines[1].startswith("a3 "))
        fields = lines[1].split("|")[0].split()
        self.assertEqual(int(fields[1]), self.root.children[Turn.from_ptn("a3")].visits)
        self.assertEqual(fields[2], "-1.0000")

    def test_debug_lists_all_children(self):
        self.assertEqual(len(self.root.debug().splitlines()), 1 + len(self.root.children))

    def test_count_nodes(self):
        self.assertEqual(count_nodes(self.root), len(list(walk(self.root))))
        self.assertEqual(count_nodes(MCTSNode()), 1)

    def test_principal_variation(self):
        pv = get_principal_variation(self.root, max_depth=4)
        self.assertEqual(pv[0], (Turn.from_ptn("a3"), 1.0))
        self.assertLessEqual(len(pv), 4)

    def test_action_statistics(self):
        stats = get_action_statistics(self.root)
        self.assertEqual(len(stats), len(self.root.children))
        self.assertEqual(stats["a3"]["value"], 1.0)
        self.assertEqual(set(stats["a3"]), {"visits", "value", "policy"})

    def test_visit_distribution(self):
        distribution = visit_distribution(self.root, 3)
        self.assertEqual(distribution.shape, (action_space_size(3),))
        self.assertAlmostEqual(float(distribution.sum()), 1.0, places=5)
        index = encode_turn(Turn.from_ptn("a3"), 3)
        self.assertEqual(int(np.argmax(distribution)), index)
        self.assertFalse(visit_distribution(MCTSNode(), 3).any())


class TestMCTSConfig(unittest.TestCase):
    """Test search configuration."""

    def test_validation(self):
        with self.assertRaises(ValueError):
            MCTSConfig(exploration_weight=0)
        with self.assertRaises(ValueError):
            MCTSConfig(dirichlet_epsilon=1.5)
        with self.assertRaises(ValueError):
            MCTSConfig(time_limit=-1.0)

    def test_dict_round_trip(self):
        config = MCTSConfig.fast()
        data = config.to_dict()
        data["unknown"] = 1
        self.assertEqual(MCTSConfig.from_dict(data), config)


if __name__ == "__main__":
    unittest.main()
