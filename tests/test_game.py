import os
import sys
import unittest

import numpy as np

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import config
from game import ALL_DAMAGED, RUNNING, AudioPort, Game
from game_env import Car, Controls


class RecordingAudio(AudioPort):
    def __init__(self):
        self.crashes = 0
        self.generations = []

    def crash(self, car):
        self.crashes += 1

    def generation(self, generation, best_fitness):
        self.generations.append((generation, best_fitness))


def trajectory(game):
    return [(car.x, car.y, car.angle, car.fitness) for car in game.cars + game.traffic]


class TestGameSetup(unittest.TestCase):
    def test_defaults(self):
        game = Game(seed=0)
        self.assertEqual(len(game.cars), config.POPULATION_SIZE)
        self.assertEqual(len(game.traffic), config.TRAFFIC_COUNT)
        self.assertEqual(game.generation, 0)
        self.assertEqual(game.best_fitness, 0)
        self.assertEqual(game.state, RUNNING)

    def test_empty_population_rejected(self):
        with self.assertRaises(ValueError):
            Game(population_size=0)
        game = Game(seed=0, population_size=2)
        with self.assertRaises(ValueError):
            game.population_size = 0

    def test_mutation_rate_checked_on_set(self):
        with self.assertRaises(ValueError):
            Game(seed=0, population_size=3, mutation_rate=1.5)
        game = Game(seed=0, population_size=3)
        with self.assertRaises(ValueError):
            game.mutation_rate = -0.1
        self.assertEqual(game.mutation_rate, config.MUTATION_RATE)

    def test_bad_mutation_rate_leaves_state_untouched(self):
        game = Game(seed=0, population_size=3)
        for car in game.cars:
            car.damaged = True
        game.cars[1].fitness = 77
        with self.assertRaises(ValueError):
            game.mutation_rate = 1.5
        game.tick()
        self.assertEqual(game.generation, 1)
        self.assertEqual(game.best_fitness, 77)

    def test_hidden_nodes_checked_on_set(self):
        game = Game(seed=0, population_size=2)
        with self.assertRaises(ValueError):
            game.hidden_nodes = 0

    def test_traffic_placed_in_lanes(self):
        game = Game(seed=5)
        centers = [game.road.get_lane_center(i) for i in range(game.road.lane_count)]
        for i, car in enumerate(game.traffic):
            self.assertIn(car.x, centers)
            self.assertEqual(car.y, config.TRAFFIC_START_Y - i * config.TRAFFIC_SPACING)
            self.assertEqual(car.max_speed, config.TRAFFIC_MAX_SPEED)


class TestTick(unittest.TestCase):
    def test_determinism(self):
        first = Game(seed=42)
        second = Game(seed=42)
        for _ in range(300):
            first.tick()
            second.tick()
        self.assertEqual(first.generation, second.generation)
        self.assertEqual(trajectory(first), trajectory(second))

    def test_all_damaged_triggers_evolution(self):
        game = Game(seed=1, population_size=4)
        for car in game.cars:
            car.damaged = True
        self.assertEqual(game.state, ALL_DAMAGED)
        game.tick()
        self.assertEqual(game.generation, 1)
        self.assertEqual(game.state, RUNNING)
        self.assertEqual(len(game.cars), 4)

    def test_player_reads_controls(self):
        controls = Controls("KEYS")
        game = Game(seed=1, controls=controls)
        controls.forward = True
        game.tick()
        self.assertGreater(game.player.speed, 0)
        self.assertIs(game.player.controls, controls)
        self.assertEqual(controls.as_list(), [True, False, False, False])

    def test_player_crash_reported_once(self):
        audio = RecordingAudio()
        game = Game(seed=1, audio=audio)
        game.player.x = game.road.left + 10
        game.tick()
        self.assertTrue(game.player.damaged)
        game.tick()
        self.assertEqual(audio.crashes, 1)

    def test_traffic_ignores_other_traffic(self):
        game = Game(seed=1, population_size=2)
        x = game.road.get_lane_center(0)
        game.traffic = [Car(x, -300, control_type="DUMMY", max_speed=config.TRAFFIC_MAX_SPEED),
                        Car(x, -310, control_type="DUMMY", max_speed=config.TRAFFIC_MAX_SPEED)]
        front, back = game.traffic
        for _ in range(5):
            game.tick()
        self.assertFalse(front.damaged)
        self.assertFalse(back.damaged)
        self.assertLess(front.y, -300)
    def test_snapshot_is_a_copy(self):
        game = Game(seed=3)
        snap = game.tick()
        leader = game.cars[snap['leader']]
        snap['network']['weights'][0][0, 0] = 99.0
        self.assertNotEqual(leader.brain.weights_input_hidden[0, 0], 99.0)
        self.assertEqual(len(snap['cars']), len(game.cars))
        self.assertEqual(len(snap['network']['inputs']), 5)
        self.assertEqual(len(snap['network']['outputs']), 4)
        self.assertEqual(snap['player']['polygon'], game.player.polygon)


class TestEvolution(unittest.TestCase):
    def test_elite_is_unmutated_clone(self):
        game = Game(seed=7, population_size=6, mutation_rate=1.0)
        for _ in range(60):
            game.tick()
        best = game.cars[game.best_index()]
        weights = [w.copy() for w in best.brain.get_weights()]
        best_fitness = best.fitness

        game.evolve()
        elite = game.cars[0]
        for old, new in zip(weights, elite.brain.get_weights()):
            self.assertTrue(np.array_equal(old, new))
        self.assertIsNot(elite.brain, best.brain)
        self.assertGreaterEqual(game.best_fitness, best_fitness)

        # Everyone else is a mutated clone
        for car in game.cars[1:]:
            self.assertFalse(np.array_equal(car.brain.weights_input_hidden, weights[0]))
            delta = np.abs(car.brain.weights_input_hidden - weights[0])
            self.assertTrue(np.all(delta <= 0.1 + 1e-12))

    def test_first_of_equal_best_wins(self):
        game = Game(seed=2, population_size=5)
        game.cars[2].fitness = 50
        game.cars[3].fitness = 50
        self.assertEqual(game.best_index(), 2)
        expected = game.cars[2].brain.weights_hidden_output.copy()
        game.evolve()
        self.assertEqual(game.best_fitness, 50)
        self.assertTrue(np.array_equal(game.cars[0].brain.weights_hidden_output, expected))

    def test_best_fitness_only_grows(self):
        game = Game(seed=2, population_size=3)
        game.cars[0].fitness = 30
        game.evolve()
        game.cars[1].fitness = 10
        game.evolve()
        self.assertEqual(game.best_fitness, 30)
        self.assertEqual(game.generation, 2)

    def test_population_size_applies_next_generation(self):
        game = Game(seed=4, population_size=5)
        game.population_size = 3
        self.assertEqual(len(game.cars), 5)
        game.evolve()
        self.assertEqual(len(game.cars), 3)

    def test_single_car_population(self):
        game = Game(seed=4, population_size=1)
        game.evolve()
        self.assertEqual(len(game.cars), 1)

    def test_hidden_nodes_apply_to_new_networks_only(self):
        game = Game(seed=4, population_size=3)
        game.hidden_nodes = 4
        self.assertEqual(game.cars[0].brain.hidden_nodes, config.HIDDEN_NODES)
        game.evolve()
        self.assertEqual(game.cars[0].brain.weights_input_hidden.shape, (config.HIDDEN_NODES, 5))
        game.reset()
        for car in game.cars:
            self.assertEqual(car.brain.weights_input_hidden.shape, (4, 5))

    def test_traffic_regenerated(self):
        audio = RecordingAudio()
        game = Game(seed=9, audio=audio)
        old_traffic = game.traffic
        game.evolve()
        self.assertIsNot(game.traffic, old_traffic)
        self.assertEqual(len(game.traffic), config.TRAFFIC_COUNT)
        self.assertEqual(audio.generations, [(1, game.best_fitness)])

    def test_player_persists_across_generations(self):
        game = Game(seed=9)
        player = game.player
        game.evolve()
        self.assertIs(game.player, player)


class TestResetAndResize(unittest.TestCase):
    def test_reset(self):
        game = Game(seed=11, population_size=3)
        game.cars[0].fitness = 20
        game.evolve()
        player = game.player
        game.reset()
        self.assertEqual(game.generation, 0)
        self.assertEqual(game.best_fitness, 0)
        self.assertIsNot(game.player, player)

    def test_resize_leaves_population(self):
        game = Game(seed=11)
        cars = game.cars
        game.resize(300)
        self.assertIs(game.cars, cars)
        self.assertEqual(game.road.left, game.road.x - 150)
        self.assertEqual(game.road.borders[1][0][0], game.road.x + 150)

    def test_leader_is_furthest_up(self):
        game = Game(seed=11, population_size=4)
        game.cars[1].y = -500
        game.cars[3].y = -500
        self.assertEqual(game.leader_index(), 1)


if __name__ == '__main__':
    unittest.main()
