"""
Evolution controller: owns the road, traffic, the player car and the AI population,
advances the simulation one tick at a time and breeds the next generation.
"""
import logging

import numpy as np

import config
from game_env import Car, Controls, Road

log = logging.getLogger("game")

RUNNING = "RUNNING"
ALL_DAMAGED = "ALL_DAMAGED"


class AudioPort:
    """Sound hooks. The default does nothing; front ends override what they need."""

    def crash(self, car):
        pass

    def generation(self, generation, best_fitness):
        pass


def car_snapshot(car):
    sensor = car.sensor
    return {
        'x': car.x,
        'y': car.y,
        'angle': car.angle,
        'speed': car.speed,
        'polygon': list(car.polygon),
        'damaged': car.damaged,
        'fitness': car.fitness,
        'controls': car.controls.as_list(),
        'rays': list(sensor.rays) if sensor else [],
        'readings': list(sensor.readings) if sensor else [],
    }


class Game:
    def __init__(self, road_width=config.SCREEN_WIDTH * config.ROAD_WIDTH_RATIO,
                 road_x=config.SCREEN_WIDTH / 2,
                 population_size=config.POPULATION_SIZE,
                 mutation_rate=config.MUTATION_RATE,
                 hidden_nodes=config.HIDDEN_NODES,
                 traffic_count=config.TRAFFIC_COUNT,
                 seed=None, controls=None, audio=None):
        self.population_size = population_size
        self.mutation_rate = mutation_rate
        self.hidden_nodes = hidden_nodes
        self.traffic_count = traffic_count

        self.rng = np.random.default_rng(seed)
        self.controls = controls if controls is not None else Controls("KEYS")
        self.audio = audio if audio is not None else AudioPort()

        self.road = Road(road_x, road_width)
        self.reset()

    @property
    def population_size(self):
        return self._population_size

    @population_size.setter
    def population_size(self, value):
        # Takes effect at the next generation
        if value < 1:
            raise ValueError(f"Population size must be at least 1, got {value}")
        self._population_size = int(value)

    @property
    def mutation_rate(self):
        return self._mutation_rate

    @mutation_rate.setter
    def mutation_rate(self, value):
        if not 0 <= value <= 1:
            raise ValueError(f"Mutation rate must be in [0, 1], got {value}")
        self._mutation_rate = float(value)

    @property
    def hidden_nodes(self):
        return self._hidden_nodes

    @hidden_nodes.setter
    def hidden_nodes(self, value):
        # Only networks built by reset() pick this up
        if value < 1:
            raise ValueError(f"Hidden layer needs at least 1 node, got {value}")
        self._hidden_nodes = int(value)

    @property
    def state(self):
        return ALL_DAMAGED if all(car.damaged for car in self.cars) else RUNNING

    def generate_cars(self, count):
        return [self._spawn_ai() for _ in range(count)]

    def generate_traffic(self, count):
        traffic = []
        for i in range(count):
            lane = int(self.rng.integers(self.road.lane_count))
            y = config.TRAFFIC_START_Y - i * config.TRAFFIC_SPACING  # Space traffic vertically
            traffic.append(Car(self.road.get_lane_center(lane), y,
                               control_type="DUMMY", max_speed=config.TRAFFIC_MAX_SPEED))
        return traffic

    def _spawn_ai(self, brain=None):
        return Car(self.road.get_lane_center(config.START_LANE), config.START_Y,
                   control_type="AI", brain=brain,
                   hidden_nodes=self.hidden_nodes, rng=self.rng)

    def _spawn_player(self):
        return Car(self.road.get_lane_center(config.START_LANE), config.START_Y,
                   control_type="KEYS", controls=self.controls)

    def reset(self):
        """Rebuild population, traffic and player car from scratch."""
        self.cars = self.generate_cars(self.population_size)
        self.traffic = self.generate_traffic(self.traffic_count)
        self.player = self._spawn_player()
        self.generation = 0
        self.best_fitness = 0
        log.info("Reset: %d cars, %d hidden nodes, %d traffic",
                 len(self.cars), self.hidden_nodes, len(self.traffic))

    def resize(self, road_width):
        self.road.resize(road_width)

    def tick(self):
        borders = self.road.borders

        # Traffic only collides with the road edges
        for car in self.traffic:
            car.update(borders, [])

        was_damaged = self.player.damaged
        self.player.update(borders, self.traffic)
        if self.player.damaged and not was_damaged:
            log.debug("Player crashed at (%.1f, %.1f)", self.player.x, self.player.y)
            self.audio.crash(self.player)

        for car in self.cars:
            car.update(borders, self.traffic)

        if self.state == ALL_DAMAGED:
            self.evolve()

        return self.snapshot()

    def best_index(self):
        """Index of the fittest car, first one wins ties."""
        best = 0
        for i in range(1, len(self.cars)):
            if self.cars[i].fitness > self.cars[best].fitness:
                best = i
        return best

    def leader_index(self):
        """Index of the car furthest up the road, for the camera."""
        leader = 0
        for i in range(1, len(self.cars)):
            if self.cars[i].y < self.cars[leader].y:
                leader = i
        return leader

    def evolve(self):
        best_car = self.cars[self.best_index()]
        if best_car.fitness > self.best_fitness:
            self.best_fitness = best_car.fitness

        # Elite first, unmutated
        new_cars = [self._spawn_ai(best_car.brain.copy())]
        for _ in range(1, self.population_size):
            brain = best_car.brain.copy()
            brain.mutate(self.mutation_rate, self.rng)
            new_cars.append(self._spawn_ai(brain))

        self.cars = new_cars
        self.traffic = self.generate_traffic(self.traffic_count)
        self.generation += 1

        log.info("Generation %d complete. Best Fitness: %.2f (all time %.2f)",
                 self.generation, best_car.fitness, self.best_fitness)
        self.audio.generation(self.generation, self.best_fitness)

    def snapshot(self):
        """Copy of everything a renderer needs after a tick."""
        leader_idx = self.leader_index()
        leader = self.cars[leader_idx]
        return {
            'generation': self.generation,
            'best_fitness': self.best_fitness,
            'state': self.state,
            'mutation_rate': self.mutation_rate,
            'population_size': self.population_size,
            'hidden_nodes': self.hidden_nodes,
            'road': {
                'x': self.road.x,
                'left': self.road.left,
                'right': self.road.right,
                'lane_count': self.road.lane_count,
                'borders': [list(b) for b in self.road.borders],
            },
            'player': car_snapshot(self.player),
            'traffic': [car_snapshot(car) for car in self.traffic],
            'cars': [car_snapshot(car) for car in self.cars],
            'leader': leader_idx,
            'network': {
                'hidden_nodes': leader.brain.hidden_nodes,
                'weights': [w.copy() for w in leader.brain.get_weights()],
                'inputs': list(leader.last_inputs),
                'outputs': list(leader.last_outputs),
            },
        }
