import logging
import math

import config
from geometry import get_intersection, lerp, polys_intersect
from neural_net import NeuralNetwork

log = logging.getLogger("game_env")

CONTROL_TYPES = ("KEYS", "AI", "DUMMY")


class Controls:
    """Forward/left/right/reverse switches for one car."""

    def __init__(self, control_type="KEYS"):
        self.forward = False
        self.left = False
        self.right = False
        self.reverse = False

        if control_type == "DUMMY":
            self.forward = True

    def as_list(self):
        return [self.forward, self.left, self.right, self.reverse]


class Sensor:
    def __init__(self, car, ray_count=config.RAY_COUNT,
                 ray_length=config.RAY_LENGTH, ray_spread=config.RAY_SPREAD):
        self.car = car
        self.ray_count = ray_count
        self.ray_length = ray_length
        self.ray_spread = ray_spread

        self.rays = []
        self.readings = []

    def update(self, road_borders, traffic):
        self.cast_rays()
        self.readings = [self.get_reading(ray, road_borders, traffic) for ray in self.rays]

    def get_reading(self, ray, road_borders, traffic):
        """Nearest hit along the ray, or None when nothing is in range."""
        nearest = None

        for border in road_borders:
            touch = get_intersection(ray[0], ray[1], border[0], border[1])
            if touch and (nearest is None or touch.offset < nearest.offset):
                nearest = touch

        for other in traffic:
            poly = other.polygon
            for j in range(len(poly)):
                touch = get_intersection(ray[0], ray[1], poly[j], poly[(j + 1) % len(poly)])
                if touch and (nearest is None or touch.offset < nearest.offset):
                    nearest = touch

        return nearest

    def cast_rays(self):
        self.rays = []
        start = (self.car.x, self.car.y)

        for i in range(self.ray_count):
            # Map i from 0..ray_count-1 to +spread/2 .. -spread/2 around the heading
            t = 0.5 if self.ray_count == 1 else i / (self.ray_count - 1)
            ray_angle = lerp(self.ray_spread / 2, -self.ray_spread / 2, t) + self.car.angle

            end = (
                self.car.x - math.sin(ray_angle) * self.ray_length,
                self.car.y - math.cos(ray_angle) * self.ray_length
            )
            self.rays.append((start, end))

    def offsets(self):
        # Closer obstacles give larger values, 0 means clear
        return [0.0 if r is None else 1 - r.offset for r in self.readings]


class Car:
    def __init__(self, x, y, width=config.CAR_WIDTH, height=config.CAR_HEIGHT,
                 control_type="AI", max_speed=config.MAX_SPEED, controls=None,
                 brain=None, hidden_nodes=config.HIDDEN_NODES, rng=None,
                 friction=config.FRICTION):
        if control_type not in CONTROL_TYPES:
            raise ValueError(f"Unknown control type: {control_type}")

        self.x = x
        self.y = y
        self.width = width
        self.height = height

        self.speed = 0.0
        self.acceleration = config.ACCELERATION
        self.max_speed = max_speed
        self.friction = friction
        self.angle = 0.0
        self.damaged = False

        self.control_type = control_type
        self.use_brain = control_type == "AI"

        self.sensor = None
        self.brain = None
        if control_type != "DUMMY":
            self.sensor = Sensor(self)
        if self.use_brain:
            self.brain = brain if brain is not None else NeuralNetwork(
                self.sensor.ray_count, hidden_nodes, config.OUTPUT_NODES, rng)

        # Human cars read a record owned by the input handler
        if control_type == "KEYS" and controls is not None:
            self.controls = controls
        else:
            self.controls = Controls(control_type)

        # Most recent network activations, for visualizers
        self.last_inputs = []
        self.last_outputs = []

        # Fitness tracking
        self.fitness = 0.0
        self.distance_traveled = 0.0
        self.last_position = (x, y)
        self.stuck_time = 0
        self.checkpoints_passed = 0

        self.polygon = self.create_polygon()

    def update(self, road_borders, traffic):
        if self.sensor:
            self.sensor.update(road_borders, traffic)

        if self.damaged:
            return

        if self.use_brain:
            self.last_inputs = self.sensor.offsets()
            self.last_outputs = self.brain.predict(self.last_inputs)
            forward, left, right, reverse = (o > config.OUTPUT_THRESHOLD
                                             for o in self.last_outputs)
            self.controls.forward = forward
            self.controls.left = left
            self.controls.right = right
            self.controls.reverse = reverse

        self.move()
        self.polygon = self.create_polygon()
        self.damaged = self.assess_damage(road_borders, traffic)
        if not self.damaged:
            self.calculate_fitness()

    def calculate_fitness(self):
        dx = self.x - self.last_position[0]
        dy = self.y - self.last_position[1]
        distance = math.hypot(dx, dy)

        self.distance_traveled += distance
        self.last_position = (self.x, self.y)

        # Barely moving counts as stuck
        if distance < config.STUCK_DISTANCE:
            self.stuck_time += 1
        else:
            self.stuck_time = 0

        self.fitness = self.distance_traveled + self.checkpoints_passed * config.CHECKPOINT_BONUS

        # TODO: decide whether the stuck penalty should be capped
        if self.stuck_time > config.STUCK_LIMIT:
            self.fitness -= self.stuck_time * config.STUCK_PENALTY

    def assess_damage(self, road_borders, traffic):
        for border in road_borders:
            if polys_intersect(self.polygon, border):
                return True
        for other in traffic:
            if polys_intersect(self.polygon, other.polygon):
                return True
        return False

    def create_polygon(self):
        rad = math.hypot(self.width, self.height) / 2
        alpha = math.atan2(self.width, self.height)

        corners = (self.angle - alpha, self.angle + alpha,
                   math.pi + self.angle - alpha, math.pi + self.angle + alpha)
        return [(self.x - math.sin(a) * rad, self.y - math.cos(a) * rad) for a in corners]

    def move(self):
        if self.controls.forward:
            self.speed += self.acceleration
        if self.controls.reverse:
            self.speed -= self.acceleration

        # Clamp speed to limits, reverse is half as fast
        self.speed = max(min(self.speed, self.max_speed), -self.max_speed / 2)

        if self.speed > 0:
            self.speed -= self.friction
        if self.speed < 0:
            self.speed += self.friction
        if abs(self.speed) < self.friction:
            self.speed = 0.0

        # Steering only bites while moving and flips in reverse
        if self.speed != 0:
            flip = 1 if self.speed > 0 else -1
            if self.controls.left:
                self.angle += config.STEERING * flip
            if self.controls.right:
                self.angle -= config.STEERING * flip

        # Angle 0 points up the screen (negative y)
        self.x -= math.sin(self.angle) * self.speed
        self.y -= math.cos(self.angle) * self.speed


class Road:
    def __init__(self, x, width, lane_count=config.LANE_COUNT):
        self.x = x
        self.lane_count = lane_count
        self.top = -config.ROAD_INFINITY
        self.bottom = config.ROAD_INFINITY
        self.resize(width)

    def resize(self, width):
        """Rebuild borders and checkpoints around the same centre."""
        self.width = width
        self.left = self.x - width / 2
        self.right = self.x + width / 2

        self.borders = [
            [(self.left, self.top), (self.left, self.bottom)],
            [(self.right, self.top), (self.right, self.bottom)]
        ]

        # Not consulted by fitness yet
        self.checkpoints = [
            [(self.left, -i * config.CHECKPOINT_SPACING),
             (self.right, -i * config.CHECKPOINT_SPACING)]
            for i in range(1, config.CHECKPOINT_COUNT + 1)
        ]
        log.debug("Road resized to %.1f (left=%.1f, right=%.1f)", width, self.left, self.right)

    def get_lane_center(self, lane_index):
        lane_width = self.width / self.lane_count
        return self.left + lane_width / 2 + min(lane_index, self.lane_count - 1) * lane_width
