import math

# Screen settings
SCREEN_WIDTH = 600
SCREEN_HEIGHT = 800
FPS = 60
CAMERA_ANCHOR = 0.7  # Followed car sits at 70% of the screen height

# Road settings
ROAD_WIDTH_RATIO = 0.9  # Road takes 90% of the window width
LANE_COUNT = 3
ROAD_INFINITY = 1000000
CHECKPOINT_COUNT = 10
CHECKPOINT_SPACING = 100

# Car settings
CAR_WIDTH = 30
CAR_HEIGHT = 50
START_LANE = 1
START_Y = 100
MAX_SPEED = 5
TRAFFIC_MAX_SPEED = 2
ACCELERATION = 0.2
FRICTION = 0.05
STEERING = 0.03

# Raycasting settings
RAY_COUNT = 5
RAY_LENGTH = 150
RAY_SPREAD = math.pi / 2  # 90 degrees spread

# Network settings
HIDDEN_NODES = 8
OUTPUT_NODES = 4  # forward, left, right, reverse
OUTPUT_THRESHOLD = 0.5
MUTATION_STEP = 0.1

# Fitness settings
STUCK_DISTANCE = 0.1
STUCK_LIMIT = 100
STUCK_PENALTY = 0.1
CHECKPOINT_BONUS = 100

# GA settings
POPULATION_SIZE = 20
MUTATION_RATE = 0.1
TRAFFIC_COUNT = 10
TRAFFIC_START_Y = -100
TRAFFIC_SPACING = 150

# Front-end knob limits
MUTATION_RATE_STEP = 0.05
MAX_POPULATION_SIZE = 100
MAX_HIDDEN_NODES = 20
