import logging
import os
import sys

import pygame

import config
from game import AudioPort, Game
from game_env import Controls
from geometry import polygon_centroid

log = logging.getLogger("main")

ROAD_COLOR = (60, 60, 60)
LINE_COLOR = (255, 255, 255)
TRAFFIC_COLOR = (220, 50, 50)
AI_COLOR = (50, 100, 255)
PLAYER_COLOR = (50, 200, 50)
DAMAGED_COLOR = (255, 0, 0)
RAY_COLOR = (255, 255, 0)

KEY_MAP = {
    pygame.K_UP: 'forward',
    pygame.K_LEFT: 'left',
    pygame.K_RIGHT: 'right',
    pygame.K_DOWN: 'reverse',
}

# Configuration knobs: key -> (Game attribute, step)
KNOB_KEYS = {
    pygame.K_EQUALS: ('mutation_rate', config.MUTATION_RATE_STEP),
    pygame.K_PLUS: ('mutation_rate', config.MUTATION_RATE_STEP),
    pygame.K_MINUS: ('mutation_rate', -config.MUTATION_RATE_STEP),
    pygame.K_RIGHTBRACKET: ('population_size', 1),
    pygame.K_LEFTBRACKET: ('population_size', -1),
    pygame.K_PERIOD: ('hidden_nodes', 1),
    pygame.K_COMMA: ('hidden_nodes', -1),
}
KNOB_LIMITS = {
    'mutation_rate': (0.0, 1.0),
    'population_size': (1, config.MAX_POPULATION_SIZE),
    'hidden_nodes': (1, config.MAX_HIDDEN_NODES),
}

OUTPUT_NAMES = ("fwd", "left", "right", "rev")


class LogAudio(AudioPort):
    def crash(self, car):
        log.info("Crash at y=%.0f", car.y)


def to_screen(point, camera_y):
    return (int(point[0]), int(point[1] + camera_y))


def draw_car(screen, car, color, camera_y, draw_sensor=False):
    if draw_sensor:
        for ray, reading in zip(car['rays'], car['readings']):
            end = (reading.x, reading.y) if reading else ray[1]
            pygame.draw.line(screen, RAY_COLOR, to_screen(ray[0], camera_y),
                             to_screen(end, camera_y), 2)
            if reading:
                pygame.draw.circle(screen, DAMAGED_COLOR, to_screen(end, camera_y), 5)

    if car['damaged']:
        # Keep the alpha of faded cars
        color = DAMAGED_COLOR + tuple(color[3:])
    points = [to_screen(p, camera_y) for p in car['polygon']]
    pygame.draw.polygon(screen, color, points)


def draw(screen, font, snap):
    width, height = screen.get_size()
    player = snap['player']
    leader = snap['cars'][snap['leader']]

    # Follow the player until it crashes, then the leading AI car
    follow = leader if player['damaged'] else player
    camera_y = -follow['y'] + height * config.CAMERA_ANCHOR

    screen.fill((20, 20, 20))
    road = snap['road']
    pygame.draw.rect(screen, ROAD_COLOR, (road['left'], 0, road['right'] - road['left'], height))
    lane_width = (road['right'] - road['left']) / road['lane_count']
    for i in range(1, road['lane_count']):
        x = road['left'] + lane_width * i
        # Dashed lane lines scroll with the camera
        for y in range(int(camera_y) % 40 - 40, height, 40):
            pygame.draw.line(screen, LINE_COLOR, (x, y), (x, y + 20), 3)
    for border in road['borders']:
        pygame.draw.line(screen, LINE_COLOR, (border[0][0], 0), (border[0][0], height), 5)

    for car in snap['traffic']:
        draw_car(screen, car, TRAFFIC_COLOR, camera_y)

    faded = pygame.Surface((width, height), pygame.SRCALPHA)
    for i, car in enumerate(snap['cars']):
        if i != snap['leader']:
            draw_car(faded, car, AI_COLOR + (50,), camera_y)
    screen.blit(faded, (0, 0))

    draw_car(screen, leader, AI_COLOR, camera_y, draw_sensor=True)
    draw_car(screen, player, PLAYER_COLOR, camera_y, draw_sensor=True)
    pygame.draw.circle(screen, LINE_COLOR, to_screen(polygon_centroid(leader['polygon']), camera_y), 3)

    for i, line in enumerate(hud_lines(snap)):
        screen.blit(font.render(line, True, LINE_COLOR), (10, 10 + i * 22))


def hud_lines(snap):
    alive = sum(1 for car in snap['cars'] if not car['damaged'])
    network = snap['network']
    outputs = " ".join(f"{name}:{value:.2f}"
                       for name, value in zip(OUTPUT_NAMES, network['outputs']))
    return [
        f"Gen: {snap['generation']} | Alive: {alive}/{len(snap['cars'])} "
        f"| Best: {snap['best_fitness']:.0f}",
        f"Mutation: {snap['mutation_rate']:.2f} | Population: {snap['population_size']} "
        f"| Hidden: {network['hidden_nodes']} (next reset {snap['hidden_nodes']})",
        f"Leader: {outputs}",
    ]


def adjust_knob(game, key):
    """Apply a configuration key press. Returns False for unrelated keys."""
    if key not in KNOB_KEYS:
        return False
    name, step = KNOB_KEYS[key]
    low, high = KNOB_LIMITS[name]
    value = min(max(getattr(game, name) + step, low), high)
    if name == 'mutation_rate':
        value = round(value, 2)
    setattr(game, name, value)
    log.info("%s set to %s", name, value)
    return True


def main():
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    seed = os.environ.get('SEED')

    pygame.init()
    screen = pygame.display.set_mode((config.SCREEN_WIDTH, config.SCREEN_HEIGHT), pygame.RESIZABLE)
    pygame.display.set_caption("Neuro-evolution driving")
    clock = pygame.time.Clock()
    font = pygame.font.SysFont("Arial", 18)

    controls = Controls("KEYS")
    game = Game(seed=int(seed) if seed else None, controls=controls, audio=LogAudio())
    running = True
    snap = game.snapshot()

    while True:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                pygame.quit()
                sys.exit()
            elif event.type == pygame.VIDEORESIZE:
                game.resize(event.w * config.ROAD_WIDTH_RATIO)
            elif event.type in (pygame.KEYDOWN, pygame.KEYUP):
                pressed = event.type == pygame.KEYDOWN
                if event.key in KEY_MAP:
                    setattr(controls, KEY_MAP[event.key], pressed)
                elif pressed and event.key == pygame.K_SPACE:
                    running = not running
                elif pressed and event.key == pygame.K_r:
                    game.reset()
                elif pressed and event.key == pygame.K_t:
                    game.evolve()
                elif pressed:
                    adjust_knob(game, event.key)

        if running:
            snap = game.tick()
        else:
            snap = game.snapshot()

        draw(screen, font, snap)
        pygame.display.flip()
        clock.tick(config.FPS)


if __name__ == "__main__":
    main()
