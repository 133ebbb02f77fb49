"""
Segment and polygon intersection helpers shared by sensors and collision checks.
"""
from collections import namedtuple

# Hit point plus its parametric position along the first segment
Intersection = namedtuple("Intersection", ["x", "y", "offset"])


def lerp(a, b, t):
    return a + (b - a) * t


def get_intersection(a, b, c, d):
    """Intersect segment a-b with segment c-d.

    Points are (x, y) pairs. Returns an Intersection whose offset is the
    parametric position along a-b, or None when the segments do not cross.
    Parallel, collinear and zero-length segments never report a hit.
    """
    t_top = (d[0] - c[0]) * (a[1] - c[1]) - (d[1] - c[1]) * (a[0] - c[0])
    u_top = (c[1] - a[1]) * (a[0] - b[0]) - (c[0] - a[0]) * (a[1] - b[1])
    bottom = (d[1] - c[1]) * (b[0] - a[0]) - (d[0] - c[0]) * (b[1] - a[1])

    if bottom == 0:
        return None

    t = t_top / bottom
    u = u_top / bottom
    if 0 <= t <= 1 and 0 <= u <= 1:
        return Intersection(lerp(a[0], b[0], t), lerp(a[1], b[1], t), t)
    return None


def polys_intersect(poly1, poly2):
    """True if any edge of poly1 crosses any edge of poly2 (edges wrap around)."""
    for i in range(len(poly1)):
        p1 = poly1[i]
        p2 = poly1[(i + 1) % len(poly1)]
        for j in range(len(poly2)):
            if get_intersection(p1, p2, poly2[j], poly2[(j + 1) % len(poly2)]):
                return True
    return False


def polygon_centroid(poly):
    n = len(poly)
    return (sum(p[0] for p in poly) / n, sum(p[1] for p in poly) / n)
