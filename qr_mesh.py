"""Turn a QR module matrix into a closed, printable triangle mesh."""

from dataclasses import dataclass
from typing import List, NamedTuple, Sequence, Tuple

Matrix = Sequence[Sequence[bool]]


class Vec3(NamedTuple):
    x: float
    y: float
    z: float


class Triangle(NamedTuple):
    normal: Vec3
    vertices: Tuple[Vec3, Vec3, Vec3]


# Normals are left for the viewer / slicer to compute
NO_NORMAL = Vec3(0.0, 0.0, 0.0)


@dataclass(frozen=True)
class MeshOptions:
    pixel_size: float = 2.5
    base_size: float = 5.0
    base_height: float = 3.0


def add(a: Vec3, b: Vec3) -> Vec3:
    return Vec3(a.x + b.x, a.y + b.y, a.z + b.z)


def negate(a: Vec3) -> Vec3:
    return Vec3(-a.x, -a.y, -a.z)


def subtract(a: Vec3, b: Vec3) -> Vec3:
    return add(a, negate(b))


def scale(s: float, a: Vec3) -> Vec3:
    return Vec3(s * a.x, s * a.y, s * a.z)


def scale_triangle(s: float, tri: Triangle) -> Triangle:
    """Scale every vertex of a triangle, the normal is kept as is"""
    return Triangle(tri.normal, tuple(scale(s, v) for v in tri.vertices))


def sample(matrix: Matrix, x: int, y: int) -> bool:
    """Get the pixel at column x, row y. Anything outside the matrix is white (False)."""
    if x < 0 or y < 0 or y >= len(matrix):
        return False
    row = matrix[y]
    if x >= len(row):
        return False
    return bool(row[x])


def rect(p1: Vec3, p2: Vec3) -> List[Triangle]:
    """
    Two triangles covering the axis aligned rectangle with opposite corners p1 and p2.

    The winding depends on the argument order: swapping p1 and p2 turns the
    face inside out, so every caller passes its corners in a fixed order.
    """
    tri1 = Triangle(
        NO_NORMAL,
        (p2, p1, Vec3(max(p1.x, p2.x), min(p1.y, p2.y), max(p1.z, p2.z))),
    )
    tri2 = Triangle(
        NO_NORMAL,
        (p1, p2, Vec3(min(p1.x, p2.x), max(p1.y, p2.y), min(p1.z, p2.z))),
    )
    return [tri1, tri2]


def _grid_point(pixel_size: float, x: float, y: float, z: float) -> Vec3:
    # x and y are in pixels, z is already in world units
    return add(scale(pixel_size, Vec3(x, y, 0.0)), Vec3(0.0, 0.0, z))


def matrix_to_triangles(matrix: Matrix, pixel_size: float) -> List[Triangle]:
    """Raise every black pixel by a quarter pixel and lay a floor tile under every white one"""
    thickness = pixel_size * 0.25

    tris = []
    for my, row in enumerate(matrix):
        for mx, val in enumerate(row):
            x = float(mx)
            y = float(my)

            if not val:
                # white pixel: flat floor tile
                tris.extend(rect(
                    _grid_point(pixel_size, x, y, 0.0),
                    _grid_point(pixel_size, x + 1.0, y + 1.0, 0.0),
                ))
                continue

            # raised tile
            tris.extend(rect(
                _grid_point(pixel_size, x, y, thickness),
                _grid_point(pixel_size, x + 1.0, y + 1.0, thickness),
            ))

            # (neighbour, wall start, wall end, swap corners)
            dirs = [
                # left
                ((mx - 1, my), (x, y), (x, y + 1.0), False),
                # down
                ((mx, my + 1), (x + 1.0, y + 1.0), (x, y + 1.0), True),
                # right
                ((mx + 1, my), (x + 1.0, y), (x + 1.0, y + 1.0), True),
                # up
                ((mx, my - 1), (x + 1.0, y), (x, y), False),
            ]

            for (peek_x, peek_y), start, end, inv in dirs:
                # a wall only where black meets white
                if sample(matrix, peek_x, peek_y):
                    continue
                p1 = _grid_point(pixel_size, start[0], start[1], 0.0)
                p2 = _grid_point(pixel_size, end[0], end[1], thickness)
                if inv:
                    p1, p2 = p2, p1
                tris.extend(rect(p1, p2))

    return tris


def offset_triangles(tris: List[Triangle], offset: Vec3) -> List[Triangle]:
    return [
        Triangle(tri.normal, tuple(add(v, offset) for v in tri.vertices))
        for tri in tris
    ]


def matrix_extent(matrix: Matrix) -> int:
    """Side length in pixels of the square the matrix fits in"""
    widths = [len(row) for row in matrix]
    return max([len(matrix)] + widths)


def frame_triangles(total: float, base: float, height: float) -> List[Triangle]:
    """
    Closed box of footprint total x total and height `height`, with a square
    opening of side total - 2 * base in its lid where the relief goes.
    """
    tris = []

    # bottom
    tris.extend(rect(Vec3(total, total, 0.0), Vec3(0.0, 0.0, 0.0)))

    # surround
    tris.extend(rect(Vec3(0.0, 0.0, height), Vec3(total - base, base, height)))
    tris.extend(rect(Vec3(0.0, base, height), Vec3(base, total, height)))
    tris.extend(rect(Vec3(base, total - base, height), Vec3(total - base, total, height)))
    tris.extend(rect(Vec3(total - base, 0.0, height), Vec3(total, total, height)))

    # sides
    tris.extend(rect(Vec3(total, 0.0, 0.0), Vec3(0.0, 0.0, height)))
    tris.extend(rect(Vec3(0.0, 0.0, 0.0), Vec3(0.0, total, height)))
    tris.extend(rect(Vec3(total, total, height), Vec3(total, 0.0, 0.0)))
    tris.extend(rect(Vec3(0.0, total, height), Vec3(total, total, 0.0)))

    return tris


def build(matrix: Matrix, options: MeshOptions = MeshOptions()) -> List[Triangle]:
    """Extruded matrix sitting in its frame, as a flat list of triangles"""
    tris = matrix_to_triangles(matrix, options.pixel_size)
    tris = offset_triangles(
        tris, Vec3(options.base_size, options.base_size, options.base_height)
    )

    total = matrix_extent(matrix) * options.pixel_size + 2.0 * options.base_size
    tris.extend(frame_triangles(total, options.base_size, options.base_height))
    return tris
