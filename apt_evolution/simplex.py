"""
apt_evolution/simplex.py - Simplex gradient noise with fractal variants

Deterministic 2-D and 3-D simplex noise (Gustavson's formulation) plus
fractal Brownian motion and turbulence built on the 3-D primitive.
The per-sample kernels are numba-compiled; the public functions accept
scalars or numpy arrays and broadcast them like a ufunc would.
"""
import math
from typing import Tuple

import numpy as np
from numba import jit

_PERMUTATION = [
    151, 160, 137, 91, 90, 15, 131, 13, 201, 95, 96, 53, 194, 233, 7, 225,
    140, 36, 103, 30, 69, 142, 8, 99, 37, 240, 21, 10, 23, 190, 6, 148,
    247, 120, 234, 75, 0, 26, 197, 62, 94, 252, 219, 203, 117, 35, 11, 32,
    57, 177, 33, 88, 237, 149, 56, 87, 174, 20, 125, 136, 171, 168, 68, 175,
    74, 165, 71, 134, 139, 48, 27, 166, 77, 146, 158, 231, 83, 111, 229, 122,
    60, 211, 133, 230, 220, 105, 92, 41, 55, 46, 245, 40, 244, 102, 143, 54,
    65, 25, 63, 161, 1, 216, 80, 73, 209, 76, 132, 187, 208, 89, 18, 169,
    200, 196, 135, 130, 116, 188, 159, 86, 164, 100, 109, 198, 173, 186, 3, 64,
    52, 217, 226, 250, 124, 123, 5, 202, 38, 147, 118, 126, 255, 82, 85, 212,
    207, 206, 59, 227, 47, 16, 58, 17, 182, 189, 28, 42, 223, 183, 170, 213,
    119, 248, 152, 2, 44, 154, 163, 70, 221, 153, 101, 155, 167, 43, 172, 9,
    129, 22, 39, 253, 19, 98, 108, 110, 79, 113, 224, 232, 178, 185, 112, 104,
    218, 246, 97, 228, 251, 34, 242, 193, 238, 210, 144, 12, 191, 179, 162, 241,
    81, 51, 145, 235, 249, 14, 239, 107, 49, 192, 214, 31, 181, 199, 106, 157,
    184, 84, 204, 176, 115, 121, 50, 45, 127, 4, 150, 254, 138, 236, 205, 93,
    222, 114, 67, 29, 24, 72, 243, 141, 128, 195, 78, 66, 215, 61, 156, 180,
]

# Doubled so lookups of the form PERM[i + PERM[j]] never wrap
PERM = np.array(_PERMUTATION * 2, dtype=np.int64)

GRAD3 = np.array([
    [1, 1, 0], [-1, 1, 0], [1, -1, 0], [-1, -1, 0],
    [1, 0, 1], [-1, 0, 1], [1, 0, -1], [-1, 0, -1],
    [0, 1, 1], [0, -1, 1], [0, 1, -1], [0, -1, -1],
], dtype=np.float64)

F2 = 0.5 * (math.sqrt(3.0) - 1.0)
G2 = (3.0 - math.sqrt(3.0)) / 6.0
F3 = 1.0 / 3.0
G3 = 1.0 / 6.0


@jit(nopython=True, nogil=True)
def _corner2(gi, x, y):
    t = 0.5 - x * x - y * y
    if t < 0.0:
        return 0.0
    t *= t
    return t * t * (GRAD3[gi, 0] * x + GRAD3[gi, 1] * y)


@jit(nopython=True, nogil=True)
def _corner3(gi, x, y, z):
    t = 0.6 - x * x - y * y - z * z
    if t < 0.0:
        return 0.0
    t *= t
    return t * t * (GRAD3[gi, 0] * x + GRAD3[gi, 1] * y + GRAD3[gi, 2] * z)


@jit(nopython=True, nogil=True)
def noise2_scalar(x, y):
    """2-D simplex noise at a single point, roughly in [-1, 1]"""
    if not (math.isfinite(x) and math.isfinite(y)):
        return math.nan

    s = (x + y) * F2
    fi = np.floor(x + s)
    fj = np.floor(y + s)
    # Finite inputs can still overflow once skewed
    if not (math.isfinite(fi) and math.isfinite(fj)):
        return math.nan
    t = (fi + fj) * G2
    x0 = x - (fi - t)
    y0 = y - (fj - t)

    if x0 > y0:
        i1, j1 = 1, 0
    else:
        i1, j1 = 0, 1

    x1 = x0 - i1 + G2
    y1 = y0 - j1 + G2
    x2 = x0 - 1.0 + 2.0 * G2
    y2 = y0 - 1.0 + 2.0 * G2

    # Float modulo keeps huge coordinates from overflowing the int cast
    ii = int(fi % 256.0)
    jj = int(fj % 256.0)
    gi0 = PERM[ii + PERM[jj]] % 12
    gi1 = PERM[ii + i1 + PERM[jj + j1]] % 12
    gi2 = PERM[ii + 1 + PERM[jj + 1]] % 12

    n = _corner2(gi0, x0, y0) + _corner2(gi1, x1, y1) + _corner2(gi2, x2, y2)
    return 70.0 * n


@jit(nopython=True, nogil=True)
def noise3_scalar(x, y, z):
    """3-D simplex noise at a single point, roughly in [-1, 1]"""
    if not (math.isfinite(x) and math.isfinite(y) and math.isfinite(z)):
        return math.nan

    s = (x + y + z) * F3
    fi = np.floor(x + s)
    fj = np.floor(y + s)
    fk = np.floor(z + s)
    if not (math.isfinite(fi) and math.isfinite(fj) and math.isfinite(fk)):
        return math.nan
    t = (fi + fj + fk) * G3
    x0 = x - (fi - t)
    y0 = y - (fj - t)
    z0 = z - (fk - t)

    # Which simplex of the skewed cube the point lies in
    if x0 >= y0:
        if y0 >= z0:
            i1, j1, k1, i2, j2, k2 = 1, 0, 0, 1, 1, 0
        elif x0 >= z0:
            i1, j1, k1, i2, j2, k2 = 1, 0, 0, 1, 0, 1
        else:
            i1, j1, k1, i2, j2, k2 = 0, 0, 1, 1, 0, 1
    else:
        if y0 < z0:
            i1, j1, k1, i2, j2, k2 = 0, 0, 1, 0, 1, 1
        elif x0 < z0:
            i1, j1, k1, i2, j2, k2 = 0, 1, 0, 0, 1, 1
        else:
            i1, j1, k1, i2, j2, k2 = 0, 1, 0, 1, 1, 0

    x1 = x0 - i1 + G3
    y1 = y0 - j1 + G3
    z1 = z0 - k1 + G3
    x2 = x0 - i2 + 2.0 * G3
    y2 = y0 - j2 + 2.0 * G3
    z2 = z0 - k2 + 2.0 * G3
    x3 = x0 - 1.0 + 3.0 * G3
    y3 = y0 - 1.0 + 3.0 * G3
    z3 = z0 - 1.0 + 3.0 * G3

    ii = int(fi % 256.0)
    jj = int(fj % 256.0)
    kk = int(fk % 256.0)
    gi0 = PERM[ii + PERM[jj + PERM[kk]]] % 12
    gi1 = PERM[ii + i1 + PERM[jj + j1 + PERM[kk + k1]]] % 12
    gi2 = PERM[ii + i2 + PERM[jj + j2 + PERM[kk + k2]]] % 12
    gi3 = PERM[ii + 1 + PERM[jj + 1 + PERM[kk + 1]]] % 12

    n = (_corner3(gi0, x0, y0, z0) + _corner3(gi1, x1, y1, z1) +
         _corner3(gi2, x2, y2, z2) + _corner3(gi3, x3, y3, z3))
    return 32.0 * n


@jit(nopython=True, nogil=True)
def _noise2_kernel(xs, ys, out):
    for n in range(xs.shape[0]):
        out[n] = noise2_scalar(xs[n], ys[n])


@jit(nopython=True, nogil=True)
def _fractal3_kernel(xs, ys, zs, octaves, persistence, lacunarity, absolute, out):
    for n in range(xs.shape[0]):
        total = 0.0
        frequency = 1.0
        amplitude = 1.0
        for _ in range(octaves):
            value = noise3_scalar(xs[n] * frequency, ys[n] * frequency, zs[n] * frequency)
            if absolute:
                value = abs(value)
            total += value * amplitude
            frequency *= lacunarity
            amplitude *= persistence
        out[n] = total


def _flatten(*arrays) -> Tuple[tuple, list]:
    """Broadcast inputs together and return (shape, contiguous 1-D float64 views)"""
    broadcast = np.broadcast_arrays(*[np.asarray(a, dtype=np.float64) for a in arrays])
    shape = broadcast[0].shape
    flat = [np.ascontiguousarray(a).ravel() for a in broadcast]
    return shape, flat


def snoise2(x, y) -> np.ndarray:
    """2-D simplex noise, broadcasting over array inputs"""
    shape, (xs, ys) = _flatten(x, y)
    out = np.empty(xs.shape[0], dtype=np.float64)
    _noise2_kernel(xs, ys, out)
    return out.reshape(shape)


def fbm3(x, y, z, octaves: int = 5, persistence: float = 0.5,
         lacunarity: float = 2.0) -> np.ndarray:
    """Fractal Brownian motion: octave sum of 3-D simplex noise"""
    shape, (xs, ys, zs) = _flatten(x, y, z)
    out = np.empty(xs.shape[0], dtype=np.float64)
    _fractal3_kernel(xs, ys, zs, int(octaves), float(persistence), float(lacunarity), False, out)
    return out.reshape(shape)


def turbulence3(x, y, z, octaves: int = 5, persistence: float = 0.5,
                lacunarity: float = 2.0) -> np.ndarray:
    """Turbulence: octave sum of absolute 3-D simplex noise"""
    shape, (xs, ys, zs) = _flatten(x, y, z)
    out = np.empty(xs.shape[0], dtype=np.float64)
    _fractal3_kernel(xs, ys, zs, int(octaves), float(persistence), float(lacunarity), True, out)
    return out.reshape(shape)
