"""
Landmark map.

A read-only collection of point landmarks in the map frame:
    landmark = (id, x, y)
"""

import numpy as np
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence, Union
from numpy.random import Generator, default_rng


@dataclass(frozen=True)
class Landmark:
    """
    Single map landmark.

    Attributes:
        id: Landmark identity (unique within a map)
        x: Map-frame x position
        y: Map-frame y position
    """
    id: int
    x: float
    y: float


class LandmarkMap:
    """
    Immutable landmark map.

    Landmarks are kept in the given order; ids are assumed unique.
    Positions are also stored as a [M, 2] array for vectorized range queries.
    """

    def __init__(self, landmarks: Iterable[Landmark]):
        self._landmarks = tuple(landmarks)
        self._ids = np.array([lm.id for lm in self._landmarks], dtype=int)
        self._positions = np.array(
            [[lm.x, lm.y] for lm in self._landmarks], dtype=np.float64
        ).reshape(-1, 2)
        self._ids.setflags(write=False)
        self._positions.setflags(write=False)

    @property
    def ids(self) -> np.ndarray:
        """[M] landmark ids."""
        return self._ids

    @property
    def positions(self) -> np.ndarray:
        """[M, 2] landmark positions."""
        return self._positions

    def __len__(self) -> int:
        return len(self._landmarks)

    def __iter__(self) -> Iterator[Landmark]:
        return iter(self._landmarks)

    def __getitem__(self, idx: int) -> Landmark:
        return self._landmarks[idx]

    def within_range(self, x: float, y: float, sensor_range: float) -> np.ndarray:
        """
        Boolean mask of landmarks within sensor range of (x, y).

        The boundary is inclusive: distance <= sensor_range.

        Args:
            x: Query x position
            y: Query y position
            sensor_range: Maximum sensing distance

        Returns:
            mask: [M] boolean
        """
        dist = np.hypot(self._positions[:, 0] - x, self._positions[:, 1] - y)
        return dist <= sensor_range

    def __repr__(self) -> str:
        return f"LandmarkMap(n_landmarks={len(self)})"


MapLike = Union[LandmarkMap, Sequence[Landmark]]


def as_landmark_map(map_landmarks: MapLike) -> LandmarkMap:
    """Wrap a plain sequence of landmarks into a LandmarkMap."""
    if isinstance(map_landmarks, LandmarkMap):
        return map_landmarks
    return LandmarkMap(map_landmarks)


def make_landmark_map(
    positions: np.ndarray,
    ids: Optional[Sequence[int]] = None,
) -> LandmarkMap:
    """
    Create a LandmarkMap from an array of positions.

    Args:
        positions: [M, 2] landmark positions
        ids: Optional landmark ids. Default: 1..M (as in map_data.txt files)

    Returns:
        LandmarkMap instance
    """
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 2)
    if ids is None:
        ids = np.arange(1, positions.shape[0] + 1)
    if len(ids) != positions.shape[0]:
        raise ValueError(
            f"Got {len(ids)} ids for {positions.shape[0]} landmark positions"
        )

    return LandmarkMap(
        Landmark(id=int(i), x=float(p[0]), y=float(p[1]))
        for i, p in zip(ids, positions)
    )


def make_random_landmark_map(
    n_landmarks: int = 42,
    extent: float = 100.0,
    seed: Optional[int] = None,
    rng: Optional[Generator] = None,
) -> LandmarkMap:
    """
    Scatter landmarks uniformly over the square [-extent, extent]^2.

    Args:
        n_landmarks: Number of landmarks
        extent: Half-width of the square
        seed: Random seed (ignored if rng is provided)
        rng: NumPy random generator (optional)

    Returns:
        LandmarkMap instance with ids 1..n_landmarks
    """
    if rng is None:
        rng = default_rng(seed)
    positions = rng.uniform(-extent, extent, size=(n_landmarks, 2))
    return make_landmark_map(positions)


def load_landmark_map(path: str) -> LandmarkMap:
    """
    Load a landmark map from a whitespace-separated text file.

    Each line holds one landmark as ``x y id``.

    Args:
        path: Path to the map file

    Returns:
        LandmarkMap instance
    """
    data = np.loadtxt(path, dtype=np.float64, ndmin=2)
    if data.shape[1] != 3:
        raise ValueError(
            f"Map file {path} must have 3 columns (x y id), got {data.shape[1]}"
        )
    return make_landmark_map(data[:, :2], ids=data[:, 2].astype(int))


def save_landmark_map(landmark_map: LandmarkMap, path: str):
    """Write a landmark map in the ``x y id`` text format."""
    data = np.column_stack([landmark_map.positions, landmark_map.ids])
    np.savetxt(path, data, fmt=["%.4f", "%.4f", "%d"])
