"""
Travelling Salesperson Problem over 2D cities.

A tour is a permutation of the city indices 0..n-1 and implicitly returns to
its first city. Cities come from one of three sources: coordinates passed in
directly, coordinates generated from an instance seed, or a TSPLIB style
instance file (NODE_COORD_SECTION, EUC_2D or GEO distances).
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from Core.exceptions import ConfigurationError, InitialisationError, SolutionEvaluationError
from Core.problem import Problem, Solution

logger = logging.getLogger(__name__)

EUCLIDEAN = "EUC_2D"
GEOGRAPHICAL = "GEO"
EARTH_RADIUS = 6378.388


def euclidean_distance_matrix(cities: np.ndarray) -> np.ndarray:
    """Pairwise Euclidean distances rounded to the nearest integer, halves up."""
    diff = cities[:, None, :] - cities[None, :, :]
    return np.floor(np.sqrt(np.sum(diff ** 2, axis=-1)) + 0.5)


def geographical_distance_matrix(cities: np.ndarray) -> np.ndarray:
    """TSPLIB GEO distances, coordinates given as DDD.MM latitude/longitude."""
    degrees = np.floor(cities)
    radians = np.pi * (degrees + 5.0 * (cities - degrees) / 3.0) / 180.0
    lat, lon = radians[:, 0], radians[:, 1]
    q1 = np.cos(lon[:, None] - lon[None, :])
    q2 = np.cos(lat[:, None] - lat[None, :])
    q3 = np.cos(lat[:, None] + lat[None, :])
    arg = np.clip(0.5 * ((1.0 + q1) * q2 - (1.0 - q1) * q3), -1.0, 1.0)
    distances = np.floor(EARTH_RADIUS * np.arccos(arg) + 1.0)
    np.fill_diagonal(distances, 0.0)
    return distances


def read_tsplib_instance(path: Path) -> Tuple[Optional[str], str, np.ndarray]:
    """
    Parses a TSPLIB instance.

    Files without a NODE_COORD_SECTION header are read as plain rows of
    "x y" or "id x y".

    Returns:
        (name, distance type, city coordinates as an (n, 2) array)
    """
    name, distance_type, dimension = None, EUCLIDEAN, None
    rows: List[Tuple[float, float]] = []
    in_coords = False
    lines = path.read_text().splitlines()
    has_header = any(line.strip().upper() == "NODE_COORD_SECTION" for line in lines)

    for lineno, raw in enumerate(lines, 1):
        line = raw.strip()
        if not line or line.upper() == "EOF":
            continue
        if has_header and not in_coords:
            if line.upper() == "NODE_COORD_SECTION":
                in_coords = True
                continue
            key, _, value = line.partition(":")
            key = key.strip().upper()
            if key == "NAME":
                name = value.strip()
            elif key == "DIMENSION":
                dimension = int(value.strip())
            elif key == "EDGE_WEIGHT_TYPE":
                distance_type = value.strip().upper()
                if distance_type not in (EUCLIDEAN, GEOGRAPHICAL):
                    raise InitialisationError(f"Unknown distance type: {distance_type}")
            continue

        parts = line.split()
        if len(parts) not in (2, 3):
            raise InitialisationError(f"Unexpected line while processing cities line[{lineno}]: {line}")
        try:
            rows.append((float(parts[-2]), float(parts[-1])))
        except ValueError as e:
            raise InitialisationError(f"Malformed city on line {lineno} of {path}: {line}") from e
        if dimension is not None and len(rows) >= dimension:
            break

    if dimension is not None and len(rows) != dimension:
        raise InitialisationError(f"Expected {dimension} cities in {path}, found {len(rows)}")
    return name, distance_type, np.asarray(rows, dtype=float)


def read_tsplib_tour(path: Path, total_cities: int) -> np.ndarray:
    """Reads a TOUR_SECTION, converting the 1-based city ids to 0-based indices."""
    tour: List[int] = []
    in_tour = False
    for raw in path.read_text().splitlines():
        line = raw.strip()
        if in_tour:
            if line in ("-1", "EOF") or not line:
                break
            tour.extend(int(v) - 1 for v in line.split())
            if len(tour) >= total_cities:
                break
        elif line.upper() == "TOUR_SECTION":
            in_tour = True
    if len(tour) != total_cities:
        raise InitialisationError(f"Expected a tour of {total_cities} cities in {path}, found {len(tour)}")
    return np.asarray(tour, dtype=int)


def nearest_neighbour_tour(distance_matrix: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Greedy tour from a random start city, always moving to the closest unvisited city."""
    n = distance_matrix.shape[0]
    tour = np.empty(n, dtype=int)
    visited = np.zeros(n, dtype=bool)
    tour[0] = rng.integers(n)
    visited[tour[0]] = True
    for i in range(1, n):
        row = np.where(visited, np.inf, distance_matrix[tour[i - 1]])
        tour[i] = int(np.argmin(row))
        visited[tour[i]] = True
    return tour


class TSPProblem(Problem):
    """
    Symmetric TSP, minimised tour length.

    Args:
        coordinates: City coordinates, shape (n, 2).
        num_cities: Number of cities to generate when no coordinates or file are given.
        instance_seed: Seed for generated coordinates.
        problem_file: TSPLIB style instance file, loaded lazily.
        solution_file: Optional TSPLIB tour file; its length becomes the known optimum.
        max_evaluations: Optional intrinsic evaluation cap.
    """

    name = "TSP"

    def __init__(
        self,
        coordinates: Optional[Sequence[Sequence[float]]] = None,
        *,
        num_cities: Optional[int] = None,
        instance_seed: Optional[int] = None,
        problem_file: Optional[str] = None,
        solution_file: Optional[str] = None,
        max_evaluations: Optional[int] = None,
    ):
        super().__init__(max_evaluations=max_evaluations)
        self.num_cities = num_cities
        self.instance_seed = instance_seed
        self.problem_file = problem_file
        self.solution_file = solution_file
        self.distance_type = EUCLIDEAN
        self.cities: Optional[np.ndarray] = None
        self.distance_matrix: Optional[np.ndarray] = None
        self.solution_tour: Optional[np.ndarray] = None
        self.solution_tour_length: Optional[float] = None
        if coordinates is not None:
            self.cities = np.asarray(coordinates, dtype=float)

    @property
    def is_loaded(self) -> bool:
        return self.cities is not None

    def load(self) -> None:
        """Resolves the city coordinates once. Raises InitialisationError on bad input."""
        if self.is_loaded:
            return
        if self.problem_file is not None:
            path = Path(self.problem_file)
            try:
                name, self.distance_type, self.cities = read_tsplib_instance(path)
            except (OSError, ValueError) as e:
                raise InitialisationError(f"Error loading dataset {path}: {e}") from e
            if name:
                self.name = name
            logger.debug("Loaded %d cities from %s", len(self.cities), path)
        elif self.num_cities is not None:
            rng = np.random.default_rng(self.instance_seed)
            self.cities = rng.uniform(0.0, 1000.0, size=(self.num_cities, 2))
        else:
            raise InitialisationError("TSP has no cities: pass coordinates, num_cities or problem_file")

    @property
    def total_cities(self) -> int:
        self.load()
        return int(self.cities.shape[0])

    def initialise_before_run(self) -> None:
        super().initialise_before_run()
        self.load()
        if self.cities.ndim != 2 or self.cities.shape[1] != 2:
            raise InitialisationError(f"Expected (n, 2) city coordinates, got shape {self.cities.shape}")
        self.distance_matrix = self.prepare_distance_matrix()
        if self.solution_file is not None and self.solution_tour is None:
            try:
                self.solution_tour = read_tsplib_tour(Path(self.solution_file), self.total_cities)
            except (OSError, ValueError) as e:
                raise InitialisationError(f"Error loading solution {self.solution_file}: {e}") from e
            self.solution_tour_length = self.tour_length(self.solution_tour)

    def cleanup_after_run(self) -> None:
        self.distance_matrix = None

    def prepare_distance_matrix(self) -> np.ndarray:
        if self.distance_type == GEOGRAPHICAL:
            return geographical_distance_matrix(self.cities)
        return euclidean_distance_matrix(self.cities)

    def tour_length(self, tour: np.ndarray) -> float:
        if self.distance_matrix is None:
            raise SolutionEvaluationError("Distance matrix is not prepared, the problem is not initialised")
        tour = np.asarray(tour, dtype=int)
        return float(self.distance_matrix[tour, np.roll(tour, -1)].sum())

    def problem_specific_cost(self, solution: Solution) -> float:
        return self.tour_length(solution.representation)

    def is_minimization(self) -> bool:
        return True

    def check_solution_for_safety(self, solution: Solution) -> None:
        tour = np.asarray(solution.representation)
        n = self.total_cities
        if tour.ndim != 1 or tour.shape[0] != n:
            raise SolutionEvaluationError(f"Length of tour permutation is unexpected {tour.shape}, expected {n}")
        if not np.issubdtype(tour.dtype, np.integer):
            raise SolutionEvaluationError(f"Invalid TSP permutation, non-integer city numbers: {tour}")
        if tour.min() < 0 or tour.max() >= n:
            raise SolutionEvaluationError(f"Invalid TSP permutation, contains invalid city number: {tour}")
        if np.unique(tour).shape[0] != n:
            raise SolutionEvaluationError(f"Invalid TSP permutation, contains a repeated city: {tour}")

    def validate_configuration_internal(self) -> None:
        if self.cities is None and self.problem_file is None:
            if self.num_cities is None or self.num_cities < 3:
                raise ConfigurationError.invalid("num_cities", self.num_cities)
        if self.cities is not None and (self.cities.ndim != 2 or self.cities.shape[0] < 3):
            raise ConfigurationError.invalid("coordinates", self.cities.shape)

    def get_initial_solution(self, rng: np.random.Generator) -> Solution:
        return Solution(rng.permutation(self.total_cities))

    @property
    def known_optimum(self) -> Optional[float]:
        return self.solution_tour_length

    def get_problem_info(self) -> Dict[str, Any]:
        info = super().get_problem_info()
        info.update({
            'dimension': self.total_cities if self.is_loaded else self.num_cities,
            'problem_type': 'permutation',
            'distance_type': self.distance_type,
        })
        return info
