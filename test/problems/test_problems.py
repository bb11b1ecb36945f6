"""
Tests for the benchmark problems: bit string functions, continuous functions
and the TSP, including TSPLIB loading.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from Core.exceptions import ConfigurationError, InitialisationError, SolutionEvaluationError
from Core.problem import Solution
from problems.BFO.binary import BasicTrapFunction, OneMax, random_bit_string, unitation
from problems.CFO.functions import Rastrigin, Sphere
from problems.TSP.tsp import TSPProblem, euclidean_distance_matrix, nearest_neighbour_tour


def bits_with_ones(length, ones):
    bits = np.zeros(length, dtype=bool)
    bits[:ones] = True
    return bits


def cost_of(problem, representation):
    solution = Solution(representation)
    problem.cost(solution)
    return solution.score


# =============================================================================
# Bit string problems
# =============================================================================

class TestOneMax:
    def test_counts_ones(self):
        problem = OneMax(length=10, max_evaluations=10)
        assert cost_of(problem, bits_with_ones(10, 7)) == 7.0
        assert problem.is_maximisation()
        assert problem.known_optimum == 10.0

    def test_random_bit_string(self):
        bits = random_bit_string(200, np.random.default_rng(0))
        assert bits.dtype == bool and bits.shape == (200,)
        assert 0 < unitation(bits) < 200

    def test_wrong_length_is_rejected(self):
        problem = OneMax(length=10, max_evaluations=10)
        with pytest.raises(SolutionEvaluationError, match="does not match"):
            problem.cost(Solution(bits_with_ones(9, 1)))
        assert problem.evaluation_count == 0

    def test_non_array_is_rejected(self):
        with pytest.raises(SolutionEvaluationError):
            OneMax(length=3, max_evaluations=10).cost(Solution([True, False, True]))

    def test_invalid_length(self):
        with pytest.raises(ConfigurationError, match="Invalid length 0"):
            OneMax(length=0, max_evaluations=10).validate_configuration()


class TestTrapFunction:
    @pytest.mark.parametrize("ones,expected", [(0, 100.0), (25, 0.0), (100, 74.0), (10, 60.0), (50, 24.666666)])
    def test_values(self, ones, expected):
        problem = BasicTrapFunction(max_evaluations=10)
        assert cost_of(problem, bits_with_ones(100, ones)) == pytest.approx(expected, rel=1e-5)

    def test_minimised_with_zero_optimum(self):
        problem = BasicTrapFunction()
        assert problem.is_minimization()
        assert problem.known_optimum == 0.0

    def test_trap_position_validated(self):
        with pytest.raises(ConfigurationError, match="Invalid z"):
            BasicTrapFunction(length=20, z=25, max_evaluations=10).validate_configuration()


# =============================================================================
# Continuous functions
# =============================================================================

class TestContinuous:
    def test_sphere(self):
        problem = Sphere(dimensions=3, max_evaluations=10)
        assert cost_of(problem, np.array([1.0, -2.0, 0.5])) == pytest.approx(5.25)

    def test_rastrigin_optimum(self):
        problem = Rastrigin(dimensions=4, max_evaluations=10)
        assert cost_of(problem, np.zeros(4)) == pytest.approx(0.0)
        assert cost_of(problem, np.ones(4)) == pytest.approx(4.0)

    def test_out_of_bounds_is_rejected(self):
        problem = Sphere(dimensions=2, max_evaluations=10)
        with pytest.raises(SolutionEvaluationError, match="out of function bounds"):
            problem.cost(Solution(np.array([0.0, 6.0])))

    def test_wrong_dimensions_rejected(self):
        with pytest.raises(SolutionEvaluationError):
            Sphere(dimensions=2, max_evaluations=10).cost(Solution(np.zeros(3)))

    def test_initial_solutions_inside_bounds(self):
        problem = Sphere(dimensions=5, bounds=(-1.0, 2.0))
        population = problem.get_initial_population(50, np.random.default_rng(1))
        coords = np.stack([s.representation for s in population])
        assert coords.shape == (50, 5)
        assert coords.min() >= -1.0 and coords.max() <= 2.0

    def test_invalid_configuration(self):
        with pytest.raises(ConfigurationError, match="dimensions"):
            Sphere(dimensions=0, max_evaluations=10).validate_configuration()
        with pytest.raises(ConfigurationError, match="bounds"):
            Sphere(bounds=(1.0, 1.0), max_evaluations=10).validate_configuration()


# =============================================================================
# TSP
# =============================================================================

TRIANGLE = [[0, 0], [3, 0], [3, 4]]

TSPLIB_INSTANCE = """NAME : square4
COMMENT : four cities on a square
TYPE : TSP
DIMENSION : 4
EDGE_WEIGHT_TYPE : EUC_2D
NODE_COORD_SECTION
1 0 0
2 0 10
3 10 10
4 10 0
EOF
"""

BURMA3_GEO = """NAME : burma3
COMMENT : first three cities of burma14
TYPE : TSP
DIMENSION : 3
EDGE_WEIGHT_TYPE : GEO
NODE_COORD_SECTION
1 16.47 96.10
2 16.47 94.44
3 20.09 92.54
EOF
"""

TSPLIB_TOUR = """NAME : square4.opt.tour
TYPE : TOUR
DIMENSION : 4
TOUR_SECTION
1
2
3
4
-1
EOF
"""


@pytest.fixture
def triangle():
    problem = TSPProblem(TRIANGLE, max_evaluations=100)
    problem.initialise_before_run()
    return problem


class TestTSP:
    def test_distance_matrix_is_rounded(self):
        distances = euclidean_distance_matrix(np.array([[0, 0], [1, 1], [3, 4]], dtype=float))
        assert distances[0, 1] == 1.0
        assert distances[0, 2] == 5.0
        assert np.array_equal(distances, distances.T)

    def test_distance_halves_round_up(self):
        distances = euclidean_distance_matrix(np.array([[0, 0], [1.5, 2]], dtype=float))
        assert distances[0, 1] == 3.0

    def test_tour_length_closes_the_loop(self, triangle):
        assert cost_of(triangle, np.array([0, 1, 2])) == 12.0
        assert cost_of(triangle, np.array([2, 1, 0])) == 12.0

    @pytest.mark.parametrize("tour", [
        np.array([0, 1]),
        np.array([0, 1, 1]),
        np.array([0, 1, 3]),
        np.array([0.0, 1.0, 2.0]),
    ])
    def test_invalid_tours_rejected(self, triangle, tour):
        with pytest.raises(SolutionEvaluationError):
            triangle.cost(Solution(tour))
        assert triangle.evaluation_count == 0

    def test_nearest_neighbour_tour(self):
        cities = np.array([[0, 0], [1, 0], [2, 0], [3, 0], [1.5, 5]], dtype=float)
        tour = nearest_neighbour_tour(euclidean_distance_matrix(cities), np.random.default_rng(0))
        assert sorted(tour) == [0, 1, 2, 3, 4]
        if tour[0] == 0:
            assert list(tour) == [0, 1, 2, 3, 4]

    def test_generated_instance_is_reproducible(self):
        a = TSPProblem(num_cities=20, instance_seed=5)
        b = TSPProblem(num_cities=20, instance_seed=5)
        assert a.total_cities == 20
        a.load()
        b.load()
        assert np.array_equal(a.cities, b.cities)
        assert a.cities.min() >= 0.0 and a.cities.max() <= 1000.0

    def test_initial_solution_is_a_permutation(self):
        problem = TSPProblem(num_cities=8, instance_seed=1)
        tour = problem.get_initial_solution(np.random.default_rng(3)).representation
        assert sorted(tour) == list(range(8))

    def test_cleanup_releases_distance_matrix(self, triangle):
        triangle.cleanup_after_run()
        assert triangle.distance_matrix is None
        with pytest.raises(SolutionEvaluationError):
            triangle.tour_length(np.array([0, 1, 2]))

    def test_configuration(self):
        with pytest.raises(ConfigurationError, match="num_cities"):
            TSPProblem(max_evaluations=10).validate_configuration()
        with pytest.raises(ConfigurationError, match="num_cities"):
            TSPProblem(num_cities=2, max_evaluations=10).validate_configuration()
        with pytest.raises(ConfigurationError, match="coordinates"):
            TSPProblem([[0, 0], [1, 1]], max_evaluations=10).validate_configuration()
        TSPProblem(num_cities=3, max_evaluations=10).validate_configuration()

    def test_load_tsplib_instance_and_tour(self, tmp_path):
        instance = tmp_path / "square4.tsp"
        instance.write_text(TSPLIB_INSTANCE)
        tour = tmp_path / "square4.opt.tour"
        tour.write_text(TSPLIB_TOUR)

        problem = TSPProblem(problem_file=str(instance), solution_file=str(tour), max_evaluations=10)
        problem.initialise_before_run()
        assert problem.name == "square4"
        assert problem.total_cities == 4
        assert list(problem.solution_tour) == [0, 1, 2, 3]
        assert problem.known_optimum == 40.0

    def test_plain_coordinate_rows(self, tmp_path):
        instance = tmp_path / "plain.txt"
        instance.write_text("0 0\n3 0\n3 4\n")
        problem = TSPProblem(problem_file=str(instance), max_evaluations=10)
        problem.initialise_before_run()
        assert cost_of(problem, np.array([0, 1, 2])) == 12.0

    def test_missing_file(self, tmp_path):
        problem = TSPProblem(problem_file=str(tmp_path / "missing.tsp"), max_evaluations=10)
        with pytest.raises(InitialisationError, match="Error loading dataset"):
            problem.initialise_before_run()

    def test_malformed_file(self, tmp_path):
        instance = tmp_path / "bad.tsp"
        instance.write_text("NODE_COORD_SECTION\n1 a b\nEOF\n")
        with pytest.raises(InitialisationError):
            TSPProblem(problem_file=str(instance), max_evaluations=10).initialise_before_run()

    def test_unknown_distance_type(self, tmp_path):
        instance = tmp_path / "att.tsp"
        instance.write_text("EDGE_WEIGHT_TYPE : ATT\nNODE_COORD_SECTION\n1 0 0\nEOF\n")
        with pytest.raises(InitialisationError, match="Unknown distance type"):
            TSPProblem(problem_file=str(instance), max_evaluations=10).initialise_before_run()

    def test_load_geographical_instance(self, tmp_path):
        instance = tmp_path / "burma3.tsp"
        instance.write_text(BURMA3_GEO)
        problem = TSPProblem(problem_file=str(instance), max_evaluations=10)
        problem.initialise_before_run()
        assert problem.distance_type == "GEO"
        distances = problem.distance_matrix
        # published burma14 distances
        assert distances[0, 1] == 153.0
        assert distances[0, 2] == 510.0
        assert distances[1, 2] == 422.0
        assert np.array_equal(np.diag(distances), np.zeros(3))
        assert np.array_equal(distances, distances.T)
        assert cost_of(problem, np.array([0, 1, 2])) == 153.0 + 422.0 + 510.0
