from fractions import Fraction
import itertools
import random

from absl.testing import absltest
from absl.testing import parameterized

from mbopt.check import violations
from mbopt.config import Config
from mbopt.cpsat import CpSatExport
from mbopt.model import Model
from mbopt.optimize import Optimum
from mbopt.rational import mod
from mbopt.rows import Relation

INSTANCES = [
    dict(
        testcase_name="corner",
        rows=[([1, 1], -4), ([1, -1], -1)],
        objective=[1, 0],
        start=[0, 0],
        expected=2,
        relaxed=Fraction(5, 2),
    ),
    dict(
        testcase_name="diagonal",
        rows=[([1, 2], -6), ([2, 1], -6)],
        objective=[1, 1],
        start=[0, 0],
        expected=4,
        relaxed=4,
    ),
    dict(
        testcase_name="lower_bound",
        rows=[([0, 1], -3), ([-1, 0], 1)],
        objective=[-1, 1],
        start=[1, 0],
        expected=2,
        relaxed=2,
    ),
]


def build(rows, objective, start, is_int):
    # rows over two non-negative variables
    m = Model(Config(checked=True))
    xs = [m.add_var(v, is_int) for v in start]
    for coeffs, const in rows:
        m.add_constraint([(x, c) for x, c in zip(xs, coeffs) if c], const, Relation.LE)
    for x in xs:
        m.add_lower_bound(x, 0)
    m.set_objective([(x, c) for x, c in zip(xs, objective) if c])
    return m, xs


def brute_force(rows, objective):
    best = None
    for point in itertools.product(range(8), repeat=2):
        if all(sum(c * v for c, v in zip(coeffs, point)) + const <= 0 for coeffs, const in rows):
            value = sum(c * v for c, v in zip(objective, point))
            best = value if best is None else max(best, value)
    return best


class ScenarioTest(absltest.TestCase):

    def test_bounded_above(self):
        m = Model(Config(checked=True))
        x = m.add_var(3)
        m.add_upper_bound(x, 5)
        m.add_lower_bound(x, 1)
        m.set_objective([(x, 1)])
        result = m.maximize()
        self.assertEqual(result, Optimum(5))
        self.assertEqual(str(result), "5")
        self.assertEqual(m.value(x), 5)

    def test_one_sided(self):
        m = Model(Config(checked=True))
        x = m.add_var(-4)
        m.add_constraint([(x, 1)], 1, Relation.LE)
        m.set_objective([(x, 1)])
        self.assertEqual(m.maximize(), Optimum(-1))
        self.assertEqual(m.value(x), -1)

    def test_unbounded(self):
        m = Model(Config(checked=True))
        x = m.add_var(2)
        m.add_lower_bound(x, 1)
        m.set_objective([(x, 1)])
        result = m.maximize()
        self.assertTrue(result.unbounded)
        self.assertIsNone(result.value)
        self.assertEqual(str(result), "oo")

    def test_strict_bound(self):
        m = Model(Config(checked=True))
        x = m.add_var(1)
        m.add_constraint([(x, 1)], -5, Relation.LT)
        m.set_objective([(x, 1)])
        result = m.maximize()
        self.assertEqual(result, Optimum(5, strict=True))
        self.assertEqual(str(result), "5-eps")
        # halfway from 1 to 5, capped at 1
        self.assertEqual(m.value(x), 4)

    def test_minimize_through_negation(self):
        m = Model(Config(checked=True))
        x = m.add_var(Fraction(7, 2))
        m.add_lower_bound(x, Fraction(1, 2))
        m.set_objective([(x, -1)])
        self.assertEqual(m.maximize().value, Fraction(-1, 2))
        self.assertEqual(m.value(x), Fraction(1, 2))

    def test_equality_bounds_both_sides(self):
        m = Model(Config(checked=True))
        x = m.add_var(2)
        y = m.add_var(3)
        m.add_constraint([(x, 1), (y, -1)], 1, Relation.EQ)
        m.add_upper_bound(y, 7)
        m.set_objective([(x, 1)])
        self.assertEqual(m.maximize(), Optimum(6))
        self.assertEqual(m.value(x), 6)
        self.assertEqual(m.value(y), 7)

    def test_divisibility_steps_through_residue(self):
        m = Model(Config(checked=True))
        x = m.add_var(4, True)
        m.add_divides([(x, 1)], 0, 2)
        m.add_upper_bound(x, 10)
        m.set_objective([(x, 1)])
        self.assertEqual(m.maximize(), Optimum(10))
        self.assertEqual(m.value(x), 10)
        self.assertEqual(violations(m), [])

    def test_divisibility_keeps_residue(self):
        m = Model(Config(checked=True))
        x = m.add_var(2, True)
        m.add_divides([(x, 1)], 1, 3)
        m.add_upper_bound(x, 10)
        m.set_objective([(x, 1)])
        self.assertEqual(m.maximize(), Optimum(8))
        self.assertEqual(m.value(x), 8)

    def test_mod_result_holds_its_variables(self):
        m = Model(Config(checked=True))
        x = m.add_var(7, True)
        m.add_mod([(x, 1)], 0, 3)
        m.add_upper_bound(x, 10)
        m.set_objective([(x, 1)])
        self.assertEqual(m.maximize(), Optimum(7))
        self.assertEqual(m.value(x), 7)


class BoundResolutionTest(absltest.TestCase):

    def test_rows_below_the_bound_are_resolved(self):
        m = Model(Config(checked=True))
        x = m.add_var(4)
        y = m.add_var(0)
        m.add_constraint([(x, 1), (y, 1)], -4, Relation.LE)
        m.add_upper_bound(x, 5)
        m.add_constraint([(x, 1), (y, -1)], Fraction(-11, 2), Relation.LE)
        m.add_lower_bound(x, 0)
        m.add_lower_bound(y, 0)
        m.set_objective([(x, 2), (y, 1)])
        self.assertEqual(m.maximize(), Optimum(8))
        self.assertEqual(m.value(x), 4)
        self.assertEqual(m.value(y), 0)
        self.assertEqual(violations(m), [])

    def test_integer_equality_bound(self):
        m = Model(Config(checked=True))
        x = m.add_var(1, True)
        y = m.add_var(2, True)
        m.add_constraint([(x, 2), (y, -1)], 0, Relation.EQ)
        m.add_upper_bound(y, 5)
        m.set_objective([(x, 1)])
        self.assertEqual(m.maximize(), Optimum(2))
        self.assertEqual(m.value(x), 2)
        self.assertEqual(m.value(y), 4)

    def test_integer_bound_is_rounded(self):
        m = Model(Config(checked=True))
        x = m.add_var(0, True)
        y = m.add_var(0, True)
        m.add_constraint([(x, 2), (y, -1)], 0, Relation.LE)
        m.add_upper_bound(y, 3)
        m.add_lower_bound(x, 0)
        m.add_lower_bound(y, 0)
        m.set_objective([(x, 1)])
        self.assertEqual(m.maximize(), Optimum(1))
        self.assertEqual(m.value(x), 1)
        self.assertEqual(m.value(y), 2)

    def test_mixed_bound_reports_the_witness(self):
        m = Model(Config(checked=True))
        x = m.add_var(0, True)
        y = m.add_var(0)
        m.add_constraint([(x, 2), (y, -1)], 0, Relation.LE)
        m.add_upper_bound(y, 3)
        m.set_objective([(x, 1)])
        self.assertEqual(m.maximize(), Optimum(1))
        self.assertEqual(m.value(x), 1)
        self.assertEqual(m.value(y), 3)

    def test_strict_bound_stays_above_lower_bounds(self):
        m = Model(Config(checked=True))
        x = m.add_var(Fraction(19, 20))
        y = m.add_var(1)
        m.add_constraint([(x, 1), (y, -1)], 0, Relation.LT)
        m.add_constraint([(x, -1), (y, 1)], Fraction(-1, 10), Relation.LE)
        m.add_upper_bound(y, 10)
        m.set_objective([(x, 1)])
        self.assertEqual(m.maximize(), Optimum(10, strict=True))
        self.assertEqual(m.value(y), 10)
        # half way between the lower bound 99/10 and the strict bound 10
        self.assertEqual(m.value(x), Fraction(199, 20))
        self.assertEqual(violations(m), [])


class InstanceTest(parameterized.TestCase):

    @parameterized.named_parameters(*INSTANCES)
    def test_integers(self, rows, objective, start, expected, relaxed):
        self.assertEqual(brute_force(rows, objective), expected)
        m, xs = build(rows, objective, start, True)
        self.assertEqual(CpSatExport(m).maximize(), expected)
        self.assertEqual(m.maximize(), Optimum(expected))
        self.assertEqual(sum(c * m.value(x) for x, c in zip(xs, objective)), expected)

    @parameterized.named_parameters(*INSTANCES)
    def test_reals(self, rows, objective, start, expected, relaxed):
        m, xs = build(rows, objective, start, False)
        self.assertEqual(m.maximize().value, relaxed)

    def test_real_corner(self):
        m, xs = build([([1, 1], -4), ([1, -1], -1)], [1, 0], [0, 0], False)
        self.assertEqual(m.maximize().value, Fraction(5, 2))
        self.assertEqual(m.value(xs[0]), Fraction(5, 2))
        self.assertEqual(m.value(xs[1]), Fraction(3, 2))


def feasible(point, rows, divides):
    for coeffs, const in rows:
        if sum(c * v for c, v in zip(coeffs, point)) + const > 0:
            return False
    if divides is None:
        return True
    coeffs, const, modulus = divides
    return mod(sum(c * v for c, v in zip(coeffs, point)) + const, modulus) == 0


def best(rows, divides, objective):
    return max(sum(c * v for c, v in zip(objective, point))
               for point in itertools.product(range(7), repeat=2)
               if feasible(point, rows, divides))


class RandomInstanceTest(parameterized.TestCase):
    # two variables in the box [0, 6]

    def instance(self, rng, with_divides):
        start = [rng.randint(0, 6), rng.randint(0, 6)]
        rows = []
        for _ in range(rng.randint(1, 3)):
            coeffs = [rng.randint(-3, 3), rng.randint(-3, 3)]
            if coeffs == [0, 0]:
                coeffs[0] = 1
            value = sum(c * v for c, v in zip(coeffs, start))
            rows.append((coeffs, -value - rng.randint(0, 4)))
        divides = None
        if with_divides:
            coeffs = [rng.randint(1, 3), rng.randint(-3, 3)]
            modulus = rng.randint(2, 4)
            value = sum(c * v for c, v in zip(coeffs, start))
            divides = (coeffs, mod(-value, modulus), modulus)
        objective = [rng.choice([-2, -1, 1, 2, 3]), rng.randint(-2, 3)]
        return start, rows, divides, objective

    def build(self, start, rows, divides, objective, is_int):
        m = Model(Config(checked=True))
        xs = [m.add_var(v, is_int) for v in start]
        for x in xs:
            m.add_lower_bound(x, 0)
            m.add_upper_bound(x, 6)
        for coeffs, const in rows:
            m.add_constraint([(x, c) for x, c in zip(xs, coeffs) if c], const, Relation.LE)
        if divides is not None:
            coeffs, const, modulus = divides
            m.add_divides([(x, c) for x, c in zip(xs, coeffs) if c], const, modulus)
        m.set_objective([(x, c) for x, c in zip(xs, objective) if c])
        return m, xs

    def check_witness(self, m, xs, result, start, rows, divides, objective):
        witness = [m.value(x) for x in xs]
        self.assertFalse(result.unbounded)
        self.assertFalse(result.strict)
        self.assertEqual(result.value, sum(c * v for c, v in zip(objective, witness)))
        self.assertGreaterEqual(result.value, sum(c * v for c, v in zip(objective, start)))
        self.assertTrue(feasible(witness, rows, divides), witness)
        for v in witness:
            self.assertBetween(v, 0, 6)
        self.assertEqual(violations(m), [])

    @parameterized.product(seed=list(range(20)), with_divides=[False, True])
    def test_integers(self, seed, with_divides):
        start, rows, divides, objective = self.instance(random.Random(seed), with_divides)
        m, xs = self.build(start, rows, divides, objective, True)
        result = m.maximize()
        self.check_witness(m, xs, result, start, rows, divides, objective)
        self.assertLessEqual(result.value, best(rows, divides, objective))

    @parameterized.product(seed=list(range(20)))
    def test_reals(self, seed):
        start, rows, _, objective = self.instance(random.Random(500 + seed), False)
        m, xs = self.build(start, rows, None, objective, False)
        result = m.maximize()
        self.check_witness(m, xs, result, start, rows, None, objective)


if __name__ == "__main__":
    absltest.main()
