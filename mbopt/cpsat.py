from fractions import Fraction

from ortools.sat.python import cp_model

from .errors import MboError
from .rational import one, lcm
from .rows import Relation

class CpSatExport:
    """The live rows of a store over integral variables, as a CP-SAT model.

    Every variable is boxed into [-bound, bound]. Remainders follow the
    floor semantics of the store: t = m*q + r with 0 <= r < |m|.
    """
    def __init__(self, store, bound=1000):
        self.store = store
        self.bound = bound
        self.model = cp_model.CpModel()
        self.variables = {}
        self.solver = None
        for r in store.live_rows():
            self.add_row(r)

    def get_var(self, x):
        try:
            return self.variables[x]
        except KeyError:
            if not self.store.is_int(x):
                raise MboError(f"v{x} is not integral")
            self.variables[x] = iv = self.model.new_int_var(-self.bound, self.bound, f"v{x}")
            return iv

    def linear(self, terms, const):
        return sum((int(c) * self.get_var(v) for v, c in terms), int(const))

    def add_row(self, r):
        expr = self.linear(r.terms, r.const)
        if r.kind is Relation.EQ:
            self.model.add(expr == 0)
        elif r.kind is Relation.LT:
            self.model.add(expr <= -1)
        elif r.kind is Relation.LE:
            self.model.add(expr <= 0)
        else:
            m = int(r.mod)
            span = self.bound * (1 + sum(abs(int(c)) for _, c in r.terms)) + abs(int(r.const))
            q = self.model.new_int_var(-span, span, "q")
            rem = self.model.new_int_var(0, abs(m) - 1, "r")
            self.model.add(expr == m * q + rem)
            if r.kind is Relation.DIVIDES:
                self.model.add(rem == 0)
            elif r.kind is Relation.MOD:
                self.model.add(self.get_var(r.aux) == rem)
            else:
                self.model.add(self.get_var(r.aux) == q)

    def maximize(self):
        """Optimal value of the objective row, None when the box is infeasible."""
        obj = self.store.objective()
        d = Fraction(obj.const.denominator)
        for _, c in obj.terms:
            d = lcm(d, c.denominator)
        if not obj.terms:
            return obj.const
        expr = self.linear([(v, c * d) for v, c in obj.terms], obj.const * d)
        self.model.maximize(expr)
        self.solver = cp_model.CpSolver()
        self.solver.parameters.max_time_in_seconds = 5.0
        self.solver.parameters.num_workers = 8
        status = self.solver.solve(self.model)
        if status == cp_model.INFEASIBLE:
            return None
        if status != cp_model.OPTIMAL:
            raise MboError(f"CP-SAT stopped with status {self.solver.status_name(status)}")
        return Fraction(self.solver.value(expr)) * (one / d)

    def value(self, x):
        return self.solver.value(self.get_var(x))
