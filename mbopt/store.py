from dataclasses import replace
from fractions import Fraction

from absl import logging

from .config import Config
from .errors import ContractViolation, ModuloByZeroError
from .rational import zero, one, promote, is_int, floor, ceil, mod, div, gcd, lcm
from .rows import Relation, Row, Term, canonical

OBJECTIVE = 0

class RowStore:
    """Linear rows over a fixed assignment.

    Row 0 is the objective. Every other live row is kept satisfied by the
    current values, and ``value`` always caches the evaluation of the row's
    linear form. Retired row ids go to a free list and are handed out again
    by later constructions.
    """
    def __init__(self, config=None):
        self.config = Config() if config is None else config
        self.values = []
        self.integral = []
        self.var_rows = []
        self.rows = [Row(alive=True)]
        self.retired = []

    # ---variables---
    def add_var(self, value, is_int=False):
        value = promote(value)
        if self.config.checked and is_int and value.denominator != 1:
            raise ContractViolation(f"integral variable with value {value}")
        x = len(self.values)
        self.values.append(value)
        self.integral.append(bool(is_int))
        self.var_rows.append([])
        return x

    def is_int(self, x):
        return self.integral[x]

    def value(self, x):
        return self.values[x]

    def set_value(self, x, value):
        value = promote(value)
        old = self.values[x]
        self.values[x] = value
        for row_id in set(self.var_rows[x]):
            r = self.rows[row_id]
            a = r.coefficient(x)
            if a != 0:
                r.value += a * (value - old)
        self.rows[OBJECTIVE].value = self.eval_row(self.rows[OBJECTIVE])

    # ---evaluation---
    def eval_terms(self, terms):
        return sum((c * self.values[v] for v, c in terms), zero)

    def eval_row(self, r):
        return r.const + self.eval_terms(r.terms)

    def coefficient(self, row_id, x):
        return self.rows[row_id].coefficient(x)

    def is_int_row(self, r):
        if not is_int(r.const):
            return False
        return all(self.integral[v] and is_int(c) for v, c in r.terms)

    def rows_of(self, x):
        """Live rows that mention x, each once."""
        seen = set()
        for row_id in list(self.var_rows[x]):
            if row_id in seen:
                continue
            seen.add(row_id)
            r = self.rows[row_id]
            if r.alive and r.coefficient(x) != 0:
                yield row_id

    # ---row lifecycle---
    def new_row(self):
        if self.retired:
            row_id = self.retired.pop()
            self.rows[row_id].reset()
        else:
            row_id = len(self.rows)
            self.rows.append(Row())
        self.rows[row_id].alive = True
        return row_id

    def retire_row(self, row_id):
        r = self.rows[row_id]
        if row_id == OBJECTIVE or not r.alive:
            return
        r.alive = False
        self.retired.append(row_id)

    def set_row(self, row_id, terms, const, kind, m=zero, aux=0):
        r = self.rows[row_id]
        r.terms = canonical(terms)
        r.const = promote(const)
        r.kind = kind
        r.mod = promote(m)
        r.aux = aux
        r.alive = True
        r.value = self.eval_row(r)
        if kind is Relation.LT and r.terms and self._int_terms_(r.terms):
            # L + c < 0 over the integers is L + floor(c) + 1 <= 0
            shift = floor(r.const) + 1 - r.const
            r.kind = Relation.LE
            r.const += shift
            r.value += shift

    def copy_row(self, src, exclude=None):
        """Duplicate src; the copy is not indexed under exclude."""
        dst = self.new_row()
        r = self.rows[src]
        self.set_row(dst, r.terms, r.const, r.kind, r.mod, r.aux)
        for v, _ in self.rows[dst].terms:
            if v != exclude:
                self.var_rows[v].append(dst)
        return dst

    # ---construction---
    def add_constraint(self, terms, const, kind, m=zero, aux=0):
        terms = [Term(v, promote(c)) for v, c in terms]
        const = promote(const)
        if self.config.checked:
            self._check_terms_(terms)
        canon = canonical(terms)
        last = self.rows[-1]
        if (len(self.rows) > 1 and last.alive and last.terms == canon
                and last.const == const and last.kind is kind
                and last.mod == m and last.aux == aux):
            return len(self.rows) - 1
        row_id = self.new_row()
        self.set_row(row_id, canon, const, kind, m, aux)
        for v, _ in self.rows[row_id].terms:
            self.var_rows[v].append(row_id)
        self.normalize(row_id)
        return row_id

    def add_lower_bound(self, x, lo):
        return self.add_constraint([(x, -one)], lo, Relation.LE)

    def add_upper_bound(self, x, hi):
        return self.add_constraint([(x, one)], -promote(hi), Relation.LE)

    def add_divides(self, terms, const, m):
        m = promote(m)
        if m == 0:
            raise ModuloByZeroError()
        g = promote(const)
        for _, c in terms:
            g = gcd(c, g)
        if is_int(g / m):
            logging.vlog(2, "divisibility by %s holds trivially", m)
            return None
        return self.add_constraint(terms, const, Relation.DIVIDES, m)

    def add_mod(self, terms, const, m):
        """A fresh integral variable equal to (terms + const) mod m."""
        m = abs(promote(m))
        if m == 0:
            raise ModuloByZeroError()
        value = promote(const) + self.eval_terms((v, promote(c)) for v, c in terms)
        v = self.add_var(mod(value, m), True)
        self.add_constraint(terms, const, Relation.MOD, m, v)
        return v

    def add_div(self, terms, const, m):
        """A fresh integral variable equal to (terms + const) div m."""
        m = promote(m)
        if m == 0:
            raise ModuloByZeroError()
        if m < 0:
            # t div m = -(t div |m|)
            w = self.add_div(terms, const, -m)
            v = self.add_var(-self.values[w], True)
            self.add_constraint([(v, one), (w, one)], zero, Relation.EQ)
            return v
        value = promote(const) + self.eval_terms((v, promote(c)) for v, c in terms)
        v = self.add_var(div(value, m), True)
        self.add_constraint(terms, const, Relation.DIV, m, v)
        return v

    def set_objective(self, terms, const=zero):
        terms = [Term(v, promote(c)) for v, c in terms]
        if self.config.checked:
            self._check_terms_(terms)
        self.rows[OBJECTIVE].reset()
        self.set_row(OBJECTIVE, terms, const, Relation.LE)

    def objective(self):
        return self.rows[OBJECTIVE]

    # ---algebra---
    def mul(self, row_id, c):
        if c == 1:
            return
        r = self.rows[row_id]
        r.terms = [Term(v, a * c) for v, a in r.terms]
        r.mod *= c
        r.const *= c
        r.value *= c

    def add(self, row_id, c):
        r = self.rows[row_id]
        r.const += c
        r.value += c

    def mul_add(self, dst, c, src, same_side=False):
        """dst <- dst + c*src.

        With same_side the two rows bound the eliminated variable from the
        same side and src is the tighter one.
        """
        if c == 0:
            return
        r1 = self.rows[dst]
        r2 = self.rows[src]
        t1, t2 = r1.terms, r2.terms
        index = dst != OBJECTIVE
        merged = []
        i = j = 0
        while i < len(t1) or j < len(t2):
            if j == len(t2):
                merged.extend(t1[i:])
                break
            if i == len(t1):
                for v, a in t2[j:]:
                    merged.append(Term(v, c * a))
                    if index:
                        self.var_rows[v].append(dst)
                break
            v1, v2 = t1[i].var, t2[j].var
            if v1 == v2:
                a = t1[i].coeff + c * t2[j].coeff
                if a != 0:
                    merged.append(Term(v1, a))
                i += 1
                j += 1
            elif v1 < v2:
                merged.append(t1[i])
                i += 1
            else:
                merged.append(Term(v2, c * t2[j].coeff))
                if index:
                    self.var_rows[v2].append(dst)
                j += 1
        r1.terms = merged
        r1.const += c * r2.const
        r1.value += c * r2.value
        if not same_side and r2.kind is Relation.LT:
            r1.kind = Relation.LT
        elif same_side and r1.kind is Relation.LT and r2.kind is Relation.LT:
            r1.kind = Relation.LE

    def normalize(self, row_id):
        r = self.rows[row_id]
        if not r.alive or row_id == OBJECTIVE:
            return
        if not r.terms:
            self.retire_row(row_id)
            return
        if not r.kind.is_linear:
            return
        if not all(is_int(c) for _, c in r.terms):
            return
        g = zero
        for _, c in r.terms:
            g = gcd(g, c)
        if r.kind is Relation.LE and all(self.integral[v] for v, _ in r.terms):
            if g != 1 or not is_int(r.const):
                r.terms = [Term(v, c / g) for v, c in r.terms]
                r.const = ceil(r.const / g)
                r.value = self.eval_row(r)
            return
        if not is_int(r.const):
            return
        g = gcd(g, r.const)
        if g != 1:
            self.mul(row_id, one / g)

    # ---substitution---
    def replace_var(self, row_id, x, C):
        """x |-> C in row_id; returns the coefficient x had."""
        r = self.rows[row_id]
        a = r.coefficient(x)
        if a == 0:
            return a
        r.terms = [t for t in r.terms if t.var != x]
        r.const += a * C
        r.value += a * (C - self.values[x])
        return a

    def replace_var_affine(self, row_id, x, A, y, B):
        """x |-> A*y + B in row_id."""
        r = self.rows[row_id]
        if not r.alive or r.coefficient(x) == 0:
            return
        a = self.replace_var(row_id, x, B)
        r.terms = canonical(r.terms + [Term(y, a * A)])
        r.value += a * A * self.values[y]
        self.var_rows[y].append(row_id)

    def replace_var_linear(self, row_id, x, A, y, B, z):
        """x |-> A*y + B*z in row_id."""
        r = self.rows[row_id]
        if not r.alive or r.coefficient(x) == 0:
            return
        a = self.replace_var(row_id, x, zero)
        new = []
        if A != 0:
            new.append(Term(y, a * A))
            self.var_rows[y].append(row_id)
        if B != 0:
            new.append(Term(z, a * B))
            self.var_rows[z].append(row_id)
        r.terms = canonical(r.terms + new)
        r.value += a * A * self.values[y] + a * B * self.values[z]

    # ---queries---
    def live_rows(self):
        """Copies of the live constraint rows, linear ones with denominators cleared."""
        result = []
        for row_id, r in enumerate(self.rows):
            if row_id == OBJECTIVE or not r.alive:
                continue
            r = replace(r, terms=list(r.terms))
            if r.kind.is_linear:
                d = Fraction(r.const.denominator)
                for _, c in r.terms:
                    d = lcm(d, c.denominator)
                if d != 1:
                    r.terms = [Term(v, c * d) for v, c in r.terms]
                    r.const *= d
                    r.value *= d
            result.append(r)
        return result

    def display(self):
        out = []
        for row_id, r in enumerate(self.rows):
            out.append(f"{row_id}: {r.format()}")
        for x, row_ids in enumerate(self.var_rows):
            out.append(f"v{x}: " + " ".join(str(i) for i in row_ids))
        return "\n".join(out)

    def _int_terms_(self, terms):
        return all(self.integral[v] and is_int(c) for v, c in terms)

    def _check_terms_(self, terms):
        for v, c in terms:
            if not 0 <= v < len(self.values):
                raise ContractViolation(f"unknown variable v{v}")
            if c == 0:
                raise ContractViolation(f"zero coefficient on v{v}")
            if self.integral[v] and not is_int(c):
                raise ContractViolation(f"non-integer coefficient {c} on integral v{v}")
