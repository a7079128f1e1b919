from dataclasses import dataclass, replace
from fractions import Fraction
from typing import Optional

from absl import logging

from .rational import one, mod, floor, ceil, is_int, lcm
from .resolution import resolve
from .rows import Relation
from .store import OBJECTIVE

@dataclass(frozen=True)
class Optimum:
    value : Optional[Fraction] = None
    # the supremum is approached but not attained
    strict : bool = False
    unbounded : bool = False

    def __str__(self):
        if self.unbounded:
            return "oo"
        if self.strict:
            return f"{self.value}-eps"
        return str(self.value)

def maximize(model):
    """Maximize the objective row over the live rows.

    Variables leave the objective one at a time, last term first, each
    replaced through its binding bound after every other row on it has
    been resolved against that bound. The bound is chosen under the
    current values, so the result is the optimum of the region around
    them. Variables under mod or div rows are held at their current
    values. On return the values are moved onto the optimum, or as far as
    the bounds allow when the objective is unbounded.
    """
    obj = model.rows[OBJECTIVE]
    goal = _snapshot_(obj)
    pinned = _pinned_(model)
    trail = []
    while obj.terms:
        x, coeff = obj.terms[-1]
        if x in pinned:
            bound = model.add_constraint([(x, one)], -model.values[x], Relation.EQ)
            bound_coeff, others = one, []
        else:
            divide_rows = [row_id for row_id in model.rows_of(x)
                           if model.rows[row_id].kind is Relation.DIVIDES]
            if divide_rows:
                _split_divides_(model, x, divide_rows)
            bound, bound_coeff, others = _find_bound_(model, x, coeff > 0)
        if bound is None:
            logging.vlog(1, "objective unbounded along v%d", x)
            _update_values_(model, trail)
            return Optimum(None, obj.kind is Relation.LT, True)
        r = model.rows[bound]
        if model.is_int(x) and abs(bound_coeff) != 1 and model.is_int_row(r):
            _round_bound_(model, bound, x)
        opposite = []
        if r.kind is Relation.LT:
            opposite = [_snapshot_(model.rows[row_id]) for row_id in others
                        if (model.coefficient(row_id, x) > 0) != (bound_coeff > 0)]
        for row_id in others:
            resolve(model, bound, bound_coeff, row_id, x)
        model.mul_add(OBJECTIVE, -coeff / bound_coeff, bound)
        trail.append((x, _snapshot_(r), opposite))
        model.retire_row(bound)
    if _update_values_(model, trail):
        return Optimum(obj.const, obj.kind is Relation.LT)
    # some integral variable was rounded off a mixed bound
    return Optimum(model.eval_row(goal))

def _snapshot_(r):
    return replace(r, terms=list(r.terms))

def _pinned_(model):
    # moving a variable of a mod or div row would move its result as well
    pinned = set()
    for row_id, r in enumerate(model.rows):
        if row_id == OBJECTIVE or not r.alive:
            continue
        if r.kind in (Relation.MOD, Relation.DIV):
            pinned.update(v for v, _ in r.terms)
            pinned.add(r.aux)
    return pinned

def _split_divides_(model, x, divide_rows):
    # x = D*y + u with u = x mod D fixed from the current values, D the lcm
    # of the moduli; the divisibility rows then no longer mention x
    D = one
    for row_id in divide_rows:
        D = lcm(D, model.rows[row_id].mod)
    x_val = model.values[x]
    u = mod(x_val, D)
    for row_id in divide_rows:
        model.replace_var(row_id, x, u)
        model.normalize(row_id)
    y = model.add_var((x_val - u) / D, True)
    logging.vlog(2, "v%d = %s*v%d + %s", x, D, y, u)
    model.add_constraint([(x, one), (y, -D)], -u, Relation.EQ)

def _round_bound_(model, row_id, x):
    # a*x + s <= 0 over the integers: x takes -(s + r)/a with r the residue
    # of -s modulo |a| under the current values, and |a| must divide s + r
    r = model.rows[row_id]
    a = r.coefficient(x)
    others = [t for t in r.terms if t.var != x]
    residue = mod(-(r.const + model.eval_terms(others)), a)
    model.add(row_id, residue)
    r.kind = Relation.EQ
    logging.vlog(2, "v%d rounds its bound by %s", x, residue)
    model.add_divides(others, r.const, abs(a))

def _find_bound_(model, x, is_pos):
    """Tightest row bounding x in the direction of is_pos.

    Returns the row, its coefficient on x and every other row on x.
    Equalities bound x from both sides and are always the tightest.
    """
    x_val = model.values[x]
    bound = bound_coeff = best = None
    others = []
    for row_id in list(model.rows_of(x)):
        r = model.rows[row_id]
        a = r.coefficient(x)
        if r.kind is not Relation.EQ and (a > 0) != is_pos:
            others.append(row_id)
            continue
        value = x_val - r.value / a
        if bound is None or _tighter_(value, r, best, model.rows[bound], is_pos):
            if bound is not None:
                others.append(bound)
            bound, bound_coeff, best = row_id, a, value
        else:
            others.append(row_id)
    return bound, bound_coeff, others

def _tighter_(value, r, best, b, is_pos):
    if r.kind is Relation.EQ or b.kind is Relation.EQ:
        return b.kind is not Relation.EQ
    if value != best:
        return value < best if is_pos else value > best
    return r.kind is Relation.LT and b.kind is not Relation.LT

def _rest_(model, r, x):
    return r.const + model.eval_terms(t for t in r.terms if t.var != x)

def _update_values_(model, trail):
    """Replay the trail backwards; False when an integral value was rounded."""
    exact = True
    for x, r, opposite in reversed(trail):
        a = r.coefficient(x)
        new = -_rest_(model, r, x) / a
        if r.kind is Relation.LT:
            old = model.values[x]
            eps = one
            if old != new:
                eps = min(eps, abs(old - new) / 2)
            for o in opposite:
                eps = min(eps, abs(new + _rest_(model, o, x) / o.coefficient(x)) / 2)
            new = new - eps if a > 0 else new + eps
            logging.vlog(2, "v%d backs off its strict bound by %s", x, eps)
        if model.is_int(x) and not is_int(new):
            new = floor(new) if a > 0 else ceil(new)
            exact = False
        model.set_value(x, new)
    return exact
