"""Elimination of one variable between two rows.

Real rows use Fourier-Motzkin combination. Two non-strict integer rows
bounding x from opposite sides use the exact scaled sum when it is sound
(the dark shadow holds under the current values, or one coefficient is a
unit), and otherwise fix the residue of the smaller coefficient from the
current values, emitting a divisibility side constraint.
"""
from absl import logging

from .rational import one, mod, sign
from .rows import Relation

def resolve(store, src, a1, dst, x):
    """Eliminate x from dst using src, whose coefficient on x is a1.

    When both rows bound x from the same side src must be the tighter one
    under the current values.
    """
    r = store.rows[dst]
    if not r.alive:
        return
    a2 = r.coefficient(x)
    if a2 == 0:
        return
    s = store.rows[src]
    same_side = (a1 > 0) == (a2 > 0)
    if s.kind is Relation.EQ:
        store.mul(dst, abs(a1))
        store.mul_add(dst, -sign(a1) * a2, src)
    elif not store.is_int(x):
        store.mul_add(dst, -a2 / a1, src, same_side)
    elif same_side:
        store.mul(dst, abs(a1))
        store.mul_add(dst, -abs(a2), src, True)
    elif (s.kind is Relation.LE and r.kind is Relation.LE
            and store.is_int_row(s) and store.is_int_row(r)):
        _int_resolve_(store, x, a1, src, a2, dst)
    else:
        store.mul(dst, abs(a1))
        store.mul_add(dst, abs(a2), src)
    store.normalize(dst)

def solve(store, src, a1, dst, x):
    """Eliminate x from dst using src read as an equality, a1 > 0."""
    r = store.rows[dst]
    if not r.alive:
        return
    a2 = r.coefficient(x)
    if a2 == 0:
        return
    store.mul(dst, a1)
    store.mul_add(dst, -a2, src)
    store.normalize(dst)

def _int_resolve_(store, x, src_c, src, dst_c, dst):
    s = store.rows[src]
    d = store.rows[dst]
    abs_src_c = abs(src_c)
    abs_dst_c = abs(dst_c)
    x_val = store.values[x]
    slack = (abs_src_c - 1) * (abs_dst_c - 1)
    dst_val = d.value - x_val * dst_c
    src_val = s.value - x_val * src_c
    distance = abs_src_c * dst_val + abs_dst_c * src_val + slack

    if distance <= 0 or abs_src_c == 1 or abs_dst_c == 1:
        # dst <- |src_c|*dst + |dst_c|*src + slack
        store.mul(dst, abs_src_c)
        store.add(dst, slack)
        store.mul_add(dst, abs_dst_c, src)
        return

    logging.vlog(2, "finite disjunction on v%d: %s %s distance %s",
                 x, src_c, dst_c, distance)
    if abs_dst_c <= abs_src_c:
        # pick z in [0, |b|) with |b| dividing s + z, from the current values
        z = mod(dst_val, abs_dst_c)
        if z != 0:
            z = abs_dst_c - z
        others = [t for t in d.terms if t.var != x]
        store.add_divides(others, d.const + z, abs_dst_c)
        store.add(dst, z)
        store.mul(dst, src_c * _n_sign_(dst_c))
        store.mul_add(dst, abs_dst_c, src)
    else:
        z = mod(src_val, abs_src_c)
        if z != 0:
            z = abs_src_c - z
        others = [t for t in s.terms if t.var != x]
        store.add_divides(others, s.const + z, abs_src_c)
        store.mul(dst, abs_src_c)
        store.add(dst, z * dst_c * _n_sign_(src_c))
        store.mul_add(dst, dst_c * _n_sign_(src_c), src)

def _n_sign_(b):
    return -one if b > 0 else one
