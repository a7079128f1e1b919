"""Model-guided elimination of variables.

For each variable the live rows mentioning it are classified once and the
cheapest sound strategy is picked, in this order: divisibility rows, mod/div
rows, an equality, pairing of upper and lower bounds.

When there are few upper and lower bounds every pair is resolved. Otherwise
a single representative, the tightest bound under the current values on the
side with fewer rows, is resolved against all other rows:

    t_i <= x  (N rows, glb t0)      x <= s_j  (M rows, lub s0)

    N < M:  t_i <= t0 for i != 0,  t0 <= s_j for all j

and symmetrically when N >= M.
"""
from absl import logging

from .errors import InvariantViolation, ModuloByZeroError
from .rational import zero, one, mod, div, lcm
from .resolution import resolve, solve
from .rows import Relation

def project_vars(model, xs, want_def=False):
    """Project every variable of xs in turn.

    Returns one definition handle per variable (None unless want_def). Each
    definition is rewritten as later variables are eliminated, so none of
    them mentions a projected variable.
    """
    model.results = []
    for x in xs:
        d = project(model, x, want_def)
        model.results.append(d)
        if want_def:
            eliminate(model, x, d)
        logging.vlog(3, "after projecting v%d:\n%s", x, model.display())
    return list(model.results)

def eliminate(model, x, d):
    model.results = [
        r if r is None else model.defs.substitute(r, x, d)
        for r in model.results]

def project(model, x, want_def=False):
    x_val = model.values[x]
    lub_rows, glb_rows = [], []
    divide_rows, mod_rows, div_rows = [], [], []
    lub_index = glb_index = None
    lub_val = glb_val = None
    lub_strict = glb_strict = False
    lub_unit = glb_unit = True
    eq_row = None

    for row_id in list(model.rows_of(x)):
        r = model.rows[row_id]
        a = r.coefficient(x)
        if r.kind is Relation.EQ:
            eq_row = row_id
        elif r.kind is Relation.MOD:
            mod_rows.append(row_id)
        elif r.kind is Relation.DIV:
            div_rows.append(row_id)
        elif r.kind is Relation.DIVIDES:
            divide_rows.append(row_id)
        elif a > 0:
            value = x_val - r.value / a
            strict = r.kind is Relation.LT
            if (not lub_rows or value < lub_val
                    or (value == lub_val and strict and not lub_strict)):
                lub_val, lub_index, lub_strict = value, row_id, strict
            lub_rows.append(row_id)
            lub_unit = lub_unit and a == 1
        else:
            value = x_val - r.value / a
            strict = r.kind is Relation.LT
            if (not glb_rows or value > glb_val
                    or (value == glb_val and strict and not glb_strict)):
                glb_val, glb_index, glb_strict = value, row_id, strict
            glb_rows.append(row_id)
            glb_unit = glb_unit and a == -1

    if divide_rows:
        logging.vlog(1, "v%d: %d divisibility rows", x, len(divide_rows))
        return _solve_divides_(model, x, divide_rows, want_def)
    if mod_rows or div_rows:
        logging.vlog(1, "v%d: %d mod and %d div rows", x, len(mod_rows), len(div_rows))
        return _solve_mod_div_(model, x, mod_rows, div_rows, want_def)
    if eq_row is not None:
        logging.vlog(1, "v%d: solving equality row %d", x, eq_row)
        return solve_for(model, eq_row, x, want_def)

    lub_size = len(lub_rows)
    glb_size = len(glb_rows)
    row_index = lub_index if lub_size <= glb_size else glb_index

    if row_index is None:
        logging.vlog(1, "v%d: bounded from one side only", x)
        if want_def:
            if lub_index is not None:
                return solve_for(model, lub_index, x, True)
            if glb_index is not None:
                return solve_for(model, glb_index, x, True)
            return model.defs.const(x_val)
        for row_id in lub_rows + glb_rows:
            model.retire_row(row_id)
        return None

    result = None
    if want_def:
        result = _bound_definition_(model, row_index, x)

    cfg = model.config
    if ((lub_size <= cfg.small_side or glb_size <= cfg.small_side)
            and lub_size <= cfg.small_total and glb_size <= cfg.small_total
            and (not model.is_int(x) or lub_unit or glb_unit)):
        logging.vlog(1, "v%d: resolving %d x %d bounds", x, lub_size, glb_size)
        for i, row1 in enumerate(lub_rows):
            last = i + 1 == lub_size
            coeff = model.coefficient(row1, x)
            for row2 in glb_rows:
                if last:
                    resolve(model, row1, coeff, row2, x)
                else:
                    row3 = model.copy_row(row2, x)
                    resolve(model, row1, coeff, row3, x)
        for row_id in lub_rows:
            model.retire_row(row_id)
        return result

    logging.vlog(1, "v%d: resolving against row %d", x, row_index)
    coeff = model.coefficient(row_index, x)
    for row_id in lub_rows + glb_rows:
        if row_id != row_index:
            resolve(model, row_index, coeff, row_id, x)
    model.retire_row(row_index)
    return result

def solve_for(model, row_id, x, want_def=False):
    """Eliminate x through row_id, read as an equality.

    3x + t = 0 & 7 | (c*x + s) & a*x <= u   becomes
    3 | -t & 21 | (-c*t + 3*s) & -a*t <= 3*u

    An inequality is first shifted by its value so that it is tight under
    the current values, which keeps x at its current value.
    """
    r = model.rows[row_id]
    a = r.coefficient(x)
    if a < 0:
        a = -a
        model.mul(row_id, -one)
    if r.kind is not Relation.EQ:
        r.const -= r.value
        r.value = zero
        r.kind = Relation.LE
    if model.is_int(x) and a != 1:
        if model.is_int_row(r):
            others = [t for t in r.terms if t.var != x]
            model.add_divides(others, mod(-model.eval_terms(others), a), a)

    for row2 in list(model.rows_of(x)):
        if row2 == row_id:
            continue
        if not model.rows[row2].kind.is_linear:
            raise InvariantViolation(
                [f"row {row2} on v{x} must be reduced before solving for v{x}"])
        solve(model, row_id, a, row2, x)

    result = None
    if want_def:
        terms = [(v, -c) for v, c in r.terms if v != x]
        result = model.defs.quot(model.defs.linear(terms, -r.const), a, model.is_int(x))
        model.values[x] = model.eval_def(result)
    model.retire_row(row_id)
    return result

def _bound_definition_(model, row_id, x):
    # the bound, rounded for integral x, shifted by its distance from x
    r = model.rows[row_id]
    a = r.coefficient(x)
    defs = model.defs
    strict = r.kind is Relation.LT
    # the bound on x is b = N/a
    N = defs.linear([(v, -c) for v, c in r.terms if v != x], -r.const)
    if not model.is_int(x):
        result = defs.quot(N, a)
    elif (a > 0) != strict:
        # floor(b) for x <= b, floor(b) + 1 for x > b
        result = defs.quot(N, a, True)
        if strict:
            result = defs.shift(result, one)
    else:
        # ceil(b) for x >= b, ceil(b) - 1 for x < b
        T = defs.linear([(v, c) for v, c in r.terms if v != x], r.const)
        result = defs.scale(defs.quot(T, a, True), -one)
        if strict:
            result = defs.shift(result, -one)
    return defs.shift(result, model.values[x] - model.eval_def(result))

def _solve_divides_(model, x, divide_rows, want_def):
    # d1 | a1*x + t1 & d2 | a2*x + t2, D = lcm(d1, d2), u = x mod D
    # x |-> D*y + u turns the divisibility rows into d_i | a_i*u + t_i
    D = one
    for row_id in divide_rows:
        D = lcm(D, model.rows[row_id].mod)
    if D == 0:
        raise ModuloByZeroError()
    x_val = model.values[x]
    u = mod(x_val, D)
    for row_id in divide_rows:
        model.replace_var(row_id, x, u)
        model.normalize(row_id)

    y = model.add_var((x_val - u) / D, True)
    for row_id in list(model.rows_of(x)):
        model.replace_var_affine(row_id, x, D, y, u)
        model.normalize(row_id)

    result = project(model, y, want_def)
    if want_def:
        defs = model.defs
        result = defs.shift(defs.scale(result, D), u)
        model.values[x] = model.eval_def(result)
    return result

def _solve_mod_div_(model, x, mod_rows, div_rows, want_def):
    # x |-> K*y + z with 0 <= z < K, K the lcm of all moduli.
    #
    # v = (a*x + b) div K  becomes  v = a*y + w + k,  w = b div K,
    #   k = (a*z + b mod K) div K fixed from the current values, and
    #   k*K <= a*z + b mod K < (k+1)*K
    #
    # v = (a*x + b) mod m  becomes  v = a*z + w + V,  w = b mod m,
    #   V = v - a*z - w under the current values, and 0 <= v < m
    K = one
    for row_id in div_rows + mod_rows:
        K = lcm(K, model.rows[row_id].mod)
    if K == 0:
        raise ModuloByZeroError()
    x_val = model.values[x]
    z_val = mod(x_val, K)
    z = model.add_var(z_val, True)
    y = model.add_var(div(x_val, K), True)

    visited = set(div_rows) | set(mod_rows)
    for row_id in div_rows:
        model.mul(row_id, K / model.rows[row_id].mod)
    for row_id in list(model.rows_of(x)):
        if row_id in visited:
            continue
        model.replace_var_linear(row_id, x, K, y, one, z)
        model.normalize(row_id)

    model.add_lower_bound(z, zero)
    model.add_upper_bound(z, K - 1)

    vs = []
    for row_id in div_rows:
        r = model.rows[row_id]
        a = model.replace_var(row_id, x, zero)
        terms = list(r.terms)
        coeff = r.const
        v = r.aux
        w = None
        offset = zero
        if K == 1:
            offset = coeff
        elif not terms:
            offset = div(coeff, K)
        else:
            w = model.add_div(terms, coeff, K)

        b_val = model.eval_terms(terms) + coeff
        k = div(a * z_val + mod(b_val, K), K)
        div_terms = [(v, -one), (y, a)]
        if w is not None:
            div_terms.append((w, one))
        elif K == 1:
            div_terms.extend(terms)
        model.add_constraint(div_terms, k + offset, Relation.EQ)

        u = None
        offset = zero
        if K != 1:
            if not terms:
                offset = mod(coeff, K)
            else:
                u = model.add_mod(terms, coeff, K)
        bound_terms = [(z, a)]
        if u is not None:
            bound_terms.append((u, one))
        # a*z + (b mod K) < (k + 1)*K
        model.add_constraint(bound_terms, 1 - K * (k + 1) + offset, Relation.LE)
        # k*K <= a*z + (b mod K)
        model.add_constraint([(t, -c) for t, c in bound_terms], k * K - offset, Relation.LE)
        model.retire_row(row_id)
        vs.append(v)

    for row_id in mod_rows:
        r = model.rows[row_id]
        a = model.replace_var(row_id, x, zero)
        m = abs(r.mod)
        terms = list(r.terms)
        coeff = r.const
        v = r.aux
        w = None
        offset = zero
        if not terms or m == 1:
            offset = mod(coeff, m)
        else:
            w = model.add_mod(terms, coeff, m)
        w_val = offset if w is None else model.values[w]
        V = model.values[v] - a * z_val - w_val
        mod_terms = [(v, -one), (z, a)]
        if w is not None:
            mod_terms.append((w, one))
        model.add_constraint(mod_terms, V + offset, Relation.EQ)
        model.add_lower_bound(v, zero)
        model.add_upper_bound(v, m - 1)
        model.retire_row(row_id)
        vs.append(v)

    for v in vs:
        v_def = project(model, v, want_def)
        if want_def:
            eliminate(model, v, v_def)

    z_def = project(model, z, want_def)
    y_def = project(model, y, want_def)
    if not want_def:
        return None
    defs = model.defs
    z_def = defs.substitute(z_def, y, y_def)
    eliminate(model, y, y_def)
    eliminate(model, z, z_def)
    result = defs.add(defs.scale(y_def, K), z_def)
    model.values[x] = model.eval_def(result)
    return result
