from .errors import InvariantViolation
from .rational import is_int, mod, div
from .rows import Relation
from .store import OBJECTIVE

def violations(store):
    """Every broken row invariant of store, as readable messages."""
    out = []
    for x, value in enumerate(store.values):
        if store.integral[x] and not is_int(value):
            out.append(f"v{x}: integral variable has value {value}")
    for row_id, r in enumerate(store.rows):
        if not r.alive:
            continue
        ids = [v for v, _ in r.terms]
        if ids != sorted(set(ids)):
            out.append(f"row {row_id}: terms are not sorted and unique")
        if any(c == 0 for _, c in r.terms):
            out.append(f"row {row_id}: zero coefficient")
        value = store.eval_row(r)
        if value != r.value:
            out.append(f"row {row_id}: cached value {r.value} but evaluates to {value}")
        if row_id == OBJECTIVE:
            continue
        for v in ids:
            if row_id not in store.var_rows[v]:
                out.append(f"row {row_id}: missing from the index of v{v}")
        if r.kind is Relation.EQ and value != 0:
            out.append(f"row {row_id}: equality evaluates to {value}")
        elif r.kind is Relation.LT and value >= 0:
            out.append(f"row {row_id}: strict inequality evaluates to {value}")
        elif r.kind is Relation.LE and value > 0:
            out.append(f"row {row_id}: inequality evaluates to {value}")
        elif r.kind is Relation.DIVIDES and mod(value, r.mod) != 0:
            out.append(f"row {row_id}: {r.mod} does not divide {value}")
        elif r.kind is Relation.MOD and store.values[r.aux] != mod(value, r.mod):
            out.append(f"row {row_id}: v{r.aux} is {store.values[r.aux]}, not {value} mod {r.mod}")
        elif r.kind is Relation.DIV and store.values[r.aux] != div(value, r.mod):
            out.append(f"row {row_id}: v{r.aux} is {store.values[r.aux]}, not {value} div {r.mod}")
    return out

def check_store(store):
    found = violations(store)
    if found:
        raise InvariantViolation(found)
