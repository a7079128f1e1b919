from bisect import bisect_left
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import List, NamedTuple

from .rational import zero, mod, div

class Relation(Enum):
    EQ = "="
    LT = "<"
    LE = "<="
    DIVIDES = "divides"
    MOD = "mod"
    DIV = "div"

    @property
    def is_linear(self):
        return self in (Relation.EQ, Relation.LT, Relation.LE)

class Term(NamedTuple):
    var : int
    coeff : Fraction

def canonical(terms):
    """Sort terms by variable id, merge duplicates and drop zero coefficients."""
    merged = {}
    for v, c in terms:
        merged[v] = merged.get(v, zero) + c
    return [Term(v, c) for v, c in sorted(merged.items()) if c != 0]

@dataclass(eq=False)
class Row:
    kind  : Relation = Relation.LE
    terms : List[Term] = field(default_factory=list)
    const : Fraction = zero
    value : Fraction = zero
    alive : bool = False
    mod   : Fraction = zero
    aux   : int = 0

    def coefficient(self, var):
        i = bisect_left(self.terms, var, key=lambda t: t.var)
        if i < len(self.terms) and self.terms[i].var == var:
            return self.terms[i].coeff
        return zero

    def reset(self):
        self.kind = Relation.LE
        self.terms = []
        self.const = zero
        self.value = zero
        self.alive = False
        self.mod = zero
        self.aux = 0

    def format(self):
        out = ["a" if self.alive else "d", format_linear(self.terms, self.const)]
        if self.kind is Relation.DIVIDES:
            out.append(f"divides {self.mod} = 0; value: {self.value}")
        elif self.kind is Relation.MOD:
            out.append(f"mod {self.mod} = v{self.aux}; mod: {mod(self.value, self.mod)}")
        elif self.kind is Relation.DIV:
            out.append(f"div {self.mod} = v{self.aux}; div: {div(self.value, self.mod)}")
        else:
            out.append(f"{self.kind.value} 0; value: {self.value}")
        return " ".join(out)

def format_linear(terms, const):
    out = []
    for v, c in terms:
        if c < 0:
            out.append("- " if out else "-")
        elif out:
            out.append("+ ")
        if abs(c) == 1:
            out.append(f"v{v} ")
        else:
            out.append(f"{abs(c)}*v{v} ")
    if const > 0:
        out.append(f"+ {const}" if out else f"{const}")
    elif const < 0:
        out.append(f"- {-const}" if out else f"{const}")
    if not out:
        return "0"
    return "".join(out).strip()
