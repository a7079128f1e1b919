from dataclasses import dataclass
from fractions import Fraction

from .rational import zero, one, promote, floor

# Nodes refer to their children by index into the arena, and a node is only
# ever created after its children, so the graph cannot have cycles.

@dataclass(frozen=True)
class Const:
    value : Fraction

@dataclass(frozen=True)
class ScaledVar:
    var : int
    coeff : Fraction

@dataclass(frozen=True)
class Sum:
    left : int
    right : int

@dataclass(frozen=True)
class Product:
    left : int
    right : int

@dataclass(frozen=True)
class Quotient:
    child : int
    divisor : Fraction
    floor : bool

class Definitions:
    def __init__(self):
        self.nodes = []

    def __len__(self):
        return len(self.nodes)

    def __getitem__(self, d):
        return self.nodes[d]

    def _new_(self, node):
        self.nodes.append(node)
        return len(self.nodes) - 1

    def const(self, value):
        return self._new_(Const(promote(value)))

    def var(self, x, coeff=one):
        return self._new_(ScaledVar(x, promote(coeff)))

    def add(self, left, right):
        return self._new_(Sum(left, right))

    def mul(self, left, right):
        return self._new_(Product(left, right))

    def quot(self, child, divisor, floor=False):
        if divisor == 1:
            return child
        return self._new_(Quotient(child, promote(divisor), floor))

    def scale(self, d, n):
        if n == 1:
            return d
        return self.mul(d, self.const(n))

    def shift(self, d, n):
        if n == 0:
            return d
        return self.add(d, self.const(n))

    def linear(self, terms, const=zero):
        result = self.const(const)
        for v, c in terms:
            result = self.add(result, self.var(v, c))
        return result

    def substitute(self, d, x, other, memo=None):
        """d with every occurrence of variable x replaced by definition other."""
        if memo is None:
            memo = {}
        if d in memo:
            return memo[d]
        node = self.nodes[d]
        result = d
        if isinstance(node, (Sum, Product)):
            left = self.substitute(node.left, x, other, memo)
            right = self.substitute(node.right, x, other, memo)
            if left != node.left or right != node.right:
                result = self._new_(type(node)(left, right))
        elif isinstance(node, Quotient):
            child = self.substitute(node.child, x, other, memo)
            if child != node.child:
                result = self.quot(child, node.divisor, node.floor)
        elif isinstance(node, ScaledVar) and node.var == x:
            result = self.scale(other, node.coeff)
        memo[d] = result
        return result

    def evaluate(self, d, values, memo=None):
        if memo is None:
            memo = {}
        if d in memo:
            return memo[d]
        node = self.nodes[d]
        if isinstance(node, Const):
            result = node.value
        elif isinstance(node, ScaledVar):
            result = node.coeff * values[node.var]
        elif isinstance(node, Sum):
            result = self.evaluate(node.left, values, memo) + self.evaluate(node.right, values, memo)
        elif isinstance(node, Product):
            result = self.evaluate(node.left, values, memo) * self.evaluate(node.right, values, memo)
        else:
            result = self.evaluate(node.child, values, memo) / node.divisor
            if node.floor:
                result = floor(result)
        memo[d] = result
        return result

    def variables(self, d):
        seen = set()
        stack = [d]
        found = set()
        while stack:
            d = stack.pop()
            if d in seen:
                continue
            seen.add(d)
            node = self.nodes[d]
            if isinstance(node, ScaledVar):
                found.add(node.var)
            elif isinstance(node, (Sum, Product)):
                stack.append(node.left)
                stack.append(node.right)
            elif isinstance(node, Quotient):
                stack.append(node.child)
        return found

    def format(self, d):
        node = self.nodes[d]
        if isinstance(node, Const):
            return str(node.value)
        if isinstance(node, ScaledVar):
            return f"{node.coeff}*v{node.var}"
        if isinstance(node, Sum):
            return f"({self.format(node.left)} + {self.format(node.right)})"
        if isinstance(node, Product):
            return f"({self.format(node.left)} * {self.format(node.right)})"
        op = "div" if node.floor else "/"
        return f"({self.format(node.child)} {op} {node.divisor})"
