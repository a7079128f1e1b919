from fractions import Fraction
import math

zero = Fraction(0)
one = Fraction(1)

def promote(c):
    if isinstance(c, Fraction):
        return c
    return Fraction(c)

def is_int(q):
    return q.denominator == 1

def floor(q):
    return Fraction(math.floor(q))

def ceil(q):
    return Fraction(math.ceil(q))

def mod(a, m):
    """Remainder of a by m, always in [0, |m|)."""
    return a % abs(m)

def div(a, m):
    """Quotient matching mod: a == m*div(a, m) + mod(a, m)."""
    return (a - mod(a, m)) / m

def gcd(a, b):
    return Fraction(math.gcd(int(a), int(b)))

def lcm(a, b):
    return Fraction(math.lcm(int(a), int(b)))

def sign(q):
    return -1 if q < 0 else 1
