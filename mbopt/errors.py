class MboError(Exception):
    pass

class ModuloByZeroError(MboError, ZeroDivisionError):
    def __init__(self, what="modulo 0 is not defined"):
        super().__init__(what)

class ContractViolation(MboError, AssertionError):
    pass

class InvariantViolation(ContractViolation):
    def __init__(self, violations):
        self.violations = list(violations)
        super().__init__("\n".join(self.violations))
