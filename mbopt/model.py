from absl import logging

from .check import check_store
from .definitions import Definitions
from .optimize import maximize
from .projection import project_vars
from .rational import zero
from .store import RowStore

class Model(RowStore):
    """Row store together with definitions and the elimination drivers.

    In checked mode every row invariant is verified after each public
    construction, projection and maximization.
    """
    def __init__(self, config=None):
        RowStore.__init__(self, config)
        self.defs = Definitions()
        self.results = []
        self.busy = False

    def add_constraint(self, terms, const, kind, m=zero, aux=0):
        row_id = RowStore.add_constraint(self, terms, const, kind, m, aux)
        if not self.busy:
            self.checkpoint()
        return row_id

    def set_objective(self, terms, const=zero):
        RowStore.set_objective(self, terms, const)
        if not self.busy:
            self.checkpoint()

    def project(self, x, want_def=False):
        return self.project_many([x], want_def)[0]

    def project_many(self, xs, want_def=False):
        self.busy = True
        try:
            results = project_vars(self, xs, want_def)
        finally:
            self.busy = False
        self.checkpoint()
        return results

    def maximize(self):
        self.busy = True
        try:
            result = maximize(self)
        finally:
            self.busy = False
        logging.vlog(1, "maximum %s", result)
        self.checkpoint()
        return result

    def eval_def(self, d):
        return self.defs.evaluate(d, self.values)

    def format_def(self, d):
        return self.defs.format(d)

    def checkpoint(self):
        if logging.vlog_is_on(3):
            logging.vlog(3, "rows:\n%s", self.display())
        if self.config.checked:
            check_store(self)
