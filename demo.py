from absl import app
from absl import flags

from mbopt.config import Config
from mbopt.model import Model
from mbopt.rows import Relation

FLAGS = flags.FLAGS
flags.DEFINE_bool("checked", True, "Verify every row invariant after each operation.")
flags.DEFINE_integer("small_side", 2, "Rows on the smaller side for pairwise elimination.")
flags.DEFINE_integer("small_total", 3, "Rows on either side for pairwise elimination.")

def bounded_above(config):
    # x - 5 <= 0, -x + 1 <= 0, maximize x
    m = Model(config)
    x = m.add_var(3)
    m.add_upper_bound(x, 5)
    m.add_lower_bound(x, 1)
    m.set_objective([(x, 1)])
    return m, m.maximize()

def tightened(config):
    # 2x - 3 <= 0, -x <= 0 over the integers, project x
    m = Model(config)
    x = m.add_var(1, True)
    m.add_constraint([(x, 2)], -3, Relation.LE)
    m.add_lower_bound(x, 0)
    d = m.project(x, True)
    return m, m.format_def(d)

def divisibility(config):
    # 3 | x + 1 with x = 2, project x
    m = Model(config)
    x = m.add_var(2, True)
    m.add_divides([(x, 1)], 1, 3)
    d = m.project(x, True)
    return m, m.format_def(d)

def one_sided(config):
    # x + 1 <= 0, maximize x
    m = Model(config)
    x = m.add_var(-4)
    m.add_constraint([(x, 1)], 1, Relation.LE)
    m.set_objective([(x, 1)])
    return m, m.maximize()

def main(argv):
    if len(argv) > 1:
        raise app.UsageError("Too many command-line arguments.")
    config = Config(checked=FLAGS.checked,
                    small_side=FLAGS.small_side,
                    small_total=FLAGS.small_total)
    for scenario in [bounded_above, tightened, divisibility, one_sided]:
        m, result = scenario(config)
        print(f"{scenario.__name__}: {result}")
        print(m.display())
        print()

if __name__ == "__main__":
    app.run(main)
