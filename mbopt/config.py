from dataclasses import dataclass

@dataclass(frozen=True)
class Config:
    # raise on caller contract breaches and check every row after each public operation
    checked : bool = False
    # pairwise elimination when the smaller side has at most small_side rows
    # and neither side has more than small_total rows
    small_side : int = 2
    small_total : int = 3
