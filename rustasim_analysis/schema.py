"""
Named column schemas for the rustasim log formats
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

NUMERIC = "numeric"
INTEGER = "integer"
CATEGORICAL = "categorical"

KINDS = (NUMERIC, INTEGER, CATEGORICAL)


@dataclass(frozen=True)
class Column:
    name: str
    kind: str
    required: bool = True

    def __post_init__(self):
        if self.kind not in KINDS:
            raise ValueError(f"Unknown column kind '{self.kind}' for column '{self.name}'")


@dataclass(frozen=True)
class TableSchema:
    """Layout of a delimited log file.

    header=True, ordered=True: the header must list exactly the schema columns, in order.
    header=True, ordered=False: required columns must be present, extra columns are kept.
    header=False: the schema supplies the column names for every data row.
    """
    name: str
    columns: Tuple[Column, ...]
    delimiter: str = ","
    header: bool = True
    ordered: bool = False
    skip: int = 0
    comment: Optional[str] = None

    @property
    def names(self) -> List[str]:
        return [c.name for c in self.columns]

    @property
    def required(self) -> List[str]:
        return [c.name for c in self.columns if c.required]

    def column(self, name: str) -> Column:
        for c in self.columns:
            if c.name == name:
                return c
        raise KeyError(name)


# out.log, written by the engine's trace logger
EVENT_LOG_SCHEMA = TableSchema(
    name="events",
    columns=(
        Column("tx_time", NUMERIC),
        Column("rx_time", NUMERIC),
        Column("sim_time", INTEGER),
        Column("src", INTEGER),
        Column("id", INTEGER),
        Column("type", CATEGORICAL),
    ),
    ordered=True,
)

# flows.csv / flows1perc.csv: "src,dst,start,end,size_byte,fct_ns"
FLOW_SCHEMA = TableSchema(
    name="flows",
    columns=(
        Column("src", INTEGER),
        Column("dst", INTEGER),
        Column("start", NUMERIC, required=False),
        Column("end", NUMERIC),
        Column("size_byte", INTEGER),
        Column("fct_ns", NUMERIC),
    ),
)

# FCT dump of the reference simulator: caption line, space separated rows, "Util..." footer
CONTROL_SCHEMA = TableSchema(
    name="control",
    columns=(
        Column("type", CATEGORICAL),
        Column("src", INTEGER),
        Column("dst", INTEGER),
        Column("size_byte", INTEGER),
        Column("fct_ms", NUMERIC),
        Column("start_ms", NUMERIC),
    ),
    delimiter=" ",
    header=False,
    skip=1,
    comment="Util",
)
