"""Program 07: end_to_end — Filter, Mutate, Summarize and PivotWider in one chain. Output ≈ 3×4."""

import tidyframe as tf
from tidyframe import agg, col
from tests.programs import ProgramResult

PROGRAM_NAME = "end_to_end"
OPERATIONS = ["Source", "Filter", "Mutate", "Summarize", "PivotWider"]


def run() -> ProgramResult:
    penguins = tf.load_penguins()

    result = (
        penguins
        .filter(col("sex").is_na() | (col("sex") != "female"))
        .mutate(body_mass_kg=col("body_mass_g") / 1000)
        .group_by("species", "island")
        .summarize(mean_kg=agg.mean("body_mass_kg", na_rm=True))
        .pivot_wider(id_cols=["species"], names_from="island", values_from="mean_kg",
                     values_fill=0.0)
    )

    return ProgramResult(result=result, sources={"penguins": penguins.to_pandas()})
