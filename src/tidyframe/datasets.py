"""
Example datasets.

``load_penguins`` returns a 32-row sample of the Palmer penguins data used in the
tutorials: ``species``, ``island`` and ``sex`` are categorical, the four
measurements are numeric, and two rows have no measurements at all.
"""

from importlib import resources

import pandas as pd

from .core import Table

PENGUIN_CATEGORIES = ("species", "island", "sex")


def load_penguins() -> Table:
    """Load the bundled penguins sample as a Table with source id ``penguins``."""
    resource = resources.files("tidyframe") / "data" / "penguins.csv"
    with resource.open("r", encoding="utf-8") as fh:
        frame = pd.read_csv(fh, dtype={name: "category" for name in PENGUIN_CATEGORIES})
    return Table(frame, source_id="penguins")
