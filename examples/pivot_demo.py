"""
Demo script for reshaping tables.

Shows pivot_longer and pivot_wider on the penguins sample, the round trip
between them, and what happens when a wide cell would receive several values.

Usage:
    python examples/pivot_demo.py
"""

import tidyframe as tf
from tidyframe import agg
from tidyframe.utils import to_json

penguins = tf.load_penguins()

# Long form: one row per (penguin, measurement)
print("=" * 60)
print("pivot_longer")
print("=" * 60)

bills = penguins.select("species", "island", "bill_length_mm", "bill_depth_mm")
long = bills.pivot_longer(
    ["bill_length_mm", "bill_depth_mm"], names_to="measurement", values_to="mm"
)
print(long.head(6))

# Mean per species and measurement, then spread the species into columns
print("\n" + "=" * 60)
print("summarize then pivot_wider")
print("=" * 60)

means = (
    long
    .group_by("species", "measurement")
    .summarize(mean_mm=agg.mean("mm", na_rm=True))
    .pivot_wider(id_cols=["measurement"], names_from="species", values_from="mean_mm")
)
print(means)

# Several penguins share (island, species); without values_fn that is ambiguous
print("\n" + "=" * 60)
print("Ambiguous cells")
print("=" * 60)

masses = penguins.select("island", "species", "body_mass_g")
try:
    masses.pivot_wider(names_from="species", values_from="body_mass_g")
except tf.AmbiguousPivotError as exc:
    print(f"AmbiguousPivotError: {exc}")

resolved = masses.pivot_wider(
    names_from="species", values_from="body_mass_g", values_fn="max", values_fill=0
)
print(resolved)

print("\nPlan (serialized):")
print(to_json(resolved.plan, indent=2))
