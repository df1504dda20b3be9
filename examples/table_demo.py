"""
Demo script showing the core Table verbs.

This script demonstrates:
1. Loading the bundled penguins sample
2. Filtering with missing values
3. Adding columns with mutate
4. Grouped summaries, with and without na_rm
5. Plan tracking with explain() and visualize()
"""

import tidyframe as tf
from tidyframe import agg, col, desc

penguins = tf.load_penguins()

# Example 1: The data
print("=" * 60)
print("Example 1: The penguins sample")
print("=" * 60)

print(penguins)
print("\nColumn types:")
for name, dtype in penguins.dtypes.items():
    print(f"  {name}: {dtype}")

# Example 2: Filtering
print("\n" + "=" * 60)
print("Example 2: Filtering (rows with unknown mass are dropped)")
print("=" * 60)

heavy = penguins.filter(col("body_mass_g") > 4500)
print(heavy.select("species", "island", "body_mass_g"))
print("\nPlan:")
print(heavy.explain())

# Example 3: Mutate
print("\n" + "=" * 60)
print("Example 3: Mutate")
print("=" * 60)

with_kg = penguins.mutate(
    body_mass_kg=col("body_mass_g") / 1000,
    bill_ratio=col("bill_length_mm") / col("bill_depth_mm"),
)
print(with_kg.select("species", "body_mass_kg", "bill_ratio").head())

# Example 4: Grouped summaries
print("\n" + "=" * 60)
print("Example 4: Group and summarize")
print("=" * 60)

summary = (
    penguins
    .group_by("species")
    .summarize(
        n=agg.n(),
        mean_mass=agg.mean("body_mass_g"),
        mean_mass_known=agg.mean("body_mass_g", na_rm=True),
    )
    .arrange(desc("n"))
)
print(summary)
print("\nPlan:")
print(summary.visualize())

print("\n" + "=" * 60)
print("Demo completed successfully!")
print("=" * 60)
