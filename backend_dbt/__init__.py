"""
Backend DBT: dual-baseline divergence and integrity engine for poll votes.

Scores every cast vote against a categorical logic baseline and a geometric
temporal baseline, classifies the combined divergence into a verdict, and
tracks a decaying per-voter integrity score. Modular architecture with clear
separation between scoring, storage, vote admission, and reporting.
"""

__version__ = "0.1.0"
