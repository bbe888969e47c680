"""
Smart insight engine

Derives ranked observations from a group's daily and member aggregates:
- Activity peaks, growth trends, engagement shifts
- Member concentration, leadership, diversity
- Timing, content depth, consistency, anomalies

All logic is deterministic and explainable.
"""
