"""
FPL Squad Optimizer Package

Brute-force Fantasy Premier League squad optimization over per-gameweek
predicted points. Candidate combinations are shortlisted per position,
assembled into squads inside the club cap and price band, and scored with the
best weekly lineup, captaincy and an optional bench boost. Jobs run in the
background with streamed progress and cooperative cancellation.
"""

__version__ = "1.0.0"
