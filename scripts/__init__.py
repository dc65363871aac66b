"""
Scripts for DoseRound
Utility scripts for seeding the local reminder store
"""

from .seed_reminders import build_reminders, seed_timeline

__all__ = [
    "build_reminders",
    "seed_timeline"
]
