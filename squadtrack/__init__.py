"""SquadTrack: match lifecycle and player growth tracking service."""

__version__ = "1.0.0"
