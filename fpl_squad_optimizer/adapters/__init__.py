"""Infrastructure adapters for loading player data."""

from .player_data import PlayerDataLoader, RawPlayerRecord

__all__ = ["PlayerDataLoader", "RawPlayerRecord"]
