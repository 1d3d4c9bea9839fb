from .fog_of_war import FogOfWar, FogTileState
from .shadowcast import compute_visible

__all__ = ["FogOfWar", "FogTileState", "compute_visible"]
