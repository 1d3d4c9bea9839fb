from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from platformdirs import user_config_dir

logger = logging.getLogger(__name__)

APP_NAME = "penumbra"


def _check_probability(name: str, value: float) -> None:
    if not (0.0 <= value <= 1.0):
        raise ValueError(f"{name} must be between 0.0 and 1.0")


@dataclass
class GenerationSettings:
    """Knobs for the dungeon generator.

    - max_enemies_per_room: hard cap on enemies spawned in one room.
    - pillar_chance: per-candidate chance of a pillar in Standard/Treasure rooms.
    - corridor_length: floor tiles between one room's exit and the next entrance.
    """

    max_enemies_per_room: int = 10
    pillar_chance: float = 0.35
    corridor_length: int = 3

    def __post_init__(self) -> None:
        if self.max_enemies_per_room < 1:
            raise ValueError("max_enemies_per_room must be >= 1")
        if self.corridor_length < 1:
            raise ValueError("corridor_length must be >= 1")
        _check_probability("pillar_chance", self.pillar_chance)


@dataclass
class CombatSettings:
    base_hit_chance: float = 0.80
    defense_hit_penalty: float = 0.05
    min_hit_chance: float = 0.05
    max_hit_chance: float = 0.95
    damage_jitter: int = 1
    defend_multiplier: float = 0.5
    regression_heal_fraction: float = 0.10
    techdebt_growth: int = 1
    # TechDebt damage never exceeds this multiple of its spawn damage.
    techdebt_cap_multiplier: float = 2.0
    split_threshold: float = 0.5
    # Player hits only.
    crit_chance: float = 0.05
    crit_multiplier: float = 2.0

    def __post_init__(self) -> None:
        for name in ("base_hit_chance", "defense_hit_penalty", "min_hit_chance", "max_hit_chance",
                     "regression_heal_fraction", "split_threshold", "crit_chance"):
            _check_probability(name, getattr(self, name))
        if self.min_hit_chance > self.max_hit_chance:
            raise ValueError("min_hit_chance must not exceed max_hit_chance")
        if self.min_hit_chance <= 0.0 or self.max_hit_chance >= 1.0:
            raise ValueError("hit chance band must exclude guaranteed hits and misses")
        if self.damage_jitter < 0:
            raise ValueError("damage_jitter must be >= 0")
        if not (0.0 < self.defend_multiplier <= 1.0):
            raise ValueError("defend_multiplier must be within (0, 1]")
        if self.techdebt_growth < 0:
            raise ValueError("techdebt_growth must be >= 0")
        if self.techdebt_cap_multiplier < 1.0:
            raise ValueError("techdebt_cap_multiplier must be >= 1.0")
        if self.crit_multiplier < 1.0:
            raise ValueError("crit_multiplier must be >= 1.0")


@dataclass
class AISettings:
    bug_erratic_chance: float = 0.2

    def __post_init__(self) -> None:
        _check_probability("bug_erratic_chance", self.bug_erratic_chance)


@dataclass
class GameplaySettings:
    vision_radius: int = 5
    auto_pickup: bool = True
    inventory_limit: int = 10
    move_cost: int = 1
    attack_cost: int = 5
    defend_cost: int = 3
    use_item_cost: int = 2
    wait_regen: int = 2
    sanctuary_heal: int = 1
    buff_duration: int = 5

    def __post_init__(self) -> None:
        if self.vision_radius < 0:
            raise ValueError("vision_radius must be >= 0")
        if self.inventory_limit < 1:
            raise ValueError("inventory_limit must be >= 1")
        for name in ("move_cost", "attack_cost", "defend_cost", "use_item_cost",
                     "wait_regen", "sanctuary_heal", "buff_duration"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")


@dataclass
class Settings:
    generation: GenerationSettings = field(default_factory=GenerationSettings)
    combat: CombatSettings = field(default_factory=CombatSettings)
    ai: AISettings = field(default_factory=AISettings)
    gameplay: GameplaySettings = field(default_factory=GameplaySettings)
    seed: Optional[int] = None

    @staticmethod
    def default_path() -> Path:
        return Path(user_config_dir(appname=APP_NAME)) / "settings.yaml"

    @staticmethod
    def _load_yaml(path: Path) -> dict:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def _deep_merge(cls, base: dict, overlay: dict) -> dict:
        merged = dict(base)
        for k, v in (overlay or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                merged[k] = cls._deep_merge(base[k], v)
            else:
                merged[k] = v
        return merged

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        return cls(
            generation=GenerationSettings(**data.get("generation", {})),
            combat=CombatSettings(**data.get("combat", {})),
            ai=AISettings(**data.get("ai", {})),
            gameplay=GameplaySettings(**data.get("gameplay", {})),
            seed=data.get("seed"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def load(cls, user_path: Optional[Path] = None) -> "Settings":
        """Load settings from dataclass defaults and an optional user YAML file.

        If user_path exists, its values are overlaid onto the defaults. Unknown
        keys inside a section raise TypeError from the dataclass constructor.
        """
        data = dataclasses.asdict(cls())
        if user_path is not None:
            if user_path.exists():
                data = cls._deep_merge(data, cls._load_yaml(user_path))
                logger.info("Loaded user settings from %s", user_path)
            else:
                logger.warning("User settings file not found: %s", user_path)
        settings = cls.from_dict(data)
        logger.debug("Settings merged: %s", settings)
        return settings

    @classmethod
    def from_env(cls, base: Optional["Settings"] = None) -> "Settings":
        """Apply PENUMBRA_* environment overrides on top of ``base`` (or defaults)."""
        data = (base or cls()).to_dict()
        radius = os.getenv("PENUMBRA_VISION_RADIUS")
        if radius is not None:
            data["gameplay"]["vision_radius"] = int(radius)
        seed = os.getenv("PENUMBRA_SEED")
        if seed is not None:
            data["seed"] = int(seed)
        return cls.from_dict(data)

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)
        logger.info("Saved settings to %s", path)
