from __future__ import annotations

import textwrap

import pytest

from penumbra.config import CombatSettings, GameplaySettings, GenerationSettings, Settings


def test_defaults():
    s = Settings()
    assert s.gameplay.vision_radius == 5
    assert s.gameplay.inventory_limit == 10
    assert s.generation.max_enemies_per_room == 10
    assert s.combat.min_hit_chance == pytest.approx(0.05)
    assert s.combat.max_hit_chance == pytest.approx(0.95)
    assert s.seed is None


def test_yaml_overlay_merges_over_defaults(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(textwrap.dedent(
        """
        gameplay:
          vision_radius: 8
        combat:
          damage_jitter: 2
        seed: 7
        """
    ), encoding="utf-8")
    s = Settings.load(path)
    assert s.gameplay.vision_radius == 8
    assert s.gameplay.move_cost == 1
    assert s.combat.damage_jitter == 2
    assert s.combat.base_hit_chance == pytest.approx(0.80)
    assert s.seed == 7


def test_missing_user_file_uses_defaults(tmp_path):
    assert Settings.load(tmp_path / "nope.yaml") == Settings()


def test_unknown_key_rejected(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("gameplay:\n  warp_speed: 9\n", encoding="utf-8")
    with pytest.raises(TypeError):
        Settings.load(path)


def test_save_then_load(tmp_path):
    s = Settings(gameplay=GameplaySettings(vision_radius=3), seed=11)
    path = tmp_path / "nested" / "settings.yaml"
    s.save(path)
    assert Settings.load(path) == s


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PENUMBRA_VISION_RADIUS", "3")
    monkeypatch.setenv("PENUMBRA_SEED", "99")
    s = Settings.from_env()
    assert s.gameplay.vision_radius == 3
    assert s.seed == 99


def test_env_without_overrides_keeps_base(monkeypatch):
    monkeypatch.delenv("PENUMBRA_VISION_RADIUS", raising=False)
    monkeypatch.delenv("PENUMBRA_SEED", raising=False)
    base = Settings(seed=5)
    assert Settings.from_env(base) == base


@pytest.mark.parametrize(
    "factory",
    [
        lambda: GenerationSettings(pillar_chance=1.5),
        lambda: GenerationSettings(max_enemies_per_room=0),
        lambda: CombatSettings(min_hit_chance=0.0),
        lambda: CombatSettings(max_hit_chance=1.0),
        lambda: CombatSettings(min_hit_chance=0.9, max_hit_chance=0.5),
        lambda: CombatSettings(techdebt_cap_multiplier=0.5),
        lambda: GameplaySettings(vision_radius=-1),
        lambda: GameplaySettings(inventory_limit=0),
    ],
)
def test_invalid_values_raise(factory):
    with pytest.raises(ValueError):
        factory()
