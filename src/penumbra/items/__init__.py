from .models import BUFF_AMOUNTS, HEAL_AMOUNTS, Item, ItemKind, Rarity

__all__ = ["Item", "ItemKind", "Rarity", "HEAL_AMOUNTS", "BUFF_AMOUNTS"]
