"""재고 저장소 + 템플릿 저장소 테스트"""

from __future__ import annotations

import json

import pytest

from src.core.loot.inventory import InventoryRegistry
from src.core.loot.models import GenerationTemplate, RarityClass
from src.core.loot.templates import TemplateRegistry, parse_rarity_class


# ── InventoryRegistry ─────────────────────────────────────────


class TestInventoryRegistry:
    def test_initially_uncurated(self) -> None:
        inventory = InventoryRegistry()
        for cls in RarityClass:
            assert inventory.is_curated(cls) is False
            assert inventory.items_for(cls) == []

    def test_add_item_marks_curated(self) -> None:
        inventory = InventoryRegistry()
        inventory.add_item(RarityClass.RARE, "gem_ruby")
        assert inventory.is_curated(RarityClass.RARE) is True
        assert inventory.items_for(RarityClass.RARE) == ["gem_ruby"]

    def test_add_item_appends_in_order(self) -> None:
        inventory = InventoryRegistry()
        for item_id in ["a", "b", "a"]:
            inventory.add_item(RarityClass.EPIC, item_id)
        assert inventory.items_for(RarityClass.EPIC) == ["a", "b", "a"]

    def test_replace_items(self) -> None:
        inventory = InventoryRegistry()
        inventory.add_item(RarityClass.RARE, "old")
        inventory.replace_items(RarityClass.RARE, ["x", "y"])
        assert inventory.items_for(RarityClass.RARE) == ["x", "y"]

    def test_replace_with_empty_stays_curated(self) -> None:
        inventory = InventoryRegistry()
        inventory.replace_items(RarityClass.LEGENDARY, [])
        assert inventory.is_curated(RarityClass.LEGENDARY) is True
        assert inventory.items_for(RarityClass.LEGENDARY) == []

    def test_reset_clears_list_and_flag(self) -> None:
        inventory = InventoryRegistry()
        inventory.replace_items(RarityClass.RARE, ["x", "y"])
        inventory.reset(RarityClass.RARE)
        assert inventory.is_curated(RarityClass.RARE) is False
        assert inventory.items_for(RarityClass.RARE) == []

    def test_items_for_returns_copy(self) -> None:
        inventory = InventoryRegistry()
        inventory.add_item(RarityClass.RARE, "x")
        items = inventory.items_for(RarityClass.RARE)
        items.append("injected")
        assert inventory.items_for(RarityClass.RARE) == ["x"]

    def test_classes_are_independent(self) -> None:
        inventory = InventoryRegistry()
        inventory.add_item(RarityClass.RARE, "x")
        assert inventory.is_curated(RarityClass.EPIC) is False


# ── TemplateRegistry ──────────────────────────────────────────


class TestTemplateRegistry:
    def test_register_and_get(self) -> None:
        registry = TemplateRegistry()
        tpl = GenerationTemplate("gen_bow", RarityClass.EPIC, name="Bow")
        registry.register(tpl)
        assert registry.get("gen_bow") == tpl
        assert registry.get("missing") is None

    def test_templates_for_filters_by_class(self) -> None:
        registry = TemplateRegistry()
        registry.register(GenerationTemplate("a", RarityClass.EPIC))
        registry.register(GenerationTemplate("b", RarityClass.COMMON))
        registry.register(GenerationTemplate("c", RarityClass.EPIC))
        assert [t.item_id for t in registry.templates_for(RarityClass.EPIC)] == ["a", "c"]
        assert registry.templates_for(RarityClass.LEGENDARY) == []

    def test_overwrite_same_item_id(self) -> None:
        registry = TemplateRegistry()
        registry.register(GenerationTemplate("a", RarityClass.EPIC))
        registry.register(GenerationTemplate("a", RarityClass.RARE))
        assert registry.count() == 1
        assert registry.get("a").rarity_class == RarityClass.RARE

    def test_empty_item_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            TemplateRegistry().register(GenerationTemplate("", RarityClass.EPIC))

    def test_load_from_json(self, tmp_path) -> None:
        path = tmp_path / "templates.json"
        path.write_text(
            json.dumps(
                [
                    {"item_id": "gen_a", "rarity_class": "EPIC", "name": "A"},
                    {"item_id": "gen_b", "rarity_class": 0, "attributes": {"hp": 3}},
                    {"item_id": "broken", "rarity_class": "MYTHIC"},
                    {"rarity_class": "RARE"},
                ]
            ),
            encoding="utf-8",
        )
        registry = TemplateRegistry()
        assert registry.load_from_json(path) == 2
        assert registry.get("gen_a").rarity_class == RarityClass.EPIC
        assert registry.get("gen_b").attributes == {"hp": 3}
        assert registry.get("broken") is None

    def test_load_seed_file(self) -> None:
        registry = TemplateRegistry()
        assert registry.load_from_json("src/data/seed_templates.json") == 6
        assert len(registry.templates_for(RarityClass.COMMON)) == 2


class TestParseRarityClass:
    def test_names_and_indexes(self) -> None:
        assert parse_rarity_class("legendary") == RarityClass.LEGENDARY
        assert parse_rarity_class("2") == RarityClass.EPIC
        assert parse_rarity_class(1) == RarityClass.RARE

    def test_unknown(self) -> None:
        with pytest.raises(ValueError):
            parse_rarity_class("mythic")
        with pytest.raises(ValueError):
            parse_rarity_class(9)
