"""루트박스 할당 Core — 순수 Python, DB 무관"""

from .access import AccessControl, PauseGate
from .engine import LootBoxEngine
from .errors import (
    InsufficientBoxes,
    InsufficientInventory,
    LootBoxError,
    ReentrantCall,
    SystemPaused,
    TierDisabled,
    Unauthorized,
    UnmintedNotSupported,
)
from .inventory import InventoryRegistry
from .ledger import InMemoryItemLedger, ItemLedger
from .models import (
    AllocationOutcome,
    GenerationTemplate,
    RarityClass,
    Tier,
    TierMetadata,
    TierSettings,
)
from .probability import ProbabilityTableRegistry, draw_class
from .randomness import HashRandomness, RandomnessSource, SequenceRandomness
from .templates import TemplateRegistry

__all__ = [
    "AccessControl",
    "AllocationOutcome",
    "GenerationTemplate",
    "HashRandomness",
    "InMemoryItemLedger",
    "InsufficientBoxes",
    "InsufficientInventory",
    "InventoryRegistry",
    "ItemLedger",
    "LootBoxEngine",
    "LootBoxError",
    "PauseGate",
    "ProbabilityTableRegistry",
    "RandomnessSource",
    "RarityClass",
    "ReentrantCall",
    "SequenceRandomness",
    "SystemPaused",
    "TemplateRegistry",
    "Tier",
    "TierDisabled",
    "TierMetadata",
    "TierSettings",
    "Unauthorized",
    "UnmintedNotSupported",
    "draw_class",
]
