"""API request/response schemas."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from src.core.loot.models import RarityClass, Tier


# === Request Schemas ===


class ProbabilityTableRequest(BaseModel):
    """확률표 교체 요청 (basis point, COMMON→LEGENDARY)"""

    weights: list[int] = Field(..., min_length=4, max_length=4)


class TierSettingsRequest(BaseModel):
    """등급 지급 규칙 요청"""

    max_quantity_per_open: int = Field(..., ge=0)
    guarantees: Optional[list[int]] = Field(default=None, min_length=4, max_length=4)


class AddItemRequest(BaseModel):
    """큐레이션 재고 추가"""

    item_id: str = Field(..., min_length=1)


class ReplaceItemsRequest(BaseModel):
    """큐레이션 재고 통째 교체 (빈 목록 허용)"""

    item_ids: list[str] = Field(default_factory=list)


class TemplateRequest(BaseModel):
    """생성 템플릿 등록"""

    item_id: str = Field(..., min_length=1)
    rarity_class: RarityClass
    name: str = ""
    attributes: dict[str, Any] = Field(default_factory=dict)


class SeedRequest(BaseModel):
    """시드 교체"""

    value: int = Field(..., ge=0)


class OpenRequest(BaseModel):
    """관리자 직접 open"""

    tier: Tier
    recipient: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)


class UnpackRequest(BaseModel):
    """보유 박스 소모 open"""

    tier: Tier
    quantity: int = Field(..., ge=1)


class StockRequest(BaseModel):
    """보유자 재고 적재"""

    item_id: str = Field(..., min_length=1)
    amount: int = Field(..., ge=1)


class ApprovalRequest(BaseModel):
    """엔진 운영자 승인 설정"""

    approved: bool = True


class MintBoxesRequest(BaseModel):
    """박스 토큰 지급"""

    tier: Tier
    recipient: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)


# === Response Schemas ===


class TierMetadataResponse(BaseModel):
    """등급 표시 정보"""

    tier: int
    name: str
    symbol: str
    uri: str
    weights: list[int]
    max_quantity_per_open: int
    guarantees: list[int]


class InventoryClassInfo(BaseModel):
    """등급별 재고 상태"""

    rarity_class: str
    curated: bool
    item_ids: list[str] = []
    templates: list[str] = []


class AllocationInfo(BaseModel):
    """단위 지급 1건"""

    rarity_class: str
    item_id: str
    amount: int
    minted: bool


class OpenResponse(BaseModel):
    """open/unpack 결과"""

    tier: int
    recipient: str
    quantity: int
    fulfilled: int
    allocations: list[AllocationInfo] = []


class StatusResponse(BaseModel):
    """단순 결과"""

    success: bool
    message: str
    data: Optional[dict[str, Any]] = None
