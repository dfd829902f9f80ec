"""Loot box API endpoints."""

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from src.api.schemas import (
    AddItemRequest,
    AllocationInfo,
    ApprovalRequest,
    InventoryClassInfo,
    MintBoxesRequest,
    OpenRequest,
    OpenResponse,
    ProbabilityTableRequest,
    ReplaceItemsRequest,
    SeedRequest,
    StatusResponse,
    StockRequest,
    TemplateRequest,
    TierMetadataResponse,
    TierSettingsRequest,
    UnpackRequest,
)
from src.core.logging import get_logger
from src.core.loot.engine import LootBoxEngine
from src.core.loot.errors import (
    InsufficientBoxes,
    InsufficientInventory,
    LootBoxError,
    ReentrantCall,
    SystemPaused,
    TierDisabled,
    Unauthorized,
    UnmintedNotSupported,
)
from src.core.loot.models import AllocationOutcome, GenerationTemplate, RarityClass, Tier

logger = get_logger(__name__)

router = APIRouter(prefix="/lootbox", tags=["lootbox"])

# 예외 → HTTP 상태 코드
ERROR_STATUS: dict[type[LootBoxError], int] = {
    Unauthorized: 403,
    SystemPaused: 423,
    ReentrantCall: 409,
    InsufficientInventory: 409,
    InsufficientBoxes: 409,
    UnmintedNotSupported: 422,
    TierDisabled: 400,
}


def get_lootbox_engine(request: Request) -> LootBoxEngine:
    """LootBoxEngine 인스턴스 반환 (의존성 주입)"""
    engine: LootBoxEngine = request.app.state.lootbox_engine
    return engine


def tier_path(tier: int) -> Tier:
    """경로의 등급 번호 → Tier"""
    try:
        return Tier(tier)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=f"Unknown tier: {tier}") from e


def rarity_class_path(rarity_class: int) -> RarityClass:
    try:
        return RarityClass(rarity_class)
    except ValueError as e:
        raise HTTPException(
            status_code=404, detail=f"Unknown rarity class: {rarity_class}"
        ) from e


def get_caller(x_caller_id: str = Header(..., min_length=1)) -> str:
    """X-Caller-Id 헤더 = 호출자 식별자"""
    return x_caller_id


def _to_http(e: Exception) -> HTTPException:
    if isinstance(e, LootBoxError):
        status = ERROR_STATUS.get(type(e), 400)
        return HTTPException(status_code=status, detail=f"{type(e).__name__}: {e}")
    return HTTPException(status_code=400, detail=str(e))


def _outcome_response(outcome: AllocationOutcome) -> OpenResponse:
    return OpenResponse(
        tier=int(outcome.tier),
        recipient=outcome.recipient,
        quantity=outcome.quantity,
        fulfilled=outcome.fulfilled,
        allocations=[
            AllocationInfo(
                rarity_class=a.rarity_class.name,
                item_id=a.item_id,
                amount=a.amount,
                minted=a.minted,
            )
            for a in outcome.allocations
        ],
    )


# === 조회 ===


@router.get("/tiers", response_model=list[TierMetadataResponse])
def list_tiers(
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> list[TierMetadataResponse]:
    """전체 등급 표시 정보 + 확률표"""
    return [_tier_response(engine, tier) for tier in Tier]


@router.get("/tiers/{tier}", response_model=TierMetadataResponse)
def get_tier(
    tier: Tier = Depends(tier_path),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> TierMetadataResponse:
    """등급 하나의 표시 정보 + 확률표"""
    return _tier_response(engine, tier)


def _tier_response(engine: LootBoxEngine, tier: Tier) -> TierMetadataResponse:
    meta = engine.tier_metadata(tier)
    settings = engine.get_tier_settings(tier)
    return TierMetadataResponse(
        tier=int(meta.tier),
        name=meta.name,
        symbol=meta.symbol,
        uri=meta.uri,
        weights=list(engine.get_table(tier)),
        max_quantity_per_open=settings.max_quantity_per_open,
        guarantees=list(settings.guarantees),
    )


@router.get("/inventory", response_model=list[InventoryClassInfo])
def get_inventory(
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> list[InventoryClassInfo]:
    """등급별 재고/생성 모드 상태"""
    view = engine.inventory_view()
    return [
        InventoryClassInfo(
            rarity_class=cls.name,
            curated=entry.curated,
            item_ids=entry.item_ids,
            templates=[t.item_id for t in engine.templates_for(cls)],
        )
        for cls, entry in view.items()
    ]


# === 관리 ===


@router.put("/admin/tiers/{tier}/probabilities", response_model=StatusResponse)
def set_probability_table(
    request: ProbabilityTableRequest,
    tier: Tier = Depends(tier_path),
    caller: str = Depends(get_caller),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> StatusResponse:
    """확률표 통째 교체. 합계/단조성은 검사하지 않는다."""
    try:
        table = engine.set_probability_table(caller, tier, request.weights)
    except (LootBoxError, ValueError) as e:
        raise _to_http(e) from e
    return StatusResponse(
        success=True, message="Probability table updated", data={"weights": list(table)}
    )


@router.put("/admin/tiers/{tier}/settings", response_model=StatusResponse)
def set_tier_settings(
    request: TierSettingsRequest,
    tier: Tier = Depends(tier_path),
    caller: str = Depends(get_caller),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> StatusResponse:
    try:
        engine.set_tier_settings(
            caller, tier, request.max_quantity_per_open, request.guarantees
        )
    except (LootBoxError, ValueError) as e:
        raise _to_http(e) from e
    return StatusResponse(success=True, message="Tier settings updated")


@router.post("/admin/classes/{rarity_class}/items", response_model=StatusResponse)
def add_item(
    request: AddItemRequest,
    rarity_class: RarityClass = Depends(rarity_class_path),
    caller: str = Depends(get_caller),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> StatusResponse:
    try:
        engine.add_item(caller, rarity_class, request.item_id)
    except LootBoxError as e:
        raise _to_http(e) from e
    return StatusResponse(success=True, message=f"Added {request.item_id}")


@router.put("/admin/classes/{rarity_class}/items", response_model=StatusResponse)
def replace_items(
    request: ReplaceItemsRequest,
    rarity_class: RarityClass = Depends(rarity_class_path),
    caller: str = Depends(get_caller),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> StatusResponse:
    try:
        engine.replace_items(caller, rarity_class, request.item_ids)
    except LootBoxError as e:
        raise _to_http(e) from e
    return StatusResponse(
        success=True, message=f"Replaced with {len(request.item_ids)} items"
    )


@router.delete("/admin/classes/{rarity_class}/items", response_model=StatusResponse)
def reset_class(
    rarity_class: RarityClass = Depends(rarity_class_path),
    caller: str = Depends(get_caller),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> StatusResponse:
    try:
        engine.reset_class(caller, rarity_class)
    except LootBoxError as e:
        raise _to_http(e) from e
    return StatusResponse(success=True, message=f"{rarity_class.name} reset")


@router.post("/admin/templates", response_model=StatusResponse)
def register_template(
    request: TemplateRequest,
    caller: str = Depends(get_caller),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> StatusResponse:
    template = GenerationTemplate(
        item_id=request.item_id,
        rarity_class=request.rarity_class,
        name=request.name,
        attributes=request.attributes,
    )
    try:
        engine.register_template(caller, template)
    except (LootBoxError, ValueError) as e:
        raise _to_http(e) from e
    return StatusResponse(success=True, message=f"Registered {request.item_id}")


@router.put("/admin/seed", response_model=StatusResponse)
def set_seed(
    request: SeedRequest,
    caller: str = Depends(get_caller),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> StatusResponse:
    try:
        engine.set_seed(caller, request.value)
    except LootBoxError as e:
        raise _to_http(e) from e
    return StatusResponse(success=True, message="Seed updated")


@router.post("/admin/pause", response_model=StatusResponse)
def pause(
    caller: str = Depends(get_caller),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> StatusResponse:
    try:
        engine.pause(caller)
    except LootBoxError as e:
        raise _to_http(e) from e
    return StatusResponse(success=True, message="Paused")


@router.post("/admin/unpause", response_model=StatusResponse)
def unpause(
    caller: str = Depends(get_caller),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> StatusResponse:
    try:
        engine.unpause(caller)
    except LootBoxError as e:
        raise _to_http(e) from e
    return StatusResponse(success=True, message="Resumed")


@router.post("/admin/stock", response_model=StatusResponse)
def stock_item(
    request: StockRequest,
    caller: str = Depends(get_caller),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> StatusResponse:
    """보유자 계정에 큐레이션용 재고 적재"""
    try:
        balance = engine.stock_item(caller, request.item_id, request.amount)
    except (LootBoxError, ValueError) as e:
        raise _to_http(e) from e
    return StatusResponse(
        success=True,
        message=f"Stocked {request.amount} x {request.item_id}",
        data={"holder": engine.holder, "balance": balance},
    )


@router.put("/admin/approval", response_model=StatusResponse)
def set_operator_approval(
    request: ApprovalRequest,
    caller: str = Depends(get_caller),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> StatusResponse:
    try:
        engine.set_operator_approval(caller, request.approved)
    except LootBoxError as e:
        raise _to_http(e) from e
    return StatusResponse(
        success=True,
        message="Operator approval updated",
        data={"approved": engine.operator_approved()},
    )


@router.post("/admin/boxes", response_model=StatusResponse)
def mint_boxes(
    request: MintBoxesRequest,
    caller: str = Depends(get_caller),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> StatusResponse:
    try:
        engine.mint_boxes(caller, request.tier, request.recipient, request.quantity)
    except (LootBoxError, ValueError) as e:
        raise _to_http(e) from e
    return StatusResponse(
        success=True, message=f"Minted {request.quantity} boxes to {request.recipient}"
    )


@router.post("/admin/open", response_model=OpenResponse)
def open_boxes(
    request: OpenRequest,
    caller: str = Depends(get_caller),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> OpenResponse:
    """관리자 직접 open (수동 지급)"""
    try:
        outcome = engine.open(caller, request.tier, request.recipient, request.quantity)
    except (LootBoxError, ValueError) as e:
        logger.info("Open rejected for %s: %s", caller, e)
        raise _to_http(e) from e
    return _outcome_response(outcome)


# === 사용자 ===


@router.post("/unpack", response_model=OpenResponse)
def unpack(
    request: UnpackRequest,
    caller: str = Depends(get_caller),
    engine: LootBoxEngine = Depends(get_lootbox_engine),
) -> OpenResponse:
    """보유 박스를 열어 내용물을 호출자에게 지급"""
    try:
        outcome = engine.unpack(caller, request.tier, request.quantity)
    except (LootBoxError, ValueError) as e:
        logger.info("Unpack rejected for %s: %s", caller, e)
        raise _to_http(e) from e
    return _outcome_response(outcome)
