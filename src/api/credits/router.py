"""Credits domain router."""

from uuid import UUID

from fastapi import APIRouter, Query

from src.api.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from src.api.core.dependencies import CreditLedgerServiceDep, InternalKeyDep
from src.api.core.messages import APIResponse, MessageCode, Paginated, PaginationInfo
from src.modules.ledger.types import BurnMetadata
from src.modules.pricing.calculator import (
    CostBreakdown,
    cost_breakdown,
    compute_cost_for_text,
)
from src.modules.pricing.registry import ModelDefinition, list_models
from .schemas import (
    BalanceCheckModel,
    BalanceCheckRequest,
    BalanceCheckResponse,
    CalculateCostRequest,
    ChargeRequest,
    ChargeResponse,
    ChargeResultModel,
    CostBreakdownModel,
    CostBreakdownResponse,
    CreatorEarningsModel,
    CreatorEarningsResponse,
    CreditBalanceModel,
    CreditBalanceResponse,
    CreditTransactionModel,
    GrantRequest,
    GrantResponse,
    GrantResultModel,
    ItemEarningsModel,
    ModelCostModel,
    ModelInfoModel,
    ModelListResponse,
    TransactionHistoryResponse,
)

router = APIRouter(tags=["credits"], dependencies=[InternalKeyDep])


def _model_info(model: ModelDefinition) -> ModelInfoModel:
    return ModelInfoModel(
        id=model.id,
        provider=model.provider.value,
        name=model.name,
        display_name=model.display_name,
        input_type=model.input_type.value,
        output_type=model.output_type.value,
        description=model.description,
        cost=ModelCostModel(
            short=model.cost.short, medium=model.cost.medium, long=model.cost.long
        ),
    )


def _price(
    model_id: str,
    prompt_length,
    text: str | None,
    system_prompt: str | None,
    creator_fee_percent,
) -> CostBreakdown:
    if prompt_length is not None:
        return cost_breakdown(model_id, prompt_length, creator_fee_percent)
    if text is not None:
        return compute_cost_for_text(model_id, text, system_prompt, creator_fee_percent)
    raise ValueError("Either prompt_length or text is required to price a run")


def _breakdown_model(breakdown: CostBreakdown) -> CostBreakdownModel:
    return CostBreakdownModel(
        model_id=breakdown.model_id,
        prompt_length=breakdown.prompt_length,
        base_cost=breakdown.base_cost,
        creator_fee=breakdown.creator_fee,
        total_cost=breakdown.total_cost,
        usd_cost=breakdown.usd_cost,
        runs_per_dollar=breakdown.runs_per_dollar,
    )


@router.get("/credits/models", response_model=ModelListResponse)
async def get_models(available_only: bool = True) -> ModelListResponse:
    """List priced models from the registry."""
    models = [_model_info(model) for model in list_models(available_only)]
    return APIResponse.success(message_code=MessageCode.SUCCESS, data=models)


@router.post("/credits/calculate-cost", response_model=CostBreakdownResponse)
async def calculate_cost(request: CalculateCostRequest) -> CostBreakdownResponse:
    """Price a run without charging for it."""
    breakdown = _price(
        request.model_id,
        request.prompt_length,
        request.text,
        request.system_prompt,
        request.creator_fee_percent,
    )
    return APIResponse.success(
        message_code=MessageCode.SUCCESS, data=_breakdown_model(breakdown)
    )


@router.get("/users/{user_id}/credits/balance", response_model=CreditBalanceResponse)
async def get_balance(
    user_id: UUID, ledger: CreditLedgerServiceDep
) -> CreditBalanceResponse:
    breakdown = await ledger.get_credit_breakdown(user_id)
    balance = CreditBalanceModel(
        user_id=user_id,
        balance=breakdown.pop("total"),
        **breakdown,
    )
    return APIResponse.success(message_code=MessageCode.SUCCESS, data=balance)


@router.post("/users/{user_id}/credits/check", response_model=BalanceCheckResponse)
async def check_balance(
    user_id: UUID, request: BalanceCheckRequest, ledger: CreditLedgerServiceDep
) -> BalanceCheckResponse:
    result = BalanceCheckModel(
        user_id=user_id,
        amount=request.amount,
        balance=await ledger.get_balance(user_id),
        sufficient=await ledger.has_sufficient_balance(user_id, request.amount),
    )
    return APIResponse.success(message_code=MessageCode.SUCCESS, data=result)


@router.post("/users/{user_id}/credits/charge", response_model=ChargeResponse)
async def charge_credits(
    user_id: UUID, request: ChargeRequest, ledger: CreditLedgerServiceDep
) -> ChargeResponse:
    """Price a run and burn its credits. Answers 402 when the balance is short."""
    breakdown = _price(
        request.model_id,
        request.prompt_length,
        request.text,
        request.system_prompt,
        request.creator_fee_percent,
    )
    transaction = await ledger.burn(
        user_id,
        breakdown.total_cost,
        BurnMetadata(
            model_id=breakdown.model_id,
            item_type=request.item_type,
            item_id=request.item_id,
            source=request.source,
            creator_id=request.creator_id,
            creator_fee_percent=request.creator_fee_percent,
            prompt_length=breakdown.prompt_length,
        ),
    )
    result = ChargeResultModel(
        transaction_id=transaction.id,
        credits_charged=breakdown.total_cost,
        base_cost=breakdown.base_cost,
        creator_fee=breakdown.creator_fee,
        prompt_length=breakdown.prompt_length,
        balance=await ledger.get_balance(user_id),
    )
    return APIResponse.success(message_code=MessageCode.CREDITS_BURNED, data=result)


@router.post("/users/{user_id}/credits/grants", response_model=GrantResponse)
async def grant_credits(
    user_id: UUID, request: GrantRequest, ledger: CreditLedgerServiceDep
) -> GrantResponse:
    """Idempotent grant: replaying a provenance returns the original bucket."""
    bucket_id = await ledger.add_credits(
        user_id=user_id,
        amount=request.amount,
        source=request.source,
        provenance=request.provenance,
        expiry_days=request.expiry_days,
        description=request.description,
    )
    result = GrantResultModel(
        bucket_id=bucket_id, balance=await ledger.get_balance(user_id)
    )
    return APIResponse.success(message_code=MessageCode.CREDITS_GRANTED, data=result)


@router.get(
    "/users/{user_id}/credits/transactions", response_model=TransactionHistoryResponse
)
async def get_transactions(
    user_id: UUID,
    ledger: CreditLedgerServiceDep,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
) -> TransactionHistoryResponse:
    transactions, total = await ledger.get_transaction_history(user_id, limit, offset)
    items = [CreditTransactionModel.model_validate(tx) for tx in transactions]
    pagination_info = PaginationInfo(
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(items) < total,
    )
    paginated_data = Paginated[CreditTransactionModel](
        items=items, pagination=pagination_info
    )
    return APIResponse.success(message_code=MessageCode.SUCCESS, data=paginated_data)


@router.get("/users/{user_id}/credits/earnings", response_model=CreatorEarningsResponse)
async def get_creator_earnings(
    user_id: UUID, ledger: CreditLedgerServiceDep
) -> CreatorEarningsResponse:
    """Creator payments received for runs of the user's prompts and flows."""
    earnings = await ledger.get_creator_earnings(user_id)
    result = CreatorEarningsModel(
        user_id=user_id,
        today=earnings.today,
        this_week=earnings.this_week,
        this_month=earnings.this_month,
        all_time=earnings.all_time,
        pending_payout=earnings.pending_payout,
        total_users=earnings.total_users,
        by_item=[ItemEarningsModel.model_validate(item) for item in earnings.by_item],
    )
    return APIResponse.success(message_code=MessageCode.SUCCESS, data=result)
