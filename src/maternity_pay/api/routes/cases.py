"""Maternity case API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, Query, Response, status

from maternity_pay.api.dependencies import Actor, CaseService, ExpectedVersion
from maternity_pay.api.schemas import (
    ActualReturnRequest,
    AllocationResponse,
    ArchiveRequest,
    AuditEventResponse,
    CaseCreate,
    CaseCreateResponse,
    CaseListResponse,
    CaseResponse,
    CaseUpdate,
    ErrorResponse,
    MonthGroupResponse,
    PeriodAmountsUpdate,
    PeriodDetailResponse,
    PeriodResponse,
    PeriodStatusRequest,
    RecalculationResponse,
    WarningResponse,
)
from maternity_pay.models import MaternityCase
from maternity_pay.services.projections import period_detail
from maternity_pay.services.validation import CaseDetails

router = APIRouter(prefix="/cases", tags=["cases"])

CaseId = Annotated[str, Path()]


def _case_response(case: MaternityCase, response: Response) -> CaseResponse:
    """Serialize a case and expose its version as an ETag."""
    response.headers["ETag"] = f'"{case.version}"'
    return CaseResponse.model_validate(case)


# ============================================================================
# Case CRUD
# ============================================================================


@router.post(
    "",
    response_model=CaseCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_case(
    service: CaseService,
    actor: Actor,
    payload: CaseCreate,
    response: Response,
) -> CaseCreateResponse:
    """Open a case, generate its periods and allocate CMP."""
    result = await service.create_case(CaseDetails(**payload.model_dump()), actor)
    await service.commit()
    return CaseCreateResponse(
        case=_case_response(result.case, response),
        warnings=[WarningResponse(code=w.code, message=w.message) for w in result.warnings],
        needs_attention=result.needs_attention,
    )


@router.get("", response_model=CaseListResponse)
async def list_cases(
    service: CaseService,
    include_archived: Annotated[bool, Query()] = False,
) -> CaseListResponse:
    """List cases, active only unless include_archived is set."""
    cases = await service.list_cases(include_archived=include_archived)
    return CaseListResponse(
        items=[CaseResponse.model_validate(c) for c in cases],
        total=len(cases),
    )


@router.get(
    "/{case_id}",
    response_model=CaseResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_case(service: CaseService, case_id: CaseId, response: Response) -> CaseResponse:
    case = await service.get_case(case_id)
    return _case_response(case, response)


@router.patch(
    "/{case_id}",
    response_model=CaseResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def update_case(
    service: CaseService,
    actor: Actor,
    expected_version: ExpectedVersion,
    case_id: CaseId,
    payload: CaseUpdate,
    response: Response,
) -> CaseResponse:
    """Update case fields; date changes regenerate the period ledger."""
    case = await service.update_case(
        case_id, payload.model_dump(exclude_unset=True), actor, expected_version
    )
    await service.commit()
    return _case_response(case, response)


@router.put(
    "/{case_id}/actual-return",
    response_model=CaseResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def set_actual_return(
    service: CaseService,
    actor: Actor,
    expected_version: ExpectedVersion,
    case_id: CaseId,
    payload: ActualReturnRequest,
    response: Response,
) -> CaseResponse:
    case = await service.set_actual_return_date(
        case_id, payload.actual_return_date, actor, expected_version
    )
    await service.commit()
    return _case_response(case, response)


@router.post(
    "/{case_id}/archive",
    response_model=CaseResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def archive_case(
    service: CaseService,
    actor: Actor,
    expected_version: ExpectedVersion,
    case_id: CaseId,
    payload: ArchiveRequest,
    response: Response,
) -> CaseResponse:
    case = await service.archive_case(case_id, payload.reason, actor, expected_version)
    await service.commit()
    return _case_response(case, response)


@router.post(
    "/{case_id}/recalculate",
    response_model=RecalculationResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def recalculate(
    service: CaseService,
    actor: Actor,
    expected_version: ExpectedVersion,
    case_id: CaseId,
) -> RecalculationResponse:
    """Force a CMP reallocation over the case's current ledger."""
    result = await service.recalculate_cmp(case_id, actor, expected_version)
    await service.commit()
    return RecalculationResponse(
        case_id=case_id,
        target_weekly_amount=result.target_weekly_amount,
        entitlement_weeks=result.entitlement_weeks,
        weeks_consumed=result.weeks_consumed,
        remaining_weeks=result.remaining_weeks,
        total_cmp=result.total_cmp,
        allocations=[
            AllocationResponse(
                period_number=a.period_number,
                weeks_in_period=a.weeks_in_period,
                weeks_applied=a.weeks_applied,
                company_amount=a.company_amount,
                note=a.note.value,
            )
            for a in result.allocations
        ],
    )


@router.get(
    "/{case_id}/audit",
    response_model=list[AuditEventResponse],
    responses={404: {"model": ErrorResponse}},
)
async def audit_trail(service: CaseService, case_id: CaseId) -> list[AuditEventResponse]:
    events = await service.audit_trail(case_id)
    return [AuditEventResponse.model_validate(e) for e in events]


# ============================================================================
# Periods
# ============================================================================


@router.get(
    "/{case_id}/periods",
    response_model=PeriodDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_periods(service: CaseService, case_id: CaseId) -> PeriodDetailResponse:
    """Period detail grouped by calendar month."""
    case = await service.get_case(case_id)
    return PeriodDetailResponse(
        case_id=case.case_id,
        months=[
            MonthGroupResponse(
                month=group.month,
                smp_total=group.smp_total,
                cmp_total=group.cmp_total,
                holiday_total=group.holiday_total,
                periods=[PeriodResponse.model_validate(p) for p in group.periods],
            )
            for group in period_detail(case)
        ],
    )


@router.patch(
    "/{case_id}/periods/{period_id}",
    response_model=CaseResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def update_period_amounts(
    service: CaseService,
    actor: Actor,
    expected_version: ExpectedVersion,
    case_id: CaseId,
    period_id: Annotated[str, Path()],
    payload: PeriodAmountsUpdate,
    response: Response,
) -> CaseResponse:
    """Enter amounts for a period; SMP changes reallocate CMP."""
    case = await service.update_period_amounts(
        case_id, period_id, payload.model_dump(exclude_unset=True), actor, expected_version
    )
    await service.commit()
    return _case_response(case, response)


@router.put(
    "/{case_id}/periods/{period_id}/status",
    response_model=CaseResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def set_period_status(
    service: CaseService,
    actor: Actor,
    expected_version: ExpectedVersion,
    case_id: CaseId,
    period_id: Annotated[str, Path()],
    payload: PeriodStatusRequest,
    response: Response,
) -> CaseResponse:
    case = await service.set_period_status(
        case_id, period_id, payload.status, actor, expected_version
    )
    await service.commit()
    return _case_response(case, response)
