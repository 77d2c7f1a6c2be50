"""
Formula Routes - Catalog listing and token-metered calculation.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from structlog import get_logger

from calculator_api.api.dependencies import get_current_user, get_token_service
from calculator_api.api.token_routes import insufficient_tokens_exception
from calculator_api.exceptions import (
    DataIntegrityError,
    FormulaNotFoundError,
    InsufficientTokensError,
    UnsolvableFormulaError,
    WriteVerificationError,
)
from calculator_api.models.api import (
    CalculateRequest,
    CalculateResponse,
    FormulaCatalogResponse,
    FormulaCategoryItem,
    FormulaItem,
    QuadraticRoots,
    VariableItem,
)
from calculator_api.models.domain import AuthenticatedUser
from calculator_api.observability.metrics import metrics
from calculator_api.services import formulas
from calculator_api.services.tokens import TokenService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/formulas", tags=["formulas"])


@router.get("", response_model=FormulaCatalogResponse, response_model_by_alias=True)
async def get_formula_catalog() -> FormulaCatalogResponse:
    """Get every formula category with its formulas and solvable symbols."""
    return FormulaCatalogResponse(
        categories=[
            FormulaCategoryItem(
                id=category.category_id,
                name=category.name,
                formulas=[
                    FormulaItem(
                        id=formula.formula_id,
                        name=formula.name,
                        equation=formula.equation,
                        variables=[
                            VariableItem(symbol=v.symbol, name=v.name, unit=v.unit)
                            for v in formula.variables
                        ],
                        solvable_for=formula.solvable_for,
                    )
                    for formula in category.formulas
                ],
            )
            for category in formulas.FORMULA_CATEGORIES
        ]
    )


@router.post(
    "/{formula_id}/calculate",
    response_model=CalculateResponse,
    response_model_by_alias=True,
)
async def calculate(
    formula_id: str,
    request: CalculateRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: TokenService = Depends(get_token_service),
) -> CalculateResponse:
    """
    Solve a formula and spend one token.

    The token is only spent when the formula produced a result.
    """
    try:
        result = formulas.solve(formula_id, request.solve_for, request.values)
    except FormulaNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except UnsolvableFormulaError as exc:
        metrics.record_calculation(formula_id, success=False)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.reason) from exc

    try:
        snapshot = await service.use_token(user)
    except InsufficientTokensError as exc:
        raise insufficient_tokens_exception(exc) from exc
    except (WriteVerificationError, DataIntegrityError) as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Token debit failed: {exc}",
        ) from exc

    metrics.record_calculation(formula_id, success=True)
    logger.info(
        "formula_calculated",
        user_id=user.id,
        formula_id=formula_id,
        solve_for=request.solve_for,
        token_count=snapshot.token_count,
    )

    return CalculateResponse(
        formula_id=formula_id,
        solve_for=request.solve_for,
        result=(
            QuadraticRoots(root1=result[0], root2=result[1])
            if isinstance(result, tuple)
            else result
        ),
        token_count=snapshot.token_count,
        is_admin=snapshot.is_admin,
    )
