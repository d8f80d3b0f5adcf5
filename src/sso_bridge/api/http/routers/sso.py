"""Cross-system SSO entry point.

The partner application sends users here with a signed token. A successful
exchange answers with a redirect to plan selection carrying a fresh session
cookie; failures answer with a JSON error body.
"""

from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from loguru import logger
from starlette.responses import Response

from src.sso_bridge.api.http.deps import get_sso_exchange_service
from src.sso_bridge.core.services.sso.exchange import (
    SsoExchangeService,
    SsoOutcome,
    SsoRequest,
)
from src.sso_bridge.core.services.sso.session_attach import attach_session

router = APIRouter(tags=["sso"])

TOKEN_PARAM = "supabase_jwt"


def _wants_json(request: Request) -> bool:
    return "application/json" in request.headers.get("accept", "").lower()


def _success_response(request: Request, outcome: SsoOutcome) -> Response:
    if _wants_json(request):
        response: Response = JSONResponse(
            {
                "success": True,
                "redirect_url": outcome.redirect_url,
                "session_created": outcome.session_created,
            }
        )
    else:
        response = RedirectResponse(
            outcome.redirect_url, status_code=status.HTTP_302_FOUND
        )

    if outcome.session_created:
        attach_session(response, outcome.set_cookie_headers)
    return response


@router.get("/sso", name="sso_exchange")
async def sso_exchange(
    request: Request,
    supabase_jwt: str | None = Query(default=None),
    product: str | None = Query(default=None),
    price: str | None = Query(default=None),
    billing: str | None = Query(default=None),
    referrer: str | None = Query(default=None),
    exchange_service: SsoExchangeService = Depends(get_sso_exchange_service),
) -> Response:
    """Exchange a partner token for a local session and redirect to plan selection.

    Query parameters:
    - supabase_jwt: signed token issued by the partner
    - price, billing: forwarded to plan selection when non-empty
    - product: accepted for logging only
    - referrer: accepted for logging only, never forwarded
    """
    if product:
        logger.bind(product=product).debug("SSO request for product")

    outcome = await exchange_service.exchange(
        request,
        SsoRequest(
            token=supabase_jwt,
            product=product,
            price=price,
            billing=billing,
            referrer=referrer,
        ),
        base_url=str(request.base_url),
    )
    return _success_response(request, outcome)


@router.post("/sso")
async def sso_form_post(
    request: Request,
    supabase_jwt: str | None = Form(default=None),
    product: str | None = Form(default=None),
    price: str | None = Form(default=None),
    billing: str | None = Form(default=None),
    referrer: str | None = Form(default=None),
) -> RedirectResponse:
    """Accept a form post and replay it as a GET on the exchange route."""
    params = {
        TOKEN_PARAM: supabase_jwt,
        "product": product,
        "price": price,
        "billing": billing,
        "referrer": referrer,
    }
    query = urlencode({k: v for k, v in params.items() if v is not None})
    target = request.url_for("sso_exchange").path
    if query:
        target = f"{target}?{query}"
    return RedirectResponse(target, status_code=status.HTTP_302_FOUND)
