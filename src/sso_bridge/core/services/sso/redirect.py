"""Post-login redirect construction."""

from urllib.parse import urlencode, urlsplit

from loguru import logger

DEFAULT_REDIRECT_PATH = "/dashboard/billing/plans"
PLAN_SELECTION_STEP = "2"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _host_of(url: str) -> str | None:
    try:
        return urlsplit(url.strip()).hostname
    except ValueError:
        return None


def build_redirect_url(
    base_url: str,
    price: str | None = None,
    billing: str | None = None,
    referrer: str | None = None,
    path: str = DEFAULT_REDIRECT_PATH,
) -> str:
    """Build the plan selection URL on ``base_url``.

    Only ``price`` and ``billing`` are forwarded, trimmed, and dropped when
    empty. ``referrer`` is recorded in the logs and never placed in the URL.
    """
    if referrer:
        logger.bind(referrer_host=_host_of(referrer)).info(
            "SSO redirect requested with referrer"
        )

    params = {}
    for key, value in (("price", price), ("billing", billing)):
        cleaned = _clean(value)
        if cleaned is not None:
            params[key] = cleaned
    params["step"] = PLAN_SELECTION_STEP

    return f"{base_url.rstrip('/')}/{path.lstrip('/')}?{urlencode(params)}"
