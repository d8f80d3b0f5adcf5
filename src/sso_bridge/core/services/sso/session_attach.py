from starlette.responses import Response

from src.sso_bridge.core.services.sso.errors import ErrorKind, SsoError


def attach_session(response: Response, set_cookie_headers: list[str]) -> Response:
    """Copy the session artifact onto ``response`` without altering it.

    Raises:
        SsoError: ``server_error`` when there is no artifact to attach
    """
    if not set_cookie_headers:
        raise SsoError(ErrorKind.SERVER_ERROR, "sign-in returned no session cookie")

    for header in set_cookie_headers:
        response.headers.append("set-cookie", header)
    return response
