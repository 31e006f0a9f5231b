"""
Stateless handlers: the root path, echo and user-agent.

    GET /              → 200, empty body
    GET /echo/{str}    → 200, text/plain, the decoded segment
    GET /user-agent    → 200, text/plain, the User-Agent header
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok


TEXT_PLAIN = "text/plain"


def root(request: HTTPRequest) -> HTTPResponse:
    return ok()


def echo(request: HTTPRequest) -> HTTPResponse:
    """
    Echo the {str} segment back.

    The router has already percent-decoded it, so
    /echo/%E3%81%93 comes back as the UTF-8 bytes of "こ".
    """
    return ok(request.path_params.get("str", ""), TEXT_PLAIN)


def user_agent(request: HTTPRequest) -> HTTPResponse:
    return ok(request.user_agent, TEXT_PLAIN)
