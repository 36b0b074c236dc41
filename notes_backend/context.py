"""
Per-request context: the caller's identity and flash messages.

Flash messages queued while handling one request are carried to the next in
a short-lived signed ``flash`` cookie and removed once a page renders them.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from fastapi import Depends, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates
from jose import JWTError, jwt

from notes_backend import config
from notes_backend.errors import InvalidToken
from notes_backend.formatting import format_date, format_time
from notes_backend.security import TokenClaims, verify_token

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"
FLASH_COOKIE = "flash"

templates = Jinja2Templates(directory=str(config.TEMPLATES_DIR))
templates.env.filters["format_date"] = format_date
templates.env.filters["format_time"] = format_time


def encode_flashes(messages: List[Tuple[str, str]]) -> str:
    expire = datetime.now(timezone.utc) + timedelta(seconds=config.FLASH_EXPIRE_SECONDS)
    payload = {"messages": [list(m) for m in messages], "exp": expire}
    return jwt.encode(payload, config.SECRET_KEY, algorithm=config.ALGORITHM)


def decode_flashes(raw: Optional[str]) -> Dict[str, List[str]]:
    """Group flash messages by category. A bad or stale cookie yields no messages."""
    if not raw:
        return {}
    try:
        payload = jwt.decode(raw, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        return {}
    grouped: Dict[str, List[str]] = {}
    for item in payload.get("messages", []):
        if isinstance(item, list) and len(item) == 2:
            grouped.setdefault(str(item[0]), []).append(str(item[1]))
    return grouped


@dataclass
class RequestContext:
    request: Request
    user: Optional[TokenClaims] = None
    token_present: bool = False
    messages: Dict[str, List[str]] = field(default_factory=dict)
    pending: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def user_id(self) -> Optional[int]:
        return self.user.user_id if self.user else None

    def flash(self, category: str, message: str) -> None:
        self.pending.append((category, message))

    def redirect(self, url: str) -> RedirectResponse:
        """303 redirect carrying any queued flash messages."""
        response = RedirectResponse(url, status_code=303)
        if self.pending:
            response.set_cookie(FLASH_COOKIE, encode_flashes(self.pending), httponly=True, samesite="lax",
                                max_age=config.FLASH_EXPIRE_SECONDS)
        elif self.messages:
            response.delete_cookie(FLASH_COOKIE)
        return response

    def render(self, name: str, status_code: int = 200, **extra):
        context = {"user": self.user, "messages": self.messages}
        context.update(extra)
        response = templates.TemplateResponse(self.request, name, context, status_code=status_code)
        if self.messages:
            response.delete_cookie(FLASH_COOKIE)
        return response


# PUBLIC_INTERFACE
def optional_identity(request: Request) -> Optional[TokenClaims]:
    """Claims from the token cookie, or None for anonymous or invalid tokens."""
    try:
        return verify_token(request.cookies.get(TOKEN_COOKIE))
    except InvalidToken:
        return None


# PUBLIC_INTERFACE
def get_context(request: Request) -> RequestContext:
    """FastAPI dependency building the context for this request."""
    return RequestContext(
        request=request,
        user=optional_identity(request),
        token_present=bool(request.cookies.get(TOKEN_COOKIE)),
        messages=decode_flashes(request.cookies.get(FLASH_COOKIE)),
    )


# PUBLIC_INTERFACE
def require_context(ctx: RequestContext = Depends(get_context)) -> RequestContext:
    """Like get_context, but raises InvalidToken when nobody is logged in."""
    if ctx.user is None:
        if ctx.token_present:
            logger.info("Rejected invalid token on %s", ctx.request.url.path)
            raise InvalidToken("Invalid token.")
        raise InvalidToken("You must be logged in.")
    return ctx
