import logging
from typing import Optional

import pydantic
from fastapi import Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.exc import SQLAlchemyError

from notes_backend import config, notes, queries, users
from notes_backend.context import TOKEN_COOKIE, RequestContext, get_context, require_context
from notes_backend.errors import (
    DuplicateIdentity,
    InvalidCredentials,
    InvalidToken,
    NotFound,
    StoreUnavailable,
    ValidationError,
)
from notes_backend.media import LocalMediaStore, MediaStore, has_file
from notes_backend.security import issue_token
from notes_database.db import get_db

logger = logging.getLogger(__name__)


# Pydantic models for form validation

class RegisterForm(BaseModel):
    username: str = Field(..., min_length=3, max_length=64, description="User's username")
    email: EmailStr
    password: str = Field(..., min_length=5, max_length=256)
    age: int = Field(..., ge=0, le=150)


class LoginForm(BaseModel):
    # normalized the same way as at registration, so lookups match the stored address
    email: EmailStr
    password: str = Field(..., min_length=1)


app = FastAPI(
    title="Personal Notes",
    description="Register, log in, and keep private notes with optional images.",
    version="1.0.0",
)

# uploads are written to and served from the same directory
config.MEDIA_DIR.mkdir(parents=True, exist_ok=True)
app.mount(
    config.MEDIA_URL_PREFIX,
    StaticFiles(directory=str(config.MEDIA_DIR)),
    name="uploads",
)


# PUBLIC_INTERFACE
def get_media_store() -> MediaStore:
    """Dependency returning the store that keeps uploaded media."""
    return LocalMediaStore(config.MEDIA_DIR)


def _parse_note_id(raw: str) -> int:
    # a malformed id is indistinguishable from a note that isn't yours
    try:
        return int(raw)
    except ValueError:
        raise NotFound("Note not found")


def _login_response(ctx: RequestContext, user, message: str):
    ctx.flash("success", message)
    response = ctx.redirect("/")
    response.set_cookie(
        TOKEN_COOKIE,
        issue_token(user.email, user.id),
        httponly=True,
        samesite="lax",
        max_age=config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return response


def _first_error(exc: pydantic.ValidationError) -> str:
    err = exc.errors()[0]
    field_name = err["loc"][-1] if err.get("loc") else "form"
    return f"Invalid {field_name}: {err['msg']}"


# Root Health Check
@app.get("/health", summary="Health Check", tags=["General"])
def health_check():
    """Simple health check endpoint."""
    return {"message": "Healthy"}


#####################
# AUTH ENDPOINTS
#####################

@app.get("/register", response_class=HTMLResponse, tags=["Authentication"])
def register_page(ctx: RequestContext = Depends(get_context)):
    return ctx.render("register.html")


# PUBLIC_INTERFACE
@app.post("/register", tags=["Authentication"])
def register(
    username: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    age: Optional[str] = Form(None),
    ctx: RequestContext = Depends(get_context),
    db=Depends(get_db),
):
    """
    Register a new user, log them in, and go to the listing.
    Duplicates and invalid input go back to the form with an error.
    """
    try:
        form = RegisterForm(username=username, email=email, password=password, age=age)
    except pydantic.ValidationError as exc:
        ctx.flash("error", _first_error(exc))
        return ctx.redirect("/register")

    try:
        user = users.register(db, form.username, form.email, form.password, form.age)
    except DuplicateIdentity as exc:
        ctx.flash("error", str(exc))
        return ctx.redirect("/register")
    return _login_response(ctx, user, "Registered successfully")


@app.get("/login", response_class=HTMLResponse, tags=["Authentication"])
def login_page(ctx: RequestContext = Depends(get_context)):
    return ctx.render("login.html")


# PUBLIC_INTERFACE
@app.post("/login", tags=["Authentication"])
def login(
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    ctx: RequestContext = Depends(get_context),
    db=Depends(get_db),
):
    """User login. Any failure produces the same generic message."""
    try:
        form = LoginForm(email=email, password=password)
        user = users.authenticate(db, form.email, form.password)
    except (pydantic.ValidationError, InvalidCredentials):
        ctx.flash("error", str(InvalidCredentials()))
        return ctx.redirect("/login")
    return _login_response(ctx, user, "Logged in successfully")


@app.get("/logout", tags=["Authentication"])
def logout(ctx: RequestContext = Depends(get_context)):
    ctx.flash("success", "Logged out successfully")
    response = ctx.redirect("/login")
    response.delete_cookie(TOKEN_COOKIE)
    return response


#####################
# NOTES ENDPOINTS
#####################

# PUBLIC_INTERFACE
@app.get("/", response_class=HTMLResponse, tags=["Notes"])
def index(
    page: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Search term for note title or content"),
    ctx: RequestContext = Depends(get_context),
    db=Depends(get_db),
):
    """
    List the caller's notes, five per page.
    Anonymous visitors see an empty listing.
    """
    params = queries.ListParams.from_query(page=page, sort=sort, search=search)
    result = queries.list_notes(db, ctx.user_id, params)
    return ctx.render("index.html", page=result)


# PUBLIC_INTERFACE
@app.post("/notes", tags=["Notes"])
def create_note(
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    media: Optional[UploadFile] = File(None),
    ctx: RequestContext = Depends(require_context),
    db=Depends(get_db),
    media_store: MediaStore = Depends(get_media_store),
):
    """Create a note for the logged-in user, optionally with one image."""
    if not title or not title.strip() or not content or not content.strip():
        ctx.flash("error", "Title and content are required")
        return ctx.redirect("/")

    try:
        media_ref = media_store.save(media) if has_file(media) else None
    except ValidationError as exc:
        ctx.flash("error", str(exc))
        return ctx.redirect("/")

    try:
        notes.create_note(db, ctx.user_id, title, content, media_ref)
    except Exception:
        if media_ref:
            media_store.delete(media_ref)
        raise
    ctx.flash("success", "Note created successfully")
    return ctx.redirect("/")


# PUBLIC_INTERFACE
@app.get("/notes/{note_id}", response_class=HTMLResponse, tags=["Notes"])
def show_note(note_id: str, ctx: RequestContext = Depends(require_context), db=Depends(get_db)):
    """Show one note if it belongs to the caller."""
    try:
        note = notes.get_note(db, _parse_note_id(note_id), ctx.user_id)
    except NotFound:
        ctx.flash("error", "Note not found or unauthorized")
        return ctx.redirect("/")
    return ctx.render("show.html", note=note)


# PUBLIC_INTERFACE
@app.post("/delete/{note_id}", tags=["Notes"])
def delete_note(
    note_id: str,
    ctx: RequestContext = Depends(require_context),
    db=Depends(get_db),
    media_store: MediaStore = Depends(get_media_store),
):
    """Delete a note belonging to the caller, along with its stored media."""
    try:
        note = notes.delete_note(db, _parse_note_id(note_id), ctx.user_id)
    except NotFound:
        ctx.flash("error", "Note not found")
        return ctx.redirect("/")
    if note.media:
        media_store.delete(note.media)
    ctx.flash("success", "Note deleted")
    return ctx.redirect("/")


#####################
# ERROR HANDLERS
#####################

@app.exception_handler(InvalidToken)
def invalid_token_handler(request: Request, exc: InvalidToken):
    ctx = RequestContext(request=request)
    ctx.flash("error", str(exc))
    response = ctx.redirect("/login")
    if request.cookies.get(TOKEN_COOKIE):
        response.delete_cookie(TOKEN_COOKIE)
    return response


@app.exception_handler(StoreUnavailable)
@app.exception_handler(SQLAlchemyError)
def store_error_handler(request: Request, exc: Exception):
    logger.exception("Store failure on %s %s", request.method, request.url.path, exc_info=exc)
    return HTMLResponse("Internal server error", status_code=500)
