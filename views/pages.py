"""
Server-rendered pages.

Public pages are open to anonymous visitors; the /admin and /user routers carry
a router-level page guard, so their handlers receive an already authorized
Session.
"""

from fastapi import APIRouter, Depends, Form, File, UploadFile, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pathlib import Path
from typing import Optional
import logging
import math

import env
from models.users import Session
from services.posts_services import (
    PostValidationError, InvalidObjectIdError, PostNotFoundError,
    list_posts, get_post, create_post, update_post, delete_post, increment_views,
)
from services.comments_services import CommentValidationError, list_comments, add_comment, list_user_comments
from services.users_services import (
    SignupValidationError, EmailAlreadyRegisteredError, InvalidCredentialsError, AuthorizationError,
    register_user, authenticate,
)
from services.stats_services import get_admin_stats
from util.cloudinary_utils import ImageUploadError, image_display_url
from util.dates_utils import relative_time
from util.models_utils import serialize_document
from util.security_utils import create_session_token
from util.session_utils import get_session, require_page_role, set_session_cookie

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
CATEGORY_PAGE_SIZE = 9
ADMIN_PAGE_SIZE = 20
LIFESTYLE_CATEGORIES = {"islam", "education", "entertainment"}


def category_path(category: str) -> str:
    if category in LIFESTYLE_CATEGORIES:
        return f"/lifestyle/{category}"
    return f"/{category}"


def excerpt(text: Optional[str], length: int = 160) -> str:
    text = " ".join((text or "").split())
    if len(text) <= length:
        return text
    return text[:length].rsplit(" ", 1)[0] + "…"


templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["relative_time"] = relative_time
templates.env.filters["image_url"] = image_display_url
templates.env.filters["category_path"] = category_path
templates.env.filters["excerpt"] = excerpt
templates.env.globals["categories"] = env.CATEGORIES

router = APIRouter()
admin_pages = APIRouter(prefix="/admin", dependencies=[Depends(require_page_role("admin"))])
user_pages = APIRouter(prefix="/user", dependencies=[Depends(require_page_role())])


def render(request: Request, template_name: str, session: Optional[Session], status_code: int = 200, **context):
    context["session"] = session
    return templates.TemplateResponse(request, template_name, context, status_code=status_code)


def render_not_found(request: Request, session: Optional[Session], message: str = "Page not found"):
    return render(request, "error.html", session, status_code=404, title="Not found", message=message)


def safe_next_url(next_url: Optional[str]) -> Optional[str]:
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return None


# Public pages

@router.get("/", response_class=HTMLResponse)
async def home_page(request: Request, session: Optional[Session] = Depends(get_session)):
    latest = await run_in_threadpool(list_posts, limit=12)
    return render(request, "index.html", session, posts=serialize_document(latest["posts"]))


def _category_page(category: str):
    async def category_page(
        request: Request,
        page: int = Query(1, ge=1),
        session: Optional[Session] = Depends(get_session),
    ):
        result = await run_in_threadpool(
            list_posts, category=category, limit=CATEGORY_PAGE_SIZE, skip=(page - 1) * CATEGORY_PAGE_SIZE
        )
        return render(
            request, "category.html", session,
            category=category,
            posts=serialize_document(result["posts"]),
            page=page,
            total_pages=max(1, math.ceil(result["total"] / CATEGORY_PAGE_SIZE)),
            has_more=result["hasMore"],
        )
    return category_page


for _category in env.CATEGORIES:
    router.add_api_route(
        category_path(_category),
        _category_page(_category),
        methods=["GET"],
        response_class=HTMLResponse,
        name=f"category_{_category}",
    )


def _post_detail(post_id: str):
    post = get_post(post_id)
    comments = list_comments(post_id)
    related = list_posts(category=post["category"], exclude=post_id, limit=3)["posts"]
    return serialize_document(post), serialize_document(comments), serialize_document(related)


@router.get("/post/{post_id}", response_class=HTMLResponse)
async def post_page(request: Request, post_id: str, session: Optional[Session] = Depends(get_session)):
    try:
        post, comments, related = await run_in_threadpool(_post_detail, post_id)
    except (InvalidObjectIdError, PostNotFoundError):
        return render_not_found(request, session, "Post not found")
    await run_in_threadpool(increment_views, post_id)
    return render(request, "post.html", session, post=post, comments=comments, related=related)


@router.post("/post/{post_id}/comments", response_class=HTMLResponse)
async def post_comment_form(
    request: Request,
    post_id: str,
    userName: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    session: Optional[Session] = Depends(get_session),
):
    try:
        await run_in_threadpool(add_comment, post_id, userName, content, session=session)
    except (InvalidObjectIdError, PostNotFoundError):
        return render_not_found(request, session, "Post not found")
    except CommentValidationError as e:
        try:
            post, comments, related = await run_in_threadpool(_post_detail, post_id)
        except (InvalidObjectIdError, PostNotFoundError):
            return render_not_found(request, session, "Post not found")
        return render(
            request, "post.html", session, status_code=400,
            post=post, comments=comments, related=related, error=str(e),
            form={"userName": userName or "", "content": content or ""},
        )
    return RedirectResponse(f"/post/{post_id}#comments", status_code=303)


@router.get("/search", response_class=HTMLResponse)
async def search_page(request: Request, q: Optional[str] = None, session: Optional[Session] = Depends(get_session)):
    posts, total = [], 0
    if q and q.strip():
        result = await run_in_threadpool(list_posts, search=q, limit=20)
        posts, total = serialize_document(result["posts"]), result["total"]
    return render(request, "search.html", session, query=q or "", posts=posts, total=total)


# Authentication pages

@router.get("/auth/login", response_class=HTMLResponse)
async def login_page(
    request: Request,
    next: Optional[str] = None,
    registered: bool = False,
    session: Optional[Session] = Depends(get_session),
):
    return render(request, "login.html", session, next=safe_next_url(next) or "", registered=registered)


@router.post("/auth/login", response_class=HTMLResponse)
async def login_form(
    request: Request,
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    next: Optional[str] = Form(None),
):
    try:
        session = await run_in_threadpool(authenticate, email, password)
    except InvalidCredentialsError as e:
        return render(request, "login.html", None, status_code=401, error=str(e), email=email or "", next=next or "")
    except AuthorizationError as e:
        return render(request, "login.html", None, status_code=403, error=str(e), email=email or "", next=next or "")

    default_url = "/admin/dashboard" if session.is_admin else "/user/dashboard"
    response = RedirectResponse(safe_next_url(next) or default_url, status_code=303)
    set_session_cookie(response, create_session_token(session))
    return response


@router.get("/auth/signup", response_class=HTMLResponse)
async def signup_page(request: Request, session: Optional[Session] = Depends(get_session)):
    return render(request, "signup.html", session)


@router.post("/auth/signup", response_class=HTMLResponse)
async def signup_form(
    request: Request,
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
):
    try:
        await run_in_threadpool(register_user, name, email, password)
    except SignupValidationError as e:
        return render(request, "signup.html", None, status_code=400, error=str(e), name=name or "", email=email or "")
    except EmailAlreadyRegisteredError as e:
        return render(request, "signup.html", None, status_code=409, error=str(e), name=name or "", email=email or "")
    return RedirectResponse("/auth/login?registered=true", status_code=303)


@router.get("/auth/logout")
async def logout_page():
    response = RedirectResponse("/", status_code=303)
    response.delete_cookie(env.SESSION_COOKIE_NAME)
    return response


# Admin pages

@admin_pages.get("", include_in_schema=False)
async def admin_root():
    return RedirectResponse("/admin/dashboard", status_code=303)


@admin_pages.get("/dashboard", response_class=HTMLResponse)
async def admin_dashboard_page(
    request: Request,
    page: int = Query(1, ge=1),
    session: Session = Depends(get_session),
):
    stats = await run_in_threadpool(get_admin_stats)
    result = await run_in_threadpool(list_posts, limit=ADMIN_PAGE_SIZE, skip=(page - 1) * ADMIN_PAGE_SIZE)
    by_category = stats["postsByCategory"]
    monthly = stats["monthlyPosts"]
    return render(
        request, "admin/dashboard.html", session,
        stats=serialize_document(stats),
        max_category_count=max(by_category.values()) if by_category else 0,
        max_monthly_count=max(m["count"] for m in monthly) if monthly else 0,
        posts=serialize_document(result["posts"]),
        page=page,
        has_more=result["hasMore"],
    )


@admin_pages.get("/posts/create", response_class=HTMLResponse)
async def create_post_page(request: Request, session: Session = Depends(get_session)):
    return render(request, "admin/post_form.html", session, post={}, action="/admin/posts/create")


@admin_pages.post("/posts/create", response_class=HTMLResponse)
async def create_post_form(
    request: Request,
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    session: Session = Depends(get_session),
):
    submitted = {"title": title or "", "content": content or "", "category": category or ""}
    try:
        post = await run_in_threadpool(create_post, title, content, category, image=image, author_id=session.id)
    except PostValidationError as e:
        return render(request, "admin/post_form.html", session, status_code=400,
                      post=submitted, action="/admin/posts/create", error=str(e))
    except ImageUploadError:
        return render(request, "admin/post_form.html", session, status_code=500,
                      post=submitted, action="/admin/posts/create", error="Error uploading image")
    return RedirectResponse(f"/post/{post['_id']}", status_code=303)


@admin_pages.get("/posts/{post_id}/edit", response_class=HTMLResponse)
async def edit_post_page(request: Request, post_id: str, session: Session = Depends(get_session)):
    try:
        post = await run_in_threadpool(get_post, post_id)
    except (InvalidObjectIdError, PostNotFoundError):
        return render_not_found(request, session, "Post not found")
    return render(request, "admin/post_form.html", session,
                  post=serialize_document(post), action=f"/admin/posts/{post_id}/edit")


@admin_pages.post("/posts/{post_id}/edit", response_class=HTMLResponse)
async def edit_post_form(
    request: Request,
    post_id: str,
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    session: Session = Depends(get_session),
):
    action = f"/admin/posts/{post_id}/edit"
    submitted = {"id": post_id, "title": title or "", "content": content or "", "category": category or ""}
    try:
        await run_in_threadpool(update_post, post_id, title, content, category, image=image)
    except (InvalidObjectIdError, PostNotFoundError):
        return render_not_found(request, session, "Post not found")
    except PostValidationError as e:
        return render(request, "admin/post_form.html", session, status_code=400,
                      post=submitted, action=action, error=str(e))
    except ImageUploadError:
        return render(request, "admin/post_form.html", session, status_code=500,
                      post=submitted, action=action, error="Error uploading image")
    return RedirectResponse(f"/post/{post_id}", status_code=303)


@admin_pages.post("/posts/{post_id}/delete")
async def delete_post_form(request: Request, post_id: str, session: Session = Depends(get_session)):
    try:
        await run_in_threadpool(delete_post, post_id)
    except (InvalidObjectIdError, PostNotFoundError):
        return render_not_found(request, session, "Post not found")
    return RedirectResponse("/admin/dashboard", status_code=303)


# User pages

@user_pages.get("/dashboard", response_class=HTMLResponse)
async def user_dashboard_page(request: Request, session: Session = Depends(get_session)):
    latest = await run_in_threadpool(list_posts, limit=6)
    comments = await run_in_threadpool(list_user_comments, session, 5)
    return render(request, "user/dashboard.html", session,
                  posts=serialize_document(latest["posts"]), comments=serialize_document(comments))


@user_pages.get("/posts", response_class=HTMLResponse)
async def user_posts_page(request: Request, session: Session = Depends(get_session)):
    comments = await run_in_threadpool(list_user_comments, session)
    return render(request, "user/posts.html", session, comments=serialize_document(comments))


router.include_router(admin_pages)
router.include_router(user_pages)
