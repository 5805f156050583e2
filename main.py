from fastapi import FastAPI, APIRouter, HTTPException, Depends, Form, File, UploadFile, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Optional
from pathlib import Path
from urllib.parse import quote

import logging
import os
import sys
import traceback

import env
from models.users import LoginRequest, SignupRequest, Session, Token
from models.comments import CommentRequest
from services.posts_services import (
    PostValidationError, InvalidObjectIdError, PostNotFoundError,
    list_posts, get_post, create_post, update_post, delete_post, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE,
)
from services.comments_services import CommentValidationError, list_comments, add_comment
from services.users_services import (
    SignupValidationError, EmailAlreadyRegisteredError, InvalidCredentialsError, AuthorizationError,
    register_user, authenticate,
)
from services.stats_services import get_admin_stats
from util.cloudinary_utils import ImageUploadError
from util.logs_utils import _log_collections_summary
from util.models_utils import serialize_document
from util.mongodb_utils import get_mongo_client
from util.security_utils import create_session_token
from util.session_utils import LoginRequired, get_session, require_role, set_session_cookie
from scripts.create_mongodb_indexes import create_all_indexes
from views.pages import router as pages_router


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(stream=sys.stdout)  # Force logs to stdout instead of stderr
    ]
)
logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

app = FastAPI(title="NewsHub")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")

# Domain errors raised by the services, mapped to HTTP statuses
ERROR_STATUS = {
    PostValidationError: 400,
    InvalidObjectIdError: 400,
    CommentValidationError: 400,
    SignupValidationError: 400,
    PostNotFoundError: 404,
    EmailAlreadyRegisteredError: 409,
    InvalidCredentialsError: 401,
    AuthorizationError: 403,
}


def _error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


def _domain_error_handler(status_code: int):
    async def handler(request: Request, exc: Exception):
        logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc}")
        return _error_response(status_code, str(exc))
    return handler


for error_class, status_code in ERROR_STATUS.items():
    app.add_exception_handler(error_class, _domain_error_handler(status_code))


@app.exception_handler(ImageUploadError)
async def image_upload_error_handler(request: Request, exc: ImageUploadError):
    logger.error(f"{request.method} {request.url.path} failed on image upload: {exc}")
    return _error_response(500, "Error uploading image")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    loc = errors[0]["loc"][1:] if errors else ()
    # Unparseable JSON bodies report a character offset, not a field name
    field = ".".join(str(part) for part in loc) if loc and isinstance(loc[0], str) else ""
    message = f"Invalid value for '{field}'" if field else "Invalid request"
    return _error_response(400, message)


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse(f"/auth/login?next={quote(exc.next_url)}", status_code=303)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    logger.error(traceback.format_exc())
    return _error_response(500, "Internal server error")


# API routes

admin_api = APIRouter(prefix="/api", dependencies=[Depends(require_role("admin"))])


@app.get("/api/health")
async def health():
    response = {"backend": "OK", "database": "Connected"}
    try:
        await run_in_threadpool(get_mongo_client().admin.command, "ping")
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        response["database"] = f"Error: {str(e)[:80]}"
    return response


@app.get("/api/posts")
async def list_posts_endpoint(
    category: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    skip: int = Query(0, ge=0),
    exclude: Optional[str] = None,
):
    """
    Lists posts newest first, optionally filtered by category and by a
    case-insensitive search over title and content.
    """
    result = await run_in_threadpool(
        list_posts, category=category, search=search, limit=limit, skip=skip, exclude=exclude
    )
    return serialize_document(result)


@app.get("/api/posts/{post_id}")
async def get_post_endpoint(post_id: str):
    post = await run_in_threadpool(get_post, post_id)
    return {"post": serialize_document(post)}


@admin_api.post("/posts", status_code=201)
async def create_post_endpoint(
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    session: Session = Depends(get_session),
):
    post = await run_in_threadpool(
        create_post, title, content, category, image=image, author_id=session.id
    )
    return {"message": "Post created successfully", "post": serialize_document(post)}


@admin_api.put("/posts/{post_id}")
async def update_post_endpoint(
    post_id: str,
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
):
    post = await run_in_threadpool(update_post, post_id, title, content, category, image=image)
    return {"message": "Post updated successfully", "post": serialize_document(post)}


@admin_api.delete("/posts/{post_id}")
async def delete_post_endpoint(post_id: str):
    await run_in_threadpool(delete_post, post_id)
    return {"message": "Post deleted successfully"}


@admin_api.get("/admin/stats")
async def admin_stats_endpoint():
    """
    Dashboard figures, recomputed on every request.
    """
    try:
        stats = await run_in_threadpool(get_admin_stats)
    except Exception as e:
        logger.error(f"Error fetching admin stats: {e}")
        logger.error(traceback.format_exc())
        raise HTTPException(status_code=500, detail="Error fetching admin statistics")
    return serialize_document(stats)


@app.get("/api/comments")
async def list_comments_endpoint(postId: Optional[str] = None):
    comments = await run_in_threadpool(list_comments, postId)
    return {"comments": serialize_document(comments)}


@app.post("/api/comments", status_code=201)
async def add_comment_endpoint(payload: CommentRequest, session: Optional[Session] = Depends(get_session)):
    comment = await run_in_threadpool(
        add_comment, payload.postId, payload.userName, payload.content, session=session
    )
    return {"message": "Comment added successfully", "comment": serialize_document(comment)}


@app.post("/api/auth/signup", status_code=201)
async def signup_endpoint(payload: SignupRequest):
    user = await run_in_threadpool(register_user, payload.name, payload.email, payload.password)
    return {"success": True, "message": "User registered successfully", "user": user}


@app.post("/api/auth/login", response_model=Token)
async def login_endpoint(payload: LoginRequest, response: Response):
    session = await run_in_threadpool(authenticate, payload.email, payload.password)
    token = create_session_token(session)
    set_session_cookie(response, token)
    return Token(access_token=token, user=session)


@app.post("/api/auth/logout")
async def logout_endpoint(response: Response):
    response.delete_cookie(env.SESSION_COOKIE_NAME)
    return {"message": "Logged out"}


@app.get("/api/auth/session", response_model=Session)
async def session_endpoint(session: Session = Depends(require_role())):
    return session


app.include_router(admin_api)
app.include_router(pages_router)


@app.on_event("startup")
async def startup_event():
    try:
        await run_in_threadpool(create_all_indexes)
        await run_in_threadpool(_log_collections_summary)
    except Exception as e:
        logger.error(f"[STARTUP] Database bootstrap failed: {str(e)}")
        logger.error(f"[STARTUP] Traceback: {traceback.format_exc()}")


if __name__ == "__main__":

    import uvicorn
    port = int(os.getenv('BACKEND_PORT', 8000))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=env.DEVELOPMENT_MODE)
