"""Board content API: boards, posts, comments, thumbs."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from whiteboard.auth.dependencies import get_current_user, get_optional_user
from whiteboard.board import comment_service, post_service, thumb_service
from whiteboard.board.schemas import (
    AuthorResponse,
    BoardResponse,
    BoardsResponse,
    CanPostResponse,
    CommentCreateRequest,
    CommentResponse,
    CommentsResponse,
    PostCreateRequest,
    PostCreateResponse,
    PostListResponse,
    PostResponse,
    PostUpdateRequest,
    ThumbRequest,
    ThumbResponse,
)
from whiteboard.database import get_session
from whiteboard.db.models import User
from whiteboard.engagement.schemas import ActionResult, CurrencyResponse, FlairResponse
from whiteboard.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1", tags=["Board"])


def _post_response(entry: dict) -> PostResponse:
    post = entry["post"]
    return PostResponse(
        id=post.id,
        board_id=post.board_id,
        content=post.content,
        author=AuthorResponse.model_validate(post.author),
        push_count=post.push_count,
        created_at=post.created_at,
        updated_at=post.updated_at,
        comment_count=entry["comment_count"],
        thumb_count=entry["thumb_count"],
        user_has_thumbed=entry["user_has_thumbed"],
        flairs=[FlairResponse.model_validate(f) for f in entry["flairs"]],
    )


def _comment_response(entry: dict) -> CommentResponse:
    comment = entry["comment"]
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        content=comment.content,
        author=AuthorResponse.model_validate(comment.author),
        created_at=comment.created_at,
        thumb_count=entry["thumb_count"],
        user_has_thumbed=entry["user_has_thumbed"],
    )


# ── Boards ──


@router.get("/boards", response_model=BoardsResponse)
async def list_boards(db: AsyncSession = Depends(get_session)) -> BoardsResponse:
    boards = await post_service.list_boards(db)
    return BoardsResponse(boards=[BoardResponse.model_validate(b) for b in boards])


# ── Posts ──


@router.get("/posts", response_model=PostListResponse)
async def list_posts(
    board_id: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
) -> PostListResponse:
    """Feed ordered by last activity; a comment bumps a post back to the top."""
    entries, total = await post_service.list_posts(
        db, board_id, page, limit, viewer_id=viewer.id if viewer else None
    )
    return PostListResponse(
        posts=[_post_response(e) for e in entries],
        total=total,
        page=page,
        per_page=limit,
    )


@router.get("/posts/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
) -> PostResponse:
    entry = await post_service.get_post(db, post_id, viewer_id=viewer.id if viewer else None)
    if entry is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return _post_response(entry)


@router.post("/posts", response_model=PostCreateResponse, status_code=201)
async def create_post(
    body: PostCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
) -> PostCreateResponse | JSONResponse:
    """Create today's post. A second post on the same day answers 429."""
    try:
        created = await post_service.create_post(
            db, user.id, body.board_id, body.content, body.flair_id, redis=redis
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail="Board not found") from e
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    if created is None:
        return JSONResponse(
            status_code=429,
            content=ActionResult(success=False, message=post_service.ALREADY_POSTED).model_dump(),
        )

    entry = await post_service.get_post(db, created.post.id, viewer_id=user.id)
    return PostCreateResponse(
        post=_post_response(entry),
        flair_outcome=created.flair_outcome,
        first_post=created.first_post,
        currency=CurrencyResponse(**created.currency),
    )


@router.patch("/posts/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: str,
    body: PostUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PostResponse:
    """Edit content. Only the author may edit; other fields are not editable."""
    try:
        post = await post_service.update_post(db, user.id, post_id, body.content)
    except LookupError as e:
        raise HTTPException(status_code=404, detail="Post not found") from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    if post is None:
        raise HTTPException(status_code=403, detail="You can only update your own posts")

    entry = await post_service.get_post(db, post_id, viewer_id=user.id)
    return _post_response(entry)


@router.get("/users/me/can-post", response_model=CanPostResponse)
async def can_post(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CanPostResponse:
    return CanPostResponse(can_post=await post_service.can_post_today(db, user.id))


# ── Comments ──


@router.get("/comments", response_model=CommentsResponse)
async def list_comments(
    post_id: str = Query(..., min_length=1),
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
) -> CommentsResponse:
    """Comments on a post, oldest first, with thumb counts."""
    comments = await comment_service.list_comments(db, post_id)
    entries = await comment_service.decorate_comments(db, comments, viewer_id=viewer.id if viewer else None)
    return CommentsResponse(comments=[_comment_response(e) for e in entries])


@router.post("/comments", response_model=CommentResponse, status_code=201)
async def create_comment(
    body: CommentCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
) -> CommentResponse:
    try:
        comment = await comment_service.create_comment(db, user.id, body.post_id, body.content, redis=redis)
    except LookupError as e:
        raise HTTPException(status_code=404, detail="Post not found") from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    created = await comment_service.get_comment(db, comment.id)
    entries = await comment_service.decorate_comments(db, [created], viewer_id=user.id)
    return _comment_response(entries[0])


# ── Thumbs ──


@router.post("/thumbs", response_model=ThumbResponse)
async def toggle_thumb(
    body: ThumbRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
) -> ThumbResponse:
    """Add the caller's thumb to a post or comment, or take it back."""
    try:
        action, count = await thumb_service.toggle_thumb(
            db, user.id, post_id=body.post_id, comment_id=body.comment_id, redis=redis
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ThumbResponse(action=action, thumb_count=count)
