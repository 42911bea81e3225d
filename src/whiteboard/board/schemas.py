"""Pydantic request/response models for board content endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from whiteboard.engagement.schemas import CurrencyResponse, FlairResponse


class BoardResponse(BaseModel):
    id: str
    name: str
    description: str | None = None

    model_config = {"from_attributes": True}


class BoardsResponse(BaseModel):
    boards: list[BoardResponse]


class AuthorResponse(BaseModel):
    """Always derived from the users row, never from the request."""

    id: str
    username: str | None = None
    avatar_url: str | None = None

    model_config = {"from_attributes": True}


class PostResponse(BaseModel):
    id: str
    board_id: str
    content: str
    author: AuthorResponse
    push_count: int
    created_at: datetime
    updated_at: datetime
    comment_count: int = 0
    thumb_count: int = 0
    user_has_thumbed: bool = False
    flairs: list[FlairResponse] = []


class PostListResponse(BaseModel):
    posts: list[PostResponse]
    total: int
    page: int
    per_page: int


class PostCreateRequest(BaseModel):
    board_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, max_length=10_000)
    flair_id: str | None = None


class PostCreateResponse(BaseModel):
    post: PostResponse
    flair_outcome: str
    first_post: bool = False
    currency: CurrencyResponse


class PostUpdateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=10_000)


class CanPostResponse(BaseModel):
    can_post: bool


class CommentResponse(BaseModel):
    id: str
    post_id: str
    content: str
    author: AuthorResponse
    created_at: datetime
    thumb_count: int = 0
    user_has_thumbed: bool = False


class CommentsResponse(BaseModel):
    comments: list[CommentResponse]


class CommentCreateRequest(BaseModel):
    post_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, max_length=5_000)


class ThumbRequest(BaseModel):
    post_id: str | None = None
    comment_id: str | None = None

    @model_validator(mode="after")
    def _exactly_one_target(self) -> ThumbRequest:
        if (self.post_id is None) == (self.comment_id is None):
            raise ValueError("Exactly one of post_id or comment_id is required")
        return self


class ThumbResponse(BaseModel):
    action: str
    thumb_count: int
