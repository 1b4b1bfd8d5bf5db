"""
Social feed: admin-authored posts with likes and embedded comments.

Likes are a list of user ids with toggle semantics. The toggled list is
written back whole, so two rapid toggles by the same user race and the
last write wins. Comments are appended with $push and never edited.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, status

from database import FEEDPOSTS, create_document, created_after, get_document, get_documents, get_emails, update_document
from errors import MissingFieldError, NotFoundError
from schemas import Comment, CommentCreate, CommentOut, FeedPost, FeedPostCreate, FeedPostOut, UserRef
from security import AdminUser, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/feed", tags=["feed"])


def _user_ref(user_id: Optional[str], emails: dict) -> Optional[UserRef]:
    if user_id in emails:
        return UserRef(id=user_id, email=emails[user_id])
    return None


def _referenced_users(posts: List[dict]) -> dict:
    ids = set()
    for p in posts:
        if p.get("created_by"):
            ids.add(p["created_by"])
        ids.update(c["user"] for c in p.get("comments", []) if c.get("user"))
    return get_emails(ids)


def to_public(doc: dict, emails: dict) -> FeedPostOut:
    return FeedPostOut(
        id=str(doc["_id"]),
        image_url=doc["image_url"],
        caption=doc["caption"],
        likes=list(doc.get("likes", [])),
        comments=[
            CommentOut(id=c["id"], user=_user_ref(c.get("user"), emails), text=c["text"], created_at=c["created_at"])
            for c in doc.get("comments", [])
        ],
        created_by=_user_ref(doc.get("created_by"), emails),
        created_at=doc["created_at"],
    )


def _get_post(post_id: str) -> dict:
    post = get_document(FEEDPOSTS, post_id)
    if post is None:
        raise NotFoundError("Feed post not found")
    return post


def _update_post(post_id, update: dict) -> dict:
    # The post can disappear between the read and the write
    updated = update_document(FEEDPOSTS, post_id, update)
    if updated is None:
        raise NotFoundError("Feed post not found")
    return updated


@router.post("", response_model=FeedPostOut, status_code=status.HTTP_201_CREATED)
def create_post(req: FeedPostCreate, user: AdminUser):
    if not req.image_url or not req.caption:
        raise MissingFieldError("Image URL and caption are required")

    uid = str(user["_id"])
    pid = create_document(FEEDPOSTS, FeedPost(image_url=req.image_url, caption=req.caption, created_by=uid))
    logger.info("Feed post %s created by %s", pid, uid)
    return to_public(get_document(FEEDPOSTS, pid), {uid: user["email"]})


@router.get("", response_model=List[FeedPostOut])
def list_posts(user: CurrentUser, since: Optional[str] = None):
    try:
        query = created_after(since)
    except ValueError:
        logger.info("Ignoring feed request with unparsable since")
        return []

    posts = get_documents(FEEDPOSTS, query, newest_first=True)
    emails = _referenced_users(posts)
    return [to_public(p, emails) for p in posts]


@router.post("/{post_id}/like", response_model=FeedPostOut)
def toggle_like(post_id: str, user: CurrentUser):
    post = _get_post(post_id)
    uid = str(user["_id"])

    likes = list(post.get("likes", []))
    if uid in likes:
        likes.remove(uid)
    else:
        likes.append(uid)

    updated = _update_post(post["_id"], {"$set": {"likes": likes}})
    return to_public(updated, _referenced_users([updated]))


@router.post("/{post_id}/comment", response_model=FeedPostOut)
def add_comment(post_id: str, req: CommentCreate, user: CurrentUser):
    if not req.text:
        raise MissingFieldError("Comment text is required")
    post = _get_post(post_id)

    comment = Comment(user=str(user["_id"]), text=req.text)
    updated = _update_post(post["_id"], {"$push": {"comments": comment.model_dump()}})
    return to_public(updated, _referenced_users([updated]))
