"""
api/routes/v1/replies.py -- Reply routes.

Routes:
  GET    /replies?topic_id=   -- replies under a topic, oldest first (public)
  POST   /replies             -- post a reply (requires auth; topic must exist)
  PUT    /replies/{reply_id}  -- edit content (requires auth + ownership)
  DELETE /replies/{reply_id}  -- delete reply (requires auth + ownership)

Reply ownership is independent of topic ownership: a topic's author cannot
edit or delete other members' replies under it.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from api.models import ReplyCreate, ReplyResponse, ReplyUpdate
from auth.dependencies import get_identity
from auth.models import Identity
from auth.policy import require_owner
from forum.models import Reply
from forum.store import ForumStore

router = APIRouter()


def _not_found(what: str = "Reply") -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": f"{what} not found."})


def _require_reply_owner(store: ForumStore, reply_id: int, identity: Identity) -> None:
    owner_id = store.reply_owner(reply_id)
    if owner_id is None:
        raise _not_found()
    require_owner(identity, owner_id, "reply", reply_id)


@router.get("/replies", response_model=list[ReplyResponse])
def list_replies(request: Request, topic_id: int = Query(gt=0)) -> list[ReplyResponse]:
    store: ForumStore = request.app.state.forum_store
    return [ReplyResponse.from_reply(r) for r in store.list_replies(topic_id)]


@router.post("/replies", response_model=ReplyResponse, status_code=201)
def create_reply(
    request: Request,
    body: ReplyCreate,
    identity: Identity = Depends(get_identity),
) -> ReplyResponse:
    store: ForumStore = request.app.state.forum_store
    if store.topic_owner(body.topic_id) is None:
        raise _not_found("Topic")
    reply_id = store.create_reply(Reply(topic_id=body.topic_id, content=body.content, user_id=identity.subject_id))
    return ReplyResponse.from_reply(store.get_reply(reply_id))


@router.put("/replies/{reply_id}", response_model=ReplyResponse)
def update_reply(
    request: Request,
    reply_id: int,
    body: ReplyUpdate,
    identity: Identity = Depends(get_identity),
) -> ReplyResponse:
    store: ForumStore = request.app.state.forum_store
    _require_reply_owner(store, reply_id, identity)
    if not store.update_reply(reply_id, body.content):
        raise _not_found()
    return ReplyResponse.from_reply(store.get_reply(reply_id))


@router.delete("/replies/{reply_id}", status_code=204)
def delete_reply(
    request: Request,
    reply_id: int,
    identity: Identity = Depends(get_identity),
) -> Response:
    store: ForumStore = request.app.state.forum_store
    _require_reply_owner(store, reply_id, identity)
    store.delete_reply(reply_id)
    return Response(status_code=204)
