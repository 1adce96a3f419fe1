"""
api/routes/v1/topics.py -- Topic routes and topic search.

Routes:
  GET    /topics              -- list topics, newest first (public)
  POST   /topics              -- open a topic (requires auth)
  GET    /search?q=           -- search topics (public)
  GET    /topics/{topic_id}   -- topic detail (public; viewer_can_modify when a valid token is sent)
  PUT    /topics/{topic_id}   -- edit title/content (requires auth + ownership)
  DELETE /topics/{topic_id}   -- delete topic and its replies (requires auth + ownership)

Mutations follow one order: authenticate (401) -> load owner (404) ->
ownership policy (403) -> write.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from api.models import TopicResponse, TopicWrite
from auth.dependencies import get_identity, try_get_identity
from auth.models import Identity
from auth.policy import authorize_mutation, require_owner
from forum.models import Topic
from forum.store import ForumStore

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": "Topic not found."})


def _require_topic_owner(store: ForumStore, topic_id: int, identity: Identity) -> None:
    owner_id = store.topic_owner(topic_id)
    if owner_id is None:
        raise _not_found()
    require_owner(identity, owner_id, "topic", topic_id)


@router.get("/topics", response_model=list[TopicResponse])
def list_topics(request: Request) -> list[TopicResponse]:
    store: ForumStore = request.app.state.forum_store
    return [TopicResponse.from_topic(t) for t in store.list_topics()]


@router.post("/topics", response_model=TopicResponse, status_code=201)
def create_topic(
    request: Request,
    body: TopicWrite,
    identity: Identity = Depends(get_identity),
) -> TopicResponse:
    """Open a topic owned by the authenticated caller."""
    store: ForumStore = request.app.state.forum_store
    topic_id = store.create_topic(Topic(title=body.title, content=body.content, user_id=identity.subject_id))
    return TopicResponse.from_topic(store.get_topic(topic_id), viewer_can_modify=True)


@router.get("/search", response_model=list[TopicResponse])
def search_topics(request: Request, q: str = Query(default="", max_length=200)) -> list[TopicResponse]:
    """Case-insensitive search over title, content, and author name. Blank q -> []."""
    store: ForumStore = request.app.state.forum_store
    return [TopicResponse.from_topic(t) for t in store.search_topics(q)]


@router.get("/topics/{topic_id}", response_model=TopicResponse)
def get_topic(
    request: Request,
    topic_id: int,
    identity: Identity | None = Depends(try_get_identity),
) -> TopicResponse:
    store: ForumStore = request.app.state.forum_store
    topic = store.get_topic(topic_id)
    if topic is None:
        raise _not_found()
    subject_id = identity.subject_id if identity else None
    return TopicResponse.from_topic(topic, viewer_can_modify=authorize_mutation(subject_id, topic.user_id))


@router.put("/topics/{topic_id}", response_model=TopicResponse)
def update_topic(
    request: Request,
    topic_id: int,
    body: TopicWrite,
    identity: Identity = Depends(get_identity),
) -> TopicResponse:
    store: ForumStore = request.app.state.forum_store
    _require_topic_owner(store, topic_id, identity)
    if not store.update_topic(topic_id, body.title, body.content):
        raise _not_found()
    return TopicResponse.from_topic(store.get_topic(topic_id), viewer_can_modify=True)


@router.delete("/topics/{topic_id}", status_code=204)
def delete_topic(
    request: Request,
    topic_id: int,
    identity: Identity = Depends(get_identity),
) -> Response:
    store: ForumStore = request.app.state.forum_store
    _require_topic_owner(store, topic_id, identity)
    store.delete_topic(topic_id)
    return Response(status_code=204)
