from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, status

from guess_ai.actions import (
    Collaborators,
    create_session,
    dispatch_action_async,
    get_state,
    get_state_by_code,
    join,
    set_ready,
    submit_guess,
    submit_prompt,
)
from guess_ai.api.deps import get_collaborators, get_embeddings, get_settings, get_store, get_users
from guess_ai.api.models import (
    GuessRequest,
    JoinByCodeRequest,
    PromptRequest,
    SessionAction,
    SessionCreateRequest,
    SessionView,
    SimilarityRequest,
    SimilarityResponse,
    UserCreateRequest,
    UserCreateResponse,
)
from guess_ai.config import Settings
from guess_ai.content.base import EmbeddingClient
from guess_ai.errors import GameError
from guess_ai.scoring import score_texts
from guess_ai.session_store import RedisSessionStore
from guess_ai.users import RedisUserDirectory

router = APIRouter()


def _http_error(e: ValueError) -> HTTPException:
    if isinstance(e, GameError):
        return HTTPException(status_code=e.status_code, detail={"kind": e.kind, "message": e.message})
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"kind": "InvalidRequest", "message": str(e)},
    )


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/users", response_model=UserCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_user_route(
    payload: UserCreateRequest, users: RedisUserDirectory = Depends(get_users)
) -> UserCreateResponse:
    try:
        user_id = users.create_user(payload.username)
    except ValueError as e:
        raise _http_error(e) from e
    return UserCreateResponse(user_id=user_id, username=payload.username.strip())


@router.post("/sessions", response_model=SessionView, status_code=status.HTTP_201_CREATED)
async def create_session_route(
    payload: SessionCreateRequest | None = Body(default=None),
    store: RedisSessionStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> SessionView:
    payload = payload or SessionCreateRequest()
    try:
        state = create_session(
            store=store,
            settings=settings,
            total_rounds=payload.total_rounds,
            min_players=payload.min_players,
            max_players=payload.max_players,
        )
    except ValueError as e:
        raise _http_error(e) from e
    return SessionView.from_state(state)


@router.get("/sessions", response_model=list[SessionView])
async def list_sessions_route(store: RedisSessionStore = Depends(get_store)) -> list[SessionView]:
    try:
        return [SessionView.from_state(s) for s in store.list_sessions()]
    except ValueError as e:
        raise _http_error(e) from e


@router.post("/sessions/join", response_model=SessionView)
async def join_route(
    payload: JoinByCodeRequest,
    store: RedisSessionStore = Depends(get_store),
    collaborators: Collaborators = Depends(get_collaborators),
) -> SessionView:
    try:
        state = await join(store=store, code=payload.code, player_id=payload.player_id, collaborators=collaborators)
    except ValueError as e:
        raise _http_error(e) from e
    return SessionView.from_state(state)


@router.get("/sessions/by-code/{code}", response_model=SessionView)
async def get_session_by_code_route(code: str, store: RedisSessionStore = Depends(get_store)) -> SessionView:
    try:
        state = get_state_by_code(store=store, code=code)
    except ValueError as e:
        raise _http_error(e) from e
    return SessionView.from_state(state)


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_session_route(session_id: UUID, store: RedisSessionStore = Depends(get_store)) -> SessionView:
    try:
        state = get_state(store=store, session_id=session_id)
    except ValueError as e:
        raise _http_error(e) from e
    return SessionView.from_state(state)


@router.post("/sessions/{session_id}/players/{player_id}/ready", response_model=SessionView)
async def ready_route(
    session_id: UUID,
    player_id: str,
    store: RedisSessionStore = Depends(get_store),
    collaborators: Collaborators = Depends(get_collaborators),
) -> SessionView:
    try:
        state = await set_ready(store=store, session_id=session_id, player_id=player_id, collaborators=collaborators)
    except ValueError as e:
        raise _http_error(e) from e
    return SessionView.from_state(state)


@router.post("/sessions/{session_id}/players/{player_id}/prompt", response_model=SessionView)
async def prompt_route(
    session_id: UUID,
    player_id: str,
    payload: PromptRequest,
    store: RedisSessionStore = Depends(get_store),
    collaborators: Collaborators = Depends(get_collaborators),
) -> SessionView:
    try:
        state = await submit_prompt(
            store=store,
            session_id=session_id,
            player_id=player_id,
            prompt=payload.prompt,
            collaborators=collaborators,
        )
    except ValueError as e:
        raise _http_error(e) from e
    return SessionView.from_state(state)


@router.post("/sessions/{session_id}/players/{player_id}/guess", response_model=SessionView)
async def guess_route(
    session_id: UUID,
    player_id: str,
    payload: GuessRequest,
    store: RedisSessionStore = Depends(get_store),
    collaborators: Collaborators = Depends(get_collaborators),
) -> SessionView:
    try:
        state = await submit_guess(
            store=store,
            session_id=session_id,
            player_id=player_id,
            target_id=payload.target_id,
            guess=payload.guess,
            collaborators=collaborators,
        )
    except ValueError as e:
        raise _http_error(e) from e
    return SessionView.from_state(state)


@router.post("/sessions/{session_id}/actions", response_model=SessionView)
async def typed_action_route(
    session_id: UUID,
    action: Annotated[SessionAction, Body(discriminator="action")],
    store: RedisSessionStore = Depends(get_store),
    collaborators: Collaborators = Depends(get_collaborators),
) -> SessionView:
    """Generic action endpoint; the body's `action` field picks the variant."""

    try:
        result = await dispatch_action_async(
            store=store, session_id=session_id, action=action, collaborators=collaborators
        )
    except ValueError as e:
        raise _http_error(e) from e
    return SessionView.from_state(result.state)


@router.post("/similarity", response_model=SimilarityResponse)
async def similarity_route(
    payload: SimilarityRequest, embeddings: EmbeddingClient = Depends(get_embeddings)
) -> SimilarityResponse:
    try:
        score = await score_texts(payload.reference, payload.candidate, embeddings=embeddings)
    except ValueError as e:
        raise _http_error(e) from e
    return SimilarityResponse(score=score)
