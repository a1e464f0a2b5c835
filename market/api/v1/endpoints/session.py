"""
Session endpoints - login/logout and the onboarding prompts that bootstrap waits on.
Design: Login returns as soon as the identity is set; bootstrap keeps running and its prompts
are answered through /onboarding.
"""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from market.core.dependencies import AppCtx
from market.core.errors import AuthError
from market.schemas.profile import Profile
from market.services.onboarding import SuspendedOnboarding

router = APIRouter()


class PromptResponse(BaseModel):
    label: str
    required: bool


class SessionResponse(BaseModel):
    identity: str
    authenticated: bool
    bootstrap: str
    profile: Profile | None = None
    prompt: PromptResponse | None = None


class AnswerRequest(BaseModel):
    text: str


def _session_response(context) -> SessionResponse:
    prompt = None
    if isinstance(context.onboarding, SuspendedOnboarding) and context.onboarding.pending:
        pending = context.onboarding.pending
        prompt = PromptResponse(label=pending.label, required=pending.required)
    return SessionResponse(
        identity=str(context.session.current_identity()),
        authenticated=context.session.is_authenticated,
        bootstrap=context.bootstrap.state.value,
        profile=context.view.profile,
        prompt=prompt,
    )


def _suspended(context) -> SuspendedOnboarding:
    if not isinstance(context.onboarding, SuspendedOnboarding):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Onboarding is not interactive")
    return context.onboarding


@router.get("", response_model=SessionResponse)
async def get_session(context: AppCtx):
    return _session_response(context)


@router.post("/login", response_model=SessionResponse)
async def login(context: AppCtx):
    """Cancelled login is not an error: the session simply stays as it was."""
    try:
        await context.login(wait=False)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    return _session_response(context)


@router.post("/logout", response_model=SessionResponse)
async def logout(context: AppCtx):
    try:
        await context.logout(wait=False)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    return _session_response(context)


@router.post("/onboarding/answer", response_model=SessionResponse)
async def answer_prompt(context: AppCtx, data: AnswerRequest):
    if not _suspended(context).answer(data.text):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No prompt is waiting")
    return _session_response(context)


@router.post("/onboarding/cancel", response_model=SessionResponse)
async def cancel_prompt(context: AppCtx):
    if not _suspended(context).cancel():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No prompt is waiting")
    return _session_response(context)
