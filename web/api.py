"""API route handlers for InstaClone"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from instaclone.models.user import User
from instaclone.services.invitation_service import InvitationService
from instaclone.services.posting_service import PostingService
from instaclone.services.social_service import SocialService
from instaclone.utils.academic_years import academic_years
from instaclone.utils.exceptions import MediaUploadError

from .auth_deps import (
    get_invitation_service,
    get_posting_service,
    get_social_service,
    require_auth,
)
from .models import (
    CreatePostResponse,
    FavoriteRequest,
    FeedResponse,
    InvitationResponse,
    PermitUserRequest,
    PostResponse,
    ProfileResponse,
    ProfileViewResponse,
    UserPublic,
    UserSummary,
    ViewRequest,
)

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/health")
def health_check() -> Dict[str, Any]:
    """Health check endpoint for deployment platforms"""
    return {
        "status": "healthy",
        "service": "instaclone",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# Posts


@router.get("/posts", response_model=FeedResponse)
def recent_posts(
    current_user: User = Depends(require_auth),
    posting: PostingService = Depends(get_posting_service),
) -> FeedResponse:
    """Recent activity feed: posts released in the last few daily releases."""
    label, posts = posting.recent_feed()
    now = posting.clock()
    return FeedResponse(label=label, posts=[PostResponse.from_post(p, now) for p in posts])


@router.post("/posts", response_model=CreatePostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    image: UploadFile = File(...),
    caption: Optional[str] = Form(None),
    confirm_eviction: bool = Form(False),
    current_user: User = Depends(require_auth),
    posting: PostingService = Depends(get_posting_service),
) -> CreatePostResponse:
    """
    Upload a photo.

    429 when today's uploads reached the daily limit; 409 when the account
    holds the maximum number of posts and confirm_eviction was not set.
    413 as soon as the upload is larger than media.max_upload_bytes.
    """
    max_bytes = posting.settings.media.max_upload_bytes
    too_large = MediaUploadError(f"Image exceeds {max_bytes} bytes", status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)
    if image.size is not None and image.size > max_bytes:
        raise too_large
    # Never buffer more than one byte past the limit
    data = await image.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise too_large
    created = await run_in_threadpool(
        posting.create_post,
        current_user,
        data,
        image.filename or "",
        image.content_type,
        caption,
        confirm_eviction,
    )
    return CreatePostResponse(
        post=PostResponse.from_post(created.post, posting.clock()),
        stats=created.stats,
        evicted_post_id=created.evicted_post_id,
    )


@router.get("/posts/mine", response_model=List[PostResponse])
def my_posts(
    current_user: User = Depends(require_auth),
    posting: PostingService = Depends(get_posting_service),
) -> List[PostResponse]:
    now = posting.clock()
    return [PostResponse.from_post(p, now) for p in posting.list_own_posts(current_user)]


@router.get("/posts/limits")
def upload_limits(
    current_user: User = Depends(require_auth),
    posting: PostingService = Depends(get_posting_service),
) -> Dict[str, Any]:
    return posting.upload_status(current_user)


@router.delete("/posts/{post_id}")
def delete_post(
    post_id: str,
    current_user: User = Depends(require_auth),
    posting: PostingService = Depends(get_posting_service),
) -> Dict[str, Any]:
    posting.delete_post(current_user, post_id)
    return {"success": True}


# Users


@router.get("/users/{username}", response_model=ProfileResponse)
def user_profile(
    username: str,
    current_user: User = Depends(require_auth),
    posting: PostingService = Depends(get_posting_service),
    social: SocialService = Depends(get_social_service),
) -> ProfileResponse:
    profile = social.users.find_by_username(username)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    now = posting.clock()
    posts = posting.list_profile_posts(profile, current_user)
    return ProfileResponse(
        user=UserPublic.from_user(profile),
        posts=[PostResponse.from_post(p, now) for p in posts],
        is_own_profile=profile.id == current_user.id,
        is_favorite=social.favorites.is_favorite(current_user.email, profile.username),
    )


@router.get("/search-users", response_model=List[UserSummary])
def search_users(
    query: Optional[str] = None,
    current_user: User = Depends(require_auth),
    social: SocialService = Depends(get_social_service),
) -> List[UserSummary]:
    return [UserSummary(name=u.name, username=u.username) for u in social.search_users(query)]


# Favorites


@router.get("/favorites", response_model=List[UserPublic])
def list_favorites(
    current_user: User = Depends(require_auth),
    social: SocialService = Depends(get_social_service),
) -> List[UserPublic]:
    return [UserPublic.from_user(u) for u in social.list_favorites(current_user)]


@router.post("/favorites")
def add_favorite(
    payload: FavoriteRequest,
    current_user: User = Depends(require_auth),
    social: SocialService = Depends(get_social_service),
) -> Dict[str, Any]:
    try:
        social.add_favorite(current_user, payload.username)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"success": True}


@router.delete("/favorites")
def remove_favorite(
    payload: FavoriteRequest,
    current_user: User = Depends(require_auth),
    social: SocialService = Depends(get_social_service),
) -> Dict[str, Any]:
    social.remove_favorite(current_user, payload.username)
    return {"success": True}


# Invitations


@router.get("/permit-user", response_model=List[InvitationResponse])
def list_permitted_users(
    current_user: User = Depends(require_auth),
    invitations: InvitationService = Depends(get_invitation_service),
) -> List[InvitationResponse]:
    return [InvitationResponse.from_invitation(i) for i in invitations.list_permitted_by(current_user)]


@router.post("/permit-user")
def permit_user(
    payload: PermitUserRequest,
    current_user: User = Depends(require_auth),
    invitations: InvitationService = Depends(get_invitation_service),
) -> Dict[str, Any]:
    try:
        invitations.permit(
            current_user,
            email=payload.email or "",
            school=payload.school or "",
            cohort_year=payload.cohort_year,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "Permission granted"}


@router.get("/schools", response_model=List[str])
def list_schools(invitations: InvitationService = Depends(get_invitation_service)) -> List[str]:
    return invitations.schools()


@router.get("/academic-years", response_model=List[str])
def list_academic_years() -> List[str]:
    return academic_years()


# Viewing history


@router.get("/viewing-history", response_model=List[ProfileViewResponse])
def viewing_history(
    current_user: User = Depends(require_auth),
    social: SocialService = Depends(get_social_service),
) -> List[ProfileViewResponse]:
    return [ProfileViewResponse.from_view(v) for v in social.viewing_history(current_user)]


@router.post("/viewing-history")
def record_view(
    payload: ViewRequest,
    current_user: User = Depends(require_auth),
    social: SocialService = Depends(get_social_service),
) -> Dict[str, Any]:
    view = social.record_view(current_user, payload.viewed_username)
    if view is None:
        return {"message": "Own profile"}
    return {"message": "Success"}
