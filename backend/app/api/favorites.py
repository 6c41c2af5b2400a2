"""Favorite experience routes. All but favorited-by need a bearer token."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from app.api.deps import get_current_user, get_favorites_service
from app.models import AuthenticatedUser, Experience
from app.services.favorites import FavoritesService

router = APIRouter()


class FavoriteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    experience_id: str = Field(..., min_length=1, alias="experienceId")


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class FavoritesResponse(BaseModel):
    success: bool = True
    favorites: list[Experience]


class FavoriteStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    is_favorite: bool = Field(..., alias="isFavorite")


class FavoritedByResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    favorited_by: list[str] = Field(..., alias="favoritedBy")
    count: int


@router.post("/favorites", response_model=MessageResponse)
async def add_favorite(
    request: FavoriteRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    favorites: FavoritesService = Depends(get_favorites_service),
) -> MessageResponse:
    await favorites.add(user.id, request.experience_id)
    return MessageResponse(message="Experience added to favorites")


@router.delete("/favorites", response_model=MessageResponse)
async def remove_favorite(
    request: FavoriteRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    favorites: FavoritesService = Depends(get_favorites_service),
) -> MessageResponse:
    await favorites.remove(user.id, request.experience_id)
    return MessageResponse(message="Experience removed from favorites")


@router.get("/favorites", response_model=FavoritesResponse)
async def list_favorites(
    user: AuthenticatedUser = Depends(get_current_user),
    favorites: FavoritesService = Depends(get_favorites_service),
) -> FavoritesResponse:
    return FavoritesResponse(favorites=await favorites.list_for_user(user.id))


@router.post("/favorites/check", response_model=FavoriteStatusResponse)
async def check_favorite(
    request: FavoriteRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    favorites: FavoritesService = Depends(get_favorites_service),
) -> FavoriteStatusResponse:
    return FavoriteStatusResponse(
        is_favorite=await favorites.is_favorite(user.id, request.experience_id)
    )


@router.get("/experiences/{experience_id}/favorited-by", response_model=FavoritedByResponse)
async def favorited_by(
    experience_id: str,
    favorites: FavoritesService = Depends(get_favorites_service),
) -> FavoritedByResponse:
    users = await favorites.favorited_by(experience_id)
    return FavoritedByResponse(favorited_by=users, count=len(users))
