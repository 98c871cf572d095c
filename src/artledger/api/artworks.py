"""Artwork API router -- upload, verify, listings, purchase, download, images."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response

from artledger.api.dependencies import (
    get_artwork_service,
    get_current_user,
    require_role,
)
from artledger.models import User
from artledger.models.user import ROLE_BUYER, ROLE_SELLER
from artledger.services.artwork_service import (
    ArtworkResponse,
    ArtworkService,
    ListForSaleRequest,
    PurchaseResult,
    SellerStats,
    VerificationResult,
)
from artledger.services.image_storage import (
    content_type_for,
    download_file_name,
    relative_image_path,
)

router = APIRouter(prefix="/api/artworks", tags=["artworks"])

DOWNLOAD_IMAGE_TTL = 600
PUBLIC_IMAGE_TTL = 900


# ---------------------------------------------------------------------------
# Registration and verification
# ---------------------------------------------------------------------------

@router.post("/upload", response_model=ArtworkResponse)
async def upload_artwork(
    file: UploadFile = File(...),
    use_ledger: bool = Form(default=True),
    current_user: User = Depends(get_current_user),
    service: ArtworkService = Depends(get_artwork_service),
) -> ArtworkResponse:
    """Hash, store and (optionally) notarize an uploaded image."""
    return await service.upload(file, current_user.id, use_ledger)


@router.post("/verify", response_model=VerificationResult)
async def verify_artwork(
    file_hash: Optional[str] = Form(default=None),
    transaction_id: Optional[str] = Form(default=None),
    file: Optional[UploadFile] = File(default=None),
    service: ArtworkService = Depends(get_artwork_service),
) -> VerificationResult:
    return await service.verify(
        file_hash=file_hash, transaction_id=transaction_id, upload=file
    )


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

@router.get("/user", response_model=list[ArtworkResponse])
async def user_artworks(
    current_user: User = Depends(get_current_user),
    service: ArtworkService = Depends(get_artwork_service),
) -> list[ArtworkResponse]:
    return await service.list_user_artworks(current_user.id)


@router.get("/purchased", response_model=list[ArtworkResponse])
async def purchased_artworks(
    current_user: User = Depends(get_current_user),
    service: ArtworkService = Depends(get_artwork_service),
) -> list[ArtworkResponse]:
    return await service.list_purchased(current_user.id)


@router.get("/marketplace", response_model=list[ArtworkResponse])
async def marketplace_artworks(
    service: ArtworkService = Depends(get_artwork_service),
) -> list[ArtworkResponse]:
    return await service.list_marketplace()


@router.get("/seller-stats", response_model=SellerStats)
async def seller_stats(
    current_user: User = Depends(require_role(ROLE_SELLER)),
    service: ArtworkService = Depends(get_artwork_service),
) -> SellerStats:
    return await service.seller_stats(current_user.id)


@router.post("/{artwork_id}/list", response_model=ArtworkResponse)
async def list_for_sale(
    artwork_id: int,
    body: ListForSaleRequest,
    current_user: User = Depends(require_role(ROLE_SELLER)),
    service: ArtworkService = Depends(get_artwork_service),
) -> ArtworkResponse:
    """List an owned artwork at ``price``; a null or zero price delists it."""
    return await service.list_for_sale(artwork_id, body.price, current_user.id)


@router.post("/{artwork_id}/purchase", response_model=PurchaseResult)
async def purchase_artwork(
    artwork_id: int,
    current_user: User = Depends(require_role(ROLE_BUYER)),
    service: ArtworkService = Depends(get_artwork_service),
) -> PurchaseResult:
    return await service.purchase(artwork_id, current_user.id)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

@router.get("/{artwork_id}/download")
async def download_artwork(
    artwork_id: int,
    current_user: User = Depends(get_current_user),
    service: ArtworkService = Depends(get_artwork_service),
) -> Response:
    """Image bytes for the owner or a buyer of the artwork."""
    download = await service.get_for_download(artwork_id, current_user.id)
    if download is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Artwork not found"
        )

    data = await service.read_image(download.image_path, DOWNLOAD_IMAGE_TTL)
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Image file not found"
        )

    file_name = download_file_name(download.file_name, download.image_path)
    return Response(
        content=data,
        media_type=content_type_for(download.image_path),
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


@router.get("/image/{artwork_id}/{file_name}")
async def artwork_image(
    artwork_id: int,
    file_name: str,
    service: ArtworkService = Depends(get_artwork_service),
) -> Response:
    image_path = relative_image_path(artwork_id, file_name)
    data = await service.read_image(image_path, PUBLIC_IMAGE_TTL)
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Image not found"
        )
    return Response(content=data, media_type=content_type_for(file_name))


@router.get("/image/{artwork_id}/{file_name}/exists")
async def artwork_image_exists(
    artwork_id: int,
    file_name: str,
    service: ArtworkService = Depends(get_artwork_service),
) -> dict:
    exists = await service.image_exists(relative_image_path(artwork_id, file_name))
    return {"exists": exists}
