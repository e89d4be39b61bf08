"""Items API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from stockgenius.dependencies import CurrentOwnerId, get_db
from stockgenius.items.schemas import BulkDeleteResponse, ItemCreate, ItemResponse, ItemUpdate
from stockgenius.items.service import ItemService, get_item_service

router = APIRouter()


def get_service(
    db: Annotated[Session, Depends(get_db)],
    owner_id: CurrentOwnerId,
) -> ItemService:
    """Get item service dependency."""
    return get_item_service(db, owner_id)


@router.get("", response_model=list[ItemResponse])
async def list_items(
    service: Annotated[ItemService, Depends(get_service)],
    category_id: str | None = Query(None),
    order_by: str = Query("created_at"),
    descending: bool = Query(True),
):
    """List the current owner's items, newest first by default.

    Args:
        service: Item service.
        category_id: Optional category filter.
        order_by: Field to order by.
        descending: Reverse the ordering.

    Returns:
        list[ItemResponse]: Ordered items.
    """
    try:
        return service.list_items(
            category_id=category_id, order_by=order_by, descending=descending
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    data: ItemCreate,
    service: Annotated[ItemService, Depends(get_service)],
):
    """Create a new item.

    Raises:
        HTTPException: If the category is unknown.
    """
    try:
        return service.create_item(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("", response_model=BulkDeleteResponse)
async def delete_items(
    service: Annotated[ItemService, Depends(get_service)],
    category_id: str = Query(...),
):
    """Delete every item in a category."""
    return BulkDeleteResponse(deleted=service.delete_items_in_category(category_id))


@router.get("/{item_id}", response_model=ItemResponse)
async def get_item(
    item_id: str,
    service: Annotated[ItemService, Depends(get_service)],
):
    """Get a specific item by ID.

    Raises:
        HTTPException: If item not found.
    """
    item = service.get_item(item_id)
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found",
        )
    return item


@router.patch("/{item_id}", response_model=ItemResponse)
async def update_item(
    item_id: str,
    data: ItemUpdate,
    service: Annotated[ItemService, Depends(get_service)],
):
    """Partially update an item.

    Raises:
        HTTPException: If item not found or category unknown.
    """
    try:
        item = service.update_item(item_id, data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found",
        )
    return item


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: str,
    service: Annotated[ItemService, Depends(get_service)],
) -> None:
    """Delete an item.

    Raises:
        HTTPException: If item not found.
    """
    if not service.delete_item(item_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found",
        )
