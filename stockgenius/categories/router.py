"""Categories API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from stockgenius.categories.schemas import CategoryCreate, CategoryResponse, CategoryUpdate
from stockgenius.categories.service import CategoryService, get_category_service
from stockgenius.dependencies import CurrentOwnerId, get_db

router = APIRouter()


def get_service(
    db: Annotated[Session, Depends(get_db)],
    owner_id: CurrentOwnerId,
) -> CategoryService:
    """Get category service dependency."""
    return get_category_service(db, owner_id)


@router.get("", response_model=list[CategoryResponse])
async def list_categories(
    service: Annotated[CategoryService, Depends(get_service)],
    order_by: str = Query("name"),
    descending: bool = Query(False),
):
    """List the current owner's categories.

    Args:
        service: Category service.
        order_by: Field to order by.
        descending: Reverse the ordering.

    Returns:
        list[CategoryResponse]: Ordered categories.

    Raises:
        HTTPException: If the order field is not allowed.
    """
    try:
        return service.list_categories(order_by=order_by, descending=descending)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    service: Annotated[CategoryService, Depends(get_service)],
):
    """Create a new category.

    Raises:
        HTTPException: If the name already exists.
    """
    try:
        return service.create_category(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/bulk", response_model=list[CategoryResponse], status_code=status.HTTP_201_CREATED)
async def create_categories(
    data: list[CategoryCreate],
    service: Annotated[CategoryService, Depends(get_service)],
):
    """Create several categories at once, skipping existing names."""
    return service.create_categories(data)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: str,
    service: Annotated[CategoryService, Depends(get_service)],
):
    """Get a specific category by ID.

    Raises:
        HTTPException: If category not found.
    """
    category = service.get_category(category_id)
    if not category:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Category not found",
        )
    return category


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    data: CategoryUpdate,
    service: Annotated[CategoryService, Depends(get_service)],
):
    """Rename a category.

    Raises:
        HTTPException: If category not found or name conflict.
    """
    try:
        category = service.update_category(category_id, data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not category:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Category not found",
        )
    return category


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str,
    service: Annotated[CategoryService, Depends(get_service)],
) -> None:
    """Delete a category.

    Items in the category are deleted with it.

    Raises:
        HTTPException: If category not found.
    """
    if not service.delete_category(category_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Category not found",
        )
