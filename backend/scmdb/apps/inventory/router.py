from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from scmdb.database import get_db, get_read_db, unit_of_work
from scmdb.security import get_current_actor_id

from . import schemas, services

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.post("/items", response_model=schemas.ItemRead, status_code=status.HTTP_201_CREATED)
def create_item(
    payload: schemas.ItemCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    with unit_of_work(db):
        item = services.create_item(db, payload=payload)
    return item


@router.get("/items", response_model=List[schemas.ItemRead])
def list_items(db: Session = Depends(get_read_db)):
    return services.list_items(db)


@router.post("/warehouses", response_model=schemas.WarehouseRead, status_code=status.HTTP_201_CREATED)
def create_warehouse(
    payload: schemas.WarehouseCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    with unit_of_work(db):
        warehouse = services.create_warehouse(db, payload=payload)
    return warehouse


@router.get("/warehouses", response_model=List[schemas.WarehouseRead])
def list_warehouses(db: Session = Depends(get_read_db)):
    return services.list_warehouses(db)


@router.post("/receive", response_model=schemas.StockMovementRead, status_code=status.HTTP_201_CREATED)
def receive_stock(
    payload: schemas.StockReceiptRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    with unit_of_work(db):
        movement = services.increase(db, actor_id=actor_id, **payload.model_dump())
    return movement


@router.post("/issue", response_model=schemas.StockMovementRead, status_code=status.HTTP_201_CREATED)
def issue_stock(
    payload: schemas.StockMovementRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    with unit_of_work(db):
        movement = services.decrease(db, actor_id=actor_id, **payload.model_dump())
    return movement


@router.post("/adjust", response_model=Optional[schemas.StockMovementRead])
def adjust_stock(
    payload: schemas.StockAdjustmentRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    with unit_of_work(db):
        movement = services.set_quantity(
            db,
            item_id=payload.item_id,
            warehouse_id=payload.warehouse_id,
            quantity=payload.quantity,
            actor_id=actor_id,
            reference_type="manual_adjustment",
            notes=payload.notes,
        )
    return movement


@router.put("/thresholds", response_model=schemas.InventoryLevelRead)
def update_thresholds(
    payload: schemas.ThresholdUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    with unit_of_work(db):
        level = services.update_thresholds(db, **payload.model_dump())
    return level


@router.get("/levels", response_model=List[schemas.InventoryLevelRead])
def list_levels(
    item_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    low_stock_only: bool = False,
    db: Session = Depends(get_read_db),
):
    return services.list_levels(db, item_id=item_id, warehouse_id=warehouse_id, low_stock_only=low_stock_only)


@router.get("/levels/{item_id}/{warehouse_id}", response_model=schemas.StockLevelRead)
def get_stock_level(item_id: int, warehouse_id: int, db: Session = Depends(get_read_db)):
    return services.get_stock_level(db, item_id=item_id, warehouse_id=warehouse_id)


@router.get("/movements", response_model=List[schemas.StockMovementRead])
def list_movements(
    item_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    limit: int = 500,
    db: Session = Depends(get_read_db),
):
    return services.list_movements(
        db,
        item_id=item_id,
        warehouse_id=warehouse_id,
        reference_type=reference_type,
        reference_id=reference_id,
        limit=limit,
    )


@router.get("/lots", response_model=List[schemas.InventoryLotRead])
def list_lots(
    item_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    active_only: bool = True,
    db: Session = Depends(get_read_db),
):
    return services.list_lots(db, item_id=item_id, warehouse_id=warehouse_id, active_only=active_only)


@router.get("/movements/{movement_id}/consumptions", response_model=List[schemas.LotConsumptionRead])
def list_lot_consumptions(movement_id: int, db: Session = Depends(get_read_db)):
    return services.list_lot_consumptions(db, movement_id=movement_id)
