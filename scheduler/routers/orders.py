"""
Order management endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address
from datetime import date
from typing import Optional
import base64
import binascii
import logging
import uuid

from scheduler import config
from scheduler.database import get_db
from scheduler.schemas.order import (
    OrderCreate, OrderUpdate, OrderResponse, OrderHistoryResponse, BulkOrderCreate,
    BulkUpsertResponse, DocketUpload, DocketUploadResponse, ClearAllResponse,
)
from scheduler.services.activity_logger import ActivityLogger
from scheduler.services.export_service import XLSX_MEDIA_TYPE, export_orders
from scheduler.services.order_service import OrderService
from scheduler.services.storage import StorageProvider, get_storage
from scheduler.auth.auth_handler import RequestContext, supervisor_required, user_required
from scheduler.utils.error_handler import SchedulerError, ValidationError

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address)

router = APIRouter()

@router.post("/", response_model=OrderResponse, status_code=201)
@limiter.limit("30/minute")
async def create_order(
    request: Request,
    order: OrderCreate,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    """Create a new order"""
    try:
        return await OrderService(db).create_order(order.dict(exclude_none=True), current_user)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to create order: {e}")
        raise HTTPException(status_code=500, detail="Failed to create order")

@router.get("/", response_model=list[OrderResponse])
@limiter.limit("60/minute")
async def get_orders(
    request: Request,
    status: Optional[str] = Query(None, description="Filter by status"),
    priority: Optional[str] = Query(None, description="Filter by priority"),
    search: Optional[str] = Query(None, description="Matches order, service and ticket numbers, customer, address"),
    appointment_date: Optional[date] = Query(None, description="Orders whose appointment falls on this day"),
    sort_by: str = Query("created_at"),
    descending: bool = Query(True),
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    """List orders with optional filtering"""
    try:
        return OrderService(db).list_orders(status, priority, search, appointment_date, sort_by, descending)
        
    except Exception as e:
        logger.error(f"Failed to get orders: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve orders")

@router.get("/export")
@limiter.limit("10/minute")
async def export_orders_xlsx(
    request: Request,
    status: Optional[str] = Query(None),
    appointment_date: Optional[date] = Query(None),
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    """Download orders as an Excel workbook"""
    try:
        orders = OrderService(db).list_orders(status=status, appointment_date=appointment_date, descending=False)
        return Response(
            content=export_orders(orders),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": 'attachment; filename="orders.xlsx"'}
        )
        
    except Exception as e:
        logger.error(f"Failed to export orders: {e}")
        raise HTTPException(status_code=500, detail="Failed to export orders")

@router.post("/bulk", response_model=list[OrderResponse], status_code=201)
@limiter.limit("10/minute")
async def bulk_create_orders(
    request: Request,
    payload: BulkOrderCreate,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    """Import a batch of orders; rejected as a whole if any already exists"""
    try:
        rows = [order.dict(exclude_none=True) for order in payload.orders]
        return await OrderService(db).bulk_create(rows, current_user)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to bulk create orders: {e}")
        raise HTTPException(status_code=500, detail="Failed to import orders")

@router.post("/bulk-upsert", response_model=BulkUpsertResponse)
@limiter.limit("10/minute")
async def bulk_upsert_orders(
    request: Request,
    payload: BulkOrderCreate,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    """Import a batch of orders, updating those that already exist"""
    try:
        rows = [order.dict(exclude_unset=True) for order in payload.orders]
        return await OrderService(db).bulk_upsert(rows, current_user)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to bulk upsert orders: {e}")
        raise HTTPException(status_code=500, detail="Failed to import orders")

@router.delete("/clear-all", response_model=ClearAllResponse)
@limiter.limit("2/minute")
async def clear_all_orders(
    request: Request,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    """Delete every order and assignment (Admin only)"""
    activity_logger = ActivityLogger(db)
    try:
        result = await OrderService(db).clear_all(current_user)
        await activity_logger.log_request(request, 200, user_id=current_user.user_id, details=result)
        return result
        
    except SchedulerError as e:
        await activity_logger.log_request(
            request, e.status_code, user_id=current_user.user_id, error_message=e.message
        )
        raise
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to clear orders: {e}")
        raise HTTPException(status_code=500, detail="Failed to clear orders")

@router.get("/{order_id}", response_model=OrderResponse)
@limiter.limit("60/minute")
async def get_order(
    request: Request,
    order_id: int,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    """Get a specific order by ID"""
    try:
        return OrderService(db).get_order(order_id)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to get order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve order")

@router.put("/{order_id}", response_model=OrderResponse)
@limiter.limit("30/minute")
async def update_order(
    request: Request,
    order_id: int,
    order_update: OrderUpdate,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    """Update an existing order; only the fields sent are changed"""
    try:
        return await OrderService(db).update_order(
            order_id, order_update.dict(exclude_unset=True), current_user
        )
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to update order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update order")

@router.delete("/{order_id}")
@limiter.limit("30/minute")
async def delete_order(
    request: Request,
    order_id: int,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    """Delete an order and its assignments"""
    try:
        await OrderService(db).delete_order(order_id, current_user)
        return {"success": True, "message": "Order deleted successfully"}
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to delete order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete order")

@router.get("/{order_id}/history", response_model=list[OrderHistoryResponse])
@limiter.limit("60/minute")
async def get_order_history(
    request: Request,
    order_id: int,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    """Field-level change history of an order, newest first"""
    try:
        return OrderService(db).get_history(order_id)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to get history for order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve order history")

def decode_docket(file_data: str) -> bytes:
    """Decode a base64 payload, with or without a data: URL prefix"""
    if file_data.startswith("data:") and "," in file_data:
        file_data = file_data.split(",", 1)[1]
    try:
        content = base64.b64decode(file_data, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("File data is not valid base64", error_code="INVALID_FILE")
    if not content:
        raise ValidationError("File is empty", error_code="INVALID_FILE")
    
    max_bytes = config.MAX_DOCKET_SIZE_MB * 1024 * 1024
    if len(content) > max_bytes:
        raise ValidationError(
            f"File too large. Maximum size is {config.MAX_DOCKET_SIZE_MB}MB",
            error_code="FILE_TOO_LARGE"
        )
    return content

@router.post("/{order_id}/docket", response_model=DocketUploadResponse)
@limiter.limit("10/minute")
async def upload_docket(
    request: Request,
    order_id: int,
    upload: DocketUpload,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage)
):
    """Store a docket file and attach it to the order"""
    try:
        order_service = OrderService(db)
        order_service.get_order(order_id)
        content = decode_docket(upload.file_data)
        
        key = f"dockets/{order_id}/{uuid.uuid4().hex}-{upload.file_name}"
        url = storage.put(key, content, upload.file_type)
        try:
            order = await order_service.attach_docket(order_id, url, upload.file_name, current_user)
        except Exception:
            try:
                storage.delete(key)
            except Exception as cleanup_error:
                logger.error(f"Failed to remove orphaned docket {key}: {cleanup_error}")
            raise
        
        logger.info(f"Uploaded docket for order {order_id}: {upload.file_name} ({len(content)} bytes)")
        return DocketUploadResponse(url=url, file_name=upload.file_name, order=OrderResponse.from_orm(order))
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to upload docket for order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to upload docket")
