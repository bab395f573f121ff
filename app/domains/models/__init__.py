# app/domains/models/__init__.py

"""
이 파일은 모든 도메인의 SQLModel 모델들을 한 곳에서 중앙 관리하여,
다른 모듈에서 쉽게 임포트할 수 있도록 하는 역할을 합니다.
SQLModel.metadata가 모든 테이블을 인식하도록 보장합니다.
"""

# shared (DocumentSequence)
from app.domains.shared.models import DocumentSequence

# usr (User, UserRole)
from app.domains.usr.models import User, UserRole

# loc (Warehouse, WarehouseType)
from app.domains.loc.models import Warehouse, WarehouseType

# ven (Supplier)
from app.domains.ven.models import Supplier

# inv (ProductCategory, Product, Batch, Stock, StockMovement)
from app.domains.inv.models import (
    ProductCategory, Product, ProductStatus, Batch, Stock, StockMovement, MovementType
)

# pur (PurchaseOrder, PurchaseOrderItem)
from app.domains.pur.models import PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus

# trf (TransferOrder, TransferOrderItem)
from app.domains.trf.models import TransferOrder, TransferOrderItem, TransferOrderStatus

# cnt (StockCount, StockCountItem)
from app.domains.cnt.models import StockCount, StockCountItem, StockCountStatus

# ntf (Notification)
from app.domains.ntf.models import Notification, NotificationType, NotificationPriority, NotificationStatus

# fin (Payment)
from app.domains.fin.models import Payment, PaymentMethod


#  `from app.domains.models import *` 구문으로 임포트될 모델 목록 정의
__all__ = [
    # shared
    "DocumentSequence",
    # usr
    "User", "UserRole",
    # loc
    "Warehouse", "WarehouseType",
    # ven
    "Supplier",
    # inv
    "ProductCategory", "Product", "ProductStatus", "Batch", "Stock", "StockMovement", "MovementType",
    # pur
    "PurchaseOrder", "PurchaseOrderItem", "PurchaseOrderStatus",
    # trf
    "TransferOrder", "TransferOrderItem", "TransferOrderStatus",
    # cnt
    "StockCount", "StockCountItem", "StockCountStatus",
    # ntf
    "Notification", "NotificationType", "NotificationPriority", "NotificationStatus",
    # fin
    "Payment", "PaymentMethod",
]
