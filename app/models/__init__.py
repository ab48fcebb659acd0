"""ORM Models — SQLAlchemy declarative models for the ledger, mirror and order tables.

Invariants:
    - All models inherit from Base (db/base.py)
    - Needs (drive_items, child_items) hold needed quantities; purchased
      quantities are never stored, only derived from order_items

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from app.models.organization import Organization  # noqa: F401
from app.models.drive import Drive  # noqa: F401
from app.models.child import Child  # noqa: F401
from app.models.item import Item  # noqa: F401
from app.models.drive_item import DriveItem  # noqa: F401
from app.models.child_item import ChildItem  # noqa: F401
from app.models.cart import Cart  # noqa: F401
from app.models.cart_content import CartContent  # noqa: F401
from app.models.order import Order  # noqa: F401
from app.models.order_item import OrderItem  # noqa: F401
