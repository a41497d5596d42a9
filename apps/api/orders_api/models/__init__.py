# Import SQLAlchemy models so they register on Base.metadata
from orders_api.models.notification import OrderNotification  # noqa: F401
from orders_api.models.order import EMPTY_EXTENSION, Order, OrderStatus  # noqa: F401
