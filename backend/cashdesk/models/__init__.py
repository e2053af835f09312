from .inventory import Product
from .sales import (
    Sale,
    SaleLine,
    discounted_total,
    PAYMENT_DRAWER,
    PAYMENT_TRANSFER,
    PAYMENT_METHODS,
    SALE_NOTE_MAX_LENGTH,
)
from .registers import (
    RegisterState,
    CashMovement,
    REGISTER_STATE_ID,
    MOVEMENT_INFLOW,
    MOVEMENT_OUTFLOW,
    MOVEMENT_PURCHASE,
    MOVEMENT_KINDS,
)
from .pricing import MembershipPrice

__all__ = [
    'Product',
    'Sale', 'SaleLine', 'discounted_total', 'PAYMENT_DRAWER', 'PAYMENT_TRANSFER', 'PAYMENT_METHODS', 'SALE_NOTE_MAX_LENGTH',
    'RegisterState', 'CashMovement', 'REGISTER_STATE_ID',
    'MOVEMENT_INFLOW', 'MOVEMENT_OUTFLOW', 'MOVEMENT_PURCHASE', 'MOVEMENT_KINDS',
    'MembershipPrice',
]
