from .accounts import Account, AccountCustomerCode, Code
from .auth import RefreshToken, BlacklistedToken
from .catalog import Product
from .checkout import Cart, CartItem, Quote, QuoteItem, Order, OrderItem, CheckoutCleanup

__all__ = [
    'Account', 'AccountCustomerCode', 'Code',
    'RefreshToken', 'BlacklistedToken',
    'Product',
    'Cart', 'CartItem', 'Quote', 'QuoteItem', 'Order', 'OrderItem', 'CheckoutCleanup',
]
