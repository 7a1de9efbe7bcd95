# Overview: Change notifications emitted by the checkout core.
#
# The presentation layer subscribes instead of polling storage:
#
#     from qpos.events import order_committed
#
#     @order_committed.connect
#     def _refresh_dashboard(sender, order, **extra):
#         ...
#
# Senders:
# - cart_changed:    sender=Cart,        kwargs: action
# - stock_adjusted:  sender=StockLedger, kwargs: entry, new_stock
# - order_committed: sender=Checkout,    kwargs: order

from blinker import Namespace

_signals = Namespace()

cart_changed = _signals.signal("cart-changed")
stock_adjusted = _signals.signal("stock-adjusted")
order_committed = _signals.signal("order-committed")
