import logging

log = logging.getLogger("examples_app.warehouse")


class Warehouse:
    def __init__(self):
        self.reserved = {}

    def notify_warehouse(self, sender, params):
        order_id = (params or {}).get("id")
        self.reserved[order_id] = True
        log.info("reserved stock for order=%s (sender=%s)", order_id, sender)

    def release_stock(self, sender, params):
        order_id = (params or {}).get("id")
        self.reserved.pop(order_id, None)
        log.info("released stock for order=%s (sender=%s)", order_id, sender)
