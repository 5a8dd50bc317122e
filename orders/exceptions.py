class OrderNotFound(KeyError):
    """Raised when an order or assignment id is unknown to the store."""


class VersionConflict(Exception):
    """
    Raised by the record store when a write was based on a stale order version.
    The caller lost a race: re-read the order and retry.
    """

    def __init__(self, order_id: str, expected_version: int, actual_version: int):
        super().__init__(
            f"Order {order_id} changed concurrently (expected version {expected_version}, found {actual_version})"
        )
        self.order_id = order_id
        self.expected_version = expected_version
        self.actual_version = actual_version
