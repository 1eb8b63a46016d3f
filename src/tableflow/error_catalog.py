"""
Centralized catalog of controlled business errors.

Codes travel in the ``code`` field of every error payload so clients can react
without parsing messages.
"""

ACCESS_EXPIRED = "ACCESS_001"
TABLE_OCCUPIED = "TABLE_001"
TABLE_ALREADY_ASSIGNED = "TABLE_002"
TABLE_NOT_ACTIVE = "TABLE_003"
TABLE_NOT_FOUND = "TABLE_404"
ORDER_NOT_FOUND = "ORDER_404"
ORDER_EMPTY = "ORDER_002"
INVALID_STATUS = "ORDER_003"
INVALID_TRANSITION = "ORDER_004"
VOID_AFTER_COOKING = "ITEM_001"
VOID_ORDER_CANCELLED = "ITEM_002"
ITEM_NOT_FOUND = "ITEM_404"
AUTH_REQUIRED = "AUTH_001"
ROLE_FORBIDDEN = "AUTH_002"
TABLE_NOT_ASSIGNED = "AUTH_003"
INVALID_PAYLOAD = "CHECK_001"
SYSTEM_ERROR = "SYSTEM_001"

ERROR_CATALOG = {
    ACCESS_EXPIRED: {
        "title": "Table Access Expired",
        "description": "The QR code for this table was scanned too long ago.",
        "http_code": 403,
        "solution": "Scan the table's QR code again.",
    },
    TABLE_OCCUPIED: {
        "title": "Table Occupied",
        "description": "The table already has an active order.",
        "http_code": 409,
        "solution": "Add items through staff or wait until the current bill is paid.",
    },
    TABLE_ALREADY_ASSIGNED: {
        "title": "Table Already Assigned",
        "description": "Another waiter holds an open assignment for this table.",
        "http_code": 409,
        "solution": "Refresh the table list and pick another table.",
    },
    TABLE_NOT_ACTIVE: {
        "title": "Table Without Active Order",
        "description": "Assistance and bill requests need an active order on the table.",
        "http_code": 409,
        "solution": "Place an order first.",
    },
    TABLE_NOT_FOUND: {
        "title": "Unknown Table",
        "description": "No table row exists with this number.",
        "http_code": 404,
        "solution": "Check the table number.",
    },
    ORDER_NOT_FOUND: {
        "title": "Unknown Order",
        "description": "No order exists with this id.",
        "http_code": 404,
        "solution": "Refresh the order list.",
    },
    ORDER_EMPTY: {
        "title": "Order Without Items",
        "description": "An order with no billable items cannot move past pending.",
        "http_code": 409,
        "solution": "Add items or cancel the order.",
    },
    INVALID_STATUS: {
        "title": "Invalid Status",
        "description": "The requested order status does not exist.",
        "http_code": 400,
        "solution": "Use one of the documented order statuses.",
    },
    INVALID_TRANSITION: {
        "title": "Invalid Transition",
        "description": "Strict transitions are enabled and this move is not forward-only.",
        "http_code": 409,
        "solution": "Move the order through its statuses in order.",
    },
    VOID_AFTER_COOKING: {
        "title": "Cannot Void After Cooking",
        "description": "Cashiers cannot void lines once the kitchen has started the order.",
        "http_code": 403,
        "solution": "Ask an admin to void the line.",
    },
    VOID_ORDER_CANCELLED: {
        "title": "Order Cancelled",
        "description": "Lines of a cancelled order are no longer billable and cannot be voided.",
        "http_code": 409,
        "solution": "No action needed; the order will not be charged.",
    },
    ITEM_NOT_FOUND: {
        "title": "Unknown Order Item",
        "description": "No order item exists with this id.",
        "http_code": 404,
        "solution": "Refresh the order.",
    },
    AUTH_REQUIRED: {
        "title": "Authentication Required",
        "description": "The request has no valid staff token.",
        "http_code": 401,
        "solution": "Sign in again.",
    },
    ROLE_FORBIDDEN: {
        "title": "Access Denied (Role)",
        "description": "The authenticated role cannot perform this action.",
        "http_code": 403,
        "solution": "Ask an admin.",
    },
    TABLE_NOT_ASSIGNED: {
        "title": "Table Not Assigned",
        "description": "Waiters can only order for tables assigned to them.",
        "http_code": 403,
        "solution": "Assign the table first.",
    },
    INVALID_PAYLOAD: {
        "title": "Invalid Payload",
        "description": "The request body failed validation.",
        "http_code": 400,
        "solution": "Fix the highlighted fields.",
    },
    SYSTEM_ERROR: {
        "title": "Internal Error",
        "description": "Unhandled server exception or infrastructure failure.",
        "http_code": 500,
        "solution": "Check the server logs.",
    },
}
