# Utility modules for cellguard
from .logging import (
    get_logger,
    app_logger,
    routes_logger,
)
from .validation import (
    validate_latitude,
    validate_longitude,
    validate_mcc,
    validate_mnc,
    validate_cell_identifier,
    validate_positive_int,
)
