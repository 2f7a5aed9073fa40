__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Public library API – import-light facade
# ---------------------------------------------------------------------------

# Governed upstream access (no MCP dependency)
from .core.governor import RequestGovernor  # noqa: F401,E402
from .core.client import Operation, RentcastClient  # noqa: F401,E402
from .core.models import ApiResult, GovernorStatus  # noqa: F401,E402

# Configuration
from .settings import Settings, get_settings  # noqa: F401,E402

__all__ = [
    "__version__",
    "ApiResult",
    "GovernorStatus",
    "Operation",
    "RentcastClient",
    "RequestGovernor",
    "Settings",
    "get_settings",
]
