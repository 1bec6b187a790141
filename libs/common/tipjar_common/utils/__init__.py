from tipjar_common.utils.json_model import JsonModel
from tipjar_common.utils.utils import (
    ContextVarManager,
    cached_classmethod,
    deep_merge,
    get_logger,
    get_now,
    is_dict,
    use_context_var,
)

__all__ = [
    "ContextVarManager",
    "JsonModel",
    "cached_classmethod",
    "deep_merge",
    "get_logger",
    "get_now",
    "is_dict",
    "use_context_var",
]
