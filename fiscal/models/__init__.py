from .range_config_models import RangeConfig, RangeKind


__all__ = [
    "RangeConfig",
    "RangeKind",
]
