from .sampler import (
    IndexRange,
    SamplingStrategy,
    adaptive_sample,
    lttb_sample,
    recommend_strategy,
    sample,
    should_sample,
    smart_sample,
    zoom_sample,
)

__all__ = [
    "IndexRange",
    "SamplingStrategy",
    "adaptive_sample",
    "lttb_sample",
    "recommend_strategy",
    "sample",
    "should_sample",
    "smart_sample",
    "zoom_sample",
]
