"""
Aspect ratio to pixel size lookup.

Each provider keeps its own table because the maximum supported
resolution differs per model. Unknown ratios fall back to 1:1.
"""
from typing import Dict, NamedTuple, Optional

from image.base import Provider

DEFAULT_RATIO = "1:1"


class Dimensions(NamedTuple):
    width: int
    height: int


DIMENSIONS: Dict[Provider, Dict[str, Dimensions]] = {
    Provider.HUGGINGFACE: {
        "1:1": Dimensions(768, 768),
        "16:9": Dimensions(1024, 576),
        "9:16": Dimensions(576, 1024),
    },
    # SDXL only accepts a fixed set of sizes
    Provider.STABILITY: {
        "1:1": Dimensions(1024, 1024),
        "16:9": Dimensions(1536, 640),
        "9:16": Dimensions(640, 1536),
    },
    Provider.OPENAI: {
        "1:1": Dimensions(1024, 1024),
        "16:9": Dimensions(1792, 1024),
        "9:16": Dimensions(1024, 1792),
    },
    Provider.REPLICATE: {
        "1:1": Dimensions(1024, 1024),
        "16:9": Dimensions(1024, 576),
        "9:16": Dimensions(576, 1024),
    },
}


def resolve_dimensions(provider: Provider, ratio: Optional[str]) -> Dimensions:
    """Return the provider's pixel size for ratio, or its 1:1 size if unknown."""
    table = DIMENSIONS[provider]
    return table.get((ratio or DEFAULT_RATIO).strip(), table[DEFAULT_RATIO])
