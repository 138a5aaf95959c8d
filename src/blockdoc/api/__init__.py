"""Public API: block handles and the blocks surface."""

from blockdoc.api.handle import BlockAPI
from blockdoc.api.blocks import BlocksAPI

__all__ = ["BlockAPI", "BlocksAPI"]
