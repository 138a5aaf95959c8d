"""Editor facade wiring every component from an EditorConfig."""

import asyncio
from typing import Iterable, Optional

from blockdoc.api.blocks import BlocksAPI
from blockdoc.core.engine import MutationEngine
from blockdoc.core.factory import BlockFactory
from blockdoc.core.selection import BlockSelection
from blockdoc.drag.autoscroll import Scroller
from blockdoc.drag.controller import DragController
from blockdoc.drag.target import HitBox, HitTester
from blockdoc.history.bridge import HistoryBridge, IdleQueue, NullHistory
from blockdoc.history.snapshot import SnapshotHistory
from blockdoc.models.config import EditorConfig
from blockdoc.services.renderer import DocumentRenderer
from blockdoc.services.saver import DocumentSaver
from blockdoc.tools.registry import ToolRegistry, ToolSpec
from blockdoc.utils.logging import get_logger

logger = get_logger(__name__)


class _NoHitTester:
    """Hit tester for hosts without a layout: the pointer is never over a block."""

    def hit(self, x: float, y: float) -> Optional[HitBox]:
        return None


class Editor:
    """
    One editable document with all of its collaborators.

    Attributes:
        config: Editor configuration
        registry: Tool registry
        engine: Mutation engine (sole mutator of the document)
        history: History bridge
        selection: Block selection
        idle_queue: Queue for deferred history boundaries
        renderer: Saved document loader
        saver: Document serializer
        blocks: Public blocks API
        drag: Drag controller

    Example:
        >>> editor = Editor.from_config(EditorConfig())
        >>> await editor.blocks.render({"blocks": []})
        >>> editor.blocks.get_blocks_count()
        1
    """

    def __init__(
        self,
        config: EditorConfig,
        registry: ToolRegistry,
        *,
        hit_tester: Optional[HitTester] = None,
        scroller: Optional[Scroller] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.history: HistoryBridge = (
            SnapshotHistory(config.history.max_length) if config.history.enabled else NullHistory()
        )
        self.engine = MutationEngine(
            registry,
            self.history,
            factory=BlockFactory(registry, config.read_only),
            read_only=config.read_only,
        )
        if isinstance(self.history, SnapshotHistory):
            self.history.attach(self.engine)

        self.selection = BlockSelection(self.engine)
        self.idle_queue = IdleQueue(loop)
        self.renderer = DocumentRenderer(self.engine, self.history)
        self.saver = DocumentSaver(self.engine, self.renderer.busy)
        self.blocks = BlocksAPI(
            self.engine,
            history=self.history,
            idle_queue=self.idle_queue,
            renderer=self.renderer,
            saver=self.saver,
        )
        self.drag = DragController(
            self.engine,
            self.selection,
            hit_tester or _NoHitTester(),
            config.drag,
            saver=self.saver,
            scroller=scroller,
            history=self.history,
        )
        logger.debug(
            "editor_created",
            tools=registry.names,
            default_block=config.default_block,
            history=config.history.enabled,
            read_only=config.read_only,
        )

    @classmethod
    def from_config(
        cls,
        config: Optional[EditorConfig] = None,
        tools: Optional[Iterable[ToolSpec]] = None,
        *,
        hit_tester: Optional[HitTester] = None,
        scroller: Optional[Scroller] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> "Editor":
        """
        Build an editor from configuration.

        Args:
            config: Editor configuration (defaults when None)
            tools: Programmatic tool specs, replacing configured tools of the same name
            hit_tester: Layout hit tester used by the drag controller
            scroller: Viewport used for drag auto-scroll
            loop: Event loop that flushes the idle queue (manual flush when None)

        Returns:
            A ready editor holding one empty default block
        """
        config = config or EditorConfig()
        registry = ToolRegistry.from_config(config, tools or ())
        return cls(config, registry, hit_tester=hit_tester, scroller=scroller, loop=loop)
