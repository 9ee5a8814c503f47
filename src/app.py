"""
Main application controller for the item organizer.
Wires configuration, logging, persistence, the board and drag handling.
"""

import os
import sys
import argparse
import logging
from pathlib import Path
from typing import Optional, Union

from src.drag.events import DragEnd, DragUpdate, container_from_droppable
from src.drag.session_tracker import DragSessionTracker
from src.mutation.board import Board
from src.ordering.models import BoardState, EntityKind
from src.persistence import create_gateway
from src.persistence.gateway import PersistenceGateway
from src.utils.config_manager import ConfigManager
from src.utils.error_handler import ErrorHandler

logger = logging.getLogger(__name__)


class OrganizerApp:
    """Application controller that owns the board and routes drag events to it."""

    def __init__(
        self,
        config_file: Optional[str] = None,
        cli_args: Optional[argparse.Namespace] = None,
        gateway: Optional[PersistenceGateway] = None,
    ):
        """Initialize the application.

        Args:
            config_file: Path to configuration file
            cli_args: Optional command line overrides
            gateway: Use this gateway instead of the configured backend
        """
        self.config_file = config_file
        self.cli_args = cli_args
        self.config_manager = None
        self.config = None
        self.gateway = gateway
        self.error_handler = None
        self.board = None
        self.tracker = None
        self._is_initialized = False

    def initialize(self, setup_logging: bool = True):
        """Load configuration and build all components."""
        if self._is_initialized:
            return

        try:
            logger.info("Loading configuration...")
            self.config_manager = ConfigManager(
                config_file=Path(self.config_file) if self.config_file else None,
                cli_args=self.cli_args,
            )
            self.config = self.config_manager.config

            if setup_logging:
                self._setup_logging()

            logger.info("Initializing components...")
            self._initialize_components()

            self._is_initialized = True
            logger.info("Application initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize application: {str(e)}")
            raise

    def _setup_logging(self):
        """Configure logging based on application settings."""
        log_config = self.config.get("logging", {})

        # Create logs directory if needed
        log_file = log_config.get("file", "./logs/organizer.log")
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        logging.basicConfig(
            level=getattr(logging, log_config.get("level", "INFO")),
            format=log_config.get(
                "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            ),
            handlers=[logging.FileHandler(log_file), logging.StreamHandler(sys.stdout)],
        )

    def _initialize_components(self):
        """Initialize all application components."""
        if self.gateway is None:
            self.gateway = create_gateway(self.config_manager)

        self.error_handler = ErrorHandler()
        self.board = Board(
            self.gateway,
            error_handler=self.error_handler,
            default_icon=self.config_manager.get("items.default_icon", "file"),
        )
        self.tracker = DragSessionTracker(
            folder_list_id=self.config_manager.get(
                "drag.folder_list_droppable_id", "folders"
            )
        )

    @property
    def root_droppable_id(self) -> str:
        return self.config_manager.get("drag.root_droppable_id", "main")

    async def start(self) -> BoardState:
        """Initialize if needed and load both collections."""
        if not self._is_initialized:
            self.initialize()
        return await self.board.load()

    def on_drag_update(
        self,
        moving_id: str,
        destination_droppable_id: Optional[str],
        kind: Union[EntityKind, str],
    ) -> BoardState:
        """Handle a live drag update from the drag provider."""
        event = DragUpdate(
            moving_id=moving_id,
            destination_container_id=container_from_droppable(
                destination_droppable_id, self.root_droppable_id
            ),
            kind=EntityKind(kind),
        )
        current = self.board.state
        updated = self.tracker.handle(event, current)
        if updated is not current:
            self.board.coordinator.replace_state(updated)
        return self.board.state

    def on_drag_end(
        self,
        moving_id: str,
        source_droppable_id: Optional[str],
        destination_droppable_id: Optional[str],
        source_index: int,
        destination_index: Optional[int],
        kind: Union[EntityKind, str],
    ) -> BoardState:
        """Handle the end of a drag gesture.

        A missing destination means the gesture was cancelled; nothing moves.
        Must be called from a running event loop, since moves persist in the
        background.
        """
        kind = EntityKind(kind)
        cancelled = destination_droppable_id is None or destination_index is None
        event = DragEnd(
            moving_id=moving_id,
            source_container_id=container_from_droppable(
                source_droppable_id, self.root_droppable_id
            ),
            destination_container_id=container_from_droppable(
                destination_droppable_id, self.root_droppable_id
            ),
            source_index=source_index,
            destination_index=destination_index,
            kind=kind,
            cancelled=cancelled,
        )
        self.tracker.handle(event, self.board.state)

        if event.cancelled:
            logger.debug(f"Drag of {moving_id} cancelled")
            return self.board.state

        if kind == EntityKind.FOLDER:
            return self.board.move_folder(source_index, destination_index)

        return self.board.move_item(
            moving_id,
            event.source_container_id,
            event.destination_container_id,
            destination_index,
        )
